import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from ticketing.core.errors import TicketingError
from ticketing.core.logging_config import configure_logging
from ticketing.routers import reference, ticket

logger = logging.getLogger(__name__)

configure_logging()

app = FastAPI(title="Ticket lifecycle & audit engine")

app.include_router(ticket.router)
app.include_router(reference.router)

@app.exception_handler(TicketingError)
async def handle_ticketing_error(request: Request, exc: TicketingError):
    if exc.retryable:
        logger.warning(f"{request.method} {request.url.path} failed, retryable: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "retryable": exc.retryable},
    )

@app.get("/", response_class=JSONResponse)
def read_root():
    return {"message": "Ticket lifecycle & audit engine. See /docs for the API."}
