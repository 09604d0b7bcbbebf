from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ticketing.core.database import SessionLocal
from ticketing.models.user import User
from ticketing.schemas.user import ActorContext

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_actor(
    request: Request,
    x_actor_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> ActorContext:
    # Authentication happens upstream; the gateway forwards the verified user id.
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not resolve acting user",
    )
    if not x_actor_id:
        raise credentials_exception
    user = db.query(User).filter(User.id == x_actor_id).first()
    if user is None or not user.is_active:
        raise credentials_exception
    ip_address = request.client.host if request.client else None
    return ActorContext(id=user.id, role=user.role, ip_address=ip_address)
