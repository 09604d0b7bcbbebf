"""Error kinds raised across the ticketing core.

Everything that leaves a service function is one of these; storage driver
errors are translated in ``ticketing.core.database.atomic``.
"""


class TicketingError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(TicketingError):
    status_code = 422


class NotFound(TicketingError):
    status_code = 404

    def __init__(self, kind: str, ident=None):
        detail = f"{kind} not found" if ident is None else f"{kind} not found: {ident}"
        super().__init__(detail)
        self.kind = kind
        self.ident = ident


class GenerationExhausted(TicketingError):
    status_code = 503
    retryable = True


class ConcurrencyConflict(TicketingError):
    status_code = 409
    retryable = True


class StorageError(TicketingError):
    status_code = 503
    retryable = True


class DuplicateName(TicketingError):
    status_code = 409

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} with this name already exists: {name}")
        self.kind = kind
        self.name = name
