from pydantic import BaseModel
from typing import Optional

class UserSummary(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    class Config:
        from_attributes = True

class ActorContext(BaseModel):
    """The authenticated caller, passed explicitly into every core operation."""

    id: str
    role: str
    ip_address: Optional[str] = None

    @property
    def is_customer(self) -> bool:
        return self.role == "customer"
