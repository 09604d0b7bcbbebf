from pydantic import BaseModel
from typing import Optional

class PriorityRead(BaseModel):
    id: str
    name: str
    sort_order: int
    is_active: bool

    class Config:
        from_attributes = True

class PriorityCreate(BaseModel):
    name: str
    sort_order: int = 0

class PriorityUpdate(BaseModel):
    name: Optional[str] = None
    sort_order: Optional[int] = None

class CategoryRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True

class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None

class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
