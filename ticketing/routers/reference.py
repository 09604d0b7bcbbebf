from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from ticketing.core.deps import get_db, get_actor
from ticketing.schemas.reference import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    PriorityCreate,
    PriorityRead,
    PriorityUpdate,
)
from ticketing.schemas.user import ActorContext
from ticketing.services import reference

router = APIRouter(prefix="/api/reference", tags=["reference"])

@router.get("/priorities", response_model=List[PriorityRead])
def list_priorities(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return [PriorityRead.model_validate(p) for p in reference.list_priorities(db)]

@router.get("/priorities/{priority_id}", response_model=PriorityRead)
def get_priority(priority_id: str, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return PriorityRead.model_validate(reference.get_priority(db, priority_id))

@router.post("/priorities", response_model=PriorityRead, status_code=status.HTTP_201_CREATED)
def create_priority(
    priority_in: PriorityCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)
):
    return PriorityRead.model_validate(reference.create_priority(db, priority_in, actor))

@router.put("/priorities/{priority_id}", response_model=PriorityRead)
def update_priority(
    priority_id: str,
    priority_in: PriorityUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return PriorityRead.model_validate(reference.update_priority(db, priority_id, priority_in, actor))

@router.delete("/priorities/{priority_id}", response_model=PriorityRead)
def deactivate_priority(priority_id: str, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return PriorityRead.model_validate(reference.deactivate_priority(db, priority_id, actor))

@router.get("/categories", response_model=List[CategoryRead])
def list_categories(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return [CategoryRead.model_validate(c) for c in reference.list_categories(db)]

@router.get("/categories/{category_id}", response_model=CategoryRead)
def get_category(category_id: str, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return CategoryRead.model_validate(reference.get_category(db, category_id))

@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: CategoryCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)
):
    return CategoryRead.model_validate(reference.create_category(db, category_in, actor))

@router.put("/categories/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: str,
    category_in: CategoryUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    return CategoryRead.model_validate(reference.update_category(db, category_id, category_in, actor))

@router.delete("/categories/{category_id}", response_model=CategoryRead)
def deactivate_category(category_id: str, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return CategoryRead.model_validate(reference.deactivate_category(db, category_id, actor))
