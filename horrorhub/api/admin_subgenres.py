from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from horrorhub.api.deps import require_admin
from horrorhub.api.schemas import ReorderRequest, SubgenreCreate, SubgenreResponse, SubgenreUpdate
from horrorhub.database import get_db
from horrorhub.services import subgenre_repository
from horrorhub.services.subgenre_repository import ReorderError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/subgenres", tags=["admin-subgenres"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[SubgenreResponse])
async def list_subgenres(active_only: Optional[bool] = False, db: Session = Depends(get_db)):
    return subgenre_repository.get_subgenres(db, active_only=bool(active_only))


@router.put("/reorder")
async def reorder_subgenres(payload: ReorderRequest, db: Session = Depends(get_db)):
    """Rewrites sortOrder to 1..N in the given order"""
    try:
        subgenre_repository.reorder_subgenres(db, payload.ordered_ids)
    except ReorderError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Subgenres reordered successfully"}


@router.get("/{subgenre_id}", response_model=SubgenreResponse)
async def get_subgenre(subgenre_id: int, db: Session = Depends(get_db)):
    subgenre = subgenre_repository.get_subgenre(db, subgenre_id)
    if not subgenre:
        raise HTTPException(status_code=404, detail="Subgenre not found")
    return subgenre


@router.post("", response_model=SubgenreResponse, status_code=201)
async def create_subgenre(payload: SubgenreCreate, db: Session = Depends(get_db)):
    try:
        return subgenre_repository.create_subgenre(db, **payload.model_dump())
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Subgenre name or slug already exists")


@router.patch("/{subgenre_id}", response_model=SubgenreResponse)
async def update_subgenre(subgenre_id: int, payload: SubgenreUpdate, db: Session = Depends(get_db)):
    try:
        subgenre = subgenre_repository.update_subgenre(db, subgenre_id, **payload.model_dump(exclude_unset=True))
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Subgenre name or slug already exists")
    if not subgenre:
        raise HTTPException(status_code=404, detail="Subgenre not found")
    return subgenre


@router.delete("/{subgenre_id}", status_code=204)
async def delete_subgenre(subgenre_id: int, db: Session = Depends(get_db)):
    if not subgenre_repository.delete_subgenre(db, subgenre_id):
        raise HTTPException(status_code=404, detail="Subgenre not found")
    return Response(status_code=204)
