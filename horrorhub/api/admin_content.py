from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List
import logging

from horrorhub.api.deps import require_admin
from horrorhub.api.schemas import (
    ContentCreate, ContentPlatformCreate, ContentPlatformResponse, ContentPlatformUpdate, ContentResponse, ContentUpdate,
    PlatformBadge, PrimarySubgenreRequest, SubgenreIdsRequest, SubgenreResponse,
)
from horrorhub.database import get_db
from horrorhub.services import content_repository, platform_repository, subgenre_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/content", tags=["admin-content"], dependencies=[Depends(require_admin)])


def _require_content(db: Session, content_id: int):
    item = content_repository.get_content_row(db, content_id)
    if not item:
        raise HTTPException(status_code=404, detail="Content not found")
    return item


@router.get("", response_model=List[ContentResponse])
async def list_all_content(db: Session = Depends(get_db)):
    return content_repository.get_all_content(db)


@router.get("/hidden", response_model=List[ContentResponse])
async def list_hidden_content(db: Session = Depends(get_db)):
    return content_repository.get_hidden_content(db)


@router.get("/inactive", response_model=List[ContentResponse])
async def list_inactive_content(db: Session = Depends(get_db)):
    return content_repository.get_inactive_content(db)


@router.post("", response_model=ContentResponse, status_code=201)
async def create_content(payload: ContentCreate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude={"subgenre_ids", "primary_subgenre_id"})
    item = content_repository.create_content(db, data)
    try:
        if payload.subgenre_ids:
            subgenre_repository.add_subgenres_to_content(db, item.id, payload.subgenre_ids)
        if payload.primary_subgenre_id:
            subgenre_repository.set_primary_subgenre(db, item.id, payload.primary_subgenre_id)
    except LookupError as e:
        content_repository.delete_content(db, item.id)
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"✓ Created content {item.title} ({item.year})")
    return content_repository.get_content_item(db, item.id)


@router.patch("/{content_id}", response_model=ContentResponse)
async def update_content(content_id: int, payload: ContentUpdate, db: Session = Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True)
    item = content_repository.update_content(db, content_id, changes)
    if not item:
        raise HTTPException(status_code=404, detail="Content not found")
    return content_repository.get_content_item(db, content_id)


@router.delete("/{content_id}", status_code=204)
async def delete_content(content_id: int, db: Session = Depends(get_db)):
    if not content_repository.delete_content(db, content_id):
        raise HTTPException(status_code=404, detail="Content not found")
    return Response(status_code=204)


@router.post("/{content_id}/hide")
async def hide_content(content_id: int, db: Session = Depends(get_db)):
    if not content_repository.hide_content(db, content_id):
        raise HTTPException(status_code=404, detail="Content not found")
    return {"message": "Content hidden successfully"}


@router.post("/{content_id}/show")
async def show_content(content_id: int, db: Session = Depends(get_db)):
    if not content_repository.show_content(db, content_id):
        raise HTTPException(status_code=404, detail="Content not found")
    return {"message": "Content shown successfully"}


# --- Subgenres of one title ---

@router.get("/{content_id}/subgenres", response_model=List[SubgenreResponse])
async def get_content_subgenres(content_id: int, db: Session = Depends(get_db)):
    _require_content(db, content_id)
    return subgenre_repository.get_subgenres_for_content(db, content_id)


def _change_subgenres(db: Session, content_id: int, operation, subgenre_ids: List[int]):
    _require_content(db, content_id)
    try:
        operation(db, content_id, subgenre_ids)
    except LookupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return subgenre_repository.get_subgenres_for_content(db, content_id)


@router.post("/{content_id}/subgenres", response_model=List[SubgenreResponse])
async def add_content_subgenres(content_id: int, payload: SubgenreIdsRequest, db: Session = Depends(get_db)):
    return _change_subgenres(db, content_id, subgenre_repository.add_subgenres_to_content, payload.subgenre_ids)


@router.put("/{content_id}/subgenres", response_model=List[SubgenreResponse])
async def replace_content_subgenres(content_id: int, payload: SubgenreIdsRequest, db: Session = Depends(get_db)):
    return _change_subgenres(db, content_id, subgenre_repository.replace_content_subgenres, payload.subgenre_ids)


@router.delete("/{content_id}/subgenres", response_model=List[SubgenreResponse])
async def remove_content_subgenres(content_id: int, payload: SubgenreIdsRequest, db: Session = Depends(get_db)):
    return _change_subgenres(db, content_id, subgenre_repository.remove_subgenres_from_content, payload.subgenre_ids)


@router.patch("/{content_id}/primary-subgenre", response_model=ContentResponse)
async def set_primary_subgenre(content_id: int, payload: PrimarySubgenreRequest, db: Session = Depends(get_db)):
    try:
        item = subgenre_repository.set_primary_subgenre(db, content_id, payload.subgenre_id)
    except LookupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not item:
        raise HTTPException(status_code=404, detail="Content not found")
    return content_repository.get_content_item(db, content_id)


# --- Platform links of one title ---

@router.get("/{content_id}/platforms", response_model=List[PlatformBadge])
async def get_content_platforms(content_id: int, db: Session = Depends(get_db)):
    _require_content(db, content_id)
    return platform_repository.get_platforms_for_content_id(db, content_id)


@router.post("/{content_id}/platforms", response_model=ContentPlatformResponse, status_code=201)
async def add_content_platform(content_id: int, payload: ContentPlatformCreate, db: Session = Depends(get_db)):
    _require_content(db, content_id)
    if not platform_repository.get_platform(db, payload.platform_id):
        raise HTTPException(status_code=404, detail="Platform not found")
    try:
        return platform_repository.create_content_platform(
            db, content_id, payload.platform_id,
            web_url=payload.web_url, seasons=payload.seasons, episodes=payload.episodes,
        )
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Platform link already exists")


@router.patch("/{content_id}/platforms/{platform_id}", response_model=ContentPlatformResponse)
async def update_content_platform(content_id: int, platform_id: int, payload: ContentPlatformUpdate,
                                  db: Session = Depends(get_db)):
    link = platform_repository.update_content_platform(
        db, content_id, platform_id, **payload.model_dump(exclude_unset=True)
    )
    if not link:
        raise HTTPException(status_code=404, detail="Platform link not found")
    return link


@router.delete("/{content_id}/platforms/{platform_id}", status_code=204)
async def delete_content_platform(content_id: int, platform_id: int, db: Session = Depends(get_db)):
    if not platform_repository.delete_content_platform(db, content_id, platform_id):
        raise HTTPException(status_code=404, detail="Platform link not found")
    return Response(status_code=204)
