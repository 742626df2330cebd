from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from horrorhub.api.deps import get_current_user
from horrorhub.api.schemas import ContentResponse, DecadeCount, PlatformResponse, SubgenreResponse
from horrorhub.database import get_db
from horrorhub.models.user import User
from horrorhub.services import content_repository, platform_repository, subgenre_repository


router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/subgenres", response_model=List[SubgenreResponse])
async def list_active_subgenres(db: Session = Depends(get_db)):
    return subgenre_repository.get_subgenres(db, active_only=True)


@router.get("/platforms", response_model=List[PlatformResponse])
async def list_platforms(
    q: Optional[str] = None,
    include_inactive: bool = Query(False, alias="includeInactive"),
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    include_inactive = include_inactive and bool(user and user.is_admin)
    return platform_repository.list_platforms(db, include_inactive=include_inactive, q=q)


@router.get("/platforms/by-key/{platform_key}", response_model=PlatformResponse)
async def get_platform_by_key(platform_key: str, db: Session = Depends(get_db)):
    platform = platform_repository.get_platform_by_key(db, platform_key)
    if not platform:
        raise HTTPException(status_code=404, detail="Platform not found")
    return platform


@router.get("/platforms/{platform_id}", response_model=PlatformResponse)
async def get_platform(platform_id: int, db: Session = Depends(get_db)):
    platform = platform_repository.get_platform(db, platform_id)
    if not platform:
        raise HTTPException(status_code=404, detail="Platform not found")
    return platform


@router.get("/decades", response_model=List[DecadeCount])
async def list_decades(
    platform_key: Optional[str] = Query(None, alias="platformKey"),
    type: Optional[str] = None,
    subgenre: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Visible titles per decade, newest first"""
    return content_repository.count_by_decade(db, platform_key=platform_key, content_type=type, subgenre=subgenre)


@router.get("/new-to-streaming", response_model=List[ContentResponse])
async def new_to_streaming(db: Session = Depends(get_db)):
    return content_repository.get_newest_streaming(db, limit=5)
