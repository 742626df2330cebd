from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from horrorhub.api.deps import (
    get_current_user, get_ledger, get_sync_settings, get_tvdb_client, get_watchmode_client, require_admin,
)
from horrorhub.api.schemas import ContentResponse, SyncRequest
from horrorhub.database import get_db
from horrorhub.models.user import User
from horrorhub.services import content_repository
from horrorhub.services.content_sync import ContentSyncService, HorrorGenreStrategy, SyncOptions
from horrorhub.services.filter_compiler import ContentFilters


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["content"])


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


@router.get("", response_model=List[ContentResponse])
async def list_content(
    platform: Optional[List[str]] = Query(None),
    platform_ids: Optional[str] = Query(None, alias="platformIds"),
    platform_mode: Optional[str] = Query(None, alias="platformMode"),
    year: Optional[str] = None,
    min_rating: Optional[str] = Query(None, alias="minRating"),
    min_critics_rating: Optional[str] = Query(None, alias="minCriticsRating"),
    min_users_rating: Optional[str] = Query(None, alias="minUsersRating"),
    search: Optional[str] = None,
    type: Optional[str] = None,
    subgenre: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    include_hidden: Optional[str] = Query(None, alias="includeHidden"),
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Browse content. Every filter is optional and malformed values are ignored."""
    is_admin = bool(user and user.is_admin)
    filters = ContentFilters(
        platform=platform,
        platform_ids=platform_ids,
        platform_mode=platform_mode,
        year=year,
        min_rating=min_rating,
        min_critics_rating=min_critics_rating,
        min_users_rating=min_users_rating,
        search=search,
        type=type,
        subgenre=subgenre,
        sort_by=sort_by,
        # Only admins may widen visibility
        include_hidden=is_admin and _flag(include_hidden),
        include_inactive=is_admin and _flag(include_inactive),
    )
    return content_repository.get_content(db, filters)


@router.get("/{content_id}", response_model=ContentResponse)
async def get_content_item(
    content_id: int,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = content_repository.get_content_item(db, content_id)
    if not item:
        raise HTTPException(status_code=404, detail="Content not found")
    if not (user and user.is_admin) and (item["hidden"] or not item["active"]):
        raise HTTPException(status_code=404, detail="Content not found")
    return item


@router.post("/sync")
async def sync_content(
    request: SyncRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    ledger=Depends(get_ledger),
    client=Depends(get_watchmode_client),
    tvdb=Depends(get_tvdb_client),
    settings=Depends(get_sync_settings),
):
    """Bulk horror sync from Watchmode; blocks until the run completes"""
    logger.info(f"🔄 Content sync requested by {admin.username}")
    service = ContentSyncService(db, client, ledger, strategy=HorrorGenreStrategy(), tvdb=tvdb, settings=settings)
    result = await service.run(SyncOptions(
        titles_to_sync_count=request.titles_to_sync_count,
        max_requests=request.max_requests,
        selected_platforms=request.selected_platforms,
        min_rating=request.min_rating,
        validation_only=request.validation_only,
    ))
    return result.to_dict()
