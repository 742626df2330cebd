from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from horrorhub.api.deps import get_ledger, get_sync_settings, get_tvdb_client, get_watchmode_client, require_admin
from horrorhub.api.schemas import UsageStatus, UsageUpdate
from horrorhub.database import get_db
from horrorhub.services.content_sync import ContentSyncService, NewToStreamingStrategy, SyncOptions, backfill_posters
from horrorhub.services.usage_ledger import QuotaExceededError
from horrorhub.services.watchmode_client import WatchmodeError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-sync"], dependencies=[Depends(require_admin)])


@router.post("/sync-new-to-streaming")
async def sync_new_to_streaming(
    db: Session = Depends(get_db),
    ledger=Depends(get_ledger),
    client=Depends(get_watchmode_client),
    tvdb=Depends(get_tvdb_client),
    settings=Depends(get_sync_settings),
):
    service = ContentSyncService(db, client, ledger, strategy=NewToStreamingStrategy(), tvdb=tvdb, settings=settings)
    result = await service.run(SyncOptions())
    return result.to_dict()


@router.post("/sync-posters")
async def sync_posters(
    db: Session = Depends(get_db),
    tvdb=Depends(get_tvdb_client),
    settings=Depends(get_sync_settings),
):
    if not tvdb:
        raise HTTPException(status_code=500, detail="TVDB API key not configured")
    return await backfill_posters(db, tvdb, settings.default_poster_url)


@router.put("/watchmode/usage", response_model=UsageStatus)
async def set_watchmode_usage(payload: UsageUpdate, ledger=Depends(get_ledger)):
    """Manual override of this month's request counter"""
    if payload.requests_used > ledger.monthly_limit:
        raise HTTPException(
            status_code=400,
            detail=f"requestsUsed must be between 0 and {ledger.monthly_limit}",
        )
    ledger.set_usage(payload.requests_used)
    return ledger.status()


@router.get("/watchmode/genres")
async def get_watchmode_genres(client=Depends(get_watchmode_client)):
    try:
        return await client.get_genres()
    except QuotaExceededError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except WatchmodeError as e:
        raise HTTPException(status_code=502, detail=str(e))
