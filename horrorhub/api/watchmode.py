from fastapi import APIRouter, Depends, HTTPException
import logging

from horrorhub.api.deps import get_ledger, get_watchmode_client, require_admin, require_user
from horrorhub.api.schemas import UsageStatus
from horrorhub.services.usage_ledger import QuotaExceededError
from horrorhub.services.watchmode_client import WatchmodeError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/watchmode", tags=["watchmode"])


@router.get("/status", response_model=UsageStatus, dependencies=[Depends(require_user)])
async def watchmode_status(ledger=Depends(get_ledger)):
    return ledger.status()


@router.get("/sources", dependencies=[Depends(require_admin)])
async def watchmode_sources(client=Depends(get_watchmode_client)):
    try:
        return await client.get_sources()
    except QuotaExceededError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except WatchmodeError as e:
        raise HTTPException(status_code=502, detail=str(e))
