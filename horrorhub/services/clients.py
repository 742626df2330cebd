"""
Builds the external clients and the sync service from stored configuration
"""
from typing import Optional

from sqlalchemy.orm import Session

from horrorhub.services.content_sync import ContentSyncService, SyncSettings, SyncStrategy
from horrorhub.services.settings import get_int_setting, get_setting
from horrorhub.services.tvdb_client import TVDBClient
from horrorhub.services.usage_ledger import DEFAULT_MONTHLY_LIMIT, UsageLedger
from horrorhub.services.watchmode_client import WatchmodeClient


def build_ledger(db: Session) -> UsageLedger:
    return UsageLedger(db, monthly_limit=get_int_setting(db, "watchmode_monthly_limit", DEFAULT_MONTHLY_LIMIT))


def build_watchmode_client(db: Session, ledger: Optional[UsageLedger] = None) -> WatchmodeClient:
    """Raises WatchmodeError when no API key is configured"""
    return WatchmodeClient(get_setting(db, "watchmode_api_key", ""), ledger or build_ledger(db))


def build_tvdb_client(db: Session) -> Optional[TVDBClient]:
    """None without a TVDB key; poster lookups then skip TVDB"""
    api_key = get_setting(db, "tvdb_api_key", "")
    if not api_key:
        return None
    return TVDBClient(api_key, pin=get_setting(db, "tvdb_pin", None) or None)


def build_sync_service(db: Session, strategy: SyncStrategy) -> ContentSyncService:
    ledger = build_ledger(db)
    return ContentSyncService(
        db,
        build_watchmode_client(db, ledger),
        ledger,
        strategy=strategy,
        tvdb=build_tvdb_client(db),
        settings=SyncSettings.from_config(db),
    )
