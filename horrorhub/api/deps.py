from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from horrorhub.database import get_db
from horrorhub.models.user import User
from horrorhub.services.clients import build_ledger, build_tvdb_client, build_watchmode_client
from horrorhub.services.content_sync import SyncSettings
from horrorhub.services.tvdb_client import TVDBClient
from horrorhub.services.usage_ledger import UsageLedger
from horrorhub.services.watchmode_client import WatchmodeClient, WatchmodeError


def get_current_user(x_api_key: Optional[str] = Header(None), db: Session = Depends(get_db)) -> Optional[User]:
    """User identified by the X-Api-Key header, None for anonymous callers"""
    if not x_api_key:
        return None
    return db.query(User).filter(User.api_key == x_api_key).first()


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if not user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_ledger(db: Session = Depends(get_db)) -> UsageLedger:
    return build_ledger(db)


def get_watchmode_client(db: Session = Depends(get_db), ledger: UsageLedger = Depends(get_ledger)) -> WatchmodeClient:
    try:
        return build_watchmode_client(db, ledger)
    except WatchmodeError as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_tvdb_client(db: Session = Depends(get_db)) -> Optional[TVDBClient]:
    return build_tvdb_client(db)


def get_sync_settings(db: Session = Depends(get_db)) -> SyncSettings:
    return SyncSettings.from_config(db)
