from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List
import logging

from horrorhub.api.deps import require_user
from horrorhub.api.schemas import ContentResponse, WatchlistResponse
from horrorhub.database import get_db
from horrorhub.models.content import Content
from horrorhub.models.user import User
from horrorhub.models.watchlist import Watchlist
from horrorhub.services import content_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/watchlist", tags=["watchlist"])


@router.get("", response_model=List[ContentResponse])
async def get_watchlist(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Watchlisted titles, most recently added first"""
    rows = (
        db.query(Content)
        .join(Watchlist, Watchlist.content_id == Content.id)
        .filter(Watchlist.user_id == user.id)
        .order_by(Watchlist.created_at.desc(), Watchlist.id.desc())
        .all()
    )
    return content_repository.hydrate_content(db, rows)


@router.post("/{content_id}", response_model=WatchlistResponse, status_code=201)
async def add_to_watchlist(content_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    if not content_repository.get_content_row(db, content_id):
        raise HTTPException(status_code=404, detail="Content not found")

    entry = Watchlist(user_id=user.id, content_id=content_id)
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Already in watchlist")
    db.refresh(entry)
    return entry


@router.delete("/{content_id}", status_code=204)
async def remove_from_watchlist(content_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    deleted = db.query(Watchlist).filter_by(user_id=user.id, content_id=content_id).delete()
    db.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="Not in watchlist")
    return Response(status_code=204)


@router.get("/{content_id}/check")
async def check_watchlist(content_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    exists = db.query(Watchlist).filter_by(user_id=user.id, content_id=content_id).first() is not None
    return {"inWatchlist": exists}
