import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from horrorhub.models.platform import Platform, ContentPlatform


logger = logging.getLogger(__name__)

# Watchmode source ids of the services the catalog tracks
POPULAR_PLATFORMS = {
    "Netflix": 203,
    "Amazon Prime Video": 26,
    "Hulu": 157,
    "HBO Max": 384,
    "Shudder": 99,
    "Tubi": 283,
}


class UnknownPlatformError(ValueError):
    pass


def make_platform_key(name: str) -> str:
    """'Amazon Prime Video' -> 'amazon_prime_video'"""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def platform_name_for_source_id(source_id: int) -> Optional[str]:
    for name, watchmode_id in POPULAR_PLATFORMS.items():
        if watchmode_id == source_id:
            return name
    return None


def list_platforms(db: Session, include_inactive: bool = False, q: Optional[str] = None) -> List[Platform]:
    query = db.query(Platform)
    if not include_inactive:
        query = query.filter(Platform.is_active.is_(True))
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Platform.platform_name.ilike(like), Platform.platform_key.ilike(like)))
    return query.order_by(Platform.platform_name).all()


def get_platform(db: Session, platform_id: int) -> Optional[Platform]:
    return db.query(Platform).filter(Platform.id == platform_id).first()


def get_platform_by_key(db: Session, platform_key: str) -> Optional[Platform]:
    return db.query(Platform).filter(Platform.platform_key == platform_key).first()


def get_platform_by_watchmode_id(db: Session, source_id: int) -> Optional[Platform]:
    return db.query(Platform).filter(Platform.watchmode_id == source_id).first()


def get_or_create_platform_by_watchmode_id(db: Session, source_id: int, name: Optional[str] = None) -> Platform:
    """
    Look up a platform by its Watchmode source id, creating it on first sight.

    The name comes from the source payload when given, otherwise from the known
    platform table. Raises UnknownPlatformError when neither is available.
    """
    platform = get_platform_by_watchmode_id(db, source_id)
    if platform:
        return platform

    name = name or platform_name_for_source_id(source_id)
    if not name:
        raise UnknownPlatformError(f"Unknown Watchmode source id {source_id}")

    platform = Platform(
        platform_key=make_platform_key(name),
        platform_name=name,
        watchmode_id=source_id,
        is_active=True,
    )
    db.add(platform)
    try:
        db.commit()
    except IntegrityError:
        # Created concurrently, or the key is taken by another source id
        db.rollback()
        existing = get_platform_by_watchmode_id(db, source_id)
        if existing:
            return existing
        raise
    db.refresh(platform)
    logger.info(f"✓ Created platform {platform.platform_key} (Watchmode {source_id})")
    return platform


# --- Content links ---

def get_content_platform(db: Session, content_id: int, platform_id: int) -> Optional[ContentPlatform]:
    return db.query(ContentPlatform).filter_by(content_id=content_id, platform_id=platform_id).first()


def create_content_platform(db: Session, content_id: int, platform_id: int, web_url: Optional[str] = None,
                            seasons: Optional[int] = None, episodes: Optional[int] = None) -> ContentPlatform:
    """Insert the link, or update the existing one keeping values not supplied"""
    link = get_content_platform(db, content_id, platform_id)
    if link:
        link.web_url = web_url if web_url is not None else link.web_url
        link.seasons = seasons if seasons is not None else link.seasons
        link.episodes = episodes if episodes is not None else link.episodes
    else:
        link = ContentPlatform(
            content_id=content_id,
            platform_id=platform_id,
            web_url=web_url,
            seasons=seasons,
            episodes=episodes,
        )
        db.add(link)
    db.commit()
    db.refresh(link)
    return link


def update_content_platform(db: Session, content_id: int, platform_id: int, **changes) -> Optional[ContentPlatform]:
    link = get_content_platform(db, content_id, platform_id)
    if not link:
        return None
    for key in ("web_url", "seasons", "episodes"):
        if key in changes:
            setattr(link, key, changes[key])
    db.commit()
    db.refresh(link)
    return link


def delete_content_platform(db: Session, content_id: int, platform_id: int) -> bool:
    deleted = db.query(ContentPlatform).filter_by(content_id=content_id, platform_id=platform_id).delete()
    db.commit()
    return deleted > 0


def _badge(link: ContentPlatform, platform: Platform) -> dict:
    return {
        "platform_id": platform.id,
        "platform_key": platform.platform_key,
        "platform_name": platform.platform_name,
        "image_url": platform.image_url or "",
        "web_url": link.web_url,
        "seasons": link.seasons,
        "episodes": link.episodes,
    }


def get_platforms_for_content_ids(db: Session, content_ids: Iterable[int]) -> Dict[int, List[dict]]:
    """Platform badges for many content rows in one query"""
    content_ids = list(set(content_ids))
    badges: Dict[int, List[dict]] = defaultdict(list)
    if not content_ids:
        return badges

    rows = (
        db.query(ContentPlatform, Platform)
        .join(Platform, ContentPlatform.platform_id == Platform.id)
        .filter(ContentPlatform.content_id.in_(content_ids))
        .order_by(Platform.platform_name)
        .all()
    )
    for link, platform in rows:
        badges[link.content_id].append(_badge(link, platform))
    return badges


def get_platforms_for_content_id(db: Session, content_id: int) -> List[dict]:
    return get_platforms_for_content_ids(db, [content_id]).get(content_id, [])
