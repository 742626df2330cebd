"""
Content storage: filtered listing, CRUD, visibility and batched hydration
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, case, desc, exists, func, or_, select
from sqlalchemy.orm import Session

from horrorhub.models.content import Content, CONTENT_TYPES
from horrorhub.models.platform import Platform, ContentPlatform
from horrorhub.models.subgenre import Subgenre, ContentSubgenre
from horrorhub.models.watchlist import Watchlist
from horrorhub.services.filter_compiler import (
    ContentFilters, FilterSpec, OrderSpec, build_filter_spec,
    Visibility, PlatformIds, PlatformNames, YearEquals, YearBetween,
    MinRating, TextSearch, SubgenreMatch, TypeEquals,
)
from horrorhub.services.platform_repository import get_platforms_for_content_ids
from horrorhub.utils.ratings import calculate_average_rating


logger = logging.getLogger(__name__)

DEFAULT_POSTER_URL = "/posters/default_poster.svg"

CONTENT_FIELDS = (
    "title", "year", "average_rating", "critics_rating", "users_rating", "description",
    "poster_url", "primary_subgenre_id", "genres", "type", "seasons", "episodes",
    "watchmode_id", "imdb_id", "tmdb_id", "original_title", "release_date", "us_rating",
    "original_language", "runtime_minutes", "end_year", "source_release_date",
    "watchmode_data", "hidden", "active",
)


# --- Predicate translation ---

def _linked_subgenre_exists(condition):
    return exists(
        select(ContentSubgenre.content_id)
        .join(Subgenre, Subgenre.id == ContentSubgenre.subgenre_id)
        .where(ContentSubgenre.content_id == Content.id, condition)
    )


def _primary_subgenre_exists(condition):
    return exists(
        select(Subgenre.id).where(Subgenre.id == Content.primary_subgenre_id, condition)
    )


def _platform_exists(condition):
    return exists(
        select(ContentPlatform.id)
        .join(Platform, Platform.id == ContentPlatform.platform_id)
        .where(ContentPlatform.content_id == Content.id, condition)
    )


def predicate_to_clause(predicate):
    """Translate one compiled predicate into a SQLAlchemy boolean clause"""
    if isinstance(predicate, Visibility):
        clauses = []
        if predicate.exclude_hidden:
            clauses.append(or_(Content.hidden.is_(False), Content.hidden.is_(None)))
        if predicate.require_active:
            clauses.append(Content.active.is_(True))
        return and_(*clauses)

    if isinstance(predicate, PlatformIds):
        checks = [
            exists(select(ContentPlatform.id).where(
                ContentPlatform.content_id == Content.id,
                ContentPlatform.platform_id == platform_id,
            ))
            for platform_id in predicate.ids
        ]
        return and_(*checks) if predicate.mode == "all" else or_(*checks)

    if isinstance(predicate, PlatformNames):
        names = list(predicate.names)
        return _platform_exists(or_(Platform.platform_key.in_(names), Platform.platform_name.in_(names)))

    if isinstance(predicate, YearEquals):
        return Content.year == predicate.year

    if isinstance(predicate, YearBetween):
        return and_(Content.year >= predicate.min, Content.year < predicate.max_exclusive)

    if isinstance(predicate, MinRating):
        return getattr(Content, predicate.field) >= predicate.value

    if isinstance(predicate, TextSearch):
        like = f"%{predicate.term}%"
        subgenre_match = or_(Subgenre.name.ilike(like), Subgenre.slug.ilike(like))
        return or_(
            Content.title.ilike(like),
            Content.description.ilike(like),
            _linked_subgenre_exists(subgenre_match),
            _primary_subgenre_exists(subgenre_match),
        )

    if isinstance(predicate, SubgenreMatch):
        subgenre_match = or_(Subgenre.slug == predicate.token, Subgenre.name.ilike(f"%{predicate.token}%"))
        return or_(_linked_subgenre_exists(subgenre_match), _primary_subgenre_exists(subgenre_match))

    if isinstance(predicate, TypeEquals):
        return Content.type == predicate.type

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def order_clauses(order: OrderSpec) -> list:
    """Primary column with NULLs last in both directions, then title ascending"""
    column = getattr(Content, order.column)
    primary = desc(column) if order.direction == "desc" else column.asc()
    return [case((column.is_(None), 1), else_=0), primary, Content.title.asc()]


def apply_filter_spec(query, spec: FilterSpec):
    for predicate in spec.predicates:
        query = query.filter(predicate_to_clause(predicate))
    return query.order_by(*order_clauses(spec.order_by))


# --- Hydration ---

def content_to_dict(item: Content) -> dict:
    data = {"id": item.id}
    for key in CONTENT_FIELDS:
        data[key] = getattr(item, key)
    data["genres"] = data["genres"] or []
    data["created_at"] = item.created_at
    data["updated_at"] = item.updated_at
    return data


def _subgenre_summary(subgenre: Subgenre) -> dict:
    return {"id": subgenre.id, "name": subgenre.name, "slug": subgenre.slug}


def hydrate_content(db: Session, rows: Iterable[Content]) -> List[dict]:
    """
    Attach platform badges, the subgenre tag set and the primary subgenre.

    Runs one query per relationship for the whole result set, never per row.
    """
    rows = list(rows)
    if not rows:
        return []

    content_ids = [row.id for row in rows]
    badges = get_platforms_for_content_ids(db, content_ids)

    linked: Dict[int, List[Subgenre]] = defaultdict(list)
    for content_id, subgenre in (
        db.query(ContentSubgenre.content_id, Subgenre)
        .join(Subgenre, Subgenre.id == ContentSubgenre.subgenre_id)
        .filter(ContentSubgenre.content_id.in_(content_ids))
        .order_by(Subgenre.sort_order, Subgenre.name)
        .all()
    ):
        linked[content_id].append(subgenre)

    primary_ids = {row.primary_subgenre_id for row in rows if row.primary_subgenre_id}
    primaries = {}
    if primary_ids:
        primaries = {s.id: s for s in db.query(Subgenre).filter(Subgenre.id.in_(primary_ids)).all()}

    hydrated = []
    for row in rows:
        data = content_to_dict(row)
        tags = linked.get(row.id, [])
        data["subgenres"] = [s.slug for s in tags]
        data["subgenre_details"] = [_subgenre_summary(s) for s in tags]
        primary = primaries.get(row.primary_subgenre_id)
        data["primary_subgenre"] = _subgenre_summary(primary) if primary else None
        data["platforms_badges"] = badges.get(row.id, [])
        hydrated.append(data)
    return hydrated


# --- Queries ---

def get_content(db: Session, filters: Optional[ContentFilters] = None) -> List[dict]:
    spec = build_filter_spec(filters)
    rows = apply_filter_spec(db.query(Content), spec).all()
    logger.debug(f"Content query matched {len(rows)} rows ({len(spec.predicates)} predicates, {spec.order_by.token})")
    return hydrate_content(db, rows)


def get_content_row(db: Session, content_id: int) -> Optional[Content]:
    return db.query(Content).filter(Content.id == content_id).first()


def get_content_item(db: Session, content_id: int) -> Optional[dict]:
    item = get_content_row(db, content_id)
    if not item:
        return None
    return hydrate_content(db, [item])[0]


def find_by_watchmode_id(db: Session, watchmode_id: int) -> Optional[Content]:
    """Includes hidden and inactive rows"""
    return db.query(Content).filter(Content.watchmode_id == watchmode_id).first()


def find_by_imdb_id(db: Session, imdb_id: str) -> Optional[Content]:
    return db.query(Content).filter(Content.imdb_id == imdb_id).first()


def find_by_title_year(db: Session, title: str, year: Optional[int], tolerance: int = 1) -> Optional[Content]:
    """Case-insensitive exact title within +-tolerance years. Without a year nothing matches."""
    if not title or year is None:
        return None
    return (
        db.query(Content)
        .filter(func.lower(Content.title) == title.strip().lower())
        .filter(Content.year.between(year - tolerance, year + tolerance))
        .first()
    )


def _normalize(data: dict, existing: Optional[Content] = None) -> dict:
    values = {key: value for key, value in data.items() if key in CONTENT_FIELDS}

    content_type = values.get("type", existing.type if existing else "movie")
    if content_type not in CONTENT_TYPES:
        raise ValueError(f"Invalid content type: {content_type!r}")
    if content_type == "movie":
        values["seasons"] = None
        values["episodes"] = None

    rating_keys = {"average_rating", "critics_rating", "users_rating"}
    if values.get("average_rating") is None and (existing is None or rating_keys & values.keys()):
        critics = values.get("critics_rating", existing.critics_rating if existing else None)
        users = values.get("users_rating", existing.users_rating if existing else None)
        values["average_rating"] = calculate_average_rating(critics, users)

    if "poster_url" in values and not values["poster_url"]:
        values["poster_url"] = DEFAULT_POSTER_URL
    return values


def create_content(db: Session, data: dict, commit: bool = True) -> Content:
    values = _normalize(data)
    values.setdefault("poster_url", DEFAULT_POSTER_URL)
    values.setdefault("description", "")
    item = Content(**values)
    db.add(item)
    if commit:
        db.commit()
        db.refresh(item)
    else:
        db.flush()
    return item


def update_content(db: Session, content_id: int, changes: dict) -> Optional[Content]:
    item = get_content_row(db, content_id)
    if not item:
        return None
    for key, value in _normalize(changes, existing=item).items():
        setattr(item, key, value)
    db.commit()
    db.refresh(item)
    return item


def delete_content(db: Session, content_id: int) -> bool:
    item = get_content_row(db, content_id)
    if not item:
        return False
    # Explicit cleanup for engines without enforced ON DELETE CASCADE
    db.query(ContentSubgenre).filter(ContentSubgenre.content_id == content_id).delete()
    db.query(ContentPlatform).filter(ContentPlatform.content_id == content_id).delete()
    db.query(Watchlist).filter(Watchlist.content_id == content_id).delete()
    db.delete(item)
    db.commit()
    return True


def _set_hidden(db: Session, content_id: int, hidden: bool) -> bool:
    item = get_content_row(db, content_id)
    if not item:
        return False
    item.hidden = hidden
    db.commit()
    return True


def hide_content(db: Session, content_id: int) -> bool:
    return _set_hidden(db, content_id, True)


def show_content(db: Session, content_id: int) -> bool:
    return _set_hidden(db, content_id, False)


def get_hidden_content(db: Session) -> List[dict]:
    rows = db.query(Content).filter(Content.hidden.is_(True)).order_by(Content.title).all()
    return hydrate_content(db, rows)


def get_inactive_content(db: Session) -> List[dict]:
    rows = db.query(Content).filter(Content.active.is_(False)).order_by(Content.title).all()
    return hydrate_content(db, rows)


def get_all_content(db: Session) -> List[dict]:
    """Admin listing, no visibility filtering"""
    rows = db.query(Content).order_by(Content.title).all()
    return hydrate_content(db, rows)


def get_newest_streaming(db: Session, limit: int = 5) -> List[dict]:
    rows = (
        db.query(Content)
        .filter(predicate_to_clause(Visibility()))
        .filter(Content.source_release_date.isnot(None))
        .order_by(Content.source_release_date.desc(), Content.title.asc())
        .limit(limit)
        .all()
    )
    return hydrate_content(db, rows)


def count_by_decade(db: Session, platform_key: Optional[str] = None, content_type: Optional[str] = None,
                    subgenre: Optional[str] = None) -> List[dict]:
    """Visible titles per decade, newest decade first"""
    decade = (Content.year - (Content.year % 10)).label("decade")
    query = db.query(decade, func.count(Content.id).label("count")).filter(predicate_to_clause(Visibility()))

    if content_type and content_type != "all":
        query = query.filter(Content.type == content_type)
    if platform_key and platform_key != "all":
        query = query.filter(_platform_exists(Platform.platform_key == platform_key))
    if subgenre and subgenre != "all":
        query = query.filter(_linked_subgenre_exists(Subgenre.slug == subgenre))

    rows = query.group_by(decade).order_by(decade.desc()).all()
    return [{"decade": int(row.decade), "count": int(row.count)} for row in rows]
