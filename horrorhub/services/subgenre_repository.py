import logging
import re
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from horrorhub.models.content import Content
from horrorhub.models.subgenre import Subgenre, ContentSubgenre


logger = logging.getLogger(__name__)

SUBGENRE_FIELDS = ("name", "slug", "description", "is_active", "sort_order")


class ReorderError(ValueError):
    pass


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def get_subgenres(db: Session, active_only: bool = False) -> List[Subgenre]:
    query = db.query(Subgenre)
    if active_only:
        query = query.filter(Subgenre.is_active.is_(True))
    return query.order_by(Subgenre.sort_order, Subgenre.name).all()


def get_subgenre(db: Session, subgenre_id: int) -> Optional[Subgenre]:
    return db.query(Subgenre).filter(Subgenre.id == subgenre_id).first()


def get_subgenre_by_slug(db: Session, slug: str) -> Optional[Subgenre]:
    return db.query(Subgenre).filter(Subgenre.slug == slug).first()


def create_subgenre(db: Session, name: str, slug: Optional[str] = None, description: Optional[str] = None,
                    is_active: bool = True, sort_order: Optional[int] = None) -> Subgenre:
    """New subgenres go to the end of the display order unless told otherwise"""
    if sort_order is None:
        last = db.query(Subgenre).order_by(Subgenre.sort_order.desc()).first()
        sort_order = (last.sort_order or 0) + 1 if last else 1

    subgenre = Subgenre(
        name=name,
        slug=slug or slugify(name),
        description=description,
        is_active=is_active,
        sort_order=sort_order,
    )
    db.add(subgenre)
    db.commit()
    db.refresh(subgenre)
    logger.info(f"✓ Created subgenre {subgenre.slug}")
    return subgenre


def update_subgenre(db: Session, subgenre_id: int, **changes) -> Optional[Subgenre]:
    subgenre = get_subgenre(db, subgenre_id)
    if not subgenre:
        return None
    for key, value in changes.items():
        if key in SUBGENRE_FIELDS:
            setattr(subgenre, key, value)
    db.commit()
    db.refresh(subgenre)
    return subgenre


def delete_subgenre(db: Session, subgenre_id: int) -> bool:
    subgenre = get_subgenre(db, subgenre_id)
    if not subgenre:
        return False
    # SQLite does not enforce ON DELETE, so clear references explicitly
    db.query(ContentSubgenre).filter(ContentSubgenre.subgenre_id == subgenre_id).delete()
    db.query(Content).filter(Content.primary_subgenre_id == subgenre_id).update(
        {Content.primary_subgenre_id: None}, synchronize_session=False
    )
    db.delete(subgenre)
    db.commit()
    return True


def reorder_subgenres(db: Session, ordered_ids: List[int]) -> None:
    """
    Rewrite sort_order to 1..N following ordered_ids, all or nothing.

    Raises ReorderError for duplicates or ids that do not exist.
    """
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ReorderError("orderedIds contains duplicates")

    try:
        subgenres = {s.id: s for s in db.query(Subgenre).filter(Subgenre.id.in_(ordered_ids)).all()}
        missing = [sid for sid in ordered_ids if sid not in subgenres]
        if missing:
            raise ReorderError(f"Unknown subgenre ids: {missing}")

        for position, subgenre_id in enumerate(ordered_ids):
            subgenres[subgenre_id].sort_order = position + 1
        db.commit()
    except (ReorderError, SQLAlchemyError):
        db.rollback()
        raise
    logger.info(f"✓ Reordered {len(ordered_ids)} subgenres")


# --- Content <-> subgenre set ---

def get_subgenre_ids_for_content(db: Session, content_id: int) -> List[int]:
    rows = db.query(ContentSubgenre.subgenre_id).filter(ContentSubgenre.content_id == content_id).all()
    return [row[0] for row in rows]


def get_subgenres_for_content(db: Session, content_id: int) -> List[Subgenre]:
    return (
        db.query(Subgenre)
        .join(ContentSubgenre, ContentSubgenre.subgenre_id == Subgenre.id)
        .filter(ContentSubgenre.content_id == content_id)
        .order_by(Subgenre.sort_order, Subgenre.name)
        .all()
    )


def _existing_subgenre_ids(db: Session, subgenre_ids: Iterable[int]) -> List[int]:
    subgenre_ids = list(dict.fromkeys(subgenre_ids))
    if not subgenre_ids:
        return []
    found = {row[0] for row in db.query(Subgenre.id).filter(Subgenre.id.in_(subgenre_ids)).all()}
    unknown = [sid for sid in subgenre_ids if sid not in found]
    if unknown:
        raise LookupError(f"Unknown subgenre ids: {unknown}")
    return subgenre_ids


def _add_links(db: Session, content_id: int, subgenre_ids: Iterable[int]):
    current = set(get_subgenre_ids_for_content(db, content_id))
    for subgenre_id in subgenre_ids:
        if subgenre_id not in current:
            db.add(ContentSubgenre(content_id=content_id, subgenre_id=subgenre_id))
            current.add(subgenre_id)


def _clear_primary_if_removed(db: Session, content_id: int, removed_ids: Iterable[int]):
    content = db.query(Content).filter(Content.id == content_id).first()
    if content and content.primary_subgenre_id in set(removed_ids):
        content.primary_subgenre_id = None


def add_subgenres_to_content(db: Session, content_id: int, subgenre_ids: Iterable[int]) -> List[int]:
    subgenre_ids = _existing_subgenre_ids(db, subgenre_ids)
    _add_links(db, content_id, subgenre_ids)
    db.commit()
    return get_subgenre_ids_for_content(db, content_id)


def remove_subgenres_from_content(db: Session, content_id: int, subgenre_ids: Iterable[int]) -> List[int]:
    subgenre_ids = list(subgenre_ids)
    if subgenre_ids:
        db.query(ContentSubgenre).filter(
            ContentSubgenre.content_id == content_id,
            ContentSubgenre.subgenre_id.in_(subgenre_ids),
        ).delete(synchronize_session=False)
        _clear_primary_if_removed(db, content_id, subgenre_ids)
        db.commit()
    return get_subgenre_ids_for_content(db, content_id)


def replace_content_subgenres(db: Session, content_id: int, subgenre_ids: Iterable[int]) -> List[int]:
    subgenre_ids = _existing_subgenre_ids(db, subgenre_ids)
    removed = set(get_subgenre_ids_for_content(db, content_id)) - set(subgenre_ids)
    if removed:
        db.query(ContentSubgenre).filter(
            ContentSubgenre.content_id == content_id,
            ContentSubgenre.subgenre_id.in_(removed),
        ).delete(synchronize_session=False)
        _clear_primary_if_removed(db, content_id, removed)
    _add_links(db, content_id, subgenre_ids)
    db.commit()
    return get_subgenre_ids_for_content(db, content_id)


def set_primary_subgenre(db: Session, content_id: int, subgenre_id: Optional[int],
                         ensure_in_join: bool = True) -> Optional[Content]:
    """Set (or clear with None) the primary subgenre, keeping it inside the tag set"""
    content = db.query(Content).filter(Content.id == content_id).first()
    if not content:
        return None
    if subgenre_id is not None:
        _existing_subgenre_ids(db, [subgenre_id])

    content.primary_subgenre_id = subgenre_id
    if ensure_in_join and subgenre_id is not None:
        _add_links(db, content_id, [subgenre_id])
    db.commit()
    db.refresh(content)
    return content
