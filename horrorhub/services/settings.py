import logging
import os
from typing import Any

from sqlalchemy.orm import Session

from horrorhub.models.config import Config


logger = logging.getLogger(__name__)


def get_setting(db: Session, key: str, default: Any = None) -> Any:
    """Config table value, falling back to the KEY environment variable, then default"""
    config = db.query(Config).filter_by(key=key).first()
    if config and config.value not in (None, ""):
        try:
            return config.typed_value
        except (ValueError, TypeError) as e:
            logger.warning(f"Config '{key}' has invalid {config.data_type} value: {e}")

    env_value = os.getenv(key.upper())
    if env_value:
        return env_value
    return default


def get_int_setting(db: Session, key: str, default: int) -> int:
    value = get_setting(db, key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
