import logging
import os

from horrorhub.database import SessionLocal
from horrorhub.models.config import Config
from horrorhub.models.user import User


logger = logging.getLogger(__name__)

DEFAULT_CONFIGS = [
    # Watchmode
    ("watchmode_api_key", "", "watchmode", True, "string", "Watchmode API key"),
    ("watchmode_monthly_limit", "1000", "watchmode", False, "int", "Watchmode requests allowed per calendar month"),
    ("horror_genre_id", "11", "watchmode", False, "int", "Watchmode genre id for horror"),
    ("hidden_genre_id", "33", "watchmode", False, "int",
     "Watchmode genre id that marks false-positive horror matches; synced titles with it start hidden"),

    # TVDB
    ("tvdb_api_key", "", "tvdb", True, "string", "TVDB API key for poster artwork"),
    ("tvdb_pin", "", "tvdb", True, "string", "TVDB subscriber PIN (user-supported keys only)"),

    # Sync
    ("default_poster_url", "/posters/default_poster.svg", "sync", False, "string", "Placeholder poster path"),
    ("scheduler_enabled", "false", "sync", False, "bool", "Run the new-to-streaming sync daily"),
    ("new_to_streaming_sync_hour", "4", "sync", False, "int", "Hour (0-23) of the daily new-to-streaming sync"),

    # System
    ("log_level", "INFO", "system", False, "string", "Log-Level (DEBUG, INFO, WARNING, ERROR)"),
]


def init_config():
    """Seed config rows that do not exist yet"""
    db = SessionLocal()
    try:
        for key, value, module, secret, data_type, description in DEFAULT_CONFIGS:
            existing = db.query(Config).filter_by(key=key).first()
            if not existing:
                db.add(Config(
                    key=key,
                    value=value,
                    module=module,
                    secret=secret,
                    data_type=data_type,
                    description=description,
                ))
                logger.info(f"✓ Added config: {key}")
        db.commit()
    finally:
        db.close()
    logger.info("✅ Base config initialized")


def init_admin_user():
    """Create (or re-key) the admin user from ADMIN_API_KEY"""
    api_key = os.getenv("ADMIN_API_KEY")
    if not api_key:
        logger.info("ADMIN_API_KEY not set, skipping admin bootstrap")
        return

    db = SessionLocal()
    try:
        admin = db.query(User).filter_by(username="admin").first()
        if not admin:
            db.add(User(username="admin", role="admin", api_key=api_key))
            logger.info("✓ Created admin user")
        elif admin.api_key != api_key or admin.role != "admin":
            admin.api_key = api_key
            admin.role = "admin"
            logger.info("✓ Updated admin user")
        db.commit()
    finally:
        db.close()
