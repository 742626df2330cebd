from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import logging
import os


# ✅ Setup Logging FIRST
from horrorhub.utils.logger import setup_logging, change_log_level_runtime
from horrorhub.database import SessionLocal
from horrorhub.models.config import Config
from sqlalchemy.exc import SQLAlchemyError

from horrorhub import __version__


setup_logging(os.getenv("LOG_LEVEL", "INFO"))


def get_log_level_from_db():
    """log_level from the config table, INFO if unreadable"""
    db = SessionLocal()
    try:
        config = db.query(Config).filter_by(key="log_level").first()
        if config and config.value:
            return config.value.upper()
    except SQLAlchemyError as e:
        logging.warning(f"Could not read log_level from DB: {e}")
    finally:
        db.close()
    return "INFO"


# Services
from horrorhub.database import init_db
from horrorhub.services.scheduler import start_scheduler, stop_scheduler
from horrorhub.startup import init_config, init_admin_user


# API Routes
from horrorhub.api import (
    admin, admin_content, admin_subgenres, admin_sync, catalog, content, watchlist, watchmode,
)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting HorrorHub...")
    try:
        init_db()
        logger.info("✓ Database initialized")
    except Exception as e:
        logger.error(f"✗ Database init failed: {e}")
        raise

    try:
        init_config()
        init_admin_user()
    except SQLAlchemyError as e:
        logger.error(f"✗ Config init failed: {e}")

    change_log_level_runtime(get_log_level_from_db())

    try:
        start_scheduler()
    except Exception as e:
        logger.error(f"✗ Scheduler init failed: {e}")

    yield

    # Shutdown
    logger.info("Shutting down HorrorHub...")
    stop_scheduler()


app = FastAPI(
    title="HorrorHub",
    description="Curated catalog of horror movies and series on streaming platforms",
    version=__version__,
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"✗ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "error": str(exc)},
    )


# Routes
app.include_router(content.router)
app.include_router(catalog.router)
app.include_router(watchlist.router)
app.include_router(watchmode.router)
app.include_router(admin_content.router)
app.include_router(admin_subgenres.router)
app.include_router(admin_sync.router)
app.include_router(admin.router)


# Poster placeholder and other static assets (optional)
posters_dir = os.getenv("POSTERS_DIR", "posters")
if os.path.isdir(posters_dir):
    app.mount("/posters", StaticFiles(directory=posters_dir), name="posters")
else:
    logger.warning(f"Static posters not available: {posters_dir} missing")


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": __version__}


@app.get("/")
async def root():
    return JSONResponse({
        "app": "HorrorHub",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
