from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging

from horrorhub.api.deps import require_admin
from horrorhub.database import get_db
from horrorhub.models.config import Config
from horrorhub.utils.logger import LOG_FILE_NAME, change_log_level_runtime, get_log_dir


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

SECRET_MASK = "********"


# Pydantic Schemas
class ConfigCreate(BaseModel):
    key: str
    value: str
    module: str = "core"
    secret: bool = False
    data_type: str = "string"
    description: Optional[str] = None


class ConfigUpdate(BaseModel):
    value: str


class ConfigResponse(BaseModel):
    id: int
    key: str
    value: Optional[str]
    module: str
    secret: bool
    data_type: str
    description: Optional[str]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


def _masked(config: Config) -> ConfigResponse:
    response = ConfigResponse.model_validate(config)
    if config.secret and config.value:
        response.value = SECRET_MASK
    return response


@router.get("/config", response_model=List[ConfigResponse])
async def get_all_config(db: Session = Depends(get_db)):
    """All config rows. Secret values are masked."""
    configs = db.query(Config).order_by(Config.module, Config.key).all()
    return [_masked(c) for c in configs]


@router.get("/config/{key}", response_model=ConfigResponse)
async def get_config(key: str, db: Session = Depends(get_db)):
    config = db.query(Config).filter(Config.key == key).first()
    if not config:
        raise HTTPException(status_code=404, detail=f"Config key '{key}' not found")
    return _masked(config)


@router.post("/config", response_model=ConfigResponse, status_code=201)
async def create_config(config: ConfigCreate, db: Session = Depends(get_db)):
    existing = db.query(Config).filter(Config.key == config.key).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Config key '{config.key}' already exists")

    new_config = Config(**config.model_dump())
    db.add(new_config)
    db.commit()
    db.refresh(new_config)
    logger.info(f"✓ Added config: {new_config.key}")
    return _masked(new_config)


@router.put("/config/{key}", response_model=ConfigResponse)
async def update_config(key: str, update: ConfigUpdate, db: Session = Depends(get_db)):
    """Value-only update"""
    config = db.query(Config).filter_by(key=key).first()
    if not config:
        raise HTTPException(status_code=404, detail=f"Config key '{key}' not found")

    config.value = update.value
    config.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(config)

    # Log level changes apply immediately
    if key == "log_level":
        if change_log_level_runtime(update.value):
            logger.info(f"Log-Level updated to {update.value}")
        else:
            logger.warning(f"Failed to update log level to {update.value}")

    return _masked(config)


@router.delete("/config/{key}")
async def delete_config(key: str, db: Session = Depends(get_db)):
    config = db.query(Config).filter(Config.key == key).first()
    if not config:
        raise HTTPException(status_code=404, detail=f"Config key '{key}' not found")

    db.delete(config)
    db.commit()
    return {"message": f"Config key '{key}' deleted"}


@router.get("/logs")
async def get_logs(lines: int = Query(100, ge=1, le=1000)):
    """Most recent log lines across the rotated log files"""
    log_dir = get_log_dir()
    log_files = sorted(log_dir.glob(f"{LOG_FILE_NAME}*"))
    if not log_files:
        return {"logs": [], "message": "No log files found"}

    all_log_lines = []
    for log_file in log_files:
        try:
            with open(log_file, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        timestamp = datetime.strptime(line.split(" - ")[0], "%Y-%m-%d %H:%M:%S")
                    except (ValueError, IndexError):
                        timestamp = datetime.min
                    all_log_lines.append((timestamp, line))
        except OSError as e:
            logger.warning(f"Failed to read log file {log_file}: {e}")

    # Stable sort keeps file order for lines sharing a timestamp
    all_log_lines.sort(key=lambda x: x[0], reverse=True)
    logs = [entry[1] for entry in all_log_lines[:lines]]

    return {"logs": logs, "total_lines": len(all_log_lines), "returned_lines": len(logs)}
