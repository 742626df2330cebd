"""
Request/response models shared by the routers. JSON uses camelCase keys.
"""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


# --- Subgenres ---

class SubgenreSummary(CamelModel):
    id: int
    name: str
    slug: str


class SubgenreResponse(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubgenreCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    is_active: bool = True
    sort_order: Optional[int] = None


class SubgenreUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class ReorderRequest(CamelModel):
    ordered_ids: List[int] = Field(min_length=1)


class SubgenreIdsRequest(CamelModel):
    subgenre_ids: List[int]


class PrimarySubgenreRequest(CamelModel):
    subgenre_id: Optional[int] = None


# --- Platforms ---

class PlatformResponse(CamelModel):
    id: int
    platform_key: str
    platform_name: str
    watchmode_id: int
    image_url: Optional[str] = None
    is_active: bool = True


class PlatformBadge(CamelModel):
    platform_id: int
    platform_key: str
    platform_name: str
    image_url: str = ""
    web_url: Optional[str] = None
    seasons: Optional[int] = None
    episodes: Optional[int] = None


class ContentPlatformCreate(CamelModel):
    platform_id: int
    web_url: Optional[str] = None
    seasons: Optional[int] = Field(None, ge=0)
    episodes: Optional[int] = Field(None, ge=0)


class ContentPlatformUpdate(CamelModel):
    web_url: Optional[str] = None
    seasons: Optional[int] = Field(None, ge=0)
    episodes: Optional[int] = Field(None, ge=0)


class ContentPlatformResponse(CamelModel):
    id: int
    content_id: int
    platform_id: int
    web_url: Optional[str] = None
    seasons: Optional[int] = None
    episodes: Optional[int] = None


# --- Content ---

class ContentResponse(CamelModel):
    id: int
    title: str
    year: int
    average_rating: Optional[float] = None
    critics_rating: Optional[float] = None
    users_rating: Optional[float] = None
    description: str = ""
    poster_url: str
    primary_subgenre_id: Optional[int] = None
    primary_subgenre: Optional[SubgenreSummary] = None
    subgenres: List[str] = []
    subgenre_details: List[SubgenreSummary] = []
    genres: List[int] = []
    type: str
    seasons: Optional[int] = None
    episodes: Optional[int] = None
    watchmode_id: Optional[int] = None
    imdb_id: Optional[str] = None
    tmdb_id: Optional[int] = None
    original_title: Optional[str] = None
    release_date: Optional[str] = None
    us_rating: Optional[str] = None
    original_language: Optional[str] = None
    runtime_minutes: Optional[int] = None
    end_year: Optional[int] = None
    source_release_date: Optional[str] = None
    watchmode_data: Optional[Any] = None
    hidden: Optional[bool] = False
    active: bool = False
    platforms_badges: List[PlatformBadge] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContentCreate(CamelModel):
    title: str = Field(min_length=1)
    year: int = Field(ge=1870, le=2100)
    average_rating: Optional[float] = Field(None, ge=0, le=10)
    critics_rating: Optional[float] = Field(None, ge=0, le=10)
    users_rating: Optional[float] = Field(None, ge=0, le=10)
    description: str = ""
    poster_url: Optional[str] = None
    type: Literal["movie", "series"] = "movie"
    seasons: Optional[int] = Field(None, ge=0)
    episodes: Optional[int] = Field(None, ge=0)
    genres: List[int] = []
    watchmode_id: Optional[int] = None
    imdb_id: Optional[str] = None
    tmdb_id: Optional[int] = None
    original_title: Optional[str] = None
    release_date: Optional[str] = None
    us_rating: Optional[str] = None
    original_language: Optional[str] = None
    runtime_minutes: Optional[int] = Field(None, ge=0)
    end_year: Optional[int] = None
    source_release_date: Optional[str] = None
    hidden: bool = False
    active: bool = True
    subgenre_ids: List[int] = []
    primary_subgenre_id: Optional[int] = None


class ContentUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    year: Optional[int] = Field(None, ge=1870, le=2100)
    average_rating: Optional[float] = Field(None, ge=0, le=10)
    critics_rating: Optional[float] = Field(None, ge=0, le=10)
    users_rating: Optional[float] = Field(None, ge=0, le=10)
    description: Optional[str] = None
    poster_url: Optional[str] = None
    type: Optional[Literal["movie", "series"]] = None
    seasons: Optional[int] = Field(None, ge=0)
    episodes: Optional[int] = Field(None, ge=0)
    genres: Optional[List[int]] = None
    watchmode_id: Optional[int] = None
    imdb_id: Optional[str] = None
    tmdb_id: Optional[int] = None
    original_title: Optional[str] = None
    release_date: Optional[str] = None
    us_rating: Optional[str] = None
    original_language: Optional[str] = None
    runtime_minutes: Optional[int] = Field(None, ge=0)
    end_year: Optional[int] = None
    source_release_date: Optional[str] = None
    hidden: Optional[bool] = None
    active: Optional[bool] = None


class DecadeCount(CamelModel):
    decade: int
    count: int


# --- Sync / usage ---

class SyncRequest(CamelModel):
    max_requests: Optional[int] = Field(None, ge=1)
    titles_to_sync_count: Optional[int] = Field(None, ge=1)
    selected_platforms: Optional[List[str]] = None
    min_rating: Optional[float] = Field(None, ge=0, le=10)
    validation_only: bool = False


class UsageUpdate(CamelModel):
    requests_used: int = Field(ge=0)


class UsageStatus(CamelModel):
    month: str
    requests_used: int
    monthly_limit: int
    requests_remaining: int
    updated_at: Optional[datetime] = None


# --- Watchlist ---

class WatchlistResponse(CamelModel):
    id: int
    user_id: int
    content_id: int
    created_at: Optional[datetime] = None
