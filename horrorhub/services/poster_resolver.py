"""
Poster selection: TVDB artwork, then the catalog poster, then the placeholder
"""
import asyncio
import logging
import re
from typing import Iterable, List, Optional, Tuple

import aiohttp

from horrorhub.services.content_repository import DEFAULT_POSTER_URL
from horrorhub.services.tvdb_client import TVDBClient, TVDBError


logger = logging.getLogger(__name__)

POSTER_SIZE = "w342"
_SIZE_TOKEN = re.compile(r"w\d+")


def normalize_poster_url(url: Optional[str], size: str = POSTER_SIZE) -> str:
    """Swap the first size token ("w185", "w500", ...) for the preferred one"""
    if not url:
        return ""
    return _SIZE_TOKEN.sub(size, url, count=1)


def _parse_year(value) -> Optional[int]:
    try:
        return int(str(value)[:4])
    except (TypeError, ValueError):
        return None


def titles_match(candidate: str, title: str) -> bool:
    candidate = (candidate or "").strip().lower()
    title = (title or "").strip().lower()
    if not candidate or not title:
        return False
    return candidate == title or title in candidate or candidate in title


def pick_tvdb_match(results: Iterable[dict], title: str, year: Optional[int]) -> Optional[dict]:
    """First search hit within one year of the title whose name contains, or is contained in, ours"""
    for result in results or []:
        result_year = _parse_year(result.get("year"))
        if year is None or result_year is None or abs(result_year - year) > 1:
            continue
        if titles_match(result.get("name"), title):
            return result
    return None


async def find_tvdb_poster(tvdb: TVDBClient, title: str, year: Optional[int], content_type: str = "movie",
                           imdb_id: Optional[str] = None) -> str:
    """TVDB poster by IMDB id, else by fuzzy name+year search. Empty string if none."""
    try:
        if imdb_id:
            if content_type == "series":
                record = await tvdb.get_series_by_remote_id(imdb_id)
            else:
                record = await tvdb.get_movie_by_remote_id(imdb_id)
            if record and record.get("image"):
                return tvdb.get_poster_url(record["image"])

        results = await tvdb.search_content(title, content_type)
        match = pick_tvdb_match(results, title, year)
        if match and match.get("image_url"):
            return tvdb.get_poster_url(match["image_url"])
    except (TVDBError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"TVDB poster lookup failed for '{title}': {e}")
    return ""


async def resolve_poster_url(tvdb: Optional[TVDBClient], title: str, year: Optional[int],
                             content_type: str = "movie", imdb_id: Optional[str] = None,
                             catalog_poster: Optional[str] = None,
                             default_poster: str = DEFAULT_POSTER_URL) -> Tuple[str, str]:
    """
    Returns (poster_url, source) where source is "tvdb", "watchmode" or "default".
    The URL is never empty.
    """
    if tvdb:
        url = await find_tvdb_poster(tvdb, title, year, content_type, imdb_id)
        if url:
            return url, "tvdb"

    url = normalize_poster_url(catalog_poster)
    if url:
        return url, "watchmode"

    return default_poster or DEFAULT_POSTER_URL, "default"


def title_variants(title: str, year: Optional[int], original_title: Optional[str] = None) -> List[str]:
    variants = [title, f"{title} ({year})" if year else None]
    if original_title and original_title != title:
        variants += [original_title, f"{original_title} ({year})" if year else None]
    return [v for v in dict.fromkeys(variants) if v]


async def find_backfill_poster(tvdb: TVDBClient, title: str, year: Optional[int],
                               original_title: Optional[str] = None) -> str:
    """Poster for an existing row: exact (case-insensitive) name hit over a few title spellings"""
    wanted = {t.lower() for t in (title, original_title) if t}
    for variant in title_variants(title, year, original_title):
        results = await tvdb.search_content(variant)
        for result in results:
            if result.get("image_url") and (result.get("name") or "").lower() in wanted:
                return tvdb.get_poster_url(result["image_url"])
    return ""
