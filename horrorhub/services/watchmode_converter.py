"""
Watchmode title payload -> content row values and platform links
"""
from typing import Iterable, List, Optional

from horrorhub.services.platform_repository import POPULAR_PLATFORMS
from horrorhub.utils.ratings import calculate_average_rating, critic_score_to_rating, to_rating


SERIES_TYPES = ("tv_series", "tv_miniseries", "tv_special", "tv_movie_series")


def content_type_for(watchmode_type: Optional[str]) -> str:
    return "series" if watchmode_type in SERIES_TYPES else "movie"


def convert_title_to_content(details: dict, poster_url: str, source_release_date: Optional[str] = None) -> dict:
    """Build content values from a /title/{id}/details/ payload"""
    content_type = content_type_for(details.get("type"))
    year = details.get("year")
    critics = critic_score_to_rating(details.get("critic_score"))
    users = to_rating(details.get("user_rating"))
    original_title = details.get("original_title")

    return {
        "title": details.get("title"),
        "year": year,
        "critics_rating": critics,
        "users_rating": users,
        "average_rating": calculate_average_rating(critics, users),
        "description": details.get("plot_overview") or f"A {content_type} from {year}",
        "poster_url": poster_url,
        "genres": list(details.get("genres") or []),
        "type": content_type,
        "watchmode_id": details.get("id"),
        "imdb_id": details.get("imdb_id") or None,
        "tmdb_id": details.get("tmdb_id") or None,
        "original_title": original_title if original_title and original_title != details.get("title") else None,
        "release_date": details.get("release_date") or None,
        "us_rating": details.get("us_rating") or None,
        "original_language": details.get("original_language") or None,
        "runtime_minutes": details.get("runtime_minutes") or None,
        "end_year": details.get("end_year") or None,
        "source_release_date": source_release_date,
        "watchmode_data": details,
    }


def filter_platform_sources(sources: Iterable[dict], allowed_ids: Optional[Iterable[int]] = None) -> List[dict]:
    """
    US subscription sources with a link on a tracked platform, one per platform.

    Each entry: {"source_id", "name", "web_url", "seasons", "episodes"}.
    """
    allowed = set(allowed_ids) if allowed_ids is not None else set(POPULAR_PLATFORMS.values())
    links = {}
    for source in sources or []:
        if source.get("type") != "sub" or source.get("region") != "US" or not source.get("web_url"):
            continue
        source_id = source.get("source_id")
        if source_id not in allowed or source_id in links:
            continue
        links[source_id] = {
            "source_id": source_id,
            "name": source.get("name"),
            "web_url": source.get("web_url"),
            "seasons": source.get("seasons"),
            "episodes": source.get("episodes"),
        }
    return list(links.values())


def has_genre(details: dict, genre_id: int) -> bool:
    return genre_id in (details.get("genres") or [])
