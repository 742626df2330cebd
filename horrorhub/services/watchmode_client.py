"""
Watchmode API v1 Client
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from horrorhub.services.usage_ledger import UsageLedger
from horrorhub.utils.network import create_httpx_client


logger = logging.getLogger(__name__)


class WatchmodeError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def _join(values) -> str:
    return ",".join(str(v) for v in values)


class WatchmodeClient:
    BASE_URL = "https://api.watchmode.com/v1"

    def __init__(self, api_key: str, ledger: Optional[UsageLedger] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not api_key:
            raise WatchmodeError("Watchmode API key is not configured")
        self.api_key = api_key
        self.ledger = ledger
        self.transport = transport
        self.request_count = 0

    async def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        One GET against Watchmode, charged to the monthly ledger.

        A unit is reserved before sending (QuotaExceededError propagates without
        any network traffic), kept once the server answered, and handed back
        when the connection could not be made.
        """
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        query["apiKey"] = self.api_key

        reservation = self.ledger.check_and_reserve(1) if self.ledger else None
        try:
            async with create_httpx_client(base_url=self.BASE_URL, transport=self.transport) as client:
                response = await client.get(endpoint, params=query)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            if self.ledger:
                self.ledger.release(reservation)
            logger.error(f"✗ Watchmode unreachable ({endpoint}): {e}")
            raise WatchmodeError(f"Watchmode API unreachable: {e}") from e
        except httpx.HTTPError as e:
            # Sent but no usable answer; the unit is spent
            self._spent(reservation)
            logger.error(f"✗ Watchmode request failed ({endpoint}): {e}")
            raise WatchmodeError(f"Watchmode request failed: {e}") from e

        self._spent(reservation)
        logger.debug(f"Watchmode {endpoint} -> HTTP {response.status_code}")

        if response.status_code < 200 or response.status_code >= 300:
            raise WatchmodeError(
                f"Watchmode API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise WatchmodeError(f"Watchmode returned invalid JSON for {endpoint}") from e

    def _spent(self, reservation):
        self.request_count += 1
        if self.ledger:
            self.ledger.commit(reservation)

    async def get_sources(self) -> List[dict]:
        return await self._request("/sources/")

    async def get_genres(self) -> List[dict]:
        return await self._request("/genres/")

    async def search_titles(self, genres: Optional[List[int]] = None, source_ids: Optional[List[int]] = None,
                            type: Optional[str] = None, minimum_rating: Optional[float] = None,
                            sort_by: Optional[str] = None, page: Optional[int] = None,
                            limit: Optional[int] = None) -> dict:
        """Returns {"titles": [...], "total_results": n, "total_pages": n}"""
        params = {
            "genres": _join(genres) if genres else None,
            "source_ids": _join(source_ids) if source_ids else None,
            "type": type,
            "sort_by": sort_by,
            "page": page,
            "limit": limit,
        }
        if minimum_rating:
            params["critic_score_low"] = minimum_rating
            params["user_rating_low"] = minimum_rating

        result = await self._request("/list-titles/", params) or {}
        return {
            "titles": result.get("titles") or [],
            "total_results": result.get("total_results", 0),
            "total_pages": result.get("total_pages", 0),
        }

    async def get_title_details(self, title_id: int) -> dict:
        return await self._request(f"/title/{title_id}/details/")

    async def get_title_sources(self, title_id: int) -> List[dict]:
        return await self._request(f"/title/{title_id}/sources/") or []

    async def get_recent_releases(self, source_ids: Optional[List[int]] = None, change_type: Optional[str] = None,
                                  types: Optional[str] = None, days_back: Optional[int] = None,
                                  limit: Optional[int] = None) -> List[dict]:
        params = {
            "source_ids": _join(source_ids) if source_ids else None,
            "change_type": change_type,
            "types": types,
            "days_back": days_back,
            "limit": limit,
        }
        result = await self._request("/releases/", params) or {}
        return result.get("releases") or []

    async def search_by_name(self, name: str, type: Optional[str] = None) -> List[dict]:
        params = {"search_value": name, "search_type": type}
        result = await self._request("/autocomplete-search/", params) or {}
        return result.get("title_results") or []

    async def search_by_imdb_id(self, imdb_id: str) -> List[dict]:
        """Exact id lookup; autocomplete-search only matches names"""
        params = {"search_field": "imdb_id", "search_value": imdb_id}
        result = await self._request("/search/", params) or {}
        return result.get("title_results") or []
