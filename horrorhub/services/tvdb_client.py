"""
TVDB API v4 Client (artwork lookups)
"""
import logging
from typing import Dict, List, Optional, Tuple
from datetime import datetime, timedelta

import aiohttp

from horrorhub.utils.network import create_aiohttp_session


logger = logging.getLogger(__name__)


class TVDBError(Exception):
    pass


class TVDBClient:
    BASE_URL = "https://api4.thetvdb.com/v4"
    IMAGE_BASE_URL = "https://artworks.thetvdb.com/banners/"
    TOKEN_TTL = timedelta(days=29)

    # api_key -> (token, expires); shared by every client using the same key
    _tokens: Dict[str, Tuple[str, datetime]] = {}

    def __init__(self, api_key: str, pin: Optional[str] = None):
        if not api_key:
            raise TVDBError("TVDB API key is not configured")
        self.api_key = api_key
        self.pin = pin
        self.request_count = 0

    @property
    def access_token(self) -> Optional[str]:
        cached = self._tokens.get(self.api_key)
        if cached and datetime.now() < cached[1]:
            return cached[0]
        return None

    async def _get_token(self, session: aiohttp.ClientSession) -> str:
        token = self.access_token
        if token:
            return token

        payload = {'apikey': self.api_key}
        if self.pin:
            payload['pin'] = self.pin

        async with session.post(f"{self.BASE_URL}/login", json=payload) as resp:
            if resp.status != 200:
                raise TVDBError(f"TVDB authentication failed: HTTP {resp.status}")
            result = await resp.json()

        token = (result.get('data') or {}).get('token')
        if not token:
            raise TVDBError("TVDB authentication returned no token")
        self._tokens[self.api_key] = (token, datetime.now() + self.TOKEN_TTL)
        logger.info("✓ TVDB token acquired")
        return token

    async def _request(self, endpoint: str, params: Optional[dict] = None):
        params = {k: v for k, v in (params or {}).items() if v}
        async with create_aiohttp_session() as session:
            token = await self._get_token(session)
            headers = {'Authorization': f'Bearer {token}'}
            self.request_count += 1
            async with session.get(f"{self.BASE_URL}{endpoint}", params=params, headers=headers) as resp:
                if resp.status != 200:
                    raise TVDBError(f"TVDB API error: HTTP {resp.status} for {endpoint}")
                return await resp.json()

    async def search_content(self, query: str, type: Optional[str] = None) -> List[dict]:
        """Name search; type is "movie" or "series" """
        try:
            result = await self._request("/search", {'query': query, 'type': type})
            return result.get('data') or []
        except (aiohttp.ClientError, TVDBError) as e:
            logger.error(f"TVDB search failed for '{query}': {e}")
            return []

    async def _get_by_remote_id(self, imdb_id: str, kind: str) -> Optional[dict]:
        try:
            result = await self._request(f"/search/remoteid/{imdb_id}")
        except (aiohttp.ClientError, TVDBError) as e:
            logger.warning(f"TVDB {kind} not found for IMDB {imdb_id}: {e}")
            return None

        data = result.get('data')
        # Either a list of {"movie": {...}} / {"series": {...}} or a bare record
        if isinstance(data, list):
            for entry in data:
                if isinstance(entry, dict) and isinstance(entry.get(kind), dict):
                    return entry[kind]
            return None
        if isinstance(data, dict):
            return data.get(kind) if isinstance(data.get(kind), dict) else data
        return None

    async def get_movie_by_remote_id(self, imdb_id: str) -> Optional[dict]:
        return await self._get_by_remote_id(imdb_id, 'movie')

    async def get_series_by_remote_id(self, imdb_id: str) -> Optional[dict]:
        return await self._get_by_remote_id(imdb_id, 'series')

    def get_poster_url(self, filename: Optional[str]) -> str:
        """Absolute artwork URL; TVDB returns both bare filenames and full URLs"""
        if not filename:
            return ""
        if filename.startswith("http://") or filename.startswith("https://"):
            return filename
        return f"{self.IMAGE_BASE_URL}{filename.lstrip('/')}"
