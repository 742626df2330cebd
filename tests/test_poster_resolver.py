import asyncio

from horrorhub.services.poster_resolver import (
    find_backfill_poster, normalize_poster_url, pick_tvdb_match, resolve_poster_url, title_variants,
)
from horrorhub.services.tvdb_client import TVDBClient, TVDBError


class FakeTVDB:
    IMAGE_BASE_URL = TVDBClient.IMAGE_BASE_URL

    def __init__(self, search=None, remote=None, fail=False):
        self.search = search or {}
        self.remote = remote or {}
        self.fail = fail
        self.queries = []

    async def search_content(self, query, type=None):
        self.queries.append(query)
        if self.fail:
            raise TVDBError("boom")
        return self.search.get(query, [])

    async def get_movie_by_remote_id(self, imdb_id):
        return self.remote.get(imdb_id)

    async def get_series_by_remote_id(self, imdb_id):
        return self.remote.get(imdb_id)

    def get_poster_url(self, filename):
        return TVDBClient.get_poster_url(self, filename)


def test_normalize_poster_url():
    assert normalize_poster_url("https://img/w185/a.jpg") == "https://img/w342/a.jpg"
    assert normalize_poster_url("https://img/a.jpg") == "https://img/a.jpg"
    assert normalize_poster_url(None) == ""


def test_pick_tvdb_match_requires_close_year():
    results = [
        {"name": "It", "year": "1990", "image_url": "old.jpg"},
        {"name": "It", "year": "2017", "image_url": "new.jpg"},
    ]
    assert pick_tvdb_match(results, "It", 2017)["image_url"] == "new.jpg"
    assert pick_tvdb_match(results, "It", 2005) is None


def test_resolve_prefers_tvdb_remote_id():
    tvdb = FakeTVDB(remote={"tt1": {"image": "posters/1.jpg"}})
    url, source = asyncio.run(resolve_poster_url(tvdb, "X", 2000, imdb_id="tt1", catalog_poster="https://c/w185/x.jpg"))
    assert source == "tvdb"
    assert url == "https://artworks.thetvdb.com/banners/posters/1.jpg"


def test_resolve_falls_back_to_catalog_then_default():
    url, source = asyncio.run(resolve_poster_url(None, "X", 2000, catalog_poster="https://c/w185/x.jpg"))
    assert (url, source) == ("https://c/w342/x.jpg", "watchmode")

    url, source = asyncio.run(resolve_poster_url(FakeTVDB(), "X", 2000, default_poster="/p.svg"))
    assert (url, source) == ("/p.svg", "default")


def test_tvdb_failure_is_not_fatal():
    url, source = asyncio.run(resolve_poster_url(FakeTVDB(fail=True), "X", 2000, catalog_poster="https://c/x.jpg"))
    assert source == "watchmode"


def test_backfill_tries_title_variants():
    assert title_variants("Ringu", 1998, "Ring") == ["Ringu", "Ringu (1998)", "Ring", "Ring (1998)"]

    tvdb = FakeTVDB(search={"Ring": [{"name": "Ring", "image_url": "https://art/ring.jpg"}]})
    url = asyncio.run(find_backfill_poster(tvdb, "Ringu", 1998, "Ring"))
    assert url == "https://art/ring.jpg"
    assert tvdb.queries == ["Ringu", "Ringu (1998)", "Ring"]
