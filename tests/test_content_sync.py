import asyncio

from horrorhub.models.content import Content
from horrorhub.models.platform import ContentPlatform
from horrorhub.services import content_repository
from horrorhub.services.content_sync import (
    ContentSyncService, HorrorGenreStrategy, NewToStreamingStrategy, SyncOptions, SyncSettings, generate_summary,
    SyncResult,
)

from conftest import FakeWatchmode, horror_title, netflix_source


def catalog(new_ids, existing_ids):
    titles = [{"id": i, "title": f"Title {i}", "year": 2000 + i, "type": "movie"} for i in new_ids + existing_ids]
    details = {i: horror_title(i, f"Title {i}", 2000 + i) for i in new_ids + existing_ids}
    sources = {i: [netflix_source(web_url=f"https://www.netflix.com/title/{i}")] for i in new_ids}
    return FakeWatchmode(titles=titles, details=details, sources=sources)


def seed_existing(db, ids):
    for i in ids:
        content_repository.create_content(db, {"title": f"Stored {i}", "year": 1950, "watchmode_id": i})


def run(service, **options):
    return asyncio.run(service.run(SyncOptions(**options)))


def test_adds_new_titles_and_skips_known(db, ledger, settings, make_watchmode_client):
    seed_existing(db, [4, 5])
    fake = catalog([1, 2, 3], [4, 5])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger,
                                 strategy=HorrorGenreStrategy(), settings=settings)

    result = run(service, max_requests=10, selected_platforms=["Netflix"], min_rating=0)

    assert result.new_movies_added == 3
    assert result.search_stats.duplicates_skipped == 2
    assert len(result.titles_processed) == 5
    assert result.errors == []
    # one page plus details and sources per new title
    assert result.requests_used == 7
    assert ledger.used() == 7

    detail_paths = [p for p in fake.paths() if p.endswith("/details/")]
    assert "/v1/title/4/details/" not in detail_paths
    assert fake.calls[0][1]["source_ids"] == "203"

    stored = content_repository.find_by_watchmode_id(db, 1)
    assert stored.active is False
    assert stored.poster_url == "https://cdn.example.com/w342/poster.jpg"
    assert stored.average_rating == 7.5
    assert db.query(ContentPlatform).filter_by(content_id=stored.id).count() == 1


def test_quota_nearly_spent_aborts_before_searching(db, ledger, settings, make_watchmode_client):
    ledger.set_usage(999)
    fake = catalog([1, 2], [])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, titles_to_sync_count=50)

    assert fake.calls == []
    assert result.new_movies_added == 0
    assert result.requests_used == 0
    assert len(result.errors) == 1
    assert "limit" in result.errors[0]
    assert ledger.used() == 999


def test_run_budget_caps_enrichment(db, ledger, settings, make_watchmode_client):
    fake = catalog([1, 2, 3, 4], [])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, max_requests=5, titles_to_sync_count=10)

    # 1 page + 2 titles * 2 requests
    assert result.requests_used == 5
    assert result.new_movies_added == 2
    assert ledger.used() == 5


def test_title_year_match_counts_as_duplicate(db, ledger, settings, make_watchmode_client):
    content_repository.create_content(db, {"title": "title 1", "year": 2002})
    fake = catalog([1], [])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, max_requests=10)

    assert result.new_movies_added == 0
    assert result.search_stats.duplicates_skipped == 1
    assert result.titles_processed[0].action == "skipped_existing"


def test_min_rating_filters_low_rated_titles(db, ledger, settings, make_watchmode_client):
    fake = catalog([1], [])
    fake.details[1]["critic_score"] = 30
    fake.details[1]["user_rating"] = 4.0
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, max_requests=10, min_rating=6)

    assert result.new_movies_added == 0
    assert result.search_stats.filtered_out == 1
    assert db.query(Content).count() == 0


def test_hidden_genre_marks_title_hidden(db, ledger, settings, make_watchmode_client):
    fake = catalog([1], [])
    fake.details[1]["genres"] = [11, settings.hidden_genre_id]
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    run(service, max_requests=10)

    assert content_repository.find_by_watchmode_id(db, 1).hidden is True


def test_details_error_is_recorded_and_run_continues(db, ledger, settings, make_watchmode_client):
    fake = catalog([1, 2], [])
    del fake.details[1]
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, max_requests=20)

    assert result.new_movies_added == 1
    actions = {t.title: t.action for t in result.titles_processed}
    assert actions == {"Title 1": "error", "Title 2": "added"}


def test_new_to_streaming_checks_horror_on_releases(db, ledger, settings, make_watchmode_client):
    fake = catalog([1], [])
    fake.releases = [
        {"id": 20, "title": "Comedy", "year": 2024, "source_release_date": "2024-05-01"},
        {"id": 21, "title": "Fright", "year": 2024, "source_release_date": "2024-05-02"},
    ]
    fake.details[20] = horror_title(20, "Comedy", 2024, genres=[4])
    fake.details[21] = horror_title(21, "Fright", 2024)
    fake.sources[21] = [netflix_source()]
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger,
                                 strategy=NewToStreamingStrategy(), settings=settings)

    result = run(service)

    assert result.new_movies_added == 2
    assert result.search_stats.filtered_out == 1
    assert "/v1/title/20/sources/" not in fake.paths()
    assert content_repository.find_by_watchmode_id(db, 21).source_release_date == "2024-05-02"
    search_params = fake.calls[0][1]
    assert search_params["sort_by"] == "release_date_desc"
    assert search_params["limit"] == "15"


def test_validation_removes_titles_unknown_by_imdb(db, ledger, settings, make_watchmode_client):
    content_repository.create_content(db, {"title": "Lost", "year": 1999, "imdb_id": "tt0000001"})
    fake = FakeWatchmode()
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, validation_only=True)

    assert result.movies_removed == 1
    assert db.query(Content).count() == 0


def test_summary_text():
    result = SyncResult(strategy="horror_genre", new_movies_added=2, requests_used=5)
    assert generate_summary(result) == "2 new content items added, 5 API requests used."
    assert generate_summary(SyncResult(strategy="x")) == "No changes made."


def test_settings_defaults_from_empty_config(db):
    assert SyncSettings.from_config(db).horror_genre_id == 11


def test_second_identical_run_adds_nothing(db, ledger, settings, make_watchmode_client):
    fake = catalog([1, 2, 3], [])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    first = run(service, max_requests=10)
    second = run(service, max_requests=10)

    assert first.new_movies_added == 3
    assert second.new_movies_added == 0
    assert second.search_stats.duplicates_skipped == 3
    assert db.query(Content).count() == 3


def test_release_without_year_is_not_matched_by_title_alone(db, ledger, settings, make_watchmode_client):
    content_repository.create_content(db, {"title": "Nosferatu", "year": 1922, "watchmode_id": 999})
    fake = FakeWatchmode(
        releases=[{"id": 30, "title": "Nosferatu", "source_release_date": "2024-12-25"}],
        details={30: horror_title(30, "Nosferatu", 2024)},
        sources={30: [netflix_source()]},
    )
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger,
                                 strategy=NewToStreamingStrategy(), settings=settings)

    result = run(service)

    assert result.new_movies_added == 1
    assert content_repository.find_by_watchmode_id(db, 30).year == 2024


class BrokenTVDB:
    """Poster lookup that blows up for one IMDB id"""

    def __init__(self, bad_imdb_id):
        self.bad_imdb_id = bad_imdb_id

    async def get_movie_by_remote_id(self, imdb_id):
        if imdb_id == self.bad_imdb_id:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return None

    async def search_content(self, query, type=None):
        return []


def test_unexpected_error_on_one_title_does_not_abort_run(db, ledger, settings, make_watchmode_client):
    fake = catalog([1, 2], [])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger,
                                 tvdb=BrokenTVDB("tt0000001"), settings=settings)

    result = run(service, max_requests=20)

    assert result.new_movies_added == 1
    actions = {t.title: t.action for t in result.titles_processed}
    assert actions == {"Title 1": "error", "Title 2": "added"}
    assert any("Title 1" in error for error in result.errors)
    assert result.summary


class QuotaDrainingWatchmode(FakeWatchmode):
    """Someone else spends the rest of the month's quota while the page is served"""

    def __init__(self, ledger, **kwargs):
        super().__init__(**kwargs)
        self.ledger = ledger

    def __call__(self, request):
        response = super().__call__(request)
        if request.url.path.endswith("/list-titles/"):
            self.ledger.set_usage(self.ledger.monthly_limit)
        return response


def test_quota_hit_mid_run_records_title_in_flight(db, ledger, settings, make_watchmode_client):
    fake = QuotaDrainingWatchmode(
        ledger,
        titles=[{"id": 1, "title": "Title 1", "year": 2001}],
        details={1: horror_title(1, "Title 1", 2001)},
    )
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, max_requests=10)

    assert result.new_movies_added == 0
    assert [(t.title, t.action) for t in result.titles_processed] == [("Title 1", "error")]
    assert any("limit" in error for error in result.errors)


def test_validation_keeps_titles_found_by_imdb(db, ledger, settings, make_watchmode_client):
    content_repository.create_content(db, {"title": "Hereditary", "year": 2018, "imdb_id": "tt7784604"})
    fake = FakeWatchmode(search_results=[{"id": 7, "name": "Hereditary", "imdb_id": "tt7784604"}])
    service = ContentSyncService(db, make_watchmode_client(fake, ledger), ledger, settings=settings)

    result = run(service, validation_only=True)

    assert result.movies_validated == 1
    assert result.movies_removed == 0
    assert db.query(Content).count() == 1
