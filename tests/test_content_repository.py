import pytest

from horrorhub.models.content import Content
from horrorhub.services import content_repository, platform_repository, subgenre_repository
from horrorhub.services.filter_compiler import ContentFilters


def add(db, title, year, **values):
    data = {"title": title, "year": year, "active": True}
    data.update(values)
    return content_repository.create_content(db, data)


def titles(items):
    return [item["title"] for item in items]


def test_create_defaults_and_average(db):
    item = add(db, "The Thing", 1982, critics_rating=8.2, users_rating=8.0)
    assert item.average_rating == 8.1
    assert item.poster_url == content_repository.DEFAULT_POSTER_URL
    assert item.hidden is False


def test_movies_never_keep_seasons(db):
    item = add(db, "Halloween", 1978, seasons=2, episodes=10)
    assert item.seasons is None and item.episodes is None

    series = add(db, "Marianne", 2019, type="series", seasons=1, episodes=8)
    assert series.seasons == 1


def test_invalid_type_rejected(db):
    with pytest.raises(ValueError):
        add(db, "Thing", 2000, type="podcast")


def test_hidden_and_inactive_excluded_by_default(db):
    add(db, "Visible", 2000)
    add(db, "Hidden", 2000, hidden=True)
    add(db, "Draft", 2000, active=False)

    assert titles(content_repository.get_content(db)) == ["Visible"]
    assert set(titles(content_repository.get_content(db, ContentFilters(include_hidden=True)))) == {"Visible", "Hidden"}
    everything = content_repository.get_content(db, ContentFilters(include_hidden=True, include_inactive=True))
    assert len(everything) == 3


def test_sort_puts_nulls_last_and_breaks_ties_by_title(db):
    add(db, "Bravo", 2001, average_rating=7.0)
    add(db, "Alpha", 2002, average_rating=7.0)
    add(db, "Unrated", 2003)
    add(db, "Top", 2004, average_rating=9.0)

    desc = content_repository.get_content(db)
    assert titles(desc) == ["Top", "Alpha", "Bravo", "Unrated"]

    asc = content_repository.get_content(db, ContentFilters(sort_by="average_rating:asc"))
    assert titles(asc) == ["Alpha", "Bravo", "Top", "Unrated"]


def test_release_date_sort_uses_year(db):
    add(db, "Old", 1960)
    add(db, "New", 2020)
    result = content_repository.get_content(db, ContentFilters(sort_by="release_date:desc"))
    assert titles(result) == ["New", "Old"]


def test_decade_filter_is_half_open(db):
    add(db, "Eighty", 1980)
    add(db, "EightyNine", 1989)
    add(db, "Ninety", 1990)
    result = content_repository.get_content(db, ContentFilters(year="1980s"))
    assert set(titles(result)) == {"Eighty", "EightyNine"}


def test_platform_filters_and_badges(db):
    netflix = platform_repository.get_or_create_platform_by_watchmode_id(db, 203)
    shudder = platform_repository.get_or_create_platform_by_watchmode_id(db, 99)
    both = add(db, "Both", 2010)
    only_netflix = add(db, "OnlyNetflix", 2011)
    add(db, "Nowhere", 2012)
    platform_repository.create_content_platform(db, both.id, netflix.id, web_url="https://n/1")
    platform_repository.create_content_platform(db, both.id, shudder.id)
    platform_repository.create_content_platform(db, only_netflix.id, netflix.id)

    any_mode = content_repository.get_content(db, ContentFilters(platform_ids=f"{netflix.id},{shudder.id}"))
    assert set(titles(any_mode)) == {"Both", "OnlyNetflix"}

    all_mode = content_repository.get_content(
        db, ContentFilters(platform_ids=f"{netflix.id},{shudder.id}", platform_mode="all")
    )
    assert titles(all_mode) == ["Both"]

    by_key = content_repository.get_content(db, ContentFilters(platform="shudder"))
    assert titles(by_key) == ["Both"]

    badges = {b["platform_key"]: b for b in by_key[0]["platforms_badges"]}
    assert set(badges) == {"netflix", "shudder"}
    assert badges["netflix"]["web_url"] == "https://n/1"


def test_subgenre_and_search_filters(db):
    slasher = subgenre_repository.create_subgenre(db, "Slasher")
    ghost = subgenre_repository.create_subgenre(db, "Ghost Story")
    masked = add(db, "Masked", 1981, description="a killer in a mask")
    haunted = add(db, "Haunted", 1963)
    subgenre_repository.add_subgenres_to_content(db, masked.id, [slasher.id])
    subgenre_repository.set_primary_subgenre(db, haunted.id, ghost.id, ensure_in_join=False)

    assert titles(content_repository.get_content(db, ContentFilters(subgenre="slasher"))) == ["Masked"]
    assert titles(content_repository.get_content(db, ContentFilters(subgenre="ghost-story"))) == ["Haunted"]
    assert titles(content_repository.get_content(db, ContentFilters(search="ghost"))) == ["Haunted"]
    assert titles(content_repository.get_content(db, ContentFilters(search="KILLER"))) == ["Masked"]


def test_hydration_includes_subgenres_and_primary(db):
    slasher = subgenre_repository.create_subgenre(db, "Slasher")
    item = add(db, "Scream", 1996)
    subgenre_repository.set_primary_subgenre(db, item.id, slasher.id)

    hydrated = content_repository.get_content_item(db, item.id)
    assert hydrated["subgenres"] == ["slasher"]
    assert hydrated["primary_subgenre"] == {"id": slasher.id, "name": "Slasher", "slug": "slasher"}
    assert hydrated["platforms_badges"] == []


def test_find_by_title_year_tolerates_one_year(db):
    add(db, "Suspiria", 1977)
    assert content_repository.find_by_title_year(db, "suspiria", 1978)
    assert content_repository.find_by_title_year(db, "Suspiria", 1979) is None


def test_find_by_title_year_needs_a_year(db):
    add(db, "Suspiria", 1977)
    assert content_repository.find_by_title_year(db, "Suspiria", None) is None


def test_delete_removes_links(db):
    netflix = platform_repository.get_or_create_platform_by_watchmode_id(db, 203)
    item = add(db, "Gone", 2000)
    platform_repository.create_content_platform(db, item.id, netflix.id)

    assert content_repository.delete_content(db, item.id)
    assert db.query(Content).count() == 0
    assert platform_repository.get_platforms_for_content_id(db, item.id) == []


def test_count_by_decade(db):
    add(db, "A", 1981)
    add(db, "B", 1985)
    add(db, "C", 2003, type="series")
    add(db, "D", 2004, hidden=True)

    assert content_repository.count_by_decade(db) == [
        {"decade": 2000, "count": 1},
        {"decade": 1980, "count": 2},
    ]
    assert content_repository.count_by_decade(db, content_type="series") == [{"decade": 2000, "count": 1}]


def test_newest_streaming(db):
    add(db, "Older", 2020, source_release_date="2024-01-01")
    add(db, "Newer", 2021, source_release_date="2024-03-01")
    add(db, "NoDate", 2022)
    assert titles(content_repository.get_newest_streaming(db)) == ["Newer", "Older"]
