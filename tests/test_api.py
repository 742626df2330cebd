import httpx
from fastapi import Depends

from horrorhub.api.deps import get_ledger, get_tvdb_client, get_watchmode_client
from horrorhub.services import content_repository, platform_repository, subgenre_repository
from horrorhub.services.usage_ledger import UsageLedger
from horrorhub.services.watchmode_client import WatchmodeClient

from conftest import FakeWatchmode, horror_title, netflix_source


def add(db, title, year, **values):
    data = {"title": title, "year": year, "active": True}
    data.update(values)
    return content_repository.create_content(db, data)


def watchmode_override(fake):
    def _override(ledger: UsageLedger = Depends(get_ledger)):
        return WatchmodeClient("test-key", ledger=ledger, transport=httpx.MockTransport(fake))
    return _override


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_browse_hides_hidden_and_inactive(client, db):
    add(db, "Public", 2000, average_rating=6.0)
    add(db, "Secret", 2000, hidden=True)
    add(db, "Draft", 2000, active=False)

    response = client.get("/api/content")
    assert response.status_code == 200
    assert [c["title"] for c in response.json()] == ["Public"]
    assert response.json()[0]["averageRating"] == 6.0


def test_include_flags_ignored_for_non_admins(client, db, user_headers, admin_headers):
    add(db, "Public", 2000)
    add(db, "Secret", 2000, hidden=True)

    as_user = client.get("/api/content?includeHidden=true", headers=user_headers).json()
    assert [c["title"] for c in as_user] == ["Public"]

    as_admin = client.get("/api/content?includeHidden=true", headers=admin_headers).json()
    assert {c["title"] for c in as_admin} == {"Public", "Secret"}


def test_sort_and_malformed_filters(client, db):
    add(db, "Low", 1985, average_rating=5.0, critics_rating=9.0)
    add(db, "High", 1999, average_rating=8.0, critics_rating=4.0)

    by_critics = client.get("/api/content?sortBy=critics_rating:desc").json()
    assert [c["title"] for c in by_critics] == ["Low", "High"]

    fallback = client.get("/api/content?sortBy=bogus&year=abc&minRating=x").json()
    assert [c["title"] for c in fallback] == ["High", "Low"]

    eighties = client.get("/api/content?year=1980s").json()
    assert [c["title"] for c in eighties] == ["Low"]


def test_hidden_detail_is_404_for_public(client, db, admin_headers):
    item = add(db, "Secret", 2000, hidden=True)
    assert client.get(f"/api/content/{item.id}").status_code == 404
    assert client.get(f"/api/content/{item.id}", headers=admin_headers).status_code == 200


def test_admin_routes_require_admin(client, user_headers):
    assert client.get("/api/admin/content").status_code == 401
    assert client.get("/api/admin/content", headers=user_headers).status_code == 403


def test_admin_content_crud(client, db, admin_headers):
    slasher = subgenre_repository.create_subgenre(db, "Slasher")

    created = client.post("/api/admin/content", headers=admin_headers, json={
        "title": "Black Christmas",
        "year": 1974,
        "criticsRating": 8.0,
        "usersRating": 7.0,
        "subgenreIds": [slasher.id],
        "primarySubgenreId": slasher.id,
    })
    assert created.status_code == 201
    body = created.json()
    assert body["averageRating"] == 7.5
    assert body["active"] is True
    assert body["subgenres"] == ["slasher"]
    assert body["primarySubgenre"]["slug"] == "slasher"

    patched = client.patch(f"/api/admin/content/{body['id']}", headers=admin_headers, json={"usersRating": 9.0})
    assert patched.json()["averageRating"] == 8.5

    assert client.post(f"/api/admin/content/{body['id']}/hide", headers=admin_headers).status_code == 200
    assert client.get(f"/api/content/{body['id']}").status_code == 404

    assert client.delete(f"/api/admin/content/{body['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/content/{body['id']}", headers=admin_headers).status_code == 404


def test_invalid_body_returns_400(client, admin_headers):
    response = client.post("/api/admin/content", headers=admin_headers, json={"year": 1974})
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


def test_subgenre_reorder(client, db, admin_headers):
    a = subgenre_repository.create_subgenre(db, "A")
    b = subgenre_repository.create_subgenre(db, "B")

    response = client.put("/api/admin/subgenres/reorder", headers=admin_headers, json={"orderedIds": [b.id, a.id]})
    assert response.status_code == 200
    assert [s["slug"] for s in client.get("/api/subgenres").json()] == ["b", "a"]

    bad = client.put("/api/admin/subgenres/reorder", headers=admin_headers, json={"orderedIds": [a.id, 999]})
    assert bad.status_code == 400


def test_platform_lookup_by_key(client, db):
    platform_repository.get_or_create_platform_by_watchmode_id(db, 99)
    assert client.get("/api/platforms/by-key/shudder").json()["watchmodeId"] == 99
    assert client.get("/api/platforms/by-key/nope").status_code == 404


def test_decades(client, db):
    add(db, "A", 1981)
    add(db, "B", 2005)
    assert client.get("/api/decades").json() == [{"decade": 2000, "count": 1}, {"decade": 1980, "count": 1}]


def test_watchlist_flow(client, db, user_headers):
    item = add(db, "Ju-On", 2002)

    assert client.post(f"/api/watchlist/{item.id}", headers=user_headers).status_code == 201
    assert client.post(f"/api/watchlist/{item.id}", headers=user_headers).status_code == 409
    assert client.get(f"/api/watchlist/{item.id}/check", headers=user_headers).json() == {"inWatchlist": True}
    assert [c["title"] for c in client.get("/api/watchlist", headers=user_headers).json()] == ["Ju-On"]
    assert client.delete(f"/api/watchlist/{item.id}", headers=user_headers).status_code == 204
    assert client.get("/api/watchlist").status_code == 401


def test_watchmode_status(client, user_headers):
    body = client.get("/api/watchmode/status", headers=user_headers).json()
    assert body["requestsUsed"] == 0
    assert body["monthlyLimit"] == 1000


def test_usage_override_bounds(client, admin_headers):
    assert client.put("/api/admin/watchmode/usage", headers=admin_headers,
                      json={"requestsUsed": 1001}).status_code == 400
    ok = client.put("/api/admin/watchmode/usage", headers=admin_headers, json={"requestsUsed": 40})
    assert ok.json()["requestsRemaining"] == 960


def test_sync_end_to_end(client, db, admin_headers):
    from horrorhub.main import app

    for i in (4, 5):
        content_repository.create_content(db, {"title": f"Stored {i}", "year": 1950, "watchmode_id": i})
    ids = [1, 2, 3, 4, 5]
    fake = FakeWatchmode(
        titles=[{"id": i, "title": f"Title {i}", "year": 2000 + i} for i in ids],
        details={i: horror_title(i, f"Title {i}", 2000 + i) for i in ids},
        sources={i: [netflix_source()] for i in (1, 2, 3)},
    )

    app.dependency_overrides[get_watchmode_client] = watchmode_override(fake)
    app.dependency_overrides[get_tvdb_client] = lambda: None

    response = client.post("/api/content/sync", headers=admin_headers, json={
        "maxRequests": 10,
        "selectedPlatforms": ["Netflix"],
        "minRating": 0,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["newMoviesAdded"] == 3
    assert body["searchStats"]["duplicatesSkipped"] == 2
    assert len(body["titlesProcessed"]) == 5
    assert body["requestsUsed"] == 7


def test_sync_is_admin_only(client, user_headers):
    assert client.post("/api/content/sync", headers=user_headers, json={}).status_code == 403
