from __future__ import annotations

from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from profile_scraper_pkg.api import create_app


def profile_body(slug="alice", **overrides):
    body = {
        "name": slug.title(),
        "url": f"https://www.linkedin.com/in/{slug}",
        "bioLine": "Software Engineer",
        "location": "Berlin, Germany",
        "followerCount": 100,
        "connectionCount": 50,
    }
    body.update(overrides)
    return body


@pytest.fixture
def client():
    with TestClient(create_app("sqlite://", run_env="test")) as c:
        yield c


def create(client, slug="alice", **overrides):
    response = client.post("/api/profiles", json=profile_body(slug, **overrides))
    assert response.status_code == 201, response.text
    return response.json()["data"]["profile"]


def test_api_info_and_health(client):
    info = client.get("/api").json()
    assert info["success"] is True
    assert info["data"]["endpoints"]["profiles"]["batch"] == "POST /api/profiles/batch"

    health = client.get("/api/health").json()
    assert health["message"] == "API is healthy"
    assert health["data"]["status"] == "healthy"
    assert health["data"]["environment"] == "test"
    assert health["timestamp"]


def test_create_profile_computes_status(client):
    response = client.post("/api/profiles", json=profile_body(extractionStatus="failed", skills=["Python"]))

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Profile created successfully"
    profile = body["data"]["profile"]
    assert profile["id"] == 1
    assert profile["extractionStatus"] == "success"
    assert profile["skills"] == ["Python"]
    assert profile["createdAt"]
    assert body["data"]["metadata"]["isComplete"] is True


def test_name_only_profile_is_partial(client):
    profile = create(client, bioLine=None, location=None)
    assert profile["extractionStatus"] == "partial"


def test_bare_url_gets_scheme(client):
    profile = create(client, url="linkedin.com/in/alice")
    assert profile["url"] == "https://linkedin.com/in/alice"


def test_duplicate_url_conflict(client):
    first = create(client)
    response = client.post("/api/profiles", json=profile_body(name="Someone Else"))

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Profile with this LinkedIn URL already exists"
    error = body["error"]
    assert error["type"] == "DuplicateEntryError"
    assert error["statusCode"] == 409
    assert error["path"] == "/api/profiles"
    assert error["method"] == "POST"
    assert error["existingProfile"]["id"] == first["id"]
    assert error["suggestion"] == f"Use PUT /api/profiles/{first['id']} to update existing profile"


@pytest.mark.parametrize("overrides, field", [
    ({"name": None}, "name"),
    ({"name": "   "}, "name"),
    ({"url": "https://example.com/alice"}, "url"),
    ({"followerCount": -1}, "followerCount"),
    ({"profilePicture": "ftp://img"}, "profilePicture"),
])
def test_validation_errors_name_fields(client, overrides, field):
    body = profile_body(**overrides)
    body = {k: v for k, v in body.items() if v is not None}

    response = client.post("/api/profiles", json=body)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "ValidationError"
    assert field in [f["field"] for f in error["fields"]]


def test_list_pagination_and_filters(client):
    create(client, "alice", followerCount=10)
    create(client, "bob", followerCount=200, location="Paris, France", bioLine="Designer")
    create(client, "carol", followerCount=3000, bioLine=None, location=None)

    page = client.get("/api/profiles", params={"limit": 2}).json()["data"]
    assert len(page["profiles"]) == 2
    assert "extractionErrors" not in page["profiles"][0]
    assert page["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalCount": 3,
        "limit": 2,
        "hasNextPage": True,
        "hasPrevPage": False,
        "nextPage": 2,
        "prevPage": None,
    }

    by_followers = client.get("/api/profiles", params={"sortBy": "followerCount", "sortOrder": "asc"}).json()
    assert [p["name"] for p in by_followers["data"]["profiles"]] == ["Alice", "Bob", "Carol"]
    assert by_followers["data"]["filters"]["sortOrder"] == "ASC"

    def names(**params):
        return sorted(p["name"] for p in client.get("/api/profiles", params=params).json()["data"]["profiles"])

    assert names(minFollowers=100) == ["Bob", "Carol"]
    assert names(maxFollowers=200) == ["Alice", "Bob"]
    assert names(location="paris") == ["Bob"]
    assert names(search="designer") == ["Bob"]
    assert names(status="partial") == ["Carol"]


def test_list_rejects_bad_sort(client):
    response = client.get("/api/profiles", params={"sortBy": "password"})
    assert response.status_code == 400
    assert response.json()["error"]["fields"][0]["field"] == "sortBy"

    response = client.get("/api/profiles", params={"sortOrder": "sideways"})
    assert response.status_code == 400

    response = client.get("/api/profiles", params={"status": "unknown"})
    assert response.status_code == 400


def test_get_update_delete(client):
    profile = create(client, bioLine=None, location=None)
    profile_id = profile["id"]

    fetched = client.get(f"/api/profiles/{profile_id}").json()
    assert fetched["data"]["profile"]["url"] == profile["url"]
    assert fetched["data"]["metadata"]["extractionStatus"] == "partial"

    updated = client.put(f"/api/profiles/{profile_id}", json={"name": "Alice", "location": "Paris"})
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["metadata"]["changedFields"] == ["location"]
    assert data["profile"]["location"] == "Paris"
    assert data["profile"]["extractionStatus"] == "success"

    deleted = client.delete(f"/api/profiles/{profile_id}")
    assert deleted.status_code == 200
    assert deleted.json()["data"]["deletedProfile"]["id"] == profile_id

    missing = client.get(f"/api/profiles/{profile_id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["type"] == "NotFoundError"


def test_update_to_taken_url_conflicts(client):
    alice = create(client, "alice")
    bob = create(client, "bob")

    response = client.put(f"/api/profiles/{bob['id']}", json={"url": alice["url"]})

    assert response.status_code == 409
    assert response.json()["error"]["existingProfile"]["id"] == alice["id"]


def test_non_numeric_id_is_validation_error(client):
    response = client.get("/api/profiles/abc")
    assert response.status_code == 400
    assert response.json()["error"]["fields"][0]["field"] == "profileId"


def test_search_and_lookup_by_url(client):
    alice = create(client, "alice", bioLine="Data Scientist")
    create(client, "bob")

    found = client.get("/api/profiles/search/scientist").json()["data"]
    assert found["count"] == 1
    assert found["profiles"][0]["id"] == alice["id"]

    by_url = client.get(f"/api/profiles/by-url/{quote(alice['url'], safe='')}")
    assert by_url.status_code == 200
    assert by_url.json()["data"]["profile"]["id"] == alice["id"]

    missing = client.get(f"/api/profiles/by-url/{quote('https://www.linkedin.com/in/nobody', safe='')}")
    assert missing.status_code == 404


def test_profile_stats(client):
    create(client, "alice")
    create(client, "bob", location="Berlin, Germany")
    create(client, "carol", bioLine=None, location=None)

    data = client.get("/api/profiles/stats").json()["data"]

    assert data["overview"]["total"] == 3
    assert data["overview"]["successful"] == 2
    assert data["overview"]["partial"] == 1
    assert data["overview"]["successRate"] == "66.67%"
    assert data["overview"]["completionRate"] == "100.00%"
    assert data["detailed"]["byStatus"]["failed"] == 0
    assert data["topLocations"][0] == {"location": "Berlin, Germany", "count": 2}
    assert len(data["recentProfiles"]) == 3


def test_batch_mixed_results(client):
    create(client, "alice")
    response = client.post("/api/profiles/batch", json={"profiles": [
        profile_body("alice"),
        profile_body("bob"),
        {"name": "No Url"},
    ]})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["summary"] == {"total": 3, "created": 1, "skipped": 1, "errors": 1, "successRate": "33%"}
    results = body["data"]["results"]
    assert results["created"][0]["index"] == 1
    assert results["skipped"][0]["existingId"] == 1
    assert results["errors"][0]["index"] == 2


def test_batch_all_duplicates_conflicts(client):
    create(client, "alice")
    response = client.post("/api/profiles/batch", json={"profiles": [profile_body("alice")]})
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_batch_all_invalid_is_bad_request(client):
    response = client.post("/api/profiles/batch", json={"profiles": [{"name": "x"}, {"url": "nope"}]})
    assert response.status_code == 400
    assert response.json()["data"]["summary"]["errors"] == 2


def test_batch_size_limits(client):
    assert client.post("/api/profiles/batch", json={"profiles": []}).status_code == 400
    too_many = [profile_body(f"user{i}") for i in range(51)]
    assert client.post("/api/profiles/batch", json={"profiles": too_many}).status_code == 400


def test_unknown_route(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    error = response.json()["error"]
    assert error["type"] == "RouteNotFound"
    assert error["message"] == "Route GET /api/nope not found"


def test_request_stats(client):
    client.get("/api/health")
    client.get("/api/nope")
    data = client.get("/api/stats").json()["data"]
    assert data["totalRequests"] == 3
    assert data["errors"] == 1
    assert data["successRate"] == "66.67%"


def test_database_endpoints(client):
    create(client, "alice")

    health = client.get("/api/database/health").json()["data"]
    assert health["status"] == "connected"
    assert health["dialect"] == "sqlite"

    stats = client.get("/api/database/stats").json()["data"]
    assert "profiles" in stats["tables"]
    assert stats["profiles"]["total"] == 1

    reset = client.post("/api/database/reset")
    assert reset.status_code == 200
    assert client.get("/api/profiles").json()["data"]["pagination"]["totalCount"] == 0


def test_database_reset_forbidden_in_production():
    with TestClient(create_app("sqlite://", run_env="production")) as client:
        response = client.post("/api/database/reset")
    assert response.status_code == 403
    assert response.json()["error"]["type"] == "ForbiddenError"
