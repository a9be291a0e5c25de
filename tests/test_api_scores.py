"""API tests for the score routes, run against an in-memory store."""

import base64
import json

import pytest
from httpx import ASGITransport, AsyncClient

from apps.api import create_app
from apps.api.auth import extract_user_from_jwt
from domain.overrides.store import InMemoryScoreStore


def make_token(payload):
    def segment(data):
        return base64.urlsafe_b64encode(json.dumps(data).encode("utf-8")).decode("ascii").rstrip("=")

    return f"{segment({'alg': 'HS256', 'typ': 'JWT'})}.{segment(payload)}.signature"


@pytest.fixture
def app():
    return create_app(store=InMemoryScoreStore())


@pytest.fixture
def auth_header():
    token = make_token({"sub": "user-123", "email": "analyst@example.com"})
    return {"Authorization": f"Bearer {token}"}


async def request(app, method, path, **kwargs):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.request(method, path, **kwargs)


# ============================================================================
# Auth
# ============================================================================


class TestExtractUser:
    def test_valid_token(self):
        token = make_token({"sub": "abc", "email": "a@example.com"})
        assert extract_user_from_jwt(f"Bearer {token}") == ("abc", "a@example.com")

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Basic abc", "Bearer not-a-jwt", "Bearer a.!!!.c"])
    def test_unusable_headers_are_anonymous(self, header):
        assert extract_user_from_jwt(header) == (None, "anonymous")

    def test_missing_email(self):
        token = make_token({"sub": 99})
        assert extract_user_from_jwt(f"Bearer {token}") == ("99", "anonymous")


# ============================================================================
# Routes
# ============================================================================


class TestScoreRoutes:
    @pytest.mark.asyncio
    async def test_health(self, app):
        response = await request(app, "GET", "/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_compute(self, app, legacy_label_fields):
        response = await request(app, "POST", "/api/scores/compute", json={"fields": legacy_label_fields})

        assert response.status_code == 200
        data = response.json()
        assert data["overall_score"] == pytest.approx(4.05)
        assert data["overall_rating"] == "Moderate"
        assert data["components"]["markets"] == 0

    @pytest.mark.asyncio
    async def test_compute_missing_data_is_unrated(self, app, sparse_fields):
        response = await request(app, "POST", "/api/scores/compute", json={"fields": sparse_fields})

        data = response.json()
        assert data["overall_score"] is None
        assert data["overall_rating"] == "Unrated"

    @pytest.mark.asyncio
    async def test_unedited_project_is_404(self, app):
        response = await request(app, "GET", "/api/projects/17/scores")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_save_then_read(self, app, canonical_fields, auth_header):
        body = {
            "fields": dict(canonical_fields, overall_score=9.9),
            "change_summary": "site visit",
            "poi_entries": [{"name": "Substation A", "voltage_kv": 345}],
        }
        saved = await request(app, "PUT", "/api/projects/17/scores", json=body, headers=auth_header)

        assert saved.status_code == 200
        record = saved.json()
        assert record["project_id"] == "17"
        assert record["edited_by_email"] == "analyst@example.com"
        assert record["overall_rating"] == "Moderate"
        assert record["overall_score"] != 9.9

        current = await request(app, "GET", "/api/projects/17/scores")
        assert current.json() == record

        history = await request(app, "GET", "/api/projects/17/scores/history")
        entries = history.json()
        assert [entry["sequence"] for entry in entries] == [1]
        assert entries[0]["change_summary"] == "site visit"
        assert entries[0]["poi_entries"][0]["name"] == "Substation A"

        poi = await request(app, "GET", "/api/projects/17/poi")
        assert [entry["name"] for entry in poi.json()] == ["Substation A"]

    @pytest.mark.asyncio
    async def test_save_without_token_is_anonymous(self, app, canonical_fields):
        response = await request(app, "PUT", "/api/projects/18/scores", json={"fields": canonical_fields})

        assert response.status_code == 200
        assert response.json()["edited_by_email"] == "anonymous"
        assert response.json()["edited_by_user_id"] is None

    @pytest.mark.asyncio
    async def test_malformed_project_id_is_400(self, app, canonical_fields):
        response = await request(app, "PUT", "/api/projects/bad%20id/scores", json={"fields": canonical_fields})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_too_many_poi_is_400(self, app):
        entries = [{"name": f"POI {index}"} for index in range(6)]
        response = await request(app, "PUT", "/api/projects/19/poi", json={"entries": entries})

        assert response.status_code == 400
        listing = await request(app, "GET", "/api/projects/19/poi")
        assert listing.json() == []

    @pytest.mark.asyncio
    async def test_replace_poi_and_clear(self, app):
        entries = [{"name": "North"}, {"name": "South", "capacity_mw": 120.5}]
        replaced = await request(app, "PUT", "/api/projects/20/poi", json={"entries": entries})
        assert [entry["name"] for entry in replaced.json()] == ["North", "South"]

        cleared = await request(app, "PUT", "/api/projects/20/poi", json={"entries": []})
        assert cleared.json() == []

    @pytest.mark.asyncio
    async def test_storage_failure_is_502(self, canonical_fields):
        class BrokenStore(InMemoryScoreStore):
            def _write_record(self, staged, record):
                raise RuntimeError("disk full")

        app = create_app(store=BrokenStore())
        response = await request(app, "PUT", "/api/projects/21/scores", json={"fields": canonical_fields})

        assert response.status_code == 502
        assert (await request(app, "GET", "/api/projects/21/scores")).status_code == 404
