"""
API tests for endpoints that do not touch the database.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.core.config import get_settings


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {get_settings().api_token}"}


def test_calculate_microplastic(client, auth_headers):
    response = client.post(
        "/api/calc/microplastic",
        json={"source_counts": {"bottledWater": 10, "seafood": 2}},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total_score"] == 2.7
    assert data["risk_tier"] == "Low"
    assert data["unit"] == "particles/mL"
    assert data["sources"][0]["key"] == "bottledWater"
    assert data["sources"][0]["percentage"] == 74


def test_calculate_ignores_negative_counts(client, auth_headers):
    response = client.post(
        "/api/calc/pfas",
        json={"source_counts": {"dentalFloss": -4}},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["total_score"] == 0
    assert response.json()["risk_tier"] == "Low"


def test_sources_lists_catalog_and_bands(client, auth_headers):
    response = client.get("/api/sources/pfas", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["unit"] == "ppt"
    assert len(data["sources"]) == 5
    assert [band["label"] for band in data["bands"]] == ["Low", "Normal", "High", "Extreme"]
    assert data["bands"][-1]["max_value"] is None


def test_unknown_tracker(client, auth_headers):
    response = client.post("/api/calc/lead", json={"source_counts": {}}, headers=auth_headers)

    assert response.status_code == 422


def test_missing_token(client):
    response = client.get("/api/sources/microplastic")

    assert response.status_code in (401, 403)


def test_wrong_token(client):
    response = client.get("/api/sources/microplastic", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
