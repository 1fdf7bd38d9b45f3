import json

import pytest
from fastapi.testclient import TestClient

from calcfinder import api
from calcfinder.store import IndexStore


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(api, "store", IndexStore())
    monkeypatch.setattr(api, "semantic_scorer", None)
    return TestClient(api.app)


@pytest.fixture
def loaded_client(client, sample_items):
    api.store.reload(sample_items)
    return client


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "items": 0}


def test_resolve_before_catalog_loaded(client):
    resp = client.post("/resolve", json={"query": "mortgage"})
    assert resp.status_code == 503


def test_resolve_returns_choice_and_path(loaded_client):
    resp = loaded_client.post("/resolve", json={"query": "what is my body mass index"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["identifier"] == "bmi-calculator"
    assert body["display_name"] == "BMI Calculator"
    assert body["path"] == "/category/health-fitness/bmi-calculator"
    assert body["confidence"] > 0
    for alt in body["alternates"]:
        assert alt["path"].startswith("/category/")


def test_resolve_no_match(loaded_client):
    body = loaded_client.post("/resolve", json={"query": "xyzzy"}).json()
    assert body["identifier"] is None
    assert body["alternates"] == []


def test_resolve_empty_query_is_not_an_error(loaded_client):
    resp = loaded_client.post("/resolve", json={"query": "   "})
    assert resp.status_code == 200
    assert resp.json()["identifier"] is None


def test_resolve_with_category_and_top_k(loaded_client):
    body = loaded_client.post(
        "/resolve", json={"query": "weight", "category": "health-fitness", "top_k": 2}
    ).json()
    assert body["identifier"] == "bmi-calculator"
    assert len(body["alternates"]) <= 1
    assert all(a["category"] == "health-fitness" for a in body["alternates"])


def test_category_search(loaded_client):
    resp = loaded_client.get("/categories/conversions/search", params={"q": "psi"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["category"] == "conversions"
    assert [c["identifier"] for c in body["calculators"]] == [
        "pascals-to-psi-converter",
        "psi-to-bar-converter",
    ]


def test_category_search_unknown_category(loaded_client):
    assert loaded_client.get("/categories/astrology/search").status_code == 404


def test_reload_from_file(client, monkeypatch, tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps([
            {"slug": "a", "name": "Alpha Tool", "description": "Does alpha", "category": "misc"},
            {"slug": "b", "name": "Beta Tool", "description": "Does beta", "category": "other"},
        ]),
        encoding="utf-8",
    )
    monkeypatch.setattr(api, "CATALOG_PATH", path)
    resp = client.post("/reload")
    assert resp.status_code == 200
    assert resp.json() == {"items": 2, "categories": 2}
    assert client.get("/health").json()["items"] == 2


def test_bad_reload_keeps_serving_old_index(loaded_client, monkeypatch, tmp_path, sample_items):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps([
            {"slug": "a", "name": "Alpha", "description": "Does alpha", "category": "misc"},
            {"slug": "a", "name": "Alpha again", "description": "Does alpha", "category": "misc"},
        ]),
        encoding="utf-8",
    )
    monkeypatch.setattr(api, "CATALOG_PATH", path)
    resp = loaded_client.post("/reload")
    assert resp.status_code == 422
    assert "'a'" in resp.json()["detail"]
    assert loaded_client.get("/health").json()["items"] == len(sample_items)
