"""
Tests for campusrag FastAPI routes.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from campusrag.api.main import app
from campusrag.rag import SearchService, StrategyDispatcher

client = TestClient(app)


@pytest.fixture
def loaded(monkeypatch, knowledge, embedder):
    """Install a search service over the fake snapshot, as the lifespan would."""
    service = SearchService(StrategyDispatcher(knowledge, embedder))
    monkeypatch.setattr(app.state, "service", service, raising=False)
    monkeypatch.setattr(app.state, "chunks_loaded", len(knowledge), raising=False)
    monkeypatch.setattr(app.state, "events_loaded", 0, raising=False)
    monkeypatch.setattr(app.state, "embedder", embedder, raising=False)
    return service


def test_health():
    """GET /api/health returns ok and load counts."""
    r = client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert isinstance(data["chunks_loaded"], int)
    assert isinstance(data["embedder_ready"], bool)


def test_health_reports_loaded_snapshot(loaded, knowledge):
    data = client.get("/api/health").json()
    assert data["chunks_loaded"] == len(knowledge)
    assert data["embedder_ready"] is True


def test_search_requires_body():
    """POST /api/search without body returns 422."""
    r = client.post("/api/search", json={})
    assert r.status_code == 422


def test_search_uninitialized_returns_503(monkeypatch):
    """POST /api/search before the service is built returns 503."""
    monkeypatch.setattr(app.state, "service", None, raising=False)
    r = client.post("/api/search", json={"query": "Who is the dean of FACET?"})
    assert r.status_code == 503
    assert "detail" in r.json()


def test_search_with_query(loaded):
    """POST /api/search returns ranked hits and the category used."""
    r = client.post("/api/search", json={"query": "Who is the dean of FACET?", "max_sections": 3})
    assert r.status_code == 200
    data = r.json()
    assert data["query"] == "Who is the dean of FACET?"
    assert data["category"] == "deans"
    assert data["degraded"] is False
    assert 0 < len(data["results"]) <= 3
    assert data["results"][0]["id"] == "dean-facet"


def test_search_query_type_override(loaded):
    r = client.post("/api/search", json={"query": "Sing the university hymn", "query_type": "general"})
    assert r.status_code == 200
    assert r.json()["category"] == "general"


@pytest.mark.parametrize(
    "body",
    [
        {"query": ""},
        {"query": "dean", "max_sections": 0},
        {"query": "dean", "max_results": -2},
        {"query": "dean", "query_type": "bogus"},
        {"query": "x" * 501},
    ],
)
def test_search_rejects_invalid_input(loaded, body):
    r = client.post("/api/search", json=body)
    assert r.status_code == 422
    assert "detail" in r.json()


def test_classify():
    """POST /api/classify works without a loaded snapshot."""
    r = client.post("/api/classify", json={"query": "Who is the dean of FACET?"})
    assert r.status_code == 200
    assert r.json() == {"query": "Who is the dean of FACET?", "category": "deans", "rule": "deans"}


def test_classify_office_head_before_leadership():
    r = client.post("/api/classify", json={"query": "Who is the director of OSA?"})
    assert r.json()["category"] == "office"
    assert r.json()["rule"] == "office"


def test_classify_unmatched_query_is_general():
    r = client.post("/api/classify", json={"query": "Where is the library?"})
    assert r.json()["category"] == "general"
    assert r.json()["rule"] is None


def test_classify_rejects_blank_query():
    assert client.post("/api/classify", json={"query": "   "}).status_code == 422
    assert client.post("/api/classify", json={}).status_code == 422


def test_categories_in_rule_order():
    r = client.get("/api/categories")
    assert r.status_code == 200
    data = r.json()
    assert data["default"] == "general"
    assert [rule["position"] for rule in data["rules"]] == list(range(len(data["rules"])))
    names = [rule["rule"] for rule in data["rules"]]
    assert names.index("deans") < names.index("office") < names.index("leadership") < names.index("student_org")
    assert data["rules"][-1]["category"] == "comprehensive"
