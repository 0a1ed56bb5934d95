"""Integration tests for API endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from lead_discovery.api.dependencies import get_pipeline
from lead_discovery.api.main import app
from lead_discovery.core.exceptions import (
    AnalysisError,
    BrowserPoolError,
    QueryGenerationError,
    SearchError,
    ValidationError,
)
from lead_discovery.models.responses import GoalResponse, LeadResult
from lead_discovery.models.search import SearchOptions, SearchResult

client = TestClient(app)


@pytest.fixture
def pipeline(storage):
    fake = MagicMock()
    fake.process_goal = AsyncMock()
    fake.storage = storage
    app.dependency_overrides[get_pipeline] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


def test_health_endpoint():
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


def test_versioned_health_reports_pipeline_state():
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["pipeline_ready"] is False


def test_root_endpoint():
    """Test root endpoint."""
    response = client.get("/")

    assert response.status_code == 200
    assert "Lead Discovery" in response.json()["name"]


def test_process_goal(pipeline):
    pipeline.process_goal.return_value = GoalResponse(
        success=True,
        query_id=1,
        queries=["dentist website design"],
        target_industry="dental",
        service_offering="web design",
        leads=[LeadResult(url="https://smile.example.com/", title="Smile", rank=1)],
        total_results=1,
        message="Found 1 leads"
    )

    response = client.post(
        "/api/v1/goals/process",
        json={"goal": "I make websites for dentists", "max_results": 5, "location": "Austin"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["target_industry"] == "dental"
    assert body["leads"][0]["url"] == "https://smile.example.com/"

    request = pipeline.process_goal.await_args.args[0]
    assert request.goal == "I make websites for dentists"
    assert request.max_results == 5
    assert request.location == "Austin"
    assert request.analyze is False


@pytest.mark.parametrize("payload", [
    {},
    {"goal": ""},
    {"goal": "   "},
    {"goal": "dentists", "max_results": 0},
    {"goal": "dentists", "max_results": 51},
])
def test_process_goal_rejects_invalid_requests(pipeline, payload):
    response = client.post("/api/v1/goals/process", json=payload)

    assert response.status_code == 422
    pipeline.process_goal.assert_not_awaited()


@pytest.mark.parametrize("error, status_code, error_type", [
    (ValidationError("Goal is required", field="goal"), 400, "validation_error"),
    (SearchError("Search failed: status 500"), 502, "external_service_error"),
    (QueryGenerationError("No valid queries generated"), 502, "external_service_error"),
    (BrowserPoolError("Browser pool is shut down"), 503, "pipeline_error"),
    (AnalysisError("No content available for analysis"), 500, "pipeline_error"),
])
def test_pipeline_errors_map_to_json(pipeline, error, status_code, error_type):
    pipeline.process_goal.side_effect = error

    response = client.post("/api/v1/goals/process", json={"goal": "dentists"})

    assert response.status_code == status_code
    body = response.json()
    assert body["type"] == error_type
    assert body["detail"] == error.message


def test_missing_pipeline_returns_503():
    response = client.post("/api/v1/goals/process", json={"goal": "dentists"})

    assert response.status_code == 503
    assert response.json()["type"] == "http_error"


def test_recent_queries_and_results(pipeline, storage):
    query_id = storage.save_query("I make websites for dentists", SearchOptions(target_industry="dental"))
    storage.save_results(query_id, [SearchResult(url="https://smile.example.com/", title="Smile", rank=1)])

    recent = client.get("/api/v1/queries/recent", params={"limit": 5})
    results = client.get(f"/api/v1/queries/{query_id}/results")
    analyses = client.get(f"/api/v1/queries/{query_id}/analyses")

    assert recent.status_code == 200
    assert recent.json()[0]["id"] == query_id
    assert recent.json()[0]["target_industry"] == "dental"
    assert results.json()[0]["url"] == "https://smile.example.com/"
    assert analyses.json() == []


def test_recent_queries_limit_is_validated(pipeline):
    assert client.get("/api/v1/queries/recent", params={"limit": 0}).status_code == 422


def test_analytics(pipeline, storage):
    storage.save_query("goal", {"target_industry": "dental"})

    response = client.get("/api/v1/analytics", params={"timeframe": "week"})

    assert response.status_code == 200
    assert response.json()["total_queries"] == 1
    assert response.json()["top_industries"][0]["name"] == "dental"


def test_analytics_invalid_timeframe(pipeline):
    response = client.get("/api/v1/analytics", params={"timeframe": "decade"})

    assert response.status_code == 400
    assert response.json()["details"]["field"] == "timeframe"
