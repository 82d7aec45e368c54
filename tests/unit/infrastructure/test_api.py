"""Tests for the HTTP query boundary."""

import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from quote_pipeline.application.pipeline import QuotePipeline
from quote_pipeline.domain.config import PipelineConfig
from quote_pipeline.domain.enums import RecordType
from quote_pipeline.domain.exceptions import ConnectionError, PersistenceError
from quote_pipeline.main import HTTP_RECORD_NAME, create_app


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def pipeline(tmp_path):
    config = PipelineConfig.from_mapping(
        {
            "generators": [
                {"name": "MacroHard", "symbol": "MCH", "period": 10},
                {"name": "Black Coat", "symbol": "BCT", "period": 10},
            ],
            "audit": {"storage": {"database": str(tmp_path / "audit.db")}},
            "http_port": 9000,
        }
    )
    return QuotePipeline(config)


@pytest.fixture
def client(pipeline):
    with TestClient(create_app(pipeline=pipeline)) as client:
        wait_until(lambda: len(pipeline.cache) == 2)
        wait_until(lambda: pipeline.metrics.counter("audit.persisted") >= 3)
        yield client


class TestQuotesEndpoint:
    """Test cases for GET /quotes."""

    def test_all_quotes(self, client):
        response = client.get("/quotes")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"MacroHard", "Black Coat"}
        assert body["MacroHard"]["symbol"] == "MCH"
        assert body["MacroHard"]["exchange"] == "simulated stock exchange"

    def test_one_quote(self, client):
        response = client.get("/quotes", params={"name": "Black Coat"})

        assert response.status_code == 200
        assert response.json()["name"] == "Black Coat"

    def test_unknown_quote(self, client):
        response = client.get("/quotes", params={"name": "Divinator"})

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "QUOTE_NOT_FOUND"
        assert error["message"] == "No quote for 'Divinator'"
        assert error["details"] == {"name": "Divinator"}


class TestAuditEndpoint:
    """Test cases for GET /audit."""

    def test_latest_records(self, client):
        response = client.get("/audit", params={"limit": 3})

        assert response.status_code == 200
        records = response.json()
        assert len(records) == 3
        assert records[0]["id"] > records[1]["id"] > records[2]["id"]
        assert records[0]["operation"]["name"] in {"MacroHard", "Black Coat"}

    def test_default_limit(self, client, pipeline):
        wait_until(lambda: pipeline.metrics.counter("audit.persisted") >= 12)
        assert len(client.get("/audit").json()) == 10

    def test_negative_limit(self, client):
        response = client.get("/audit", params={"limit": -1})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_storage_failure(self, client, pipeline):
        pipeline.audit_log.query = AsyncMock(
            side_effect=PersistenceError("disk I/O error", statement="SELECT ...")
        )

        response = client.get("/audit")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "PERSISTENCE_ERROR"
        assert error["details"] is None

    def test_unreachable_storage(self, client, pipeline):
        pipeline.audit_log.query = AsyncMock(side_effect=ConnectionError("pool closed"))

        response = client.get("/audit")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STORAGE_UNAVAILABLE"


class TestHealthEndpoint:
    """Test cases for GET /health."""

    def test_started_pipeline(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["state"] == "STARTED"
        assert body["instruments"] == ["MacroHard", "Black Coat"]
        assert body["cached"] == 2
        assert body["metrics"]["counters"]["quotes.published"] > 0


class TestLifespan:
    """Test cases for the application lifespan."""

    def test_http_endpoint_published_while_serving(self, pipeline):
        with TestClient(create_app(pipeline=pipeline)):
            records = {r.name: r for r in pipeline.directory.records()}
            assert records[HTTP_RECORD_NAME].record_type is RecordType.HTTP_ENDPOINT
            assert records[HTTP_RECORD_NAME].location["port"] == 9000

        assert pipeline.directory.records() == []
        assert pipeline.state.value == "STOPPED"
