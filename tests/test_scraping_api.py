"""
tests/test_scraping_api.py

HTTP surface for scrape run control, served from an in-memory store.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.scraping.registry import StrategyRegistry
from app.services.scraping_service import ScrapingService, get_scraping_service
from fakes import FakeCompanyRegistry, PageFeed, page_strategy_class, rows

RUNS_URL = "/scraping/runs"


def _build_client(store, settings) -> tuple[TestClient, ScrapingService]:
    service = ScrapingService(
        store=store,
        registry=StrategyRegistry({("hse", "case"): page_strategy_class(PageFeed(pages={1: rows("A", 3)}))}),
        settings=settings,
        registry_client=FakeCompanyRegistry(),
    )
    app = create_app(lifespan=False)
    app.dependency_overrides[get_scraping_service] = lambda: service
    return TestClient(app), service


@pytest.fixture()
def client(store, settings) -> TestClient:
    test_client, _ = _build_client(store, settings)
    return test_client


def _start(client: TestClient, **overrides) -> dict:
    payload = {"source": "hse", "enforcement_type": "case", "start_page": "1", "max_pages": "2"}
    payload.update(overrides)
    response = client.post(RUNS_URL, json=payload)
    assert response.status_code == 202, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestStartRun:
    def test_run_is_accepted_and_completes_in_background(self, client: TestClient) -> None:
        started = _start(client)

        assert started["status"] == "pending"
        assert started["params"] == {"start_page": 1, "max_pages": 2, "database": "convictions"}

        detail = client.get(f"/scraping/sessions/{started['session_id']}").json()
        assert detail["status"] == "completed"
        assert detail["counters"]["records_created"] == 3
        assert detail["progress"] == 100.0
        assert detail["display"]["strategy"] == "Scripted page feed"
        assert detail["started_at"] is not None
        assert detail["completed_at"] is not None

    def test_invalid_params(self, client: TestClient) -> None:
        response = client.post(RUNS_URL, json={"source": "hse", "enforcement_type": "case", "max_pages": 999})

        assert response.status_code == 400
        assert "max_pages" in response.json()["detail"]

    def test_unknown_strategy(self, client: TestClient) -> None:
        response = client.post(RUNS_URL, json={"source": "ons", "enforcement_type": "case"})

        assert response.status_code == 404

    def test_missing_source_is_rejected_by_schema(self, client: TestClient) -> None:
        response = client.post(RUNS_URL, json={"enforcement_type": "case"})

        assert response.status_code == 422

    def test_manual_runs_disabled(self, store, settings) -> None:
        client, _ = _build_client(store, replace(settings, manual_scraping_enabled=False))

        response = client.post(RUNS_URL, json={"source": "hse", "enforcement_type": "case"})

        assert response.status_code == 403
        assert store.sessions == {}


class TestStopRun:
    def test_stop_unknown_session(self, client: TestClient) -> None:
        response = client.post(f"{RUNS_URL}/stop", json={"session_id": "missing"})

        assert response.status_code == 404

    def test_stop_finished_session_conflicts(self, client: TestClient) -> None:
        started = _start(client)

        response = client.post(f"{RUNS_URL}/stop", json={"session_id": started["session_id"]})

        assert response.status_code == 409

    def test_stop_pending_session(self, store, settings) -> None:
        client, _ = _build_client(store, settings)
        session = store.create_session(
            source="hse",
            enforcement_type="case",
            params={"start_page": 1, "max_pages": 2},
            process_all_records=False,
            current_position=1,
        )

        response = client.post(f"{RUNS_URL}/stop", json={"session_id": session.session_id})

        assert response.status_code == 202
        assert response.json()["stop_requested"] is True


class TestSessionQueries:
    def test_list_sessions_filters(self, client: TestClient) -> None:
        first = _start(client)
        second = _start(client)

        listed = client.get("/scraping/sessions", params={"status": "completed", "limit": 1}).json()
        everything = client.get("/scraping/sessions", params={"source": "hse"}).json()
        other_source = client.get("/scraping/sessions", params={"source": "ea"}).json()

        assert [item["session_id"] for item in listed["sessions"]] == [second["session_id"]]
        assert [item["session_id"] for item in everything["sessions"]] == [second["session_id"], first["session_id"]]
        assert other_source["sessions"] == []

    def test_list_limit_bounds(self, client: TestClient) -> None:
        assert client.get("/scraping/sessions", params={"limit": 0}).status_code == 422
        assert client.get("/scraping/sessions", params={"limit": 501}).status_code == 422

    def test_unknown_session(self, client: TestClient) -> None:
        assert client.get("/scraping/sessions/missing").status_code == 404
        assert client.get("/scraping/sessions/missing/events").status_code == 404

    def test_progress_events(self, client: TestClient) -> None:
        started = _start(client)
        url = f"/scraping/sessions/{started['session_id']}/events"

        events = client.get(url).json()["events"]
        later = client.get(url, params={"after": 1}).json()["events"]

        assert [event["sequence"] for event in events] == [1, 2]
        assert events[0]["phase"] == "running"
        assert events[-1]["phase"] == "completed"
        assert events[-1]["terminal"] is True
        assert [event["sequence"] for event in later] == [2]

    def test_processing_logs(self, client: TestClient) -> None:
        started = _start(client)

        response = client.get(f"/scraping/sessions/{started['session_id']}/logs")

        assert response.status_code == 200
        body = response.json()
        assert body["session_id"] == started["session_id"]
        assert [entry["batch_or_page"] for entry in body["logs"]] == [1, 2]
        first = body["logs"][0]
        assert first["source"] == "hse"
        assert first["items_found"] == 3
        assert first["items_created"] == 3
        assert first["items_failed"] == 0
        assert first["creation_errors"] == []
        assert first["created_at"] is not None

    def test_processing_logs_unknown_session(self, client: TestClient) -> None:
        assert client.get("/scraping/sessions/missing/logs").status_code == 404

    def test_strategies(self, client: TestClient) -> None:
        response = client.get("/scraping/strategies")

        assert response.status_code == 200
        assert response.json() == {
            "strategies": [
                {
                    "source": "hse",
                    "enforcement_type": "case",
                    "display_name": "Scripted page feed",
                    "cursor_kind": "page",
                }
            ]
        }
