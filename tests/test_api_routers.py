"""
tests/test_api_routers.py

HTTP contract of the scan and scrape-monitoring routers. Services are
replaced through FastAPI dependency overrides with in-memory stores, so no
database or network is touched.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import scans_router, scrape_monitoring_router
from app.config import MonitoringSettings, ScanSettings
from app.domain.scanning import HotelRecord
from app.scanning.batch_processor import BatchProcessor
from app.scanning.orchestrator import NOTHING_TO_RESUME, ScanOrchestrator
from app.scanning.storage.memory import InMemoryCellResultStore, InMemoryScanStore
from app.scraping.storage.memory import InMemoryScrapeEventLog
from app.scraping.types import ScrapeClassification, ScrapeEvent, ScrapeRequest, ScrapeResult, ScrapeStatus
from app.services.scan_service import get_scan_orchestrator
from app.services.scrape_monitoring_service import ScrapeMonitoringService, get_scrape_monitoring_service


class GreenScraper:
    def hotel_identifier(self, hotel: HotelRecord) -> str:
        return hotel.code

    def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        return ScrapeResult(status=ScrapeStatus.GREEN, payload={"rooms": [{"name": "Double"}]})

    def close(self) -> None:
        pass


@pytest.fixture()
def scan_store() -> InMemoryScanStore:
    return InMemoryScanStore(hotels=[HotelRecord(id=1, name="Alpha", code="a"), HotelRecord(id=2, name="Beta", code="b")])


@pytest.fixture()
def event_log() -> InMemoryScrapeEventLog:
    return InMemoryScrapeEventLog()


@pytest.fixture()
def client(scan_store, event_log) -> TestClient:
    settings = ScanSettings(default_batch_size=3, resume_batch_size=3, worker_concurrency=2, kick_on_create=False)
    result_store = InMemoryCellResultStore()
    orchestrator = ScanOrchestrator(
        scan_store=scan_store,
        result_store=result_store,
        batch_processor=BatchProcessor(
            scan_store=scan_store,
            result_store=result_store,
            scraper_factory=lambda _name: GreenScraper(),
            settings=settings,
        ),
        default_source_name="booking_com",
        known_sources=["booking_com"],
        settings=settings,
        today=lambda: date(2026, 10, 19),
    )
    monitoring = ScrapeMonitoringService(
        event_log=event_log,
        scan_store=scan_store,
        settings=MonitoringSettings(min_samples=1),
        now=lambda: datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc),
    )

    application = FastAPI()
    application.include_router(scans_router)
    application.include_router(scrape_monitoring_router)
    application.dependency_overrides[get_scan_orchestrator] = lambda: orchestrator
    application.dependency_overrides[get_scrape_monitoring_service] = lambda: monitoring
    return TestClient(application)


class TestScansRouter:
    def test_create_scan(self, client: TestClient) -> None:
        response = client.post(
            "/scans",
            json={"base_check_in": "2026-11-01", "days": 3, "stay_nights": 2, "adults": 2},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["total_cells"] == 6
        assert body["base_check_in"] == "2026-11-01"
        assert body["days"] == 3
        assert body["stay_nights"] == 2
        assert body["status"] == "running"
        assert body["first_batch"] is None
        uuid.UUID(body["scan_id"])

    def test_create_with_empty_body_uses_defaults(self, client: TestClient) -> None:
        response = client.post("/scans", json={})

        assert response.status_code == 201
        assert response.json()["base_check_in"] == "2026-10-24"

    def test_create_invalid_is_bad_request(self, client: TestClient) -> None:
        response = client.post("/scans", json={"days": 0})
        assert response.status_code == 400

    def test_process_and_detail(self, client: TestClient) -> None:
        scan_id = client.post("/scans", json={"days": 2}).json()["scan_id"]

        batch = client.post("/scans/process", json={"scan_id": scan_id, "start_index": 0, "size": 4})
        detail = client.get(f"/scans/{scan_id}")

        assert batch.status_code == 200
        assert batch.json()["processed"] == 4
        assert batch.json()["next_index"] == 4
        assert batch.json()["done"] is True
        body = detail.json()
        assert body["status"] == "done"
        assert body["completed_cells"] == 4
        assert body["progress_percent"] == 100.0
        assert body["hotel_ids"] == [1, 2]
        assert len(body["results"]) == 4
        assert {cell["status"] for cell in body["results"]} == {"green"}

    def test_process_next(self, client: TestClient) -> None:
        assert client.post("/scans/process-next").json()["message"] == NOTHING_TO_RESUME

        scan_id = client.post("/scans", json={"days": 2}).json()["scan_id"]
        body = client.post("/scans/process-next").json()

        assert body["scan_id"] == scan_id
        assert body["processed"] == 3
        assert body["next_index"] == 3
        assert body["done"] is False
        assert body["total"] == 4

    def test_cancel_then_conflict(self, client: TestClient) -> None:
        scan_id = client.post("/scans", json={}).json()["scan_id"]

        first = client.post(f"/scans/{scan_id}/cancel")
        second = client.post(f"/scans/{scan_id}/cancel")
        processed = client.post("/scans/process", json={"scan_id": scan_id})

        assert first.status_code == 200
        assert first.json()["status"] == "cancelled"
        assert second.status_code == 409
        assert processed.status_code == 409

    def test_unknown_and_malformed_ids(self, client: TestClient) -> None:
        assert client.get(f"/scans/{uuid.uuid4()}").status_code == 404
        assert client.post(f"/scans/{uuid.uuid4()}/cancel").status_code == 404
        assert client.post("/scans/process", json={"scan_id": str(uuid.uuid4())}).status_code == 404
        assert client.get("/scans/not-a-uuid").status_code == 422

    def test_list_scans(self, client: TestClient) -> None:
        client.post("/scans", json={})
        scan_id = client.post("/scans", json={}).json()["scan_id"]
        client.post(f"/scans/{scan_id}/cancel")

        everything = client.get("/scans").json()
        cancelled = client.get("/scans", params={"status": "cancelled"}).json()

        assert everything["total"] == 2
        assert [item["scan_id"] for item in cancelled["items"]] == [scan_id]


class TestScrapeMonitoringRouter:
    def _seed(self, event_log: InMemoryScrapeEventLog, scan_id: uuid.UUID) -> None:
        base = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
        for index, (status, http_status, reason) in enumerate(
            [
                (ScrapeClassification.SUCCESS, 200, None),
                (ScrapeClassification.BLOCK, 403, "Bot detection - HTTP 403 Forbidden"),
                (ScrapeClassification.BLOCK, 403, "Bot detection - HTTP 403 Forbidden"),
                (ScrapeClassification.BLOCK, 403, "Bot detection - HTTP 403 Forbidden"),
            ]
        ):
            event_log.append(
                ScrapeEvent(
                    timestamp=base.replace(minute=index),
                    scrape_status=status,
                    url="https://www.booking.com/hotel/de/a.html",
                    scan_id=scan_id,
                    hotel_id=1,
                    hotel_name="Alpha",
                    http_status=http_status,
                    delay_ms=3500,
                    reason=reason,
                    user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
                )
            )

    def test_metrics_with_thresholds(self, client: TestClient, event_log) -> None:
        scan_id = uuid.uuid4()
        self._seed(event_log, scan_id)

        body = client.get("/scrape-metrics", params={"scan_id": str(scan_id), "check_thresholds": "true"}).json()

        assert body["total_attempts"] == 4
        assert body["block_count"] == 3
        assert body["success_percentage"] == 25.0
        codes = {alert["code"] for alert in body["alerts"]}
        assert codes == {"low_success_rate", "high_block_rate", "consecutive_forbidden"}

    def test_metrics_without_thresholds(self, client: TestClient, event_log) -> None:
        scan_id = uuid.uuid4()
        self._seed(event_log, scan_id)

        body = client.get("/scrape-metrics", params={"scan_id": str(scan_id)}).json()

        assert body["alerts"] == []

    def test_metrics_requires_scan_id(self, client: TestClient) -> None:
        assert client.get("/scrape-metrics").status_code == 422

    def test_health(self, client: TestClient, event_log) -> None:
        self._seed(event_log, uuid.uuid4())

        body = client.get("/scrape-health", params={"days": 3}).json()

        assert body["days"] == 3
        assert body["daily_metrics"][0]["date"] == "2026-10-19"
        assert body["daily_metrics"][0]["block_count"] == 3
        assert body["failure_reasons"] == [
            {"reason": "Bot detection - HTTP 403 Forbidden", "scrape_status": "block", "count": 3}
        ]

    def test_logs_filtered_and_truncated(self, client: TestClient, event_log) -> None:
        scan_id = uuid.uuid4()
        self._seed(event_log, scan_id)

        body = client.get("/scrape-logs", params={"scan_id": str(scan_id), "status": "block", "limit": 2}).json()

        assert body["count"] == 2
        assert all(item["scrape_status"] == "block" for item in body["items"])
        assert body["items"][0]["timestamp"] > body["items"][1]["timestamp"]
        assert all(len(item["user_agent"]) <= 50 for item in body["items"])
