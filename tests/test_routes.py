"""API tests for the scanner routes."""

import time

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.core import MemoryStore, settings
from backend.app.features.scanner.probes import HttpProbe, PortProbe
from backend.app.features.scanner.services import (
    ScannerService,
    get_scanner_service,
    set_scanner_service,
)
from backend.app.main import app
from conftest import make_endpoint

API = f"{settings.API_PREFIX}/scanner"


def mock_http(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/broken":
        return httpx.Response(500, text="ORA-00942: table or view does not exist")
    return httpx.Response(200, text="ok")


async def refuse(host: str, port: int):
    raise ConnectionRefusedError()


@pytest.fixture
def service():
    service = ScannerService(
        store=MemoryStore(),
        session_store=MemoryStore(),
        http_probe=HttpProbe(transport=httpx.MockTransport(mock_http)),
        port_probe=PortProbe(connector=refuse),
        poll_interval=0.01,
        settle_delay=0.0,
    )
    set_scanner_service(service)
    app.dependency_overrides[get_scanner_service] = lambda: service
    yield service
    app.dependency_overrides.clear()
    set_scanner_service(None)


@pytest.fixture
def client(service):
    with TestClient(app) as client:
        yield client


def wait_for_summary(client: TestClient, surface: str) -> dict:
    for _ in range(300):
        body = client.get(f"{API}/{surface}/status").json()
        if body["status"]["state"] == "idle" and body["last_summary"]:
            return body
        time.sleep(0.01)
    raise AssertionError(f"{surface} scan did not finish")


class TestStatusRoutes:
    """Tests for read-only routes on a fresh service."""

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}

    def test_idle_status(self, client: TestClient) -> None:
        body = client.get(f"{API}/http/status").json()
        assert body["status"]["state"] == "idle"
        assert body["status"]["progress"] == 0
        assert body["last_summary"] is None

    def test_empty_results(self, client: TestClient) -> None:
        assert client.get(f"{API}/ports/results").json() == []

    def test_unknown_surface(self, client: TestClient) -> None:
        assert client.get(f"{API}/dns/status").status_code == 422

    def test_pause_when_idle_not_accepted(self, client: TestClient) -> None:
        body = client.post(f"{API}/http/pause").json()
        assert body["accepted"] is False
        assert body["status"]["state"] == "idle"


class TestStartRoutes:
    """Tests for starting scans through the API."""

    def test_start_without_project(self, client: TestClient) -> None:
        resp = client.post(f"{API}/http/start", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "No project selected"

    def test_start_without_endpoints(self, client: TestClient, service: ScannerService) -> None:
        project = service.projects.add_project("Empty")
        resp = client.post(f"{API}/http/start", json={"project_id": project.id})
        assert resp.status_code == 400
        assert resp.json()["error"] == (
            "No endpoints configured for this project. Add endpoints first."
        )
        assert client.get(f"{API}/http/status").json()["status"]["state"] == "idle"

    def test_select_unknown_project(self, client: TestClient) -> None:
        resp = client.post(f"{API}/projects/select", json={"project_id": "missing"})
        assert resp.status_code == 404

    def test_port_target_must_be_bare_host(self, client: TestClient) -> None:
        resp = client.post(f"{API}/ports/start", json={"target": "http://10.0.0.5/"})
        assert resp.status_code == 422

    def test_http_scan_of_selected_project(self, client: TestClient, service: ScannerService) -> None:
        project = service.projects.add_project("Shop")
        service.projects.add_endpoints(
            [
                make_endpoint(id="a", url="http://shop.test/ok", project_id=project.id),
                make_endpoint(id="b", url="http://shop.test/broken", project_id=project.id),
            ]
        )
        assert client.post(f"{API}/projects/select", json={"project_id": project.id}).status_code == 200

        resp = client.post(f"{API}/http/start", json={})
        assert resp.status_code == 200
        assert resp.json()["total"] == 2

        body = wait_for_summary(client, "http")
        assert body["status"]["progress"] == 100
        assert body["last_summary"]["total"] == 2

        results = client.get(f"{API}/http/results", params={"project_id": project.id}).json()
        assert [r["endpoint_name"] for r in results] == ["Health", "Health"]
        assert [r["status_code"] for r in results] == [200, 500]
        assert "Potential SQL Error Information Disclosure" in results[1]["vulnerabilities"]

        export = client.get(f"{API}/http/export", params={"format": "csv"})
        assert export.headers["content-type"].startswith("text/csv")
        assert "vulnerability-test-results_" in export.headers["content-disposition"]
        assert len(export.text.strip().splitlines()) == 3

    def test_port_scan(self, client: TestClient) -> None:
        resp = client.post(
            f"{API}/ports/start",
            json={"target": "10.0.0.5", "scan_type": "custom", "custom_ports": "22,80"},
        )
        assert resp.json()["total"] == 2

        body = wait_for_summary(client, "ports")
        assert body["last_summary"]["passed"] == 0

        results = client.get(f"{API}/ports/results").json()
        assert [(r["port"], r["status"]) for r in results] == [(22, "closed"), (80, "closed")]

        assert client.post(f"{API}/ports/clear").json()["accepted"] is True
        assert client.get(f"{API}/ports/results").json() == []


class TestEndpointTestRoute:
    """Tests for testing a single endpoint through the API."""

    def test_single_endpoint(self, client: TestClient, service: ScannerService) -> None:
        service.projects.add_endpoints([make_endpoint(id="b", url="http://shop.test/broken")])

        resp = client.post(f"{API}/http/endpoints/b/test", json={"check_status": True})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "fail"
        assert body["status_code"] == 500
        assert "Expected status 200, got 500" in body["vulnerabilities"]
        results = client.get(f"{API}/http/results").json()
        assert [r["id"] for r in results] == [body["id"]]

    def test_body_is_optional(self, client: TestClient, service: ScannerService) -> None:
        service.projects.add_endpoints([make_endpoint()])
        resp = client.post(f"{API}/http/endpoints/ep1/test")
        assert resp.status_code == 200
        assert resp.json()["status"] == "pass"

    def test_unknown_endpoint(self, client: TestClient) -> None:
        resp = client.post(f"{API}/http/endpoints/missing/test")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Endpoint 'missing' not found"
