"""Tests for the scanner service wiring."""

import asyncio

import httpx
import pytest

from backend.app.core import MemoryStore, NotFoundError, ScanInProgressError
from backend.app.features.scanner.models import (
    HttpScanConfig,
    PortScanConfig,
    ScanState,
    Surface,
    TestConfig,
    Verdict,
)
from backend.app.features.scanner.probes import HttpProbe
from backend.app.features.scanner.services import ScannerService
from conftest import RecordingProbe, make_endpoint


@pytest.fixture
def requested():
    return []


@pytest.fixture
def service(requested) -> ScannerService:
    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, text="ok")

    return ScannerService(
        store=MemoryStore(),
        session_store=MemoryStore(),
        http_probe=HttpProbe(transport=httpx.MockTransport(handler)),
        port_probe=RecordingProbe(),
        poll_interval=0.01,
        settle_delay=0.0,
    )


class TestScannerService:
    """Tests for project defaults applied when starting scans."""

    async def test_project_ip_overrides_endpoint_host(self, service, requested) -> None:
        project = service.projects.add_project("Staging", ip_address="10.0.0.5")
        service.projects.add_endpoints(
            [make_endpoint(url="http://shop.example.com:8080/health", project_id=project.id)]
        )
        service.select_project(project.id)

        await service.start_http_scan()
        summary = await service.http.wait()

        assert requested == ["http://10.0.0.5:8080/health"]
        assert summary.total == 1
        result = service.get_results(Surface.HTTP)[0]
        # Results keep the endpoint's own URL
        assert result.url == "http://shop.example.com:8080/health"
        assert result.status == Verdict.PASS
        assert result.project_id == project.id

    async def test_port_target_defaults_to_project_ip(self, service) -> None:
        project = service.projects.add_project("Staging", ip_address="10.0.0.5")

        await service.start_port_scan(
            PortScanConfig(project_id=project.id, scan_type="custom", custom_ports="22")
        )

        results = service.get_results("ports", project.id)
        assert [(r.host, r.port) for r in results] == [("10.0.0.5", 22)]

    async def test_results_filtered_by_project(self, service) -> None:
        await service.start_port_scan(
            PortScanConfig(target="a.test", project_id="p1", scan_type="custom", custom_ports="22")
        )
        await service.start_port_scan(
            PortScanConfig(target="b.test", project_id="p2", scan_type="custom", custom_ports="80")
        )
        assert [r.port for r in service.get_results(Surface.PORTS, "p2")] == [80]
        assert len(service.get_results(Surface.PORTS)) == 2

    def test_select_unknown_project(self, service) -> None:
        with pytest.raises(NotFoundError):
            service.select_project("missing")
        assert service.selected_project_id is None

    async def test_surfaces_are_independent(self, service) -> None:
        project = service.projects.add_project("Staging")
        service.projects.add_endpoints([make_endpoint(project_id=project.id)])

        http_task = service.start_http_scan(HttpScanConfig(project_id=project.id))
        port_task = service.start_port_scan(
            PortScanConfig(target="10.0.0.5", scan_type="custom", custom_ports="22,80")
        )
        await http_task
        await port_task

        assert service.http.state is ScanState.IDLE
        assert service.ports.state is ScanState.IDLE


class TestSingleEndpoint:
    """Tests for testing one endpoint outside a scan."""

    async def test_result_appended_to_log(self, service, requested) -> None:
        project = service.projects.add_project("Staging", ip_address="10.0.0.5")
        service.projects.add_endpoints(
            [make_endpoint(url="http://shop.example.com/health", project_id=project.id)]
        )

        result = await service.test_endpoint("ep1")

        assert requested == ["http://10.0.0.5/health"]
        assert result.status == Verdict.PASS
        assert result.url == "http://shop.example.com/health"
        assert service.get_results(Surface.HTTP) == [result]
        assert service.http.state is ScanState.IDLE

    async def test_test_config_applies(self, service) -> None:
        service.projects.add_endpoints([make_endpoint()])

        result = await service.test_endpoint(
            "ep1", TestConfig(check_content=True, expected_content="healthy")
        )

        assert result.status == Verdict.FAIL
        assert "Expected content not found: 'healthy'" in result.vulnerabilities

    async def test_unknown_endpoint(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.test_endpoint("missing")
        assert service.get_results(Surface.HTTP) == []

    async def test_rejected_while_scan_runs(self, service) -> None:
        project = service.projects.add_project("Staging")
        service.projects.add_endpoints([make_endpoint(project_id=project.id)])

        task = service.start_http_scan(HttpScanConfig(project_id=project.id))
        with pytest.raises(ScanInProgressError):
            await service.test_endpoint("ep1")
        await task

        assert len(service.get_results(Surface.HTTP)) == 1


class TestShutdown:
    """Tests for stopping the service with runs in flight."""

    async def test_shutdown_cancels_active_run(self) -> None:
        started = asyncio.Event()

        async def slow(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(30)
            return httpx.Response(200)

        service = ScannerService(
            store=MemoryStore(),
            session_store=MemoryStore(),
            http_probe=HttpProbe(transport=httpx.MockTransport(slow)),
            port_probe=RecordingProbe(),
            poll_interval=0.01,
            settle_delay=0.0,
        )
        project = service.projects.add_project("Staging")
        service.projects.add_endpoints([make_endpoint(project_id=project.id)])

        task = service.start_http_scan(HttpScanConfig(project_id=project.id))
        await asyncio.wait_for(started.wait(), timeout=1)
        await asyncio.wait_for(service.shutdown(), timeout=1)

        assert task.done()
        assert not service.http.is_active
        assert service.http.state is ScanState.IDLE
        assert service.http.last_summary.stopped

    async def test_shutdown_when_idle(self, service) -> None:
        await service.shutdown()
        assert service.http.state is ScanState.IDLE
        assert service.ports.state is ScanState.IDLE
