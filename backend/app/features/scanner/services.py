# backend/app/features/scanner/services.py
"""Scanner service - wires stores, surfaces and controllers together."""

import asyncio
from pathlib import Path
from typing import List, Optional, Union

from backend.app.core import (
    SESSION_KEYS,
    STORAGE_KEYS,
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    ScanInProgressError,
    logs,
    settings,
)
from backend.app.features.projects.repository import ProjectRepository
from .controller import ScanController
from .models import (
    HttpScanConfig,
    PortProbeResult,
    PortScanConfig,
    ScanResult,
    ScanState,
    Surface,
    TestConfig,
)
from .probes import HttpProbe, PortProbe
from .session import SessionBridge
from .sink import ResultSink
from .surfaces import HttpScanSurface, PortScanSurface


class ScannerService:
    """Owns one ScanController per surface plus the stores they write to.

    ``store`` outlives the process (projects, endpoints, result logs);
    ``session_store`` lives as long as the service's owner and carries the
    controllers' session snapshots and the selected project. Re-creating a
    service over the same stores is the equivalent of a UI remount.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        session_store: Optional[KeyValueStore] = None,
        http_probe: Optional[HttpProbe] = None,
        port_probe: Optional[PortProbe] = None,
        poll_interval: Optional[float] = None,
        settle_delay: Optional[float] = None,
    ) -> None:
        self.store = store if store is not None else JsonFileStore(Path(settings.DATA_DIR))
        self.session_store = session_store if session_store is not None else MemoryStore()
        self.projects = ProjectRepository(self.store)

        self.http = ScanController(
            HttpScanSurface(self.projects, http_probe),
            ResultSink(self.store, STORAGE_KEYS["TEST_RESULTS"], ScanResult),
            SessionBridge(self.session_store, SESSION_KEYS["SCANNER_STATE"]),
            poll_interval=poll_interval,
            settle_delay=settle_delay,
        )
        self.ports = ScanController(
            PortScanSurface(port_probe),
            ResultSink(self.store, STORAGE_KEYS["PORT_RESULTS"], PortProbeResult),
            SessionBridge(self.session_store, SESSION_KEYS["PORT_SCANNER_STATE"]),
            poll_interval=poll_interval,
            settle_delay=settle_delay,
        )
        self._testing_endpoint = False

    def controller(self, surface: Union[Surface, str]) -> ScanController:
        return self.http if Surface(surface) is Surface.HTTP else self.ports

    # ========== Project selection ==========

    @property
    def selected_project_id(self) -> Optional[str]:
        return self.session_store.get(SESSION_KEYS["SELECTED_PROJECT"])

    def select_project(self, project_id: str) -> None:
        """Remember ``project_id`` as the default target of later scans."""
        project = self.projects.require_project(project_id)
        self.session_store.set(SESSION_KEYS["SELECTED_PROJECT"], project.id)
        logs.info("Project selected", "scanner", {"project_id": project.id, "name": project.name})

    # ========== Starting scans ==========

    def start_http_scan(self, config: Optional[HttpScanConfig] = None) -> asyncio.Task:
        """Start the HTTP surface for a project (default: the selected one).

        The project's IP override, when set, becomes the run's target host.
        """
        if self._testing_endpoint:
            raise ScanInProgressError("An endpoint test is running")
        config = (config or HttpScanConfig()).model_copy()
        if not config.project_id:
            config.project_id = self.selected_project_id
        if config.project_id and config.target_override is None:
            project = self.projects.get_project(config.project_id)
            if project is not None:
                config.target_override = project.ip_address
        return self.http.start(config)

    def start_port_scan(self, config: Optional[PortScanConfig] = None) -> asyncio.Task:
        """Start the port surface (default target: the project's IP)."""
        config = (config or PortScanConfig()).model_copy()
        if not config.project_id:
            config.project_id = self.selected_project_id
        if not config.target and config.project_id:
            project = self.projects.get_project(config.project_id)
            if project is not None and project.ip_address:
                config.target = project.ip_address
        return self.ports.start(config)

    # ========== Single endpoint ==========

    async def test_endpoint(self, endpoint_id: str, test: Optional[TestConfig] = None) -> ScanResult:
        """Test one endpoint outside a scan and append the result to the HTTP log.

        Uses the same probe and classifier as a full scan, including the
        project's IP override.

        Raises:
            NotFoundError: If the endpoint does not exist
            ScanInProgressError: If an HTTP scan or another endpoint test is running
        """
        endpoint = self.projects.require_endpoint(endpoint_id)
        if self._testing_endpoint or self.http.is_active or self.http.state is not ScanState.IDLE:
            raise ScanInProgressError(
                "Cannot test an endpoint while an HTTP scan is running",
                {"endpoint_id": endpoint_id},
            )

        config = HttpScanConfig(project_id=endpoint.project_id or None, test=test or TestConfig())
        if endpoint.project_id:
            project = self.projects.get_project(endpoint.project_id)
            if project is not None:
                config.target_override = project.ip_address

        surface = self.http.surface
        logs.info("Testing endpoint", "scanner", {"endpoint_id": endpoint.id, "name": endpoint.name})
        self._testing_endpoint = True
        try:
            async with surface.probe:
                try:
                    result = await surface.execute(endpoint, config)
                except Exception as e:
                    logs.error(
                        "Probe raised, recording error result",
                        "scanner",
                        {"endpoint_id": endpoint.id},
                        exception=e,
                    )
                    result = surface.error_result(endpoint, config, e)
        finally:
            self._testing_endpoint = False

        self.http.sink.append(result)
        logs.info(
            "Endpoint test finished",
            "scanner",
            {
                "endpoint_id": endpoint.id,
                "status": result.status.value,
                "findings": len(result.vulnerabilities),
            },
        )
        return result

    # ========== Result logs ==========

    def get_results(
        self, surface: Union[Surface, str], project_id: Optional[str] = None
    ) -> List[Union[ScanResult, PortProbeResult]]:
        """Full persisted result log for a surface, optionally for one project."""
        results = self.controller(surface).sink.results
        if project_id is None:
            return results
        return [r for r in results if r.project_id == project_id]

    async def shutdown(self) -> None:
        """Stop any active runs and wait until their tasks have exited."""
        for controller in (self.http, self.ports):
            controller.stop()
            await controller.cancel()
            controller.session.teardown()
        logs.info("Scanner service shut down", "scanner")


_service: Optional[ScannerService] = None


def get_scanner_service() -> ScannerService:
    """Get the global scanner service instance."""
    global _service
    if _service is None:
        _service = ScannerService()
    return _service


def set_scanner_service(service: Optional[ScannerService]) -> None:
    """Set (or reset) the global scanner service instance."""
    global _service
    _service = service
