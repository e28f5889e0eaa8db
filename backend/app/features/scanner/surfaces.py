# backend/app/features/scanner/surfaces.py
"""Scan surfaces: a worklist builder, a probe and a classifier bound together.

The controller is generic over surfaces; each surface supplies everything
that differs between HTTP endpoint testing and port probing.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from backend.app.core import ConfigurationError, settings
from backend.app.features.projects.models import Endpoint
from backend.app.features.projects.repository import ProjectRepository
from .classifiers import classify_http, classify_port
from .models import (
    HttpScanConfig,
    PortProbeResult,
    PortScanConfig,
    PortStatus,
    ScanResult,
    ScanSummary,
    Surface,
    Verdict,
)
from .probes import HttpProbe, PortProbe, Probe
from .worklist import build_http_worklist, build_port_worklist, get_service_name

ConfigT = TypeVar("ConfigT")
ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class ScanSurface(ABC, Generic[ConfigT, ItemT, ResultT]):
    """Everything the controller needs to scan one kind of target."""

    surface: Surface
    result_model: Type[ResultT]
    empty_worklist_message: str = "Nothing to scan"

    def __init__(self, probe: Probe) -> None:
        self.probe = probe

    @abstractmethod
    def validate(self, config: ConfigT) -> None:
        """Raise ConfigurationError when required settings are missing."""

    @abstractmethod
    def build_worklist(self, config: ConfigT) -> List[ItemT]:
        """Ordered items for one run."""

    @abstractmethod
    def item_id(self, item: ItemT) -> str:
        """Identifier shown as the current item while it is probed."""

    @abstractmethod
    def to_result(self, item: ItemT, outcome: Any, config: ConfigT) -> ResultT:
        """Classify a raw outcome into a result record."""

    @abstractmethod
    def error_result(self, item: ItemT, config: ConfigT, error: Exception) -> ResultT:
        """Result recorded when probing or classifying an item raised."""

    @abstractmethod
    def summarize(self, results: List[ResultT], stopped: bool) -> ScanSummary:
        """Counts and one-line message for a finished run."""

    def session_context(self, config: ConfigT) -> Dict[str, Any]:
        """Display data stored alongside the session snapshot."""
        return {}

    async def execute(self, item: ItemT, config: ConfigT) -> ResultT:
        outcome = await self.probe.probe(item, config)
        return self.to_result(item, outcome, config)


class HttpScanSurface(ScanSurface[HttpScanConfig, Endpoint, ScanResult]):
    """Tests every endpoint of the selected project."""

    surface = Surface.HTTP
    result_model = ScanResult
    empty_worklist_message = "No endpoints configured for this project. Add endpoints first."

    def __init__(self, repository: ProjectRepository, probe: Optional[HttpProbe] = None) -> None:
        super().__init__(probe or HttpProbe())
        self.repository = repository

    def validate(self, config: HttpScanConfig) -> None:
        if not config.project_id:
            raise ConfigurationError("No project selected")

    def build_worklist(self, config: HttpScanConfig) -> List[Endpoint]:
        return build_http_worklist(self.repository.list_endpoints(), config.project_id)

    def item_id(self, item: Endpoint) -> str:
        return item.id

    def to_result(self, item: Endpoint, outcome: Any, config: HttpScanConfig) -> ScanResult:
        classification = classify_http(item, outcome, config.test)
        return ScanResult(
            id=f"{item.id}_{int(time.time() * 1000)}",
            endpoint_name=item.name,
            url=item.url,
            method=item.method.value,
            status=classification.verdict,
            vulnerabilities=classification.findings,
            response_time_ms=outcome.elapsed_ms,
            status_code=outcome.status_code,
            project_id=item.project_id,
            response_sample=outcome.body[: settings.RESPONSE_SAMPLE_LENGTH],
        )

    def error_result(self, item: Endpoint, config: HttpScanConfig, error: Exception) -> ScanResult:
        return ScanResult(
            id=f"{item.id}_{int(time.time() * 1000)}",
            endpoint_name=item.name,
            url=item.url,
            method=item.method.value,
            status=Verdict.ERROR,
            vulnerabilities=[f"Probe Error: {error}"],
            response_time_ms=0,
            status_code=0,
            project_id=item.project_id,
        )

    def summarize(self, results: List[ScanResult], stopped: bool) -> ScanSummary:
        passed = sum(1 for r in results if r.status == Verdict.PASS)
        issues = len(results) - passed
        if stopped:
            message = f"Scan stopped after {len(results)} endpoint(s)."
        elif issues:
            message = f"Scan complete! Found {issues} issues."
        else:
            message = "Scan complete! No vulnerabilities found."
        return ScanSummary(
            surface=self.surface,
            total=len(results),
            passed=passed,
            issues=issues,
            stopped=stopped,
            message=message,
        )

    def session_context(self, config: HttpScanConfig) -> Dict[str, Any]:
        return {"project_id": config.project_id, "target_override": config.target_override}


class PortScanSurface(ScanSurface[PortScanConfig, int, PortProbeResult]):
    """Probes a list of TCP ports on one host."""

    surface = Surface.PORTS
    result_model = PortProbeResult
    empty_worklist_message = "No valid ports specified"

    def __init__(self, probe: Optional[PortProbe] = None) -> None:
        super().__init__(probe or PortProbe())

    def validate(self, config: PortScanConfig) -> None:
        if not config.target or not config.target.strip():
            raise ConfigurationError("Please specify a target host")

    def build_worklist(self, config: PortScanConfig) -> List[int]:
        return build_port_worklist(config)

    def item_id(self, item: int) -> str:
        return str(item)

    def to_result(self, item: int, outcome: Any, config: PortScanConfig) -> PortProbeResult:
        return PortProbeResult(
            port=item,
            status=classify_port(outcome),
            service=get_service_name(item),
            banner=outcome.banner,
            host=outcome.host,
            project_id=config.project_id,
            latency_ms=outcome.elapsed_ms,
        )

    def error_result(self, item: int, config: PortScanConfig, error: Exception) -> PortProbeResult:
        return PortProbeResult(
            port=item,
            status=PortStatus.CLOSED,
            service=get_service_name(item),
            host=config.target or "",
            project_id=config.project_id,
        )

    def summarize(self, results: List[PortProbeResult], stopped: bool) -> ScanSummary:
        open_count = sum(1 for r in results if r.status == PortStatus.OPEN)
        if stopped:
            message = f"Scan stopped after {len(results)} port(s). Found {open_count} open."
        else:
            message = f"Scan complete! Found {open_count} open ports out of {len(results)} scanned."
        return ScanSummary(
            surface=self.surface,
            total=len(results),
            passed=open_count,
            issues=len(results) - open_count,
            stopped=stopped,
            message=message,
        )

    def session_context(self, config: PortScanConfig) -> Dict[str, Any]:
        return {"target": config.target, "project_id": config.project_id}
