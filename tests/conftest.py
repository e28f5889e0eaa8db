"""Shared fixtures for scanner tests."""

import asyncio
from typing import Awaitable, Callable, List, Optional

import pytest

from backend.app.core import SESSION_KEYS, STORAGE_KEYS, MemoryStore
from backend.app.features.projects import Endpoint, ProjectRepository
from backend.app.features.scanner.controller import ScanController
from backend.app.features.scanner.models import PortOutcome, PortProbeResult
from backend.app.features.scanner.probes import Probe
from backend.app.features.scanner.session import SessionBridge
from backend.app.features.scanner.sink import ResultSink
from backend.app.features.scanner.surfaces import PortScanSurface


class RecordingProbe(Probe[int, PortOutcome]):
    """Port probe stand-in that records every call and never touches the network."""

    name = "Recording Probe"

    def __init__(
        self,
        reason: str = "connected",
        on_probe: Optional[Callable[[int], Awaitable[None]]] = None,
        fail_on: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.on_probe = on_probe
        self.fail_on = fail_on
        self.calls: List[int] = []
        self.opened = 0
        self.closed = 0

    async def open(self) -> None:
        self.opened += 1

    async def close(self) -> None:
        self.closed += 1

    async def probe(self, item: int, context) -> PortOutcome:
        self.calls.append(item)
        if self.on_probe is not None:
            await self.on_probe(item)
        await asyncio.sleep(0)
        if item == self.fail_on:
            raise RuntimeError("probe blew up")
        return PortOutcome(host=context.target, port=item, reason=self.reason, elapsed_ms=1)


class FailingStore(MemoryStore):
    """MemoryStore whose writes to selected keys always fail."""

    def __init__(self, failing_keys) -> None:
        super().__init__()
        self.failing_keys = set(failing_keys)

    def set(self, key, value) -> bool:
        if key in self.failing_keys:
            return False
        return super().set(key, value)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def session_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(store) -> ProjectRepository:
    return ProjectRepository(store)


@pytest.fixture
def make_port_controller(store, session_store):
    """Build a port-surface controller around a RecordingProbe."""

    def factory(probe: RecordingProbe, result_store=None) -> ScanController:
        return ScanController(
            PortScanSurface(probe),
            ResultSink(result_store or store, STORAGE_KEYS["PORT_RESULTS"], PortProbeResult),
            SessionBridge(session_store, SESSION_KEYS["PORT_SCANNER_STATE"]),
            poll_interval=0.01,
            settle_delay=0.0,
        )

    return factory


def make_endpoint(**overrides) -> Endpoint:
    data = {
        "id": "ep1",
        "name": "Health",
        "url": "https://api.example.com/health",
        "method": "GET",
        "project_id": "proj1",
    }
    data.update(overrides)
    return Endpoint(**data)
