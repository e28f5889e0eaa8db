# backend/app/features/scanner/models.py
"""Data models for the scan engine."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from backend.app.features.projects.models import utc_now_iso


class ScanState(str, Enum):
    """Lifecycle state of a scan surface."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class Verdict(str, Enum):
    """Outcome of one HTTP endpoint test."""

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"


class PortStatus(str, Enum):
    """Reachability of one TCP port."""

    OPEN = "open"
    CLOSED = "closed"
    FILTERED = "filtered"


class Surface(str, Enum):
    """Independent scan surfaces, each with its own controller."""

    HTTP = "http"
    PORTS = "ports"


class TestConfig(BaseModel):
    """Scan-wide switches for the HTTP classifier."""

    __test__ = False  # keep pytest from collecting this model

    check_status: bool = False
    check_content: bool = False
    expected_content: str = ""


class HttpScanConfig(BaseModel):
    """Configuration for one run of the HTTP surface."""

    project_id: Optional[str] = None
    test: TestConfig = Field(default_factory=TestConfig)
    target_override: Optional[str] = None  # host/IP replacing each endpoint's host


class PortScanConfig(BaseModel):
    """Configuration for one run of the port surface."""

    target: Optional[str] = None
    project_id: Optional[str] = None
    scan_type: Literal["common", "range", "custom"] = "common"
    port_range: str = "1-1000"
    custom_ports: str = ""

    @field_validator("target")
    @classmethod
    def strip_target(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


# ========== Raw probe outcomes ==========


class HttpOutcome(BaseModel):
    """What the HTTP probe observed for one endpoint."""

    kind: Literal["response", "connection_error"]
    requested_url: str
    elapsed_ms: int
    status_code: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)  # lower-cased names
    body: str = ""
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.kind == "connection_error"


class PortOutcome(BaseModel):
    """What the port probe observed for one TCP connect attempt."""

    host: str
    port: int
    reason: Literal["connected", "refused", "timeout", "unreachable", "error"]
    elapsed_ms: int
    banner: Optional[str] = None
    error: Optional[str] = None


class Classification(BaseModel):
    """Verdict plus the findings that led to it."""

    verdict: Verdict
    findings: List[str] = Field(default_factory=list)


# ========== Results ==========


class ScanResult(BaseModel):
    """Result of testing one HTTP endpoint. Immutable once created."""

    model_config = {"frozen": True}

    id: str
    endpoint_name: str
    url: str
    method: str
    status: Verdict
    vulnerabilities: List[str]
    response_time_ms: int
    status_code: int
    timestamp: str = Field(default_factory=utc_now_iso)
    project_id: str = ""
    response_sample: str = ""


class PortProbeResult(BaseModel):
    """Result of probing one TCP port. Immutable once created."""

    model_config = {"frozen": True}

    port: int
    status: PortStatus
    service: str = "Unknown"
    banner: Optional[str] = None
    host: str = ""
    project_id: Optional[str] = None
    latency_ms: int = 0
    timestamp: str = Field(default_factory=utc_now_iso)


# ========== Progress & session ==========


class ScanProgress(BaseModel):
    """Read-only view of a controller for rendering."""

    surface: Surface
    state: ScanState
    progress: int = 0
    cursor_index: int = 0
    total: int = 0
    current_item_id: Optional[str] = None


class ScanSummary(BaseModel):
    """Counts used for the one-line completion notice. Never persisted."""

    surface: Surface
    total: int
    passed: int
    issues: int
    stopped: bool = False
    message: str = ""


class SessionSnapshot(BaseModel):
    """Controller state persisted across surface re-creation."""

    state: ScanState = ScanState.IDLE
    cursor_index: int = 0
    total: int = 0
    progress: int = 0
    current_item_id: Optional[str] = None
    results: List[Dict[str, Any]] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
