# backend/app/features/scanner/__init__.py
"""Scanner feature module for the Endpoint Security Scanner."""

from .controller import ScanController, ScanSignal
from .models import (
    HttpScanConfig,
    PortProbeResult,
    PortScanConfig,
    PortStatus,
    ScanProgress,
    ScanResult,
    ScanState,
    ScanSummary,
    Surface,
    TestConfig,
    Verdict,
)
from .services import ScannerService, get_scanner_service

__all__ = [
    "ScanController",
    "ScanSignal",
    "HttpScanConfig",
    "PortProbeResult",
    "PortScanConfig",
    "PortStatus",
    "ScanProgress",
    "ScanResult",
    "ScanState",
    "ScanSummary",
    "Surface",
    "TestConfig",
    "Verdict",
    "ScannerService",
    "get_scanner_service",
]
