# backend/app/features/scanner/classifiers.py
"""Classifiers: pure mappings from a raw probe outcome to a verdict.

The HTTP classifier distinguishes two kinds of rule. Structural checks
(expected status, expected content) decide the verdict. Heuristic checks
(security headers, server errors, database error strings) only add findings
and never change the verdict, so a ``pass`` may still carry findings.
"""

from typing import List

from backend.app.features.projects.models import Endpoint
from .models import (
    Classification,
    HttpOutcome,
    PortOutcome,
    PortStatus,
    TestConfig,
    Verdict,
)

DEFAULT_EXPECTED_STATUS = 200

SECURITY_HEADERS = [
    ("x-content-type-options", "X-Content-Type-Options"),
    ("x-frame-options", "X-Frame-Options"),
    ("x-xss-protection", "X-XSS-Protection"),
]

HSTS_HEADER = ("strict-transport-security", "Strict-Transport-Security")

SQL_ERROR_SIGNATURES = ["mysql_", "ORA-", "SQLException"]

PORT_STATUS_BY_REASON = {
    "connected": PortStatus.OPEN,
    "refused": PortStatus.CLOSED,
    "timeout": PortStatus.FILTERED,
    "unreachable": PortStatus.FILTERED,
    "error": PortStatus.CLOSED,
}


def classify_http(
    endpoint: Endpoint, outcome: HttpOutcome, test_config: TestConfig
) -> Classification:
    """Classify one HTTP probe outcome."""
    if outcome.is_error:
        return Classification(
            verdict=Verdict.ERROR,
            findings=[f"Connection Error: {outcome.error}"],
        )

    findings: List[str] = []
    verdict = Verdict.PASS

    # Structural checks
    expected_status = endpoint.expected_status_code
    if expected_status is None and test_config.check_status:
        expected_status = DEFAULT_EXPECTED_STATUS
    if expected_status is not None and outcome.status_code != expected_status:
        verdict = Verdict.FAIL
        findings.append(f"Expected status {expected_status}, got {outcome.status_code}")

    if test_config.check_content:
        needle = test_config.expected_content or endpoint.expected_content or ""
        if needle and needle not in outcome.body:
            verdict = Verdict.FAIL
            findings.append(f"Expected content not found: '{needle}'")

    # Advisory checks
    for key, label in SECURITY_HEADERS:
        if key not in outcome.headers:
            findings.append(f"Missing {label} header")

    if endpoint.url.strip().lower().startswith("https:") and HSTS_HEADER[0] not in outcome.headers:
        findings.append(f"Missing {HSTS_HEADER[1]} header")

    if outcome.status_code >= 500:
        findings.append("Server Error - Potential Information Disclosure")

    if any(signature in outcome.body for signature in SQL_ERROR_SIGNATURES):
        findings.append("Potential SQL Error Information Disclosure")

    return Classification(verdict=verdict, findings=findings)


def classify_port(outcome: PortOutcome) -> PortStatus:
    """Map a connect outcome to open/closed/filtered."""
    return PORT_STATUS_BY_REASON[outcome.reason]
