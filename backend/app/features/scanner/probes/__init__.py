# backend/app/features/scanner/probes/__init__.py
"""Probes for the scan engine."""

from .base import Probe
from .http import HttpProbe, build_body, normalize_scheme, parse_headers, resolve_target_url
from .port import PortProbe

__all__ = [
    "Probe",
    "HttpProbe",
    "PortProbe",
    "build_body",
    "normalize_scheme",
    "parse_headers",
    "resolve_target_url",
]
