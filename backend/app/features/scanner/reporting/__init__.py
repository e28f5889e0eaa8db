# backend/app/features/scanner/reporting/__init__.py
"""Reporting modules for scan results."""

from .console import (
    console,
    describe_progress,
    describe_result,
    show_error,
    show_http_results,
    show_info,
    show_port_results,
    show_progress,
    show_summary,
)
from .exporters import (
    endpoints_from_csv,
    endpoints_from_json,
    endpoints_to_csv,
    endpoints_to_json,
    export_filename,
    port_results_to_csv,
    results_from_json,
    results_to_csv,
    results_to_json,
)

__all__ = [
    "console",
    "describe_progress",
    "describe_result",
    "show_error",
    "show_http_results",
    "show_info",
    "show_port_results",
    "show_progress",
    "show_summary",
    "endpoints_from_csv",
    "endpoints_from_json",
    "endpoints_to_csv",
    "endpoints_to_json",
    "export_filename",
    "port_results_to_csv",
    "results_from_json",
    "results_to_csv",
    "results_to_json",
]
