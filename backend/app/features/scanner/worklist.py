# backend/app/features/scanner/worklist.py
"""Worklist builders: turn a scan configuration into an ordered item list.

All builders are pure and never raise on malformed user input; an empty
list means "nothing to scan" and is rejected by the controller.
"""

from typing import Iterable, List, Optional

from backend.app.features.projects.models import Endpoint
from .models import PortScanConfig

# Well-known ports, in display order
COMMON_PORTS = [
    (21, "FTP"),
    (22, "SSH"),
    (23, "Telnet"),
    (25, "SMTP"),
    (53, "DNS"),
    (80, "HTTP"),
    (110, "POP3"),
    (143, "IMAP"),
    (443, "HTTPS"),
    (993, "IMAPS"),
    (995, "POP3S"),
    (3306, "MySQL"),
    (3389, "RDP"),
    (5432, "PostgreSQL"),
]

SERVICE_NAMES = dict(COMMON_PORTS)

MIN_PORT = 1
MAX_PORT = 65535


def get_service_name(port: int) -> str:
    """Look up the service for a port, ``"Unknown"`` when not in the table."""
    return SERVICE_NAMES.get(port, "Unknown")


def build_http_worklist(endpoints: Iterable[Endpoint], project_id: Optional[str]) -> List[Endpoint]:
    """Endpoints belonging to ``project_id``, in storage order."""
    if not project_id:
        return []
    return [e for e in endpoints if e.project_id == project_id]


def parse_port_range(text: str) -> List[int]:
    """Parse an inclusive ``"start-end"`` range.

    Malformed or reversed ranges yield an empty list.
    """
    start_text, sep, end_text = (text or "").strip().partition("-")
    if not sep:
        return []
    try:
        start = int(start_text.strip())
        end = int(end_text.strip())
    except ValueError:
        return []
    if end < start:
        return []
    start = max(start, MIN_PORT)
    end = min(end, MAX_PORT)
    return list(range(start, end + 1))


def parse_custom_ports(text: str) -> List[int]:
    """Parse ``"a, b, c"``. Non-numeric tokens are dropped, duplicates kept."""
    ports = []
    for token in (text or "").split(","):
        token = token.strip()
        try:
            port = int(token)
        except ValueError:
            continue
        if MIN_PORT <= port <= MAX_PORT:
            ports.append(port)
    return ports


def build_port_worklist(config: PortScanConfig) -> List[int]:
    """Ports to probe for the configured scan type."""
    if config.scan_type == "common":
        return [port for port, _ in COMMON_PORTS]
    if config.scan_type == "range":
        return parse_port_range(config.port_range)
    if config.scan_type == "custom":
        return parse_custom_ports(config.custom_ports)
    return []
