# backend/app/features/scanner/reporting/exporters.py
"""Import/export of endpoints and result logs (JSON and CSV)."""

import csv
import io
import json
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from backend.app.core import ImportFormatError, logs
from backend.app.features.projects.models import Endpoint
from ..models import PortProbeResult, ScanResult

RESULT_CSV_COLUMNS = [
    "id",
    "endpoint_name",
    "url",
    "method",
    "status",
    "vulnerabilities",
    "response_time_ms",
    "status_code",
    "timestamp",
    "project_id",
]

PORT_CSV_COLUMNS = ["host", "port", "status", "service", "banner", "latency_ms", "timestamp", "project_id"]

ENDPOINT_CSV_COLUMNS = ["Category", "Name", "URL", "Method", "Priority", "Headers", "Body", "Description"]

# Header synonyms for endpoint CSV import, checked by substring
ENDPOINT_HEADER_SYNONYMS = {
    "name": ("name", "title"),
    "url": ("url", "endpoint", "link"),
    "method": ("method", "verb"),
    "category": ("category", "type", "group"),
    "priority": ("priority", "severity"),
    "headers": ("header",),
    "body": ("body", "payload"),
    "description": ("description", "notes"),
}

_results_adapter = TypeAdapter(List[ScanResult])


def export_filename(prefix: str, extension: str) -> str:
    """``<prefix>_<YYYY-MM-DD>.<extension>``"""
    day = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return f"{prefix}_{day}.{extension}"


# ========== Results ==========


def results_to_json(results: Iterable[Union[ScanResult, PortProbeResult]]) -> str:
    return json.dumps([r.model_dump(mode="json") for r in results], indent=2)


def results_from_json(text: str) -> List[ScanResult]:
    """Parse a JSON array of exported HTTP results."""
    try:
        return _results_adapter.validate_json(text)
    except PydanticValidationError as e:
        raise ImportFormatError("Invalid results JSON", {"errors": e.error_count()})


def results_to_csv(results: Iterable[ScanResult]) -> str:
    """One row per result; findings joined with '; '."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=RESULT_CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for result in results:
        row = result.model_dump(mode="json")
        row["vulnerabilities"] = "; ".join(result.vulnerabilities)
        writer.writerow(row)
    return buffer.getvalue()


def port_results_to_csv(results: Iterable[PortProbeResult]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=PORT_CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for result in results:
        writer.writerow(result.model_dump(mode="json"))
    return buffer.getvalue()


# ========== Endpoints ==========


def group_by_category(endpoints: Iterable[Endpoint]) -> Dict[str, List[Endpoint]]:
    """Endpoints keyed by category, categories in first-seen order."""
    groups: Dict[str, List[Endpoint]] = {}
    for endpoint in endpoints:
        groups.setdefault(endpoint.category or "uncategorized", []).append(endpoint)
    return groups


def endpoints_to_json(endpoints: Iterable[Endpoint]) -> str:
    """JSON array of endpoints, grouped so each category's entries are adjacent.

    The output is accepted by ``endpoints_from_json``.
    """
    ordered = [e for group in group_by_category(endpoints).values() for e in group]
    return json.dumps([e.model_dump(mode="json") for e in ordered], indent=2)


def endpoints_to_csv(endpoints: Iterable[Endpoint]) -> str:
    """One row per endpoint, grouped by category.

    The headers are recognized by ``endpoints_from_csv``.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(ENDPOINT_CSV_COLUMNS)
    for category, group in group_by_category(endpoints).items():
        for endpoint in group:
            writer.writerow(
                [
                    category,
                    endpoint.name,
                    endpoint.url,
                    endpoint.method.value,
                    endpoint.priority.value,
                    endpoint.headers or "",
                    endpoint.body or "",
                    endpoint.description,
                ]
            )
    return buffer.getvalue()


def endpoints_from_json(text: str, project_id: str) -> List[Endpoint]:
    """Read a JSON array of endpoint-like objects into new endpoints."""
    try:
        data = json.loads(text)
    except ValueError:
        raise ImportFormatError("Invalid JSON format")
    if not isinstance(data, list):
        raise ImportFormatError("Invalid JSON format - expected an array of endpoints")

    rows = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            continue
        rows.append({**item, "name": item.get("name") or f"Imported Endpoint {index + 1}"})
    return _build_endpoints(rows, project_id, "imported")


def map_csv_headers(headers: Iterable[str]) -> Dict[str, str]:
    """Map endpoint fields to the CSV column that supplies them."""
    mapping: Dict[str, str] = {}
    for header in headers:
        lower = header.lower()
        for field, synonyms in ENDPOINT_HEADER_SYNONYMS.items():
            if any(s in lower for s in synonyms):
                mapping[field] = header
    return mapping


def endpoints_from_csv(text: str, project_id: str) -> List[Endpoint]:
    """Read endpoints from CSV, accepting common header synonyms.

    Rows without a name or URL are skipped.
    """
    reader = csv.DictReader(io.StringIO(text.strip()))
    if not reader.fieldnames:
        raise ImportFormatError("Empty CSV file")
    headers = [h.strip() for h in reader.fieldnames]
    reader.fieldnames = headers
    mapping = map_csv_headers(headers)
    logs.debug("CSV header mapping", "import", mapping)

    rows = []
    for index, raw in enumerate(reader):
        row = {field: (raw.get(column) or "").strip() for field, column in mapping.items()}
        row["name"] = row.get("name") or f"Endpoint {index + 1}"
        if not row.get("url"):
            continue
        rows.append(row)
    return _build_endpoints(rows, project_id, "csv")


def _build_endpoints(rows: List[dict], project_id: str, prefix: str) -> List[Endpoint]:
    batch = uuid.uuid4().hex[:8]
    endpoints = []
    for index, row in enumerate(rows):
        try:
            endpoints.append(
                Endpoint(
                    id=f"{prefix}_{batch}_{index}",
                    name=row["name"],
                    url=row.get("url") or "",
                    method=row.get("method") or "GET",
                    category=row.get("category") or "api",
                    priority=row.get("priority") or "medium",
                    headers=row.get("headers") or None,
                    body=row.get("body") or None,
                    description=row.get("description") or "",
                    project_id=project_id,
                    expected_status_code=_optional_int(row.get("expected_status_code")),
                    expected_content=row.get("expected_content") or None,
                )
            )
        except PydanticValidationError as e:
            logs.warning("Skipping invalid endpoint row", "import", {"row": index, "error": str(e)})
    return endpoints


def _optional_int(value: Optional[object]) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
