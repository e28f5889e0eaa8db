"""Tests for result export and endpoint import."""

import csv
import io
import json
from typing import List

import pytest

from backend.app.core import ImportFormatError
from backend.app.features.projects import Endpoint
from backend.app.features.scanner.models import PortProbeResult, PortStatus, ScanResult, Verdict
from backend.app.features.scanner.reporting import (
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
from backend.app.features.scanner.reporting.exporters import (
    ENDPOINT_CSV_COLUMNS,
    RESULT_CSV_COLUMNS,
    map_csv_headers,
)
from conftest import make_endpoint


def scan_result(**overrides) -> ScanResult:
    data = {
        "id": "ep1_1700000000000",
        "endpoint_name": "Health",
        "url": "https://api.example.com/health",
        "method": "GET",
        "status": Verdict.FAIL,
        "vulnerabilities": ["Expected status 200, got 500", "Missing X-Frame-Options header"],
        "response_time_ms": 42,
        "status_code": 500,
        "timestamp": "2024-05-01T10:00:00+00:00",
        "project_id": "proj1",
    }
    data.update(overrides)
    return ScanResult(**data)


class TestResultExport:
    """Tests for JSON and CSV result logs."""

    def test_json_export_is_reimportable(self) -> None:
        exported = [scan_result(), scan_result(id="ep2_1", status=Verdict.PASS, vulnerabilities=[])]
        restored = results_from_json(results_to_json(exported))
        assert [(r.url, r.method, r.status, r.timestamp) for r in restored] == [
            (r.url, r.method, r.status, r.timestamp) for r in exported
        ]

    def test_invalid_results_json(self) -> None:
        with pytest.raises(ImportFormatError):
            results_from_json('[{"id": "x"}]')
        with pytest.raises(ImportFormatError):
            results_from_json("not json")

    def test_csv_joins_findings(self) -> None:
        rows = list(csv.DictReader(io.StringIO(results_to_csv([scan_result()]))))
        assert list(rows[0].keys()) == RESULT_CSV_COLUMNS
        assert rows[0]["vulnerabilities"] == (
            "Expected status 200, got 500; Missing X-Frame-Options header"
        )
        assert rows[0]["status"] == "fail"

    def test_port_csv(self) -> None:
        result = PortProbeResult(port=22, status=PortStatus.OPEN, service="SSH", host="10.0.0.5")
        rows = list(csv.DictReader(io.StringIO(port_results_to_csv([result]))))
        assert rows[0]["port"] == "22"
        assert rows[0]["status"] == "open"
        assert rows[0]["banner"] == ""

    def test_export_filename(self) -> None:
        name = export_filename("port-scan-results", "csv")
        assert name.startswith("port-scan-results_")
        assert name.endswith(".csv")


class TestEndpointImport:
    """Tests for importing endpoints from JSON and CSV."""

    def test_json_import(self) -> None:
        text = json.dumps(
            [
                {"name": "List", "url": "https://api.example.com/items", "method": "get"},
                {"url": "https://api.example.com/items", "method": "POST", "body": '{"a": 1}'},
                "not an object",
            ]
        )
        endpoints = endpoints_from_json(text, "proj1")
        assert [e.name for e in endpoints] == ["List", "Imported Endpoint 2"]
        assert endpoints[0].method.value == "GET"
        assert all(e.project_id == "proj1" for e in endpoints)
        assert endpoints[0].id != endpoints[1].id

    def test_json_must_be_an_array(self) -> None:
        with pytest.raises(ImportFormatError):
            endpoints_from_json('{"url": "x"}', "proj1")
        with pytest.raises(ImportFormatError):
            endpoints_from_json("{oops", "proj1")

    def test_csv_header_synonyms(self) -> None:
        assert map_csv_headers(["Title", "Endpoint URL", "HTTP Verb", "Notes", "Severity"]) == {
            "name": "Title",
            "url": "Endpoint URL",
            "method": "HTTP Verb",
            "description": "Notes",
            "priority": "Severity",
        }

    def test_csv_import(self) -> None:
        text = (
            "Title,Endpoint URL,HTTP Verb,Notes,Severity\n"
            "Login,https://api.example.com/login,post,Auth flow,HIGH\n"
            "No URL,,GET,,\n"
            ",https://api.example.com/status,,,\n"
        )
        endpoints = endpoints_from_csv(text, "proj1")
        assert len(endpoints) == 2
        login, status = endpoints
        assert login.name == "Login"
        assert login.method.value == "POST"
        assert login.description == "Auth flow"
        assert login.priority.value == "high"
        assert status.name == "Endpoint 3"
        assert status.method.value == "GET"

    def test_empty_csv(self) -> None:
        with pytest.raises(ImportFormatError):
            endpoints_from_csv("", "proj1")


class TestEndpointExport:
    """Tests for exporting endpoints grouped by category."""

    def endpoints(self) -> List[Endpoint]:
        return [
            make_endpoint(id="a", name="Login", category="auth", method="POST", body='{"u": "x"}'),
            make_endpoint(id="b", name="Health", category="api"),
            make_endpoint(id="c", name="Logout", category="auth", headers='{"X-Token": "t"}'),
            make_endpoint(id="d", name="Misc", category=""),
        ]

    def test_csv_rows_grouped_by_category(self) -> None:
        rows = list(csv.DictReader(io.StringIO(endpoints_to_csv(self.endpoints()))))
        assert list(rows[0].keys()) == ENDPOINT_CSV_COLUMNS
        assert [(r["Category"], r["Name"]) for r in rows] == [
            ("auth", "Login"),
            ("auth", "Logout"),
            ("api", "Health"),
            ("uncategorized", "Misc"),
        ]
        assert rows[0]["Method"] == "POST"
        assert rows[0]["Body"] == '{"u": "x"}'
        assert rows[1]["Headers"] == '{"X-Token": "t"}'

    def test_csv_can_be_imported_again(self) -> None:
        imported = endpoints_from_csv(endpoints_to_csv(self.endpoints()), "proj2")
        assert [(e.name, e.category, e.method.value) for e in imported] == [
            ("Login", "auth", "POST"),
            ("Logout", "auth", "GET"),
            ("Health", "api", "GET"),
            ("Misc", "uncategorized", "GET"),
        ]
        assert imported[1].headers == '{"X-Token": "t"}'
        assert all(e.project_id == "proj2" for e in imported)

    def test_json_grouped_and_importable(self) -> None:
        text = endpoints_to_json(self.endpoints())
        assert [e["id"] for e in json.loads(text)] == ["a", "c", "b", "d"]
        imported = endpoints_from_json(text, "proj2")
        assert [e.name for e in imported] == ["Login", "Logout", "Health", "Misc"]
