"""Tests for worklist builders."""

from backend.app.features.scanner.models import PortScanConfig
from backend.app.features.scanner.worklist import (
    COMMON_PORTS,
    build_http_worklist,
    build_port_worklist,
    get_service_name,
    parse_custom_ports,
    parse_port_range,
)
from conftest import make_endpoint


class TestHttpWorklist:
    """Tests for selecting a project's endpoints."""

    def test_keeps_project_endpoints_in_storage_order(self) -> None:
        endpoints = [
            make_endpoint(id="a", project_id="p1"),
            make_endpoint(id="b", project_id="p2"),
            make_endpoint(id="c", project_id="p1"),
        ]
        worklist = build_http_worklist(endpoints, "p1")
        assert [e.id for e in worklist] == ["a", "c"]

    def test_no_project_means_empty_worklist(self) -> None:
        endpoints = [make_endpoint(id="a", project_id="p1")]
        assert build_http_worklist(endpoints, None) == []
        assert build_http_worklist(endpoints, "") == []


class TestPortRange:
    """Tests for "start-end" parsing."""

    def test_inclusive_range(self) -> None:
        assert parse_port_range("8000-8003") == [8000, 8001, 8002, 8003]

    def test_tolerates_whitespace(self) -> None:
        assert parse_port_range(" 20 - 22 ") == [20, 21, 22]

    def test_single_port_range(self) -> None:
        assert parse_port_range("80-80") == [80]

    def test_reversed_range_is_empty(self) -> None:
        assert parse_port_range("100-1") == []

    def test_malformed_ranges_are_empty(self) -> None:
        for text in ("", "80", "a-b", "1-", "-5", "1-2-3"):
            assert parse_port_range(text) == [], text

    def test_clamped_to_valid_ports(self) -> None:
        ports = parse_port_range("0-3")
        assert ports == [1, 2, 3]
        assert parse_port_range("65534-70000") == [65534, 65535]


class TestCustomPorts:
    """Tests for comma-separated port lists."""

    def test_drops_non_numeric_tokens(self) -> None:
        assert parse_custom_ports("22, abc, 80,,443") == [22, 80, 443]

    def test_keeps_duplicates_and_order(self) -> None:
        assert parse_custom_ports("443,22,443") == [443, 22, 443]

    def test_drops_out_of_range_ports(self) -> None:
        assert parse_custom_ports("0,22,65536,-1") == [22]

    def test_all_invalid_is_empty(self) -> None:
        assert parse_custom_ports("abc, def") == []


class TestPortWorklist:
    """Tests for build_port_worklist dispatch."""

    def test_common_ports(self) -> None:
        ports = build_port_worklist(PortScanConfig(target="h", scan_type="common"))
        assert ports == [port for port, _ in COMMON_PORTS]
        assert ports[0] == 21
        assert ports[-1] == 5432
        assert len(ports) == 14

    def test_range(self) -> None:
        config = PortScanConfig(target="h", scan_type="range", port_range="1-5")
        assert build_port_worklist(config) == [1, 2, 3, 4, 5]

    def test_custom(self) -> None:
        config = PortScanConfig(target="h", scan_type="custom", custom_ports="22,abc,80")
        assert build_port_worklist(config) == [22, 80]

    def test_service_names(self) -> None:
        assert get_service_name(22) == "SSH"
        assert get_service_name(5432) == "PostgreSQL"
        assert get_service_name(12345) == "Unknown"
