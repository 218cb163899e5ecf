"""Tests for config/constants.py module.

Covers:
- Output markers scraped from Dart tooling
- Output layout names
- VM service protocol constants
- Protocol/validation constants
"""

from __future__ import annotations

import json
import re

from covplane.config.constants import (
    GET_VM_REQUEST,
    INSPECTION_PORT_PATTERN,
    LCOV_FILE,
    MERGED_FILE,
    PORT_MAX,
    PORT_MIN,
    SERVE_READY_PATTERN,
    TESTS_PASSED_COUNT_PATTERN,
    VM_SERVICE_WS_URL,
)


class TestOutputMarkers:
    """Tests for scraped line patterns."""

    def test_port_pattern_accepts_observatory_and_vm_service_forms(self) -> None:
        """Both the legacy and current announcement lines yield the port."""
        legacy = "Observatory listening on http://127.0.0.1:8181"
        legacy_at = "Observatory listening at http://127.0.0.1:8182/"
        current = "The Dart VM service is listening on http://127.0.0.1:8183/abc=/"
        lines = (legacy, legacy_at, current)

        matches = [re.search(INSPECTION_PORT_PATTERN, line) for line in lines]

        assert [m.group(1) if m else None for m in matches] == ["8181", "8182", "8183"]

    def test_port_pattern_ignores_other_hosts(self) -> None:
        line = "Observatory listening on http://0.0.0.0:8181"

        assert re.search(INSPECTION_PORT_PATTERN, line) is None

    def test_passed_count_pattern(self) -> None:
        """pub run reports a count; the count is optional."""
        assert re.search(TESTS_PASSED_COUNT_PATTERN, "00:04 +12: All 12 tests passed.")
        assert re.search(TESTS_PASSED_COUNT_PATTERN, "All tests passed.")
        assert not re.search(TESTS_PASSED_COUNT_PATTERN, "Some tests failed.")

    def test_serve_ready_pattern_is_port_specific(self) -> None:
        pattern = SERVE_READY_PATTERN.format(port=8080)

        assert re.search(pattern, "Serving my_app web on http://localhost:8080")
        assert not re.search(pattern, "Serving my_app web on http://localhost:9090")


class TestLayout:
    def test_artifact_names(self) -> None:
        assert MERGED_FILE == "coverage.json"
        assert LCOV_FILE == "coverage.lcov"


class TestVmServiceProtocol:
    """Tests for the getVM request."""

    def test_get_vm_request_is_json_rpc(self) -> None:
        request = json.loads(json.dumps(GET_VM_REQUEST))

        assert request == {"jsonrpc": "2.0", "id": "3", "method": "getVM", "params": {}}

    def test_ws_url(self) -> None:
        assert VM_SERVICE_WS_URL.format(port=8181) == "ws://127.0.0.1:8181/ws"


class TestPortConstants:
    """Tests for port validation constants."""

    def test_port_min_is_zero(self) -> None:
        """Port min is 0."""
        assert PORT_MIN == 0

    def test_port_max_is_65535(self) -> None:
        """Port max is 65535."""
        assert PORT_MAX == 65535

    def test_port_range_is_valid(self) -> None:
        """Port range covers the default serve port."""
        assert PORT_MIN <= 8080 <= PORT_MAX
