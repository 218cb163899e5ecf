"""Tests for line classification."""

import pytest

from covplane.coverage.signals import LineClassifier, LineEvent


class TestVmTestClassifier:
    @pytest.mark.parametrize(
        ("line", "event"),
        [
            ("00:02 +3: All tests passed!", LineEvent.TESTS_PASSED),
            ("00:02 +2 -1: Some tests failed.", LineEvent.TESTS_FAILED),
            ("Could not start Observatory HTTP server:", LineEvent.INSPECTION_FAILED),
        ],
    )
    def test_markers(self, line: str, event: LineEvent) -> None:
        signal = LineClassifier.vm_test().classify(line)

        assert signal is not None
        assert signal.event is event

    def test_ordinary_line_is_unclassified(self) -> None:
        assert LineClassifier.vm_test().classify("00:01 +1: parses input") is None

    def test_port_is_not_scraped(self) -> None:
        line = "Observatory listening on http://127.0.0.1:8181"

        assert LineClassifier.vm_test().classify(line) is None


class TestBrowserTestClassifier:
    @pytest.mark.parametrize(
        "line",
        [
            "Observatory listening at http://127.0.0.1:42117/",
            "CONSOLE MESSAGE: Observatory listening on http://127.0.0.1:42117",
            "The Dart VM service is listening on http://127.0.0.1:42117/abc=/",
        ],
    )
    def test_port_announcements(self, line: str) -> None:
        signal = LineClassifier.browser_test().classify(line)

        assert signal is not None
        assert signal.event is LineEvent.INSPECTION_PORT
        assert signal.port == 42117

    def test_failure_before_success(self) -> None:
        signal = LineClassifier.browser_test().classify("Some tests failed. All tests passed!")

        assert signal is not None
        assert signal.is_failure


class TestFunctionalTestClassifier:
    @pytest.mark.parametrize("line", ["All 12 tests passed.", "All tests passed."])
    def test_counted_pass(self, line: str) -> None:
        signal = LineClassifier.functional_test().classify(line)

        assert signal is not None
        assert signal.event is LineEvent.TESTS_PASSED


class TestServiceClassifiers:
    def test_app_server_ready_on_configured_port_only(self) -> None:
        classifier = LineClassifier.app_server(8080)

        ready = classifier.classify("Serving my_app web on http://localhost:8080")
        other = classifier.classify("Serving my_app web on http://localhost:9090")

        assert ready is not None and ready.event is LineEvent.SERVICE_READY
        assert other is None

    def test_app_server_bind_conflict(self) -> None:
        signal = LineClassifier.app_server(8080).classify("Error: Address already in use")

        assert signal is not None and signal.event is LineEvent.SERVICE_FAILED

    def test_driver_server_markers(self) -> None:
        classifier = LineClassifier.driver_server()

        ready = classifier.classify("INFO - Selenium Server is up and running on port 4444")
        failed = classifier.classify("Failed to start: SocketListener0@0.0.0.0:4444")
        port = classifier.classify("Observatory listening on http://127.0.0.1:50001")

        assert ready is not None and ready.event is LineEvent.SERVICE_READY
        assert failed is not None and failed.event is LineEvent.SERVICE_FAILED
        assert port is not None and port.port == 50001
