"""Line classification for scraped subprocess output.

External tools report progress only as human-readable text. Every marker the
orchestrator reacts to is declared here as a rule; runners feed lines through
a ``LineClassifier`` and switch on the resulting ``Signal``.

Rules are checked in order and the first match wins, so failure markers are
listed before success markers.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from covplane.config.constants import (
    DRIVER_FAILED_MARKER,
    DRIVER_READY_MARKER,
    INSPECTION_FAILED_MARKER,
    INSPECTION_PORT_PATTERN,
    SERVE_BIND_CONFLICT_MARKER,
    SERVE_READY_PATTERN,
    TESTS_FAILED_MARKER,
    TESTS_PASSED_COUNT_PATTERN,
    TESTS_PASSED_MARKER,
)


class LineEvent(Enum):
    """What a classified line means."""

    INSPECTION_PORT = "inspection_port"
    INSPECTION_FAILED = "inspection_failed"
    TESTS_FAILED = "tests_failed"
    TESTS_PASSED = "tests_passed"
    SERVICE_READY = "service_ready"
    SERVICE_FAILED = "service_failed"


@dataclass(frozen=True, slots=True)
class Signal:
    """A classified line. ``port`` is set for INSPECTION_PORT only."""

    event: LineEvent
    line: str
    port: int | None = None

    @property
    def is_failure(self) -> bool:
        return self.event in (
            LineEvent.INSPECTION_FAILED,
            LineEvent.TESTS_FAILED,
            LineEvent.SERVICE_FAILED,
        )


@dataclass(frozen=True, slots=True)
class Rule:
    """Maps a pattern to an event."""

    event: LineEvent
    pattern: re.Pattern[str]

    @classmethod
    def literal(cls, event: LineEvent, text: str) -> Rule:
        return cls(event, re.compile(re.escape(text)))

    @classmethod
    def regex(cls, event: LineEvent, pattern: str) -> Rule:
        return cls(event, re.compile(pattern))

    def match(self, line: str) -> Signal | None:
        m = self.pattern.search(line)
        if m is None:
            return None
        port = int(m.group(1)) if self.event is LineEvent.INSPECTION_PORT else None
        return Signal(self.event, line, port)


_PORT = Rule.regex(LineEvent.INSPECTION_PORT, INSPECTION_PORT_PATTERN)
_INSPECTION_FAILED = Rule.literal(LineEvent.INSPECTION_FAILED, INSPECTION_FAILED_MARKER)
_TESTS_FAILED = Rule.literal(LineEvent.TESTS_FAILED, TESTS_FAILED_MARKER)
_TESTS_PASSED = Rule.literal(LineEvent.TESTS_PASSED, TESTS_PASSED_MARKER)
_TESTS_PASSED_COUNT = Rule.regex(LineEvent.TESTS_PASSED, TESTS_PASSED_COUNT_PATTERN)


class LineClassifier:
    """Ordered rule table."""

    def __init__(self, rules: Sequence[Rule]) -> None:
        self._rules = tuple(rules)

    def classify(self, line: str) -> Signal | None:
        for rule in self._rules:
            if (signal := rule.match(line)) is not None:
                return signal
        return None

    @classmethod
    def vm_test(cls) -> LineClassifier:
        """Dart VM test stdout. The port is chosen up front, not scraped."""
        return cls([_INSPECTION_FAILED, _TESTS_FAILED, _TESTS_PASSED])

    @classmethod
    def browser_test(cls) -> LineClassifier:
        """content_shell output; the port may be announced on either stream."""
        return cls([_INSPECTION_FAILED, _PORT, _TESTS_FAILED, _TESTS_PASSED])

    @classmethod
    def functional_test(cls) -> LineClassifier:
        """`pub run` output, which reports "All 12 tests passed."."""
        return cls([_INSPECTION_FAILED, _TESTS_FAILED, _TESTS_PASSED_COUNT])

    @classmethod
    def app_server(cls, port: int) -> LineClassifier:
        return cls(
            [
                Rule.literal(LineEvent.SERVICE_FAILED, SERVE_BIND_CONFLICT_MARKER),
                Rule.regex(LineEvent.SERVICE_READY, SERVE_READY_PATTERN.format(port=port)),
            ]
        )

    @classmethod
    def driver_server(cls) -> LineClassifier:
        """selenium-server output, including ports of the browsers it launches."""
        return cls(
            [
                _PORT,
                Rule.literal(LineEvent.SERVICE_FAILED, DRIVER_FAILED_MARKER),
                Rule.literal(LineEvent.SERVICE_READY, DRIVER_READY_MARKER),
            ]
        )
