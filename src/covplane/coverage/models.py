"""Coverage run data structures.

Canonical types passed between the resolver, the runners, the aggregator and
the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from covplane.config.constants import REPORT_INDEX

TestKind = Literal["unit", "functional"]
"""How a test file is executed.

- unit: run directly under the instrumented VM or in content_shell
- functional: `pub run` against pub serve + selenium-server
"""


@dataclass(frozen=True)
class TestFile:
    """A resolved test entry point."""

    __test__ = False  # not a pytest class

    path: Path  # absolute
    kind: TestKind = "unit"

    def collection_name(self, index: int) -> str:
        """File name stem for this test's collection at position ``index`` in the run."""
        return f"{index:04d}_{self.path.name}"

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class ResolvedTests:
    """Unit and functional test files, in run order."""

    unit: tuple[TestFile, ...] = ()
    functional: tuple[TestFile, ...] = ()

    @property
    def unit_paths(self) -> list[str]:
        return [str(t.path) for t in self.unit]

    @property
    def functional_paths(self) -> list[str]:
        return [str(t.path) for t in self.functional]


@dataclass(frozen=True)
class CoverageResult:
    """Outcome of one coverage run.

    Build with ``CoverageResult.success(...)`` or ``CoverageResult.fail(...)``.
    Artifacts on a failed result may be ``None``.
    """

    succeeded: bool
    tests: tuple[str, ...] = ()
    functional_tests: tuple[str, ...] = ()
    collection: Path | None = None  # merged coverage.json
    lcov: Path | None = None
    report: Path | None = None  # HTML report directory
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def report_index(self) -> Path | None:
        return self.report / REPORT_INDEX if self.report is not None else None

    @classmethod
    def success(
        cls,
        resolved: ResolvedTests,
        collection: Path,
        lcov: Path,
        *,
        report: Path | None = None,
    ) -> CoverageResult:
        return cls(
            succeeded=True,
            tests=tuple(resolved.unit_paths),
            functional_tests=tuple(resolved.functional_paths),
            collection=collection,
            lcov=lcov,
            report=report,
        )

    @classmethod
    def fail(
        cls,
        resolved: ResolvedTests,
        collection: Path | None = None,
        lcov: Path | None = None,
        *,
        report: Path | None = None,
        errors: tuple[str, ...] = (),
    ) -> CoverageResult:
        return cls(
            succeeded=False,
            tests=tuple(resolved.unit_paths),
            functional_tests=tuple(resolved.functional_paths),
            collection=collection,
            lcov=lcov,
            report=report,
            errors=errors,
        )
