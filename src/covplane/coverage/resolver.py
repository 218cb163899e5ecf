"""Test file resolution.

Expands the user's test arguments into concrete test files:

- an existing file ending in ``.dart`` is taken as-is, ``_test`` suffix or not
- a directory is searched recursively for ``*_test.dart``, skipping anything
  under a ``packages`` segment (pub's symlinked dependency trees)
- anything else is ignored
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from covplane.config.constants import DART_FILE_SUFFIX, TEST_FILE_SUFFIX, VENDOR_SEGMENT
from covplane.coverage.models import ResolvedTests, TestFile, TestKind

logger = structlog.get_logger()


def _search_directory(directory: Path) -> list[Path]:
    found = []
    for candidate in sorted(directory.rglob(f"*{TEST_FILE_SUFFIX}")):
        if not candidate.is_file():
            continue
        relative = candidate.relative_to(directory)
        if VENDOR_SEGMENT in relative.parts:
            continue
        found.append(candidate)
    return found


def resolve_test_files(paths: Iterable[str | Path], kind: TestKind = "unit") -> list[TestFile]:
    """Resolve file and directory arguments into test files.

    Order is argument order, then sorted order within each directory.
    A file reached twice is listed once, at its first position.
    """
    resolved: list[TestFile] = []
    seen: set[Path] = set()

    for raw in paths:
        path = Path(raw)
        if path.is_file() and path.name.endswith(DART_FILE_SUFFIX):
            matches = [path]
        elif path.is_dir():
            matches = _search_directory(path)
        else:
            logger.debug("test_path_ignored", path=str(raw), kind=kind)
            continue

        for match in matches:
            absolute = match.absolute()
            if absolute in seen:
                continue
            seen.add(absolute)
            resolved.append(TestFile(path=absolute, kind=kind))

    logger.debug("tests_resolved", kind=kind, count=len(resolved))
    return resolved


def resolve_tests(
    tests: Iterable[str | Path],
    functional_tests: Iterable[str | Path] = (),
) -> ResolvedTests:
    """Apply the resolution rule to the unit and functional lists independently."""
    return ResolvedTests(
        unit=tuple(resolve_test_files(tests, "unit")),
        functional=tuple(resolve_test_files(functional_tests, "functional")),
    )
