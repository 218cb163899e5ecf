"""Coverage collection for Dart test suites.

This package provides:
- Test resolution and one-at-a-time instrumented test runs (VM and browser)
- Functional runs against pub serve and selenium-server
- Collection, merging, LCOV formatting and HTML rendering

Usage:
    from covplane.config import load_config
    from covplane.coverage import CoverageTask

    task = CoverageTask.start(load_config())
    async for line in task.output:
        print(line)
    result = await task.done
"""

from covplane.coverage.channels import LineChannel
from covplane.coverage.lcov import LcovReport, parse_lcov, text_summary
from covplane.coverage.merge import merge_collections, merge_documents
from covplane.coverage.models import CoverageResult, ResolvedTests, TestFile, TestKind
from covplane.coverage.resolver import resolve_test_files, resolve_tests
from covplane.coverage.services import AuxiliaryServices, PortRegistry
from covplane.coverage.signals import LineClassifier, LineEvent, Signal
from covplane.coverage.task import CoverageTask
from covplane.coverage.vm_service import filter_live_ports, probe_isolates

__all__ = [
    # Orchestration
    "CoverageTask",
    "CoverageResult",
    "LineChannel",
    # Tests
    "ResolvedTests",
    "TestFile",
    "TestKind",
    "resolve_test_files",
    "resolve_tests",
    # Output scraping
    "LineClassifier",
    "LineEvent",
    "Signal",
    # Services
    "AuxiliaryServices",
    "PortRegistry",
    "filter_live_ports",
    "probe_isolates",
    # Results
    "LcovReport",
    "merge_collections",
    "merge_documents",
    "parse_lcov",
    "text_summary",
]
