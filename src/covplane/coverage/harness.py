"""HTML harnesses for running Dart tests in content_shell."""

from __future__ import annotations

import re
from pathlib import Path

from covplane.config.constants import (
    DART_FILE_SUFFIX,
    DART_JS_SCRIPT,
    DART_SCRIPT_TEMPLATE,
    HARNESS_SUFFIX,
    TEST_LINK_PATTERNS,
)

_LINK_PATTERNS = tuple(re.compile(p) for p in TEST_LINK_PATTERNS)


def custom_html_for(test: Path) -> Path:
    """``foo_test.dart`` → ``foo_test.html`` next to it."""
    return test.with_name(test.name[: -len(DART_FILE_SUFFIX)] + ".html")


def _linked_script(contents: str) -> str | None:
    for pattern in _LINK_PATTERNS:
        if m := pattern.search(contents):
            return m.group(1)
    return None


def write_harness(test: Path) -> Path:
    """Write a temporary page that loads ``test`` as a Dart script.

    A custom ``<test>.html`` is written for the test package's runner, which
    loads ``packages/test/dart.js``; its copy loads the test script directly
    instead. The script is the ``x-dart-test`` link target when the page has
    one. Without a custom page, a one-line page is generated.

    Returns:
        Path of the file written. The caller deletes it.
    """
    custom = custom_html_for(test)
    if custom.is_file():
        harness = custom.with_name(custom.name + HARNESS_SUFFIX)
        contents = custom.read_text()
        script = _linked_script(contents) or test.name
        contents = contents.replace(DART_JS_SCRIPT, DART_SCRIPT_TEMPLATE.format(src=script), 1)
    else:
        harness = test.with_name(test.name + HARNESS_SUFFIX)
        contents = DART_SCRIPT_TEMPLATE.format(src=test.name)
    harness.write_text(contents)
    return harness
