"""Configuration constants.

Values here are protocol contracts with external tools (text markers,
file naming, the VM service request) and should NOT be user-configurable.
For configurable values, see models.py.
"""

# =============================================================================
# Test File Patterns
# =============================================================================

DART_FILE_SUFFIX = ".dart"
"""Suffix accepted for explicitly named test files."""

TEST_FILE_SUFFIX = "_test.dart"
"""Suffix required for test files discovered inside directories."""

VENDOR_SEGMENT = "packages"
"""Path segment marking dependency sources; never searched for tests."""

# =============================================================================
# Output Markers
# =============================================================================
# Lines scraped from the Dart VM, content_shell, `pub run` and the auxiliary
# services. Plain strings are substring matches; *_PATTERN values are regexes.

INSPECTION_PORT_PATTERN = (
    r"(?:Observatory|The Dart VM service is) listening (?:at|on) http://127\.0\.0\.1:(\d+)"
)
INSPECTION_FAILED_MARKER = "Could not start Observatory HTTP server"
TESTS_FAILED_MARKER = "Some tests failed."
TESTS_PASSED_MARKER = "All tests passed!"
TESTS_PASSED_COUNT_PATTERN = r"All\s\d*\s?tests passed."

SERVE_READY_PATTERN = r"Serving .* on http://localhost:{port}"
SERVE_BIND_CONFLICT_MARKER = "Error: Address already in use"
DRIVER_READY_MARKER = "Selenium Server is up and running"
DRIVER_FAILED_MARKER = "Failed to start"

BROWSER_LIBRARY_MARKER = "Error: Library not found"
"""Server-category analysis output that implies a dart:html import."""

# =============================================================================
# Browser Harness
# =============================================================================

HARNESS_SUFFIX = ".temp.html"
TEST_LINK_PATTERNS = (
    r'<link .*rel="x-dart-test" .*href="([\w/]+\.dart)"',
    r'<link .*href="([\w/]+\.dart)" .*rel="x-dart-test"',
)
DART_JS_SCRIPT = '<script src="packages/test/dart.js"></script>'
DART_SCRIPT_TEMPLATE = '<script type="application/dart" src="{src}"></script>'

# =============================================================================
# Output Layout
# =============================================================================

COLLECTION_DIR = "collection"
MERGED_FILE = "coverage.json"
LCOV_FILE = "coverage.lcov"
REPORT_INDEX = "index.html"

# =============================================================================
# VM Service Protocol
# =============================================================================

LOCALHOST = "127.0.0.1"
VM_SERVICE_WS_URL = "ws://127.0.0.1:{port}/ws"
GET_VM_REQUEST = {"jsonrpc": "2.0", "id": "3", "method": "getVM", "params": {}}

# =============================================================================
# Protocol/Validation Constants
# =============================================================================

PORT_MIN = 0
PORT_MAX = 65535
"""Valid port range."""
