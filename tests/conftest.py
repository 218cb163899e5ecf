"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides stand-in executables for the external tools a coverage run drives.
"""

import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local covplane package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of covplane modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("covplane"):
        del sys.modules[module_name]

from covplane.coverage.channels import LineChannel  # noqa: E402

FakeTool = Callable[[str, str], str]


@pytest.fixture
def fake_tool(tmp_path: Path) -> FakeTool:
    """Write an executable sh script and return its path.

    Usage::

        dart = fake_tool("dart", 'echo "All tests passed!"')
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def write(name: str, body: str) -> str:
        script = bin_dir / name
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return write


@pytest.fixture
def output() -> LineChannel:
    return LineChannel("output")


@pytest.fixture
def errors() -> LineChannel:
    return LineChannel("error")


# Argument positions follow the commands built by collect.py and format.py:
#   pub run coverage:collect_coverage --port=N -o OUT
#   pub run coverage:format_coverage -l --package-root=R -i IN -o OUT --verbose ...
FAKE_PUB = """\
echo "$*" >> "$(dirname "$0")/pub.calls"
case "$2" in
  coverage:collect_coverage)
    echo "{\\"type\\": \\"CodeCoverage\\", \\"coverage\\": [{\\"source\\": \\"$3\\"}]}" > "$5"
    ;;
  coverage:format_coverage)
    printf 'SF:lib/a.dart\\nDA:1,1\\nDA:2,1\\nDA:3,0\\nend_of_record\\n' > "$8"
    ;;
esac
"""


@pytest.fixture
def fake_pub(fake_tool: FakeTool) -> str:
    """A pub that writes plausible collect_coverage and format_coverage output.

    Every invocation is appended to ``pub.calls`` next to the script.
    """
    return fake_tool("pub", FAKE_PUB)
