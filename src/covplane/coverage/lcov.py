"""LCOV reading and summarising.

format_coverage writes line records only:

- SF:<source file path>
- DA:<line>,<hit count>
- LF:<lines found>
- LH:<lines hit>
- end_of_record

Function and branch records are skipped if present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


class LcovParseError(Exception):
    """Error reading an LCOV file."""


@dataclass(slots=True)
class FileLines:
    """Line hits for one source file. Line numbers are 1-based."""

    path: str
    lines: dict[int, int] = field(default_factory=dict)  # line_number → hit_count

    @property
    def lines_found(self) -> int:
        return len(self.lines)

    @property
    def lines_hit(self) -> int:
        return sum(1 for hits in self.lines.values() if hits > 0)


@dataclass(slots=True)
class LcovReport:
    files: dict[str, FileLines] = field(default_factory=dict)  # path → lines

    @property
    def lines_found(self) -> int:
        return sum(f.lines_found for f in self.files.values())

    @property
    def lines_hit(self) -> int:
        return sum(f.lines_hit for f in self.files.values())

    @property
    def line_rate(self) -> float:
        """Fraction of lines covered (0.0 to 1.0)."""
        return self.lines_hit / self.lines_found if self.lines_found else 0.0


def parse_lcov(path: Path) -> LcovReport:
    """Parse an LCOV file.

    A source file listed in several records has its hits summed per line.
    """
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise LcovParseError(f"Failed to read LCOV file: {e}") from e

    report = LcovReport()
    current: FileLines | None = None

    for line in content.splitlines():
        line = line.strip()
        if line.startswith("SF:"):
            source = line[3:]
            current = report.files.setdefault(source, FileLines(path=source))
        elif line.startswith("DA:"):
            if current is None:
                continue
            parts = line[3:].split(",")
            if len(parts) < 2:
                continue
            try:
                line_num = int(parts[0])
                hits = 0 if parts[1] == "-" else int(parts[1])
            except ValueError:
                continue
            current.lines[line_num] = current.lines.get(line_num, 0) + hits
        elif line == "end_of_record":
            current = None

    return report


def text_summary(report: LcovReport) -> str:
    """One-line summary for display."""
    if report.lines_found == 0:
        return "No coverage data"
    percent = report.line_rate * 100.0
    return f"Coverage: {percent:.1f}% ({report.lines_hit}/{report.lines_found} lines)"
