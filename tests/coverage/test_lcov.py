"""Tests for LCOV parsing and summaries."""

from pathlib import Path

import pytest

from covplane.coverage.lcov import LcovParseError, parse_lcov, text_summary

SAMPLE = """\
SF:lib/a.dart
DA:1,1
DA:2,0
DA:3,4
LF:3
LH:2
end_of_record
SF:lib/b.dart
DA:1,0
FN:1,main
FNDA:0,main
end_of_record
SF:lib/a.dart
DA:2,1
end_of_record
"""


class TestParseLcov:
    def test_given_records_when_parsed_then_duplicate_sources_summed(
        self, tmp_path: Path
    ) -> None:
        # Given
        lcov = tmp_path / "coverage.lcov"
        lcov.write_text(SAMPLE)

        # When
        report = parse_lcov(lcov)

        # Then
        assert report.files["lib/a.dart"].lines == {1: 1, 2: 1, 3: 4}
        assert report.files["lib/b.dart"].lines == {1: 0}
        assert report.lines_found == 4
        assert report.lines_hit == 3

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(LcovParseError):
            parse_lcov(tmp_path / "absent.lcov")


class TestTextSummary:
    def test_percentage_line(self, tmp_path: Path) -> None:
        lcov = tmp_path / "coverage.lcov"
        lcov.write_text(SAMPLE)

        assert text_summary(parse_lcov(lcov)) == "Coverage: 75.0% (3/4 lines)"

    def test_empty_report(self, tmp_path: Path) -> None:
        lcov = tmp_path / "coverage.lcov"
        lcov.write_text("")

        assert text_summary(parse_lcov(lcov)) == "No coverage data"
