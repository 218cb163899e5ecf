"""Tests for browser test harness pages."""

from pathlib import Path

from covplane.coverage.harness import custom_html_for, write_harness


def test_custom_html_sits_next_to_test(tmp_path: Path) -> None:
    assert custom_html_for(tmp_path / "ui_test.dart") == tmp_path / "ui_test.html"


class TestWriteHarness:
    def test_given_no_custom_page_when_written_then_single_script_tag(
        self, tmp_path: Path
    ) -> None:
        # Given
        test = tmp_path / "ui_test.dart"
        test.write_text("main() {}\n")

        # When
        harness = write_harness(test)

        # Then
        assert harness == tmp_path / "ui_test.dart.temp.html"
        assert harness.read_text() == (
            '<script type="application/dart" src="ui_test.dart"></script>'
        )

    def test_given_custom_page_when_written_then_runner_script_replaced(
        self, tmp_path: Path
    ) -> None:
        # Given
        test = tmp_path / "ui_test.dart"
        test.write_text("main() {}\n")
        custom = tmp_path / "ui_test.html"
        custom.write_text(
            "<html><head>\n"
            '<script src="packages/test/dart.js"></script>\n'
            "</head><body><div id='app'></div></body></html>\n"
        )

        # When
        harness = write_harness(test)

        # Then
        assert harness == tmp_path / "ui_test.html.temp.html"
        contents = harness.read_text()
        assert '<script type="application/dart" src="ui_test.dart"></script>' in contents
        assert "packages/test/dart.js" not in contents
        assert "<div id='app'></div>" in contents
        assert custom.read_text().count("packages/test/dart.js") == 1

    def test_given_x_dart_test_link_when_written_then_link_target_used(
        self, tmp_path: Path
    ) -> None:
        # Given
        test = tmp_path / "ui_test.dart"
        test.write_text("main() {}\n")
        (tmp_path / "ui_test.html").write_text(
            '<link href="suite/ui_entry.dart" rel="x-dart-test">\n'
            '<script src="packages/test/dart.js"></script>\n'
        )

        # When
        contents = write_harness(test).read_text()

        # Then
        assert 'src="suite/ui_entry.dart"' in contents
