"""Tests for coverage collection merging."""

import json
from pathlib import Path

import pytest

from covplane.core.errors import EmptyMergeInput, InternalError
from covplane.coverage.merge import merge_collections, merge_documents


def _write(path: Path, sources: list[str], **extra: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    document = {
        "type": "CodeCoverage",
        "coverage": [{"source": s, "hits": [1, 1, 2, 0]} for s in sources],
        **extra,
    }
    path.write_text(json.dumps(document))
    return path


class TestMergeDocuments:
    def test_concatenates_in_order_without_dedup(self) -> None:
        merged = merge_documents(
            [
                {"type": "CodeCoverage", "coverage": [{"source": "a"}]},
                {"type": "Other", "coverage": [{"source": "a"}, {"source": "b"}]},
            ]
        )

        assert [e["source"] for e in merged["coverage"]] == ["a", "a", "b"]
        assert merged["type"] == "CodeCoverage"

    def test_empty_input_raises(self) -> None:
        with pytest.raises(EmptyMergeInput):
            merge_documents([])


class TestMergeCollections:
    def test_given_collections_when_merged_then_lengths_sum_and_inputs_deleted(
        self, tmp_path: Path
    ) -> None:
        # Given
        collection = tmp_path / "coverage" / "collection"
        inputs = [
            _write(collection / "a.json", ["package:app/a.dart"]),
            _write(collection / "b.json", ["package:app/b.dart", "package:app/c.dart"]),
            _write(collection / "c.json", []),
        ]
        destination = tmp_path / "coverage" / "coverage.json"

        # When
        result = merge_collections(inputs, destination)

        # Then
        assert result == destination
        merged = json.loads(destination.read_text())
        assert len(merged["coverage"]) == 3
        assert not collection.exists()

    def test_given_stale_destination_when_merged_then_replaced(self, tmp_path: Path) -> None:
        # Given
        destination = tmp_path / "coverage.json"
        destination.write_text('{"coverage": [{"source": "stale"}]}')
        inputs = [_write(tmp_path / "collection" / "a.json", ["fresh"])]

        # When
        merge_collections(inputs, destination)

        # Then
        merged = json.loads(destination.read_text())
        assert [e["source"] for e in merged["coverage"]] == ["fresh"]

    def test_given_no_collections_when_merged_then_nothing_written(
        self, tmp_path: Path
    ) -> None:
        # Given
        destination = tmp_path / "out" / "coverage.json"

        # When / Then
        with pytest.raises(EmptyMergeInput):
            merge_collections([], destination)
        assert not (tmp_path / "out").exists()

    def test_given_truncated_collection_when_merged_then_internal_error(
        self, tmp_path: Path
    ) -> None:
        # Given
        good = _write(tmp_path / "collection" / "a.json", ["lib/a.dart"])
        truncated = tmp_path / "collection" / "b.json"
        truncated.write_text('{"coverage": [')
        destination = tmp_path / "coverage.json"

        # When / Then
        with pytest.raises(InternalError) as exc_info:
            merge_collections([good, truncated], destination)
        assert exc_info.value.details["path"] == str(truncated)
        assert not destination.exists()
        assert good.exists()
