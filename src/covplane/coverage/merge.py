"""Coverage collection merging with append semantics.

Each snapshot written by ``collect_coverage`` is a JSON document whose
``coverage`` key lists per-source-file hit maps. Merging concatenates those
lists in input order:

- merged["coverage"] = input[0]["coverage"] + input[1]["coverage"] + ...
- every other top-level key comes from input[0]
- entries for the same source file are NOT combined; format_coverage sums
  hits across duplicates when it builds the LCOV report

The inputs are transient; once merged, the directory holding them is removed.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from covplane.core.errors import EmptyMergeInput, InternalError

logger = structlog.get_logger()


def _load(path: Path) -> dict[str, Any]:
    try:
        with path.open() as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        raise InternalError.unexpected(f"unreadable collection {path}", path=str(path)) from e
    if not isinstance(document, dict):
        raise InternalError.unexpected(f"collection {path} is not an object", path=str(path))
    document.setdefault("coverage", [])
    return document


def merge_documents(documents: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Merge coverage documents in memory.

    Args:
        documents: Parsed collections, in run order.

    Returns:
        The first document, extended with every later document's entries.

    Raises:
        EmptyMergeInput: ``documents`` is empty.
    """
    if not documents:
        raise EmptyMergeInput.create()

    merged = documents[0]
    entries = list(merged.get("coverage", []))
    for document in documents[1:]:
        entries.extend(document.get("coverage", []))
    merged["coverage"] = entries
    return merged


def merge_collections(collections: Sequence[Path], destination: Path) -> Path:
    """Merge collection files into ``destination``.

    Args:
        collections: Snapshot files, in run order. All live in one
            directory, which is deleted after a successful merge.
        destination: Merged file to write; an existing file is replaced.

    Returns:
        ``destination``.

    Raises:
        EmptyMergeInput: ``collections`` is empty. Nothing is written or
            deleted.
    """
    if not collections:
        raise EmptyMergeInput.create()

    merged = merge_documents([_load(path) for path in collections])

    destination.parent.mkdir(parents=True, exist_ok=True)
    staging = destination.with_name(destination.name + ".tmp")
    staging.write_text(json.dumps(merged))
    staging.replace(destination)

    keep = destination.resolve()
    for directory in {path.parent for path in collections}:
        if directory.resolve() == keep.parent:
            for path in collections:
                if path.parent == directory and path.resolve() != keep:
                    path.unlink(missing_ok=True)
        else:
            shutil.rmtree(directory, ignore_errors=True)

    logger.info(
        "collections_merged",
        inputs=len(collections),
        entries=len(merged["coverage"]),
        destination=str(destination),
    )
    return destination
