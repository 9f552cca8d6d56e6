"""App-level content mergers for append/merge-on-write branches (NOT git 3-way merge).

A content merger receives the previous text of the target file (None when the file
is absent) and returns the bytes to write. Unparseable previous content is logged
and discarded; the new data is always kept.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

logger = logging.getLogger(__name__)

ContentMerger = Callable[[str | None], bytes | str]


def _dump(obj: Any, indent: int | None) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=indent)


def _load_old(old_content: str | None, expected: type, label: str) -> Any:
    if old_content is None or not old_content.strip():
        return expected()
    try:
        parsed = json.loads(old_content)
    except json.JSONDecodeError:
        logger.error("Existing %s content is not valid JSON; it will be overwritten", label)
        return expected()
    if not isinstance(parsed, expected):
        logger.warning("Existing %s content is not a JSON %s; it will be overwritten", label, expected.__name__)
        return expected()
    return parsed


def dedupe_records(records: Iterable[dict], key: str) -> list[dict]:
    """Drop records whose ``key`` was already seen (first occurrence wins)."""
    seen: set[Any] = set()
    result: list[dict] = []
    for record in records:
        marker = record.get(key) if isinstance(record, dict) else None
        if marker is not None:
            if marker in seen:
                continue
            seen.add(marker)
        result.append(record)
    return result


def json_array_appender(
    new_records: Iterable[Any],
    *,
    dedupe_key: str | None = None,
    sort_key: Callable[[Any], Any] | None = None,
    indent: int | None = 2,
) -> ContentMerger:
    """Merger that appends ``new_records`` to the JSON array already on the branch."""
    new_list = list(new_records)

    def merge(old_content: str | None) -> str:
        merged = _load_old(old_content, list, "array") + new_list
        if dedupe_key:
            merged = dedupe_records(merged, dedupe_key)
        if sort_key:
            merged.sort(key=sort_key)
        logger.debug("Array merge: %d records after appending %d", len(merged), len(new_list))
        return _dump(merged, indent)

    return merge


def json_object_merger(new_mapping: Mapping[str, Any], *, indent: int | None = 2) -> ContentMerger:
    """Merger taking the key union of the stored JSON object and ``new_mapping`` (new wins)."""

    def merge(old_content: str | None) -> str:
        merged = _load_old(old_content, dict, "object")
        merged.update(new_mapping)
        return _dump(merged, indent)

    return merge


def merge_keyed_lists(
    old: Mapping[str, list[dict]],
    new: Mapping[str, list[dict]],
    *,
    key: str,
    sort_key: Callable[[dict], Any] | None = None,
) -> dict[str, list[dict]]:
    """Merge ``{group: [record, ...]}`` maps by group, de-duplicating records on ``key``.

    Old records come first so an already published record keeps its position.
    Groups that end up empty are dropped.
    """
    merged: dict[str, list[dict]] = {}
    for group in dict.fromkeys([*old.keys(), *new.keys()]):
        records = dedupe_records([*old.get(group, []), *new.get(group, [])], key)
        if sort_key:
            records.sort(key=sort_key)
        if records:
            merged[group] = records
    return merged
