"""Metadata reader — one ``<id>.metadata`` file per library item.

Public API
----------
parse_record(item_id, text) -> ItemRecord
    Pull ``parent``, ``visibleName`` and ``type`` out of one record.
load_records(directory) -> (records, errors)
    Parse every ``*.metadata`` file in *directory*.

Extraction
----------
The appliance writes these files as JSON, but key order and whitespace vary
between firmware versions and the files are occasionally caught half
written. Each field is therefore extracted on its own with a tolerant regex
(first match wins) instead of parsing the whole document. A record that is
missing ``visibleName`` or ``type`` is reported as a ``MetadataError`` and
skipped; it never aborts loading the rest.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from booksafe.errors import MetadataError

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata"


class ItemKind(Enum):
    DOCUMENT = "DocumentType"
    COLLECTION = "CollectionType"


@dataclass(frozen=True)
class ItemRecord:
    id: str
    parent: str | None  # None / "" both mean the library root
    display_name: str
    kind: ItemKind


# ── field extraction ─────────────────────────────────────────────────────────

# A JSON string body: anything but quote/backslash, or an escape sequence.
_STRING_BODY = r'((?:[^"\\]|\\.)*)'


def _field_pattern(key: str) -> re.Pattern[str]:
    return re.compile(r'"' + re.escape(key) + r'"\s*:\s*"' + _STRING_BODY + '"')


_PARENT = _field_pattern("parent")
_NAME = _field_pattern("visibleName")
_TYPE = _field_pattern("type")


def _extract(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    raw = match.group(1)
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        # malformed escape; the raw text is still the best name we have
        return raw


def parse_record(item_id: str, text: str) -> ItemRecord:
    """Return the ItemRecord in *text*.  Raises MetadataError."""
    name = _extract(_NAME, text)
    if name is None:
        raise MetadataError(item_id, "missing visibleName")

    kind_raw = _extract(_TYPE, text)
    if kind_raw is None:
        raise MetadataError(item_id, "missing type")
    try:
        kind = ItemKind(kind_raw)
    except ValueError:
        raise MetadataError(item_id, f"unexpected type: {kind_raw}") from None

    parent = _extract(_PARENT, text) or None
    return ItemRecord(id=item_id, parent=parent, display_name=name, kind=kind)


# ── public API ───────────────────────────────────────────────────────────────


def load_records(directory: Path) -> tuple[list[ItemRecord], list[MetadataError]]:
    """Parse every metadata file in *directory*.

    Returns the records sorted by id, plus one MetadataError per file that
    could not be read or parsed.
    """
    records: list[ItemRecord] = []
    errors: list[MetadataError] = []

    for path in sorted(directory.glob("*" + METADATA_SUFFIX)):
        if not path.is_file():
            continue
        item_id = path.stem
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
            records.append(parse_record(item_id, text))
        except OSError as exc:
            errors.append(MetadataError(item_id, f"unreadable: {exc}"))
        except MetadataError as exc:
            errors.append(exc)

    for error in errors:
        logger.warning("Skipping metadata record %s", error)
    logger.debug("Loaded %d metadata records from %s", len(records), directory)
    return records, errors
