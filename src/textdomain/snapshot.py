"""Binary snapshots of catalogs and registries.

A snapshot lets an application persist an already-built registry and
restore it at start-up without re-parsing catalog files.

Layout:
    header: magic (4) + version (1) + kind (1)
    body:   gzip-compressed JSON document

Plural rules are stored as their original ``Plural-Forms`` text and
re-parsed on load, never as a compiled tree.
"""

from __future__ import annotations

import gzip
import json
import struct
import zlib
from enum import IntEnum
from typing import Any

from textdomain.catalog import Catalog, CatalogEntry
from textdomain.errors import FormatError


HEADER_FORMAT = "<4sBB"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
MAGIC = b"TDSN"
VERSION = 1


class SnapshotKind(IntEnum):
    """What a snapshot blob contains."""

    CATALOG = 1
    LOCALE = 2
    REGISTRY = 3


def encode_payload(kind: SnapshotKind, payload: dict[str, Any]) -> bytes:
    """Wrap a JSON-compatible payload in a snapshot header."""
    body = gzip.compress(
        json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    )
    return struct.pack(HEADER_FORMAT, MAGIC, VERSION, int(kind)) + body


def decode_payload(data: bytes, kind: SnapshotKind) -> dict[str, Any]:
    """Unwrap a snapshot blob.

    Raises:
        FormatError: On a bad header, version, kind or body
    """
    if len(data) < HEADER_SIZE:
        raise FormatError("snapshot too short", offset=len(data))

    magic, version, found_kind = struct.unpack(HEADER_FORMAT, data[:HEADER_SIZE])
    if magic != MAGIC:
        raise FormatError(f"invalid snapshot magic {magic!r}", offset=0)
    if version != VERSION:
        raise FormatError(f"unsupported snapshot version {version}", offset=4)
    if found_kind != kind:
        raise FormatError(f"expected a {kind.name.lower()} snapshot, got kind {found_kind}", offset=5)

    try:
        payload = json.loads(gzip.decompress(data[HEADER_SIZE:]).decode("utf-8"))
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FormatError(f"corrupt snapshot body: {e}", offset=HEADER_SIZE) from e
    if not isinstance(payload, dict):
        raise FormatError("snapshot body is not an object", offset=HEADER_SIZE)
    return payload


def catalog_to_dict(catalog: Catalog) -> dict[str, Any]:
    return {
        "format": catalog.format,
        "source": catalog.source,
        "header": catalog.header_text,
        "plural_forms": catalog.plural_forms,
        "entries": [
            [
                entry.context,
                entry.msgid,
                entry.msgid_plural,
                list(entry.translations),
                sorted(entry.flags),
            ]
            for entry in catalog
        ],
    }


def catalog_from_dict(data: dict[str, Any]) -> Catalog:
    """Rebuild a catalog from :func:`catalog_to_dict` output.

    Raises:
        FormatError: If fields are missing or have the wrong shape
    """
    try:
        entries = [
            CatalogEntry(
                msgid=msgid,
                translations=tuple(forms) or ("",),
                context=context,
                msgid_plural=msgid_plural,
                flags=frozenset(flags),
            )
            for context, msgid, msgid_plural, forms, flags in data["entries"]
        ]
        return Catalog(
            entries,
            header_text=data["header"],
            plural_forms=data["plural_forms"],
            source=data.get("source"),
            format=data.get("format", "po"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FormatError(f"malformed catalog snapshot: {e}") from e


def encode_catalog(catalog: Catalog) -> bytes:
    return encode_payload(SnapshotKind.CATALOG, catalog_to_dict(catalog))


def decode_catalog(data: bytes) -> Catalog:
    return catalog_from_dict(decode_payload(data, SnapshotKind.CATALOG))
