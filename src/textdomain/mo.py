"""MO (Machine Object) binary catalogs.

Layout:
    offset  0: magic (0x950412de in the file's byte order)
    offset  4: revision
    offset  8: N, number of strings
    offset 12: O, offset of the original strings table
    offset 16: T, offset of the translated strings table
    offset 20: S, size of the hash table
    offset 24: H, offset of the hash table

Both tables hold N ``(length, offset)`` pairs of 32-bit integers. Every
offset and length is checked against the buffer before slicing, so a
truncated or corrupt file raises FormatError instead of reading garbage.
"""

from __future__ import annotations

import codecs
import logging
import struct
from pathlib import Path

from textdomain.catalog import (
    CONTEXT_SEPARATOR,
    PLURAL_SEPARATOR,
    Catalog,
    CatalogEntry,
    CatalogParser,
    charset_from_headers,
    parse_header,
)
from textdomain.errors import FormatError


logger = logging.getLogger(__name__)

LE_MAGIC = 0x950412DE
BE_MAGIC = 0xDE120495
HEADER_SIZE = 28
SUPPORTED_MAJOR_REVISIONS = (0, 1)

_CONTEXT_BYTE = CONTEXT_SEPARATOR.encode("ascii")
_PLURAL_BYTE = PLURAL_SEPARATOR.encode("ascii")


# ==============================================================================
# Parser
# ==============================================================================


class _MOReader:
    """Bounds-checked reader over one MO buffer."""

    def __init__(self, data: bytes, source: Path | str | None) -> None:
        self.data = bytes(data)
        self.source = source

    def _error(self, message: str, offset: int | None = None) -> FormatError:
        return FormatError(message, self.source, offset=offset)

    def _check_region(self, offset: int, size: int, what: str) -> None:
        if offset + size > len(self.data):
            raise self._error(
                f"{what} ({size} bytes) extends past end of file ({len(self.data)} bytes)",
                offset,
            )

    def _string(self, offset: int, length: int) -> bytes:
        # The NUL terminator after each string must be inside the buffer too.
        if offset + length >= len(self.data):
            raise self._error(
                f"string of length {length} extends past end of file ({len(self.data)} bytes)",
                offset,
            )
        return self.data[offset : offset + length]

    def read(self) -> Catalog:
        data = self.data
        if len(data) < 4:
            raise self._error("file too short for an MO magic number", 0)

        magic = struct.unpack("<I", data[:4])[0]
        if magic == LE_MAGIC:
            order = "<"
        elif magic == BE_MAGIC:
            order = ">"
        else:
            raise self._error(f"bad magic number 0x{magic:08x}", 0)

        if len(data) < HEADER_SIZE:
            raise self._error("truncated MO header", len(data))

        revision, count, originals, translations, hash_size, hash_offset = struct.unpack(
            f"{order}6I", data[4:HEADER_SIZE]
        )
        major = revision >> 16
        if major not in SUPPORTED_MAJOR_REVISIONS:
            raise self._error(f"unsupported MO revision {major}.{revision & 0xFFFF}", 4)

        self._check_region(originals, count * 8, "original strings table")
        self._check_region(translations, count * 8, "translated strings table")
        if hash_size:
            self._check_region(hash_offset, hash_size * 4, "hash table")

        pairs: list[tuple[bytes, bytes]] = []
        for i in range(count):
            o_length, o_offset = struct.unpack_from(f"{order}II", data, originals + 8 * i)
            t_length, t_offset = struct.unpack_from(f"{order}II", data, translations + 8 * i)
            pairs.append((self._string(o_offset, o_length), self._string(t_offset, t_length)))

        header_bytes = b""
        for original, translated in pairs:
            if original == b"":
                header_bytes = translated
                break

        charset = charset_from_headers(parse_header(header_bytes.decode("latin-1")))
        try:
            codecs.lookup(charset)
        except LookupError:
            logger.warning(f"Unknown MO charset {charset!r} in {self.source}, decoding as utf-8")
            charset = "utf-8"

        entries = []
        for original, translated in pairs:
            if original == b"":
                continue
            entries.append(self._entry(original, translated, charset))

        return Catalog(
            entries,
            header_text=self._decode(header_bytes, charset),
            source=self.source,
            format="mo",
        )

    def _decode(self, raw: bytes, charset: str) -> str:
        try:
            return raw.decode(charset)
        except UnicodeDecodeError as e:
            raise self._error(f"invalid {charset} string: {e.reason}") from e

    def _entry(self, original: bytes, translated: bytes, charset: str) -> CatalogEntry:
        context = ""
        if _CONTEXT_BYTE in original:
            raw_context, original = original.split(_CONTEXT_BYTE, 1)
            context = self._decode(raw_context, charset)

        msgid_plural = None
        if _PLURAL_BYTE in original:
            raw_msgid, raw_plural = original.split(_PLURAL_BYTE, 1)
            msgid = self._decode(raw_msgid, charset)
            msgid_plural = self._decode(raw_plural, charset)
            forms = tuple(self._decode(form, charset) for form in translated.split(_PLURAL_BYTE))
        else:
            msgid = self._decode(original, charset)
            forms = (self._decode(translated, charset),)

        return CatalogEntry(
            msgid=msgid,
            translations=forms,
            context=context,
            msgid_plural=msgid_plural,
        )


class MOParser(CatalogParser):
    """Parser for compiled ``.mo`` catalogs."""

    format_name = "mo"
    extension = ".mo"

    def parse(self, data: bytes, source: Path | str | None = None) -> Catalog:
        return _MOReader(data, source).read()


# ==============================================================================
# Compiler
# ==============================================================================


def hashpjw(data: bytes) -> int:
    """P.J. Weinberger's hash, as GNU gettext's ``hash_string`` computes it."""
    value = 0
    for byte in data:
        value = (value << 4) + byte
        high = value & 0xF0000000
        if high:
            value ^= high >> 24
            value ^= high
    return value & 0xFFFFFFFF


def _hash_table_size(count: int) -> int:
    """First odd prime at or above ``count * 4 / 3`` (at least 3)."""
    size = max(3, count * 4 // 3) | 1
    while True:
        if all(size % div for div in range(3, int(size**0.5) + 1, 2)):
            return size
        size += 2


def compile_mo(catalog: Catalog, use_hash: bool = False) -> bytes:
    """Compile a catalog into little-endian MO bytes.

    Fuzzy and untranslated entries are left out, as msgfmt does.

    Args:
        catalog: Catalog to compile
        use_hash: Include a GNU hash table

    Returns:
        MO file contents
    """
    charset = catalog.charset

    def encode(text: str) -> bytes:
        try:
            return text.encode(charset)
        except (UnicodeEncodeError, LookupError) as e:
            raise FormatError(f"cannot encode {text[:30]!r} as {charset}: {e}", catalog.source) from e

    messages: dict[bytes, bytes] = {}
    if catalog.header_text:
        messages[b""] = encode(catalog.header_text)
    for entry in catalog:
        if entry.is_fuzzy or not entry.is_translated:
            continue
        original = entry.msgid
        if entry.msgid_plural is not None:
            original += PLURAL_SEPARATOR + entry.msgid_plural
        if entry.context:
            original = entry.context + CONTEXT_SEPARATOR + original
        messages[encode(original)] = encode(PLURAL_SEPARATOR.join(entry.translations))

    keys = sorted(messages)
    count = len(keys)
    hash_size = _hash_table_size(count) if use_hash else 0
    originals_offset = HEADER_SIZE
    translations_offset = originals_offset + 8 * count
    hash_offset = translations_offset + 8 * count
    ids_offset = hash_offset + 4 * hash_size

    ids = bytearray()
    strs = bytearray()
    original_table: list[int] = []
    translation_table: list[int] = []
    for key in keys:
        value = messages[key]
        original_table += [len(key), len(ids)]
        translation_table += [len(value), len(strs)]
        ids += key + b"\x00"
        strs += value + b"\x00"

    strs_offset = ids_offset + len(ids)
    for i in range(count):
        original_table[2 * i + 1] += ids_offset
        translation_table[2 * i + 1] += strs_offset

    hash_table = [0] * hash_size
    if use_hash:
        for index, key in enumerate(keys, 1):
            value = hashpjw(key.split(_PLURAL_BYTE, 1)[0])
            slot = value % hash_size
            step = 1 + value % (hash_size - 2)
            while hash_table[slot]:
                slot = (slot + step) % hash_size
            hash_table[slot] = index

    out = bytearray(
        struct.pack(
            "<7I",
            LE_MAGIC,
            0,
            count,
            originals_offset,
            translations_offset,
            hash_size,
            hash_offset,
        )
    )
    out += struct.pack(f"<{2 * count}I", *original_table)
    out += struct.pack(f"<{2 * count}I", *translation_table)
    out += struct.pack(f"<{hash_size}I", *hash_table)
    out += ids
    out += strs
    return bytes(out)
