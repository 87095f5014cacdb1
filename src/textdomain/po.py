"""PO (Portable Object) text catalogs.

Parsing is lenient where gettext tools are: unknown keywords and comment
kinds are skipped, obsolete ``#~`` entries are ignored and fuzzy entries are
loaded with their flag set. Broken string literals, stray continuation
lines and msgstr lines with no msgid are FormatErrors.

Example:
    # Translator comment
    #: src/main.py:12
    #, fuzzy, python-format
    msgctxt "menu"
    msgid "%d file"
    msgid_plural "%d files"
    msgstr[0] "%d Datei"
    msgstr[1] "%d Dateien"
"""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path

from textdomain.catalog import Catalog, CatalogEntry, CatalogParser
from textdomain.errors import FormatError


logger = logging.getLogger(__name__)

_BOM = codecs.BOM_UTF8
_CHARSET_PATTERN = re.compile(rb"Content-Type:[^\"\\]*charset=([A-Za-z0-9_.:-]+)", re.IGNORECASE)
_KEYWORD_PATTERN = re.compile(r"^([A-Za-z_]+)(?:\[([^\]]*)\])?\s*(.*)$")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    '"': '"',
    "'": "'",
    "\\": "\\",
    "?": "?",
}
_OCTAL_DIGITS = "01234567"
_HEX_DIGITS = "0123456789abcdefABCDEF"


# ==============================================================================
# String Literals
# ==============================================================================


def unescape(
    literal: str,
    source: Path | str | None = None,
    line: int | None = None,
    charset: str = "utf-8",
) -> str:
    """Decode a double-quoted PO string literal.

    Octal (``\\351``) and hex (``\\xe9``) escapes denote bytes in the
    catalog charset, as they do for msgfmt. A run of adjacent numeric
    escapes is decoded as one byte sequence, so ``"\\303\\251"`` is ``"é"``
    in a UTF-8 catalog and ``"\\351"`` is ``"é"`` in a Latin-1 one.

    Args:
        literal: Literal including its quotes
        source: File name for error messages
        line: Line number for error messages
        charset: Encoding used to decode numeric escapes

    Returns:
        Decoded text

    Raises:
        FormatError: If the literal is unterminated or followed by junk, a
            numeric escape does not fit in a byte, or escaped bytes are not
            valid in ``charset``
    """
    if not literal.startswith('"'):
        raise FormatError(f"expected string literal, got {literal[:20]!r}", source, line)

    chars: list[str] = []
    pending = bytearray()

    def flush() -> None:
        if not pending:
            return
        try:
            chars.append(pending.decode(charset))
        except UnicodeDecodeError as e:
            raise FormatError(
                f"escaped bytes are not valid {charset}: {e.reason}", source, line
            ) from e
        pending.clear()

    i = 1
    end = len(literal)
    while i < end:
        ch = literal[i]
        if ch == '"':
            if literal[i + 1 :].strip():
                raise FormatError("unexpected text after string literal", source, line)
            flush()
            return "".join(chars)
        if ch != "\\":
            flush()
            chars.append(ch)
            i += 1
            continue

        i += 1
        if i >= end:
            break
        esc = literal[i]
        if esc in _OCTAL_DIGITS:
            j = i
            while j < end and j - i < 3 and literal[j] in _OCTAL_DIGITS:
                j += 1
            value = int(literal[i:j], 8)
            if value > 0xFF:
                raise FormatError("octal escape out of range", source, line)
            pending.append(value)
            i = j
        elif esc == "x":
            j = i + 1
            while j < end and literal[j] in _HEX_DIGITS:
                j += 1
            if j == i + 1:
                raise FormatError("\\x escape without hex digits", source, line)
            value = int(literal[i + 1 : j], 16)
            if value > 0xFF:
                raise FormatError("\\x escape out of range", source, line)
            pending.append(value)
            i = j
        elif esc in _SIMPLE_ESCAPES:
            flush()
            chars.append(_SIMPLE_ESCAPES[esc])
            i += 1
        else:
            flush()
            # Unknown escape: keep the character, as msgfmt warns and continues.
            chars.append(esc)
            i += 1

    raise FormatError("unterminated string literal", source, line)


def escape(text: str) -> str:
    """Encode text for use inside a PO string literal (without quotes)."""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )


# ==============================================================================
# Parser
# ==============================================================================


class _EntryBuilder:
    """Accumulates the fields of the entry being read."""

    def __init__(self) -> None:
        self.context: str | None = None
        self.msgid: str | None = None
        self.msgid_plural: str | None = None
        self.translations: dict[int, str] = {}
        self.flags: set[str] = set()
        self.field: tuple[str, int] | None = None
        self.line = 0

    @property
    def has_msgstr(self) -> bool:
        return bool(self.translations) or (self.field is not None and self.field[0] == "msgstr")

    def append(self, text: str) -> None:
        name, index = self.field  # type: ignore[misc]
        if name == "msgctxt":
            self.context = (self.context or "") + text
        elif name == "msgid":
            self.msgid = (self.msgid or "") + text
        elif name == "msgid_plural":
            self.msgid_plural = (self.msgid_plural or "") + text
        elif name == "msgstr":
            self.translations[index] = self.translations.get(index, "") + text


class _POReader:
    """Line-oriented state machine over decoded PO text."""

    def __init__(self, text: str, source: Path | str | None, charset: str = "utf-8") -> None:
        self.text = text
        self.source = source
        self.charset = charset
        self.entries: list[CatalogEntry] = []
        self.header_text = ""
        self.current = _EntryBuilder()

    def read(self) -> Catalog:
        for lineno, raw in enumerate(self.text.split("\n"), 1):
            self._read_line(raw.strip(), lineno)
        self._finish()
        return Catalog(
            self.entries,
            header_text=self.header_text,
            source=self.source,
            format="po",
        )

    def _error(self, message: str, lineno: int) -> FormatError:
        return FormatError(message, self.source, lineno)

    def _read_line(self, line: str, lineno: int) -> None:
        current = self.current

        if not line:
            self._finish()
            return

        if line.startswith("#"):
            if current.has_msgstr:
                self._finish()
            if line.startswith("#,"):
                self.current.flags.update(
                    flag.strip() for flag in line[2:].split(",") if flag.strip()
                )
            # Other comment kinds, including obsolete "#~" entries, are dropped.
            return

        if line.startswith('"'):
            if current.field is None:
                raise self._error("string continuation without a keyword", lineno)
            if current.field[0] != "ignored":
                current.append(unescape(line, self.source, lineno, self.charset))
            return

        match = _KEYWORD_PATTERN.match(line)
        if match is None:
            raise self._error(f"unexpected text {line[:30]!r}", lineno)
        keyword, index_text, rest = match.groups()

        if keyword == "msgctxt":
            if current.has_msgstr or current.msgid is not None:
                self._finish()
            current = self.current
            current.context = ""
            current.field = ("msgctxt", 0)
            current.line = current.line or lineno
        elif keyword == "msgid":
            if current.has_msgstr:
                self._finish()
            elif current.msgid is not None:
                logger.debug(f"{self.source}:{lineno}: msgid without msgstr dropped")
                context = current.context
                self._reset()
                self.current.context = context
            current = self.current
            current.msgid = ""
            current.field = ("msgid", 0)
            current.line = current.line or lineno
        elif keyword == "msgid_plural":
            if current.msgid is None or current.has_msgstr:
                raise self._error("msgid_plural without msgid", lineno)
            current.msgid_plural = ""
            current.field = ("msgid_plural", 0)
        elif keyword == "msgstr":
            if current.msgid is None:
                raise self._error("msgstr without msgid", lineno)
            index = 0
            if index_text is not None:
                try:
                    index = int(index_text.strip())
                except ValueError:
                    raise self._error(f"invalid plural index {index_text!r}", lineno) from None
                if index < 0:
                    raise self._error(f"negative plural index {index}", lineno)
            current.translations.setdefault(index, "")
            current.field = ("msgstr", index)
        else:
            logger.debug(f"{self.source}:{lineno}: skipping unknown keyword {keyword!r}")
            current.field = ("ignored", 0)
            return

        if rest:
            current.append(unescape(rest, self.source, lineno, self.charset))

    def _reset(self) -> None:
        self.current = _EntryBuilder()

    def _finish(self) -> None:
        current = self.current
        self._reset()
        if current.msgid is None:
            return
        if not current.translations:
            logger.debug(f"{self.source}:{current.line}: entry {current.msgid!r} has no msgstr")
            return

        if current.msgid_plural is None:
            translations: tuple[str, ...] = (current.translations.get(0, ""),)
        else:
            size = max(current.translations) + 1
            translations = tuple(current.translations.get(i, "") for i in range(size))

        if current.msgid == "" and current.context is None:
            self.header_text = translations[0]
            return

        self.entries.append(
            CatalogEntry(
                msgid=current.msgid,
                translations=translations,
                context=current.context or "",
                msgid_plural=current.msgid_plural,
                flags=frozenset(current.flags),
            )
        )


def detect_charset(data: bytes, default: str = "utf-8") -> str:
    """Find the charset declared in a PO header without decoding the file."""
    match = _CHARSET_PATTERN.search(data)
    if match is None:
        return default
    charset = match.group(1).decode("ascii")
    if charset.upper() == "CHARSET":
        return default
    try:
        codecs.lookup(charset)
    except LookupError:
        logger.warning(f"Unknown PO charset {charset!r}, decoding as {default}")
        return default
    return charset


class POParser(CatalogParser):
    """Parser for ``.po`` text catalogs."""

    format_name = "po"
    extension = ".po"

    def parse(self, data: bytes, source: Path | str | None = None) -> Catalog:
        if data.startswith(_BOM):
            data = data[len(_BOM) :]
        charset = detect_charset(data)
        try:
            text = data.decode(charset)
        except UnicodeDecodeError as e:
            raise FormatError(f"invalid {charset} text: {e.reason}", source, offset=e.start) from e
        return _POReader(text, source, charset).read()

    def parse_text(
        self, text: str, source: Path | str | None = None, charset: str = "utf-8"
    ) -> Catalog:
        """Parse already-decoded PO text; numeric escapes are decoded with ``charset``."""
        return _POReader(text, source, charset).read()


# ==============================================================================
# Writer
# ==============================================================================


def _string_lines(keyword: str, text: str) -> list[str]:
    """Render ``keyword "text"``, splitting multi-line values gettext-style."""
    if "\n" not in text.rstrip("\n"):
        return [f'{keyword} "{escape(text)}"']
    lines = [f'{keyword} ""']
    for part in text.splitlines(keepends=True):
        lines.append(f'"{escape(part)}"')
    return lines


def dump_po(catalog: Catalog) -> str:
    """Render a catalog as PO text.

    The header comes first, then entries sorted by (context, msgid).
    """
    lines: list[str] = []
    if catalog.header_text:
        lines.append('msgid ""')
        lines.extend(_string_lines("msgstr", catalog.header_text))
        lines.append("")

    for entry in sorted(catalog, key=lambda e: e.key):
        if entry.flags:
            lines.append("#, " + ", ".join(sorted(entry.flags)))
        if entry.context:
            lines.extend(_string_lines("msgctxt", entry.context))
        lines.extend(_string_lines("msgid", entry.msgid))
        if entry.msgid_plural is not None:
            lines.extend(_string_lines("msgid_plural", entry.msgid_plural))
            for index, form in enumerate(entry.translations):
                lines.extend(_string_lines(f"msgstr[{index}]", form))
        else:
            lines.extend(_string_lines("msgstr", entry.translations[0]))
        lines.append("")

    return "\n".join(lines)
