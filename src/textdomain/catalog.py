"""In-memory translation catalogs.

A Catalog holds the entries of one (language, domain) pair together with the
metadata from its header entry. Both file-format parsers produce a Catalog and
every lookup goes through it.

Lookups never fail loudly: an unknown key, a missing plural form or an empty
translation degrades to the caller's source string.

Usage:
    from textdomain.po import POParser

    catalog = POParser().parse_file("locales/de/LC_MESSAGES/app.po")
    catalog.get("Save")                              # -> "Speichern"
    catalog.get_plural("%d file", "%d files", 3)     # -> "%d Dateien"
    catalog.get_context("File", "menu")              # -> "Datei"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from textdomain.plural import PluralRule, rule_from_header


CONTEXT_SEPARATOR = "\x04"
PLURAL_SEPARATOR = "\x00"

CatalogKey = tuple[str, str]


def parse_header(text: str) -> dict[str, str]:
    """Parse the header entry's ``Key: value`` block.

    Lines without a colon continue the previous value.

    Args:
        text: Translation of the empty msgid

    Returns:
        Header fields in file order
    """
    headers: dict[str, str] = {}
    last_key = None
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        if ":" in line:
            key, value = line.split(":", 1)
            last_key = key.strip()
            headers[last_key] = value.strip()
        elif last_key is not None:
            headers[last_key] += "\n" + line
    return headers


def header_value(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def charset_from_headers(headers: Mapping[str, str], default: str = "utf-8") -> str:
    """Extract the charset from a ``Content-Type`` header."""
    content_type = header_value(headers, "Content-Type") or ""
    for param in content_type.split(";"):
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            charset = value.strip()
            # Template files ship the literal placeholder.
            if charset.upper() != "CHARSET":
                return charset
    return default


@dataclass(frozen=True)
class CatalogEntry:
    """A single translation.

    Attributes:
        msgid: Source string
        translations: Plural forms, index 0 is the singular
        context: msgctxt, empty for none
        msgid_plural: Source plural string for plural entries
        flags: Flags from ``#,`` comments (``fuzzy``, ``c-format``...)
    """

    msgid: str
    translations: tuple[str, ...] = ("",)
    context: str = ""
    msgid_plural: str | None = None
    flags: frozenset[str] = field(default_factory=frozenset)

    @property
    def key(self) -> CatalogKey:
        return (self.context, self.msgid)

    @property
    def is_plural(self) -> bool:
        return self.msgid_plural is not None

    @property
    def is_fuzzy(self) -> bool:
        return "fuzzy" in self.flags

    @property
    def is_translated(self) -> bool:
        return any(self.translations)


class Catalog:
    """Immutable translation table for one language and domain.

    Attributes:
        headers: Header fields from the empty-msgid entry
        header_text: Raw header entry text
        rule: Plural rule compiled from ``Plural-Forms``
        charset: Declared charset
        source: File the catalog was parsed from
        format: ``"po"`` or ``"mo"``, kept across snapshots
    """

    def __init__(
        self,
        entries: Iterable[CatalogEntry] = (),
        header_text: str = "",
        plural_forms: str | None = None,
        source: Path | str | None = None,
        format: str = "po",
    ) -> None:
        """Initialize catalog.

        Args:
            entries: Catalog entries; the last entry for a key wins
            header_text: Raw header entry text
            plural_forms: Plural-Forms text overriding the header's
            source: Origin of the catalog
            format: Format the catalog was read from
        """
        table: dict[CatalogKey, CatalogEntry] = {}
        for entry in entries:
            table[entry.key] = entry
        self._entries: Mapping[CatalogKey, CatalogEntry] = MappingProxyType(table)

        self.header_text = header_text
        self.headers: Mapping[str, str] = MappingProxyType(parse_header(header_text))
        if plural_forms is None:
            plural_forms = header_value(self.headers, "Plural-Forms")
        self.rule: PluralRule = rule_from_header(plural_forms)
        self.charset = charset_from_headers(self.headers)
        self.source = str(source) if source is not None else None
        self.format = format

    def __repr__(self) -> str:
        return (
            f"Catalog(entries={len(self)}, nplurals={self.rule.nplurals}, "
            f"format={self.format!r}, source={self.source!r})"
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            key = ("", key)
        return key in self._entries

    @property
    def plural_forms(self) -> str:
        """Plural-Forms header text of the active rule."""
        return self.rule.header

    @property
    def nplurals(self) -> int:
        return self.rule.nplurals

    @property
    def language(self) -> str | None:
        return header_value(self.headers, "Language")

    def entry(self, msgid: str, context: str = "") -> CatalogEntry | None:
        """Get the full entry for a key."""
        return self._entries.get((context or "", msgid))

    def is_fuzzy(self, msgid: str, context: str = "") -> bool:
        """Check whether an entry carries the fuzzy flag."""
        entry = self.entry(msgid, context)
        return entry is not None and entry.is_fuzzy

    def lookup(self, msgid: str, context: str = "") -> tuple[str, ...] | None:
        """Get the plural form list for a key, or None if absent."""
        entry = self.entry(msgid, context)
        if entry is None:
            return None
        return entry.translations

    def select(
        self,
        msgid: str,
        context: str = "",
        n: int = 1,
        msgid_plural: str | None = None,
    ) -> str:
        """Select the translation for count ``n``.

        Applies the plural rule to ``n`` and indexes the entry's forms.
        Without an entry, or when the indexed form is missing or empty,
        the source string is returned: ``msgid`` for ``n == 1`` or when no
        ``msgid_plural`` is given, otherwise ``msgid_plural``.
        """
        forms = self.lookup(msgid, context)
        if forms:
            index = self.rule.select(n)
            if index < len(forms) and forms[index]:
                return forms[index]
        if msgid_plural is not None and n != 1:
            return msgid_plural
        return msgid

    def get(self, msgid: str) -> str:
        return self.get_context(msgid, "")

    def get_plural(self, msgid: str, msgid_plural: str, n: int) -> str:
        return self.select(msgid, "", n, msgid_plural)

    def get_context(self, msgid: str, context: str) -> str:
        forms = self.lookup(msgid, context)
        if forms and forms[0]:
            return forms[0]
        return msgid

    def get_plural_context(self, msgid: str, msgid_plural: str, n: int, context: str) -> str:
        return self.select(msgid, context, n, msgid_plural)

    def marshal_binary(self) -> bytes:
        """Serialize the catalog to a versioned snapshot blob."""
        from textdomain.snapshot import encode_catalog

        return encode_catalog(self)

    @classmethod
    def unmarshal_binary(cls, data: bytes) -> "Catalog":
        """Rebuild a catalog from :meth:`marshal_binary` output.

        Raises:
            FormatError: If the blob is not a catalog snapshot
        """
        from textdomain.snapshot import decode_catalog

        return decode_catalog(data)


class CatalogParser(ABC):
    """Strategy that turns catalog file contents into a Catalog."""

    format_name: str = ""
    extension: str = ""

    @abstractmethod
    def parse(self, data: bytes, source: Path | str | None = None) -> Catalog:
        """Parse catalog bytes.

        Args:
            data: File contents
            source: Origin used in error messages

        Raises:
            FormatError: On unrecoverable syntax errors
        """

    def parse_file(self, path: Path | str) -> Catalog:
        """Read and parse a catalog file."""
        path = Path(path)
        return self.parse(path.read_bytes(), source=path)
