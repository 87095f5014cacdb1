"""Locale and Domain Management.

This module resolves catalog files on disk, parses them with the matching
parser, caches the result per language and domain, and serves lookups from
any number of threads.

Features:
- MO-first file resolution with two-letter language fallback
- Single-flight loading (one parse per domain at a time)
- Reader/writer locking around the language and domain maps
- Implicit first load on lookup, explicit reload on request
- Snapshot export/import of a fully built registry

Usage:
    from textdomain.registry import LocaleRegistry

    registry = LocaleRegistry("/usr/share/locale")
    registry.add_domain("fr_CA", "app")

    registry.get("fr_CA", "Save", domain="app")                  # -> "Enregistrer"
    registry.get_plural("fr_CA", "%d file", "%d files", 2, domain="app")

    blob = registry.export_snapshot()
    restored = LocaleRegistry.import_snapshot(blob)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator

from textdomain.catalog import Catalog, CatalogParser
from textdomain.errors import ExpressionError, FormatError, NotFoundError, TextDomainError
from textdomain.mo import MOParser
from textdomain.po import POParser
from textdomain.snapshot import (
    SnapshotKind,
    catalog_from_dict,
    catalog_to_dict,
    decode_payload,
    encode_payload,
)


logger = logging.getLogger(__name__)

# Search order: compiled catalogs first.
CATALOG_EXTENSIONS = (".mo", ".po")

_PARSERS: dict[str, type[CatalogParser]] = {
    ".mo": MOParser,
    ".po": POParser,
}


def simplify_locale(tag: str) -> str:
    """Normalize a locale tag to ``ll_CC`` form.

    Strips encoding, modifier and colon-separated alternatives:
    ``en-us.UTF-8@euro`` -> ``en_US``.
    """
    for separator in (":", "@", "."):
        tag = tag.split(separator, 1)[0]
    parts = tag.strip().replace("-", "_").split("_")
    parts[0] = parts[0].lower()
    if len(parts) > 1 and len(parts[1]) == 2:
        parts[1] = parts[1].upper()
    return "_".join(parts)


def parser_for_path(path: Path | str) -> CatalogParser:
    """Pick the parser for a catalog file by extension.

    Raises:
        FormatError: For an unknown extension
    """
    suffix = Path(path).suffix.lower()
    parser_cls = _PARSERS.get(suffix)
    if parser_cls is None:
        raise FormatError(f"unknown catalog extension {suffix!r}", path)
    return parser_cls()


def load_catalog(path: Path | str) -> Catalog:
    """Parse a ``.po`` or ``.mo`` file."""
    return parser_for_path(path).parse_file(path)


# ==============================================================================
# Locking
# ==============================================================================


class ReadWriteLock:
    """Reader/writer lock preferring waiting writers.

    Not reentrant: a thread must not take the read side twice.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


# ==============================================================================
# Domains
# ==============================================================================


class DomainState(str, Enum):
    """Load state of a (language, domain) pair."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class Domain:
    """A named catalog slot within a Locale.

    Attributes:
        name: Domain name
        catalog: Loaded catalog, None unless state is LOADED
        state: Load state
        path: File the catalog came from
        error: Why the last load failed
    """

    name: str
    catalog: Catalog | None = None
    state: DomainState = DomainState.UNLOADED
    path: Path | None = None
    error: TextDomainError | OSError | None = None


@dataclass
class _PendingLoad:
    done: threading.Event = field(default_factory=threading.Event)
    result: Domain | None = None


def _passthrough(msgid: str, msgid_plural: str | None, n: int) -> str:
    if msgid_plural is not None and n != 1:
        return msgid_plural
    return msgid


# ==============================================================================
# Locale
# ==============================================================================


class Locale:
    """All domains loaded for one language.

    Example:
        locale = Locale("/path/to/locales", "en_US")

        # Loads /path/to/locales/en_US/LC_MESSAGES/default.{mo,po}
        locale.add_domain("default")
        locale.get("Translate this")

        locale.add_domain("extras")
        locale.get("Translate this", domain="extras")
    """

    def __init__(self, path: Path | str, language: str, autoload: bool = True) -> None:
        """Initialize locale.

        Args:
            path: Library directory holding one directory per language
            language: Language tag, normalized with :func:`simplify_locale`
            autoload: Load unknown domains on first lookup
        """
        self.path = Path(path)
        self.language = simplify_locale(language)
        self.autoload = autoload
        self._domains: dict[str, Domain] = {}
        self._default_domain: str | None = None
        self._lock = ReadWriteLock()
        self._loads: dict[str, _PendingLoad] = {}
        self._loads_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Locale(language={self.language!r}, path={str(self.path)!r}, domains={self.domains()})"

    # ------------------------------------------------------------------
    # File resolution
    # ------------------------------------------------------------------

    def candidate_paths(self, domain: str) -> list[Path]:
        """List catalog files to try for a domain, in search order."""
        languages = [self.language]
        if len(self.language) > 2:
            languages.append(self.language[:2])

        candidates = []
        for extension in CATALOG_EXTENSIONS:
            filename = f"{domain}{extension}"
            for language in languages:
                candidates.append(self.path / language / "LC_MESSAGES" / filename)
            for language in languages:
                candidates.append(self.path / language / filename)
        return candidates

    def find_catalog_file(self, domain: str) -> Path | None:
        """Get the first existing catalog file for a domain."""
        for candidate in self.candidate_paths(domain):
            if candidate.is_file():
                return candidate
        return None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_domain(self, name: str) -> Domain:
        """Load (or reload) a domain from disk.

        A call made while the same domain is already loading waits for
        that load and returns its result.

        Returns:
            The resulting Domain; check ``state`` for success
        """
        return self._load_domain(name, force=True)

    def ensure_domain(self, name: str) -> Domain:
        """Load a domain unless a load was already attempted."""
        return self._load_domain(name, force=False)

    def add_catalog(self, name: str, catalog: Catalog) -> Domain:
        """Install an already-built catalog as a domain."""
        domain = Domain(
            name=name,
            catalog=catalog,
            state=DomainState.LOADED,
            path=Path(catalog.source) if catalog.source else None,
        )
        self._store(domain)
        return domain

    def _load_domain(self, name: str, force: bool) -> Domain:
        with self._loads_lock:
            pending = self._loads.get(name)
            owner = pending is None
            if owner:
                if not force:
                    existing = self.domain(name)
                    if existing is not None:
                        return existing
                pending = _PendingLoad()
                self._loads[name] = pending

        if not owner:
            pending.done.wait()
            return pending.result or Domain(name=name)

        domain = None
        try:
            domain = self._load(name)
            self._store(domain)
        finally:
            with self._loads_lock:
                del self._loads[name]
            pending.result = domain
            pending.done.set()
        return domain

    def _load(self, name: str) -> Domain:
        path = self.find_catalog_file(name)
        if path is None:
            error = NotFoundError(self.language, name, self.candidate_paths(name))
            logger.info(error.message)
            return Domain(name=name, state=DomainState.FAILED, error=error)

        try:
            catalog = load_catalog(path)
        except (FormatError, ExpressionError, OSError) as e:
            logger.warning(f"Failed to load domain '{name}' for '{self.language}' from {path}: {e}")
            return Domain(name=name, state=DomainState.FAILED, path=path, error=e)

        logger.debug(f"Loaded {len(catalog)} entries for '{self.language}/{name}' from {path}")
        return Domain(name=name, catalog=catalog, state=DomainState.LOADED, path=path)

    def _store(self, domain: Domain) -> None:
        with self._lock.write():
            self._domains[domain.name] = domain
            if domain.state == DomainState.LOADED and self._default_domain is None:
                self._default_domain = domain.name

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_domain(self) -> str | None:
        """Get the default domain name."""
        with self._lock.read():
            return self._default_domain

    def set_domain(self, name: str) -> None:
        """Set the default domain name."""
        with self._lock.write():
            self._default_domain = name

    def domain(self, name: str) -> Domain | None:
        with self._lock.read():
            return self._domains.get(name)

    def domains(self) -> list[str]:
        with self._lock.read():
            return sorted(self._domains)

    def domain_state(self, name: str) -> DomainState:
        with self._loads_lock:
            if name in self._loads:
                return DomainState.LOADING
        domain = self.domain(name)
        return domain.state if domain is not None else DomainState.UNLOADED

    def catalog(self, domain: str | None = None) -> Catalog | None:
        """Get the catalog for a domain, loading it on first use.

        Args:
            domain: Domain name, defaults to the default domain
        """
        name = domain or self.get_domain()
        if name is None:
            return None
        record = self.domain(name)
        if record is None and self.autoload:
            record = self.ensure_domain(name)
        return record.catalog if record is not None else None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, msgid: str, domain: str | None = None) -> str:
        catalog = self.catalog(domain)
        if catalog is None:
            return msgid
        return catalog.get(msgid)

    def get_plural(self, msgid: str, msgid_plural: str, n: int, domain: str | None = None) -> str:
        catalog = self.catalog(domain)
        if catalog is None:
            return _passthrough(msgid, msgid_plural, n)
        return catalog.get_plural(msgid, msgid_plural, n)

    def get_context(self, msgid: str, context: str, domain: str | None = None) -> str:
        catalog = self.catalog(domain)
        if catalog is None:
            return msgid
        return catalog.get_context(msgid, context)

    def get_plural_context(
        self,
        msgid: str,
        msgid_plural: str,
        n: int,
        context: str,
        domain: str | None = None,
    ) -> str:
        catalog = self.catalog(domain)
        if catalog is None:
            return _passthrough(msgid, msgid_plural, n)
        return catalog.get_plural_context(msgid, msgid_plural, n, context)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        with self._lock.read():
            return {
                "language": self.language,
                "path": str(self.path),
                "default_domain": self._default_domain,
                "domains": {
                    name: catalog_to_dict(domain.catalog)
                    for name, domain in self._domains.items()
                    if domain.catalog is not None
                },
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any], autoload: bool = True) -> "Locale":
        try:
            locale = cls(data["path"], data["language"], autoload=autoload)
            for name, catalog_data in data["domains"].items():
                locale.add_catalog(name, catalog_from_dict(catalog_data))
            if data.get("default_domain"):
                locale.set_domain(data["default_domain"])
        except (KeyError, TypeError, AttributeError) as e:
            raise FormatError(f"malformed locale snapshot: {e}") from e
        return locale

    def marshal_binary(self) -> bytes:
        return encode_payload(SnapshotKind.LOCALE, self.to_dict())

    @classmethod
    def unmarshal_binary(cls, data: bytes, autoload: bool = True) -> "Locale":
        return cls.from_dict(decode_payload(data, SnapshotKind.LOCALE), autoload=autoload)


# ==============================================================================
# Registry
# ==============================================================================


class LocaleRegistry:
    """Language -> Locale map shared by the whole application.

    Example:
        registry = LocaleRegistry("locales")
        registry.load("de_DE", ["app", "errors"])
        registry.get("de_DE", "Save", domain="app")
    """

    def __init__(self, library: Path | str, autoload: bool = True) -> None:
        """Initialize registry.

        Args:
            library: Directory holding one directory per language
            autoload: Load unknown domains on first lookup
        """
        self.library = Path(library)
        self.autoload = autoload
        self._locales: dict[str, Locale] = {}
        self._lock = ReadWriteLock()

    def __repr__(self) -> str:
        return f"LocaleRegistry(library={str(self.library)!r}, languages={self.languages()})"

    def get_locale(self, language: str, create: bool = True) -> Locale | None:
        """Get the Locale for a language, creating it exactly once.

        Args:
            language: Language tag
            create: Create the Locale if it does not exist yet
        """
        if create:
            return self._locale(language)
        with self._lock.read():
            return self._locales.get(simplify_locale(language))

    def _locale(self, language: str) -> Locale:
        key = simplify_locale(language)
        with self._lock.read():
            locale = self._locales.get(key)
        if locale is not None:
            return locale

        with self._lock.write():
            locale = self._locales.get(key)
            if locale is None:
                locale = Locale(self.library, key, autoload=self.autoload)
                self._locales[key] = locale
                logger.debug(f"Created locale '{key}' under {self.library}")
            return locale

    def add_locale(self, locale: Locale) -> None:
        """Register a Locale, replacing any existing one for its language."""
        with self._lock.write():
            self._locales[locale.language] = locale

    def languages(self) -> list[str]:
        with self._lock.read():
            return sorted(self._locales)

    def add_domain(self, language: str, domain: str) -> Domain:
        """Load (or reload) a domain for a language."""
        return self._locale(language).add_domain(domain)

    def load(self, language: str, domains: Iterable[str]) -> Locale:
        """Make sure the given domains are loaded for a language.

        Domains already attempted are not parsed again.
        """
        locale = self._locale(language)
        for domain in domains:
            locale.ensure_domain(domain)
        return locale

    def reload(self, language: str | None = None, domain: str | None = None) -> int:
        """Reload known domains from disk.

        Args:
            language: Only this language (default: all)
            domain: Only this domain (default: all known domains)

        Returns:
            Number of domains reloaded
        """
        if language is not None:
            locale = self.get_locale(language, create=False)
            locales = [locale] if locale is not None else []
        else:
            with self._lock.read():
                locales = list(self._locales.values())

        count = 0
        for locale in locales:
            names = [domain] if domain is not None else locale.domains()
            for name in names:
                locale.add_domain(name)
                count += 1
        return count

    def set_domain(self, language: str, domain: str) -> None:
        self._locale(language).set_domain(domain)

    def get(self, language: str, msgid: str, domain: str | None = None) -> str:
        return self._locale(language).get(msgid, domain)

    def get_plural(
        self,
        language: str,
        msgid: str,
        msgid_plural: str,
        n: int,
        domain: str | None = None,
    ) -> str:
        return self._locale(language).get_plural(msgid, msgid_plural, n, domain)

    def get_context(self, language: str, msgid: str, context: str, domain: str | None = None) -> str:
        return self._locale(language).get_context(msgid, context, domain)

    def get_plural_context(
        self,
        language: str,
        msgid: str,
        msgid_plural: str,
        n: int,
        context: str,
        domain: str | None = None,
    ) -> str:
        locale = self._locale(language)
        return locale.get_plural_context(msgid, msgid_plural, n, context, domain)

    def export_snapshot(self) -> bytes:
        """Serialize every language, domain and catalog to a snapshot blob."""
        with self._lock.read():
            locales = list(self._locales.values())
        payload = {
            "library": str(self.library),
            "languages": {locale.language: locale.to_dict() for locale in locales},
        }
        return encode_payload(SnapshotKind.REGISTRY, payload)

    @classmethod
    def import_snapshot(
        cls,
        data: bytes,
        library: Path | str | None = None,
        autoload: bool = True,
    ) -> "LocaleRegistry":
        """Rebuild a registry from :meth:`export_snapshot` output.

        Args:
            data: Snapshot blob
            library: Override the library path stored in the snapshot
            autoload: Load unknown domains on first lookup

        Raises:
            FormatError: If the blob is not a registry snapshot
        """
        payload = decode_payload(data, SnapshotKind.REGISTRY)
        try:
            registry = cls(library or payload["library"], autoload=autoload)
            for locale_data in payload["languages"].values():
                locale = Locale.from_dict(locale_data, autoload=autoload)
                if library is not None:
                    locale.path = Path(library)
                registry.add_locale(locale)
        except (KeyError, TypeError, AttributeError) as e:
            raise FormatError(f"malformed registry snapshot: {e}") from e
        return registry
