"""Process-wide convenience functions.

A thin wrapper holding one default library, language and domain in front of
a :class:`LocaleRegistry`. Applications that serve several languages at once
should use a registry directly instead.

Usage:
    from textdomain import facade

    facade.configure("/path/to/locales", "en_GB", "app")
    facade.get("My text on 'app' domain")
    facade.get_d("extras", "Another text on a different domain")
    facade.get_n("%d file", "%d files", 3, 3)   # -> "3 files"

    # GNU names
    facade.ngettext("%d file", "%d files", 2)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from textdomain.config import DEFAULT_DOMAIN, DEFAULT_LANGUAGE, DEFAULT_LIBRARY, Settings
from textdomain.formatting import sprintf
from textdomain.registry import LocaleRegistry, simplify_locale


class _GlobalConfig:
    """Defaults shared by the module-level functions."""

    def __init__(
        self,
        library: Path | str = DEFAULT_LIBRARY,
        language: str = DEFAULT_LANGUAGE,
        domain: str = DEFAULT_DOMAIN,
    ) -> None:
        self._lock = threading.RLock()
        self.library = Path(library)
        self.language = simplify_locale(language)
        self.domain = domain
        self.registry = LocaleRegistry(self.library)

    def reload(self) -> None:
        """Load the default domain for the current language."""
        with self._lock:
            language = self.language
            domain = self.domain
        self.registry.add_domain(language, domain)
        self.registry.set_domain(language, domain)


_config = _GlobalConfig()


def configure(library: Path | str, language: str, domain: str) -> None:
    """Set library, language and domain at once and load the catalog.

    Prefer this over calling each setter, which reloads every time.
    """
    global _config
    _config = _GlobalConfig(library, language, domain)
    _config.reload()


def configure_from_settings(settings: Settings) -> None:
    """Configure from :class:`Settings`, loading every listed domain."""
    global _config
    config = _GlobalConfig(settings.library, settings.language, settings.domain)
    config.registry = settings.create_registry()
    _config = config


def reset() -> None:
    """Restore the built-in defaults and drop every loaded catalog."""
    global _config
    _config = _GlobalConfig()


def get_registry() -> LocaleRegistry:
    return _config.registry


def get_library() -> str:
    return str(_config.library)


def set_library(library: Path | str) -> None:
    """Point at a new library directory; loaded catalogs are discarded."""
    configure(library, _config.language, _config.domain)


def get_language() -> str:
    return _config.language


def set_language(language: str) -> None:
    """Switch the default language and load its default domain."""
    with _config._lock:
        _config.language = simplify_locale(language)
    _config.reload()


def get_domain() -> str:
    locale = _config.registry.get_locale(_config.language, create=False)
    name = locale.get_domain() if locale is not None else None
    return name or _config.domain


def set_domain(domain: str) -> None:
    """Switch the default domain for every loaded language."""
    with _config._lock:
        _config.domain = domain
    for language in _config.registry.languages():
        _config.registry.set_domain(language, domain)
    _config.reload()


class language_context:
    """Context manager for a temporary language change.

    Example:
        with language_context("de"):
            label = get("Save")
        # Previous language restored
    """

    def __init__(self, language: str) -> None:
        self.language = language
        self._previous: str | None = None

    def __enter__(self) -> "language_context":
        self._previous = get_language()
        set_language(self.language)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._previous is not None:
            set_language(self._previous)


# =============================================================================
# Lookups
# =============================================================================


def get(msgid: str, *args: Any) -> str:
    return get_d(get_domain(), msgid, *args)


def get_n(msgid: str, msgid_plural: str, n: int, *args: Any) -> str:
    return get_nd(get_domain(), msgid, msgid_plural, n, *args)


def get_d(domain: str, msgid: str, *args: Any) -> str:
    return sprintf(_config.registry.get(_config.language, msgid, domain), *args)


def get_nd(domain: str, msgid: str, msgid_plural: str, n: int, *args: Any) -> str:
    translated = _config.registry.get_plural(_config.language, msgid, msgid_plural, n, domain)
    return sprintf(translated, *args)


def get_c(msgid: str, context: str, *args: Any) -> str:
    return get_dc(get_domain(), msgid, context, *args)


def get_nc(msgid: str, msgid_plural: str, n: int, context: str, *args: Any) -> str:
    return get_ndc(get_domain(), msgid, msgid_plural, n, context, *args)


def get_dc(domain: str, msgid: str, context: str, *args: Any) -> str:
    return sprintf(_config.registry.get_context(_config.language, msgid, context, domain), *args)


def get_ndc(domain: str, msgid: str, msgid_plural: str, n: int, context: str, *args: Any) -> str:
    translated = _config.registry.get_plural_context(
        _config.language, msgid, msgid_plural, n, context, domain
    )
    return sprintf(translated, *args)


# GNU gettext names. These never interpolate.


def gettext(msgid: str) -> str:
    return get(msgid)


def dgettext(domain: str, msgid: str) -> str:
    return get_d(domain, msgid)


def ngettext(msgid: str, msgid_plural: str, n: int) -> str:
    return get_n(msgid, msgid_plural, n)


def dngettext(domain: str, msgid: str, msgid_plural: str, n: int) -> str:
    return get_nd(domain, msgid, msgid_plural, n)


def pgettext(context: str, msgid: str) -> str:
    return get_c(msgid, context)


def dpgettext(domain: str, context: str, msgid: str) -> str:
    return get_dc(domain, msgid, context)


def npgettext(context: str, msgid: str, msgid_plural: str, n: int) -> str:
    return get_nc(msgid, msgid_plural, n, context)


def dnpgettext(domain: str, context: str, msgid: str, msgid_plural: str, n: int) -> str:
    return get_ndc(domain, msgid, msgid_plural, n, context)
