"""Environment-driven configuration.

Settings are read from ``TEXTDOMAIN_*`` variables. The language falls back
to the variables GNU gettext consults (``LANGUAGE``, ``LC_ALL``,
``LC_MESSAGES``, ``LANG``).

Example:
    TEXTDOMAIN_LIBRARY=/srv/app/locale
    TEXTDOMAIN_LANGUAGE=pt_BR
    TEXTDOMAIN_LANGUAGES=pt_BR,es,fr
    TEXTDOMAIN_DOMAINS=app,errors

    settings = Settings.from_env()
    registry = settings.create_registry()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from textdomain.errors import ConfigError
from textdomain.registry import LocaleRegistry, simplify_locale


DEFAULT_LIBRARY = "/usr/local/share/locale"
DEFAULT_LANGUAGE = "en_US"
DEFAULT_DOMAIN = "default"

_GNU_LANGUAGE_VARIABLES = ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(name: str, value: str) -> bool:
    if value.lower() in ("true", "yes", "1", "on"):
        return True
    if value.lower() in ("false", "no", "0", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def detect_language(environ: Mapping[str, str] | None = None) -> str:
    """Get the user's language from the GNU locale variables."""
    environ = os.environ if environ is None else environ
    for name in _GNU_LANGUAGE_VARIABLES:
        value = environ.get(name, "")
        # LANGUAGE may hold a colon-separated priority list.
        value = value.split(":", 1)[0]
        if value and value not in ("C", "POSIX"):
            return simplify_locale(value)
    return DEFAULT_LANGUAGE


@dataclass
class Settings:
    """Library, language and domain configuration.

    Attributes:
        library: Directory holding one directory per language
        language: Default language
        languages: Languages to load at start-up
        domain: Default domain
        domains: Domains to load at start-up
        autoload: Load unknown domains on first lookup
        log_level: Level for the ``textdomain`` logger
    """

    library: Path = field(default_factory=lambda: Path(DEFAULT_LIBRARY))
    language: str = DEFAULT_LANGUAGE
    languages: list[str] = field(default_factory=list)
    domain: str = DEFAULT_DOMAIN
    domains: list[str] = field(default_factory=list)
    autoload: bool = True
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self.library = Path(self.library)
        self.language = simplify_locale(self.language)
        if not self.language:
            raise ConfigError("language must not be empty")
        if not self.domain:
            raise ConfigError("domain must not be empty")
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"log level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}")
        languages: list[str] = []
        for language in map(simplify_locale, self.languages):
            if language and language not in languages:
                languages.append(language)
        if self.language not in languages:
            languages.insert(0, self.language)
        self.languages = languages
        if self.domain not in self.domains:
            self.domains = [self.domain, *self.domains]

    @classmethod
    def from_env(
        cls,
        prefix: str = "TEXTDOMAIN",
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        """Load settings from environment variables.

        Args:
            prefix: Variable prefix
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigError: If a value is invalid
        """
        environ = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = environ.get(f"{prefix}_{name}")
            return value.strip() if value is not None and value.strip() else None

        languages = get("LANGUAGES")
        domains = get("DOMAINS")
        autoload = get("AUTOLOAD")
        return cls(
            library=Path(get("LIBRARY") or DEFAULT_LIBRARY),
            language=get("LANGUAGE") or detect_language(environ),
            languages=[lang.strip() for lang in languages.split(",") if lang.strip()] if languages else [],
            domain=get("DOMAIN") or DEFAULT_DOMAIN,
            domains=[d.strip() for d in domains.split(",") if d.strip()] if domains else [],
            autoload=_parse_bool(f"{prefix}_AUTOLOAD", autoload) if autoload else True,
            log_level=get("LOG_LEVEL") or "WARNING",
        )

    def create_registry(self) -> LocaleRegistry:
        """Build a registry and load every configured domain for every configured language."""
        registry = LocaleRegistry(self.library, autoload=self.autoload)
        for language in self.languages:
            locale = registry.load(language, self.domains)
            locale.set_domain(self.domain)
        return registry
