"""textdomain - GNU gettext PO/MO catalog engine.

Core Features:
- PO text and MO binary catalog parsers
- Plural-Forms expression evaluation
- Per-language, per-domain catalog registry with MO-first file resolution
- Thread-safe lookups that fall back to the source string
- Snapshot export/import of a loaded registry

Example:
    from textdomain import LocaleRegistry

    registry = LocaleRegistry("/usr/share/locale")
    registry.add_domain("pl", "app")
    registry.get_plural("pl", "%d file", "%d files", 5, domain="app")
"""

__version__ = "0.1.0"

# Errors
from textdomain.errors import (
    ConfigError,
    ExpressionError,
    FormatError,
    NotFoundError,
    TextDomainError,
)

# Plural rules
from textdomain.plural import (
    DEFAULT_PLURAL_FORMS,
    PluralRule,
    compile_expression,
    default_rule,
    parse_plural_forms,
    rule_from_header,
)

# Catalogs and parsers
from textdomain.catalog import Catalog, CatalogEntry, CatalogParser
from textdomain.mo import MOParser, compile_mo
from textdomain.po import POParser, dump_po

# Registry
from textdomain.registry import (
    Domain,
    DomainState,
    Locale,
    LocaleRegistry,
    ReadWriteLock,
    load_catalog,
    simplify_locale,
)

# Ambient
from textdomain.config import Settings
from textdomain.formatting import sprintf
from textdomain.log import configure_logging

__all__ = [
    "__version__",
    "TextDomainError",
    "FormatError",
    "ExpressionError",
    "NotFoundError",
    "ConfigError",
    "DEFAULT_PLURAL_FORMS",
    "PluralRule",
    "compile_expression",
    "default_rule",
    "parse_plural_forms",
    "rule_from_header",
    "Catalog",
    "CatalogEntry",
    "CatalogParser",
    "MOParser",
    "POParser",
    "compile_mo",
    "dump_po",
    "Domain",
    "DomainState",
    "Locale",
    "LocaleRegistry",
    "ReadWriteLock",
    "load_catalog",
    "simplify_locale",
    "Settings",
    "sprintf",
    "configure_logging",
]
