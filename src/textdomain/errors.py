"""Exception hierarchy for catalog loading and lookups.

Lookups never raise these to callers: a domain whose load fails is recorded
as failed and every lookup against it passes the source string through.
They surface from the parsers, the snapshot codec and the CLI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class TextDomainError(Exception):
    """Base exception for textdomain errors.

    Attributes:
        message: Error message
        details: Additional error details
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FormatError(TextDomainError):
    """Malformed PO, MO or snapshot content.

    Attributes:
        source: File the content came from, if known
        line: 1-based line number (PO files)
        offset: Byte offset (MO files)
    """

    def __init__(
        self,
        message: str,
        source: Path | str | None = None,
        line: int | None = None,
        offset: int | None = None,
    ) -> None:
        super().__init__(
            message,
            details={"source": str(source) if source else None, "line": line, "offset": offset},
        )
        self.source = source
        self.line = line
        self.offset = offset

    def __str__(self) -> str:
        location = str(self.source) if self.source else "<bytes>"
        if self.line is not None:
            location = f"{location}:{self.line}"
        elif self.offset is not None:
            location = f"{location}@{self.offset}"
        return f"{self.message} ({location})"


class ExpressionError(TextDomainError):
    """Malformed Plural-Forms expression, or division by zero while evaluating one."""

    def __init__(self, message: str, expression: str | None = None) -> None:
        super().__init__(message, details={"expression": expression})
        self.expression = expression


class NotFoundError(TextDomainError):
    """No catalog file exists for a language/domain pair."""

    def __init__(
        self,
        language: str,
        domain: str,
        candidates: list[Path] | None = None,
    ) -> None:
        super().__init__(
            f"No catalog found for domain '{domain}' in language '{language}'",
            details={
                "language": language,
                "domain": domain,
                "candidates": [str(c) for c in candidates or []],
            },
        )
        self.language = language
        self.domain = domain
        self.candidates = candidates or []


class ConfigError(TextDomainError):
    """Invalid configuration value."""
