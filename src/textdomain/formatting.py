"""printf-style interpolation of resolved templates."""

from __future__ import annotations

import logging
from typing import Any, Mapping


logger = logging.getLogger(__name__)


def sprintf(template: str, *args: Any) -> str:
    """Interpolate ``%`` placeholders in a translated template.

    A single mapping argument fills named placeholders (``%(name)s``).
    With no arguments the template is returned untouched, so literal ``%``
    signs survive plain lookups.

    Example:
        sprintf("%d files", 3)                  # -> "3 files"
        sprintf("Hello %(name)s", {"name": "A"})  # -> "Hello A"
    """
    if not args:
        return template
    values: Any = args[0] if len(args) == 1 and isinstance(args[0], Mapping) else args
    try:
        return template % values
    except (TypeError, ValueError, KeyError) as e:
        logger.debug(f"Could not interpolate {template!r} with {args!r}: {e}")
        return template
