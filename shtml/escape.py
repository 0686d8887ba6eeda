"""HTML escaping of rendered values."""

from __future__ import annotations

import re
from typing import Any

_HTML_ENTITIES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    "'": "&apos;",
    '"': "&quot;",
}

_HTML_SPECIAL = re.compile(r"[<>&'\"]")


def escape_html(value: Any) -> str:
    """
    Escapes a value for safe output in HTML.

    Only `< > & ' "` are replaced; None renders as an empty string.
    """
    if value is None:
        return ""
    return _HTML_SPECIAL.sub(lambda m: _HTML_ENTITIES[m.group(0)], str(value))


__all__ = ["escape_html"]
