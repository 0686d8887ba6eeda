"""
Helpers for compiling templates in tests.

The compile API is async; tests drive it through asyncio.run so no
async test plugin is needed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from shtml import CompiledTemplate, compile_template, load_and_compile_template
from shtml.errors import LoadError


class DictLoader:
    """
    Loader serving templates from a dict, so nothing is read from disk.

    Records every requested name in `calls`.
    """

    def __init__(self, templates: Optional[Dict[str, str]] = None, is_async: bool = True):
        self.templates = dict(templates or {})
        self.is_async = is_async
        self.calls: List[str] = []

    def _load(self, name: str) -> str:
        self.calls.append(name)
        if name not in self.templates:
            raise LoadError(name, reason="no such template")
        return self.templates[name]

    def __call__(self, name: str, options: Any):
        if not self.is_async:
            return self._load(name)

        async def load() -> str:
            return self._load(name)

        return load()


def compile_text(text: str, templates: Optional[Dict[str, str]] = None, **options: Any) -> CompiledTemplate:
    """Compiles text with a DictLoader unless a loader is given explicitly."""
    options.setdefault("load_file", DictLoader(templates))
    return asyncio.run(compile_template(text, **options))


def compile_named(name: str, templates: Dict[str, str], **options: Any) -> CompiledTemplate:
    options.setdefault("load_file", DictLoader(templates))
    return asyncio.run(load_and_compile_template(name, **options))


def render_text(text: str, locals: Any = None, templates: Optional[Dict[str, str]] = None, **options: Any) -> str:
    """Compiles and renders in one go."""
    return compile_text(text, templates, **options).render(locals)
