"""
Default filesystem loader.

A loader is any callable `load_file(name, options)` returning the template
text, either directly or as an awaitable. The default one resolves the name
against `options.base` and appends `options.ext` when set.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from .errors import LoadError

if TYPE_CHECKING:
    from .config import Options

logger = logging.getLogger(__name__)

LoaderFunc = Callable[[str, "Options"], Union[str, Awaitable[str]]]


def template_path(template_name: str, options: "Options") -> Path:
    """Filesystem path of a template: <base>/<name>[.<ext>]."""
    file_name = template_name + (f".{options.ext}" if options.ext else "")
    return (Path(options.base or ".") / file_name).resolve()


async def load_file(template_name: str, options: "Options") -> str:
    """
    Loads a template file from the disk.

    Raises:
        LoadError: If the file is missing or cannot be read
    """
    path = template_path(template_name, options)
    try:
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(template_name, str(path), e.__class__.__name__) from e

    logger.debug(f"Loaded template '{template_name}' from {path} ({len(text)} chars)")
    return text


async def call_loader(loader: LoaderFunc, template_name: str, options: "Options") -> str:
    """Calls a sync or async loader and checks that it produced text."""
    result: Any = loader(template_name, options)
    if inspect.isawaitable(result):
        result = await result
    if result is None:
        raise LoadError(template_name, reason="loader returned nothing")
    if not isinstance(result, str):
        raise LoadError(template_name, reason=f"loader returned {type(result).__name__}, expected str")
    return result


__all__ = ["LoaderFunc", "template_path", "load_file", "call_loader"]
