"""
Public compile API.

Compilation is split from rendering: `compile_template` parses the text,
resolves every import and prepares the executable program once; the
resulting CompiledTemplate can then be rendered any number of times with
different locals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from .config import Options, OptionsLike, merge_options
from .evaluator import Evaluator, Program, PythonEvaluator
from .nodes import TemplateNode, iter_imports
from .parser import parse_template, resolve_template
from .renderer import render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledTemplate:
    """
    Immutable compiled template.

    Holds the node sequence, the options it was compiled with and the
    prepared program. Calling the template renders it.
    """
    name: str
    nodes: Tuple[TemplateNode, ...]
    options: Options = field(repr=False)
    program: Program = field(repr=False)
    evaluator: Evaluator = field(repr=False, compare=False)

    def render(self, locals: Optional[Any] = None) -> str:
        return render(self, locals)

    def __call__(self, locals: Optional[Any] = None) -> str:
        return render(self, locals)


def _build(name: str, nodes, options: Options, evaluator: Optional[Evaluator]) -> CompiledTemplate:
    evaluator = evaluator or PythonEvaluator()
    program = evaluator.prepare(nodes, name)
    imports = sum(1 for _ in iter_imports(list(nodes)))
    logger.debug(f"Compiled '{name or '<string>'}' -> {len(nodes)} nodes, {imports} imports")
    return CompiledTemplate(name, tuple(nodes), options, program, evaluator)


async def compile_template(
    text: str,
    options: OptionsLike = None,
    *,
    name: str = "",
    evaluator: Optional[Evaluator] = None,
    **overrides: Any,
) -> CompiledTemplate:
    """
    Compiles template text.

    Args:
        text: The unparsed contents of a template
        options: Options instance or mapping merged over the defaults
        name: Optional template name used in diagnostics and cycle detection
        evaluator: Embedded-language evaluator (Python by default)
        **overrides: Individual option overrides

    Raises:
        DelimiterConfigError: If the delimiter configuration is invalid
        UnterminatedTagError: If a tag has no close marker
        TemplateNotFoundError: If an imported template cannot be loaded
        TemplateSyntaxError: If embedded code is not valid
    """
    opts = merge_options(options, **overrides)
    nodes = await parse_template(text, opts, name)
    return _build(name, nodes, opts, evaluator)


async def load_and_compile_template(
    template_name: str,
    options: OptionsLike = None,
    *,
    evaluator: Optional[Evaluator] = None,
    **overrides: Any,
) -> CompiledTemplate:
    """
    Loads a template through the configured loader, then compiles it.

    Raises:
        TemplateNotFoundError: If the entry template or an import cannot be loaded
        CacheUnsupportedError: If a populated cache was supplied
    """
    opts = merge_options(options, **overrides)
    nodes = await resolve_template(template_name, opts)
    return _build(template_name, nodes, opts, evaluator)


__all__ = ["CompiledTemplate", "compile_template", "load_and_compile_template"]
