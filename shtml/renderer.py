"""
Rendering of compiled templates.

A render call owns one RenderContext: a single output buffer shared by the
entry template and everything it imports, so output keeps document order.
Rendering does no I/O and never touches the compiled template, so one
template can be rendered concurrently with different locals.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from .errors import EvaluationError
from .escape import escape_html
from .evaluator import make_scope

if TYPE_CHECKING:
    from .compiler import CompiledTemplate

logger = logging.getLogger(__name__)


class RenderContext:
    """Output buffer plus the escaper of one render call."""

    def __init__(self, escape: Callable[[Any], str] = escape_html):
        self.escape = escape
        self._buffer: List[str] = []

    def emit(self, text: str) -> None:
        self._buffer.append(text)

    def output(self) -> str:
        return "".join(self._buffer)


def render(compiled: "CompiledTemplate", locals: Optional[Any] = None) -> str:
    """
    Renders a compiled template.

    Args:
        compiled: Result of compile_template / load_and_compile_template
        locals: Mapping (or object) of template variables; it is copied,
                assignments made by the template do not leak back

    Returns:
        The rendered text

    Raises:
        EvaluationError: If an embedded expression or fragment raises
    """
    context = RenderContext(compiled.options.escape)
    try:
        scope = make_scope(locals)
    except TypeError as e:
        raise EvaluationError(str(e), compiled.name) from e

    compiled.evaluator.run(compiled.program, scope, context)

    result = context.output()
    logger.debug(f"Rendered '{compiled.name or '<string>'}' -> {len(result)} chars")
    return result


__all__ = ["RenderContext", "render"]
