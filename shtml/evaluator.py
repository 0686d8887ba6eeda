"""
Evaluators run compiled node sequences in a host language.

`Evaluator` is the seam between the template core and the embedded
language; `PythonEvaluator` embeds Python. Each template level is prepared
once into a `Program` (a code object generated by `codegen`) and executed
with the scope dict as its global namespace, so code fragments read and
assign template variables directly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import CodeType, TracebackType
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple

from .codegen import FRAME_NAME, GeneratedSource, generate_source
from .errors import EvaluationError, TemplateSyntaxError
from .nodes import ImportNode, TemplateNode

if TYPE_CHECKING:
    from .renderer import RenderContext

logger = logging.getLogger(__name__)

Scope = Dict[str, Any]

_SHARED = object()


@dataclass(frozen=True)
class Program:
    """Prepared executable unit of one template level."""
    name: str
    nodes: Tuple[TemplateNode, ...]
    code: CodeType = field(repr=False)
    generated: GeneratedSource = field(repr=False)
    imports: Dict[int, "Program"] = field(default_factory=dict, repr=False)

    @property
    def source(self) -> str:
        return self.generated.source

    def node_at(self, lineno: int) -> Optional[TemplateNode]:
        """Template node that produced a generated source line."""
        index = self.generated.node_index(lineno)
        return self.nodes[index] if index >= 0 else None


class Evaluator(ABC):
    """
    Embedded-language evaluator.

    Implementations turn node sequences into something executable and run
    it against a scope, appending output to the render context.
    """

    @abstractmethod
    def prepare(self, nodes: Sequence[TemplateNode], name: str = "") -> Program:
        """
        Prepares a node sequence (and its imports) for execution.

        Raises:
            TemplateSyntaxError: If embedded code cannot be compiled
        """
        pass

    @abstractmethod
    def run(self, program: Program, scope: Scope, context: "RenderContext") -> None:
        """
        Executes a prepared program against a scope.

        Raises:
            EvaluationError: If embedded code raises
        """
        pass

    @abstractmethod
    def evaluate(self, expr: str, scope: Scope) -> Any:
        """Evaluates a single expression against a scope."""
        pass

    @abstractmethod
    def execute(self, fragment: str, scope: Scope) -> None:
        """Executes a statement fragment against a scope, mutating it."""
        pass


def make_scope(value: Any) -> Scope:
    """
    Builds a fresh scope from a locals value.

    Mappings are copied, other objects contribute their attributes,
    None gives an empty scope.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if hasattr(value, "__dict__"):
        return dict(vars(value))
    raise TypeError(f"Template locals must be a mapping, got {type(value).__name__}")


class RenderFrame:
    """
    Object the generated code talks to while one level runs.

    Bound in the scope under FRAME_NAME for the duration of the level.
    """

    def __init__(self, evaluator: "PythonEvaluator", program: Program, scope: Scope, context: "RenderContext"):
        self.evaluator = evaluator
        self.program = program
        self.scope = scope
        self.context = context
        self.emit = context.emit

    def escape(self, value: Any) -> str:
        return self.context.escape(value)

    @staticmethod
    def raw(value: Any) -> str:
        return "" if value is None else str(value)

    def include(self, node_index: int, locals_value: Any = _SHARED) -> None:
        child = self.program.imports[node_index]
        if locals_value is _SHARED:
            self.evaluator.run(child, self.scope, self.context)
        else:
            self.evaluator.run(child, make_scope(locals_value), self.context)


class PythonEvaluator(Evaluator):
    """Evaluator that embeds Python with full trust and full scope access."""

    def prepare(self, nodes: Sequence[TemplateNode], name: str = "") -> Program:
        nodes = tuple(nodes)
        generated = generate_source(nodes, name)
        filename = f"<template {name or 'string'}>"
        try:
            code = compile(generated.source, filename, "exec")
        except SyntaxError as e:
            index = generated.node_index(e.lineno or 0)
            line = nodes[index].line if index >= 0 else 0
            raise TemplateSyntaxError(f"Invalid Python in template: {e.msg}", name, line) from e

        imports = {
            index: self.prepare(node.nodes, node.name)
            for index, node in enumerate(nodes)
            if isinstance(node, ImportNode)
        }
        logger.debug(f"Prepared '{name or '<string>'}': {len(generated.line_map)} lines, {len(imports)} imports")
        return Program(name, nodes, code, generated, imports)

    def run(self, program: Program, scope: Scope, context: "RenderContext") -> None:
        previous = scope.get(FRAME_NAME)
        scope[FRAME_NAME] = RenderFrame(self, program, scope, context)
        try:
            exec(program.code, scope)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(
                f"{e.__class__.__name__}: {e}",
                program.name,
                _failing_line(program, e.__traceback__),
                context.output(),
            ) from e
        finally:
            if previous is None:
                scope.pop(FRAME_NAME, None)
            else:
                scope[FRAME_NAME] = previous

    def evaluate(self, expr: str, scope: Scope) -> Any:
        try:
            return eval(expr.strip(), scope)
        except SyntaxError as e:
            raise TemplateSyntaxError(f"Invalid Python expression: {e.msg}") from e
        except Exception as e:
            raise EvaluationError(f"{e.__class__.__name__}: {e}") from e

    def execute(self, fragment: str, scope: Scope) -> None:
        try:
            exec(fragment.strip(), scope)
        except SyntaxError as e:
            raise TemplateSyntaxError(f"Invalid Python statement: {e.msg}") from e
        except Exception as e:
            raise EvaluationError(f"{e.__class__.__name__}: {e}") from e


def _failing_line(program: Program, tb: Optional[TracebackType]) -> Optional[int]:
    """Template line of the deepest traceback entry inside the program's code."""
    line = None
    while tb is not None:
        if tb.tb_frame.f_code is program.code:
            node = program.node_at(tb.tb_lineno)
            if node is not None:
                line = node.line
        tb = tb.tb_next
    return line


__all__ = ["Scope", "Program", "Evaluator", "PythonEvaluator", "RenderFrame", "make_scope"]
