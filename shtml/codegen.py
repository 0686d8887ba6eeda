"""
Python source generation for one template level.

Every node of a level is written into a single module-level program so that
code fragments can guard or repeat the nodes after them. Output goes through
the render frame bound to FRAME_NAME in the scope:

    __tmpl__.emit('Hello ')
    for user in users:
        __tmpl__.emit(__tmpl__.escape((user.name
        )))
    __tmpl__.include(4)

Block rules for code fragments:
  - a fragment whose last Python token is ':' opens a block (comments are ignored)
  - `end` closes the innermost block
  - `elif`, `else`, `except` and `finally` close the block and open a sibling
"""

from __future__ import annotations

import io
import re
import textwrap
import tokenize
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .errors import TemplateSyntaxError
from .nodes import CodeNode, EscapedNode, ImportNode, LiteralNode, RawNode, TemplateNode

FRAME_NAME = "__tmpl__"

INDENT_STEP = "    "

_CONTINUATION = re.compile(r"^(elif|else|except|finally)\b")
_END = re.compile(r"^end(\s+\w+)?\s*(#.*)?$")
_INSIGNIFICANT = frozenset({
    tokenize.COMMENT, tokenize.NL, tokenize.NEWLINE,
    tokenize.INDENT, tokenize.DEDENT, tokenize.ENDMARKER,
})

# Characters that cannot appear verbatim inside a single-quoted Python literal
_LITERAL_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
}


def quote_literal(text: str) -> str:
    """
    Quotes text as a single-quoted Python string literal.

    Backslash, the quote character and line breaks are escaped, other
    control characters become \\x escapes. Evaluating the result gives
    back `text` exactly.
    """
    out = []
    for ch in text:
        escaped = _LITERAL_ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ord(ch) < 0x20 and ch != "\t" or ch == "\x7f":
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return "'" + "".join(out) + "'"


def opens_block(source: str) -> bool:
    """True if the last significant token of `source` is ':'."""
    last = None
    try:
        for tok in tokenize.generate_tokens(io.StringIO(source).readline):
            if tok.type not in _INSIGNIFICANT:
                last = tok
    except (tokenize.TokenError, SyntaxError):
        # Unbalanced brackets or bad indentation; compile() reports it
        return False
    return last is not None and last.type == tokenize.OP and last.string == ":"


def fragment_lines(fragment: str) -> List[str]:
    """
    Splits a code fragment into lines without common indentation.

    A fragment that starts on the line of the open delimiter has no usable
    indentation on its first line: the following lines are dedented as a
    group and aligned with it. When the first line opens a block and nothing
    below it is indented, the rest becomes the body of that block.
    """
    lines = fragment.splitlines()
    if not lines or not lines[0].strip():
        lines = textwrap.dedent(fragment).splitlines()
    else:
        first = lines[0].strip()
        rest = textwrap.dedent("\n".join(lines[1:])).splitlines()
        body = [line for line in rest if line.strip()]
        if body and not body[0][:1].isspace() and opens_block(first):
            rest = [INDENT_STEP + line if line.strip() else line for line in rest]
        lines = [first, *rest]

    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


@dataclass(frozen=True)
class GeneratedSource:
    """Program text plus the node index behind each generated line."""
    source: str
    line_map: Tuple[int, ...]

    def node_index(self, lineno: int) -> int:
        """Node index for a 1-based generated line, or -1."""
        if 1 <= lineno <= len(self.line_map):
            return self.line_map[lineno - 1]
        return -1


@dataclass
class _Block:
    indent: str
    node_index: int
    has_body: bool = False


class CodeBuilder:
    """Builds the program of one template level."""

    def __init__(self, template_name: str = ""):
        self.template_name = template_name
        self.lines: List[Tuple[str, int]] = []
        self.blocks: List[_Block] = [_Block("", -1)]

    @property
    def indent(self) -> str:
        return self.blocks[-1].indent

    def add_line(self, line: str, node_index: int) -> None:
        """Adds a line of source at the current indentation."""
        self.lines.append((self.indent + line, node_index))
        self.blocks[-1].has_body = True

    def open_block(self, extra_indent: str, node_index: int) -> None:
        self.blocks.append(_Block(self.indent + extra_indent + INDENT_STEP, node_index))

    def close_block(self, node: TemplateNode, node_index: int, keyword: str) -> None:
        if len(self.blocks) == 1:
            raise TemplateSyntaxError(
                f"'{keyword}' without an open block", self.template_name, node.line
            )
        block = self.blocks.pop()
        if not block.has_body:
            self.lines.append((block.indent + "pass", node_index))

    def add_node(self, node: TemplateNode, node_index: int) -> None:
        if isinstance(node, LiteralNode):
            if node.text:
                self.add_line(f"{FRAME_NAME}.emit({quote_literal(node.text)})", node_index)
        elif isinstance(node, EscapedNode):
            self.add_expression("escape", node, node_index)
        elif isinstance(node, RawNode):
            self.add_expression("raw", node, node_index)
        elif isinstance(node, CodeNode):
            self.add_code(node, node_index)
        elif isinstance(node, ImportNode):
            if node.shares_scope:
                self.add_line(f"{FRAME_NAME}.include({node_index})", node_index)
            else:
                self._add_multiline(
                    f"{FRAME_NAME}.include({node_index}, ({node.locals_expr}\n))", node_index
                )
        else:
            raise TypeError(f"Unsupported node type: {type(node).__name__}")

    def add_expression(self, method: str, node: TemplateNode, node_index: int) -> None:
        expr = node.expr  # type: ignore[attr-defined]
        if not expr.strip():
            raise TemplateSyntaxError("Empty output expression", self.template_name, node.line)
        # The newline before the closing parens keeps a trailing '#' comment harmless
        self._add_multiline(
            f"{FRAME_NAME}.emit({FRAME_NAME}.{method}(({expr}\n)))", node_index
        )

    def add_code(self, node: CodeNode, node_index: int) -> None:
        lines = fragment_lines(node.fragment)
        if not lines:
            return

        lines[0] = lines[0].strip()
        first = lines[0]

        if len(lines) == 1 and _END.match(first):
            self.close_block(node, node_index, "end")
            return

        continuation = _CONTINUATION.match(first)
        if continuation:
            self.close_block(node, node_index, continuation.group(1))

        for line in lines:
            self.add_line(line.rstrip(), node_index)

        if opens_block("\n".join(lines)):
            extra = lines[-1][: len(lines[-1]) - len(lines[-1].lstrip())] if len(lines) > 1 else ""
            self.open_block(extra, node_index)

    def finish(self, nodes: Sequence[TemplateNode]) -> GeneratedSource:
        if len(self.blocks) > 1:
            opener = nodes[self.blocks[-1].node_index]
            raise TemplateSyntaxError(
                "Block is never closed with 'end'", self.template_name, opener.line
            )
        source = "\n".join(line for line, _ in self.lines) + "\n"
        return GeneratedSource(source, tuple(index for _, index in self.lines))

    def _add_multiline(self, text: str, node_index: int) -> None:
        first, *rest = text.split("\n")
        self.add_line(first, node_index)
        # Continuation lines sit inside brackets, indentation does not matter there
        for line in rest:
            self.lines.append((line, node_index))


def generate_source(nodes: Sequence[TemplateNode], template_name: str = "") -> GeneratedSource:
    """
    Generates the program for one template level.

    Raises:
        TemplateSyntaxError: On unbalanced blocks or empty output tags
    """
    builder = CodeBuilder(template_name)
    for index, node in enumerate(nodes):
        builder.add_node(node, index)
    return builder.finish(nodes)


__all__ = ["FRAME_NAME", "quote_literal", "opens_block", "fragment_lines", "GeneratedSource", "CodeBuilder", "generate_source"]
