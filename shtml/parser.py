"""
Template parser.

Turns scanner chunks into a node list. Imports are resolved eagerly: the
loader is awaited, the loaded text is parsed with the same options and the
result is nested inside an ImportNode. Imports resolve in document order,
depth first, one at a time.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .config import Options
from .errors import CacheUnsupportedError, ImportCycleError, TemplateNotFoundError
from .lexer import Chunk, TagKind, TagScanner
from .loader import call_loader
from .nodes import CodeNode, EscapedNode, ImportNode, LiteralNode, RawNode, TemplateAST, TemplateNode

logger = logging.getLogger(__name__)


def split_import(body: str) -> Tuple[str, Optional[str]]:
    """
    Splits an import tag body into the template name and the locals expression.

    Only the first '|' separates; an empty right side means a shared scope.
    """
    name, sep, expr = body.partition("|")
    expr = expr.strip() if sep else ""
    return name.strip(), (expr or None)


class TemplateParser:
    """
    Recursive parser for templates.

    One parser is bound to one set of options; `import_stack` holds the names
    of the templates being resolved so cycles are reported instead of
    recursing forever.
    """

    def __init__(self, options: Options, template_name: str = "", import_stack: Sequence[str] = ()):
        self.options = options
        self.template_name = template_name
        self.import_stack = list(import_stack)
        self.scanner = TagScanner(options.delimiters, template_name)

    async def parse(self, text: str) -> TemplateAST:
        """
        Parses template text into a node list.

        Raises:
            UnterminatedTagError: If a tag has no close marker
            TemplateNotFoundError: If an imported template cannot be loaded
            ImportCycleError: If templates import each other in a loop
        """
        ast: List[TemplateNode] = []

        for chunk in self.scanner.tokenize(text):
            node = await self._parse_chunk(chunk)
            if node is not None:
                ast.append(node)

        logger.debug(f"Parsed template '{self.template_name or '<string>'}' -> {len(ast)} nodes")
        return ast

    async def _parse_chunk(self, chunk: Chunk) -> Optional[TemplateNode]:
        pos = {"line": chunk.line, "column": chunk.column}

        if chunk.kind is TagKind.TEXT:
            return LiteralNode(chunk.value, **pos)
        elif chunk.kind is TagKind.COMMENT:
            return None
        elif chunk.kind is TagKind.ESCAPED:
            return EscapedNode(chunk.value, **pos)
        elif chunk.kind is TagKind.RAW:
            return RawNode(chunk.value, **pos)
        elif chunk.kind is TagKind.IMPORT:
            return await self._parse_import(chunk)
        else:
            return CodeNode(chunk.value, **pos)

    async def _parse_import(self, chunk: Chunk) -> ImportNode:
        name, locals_expr = split_import(chunk.value)
        nodes = await resolve_template(name, self.options, self.import_stack, importer=self.template_name)
        return ImportNode(
            name,
            locals_expr,
            tuple(nodes),
            line=chunk.line,
            column=chunk.column,
        )


async def parse_template(text: str, options: Options, template_name: str = "") -> TemplateAST:
    """Convenience function for parsing template text."""
    parser = TemplateParser(options, template_name, [template_name] if template_name else [])
    return await parser.parse(text)


async def resolve_template(
    template_name: str,
    options: Options,
    import_stack: Sequence[str] = (),
    importer: str = "",
) -> TemplateAST:
    """
    Loads and parses a template by name.

    If a cache is present, this should only be called when a template file
    is updated; caching itself is not implemented.

    Raises:
        CacheUnsupportedError: If a populated cache was supplied
        ImportCycleError: If the template is already being resolved
        TemplateNotFoundError: If the loader fails (the loader error is the cause)
    """
    if options.cache:
        raise CacheUnsupportedError()

    if template_name in import_stack:
        raise ImportCycleError([*import_stack, template_name])

    try:
        text = await call_loader(options.load_file, template_name, options)
    except Exception as e:
        raise TemplateNotFoundError(template_name, importer) from e

    logger.debug(f"Resolving '{template_name}'" + (f" imported from '{importer}'" if importer else ""))
    parser = TemplateParser(options, template_name, [*import_stack, template_name])
    return await parser.parse(text)


__all__ = ["TemplateParser", "split_import", "parse_template", "resolve_template"]
