"""
Template errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from TemplateError.

Programming errors and bugs should NOT inherit from TemplateError,
they propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional


class TemplateError(Exception):
    """
    Base class for all user-facing errors in shtml.

    These errors indicate problems that the user can fix:
    malformed templates, bad delimiter settings, missing files, etc.
    """
    pass


class DelimiterConfigError(TemplateError, ValueError):
    """Invalid delimiter configuration (rejected before any scanning)."""
    pass


class UnterminatedTagError(TemplateError):
    """The scanner could not find the close marker of a tag."""

    def __init__(self, marker: str, line: int = 0, column: int = 0, template_name: str = ""):
        where = f" at {line}:{column}" if line else ""
        source = f" in '{template_name}'" if template_name else ""
        super().__init__(f"Could not find matching close tag '{marker}' for tag opened{where}{source}")
        self.marker = marker
        self.line = line
        self.column = column
        self.template_name = template_name


class TemplateSyntaxError(TemplateError):
    """Embedded code does not form a valid program (bad Python or unbalanced blocks)."""

    def __init__(self, message: str, template_name: str = "", line: int = 0):
        where = f" at line {line}" if line else ""
        source = f" in '{template_name}'" if template_name else ""
        super().__init__(f"{message}{where}{source}")
        self.template_name = template_name
        self.line = line


class LoadError(TemplateError):
    """The loader could not read a template source."""

    def __init__(self, template_name: str, path: str = "", reason: str = ""):
        details = f" ({path})" if path else ""
        suffix = f": {reason}" if reason else ""
        super().__init__(f"Failed to load template '{template_name}'{details}{suffix}")
        self.template_name = template_name
        self.path = path


class TemplateNotFoundError(TemplateError):
    """An imported or entry template could not be resolved. The loader error is the __cause__."""

    def __init__(self, template_name: str, importer: str = ""):
        source = f" (imported from '{importer}')" if importer else ""
        super().__init__(f"Template '{template_name}' could not be loaded{source}")
        self.template_name = template_name
        self.importer = importer


class ImportCycleError(TemplateError):
    """A template imports itself, directly or through other templates."""

    def __init__(self, chain: list[str]):
        super().__init__("Import cycle detected: " + " -> ".join(chain))
        self.chain = list(chain)


class CacheUnsupportedError(TemplateError):
    """A template cache was supplied but caching is not implemented."""

    def __init__(self) -> None:
        super().__init__("The template cache is unimplemented")


class EvaluationError(TemplateError):
    """
    An embedded expression or code fragment raised during render.

    The original exception is chained as __cause__. Output rendered before
    the failing node is kept in `partial_output` for diagnostics.
    """

    def __init__(
        self,
        message: str,
        template_name: str = "",
        line: Optional[int] = None,
        partial_output: str = "",
    ):
        where = f" at line {line}" if line else ""
        source = f"'{template_name}'" if template_name else "<template>"
        super().__init__(f"Evaluation failed in {source}{where}: {message}")
        self.template_name = template_name
        self.line = line
        self.partial_output = partial_output


__all__ = [
    "TemplateError",
    "DelimiterConfigError",
    "UnterminatedTagError",
    "TemplateSyntaxError",
    "LoadError",
    "TemplateNotFoundError",
    "ImportCycleError",
    "CacheUnsupportedError",
    "EvaluationError",
]
