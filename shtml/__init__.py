"""
shtml: compiles static HTML templates with embedded Python.

Tags (default delimiters):
  <% code %>          Python statements; a trailing ':' opens a block closed by <% end %>
  <%= expr %>         HTML-escaped value
  <%- expr %>         raw value
  <%+ name %>         import another template sharing the current scope
  <%+ name | expr %>  import with `expr` as the imported template's scope
  <%! comment !%>     ignored
"""

from __future__ import annotations

from .compiler import CompiledTemplate, compile_template, load_and_compile_template
from .config import DEFAULT_DELIMITERS, DEFAULT_OPTIONS, DelimiterSet, Options, merge_options
from .errors import (
    CacheUnsupportedError,
    DelimiterConfigError,
    EvaluationError,
    ImportCycleError,
    LoadError,
    TemplateError,
    TemplateNotFoundError,
    TemplateSyntaxError,
    UnterminatedTagError,
)
from .escape import escape_html
from .evaluator import Evaluator, PythonEvaluator
from .loader import load_file
from .renderer import render

__all__ = [
    "CompiledTemplate",
    "compile_template",
    "load_and_compile_template",
    "render",
    "DelimiterSet",
    "DEFAULT_DELIMITERS",
    "Options",
    "DEFAULT_OPTIONS",
    "merge_options",
    "escape_html",
    "load_file",
    "Evaluator",
    "PythonEvaluator",
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
