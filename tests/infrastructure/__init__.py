"""
Shared test infrastructure for shtml.

Modules:
- file_utils: Utilities for creating template files and directories
- template_utils: Dict-backed loaders and sync wrappers around the async compile API
- cli_utils: In-process CLI runner
"""

from .file_utils import write
from .template_utils import DictLoader, compile_text, compile_named, render_text
from .cli_utils import run_cli

__all__ = [
    # File utilities
    "write",

    # Template utilities
    "DictLoader", "compile_text", "compile_named", "render_text",

    # CLI utilities
    "run_cli",
]
