from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from tests.infrastructure import DictLoader, write


@pytest.fixture
def loader() -> DictLoader:
    """Dict-backed loader with a few small templates."""
    return DictLoader({
        "world": "World",
        "greeting": "Hello <%= name %>!",
        "item": "<li><%= item %></li>",
        "setter": "<% x = 42 %>",
        "nested": "[<%+ world %>]",
    })


@pytest.fixture
def tmpsite(tmp_path: Path) -> Path:
    """Minimal site: templates/*.html plus a YAML config and locals."""
    root = tmp_path
    write(root / "templates" / "index.html", textwrap.dedent("""\
        <h1><%= title %></h1>
        <%+ partials/list | {'items': pages} %>
        <%+ footer %>
        """))
    write(root / "templates" / "partials" / "list.html", textwrap.dedent("""\
        <ul><% for item in items: %><li><%= item %></li><% end %></ul>"""))
    write(root / "templates" / "footer.html", "<footer><%- year %></footer>")
    write(root / "shtml.yaml", "base: templates\next: html\n")
    write(root / "locals.yaml", textwrap.dedent("""\
        title: Tom & Jerry
        year: 2024
        pages: ["a", "<b>"]
        """))
    return root
