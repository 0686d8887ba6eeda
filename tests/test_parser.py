"""
Tests for the template parser: node construction and eager import resolution.
"""

import asyncio

import pytest

from shtml.config import merge_options
from shtml.errors import (
    CacheUnsupportedError,
    ImportCycleError,
    LoadError,
    TemplateNotFoundError,
    UnterminatedTagError,
)
from shtml.nodes import CodeNode, EscapedNode, ImportNode, LiteralNode, RawNode, iter_imports
from shtml.parser import TemplateParser, parse_template, resolve_template, split_import
from tests.infrastructure import DictLoader


def parse(text, loader=None, name="", **options):
    opts = merge_options(load_file=loader or DictLoader(), **options)
    return asyncio.run(parse_template(text, opts, name))


class TestSplitImport:

    @pytest.mark.parametrize("body, expected", [
        (" world ", ("world", None)),
        ("child | {'x': 1}", ("child", "{'x': 1}")),
        ("child |", ("child", None)),
        ("child |   ", ("child", None)),
        ("child | a | b", ("child", "a | b")),
        ("dir/name|ctx", ("dir/name", "ctx")),
    ])
    def test_split(self, body, expected):
        assert split_import(body) == expected


class TestTemplateParser:

    def test_identity_single_literal(self):
        assert parse("Hello World") == [LiteralNode("Hello World")]

    def test_node_kinds(self):
        nodes = parse("a<%= e %><%- r %><% if x: %><% end %><%! gone !%>")
        assert nodes == [
            LiteralNode("a"),
            EscapedNode(" e "),
            RawNode(" r "),
            CodeNode(" if x: "),
            CodeNode(" end "),
        ]

    def test_literal_text_is_kept_verbatim(self):
        text = "back\\slash 'quote' {brace} $dollar `tick`\n"
        assert parse(text) == [LiteralNode(text)]

    def test_nodes_carry_positions(self):
        nodes = parse("x\n<%= y %>")
        assert (nodes[1].line, nodes[1].column) == (2, 1)

    def test_comment_produces_no_node(self):
        assert parse("<%! <%= x %> !%>") == []

    def test_import_shared_scope(self, loader):
        nodes = parse("Hello <%+ world %>", loader)
        assert nodes == [
            LiteralNode("Hello "),
            ImportNode("world", None, (LiteralNode("World"),)),
        ]
        assert nodes[1].shares_scope
        assert loader.calls == ["world"]

    def test_import_with_locals_expression(self, loader):
        nodes = parse("<%+ greeting | {'name': user} %>", loader)
        (node,) = nodes
        assert isinstance(node, ImportNode)
        assert node.locals_expr == "{'name': user}"
        assert not node.shares_scope
        assert node.nodes == (LiteralNode("Hello "), EscapedNode(" name "), LiteralNode("!"))

    def test_nested_imports_are_resolved_depth_first(self, loader):
        nodes = parse("<%+ nested %><%+ world %>", loader)
        assert loader.calls == ["nested", "world", "world"]
        assert [n.name for n in iter_imports(nodes)] == ["nested", "world", "world"]

    def test_sync_loader_is_accepted(self):
        nodes = parse("<%+ a %>", DictLoader({"a": "A"}, is_async=False))
        assert nodes[0].nodes == (LiteralNode("A"),)

    def test_missing_import_wraps_loader_error(self, loader):
        with pytest.raises(TemplateNotFoundError) as exc:
            parse("<%+ missing %>", loader, name="page")
        assert exc.value.template_name == "missing"
        assert exc.value.importer == "page"
        assert isinstance(exc.value.__cause__, LoadError)

    def test_loader_returning_none_fails(self):
        with pytest.raises(TemplateNotFoundError):
            parse("<%+ a %>", lambda name, options: None)

    def test_unterminated_tag_in_import_aborts(self):
        with pytest.raises(UnterminatedTagError) as exc:
            parse("ok <%+ broken %>", DictLoader({"broken": "<%= x"}))
        assert exc.value.template_name == "broken"

    def test_unterminated_tag_fails_before_imports_are_loaded(self, loader):
        with pytest.raises(UnterminatedTagError):
            parse("<%+ world %> <%= oops", loader)
        assert loader.calls == []

    def test_direct_cycle(self):
        loader = DictLoader({"a": "<%+ a %>"})
        with pytest.raises(ImportCycleError) as exc:
            parse("<%+ a %>", loader)
        assert exc.value.chain == ["a", "a"]

    def test_indirect_cycle_through_named_entry(self):
        loader = DictLoader({"b": "<%+ c %>", "c": "<%+ page %>"})
        with pytest.raises(ImportCycleError, match="page -> b -> c -> page"):
            parse("<%+ b %>", loader, name="page")

    def test_same_template_twice_is_not_a_cycle(self, loader):
        nodes = parse("<%+ world %><%+ world %>", loader)
        assert len(nodes) == 2

    def test_populated_cache_is_unsupported(self, loader):
        with pytest.raises(CacheUnsupportedError, match="unimplemented"):
            parse("<%+ world %>", loader, cache={"world": "cached"})

    def test_empty_cache_is_ignored(self, loader):
        assert len(parse("<%+ world %>", loader, cache={})) == 1


class TestResolveTemplate:

    def test_resolve_by_name(self, loader):
        opts = merge_options(load_file=loader)
        nodes = asyncio.run(resolve_template("greeting", opts))
        assert nodes[0] == LiteralNode("Hello ")

    def test_parser_uses_configured_delimiters(self):
        opts = merge_options(load_file=DictLoader(), delimiters={"open": "{{", "close": "}}"})
        nodes = asyncio.run(TemplateParser(opts).parse("a {{= b }} <%= c %>"))
        assert nodes == [LiteralNode("a "), EscapedNode(" b "), LiteralNode(" <%= c %>")]
