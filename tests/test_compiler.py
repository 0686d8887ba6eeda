"""
Tests for the public compile API.
"""

import asyncio
import logging
from pathlib import Path

import pytest

import shtml
from shtml import (
    CacheUnsupportedError,
    CompiledTemplate,
    DelimiterConfigError,
    Options,
    PythonEvaluator,
    TemplateNotFoundError,
    UnterminatedTagError,
    compile_template,
    load_and_compile_template,
    render,
)
from shtml.nodes import LiteralNode
from tests.infrastructure import DictLoader, compile_named, compile_text, write


class TestCompileTemplate:

    def test_plain_text_compiles_to_one_literal(self):
        compiled = compile_text("Hello World")
        assert isinstance(compiled, CompiledTemplate)
        assert compiled.nodes == (LiteralNode("Hello World"),)
        assert compiled() == "Hello World"

    def test_import_example(self):
        async def load(name, options):
            return {"world": "World"}[name]

        compiled = asyncio.run(compile_template("Hello <%+ world %>", {"load_file": load}))
        assert render(compiled) == "Hello World"

    def test_unterminated_tag_fails_compile(self):
        with pytest.raises(UnterminatedTagError, match="%>"):
            compile_text("<%= unterminated")

    def test_malformed_delimiters_fail_before_scanning(self):
        loader = DictLoader({"a": "A"})
        with pytest.raises(DelimiterConfigError):
            compile_text("<%+ a %>", load_file=loader, delimiters={"open": "%>", "close": "%>"})
        assert loader.calls == []

    def test_options_instance(self):
        opts = Options(load_file=DictLoader({"w": "W"}))
        compiled = asyncio.run(compile_template("<%+ w %>", opts))
        assert compiled.options == opts
        assert compiled() == "W"

    def test_compiled_template_is_immutable(self):
        compiled = compile_text("x")
        with pytest.raises(Exception):
            compiled.name = "y"  # type: ignore[misc]

    def test_explicit_evaluator(self):
        evaluator = PythonEvaluator()
        compiled = asyncio.run(compile_template("<%= 1 %>", evaluator=evaluator))
        assert compiled.evaluator is evaluator
        assert compiled() == "1"

    def test_populated_cache_fails(self):
        with pytest.raises(CacheUnsupportedError):
            compile_text("<%+ a %>", {"a": "A"}, cache={"a": object()})

    def test_concurrent_compiles_share_nothing(self):
        async def main():
            loader = DictLoader({"a": "<%= v %>", "b": "[<%+ a %>]"})
            return await asyncio.gather(
                compile_template("<%+ a %>", load_file=loader),
                compile_template("<%+ b %>", load_file=loader),
            )

        first, second = asyncio.run(main())
        assert first({"v": 1}) == "1"
        assert second({"v": 2}) == "[2]"

    def test_debug_log_counts_nested_imports(self, loader, caplog):
        with caplog.at_level(logging.DEBUG, logger="shtml.compiler"):
            compile_text("<%+ nested %>", loader.templates, name="page")
        assert "Compiled 'page' -> 1 nodes, 2 imports" in caplog.text

    def test_public_api_exports(self):
        for name in shtml.__all__:
            assert hasattr(shtml, name)


class TestLoadAndCompileTemplate:

    def test_from_dict_loader(self, loader):
        compiled = compile_named("greeting", loader.templates)
        assert compiled.name == "greeting"
        assert compiled({"name": "Bo"}) == "Hello Bo!"

    def test_missing_entry_template(self):
        with pytest.raises(TemplateNotFoundError) as exc:
            compile_named("nope", {})
        assert exc.value.importer == ""

    def test_entry_template_cannot_import_itself(self):
        with pytest.raises(shtml.ImportCycleError):
            compile_named("loop", {"loop": "<%+ loop %>"})

    def test_from_filesystem(self, tmpsite: Path):
        compiled = asyncio.run(load_and_compile_template("index", base=tmpsite / "templates", ext="html"))
        result = compiled({"title": "Tom & Jerry", "pages": ["a", "<b>"], "year": 2024})
        assert result == (
            "<h1>Tom &amp; Jerry</h1>\n"
            "<ul><li>a</li><li>&lt;b&gt;</li></ul>\n"
            "<footer>2024</footer>\n"
        )

    def test_import_relative_to_base_with_subdirectory(self, tmp_path: Path):
        write(tmp_path / "a.tpl", "<%+ sub/b %>")
        write(tmp_path / "sub" / "b.tpl", "B")
        compiled = asyncio.run(load_and_compile_template("a", {"base": tmp_path, "ext": "tpl"}))
        assert compiled() == "B"
