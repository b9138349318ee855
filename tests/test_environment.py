"""Tests for Environment configuration, loaders, staleness and caching."""

import os
import threading

import pytest

from quill import (
    ChoiceLoader,
    DictLoader,
    Environment,
    EscapeMode,
    FileSystemLoader,
    FunctionLoader,
    SourceUnavailableError,
    TemplateNotFoundError,
    TemplateSource,
)


def _write(path, text, mtime_ns=None):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if mtime_ns is not None:
        os.utime(path, ns=(mtime_ns, mtime_ns))


class TestConfiguration:
    def test_no_loader(self, env):
        with pytest.raises(TemplateNotFoundError, match="No loader"):
            env.compile("x")

    def test_escape_keyword(self):
        env = Environment(loader=DictLoader({"t": "<%= v %>"}), escape="html")
        assert env.escape is EscapeMode.HTML
        assert env.render("t", v="<b>") == "&lt;b&gt;"

    def test_unknown_escape_keyword(self):
        with pytest.raises(ValueError):
            Environment(escape="json")

    def test_invalid_render_depth(self):
        with pytest.raises(ValueError):
            Environment(max_render_depth=0)

    def test_render_accepts_dict_and_kwargs(self):
        env = Environment(loader=DictLoader({"t": "<%= a %><%= b %>"}))
        assert env.render("t", {"a": 1, "b": 2}, b=3) == "13"

    def test_render_variable_called_name(self):
        env = Environment(loader=DictLoader({"hello.lt": "Hello, <%= name %>!"}))
        assert env.render("hello.lt", name="World") == "Hello, World!"
        assert env.render("hello.lt", {"name": "dict"}) == "Hello, dict!"

    def test_render_rejects_extra_positional_args(self):
        env = Environment(loader=DictLoader({"t": ""}))
        with pytest.raises(TypeError):
            env.render("t", {}, {})

    def test_generate_does_not_publish(self, env_with_loader):
        generated = env_with_loader.generate("child.lt")
        assert generated.extends == "base.lt"
        assert "child.lt" not in env_with_loader.registry

    def test_get_template(self, env_with_loader):
        template = env_with_loader.get_template("child.lt")
        assert template.name == "child.lt"
        assert set(template.blocks) == {"body"}
        assert "base.lt" in env_with_loader.registry

    def test_get_template_reuses_current_entry(self, env_with_loader):
        first = env_with_loader.get_template("page.lt")
        assert env_with_loader.get_template("page.lt") is first

    def test_get_template_recompiles_evicted_dependency(self, env_with_loader):
        page = env_with_loader.get_template("page.lt")
        env_with_loader.invalidate("partial.lt")
        assert env_with_loader.get_template("page.lt") is page
        assert "partial.lt" in env_with_loader.registry


class TestStaleness:
    def test_dict_loader_change_recompiles(self, templates, env_with_loader):
        assert env_with_loader.render("partial.lt") == "<p>Partial content</p>"
        templates["partial.lt"] = "<p>Changed</p>"
        assert not env_with_loader.is_current("partial.lt")
        assert env_with_loader.render("partial.lt") == "<p>Changed</p>"
        assert env_with_loader.is_current("partial.lt")

    def test_stale_dependency_is_recompiled(self, templates, env_with_loader):
        assert "Partial content" in env_with_loader.render("page.lt")
        page = env_with_loader.registry["page.lt"]
        templates["partial.lt"] = "<p>New</p>"
        assert env_with_loader.render("page.lt") == "before <p>New</p> after"
        assert env_with_loader.registry["page.lt"] is page

    def test_changed_base_reaches_child(self, templates, env_with_loader):
        env_with_loader.render("child.lt")
        templates["base.lt"] = "<main><%!block body%><%!endblock%></main>"
        assert env_with_loader.render("child.lt") == "<main>Hello World</main>"

    def test_file_mtime_change_recompiles(self, tmp_path):
        path = tmp_path / "t.lt"
        _write(path, "one", mtime_ns=1_000_000_000)
        env = Environment(loader=FileSystemLoader(tmp_path))
        assert env.render("t.lt") == "one"
        _write(path, "two", mtime_ns=1_000_000_000)
        assert env.render("t.lt") == "one"
        _write(path, "two", mtime_ns=2_000_000_000)
        assert env.render("t.lt") == "two"

    def test_loader_without_versions_never_goes_stale(self):
        sources = {"t": "one"}
        env = Environment(loader=FunctionLoader(sources.get))
        assert env.render("t") == "one"
        sources["t"] = "two"
        assert env.is_current("t")
        assert env.render("t") == "one"
        env.invalidate("t")
        assert env.render("t") == "two"


class TestCacheControl:
    def test_invalidate(self, env_with_loader):
        env_with_loader.compile("partial.lt")
        assert env_with_loader.invalidate("partial.lt") is True
        assert env_with_loader.invalidate("partial.lt") is False
        assert not env_with_loader.is_current("partial.lt")

    def test_clear(self, env_with_loader):
        env_with_loader.compile("child.lt")
        env_with_loader.clear()
        assert len(env_with_loader.registry) == 0

    def test_render_environment_sees_snapshot(self, env_with_loader):
        env_with_loader.compile("partial.lt")
        render_env = env_with_loader.render_environment([].append)
        env_with_loader.clear()
        assert "partial.lt" in render_env.registry

    def test_concurrent_compiles(self, env_with_loader):
        errors = []

        def work():
            try:
                for _ in range(20):
                    assert "Hello World" in env_with_loader.render("child.lt")
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []


class TestLoaders:
    def test_search_path_order(self, tmp_path):
        _write(tmp_path / "custom" / "page.lt", "custom")
        _write(tmp_path / "page.lt", "default")
        _write(tmp_path / "other.lt", "other")
        loader = FileSystemLoader([tmp_path / "custom", tmp_path])
        env = Environment(loader=loader)
        assert env.render("page.lt") == "custom"
        assert env.render("other.lt") == "other"

    def test_filesystem_source(self, tmp_path):
        _write(tmp_path / "sub" / "a.lt", "A", mtime_ns=5_000_000_000)
        source = FileSystemLoader(tmp_path).get_source("sub/a.lt")
        assert source.source == "A"
        assert source.filename == str(tmp_path / "sub" / "a.lt")
        assert source.version == 5_000_000_000

    def test_filesystem_not_found(self, tmp_path):
        with pytest.raises(TemplateNotFoundError, match="not found in"):
            FileSystemLoader(tmp_path).get_source("missing.lt")

    def test_filesystem_list_templates(self, tmp_path):
        _write(tmp_path / "a.lt", "")
        _write(tmp_path / "d" / "b.lt", "")
        assert FileSystemLoader(tmp_path).list_templates() == ["a.lt", "d/b.lt"]

    def test_dict_loader_suggestion(self):
        with pytest.raises(TemplateNotFoundError, match="Did you mean 'page.lt'"):
            DictLoader({"page.lt": ""}).get_source("pgae.lt")

    def test_dict_loader_version_follows_text(self):
        loader = DictLoader({"a": "x", "b": "x", "c": "y"})
        assert loader.get_version("a") == loader.get_version("b")
        assert loader.get_version("a") != loader.get_version("c")
        assert loader.get_version("missing") is None

    def test_choice_loader(self):
        loader = ChoiceLoader([DictLoader({"nav": "custom"}), DictLoader({"nav": "d", "foot": "f"})])
        env = Environment(loader=loader)
        assert env.render("nav") == "custom"
        assert env.render("foot") == "f"
        with pytest.raises(TemplateNotFoundError):
            loader.get_source("none")

    def test_function_loader_results(self):
        results = {
            "s": "text",
            "b": b"bytes",
            "t": ("tuple", "t.lt"),
            "ts": TemplateSource("full", "f.lt", 7),
        }
        loader = FunctionLoader(results.get)
        assert loader.get_source("s") == TemplateSource("text", "<function>")
        assert loader.get_source("b").source == "bytes"
        assert loader.get_source("t") == TemplateSource("tuple", "t.lt")
        assert loader.get_source("ts").version == 7
        assert loader.get_version("ts") == 7
        assert loader.get_version("s") is None
        with pytest.raises(TemplateNotFoundError):
            loader.get_source("nope")

    def test_function_loader_undecodable_bytes(self):
        env = Environment(loader=FunctionLoader(lambda name: b"\xff\xfe"))
        with pytest.raises(SourceUnavailableError, match="Cannot decode template 't'"):
            env.render("t")
