"""Tests for the ``quill`` command-line renderer."""

import json

import pytest

from quill.__main__ import build_parser, main


@pytest.fixture
def site(tmp_path, monkeypatch):
    (tmp_path / "custom").mkdir()
    (tmp_path / "base.lt").write_text("<h1><%!block title%>Base<%!endblock%></h1>")
    (tmp_path / "page.lt").write_text(
        "<%!extends base.lt%><%!block title%><%=html title %><%!endblock%>"
    )
    (tmp_path / "hello.lt").write_text("default hello")
    (tmp_path / "custom" / "hello.lt").write_text("custom hello")
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestRender:
    def test_render_with_define(self, site, capsys):
        assert main(["render", "page.lt", "-D", "title=A&B"]) == 0
        assert capsys.readouterr().out == "<h1>A&amp;B</h1>"

    def test_render_with_json_data(self, site, capsys):
        (site / "data.json").write_text(json.dumps({"title": "From JSON"}))
        assert main(["render", "page.lt", "-d", "data.json"]) == 0
        assert capsys.readouterr().out == "<h1>From JSON</h1>"

    def test_custom_directory_overrides(self, site, capsys):
        assert main(["render", "hello.lt"]) == 0
        assert capsys.readouterr().out == "custom hello"

    def test_explicit_search_path(self, site, capsys):
        assert main(["render", "hello.lt", "-p", str(site)]) == 0
        assert capsys.readouterr().out == "default hello"

    def test_missing_template(self, site, capsys):
        assert main(["render", "nope.lt"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_runtime_error_with_debug(self, site, capsys):
        (site / "bad.lt").write_text("ok\n<%= missing %>")
        assert main(["render", "bad.lt", "--debug"]) == 1
        err = capsys.readouterr().err
        assert "bad.lt:2" in err
        assert "NameError" in err

    def test_redirected_errors_are_plain(self, site, capsys, monkeypatch):
        monkeypatch.setattr("quill.environment.terminal._USE_COLORS", True)
        (site / "broken.lt").write_text("<%!nope%>")
        assert main(["render", "broken.lt"]) == 1
        err = capsys.readouterr().err
        assert "Unknown directive" in err
        assert "\x1b[" not in err

    def test_json_must_be_object(self, site, capsys):
        (site / "list.json").write_text("[1, 2]")
        assert main(["render", "page.lt", "-d", "list.json"]) == 1
        assert "expected a JSON object" in capsys.readouterr().err


class TestShow:
    def test_show_prints_both_units(self, site, capsys):
        assert main(["show", "page.lt"]) == 0
        out = capsys.readouterr().out
        assert "-- blocks --\ndef _block_title(env):" in out
        assert "-- body --\nmain = None\n" in out


class TestParser:
    def test_define_requires_equals(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["render", "x", "-D", "novalue"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
