"""Tests for debug line maps and diagnostics."""

import pytest

from quill import DictLoader, Environment, TemplateRuntimeError
from quill.compiler import generate
from quill.debug import LineMap, format_diagnostic
from quill.environment.exceptions import CodeGenerationError


class TestLineMap:
    def test_lookup_takes_first_record_at_or_after(self):
        line_map = LineMap([(2, 1), (2, 2), (5, 3)])
        assert line_map.template_line(1) == 1
        assert line_map.template_line(2) == 1
        assert line_map.template_line(3) == 3
        assert line_map.template_line(5) == 3

    def test_past_last_record_is_the_following_line(self):
        line_map = LineMap([(2, 1), (4, 2)])
        assert line_map.template_line(9) == 3

    def test_no_records(self):
        assert LineMap(last_template_line=1).template_line(3) == 1

    def test_reset(self):
        line_map = LineMap([(1, 1)])
        line_map.reset()
        assert len(line_map) == 0

    def test_shift_moves_later_records(self):
        line_map = LineMap([(1, 1), (2, 2), (4, 3)])
        line_map.shift(2)
        assert line_map.records == [(1, 1), (3, 2), (5, 3)]


class TestFormatDiagnostic:
    def test_format(self):
        assert format_diagnostic("page.lt", 3, "boom") == '[template "page.lt"]:3:boom'

    def test_unknown_line(self):
        assert format_diagnostic("page.lt", None, "boom") == '[template "page.lt"]:?:boom'


class TestGeneratedLineMaps:
    def test_no_line_maps_without_debug(self):
        generated = generate("a\nb", "t.lt")
        assert generated.body.line_map is None
        assert generated.body.template_line(2) is None

    def test_expression_line(self):
        body = generate("a\n<%= x %>\n", "t.lt", debug=True).body
        lines = body.source.splitlines()
        assert lines[2] == "    print(x)"
        assert body.template_line(3) == 2

    def test_expression_on_last_line(self):
        body = generate("line1\n<%= y %>", "t.lt", debug=True).body
        assert body.template_line(3) == 2

    def test_multiline_code_tag(self):
        body = generate("<%\nx = 1\ny = z\n%>", "t.lt", debug=True).body
        lines = body.source.splitlines()
        assert lines[3] == "    y = z"
        assert body.template_line(4) == 3

    def test_global_declaration_keeps_lines_mapped(self):
        body = generate("a\n<% n = 1 %>\n<%= n + oops %>", "t.lt", debug=True).body
        lines = body.source.splitlines()
        assert lines[1] == "    global n"
        assert body.template_line(lines.index("    print(n + oops)") + 1) == 3

    def test_block_unit_has_its_own_map(self):
        generated = generate("one\n<%!block b%>\n\n<%= oops %><%!endblock%>", "t.lt", debug=True)
        lines = generated.blocks.source.splitlines()
        generated_line = lines.index("        print(oops)") + 1
        assert generated.blocks.template_line(generated_line) == 4

    def test_every_template_newline_is_recorded(self):
        source = "a\n<% if x: %>\nb\n<% end %>\n<%= c %>\n"
        generated = generate(source, "t.lt", debug=True)
        assert len(generated.body.line_map) == source.count("\n")


def _debug_env(**templates: str) -> Environment:
    return Environment(loader=DictLoader(templates), debug=True)


class TestRuntimeDiagnostics:
    def test_runtime_error_reports_template_line(self):
        env = _debug_env(**{"t.lt": "line1\nline2\n<%= undefined_name %>\n"})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render("t.lt")
        err = exc_info.value
        assert err.template_name == "t.lt"
        assert err.lineno == 3
        assert err.diagnostic.startswith('[template "t.lt"]:3:NameError')
        assert str(err).startswith('Runtime Error: [template "t.lt"]:3:NameError')
        assert "undefined_name" in err.suggestion

    def test_error_in_included_template_names_it(self):
        env = _debug_env(**{"outer.lt": "x\n<%!include inner.lt%>", "inner.lt": "\n\n<%= 1 // 0 %>"})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render("outer.lt")
        assert exc_info.value.template_name == "inner.lt"
        assert exc_info.value.lineno == 3
        assert "ZeroDivisionError" in exc_info.value.message

    def test_error_in_overriding_block(self):
        env = _debug_env(
            **{
                "base.lt": "<%!block b%>fine<%!endblock%>",
                "child.lt": "<%!extends base.lt%>\n<%!block b%>\n<%= missing %><%!endblock%>",
            }
        )
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render("child.lt")
        assert exc_info.value.template_name == "child.lt"
        assert exc_info.value.lineno == 3

    def test_snippet_marks_error_line(self):
        env = _debug_env(**{"t.lt": "a\nb\n<%= nope %>\nd"})
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render("t.lt")
        snippet = exc_info.value.source_snippet
        assert snippet is not None
        assert snippet.error_line == 3
        assert (3, "<%= nope %>") in snippet.lines

    def test_without_debug_line_is_unknown(self):
        env = Environment(loader=DictLoader({"t.lt": "<%= nope %>"}))
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render("t.lt")
        assert exc_info.value.template_name == "t.lt"
        assert exc_info.value.lineno is None
        assert str(exc_info.value).startswith("Runtime Error: NameError")

    def test_executor_error_is_mapped(self):
        env = _debug_env(**{"t.lt": "a\nb\n<% x = = 1 %>\n"})
        with pytest.raises(CodeGenerationError) as exc_info:
            env.compile("t.lt")
        err = exc_info.value
        assert err.unit == "body"
        assert err.lineno == 3
        assert '[template "t.lt"]:3:' in str(err)
