"""Unit tests for the Result Renderer and its derived views."""

from __future__ import annotations

import pytest

from livedoc import decorations_for, flatten_text, format_error, format_value, render
from livedoc.document import InlineDecoration, WidgetDecoration
from livedoc.render import NO_AST, SPINNER, RenderedSpan, RenderedWidget
from livedoc.runtime import LogOutput
from livedoc.state import (
    ScriptExecuting,
    ScriptFailed,
    ScriptParsed,
    ScriptSucceeded,
    ScriptUnknown,
)


def _raise(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:
        return caught


# ---------------------------------------------------------------------------
# format_value / format_error
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestFormatValue:
    def test_number(self):
        assert format_value(2) == "2"

    def test_structures_are_indented_json(self):
        assert format_value({"a": [1, 2]}) == '{\n  "a": [\n    1,\n    2\n  ]\n}'

    def test_truthy_string_is_quoted(self):
        assert format_value("hi") == '"hi"'

    def test_falsy_values_show_type(self):
        assert format_value(0) == "int 0"
        assert format_value([]) == "list []"
        assert format_value(False) == "bool False"

    def test_none_is_just_the_label(self):
        assert format_value(None) == "None"

    def test_function_renders_source(self):
        def double(x):
            return x * 2

        text = format_value(double)
        assert text.lstrip().startswith("def double(x):")

    def test_builtin_without_source_falls_back_to_repr(self):
        assert format_value(len) == repr(len)

    def test_non_json_values_use_repr(self):
        class Thing:
            def __repr__(self):
                return "<thing>"

        assert format_value([Thing()]) == '[\n  "<thing>"\n]'

    def test_sets_render_as_lists(self):
        assert format_value({1}) == "[\n  1\n]"


@pytest.mark.unit
class TestFormatError:
    def test_exception_includes_traceback(self):
        text = format_error(_raise(ValueError("x marks")))
        assert text.startswith("Traceback")
        assert "ValueError: x marks" in text

    def test_non_exception_is_coerced(self):
        assert format_error("plain") == "plain"


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRender:
    def test_unknown_is_placeholder(self):
        assert flatten_text(render(ScriptUnknown())) == NO_AST

    def test_parsed_summarises_variables(self):
        assert flatten_text(render(ScriptParsed(("a", "b")))) == "declares a, b"
        assert render(ScriptParsed()) == ()

    def test_parsed_with_stale_shows_previous_result(self):
        stale = ScriptSucceeded(0.0, 1.0, (), 7)
        spans = render(ScriptParsed(("a",), stale))
        assert flatten_text(spans) == "7"
        assert spans[0].css_class == "livedoc-stale"

    def test_executing_has_spinner_and_stale_text(self):
        stale = ScriptSucceeded(0.0, 1.0, (), 7)
        spans = render(ScriptExecuting(2.0, (), stale))
        assert isinstance(spans[0], RenderedWidget)
        assert spans[0].widget == SPINNER
        assert flatten_text(spans) == "7"

    def test_executing_shows_logs_over_stale(self):
        stale = ScriptSucceeded(0.0, 1.0, (), 7)
        spans = render(ScriptExecuting(2.0, (LogOutput("line\n"),), stale))
        assert flatten_text(spans) == "line\n"

    def test_succeeded_logs_then_value(self):
        state = ScriptSucceeded(0.0, 1.0, (LogOutput("hello\n"),), 2)
        assert flatten_text(render(state)) == "hello\n2"

    def test_failed_renders_error(self):
        state = ScriptFailed(0.0, 1.0, (), _raise(RuntimeError("x")))
        assert "RuntimeError: x" in flatten_text(render(state))

    def test_no_state_renders_nothing(self):
        assert render(None) == ()

    def test_unexpected_object(self):
        with pytest.raises(TypeError):
            render(object())  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestDerivedViews:
    spans = ("ab", RenderedWidget("spin"), RenderedSpan("cd", "k"), "e")

    def test_flatten_skips_widgets(self):
        assert flatten_text(self.spans) == "abcde"

    def test_decorations_track_positions(self):
        decorations = decorations_for(self.spans, 10)
        assert decorations == [
            WidgetDecoration(12, "spin"),
            InlineDecoration(12, 14, "k"),
        ]

    def test_views_agree_on_length(self):
        decorations = decorations_for(self.spans, 0)
        inline = [d for d in decorations if isinstance(d, InlineDecoration)]
        assert inline[-1].to <= len(flatten_text(self.spans))
