from __future__ import annotations

import io

import pytest

from tagged_union.internals import errors as er
from tagged_union.internals.report import Reporter, Span


def test_clean_reporter() -> None:
    r = Reporter()
    assert r.exit_code == 0
    assert r.summary() == ""
    assert r.format(use_color=False, use_unicode=False) == ""


def test_warning_only_exits_with_one() -> None:
    r = Reporter()
    er.emit(r, er.ERR.TW0003, None)
    assert r.has_warnings and not r.has_errors
    assert r.exit_code == 1
    assert r.summary() == "1 warning"


def test_errors_win_over_warnings() -> None:
    r = Reporter()
    er.emit(r, er.ERR.TW0003, None)
    er.emit(r, er.ERR.TU2004, None, name="A")
    er.emit(r, er.ERR.TU2004, None, name="B")
    assert r.exit_code == 2
    assert r.codes() == ["TW0003", "TU2004", "TU2004"]
    assert r.summary() == "2 errors, 1 warning"


def test_plain_format_points_at_the_column() -> None:
    src = "enum Foo {\n    Bar(Missing),\n}\n"
    r = Reporter(source=src, filename="foo.rs")
    er.emit(r, er.ERR.TU2001, Span(2, 9, 2, 16), type="Missing", enum="Foo", variant="Bar")
    lines = r.format(use_color=False, use_unicode=False).splitlines()
    assert lines[0] == (
        "foo.rs:2:9: error [TU2001]: unknown payload type 'Missing' in variant 'Foo::Bar'."
    )
    assert lines[1] == "  |     Bar(Missing),"
    assert lines[2] == "  ` " + " " * 8 + "^" * 7


def test_unicode_frame_underlines_the_span() -> None:
    r = Reporter(source="enum Foo {}\n", filename="foo.rs")
    er.emit(r, er.ERR.TU1003, Span(1, 6, 1, 9), name="Foo")
    lines = r.format(use_color=False, use_unicode=True).splitlines()
    assert lines[0].startswith("  ╭─ foo.rs:1:6: error [TU1003]")
    assert lines[1] == "  │ enum Foo {}"
    assert lines[2] == "  ╰─" + " " * 5 + "━━━"


def test_print_to_non_tty_has_no_escapes() -> None:
    r = Reporter(filename="x.rs")
    er.emit(r, er.ERR.TU2004, None, name="Gone")
    stream = io.StringIO()
    r.print(stream)
    assert stream.getvalue() == "x.rs: error [TU2004]: no enum named 'Gone' in this source.\n"


def test_catalog_rejects_unknown_codes() -> None:
    with pytest.raises(AttributeError):
        er.ERR.TU9999


def test_internal_errors_raise_runtime_error() -> None:
    with pytest.raises(RuntimeError, match="TU0005"):
        er.raise_internal_error("TU0005", message="bad")


def test_missing_message_parameter() -> None:
    with pytest.raises(KeyError, match="missing text key 'name'"):
        er.format_message(er.ERR.TU2004)
