from __future__ import annotations

import pytest

from tagged_union.internals.report import Reporter
from tagged_union.semantics.exceptions import DuplicateTagName, DuplicateTypeName
from tagged_union.semantics.passes.collect import collect
from tagged_union.internals.parser import parse_source
from tagged_union.semantics.pipeline import create_standard_pipeline
from tests.helpers import MESSAGE_SRC, analyze_source, copy_enum


def test_analysis_is_deterministic() -> None:
    first = analyze_source(MESSAGE_SRC, "Message")
    second = analyze_source(MESSAGE_SRC, "Message")
    assert first.tags == second.tags
    assert first.union == second.union
    assert first.record == second.record
    assert first.contract == second.contract


def test_pipeline_records_every_pass() -> None:
    source = parse_source(MESSAGE_SRC)
    types, _ = collect(source)
    pipeline = create_standard_pipeline(Reporter(), types)
    results = pipeline.execute(source.find("Message"))
    assert [r.name for r in results] == ["validate", "typemap", "tags", "layout", "conversions"]
    assert all(r.success for r in results)
    assert pipeline.total_duration_ms() >= 0


def test_failed_pass_stops_the_pipeline() -> None:
    source = parse_source(copy_enum("Ab, AB"))
    types, _ = collect(source)
    pipeline = create_standard_pipeline(Reporter(), types)
    with pytest.raises(DuplicateTagName):
        pipeline.execute(source.find("Foo"))
    results = pipeline.get_results()
    assert [r.name for r in results] == ["validate", "typemap", "tags"]
    assert not results[-1].success
    assert "FOO_AB" in results[-1].error


def test_verbose_prints_timing(capsys) -> None:
    analyze_source(MESSAGE_SRC, "Message", verbose=True)
    assert "Analysis Timing: Message" in capsys.readouterr().err


def test_duplicate_declarations_are_rejected() -> None:
    with pytest.raises(DuplicateTypeName):
        collect(parse_source("struct A; enum A { X }"))


def test_warnings_reach_the_reporter() -> None:
    reporter = Reporter()
    analyze_source(copy_enum("A = 3"), reporter=reporter)
    assert reporter.exit_code == 1
