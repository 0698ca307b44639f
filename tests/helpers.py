from __future__ import annotations

from tagged_union.internals.parser import parse_source
from tagged_union.internals.report import Reporter
from tagged_union.semantics.passes.collect import collect
from tagged_union.semantics.pipeline import analyze


MESSAGE_SRC = """
#[derive(Clone, Copy)]
#[repr(C)]
pub struct Point {
    pub x: f64,
    pub y: f64,
}

#[derive(Clone, Copy, TaggedUnion)]
pub enum Message {
    Halt,
    Move(Point),
    Wait(u32),
}
"""


def analyze_source(src: str, name: str | None = None, reporter: Reporter | None = None, **kwargs):
    """Parse `src` and analyze `name` (default: the last enum declared)."""
    source = parse_source(src)
    types, enums = collect(source)
    desc = source.find(name) if name else list(enums)[-1]
    return analyze(desc, types, reporter or Reporter(source=src), **kwargs)


def copy_enum(body: str, name: str = "Foo", prefix: str = "") -> str:
    """Source for a Copy enum named `name` with the given variant list."""
    return f"{prefix}\n#[derive(Clone, Copy)]\nenum {name} {{ {body} }}\n"
