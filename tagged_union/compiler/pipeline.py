"""Generation driver: source text -> declaration bundles -> emitted targets."""
from __future__ import annotations
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from lark import UnexpectedInput

from tagged_union import __version__
from tagged_union.backend.codegen_llvm import emit_ir
from tagged_union.backend.declarations import DeclarationBundle
from tagged_union.backend.emit_c import CEmitter
from tagged_union.backend.emit_rust import RustEmitter
from tagged_union.compiler.config import TARGET_SUFFIXES, GeneratorConfig
from tagged_union.internals import errors as er
from tagged_union.internals.parser import handle_parse_exception, parse_source
from tagged_union.internals.report import Reporter
from tagged_union.semantics.ast import SourceFile, TypeDescription
from tagged_union.semantics.exceptions import (
    AnalysisError, DuplicateTagName, DuplicateTypeName, UnknownSelectedType,
)
from tagged_union.semantics.passes.collect import EnumTable, TypeTable, collect
from tagged_union.semantics.pipeline import analyze

DERIVE_NAME = "TaggedUnion"


@dataclass
class GenerationResult:
    bundles: List[DeclarationBundle] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)      # target -> text

    def write(self, out_dir: Path, stem: str) -> List[Path]:
        out_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for target, text in self.outputs.items():
            path = out_dir / f"{stem}{TARGET_SUFFIXES[target]}"
            path.write_text(text, encoding="utf-8")
            written.append(path)
        return written


def select_enums(
    source: SourceFile,
    enums: EnumTable,
    names: List[str],
    reporter: Reporter,
) -> List[TypeDescription]:
    """Descriptions to lower, in source order unless names are given.

    Explicit names may point at non-enums; validation rejects those with
    NotAnEnum so the user sees why.
    """
    if names:
        selected = []
        for name in names:
            desc = source.find(name)
            if desc is None:
                raise UnknownSelectedType(er.ERR.TU2004, None, name=name)
            selected.append(desc)
        return selected

    derived = [e for e in enums if DERIVE_NAME in e.derives()]
    if derived:
        return derived
    if enums.order:
        er.emit(reporter, er.ERR.TW0003, None)
    return list(enums)


def check_generated_names(
    bundles: Sequence[DeclarationBundle],
    types: TypeTable,
    enums: EnumTable,
) -> None:
    """Reject generated names that clash once every bundle lands in one output.

    Each target file holds all selected enums next to the payload types they
    use, so union, record and tag names must be unique across bundles and
    must not reuse a declared name.

    Raises:
        DuplicateTagName: two enums produce the same tag constant.
        DuplicateTypeName: any other generated name is already taken.
    """
    owners: Dict[str, Tuple[str, Optional[str]]] = {}     # name -> (enum, variant)

    def claim(name: str, b: DeclarationBundle, variant: Optional[str] = None) -> None:
        decl = types.get(name) or enums.by_name.get(name)
        if decl is not None:
            raise DuplicateTypeName(er.ERR.TU2005, decl.name_span or decl.loc, name=name,
                                    enum=b.sum_type, other=f"the declared type '{name}'")
        prior = owners.get(name)
        if prior is None:
            owners[name] = (b.sum_type, variant)
            return
        span = _variant_span(b, variant) if variant else enums.by_name[b.sum_type].name_span
        if variant is not None and prior[1] is not None:
            raise DuplicateTagName(er.ERR.TU1008, span, first=f"{prior[0]}::{prior[1]}",
                                   second=f"{b.sum_type}::{variant}", tag=name)
        raise DuplicateTypeName(er.ERR.TU2005, span, name=name, enum=b.sum_type,
                                other=f"a name generated for enum '{prior[0]}'")

    for b in bundles:
        claim(b.union.name, b)
        claim(b.record.name, b)
        for tag in b.tags:
            claim(tag.name, b, tag.variant)


def _variant_span(b: DeclarationBundle, variant: str):
    return next((v.span for v in b.variants if v.name == variant), None)


def generate(
    src: str,
    reporter: Reporter,
    config: Optional[GeneratorConfig] = None,
    filename: str = "<input>",
    verbose: bool = False,
    dump_parse: bool = False,
    dump_ast: bool = False,
) -> Optional[GenerationResult]:
    """Run the whole generator over one source.

    Diagnostics go to `reporter`. Returns None when there were errors; no
    target is produced in that case.
    """
    config = config or GeneratorConfig()

    try:
        source = parse_source(src, dump_parse=dump_parse)
    except UnexpectedInput as e:
        handle_parse_exception(e, reporter)
        return None

    if dump_ast:
        for item in source.items:
            print(item)
        print()

    result = GenerationResult()
    try:
        types, enums = collect(source)
        for desc in select_enums(source, enums, config.types, reporter):
            result.bundles.append(
                analyze(desc, types, reporter, verbose=verbose, require_copy=config.require_copy)
            )
        check_generated_names(result.bundles, types, enums)
    except AnalysisError as e:
        e.report(reporter)
        return None

    if not result.bundles:
        return result

    header = f"Generated by tagunion {__version__} from {Path(filename).name}. Do not edit."
    try:
        for target in config.targets:
            if target == "rust":
                result.outputs[target] = RustEmitter(header).emit_many(result.bundles)
            elif target == "c":
                result.outputs[target] = CEmitter(header).emit_many(result.bundles)
            elif target == "llvm":
                result.outputs[target] = emit_ir(result.bundles, Path(filename).stem, verify=config.verify_ir)
    except RuntimeError as e:
        # internal TU0xxx errors: a generator bug, not a problem in the source
        print(f"Generation failed: {e}", file=sys.stderr)
        return None

    if verbose:
        for b in result.bundles:
            print(f"{b.sum_type}: {b.tag_count} tags, {len(b.union.fields)} union fields, "
                  f"{b.record.name} is {b.record.size} bytes", file=sys.stderr)
    return result
