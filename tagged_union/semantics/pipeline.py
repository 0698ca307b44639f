# semantics/pipeline.py
"""Analysis pipeline with timing and named passes.

Runs the passes that turn one enum description into a DeclarationBundle:

- validate: shape checks and payload resolution
- typemap: payload deduplication
- tags: tag constants
- layout: raw union and tagged record
- conversions: the as_tagged / from_tagged contract
"""
from __future__ import annotations
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from tagged_union.internals.report import Reporter

if TYPE_CHECKING:
    from tagged_union.backend.declarations import DeclarationBundle
    from tagged_union.semantics.ast import TypeDescription
    from tagged_union.semantics.passes.collect import TypeTable


@dataclass
class PassResult:
    """Result of executing a single pass."""
    name: str
    duration_ms: float
    success: bool
    error: Optional[str] = None


@dataclass
class AnalysisContext:
    """Shared state between passes. Each pass fills its own slot once."""
    types: Any = None
    require_copy: bool = True

    variants: List[Any] = field(default_factory=list)
    type_map: Any = None
    tags: List[Any] = field(default_factory=list)
    union: Any = None
    record: Any = None
    contract: Any = None


class AnalysisPipeline:
    """Manages analysis passes with timing instrumentation.

    Example usage:
        pipeline = AnalysisPipeline(reporter)
        pipeline.add_pass("validate", validate_pass_fn)
        pipeline.add_pass("typemap", typemap_pass_fn)
        results = pipeline.execute(description)
    """

    def __init__(self, reporter: Reporter, verbose: bool = False) -> None:
        self.reporter = reporter
        self.verbose = verbose
        self._passes: List[tuple[str, Callable[['TypeDescription', AnalysisContext], None]]] = []
        self._results: List[PassResult] = []
        self.context = AnalysisContext()

    def add_pass(
        self,
        name: str,
        pass_fn: Callable[['TypeDescription', AnalysisContext], None],
    ) -> 'AnalysisPipeline':
        """Register a pass; returns self for chaining."""
        self._passes.append((name, pass_fn))
        return self

    def execute(self, desc: 'TypeDescription') -> List[PassResult]:
        """Run all registered passes in order. The first failing pass aborts the run."""
        self._results = []

        for name, pass_fn in self._passes:
            start = time.perf_counter()
            error_msg = None
            success = True

            try:
                pass_fn(desc, self.context)
            except Exception as e:
                success = False
                error_msg = str(e)
                raise

            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                self._results.append(PassResult(
                    name=name,
                    duration_ms=duration_ms,
                    success=success,
                    error=error_msg,
                ))
                if self.verbose and not success:
                    self._print_timing(desc.name)

        if self.verbose:
            self._print_timing(desc.name)

        return self._results

    def get_results(self) -> List[PassResult]:
        return self._results

    def total_duration_ms(self) -> float:
        return sum(r.duration_ms for r in self._results)

    def _print_timing(self, title: str) -> None:
        """Print timing summary to stderr."""
        total = self.total_duration_ms()
        print(f"\n=== Analysis Timing: {title} ===", file=sys.stderr)
        for result in self._results:
            pct = (result.duration_ms / total * 100) if total > 0 else 0
            status = "OK" if result.success else "FAIL"
            print(f"  {result.name:30} {result.duration_ms:8.2f}ms ({pct:5.1f}%) [{status}]", file=sys.stderr)
        print(f"  {'TOTAL':30} {total:8.2f}ms", file=sys.stderr)
        print("=" * 40, file=sys.stderr)


def create_standard_pipeline(
    reporter: Reporter,
    types: Optional['TypeTable'] = None,
    require_copy: bool = True,
    verbose: bool = False,
) -> AnalysisPipeline:
    """Create a pipeline with the standard pass order."""
    from tagged_union.backend.conversion import synthesize_conversions
    from tagged_union.backend.layout import synthesize_layout
    from tagged_union.semantics.passes.tags import assign_tags
    from tagged_union.semantics.passes.typemap import build_type_map
    from tagged_union.semantics.passes.validate import ShapeValidator

    pipeline = AnalysisPipeline(reporter, verbose=verbose)
    pipeline.context.types = types
    pipeline.context.require_copy = require_copy

    def validate_pass(desc: 'TypeDescription', ctx: AnalysisContext) -> None:
        ctx.variants = ShapeValidator(ctx.types, reporter, ctx.require_copy).run(desc)

    def typemap_pass(desc: 'TypeDescription', ctx: AnalysisContext) -> None:
        ctx.type_map = build_type_map(ctx.variants)

    def tags_pass(desc: 'TypeDescription', ctx: AnalysisContext) -> None:
        ctx.tags = assign_tags(desc.name, ctx.variants)

    def layout_pass(desc: 'TypeDescription', ctx: AnalysisContext) -> None:
        ctx.union, ctx.record = synthesize_layout(desc.name, ctx.type_map)

    def conversions_pass(desc: 'TypeDescription', ctx: AnalysisContext) -> None:
        ctx.contract = synthesize_conversions(desc.name, ctx.type_map, ctx.tags, ctx.union, ctx.record)

    pipeline.add_pass("validate", validate_pass)
    pipeline.add_pass("typemap", typemap_pass)
    pipeline.add_pass("tags", tags_pass)
    pipeline.add_pass("layout", layout_pass)
    pipeline.add_pass("conversions", conversions_pass)
    return pipeline


def analyze(
    desc: 'TypeDescription',
    types: Optional['TypeTable'] = None,
    reporter: Optional[Reporter] = None,
    verbose: bool = False,
    require_copy: bool = True,
) -> 'DeclarationBundle':
    """Derive the tagged-union declarations for one enum.

    Raises:
        AnalysisError: the first shape, tag or payload failure; nothing is
            produced in that case.
    """
    from tagged_union.backend.declarations import DeclarationBundle

    pipeline = create_standard_pipeline(reporter or Reporter(), types, require_copy, verbose)
    pipeline.execute(desc)
    ctx = pipeline.context
    return DeclarationBundle(
        sum_type=desc.name,
        variants=tuple(ctx.variants),
        type_map=ctx.type_map,
        tags=tuple(ctx.tags),
        union=ctx.union,
        record=ctx.record,
        contract=ctx.contract,
    )
