from __future__ import annotations
import argparse, sys
from pathlib import Path

from tagged_union.compiler.config import CONFIG_NAME, TARGETS, ConfigError, load_config
from tagged_union.compiler.pipeline import generate
from tagged_union.internals import errors as er
from tagged_union.internals.report import Reporter
from tagged_union.internals.version import print_banner, version_line


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tagunion",
        description="Generate C-compatible tagged unions from Rust-style enums",
    )
    ap.add_argument("source", help="Path to the declaration source (.rs)")
    ap.add_argument("--type", dest="types", action="append", default=[], metavar="NAME",
                    help="Enum to generate (repeatable; default: enums deriving TaggedUnion)")
    ap.add_argument("--target", dest="targets", action="append", default=[],
                    choices=[*TARGETS, "all"],
                    help="Output to generate (repeatable; default: from config, else all)")
    ap.add_argument("-o", "--out-dir", metavar="DIR",
                    help="Output directory (default: from config, else the current directory)")
    ap.add_argument("--stdout", action="store_true", help="Print outputs instead of writing files")
    ap.add_argument("--config", metavar="FILE",
                    help=f"Config file (default: {CONFIG_NAME} next to the source, if present)")
    ap.add_argument("--dump-parse", action="store_true", help="Print raw Lark tree")
    ap.add_argument("--dump-ast", action="store_true", help="Print parsed declarations")
    ap.add_argument("--no-verify", action="store_true", help="Skip LLVM IR verification")
    ap.add_argument("--verbose", action="store_true", help="Print pass timing and layout summary")
    ap.add_argument("--version", action="version", version=version_line())
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        print_banner()

    src_path = Path(args.source)
    try:
        src = src_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"error: cannot read {src_path}: {e}", file=sys.stderr)
        return 2

    reporter = Reporter(source=src, filename=str(src_path))

    try:
        if args.config:
            config = load_config(path=Path(args.config))
        else:
            config = load_config(directory=src_path.parent)
    except ConfigError as e:
        er.emit(reporter, er.ERR.TU3001, None, reason=str(e))
        reporter.print()
        return 2

    # Command line flags override the config file
    if args.types:
        config.types = list(args.types)
    if args.targets:
        config.targets = list(TARGETS) if "all" in args.targets else list(dict.fromkeys(args.targets))
    if args.no_verify:
        config.verify_ir = False

    result = generate(
        src,
        reporter,
        config=config,
        filename=str(src_path),
        verbose=args.verbose,
        dump_parse=args.dump_parse,
        dump_ast=args.dump_ast,
    )
    reporter.print()
    if args.verbose and reporter.items:
        print(reporter.summary(), file=sys.stderr)
    if result is None:
        return 2

    if not result.outputs:
        print("nothing to generate: no enums found", file=sys.stderr)
    elif args.stdout:
        for text in result.outputs.values():
            sys.stdout.write(text)
    else:
        out_dir = Path(args.out_dir) if args.out_dir else src_path.parent / config.output_dir
        for path in result.write(out_dir, src_path.stem):
            print(f"wrote {path}")

    return reporter.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
