from __future__ import annotations
import os
import sys
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from lark import Token

class C:
    """ANSI color/style escape codes."""
    RESET = "\x1b[0m"
    BOLD  = "\x1b[1m"
    DIM   = "\x1b[2m"
    RED   = "\x1b[31m"
    YELLOW = "\x1b[33m"
    CYAN  = "\x1b[36m"
    GRAY  = "\x1b[90m"

@dataclass(frozen=True)
class Span:
    line: int
    col: int
    end_line: int
    end_col: int

@dataclass
class Diagnostic:
    kind: str
    code: str
    message: str
    span: Optional[Span] = None

def span_of(t: Any) -> Optional[Span]:
    """Span of a lark Tree (with propagated positions) or Token."""
    m = getattr(t, "meta", None)
    if m is not None and not getattr(m, "empty", True):
        return Span(m.line, m.column, m.end_line, m.end_column)
    if isinstance(t, Token) and t.line is not None and t.column is not None:
        return Span(t.line, t.column, t.end_line or t.line, t.end_column or t.column)
    return None


class Reporter:
    """Collects diagnostics for one declaration source."""

    def __init__(self, source: Optional[str] = None, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.items: List[Diagnostic] = []

    def error(self, code: str, msg: str, span: Optional[Span]):
        self.items.append(Diagnostic("error", code, msg, span))

    def warn(self, code: str, msg: str, span: Optional[Span]):
        self.items.append(Diagnostic("warning", code, msg, span))

    @property
    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.items)

    @property
    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.items)

    def codes(self) -> List[str]:
        return [d.code for d in self.items]

    def summary(self) -> str:
        """One line such as `1 error, 2 warnings`, empty when clean."""
        errors = sum(1 for d in self.items if d.kind == "error")
        warnings = len(self.items) - errors
        parts = []
        if errors:
            parts.append(f"{errors} error" + ("s" if errors != 1 else ""))
        if warnings:
            parts.append(f"{warnings} warning" + ("s" if warnings != 1 else ""))
        return ", ".join(parts)

    @property
    def exit_code(self) -> int:
        """0 when clean, 1 with warnings only, 2 with errors."""
        if self.has_errors:
            return 2
        if self.has_warnings:
            return 1
        return 0

    # === Rendering ===

    def format(self, use_color: bool = True, use_unicode: bool = True) -> str:
        """Render all diagnostics, each followed by the source line it points at.

        use_color   → ANSI colour on location, severity and the underline
        use_unicode → box-drawing frame (╭ │ ╰) instead of a `|` gutter
        """
        src_lines = self.source.splitlines() if self.source else None
        out: List[str] = []
        for d in self.items:
            head = self._head(d, use_color)
            if d.span is None or src_lines is None:
                out.append(head)
                continue
            idx = d.span.line - 1
            text = src_lines[idx] if 0 <= idx < len(src_lines) else ""
            out.extend(self._excerpt(d, head, text, use_color, use_unicode))
        return "\n".join(out)

    def _head(self, d: Diagnostic, use_color: bool) -> str:
        loc = f"{self.filename}:{d.span.line}:{d.span.col}" if d.span else self.filename
        message = d.message if d.message.endswith(".") else f"{d.message}."
        if not use_color:
            return f"{loc}: {d.kind} [{d.code}]: {message}"
        tint = C.RED if d.kind == "error" else C.YELLOW
        return (f"{C.CYAN}{loc}{C.RESET}: {C.BOLD}{tint}{d.kind}{C.RESET} "
                f"[{C.DIM}{d.code}{C.RESET}]: {message}")

    @staticmethod
    def _underline(span: Span) -> Tuple[int, int]:
        """(start column, width) of the marker; multi-line spans mark one column."""
        start = max(1, span.col)
        if span.end_line == span.line and span.end_col > start:
            return start, span.end_col - start
        return start, 1

    def _excerpt(self, d: Diagnostic, head: str, text: str,
                 use_color: bool, use_unicode: bool) -> List[str]:
        start, width = self._underline(d.span)
        pad = " " * (start - 1)
        if use_unicode:
            top, gutter, bottom, mark = "  ╭─ ", "  │ ", "  ╰─", "━" * width
        else:
            top, gutter, bottom, mark = "", "  | ", "  ` ", "^" * width
        if use_color:
            tint = C.RED if d.kind == "error" else C.YELLOW
            top, gutter, bottom = (f"{C.GRAY}{p}{C.RESET}" if p else p for p in (top, gutter, bottom))
            mark = f"{tint}{mark}{C.RESET}"
        return [f"{top}{head}", f"{gutter}{text}", f"{bottom}{pad}{mark}"]

    def print(self, stream=None, use_color: Optional[bool] = None, use_unicode: Optional[bool] = None) -> None:
        """Print diagnostics to `stream` (default: sys.stderr).

        Color is auto-enabled for TTY unless NO_COLOR or TERM=dumb.
        Unicode framing is auto-enabled for TTY unless NO_UNICODE or TERM=dumb.
        """
        stream = stream or sys.stderr
        is_tty = getattr(stream, "isatty", lambda: False)()
        dumb = os.getenv("TERM") == "dumb"

        if use_color is None:
            use_color = bool(is_tty and os.getenv("NO_COLOR") is None and not dumb)

        if use_unicode is None:
            use_unicode = bool(is_tty and os.getenv("NO_UNICODE") is None and not dumb)

        text = self.format(use_color=use_color, use_unicode=use_unicode)
        if text:
            print(text, file=stream)
