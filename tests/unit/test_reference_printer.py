"""Tests for console rendering of scan results."""

import io
from pathlib import Path

from rich.console import Console

from flagref.core.flag_index import ScanTarget
from flagref.core.models import FileMatchGroup, Line, Match, ReferenceSummary
from flagref.services.reference_printer import HIGHLIGHT_STYLE, ReferencePrinter, highlight_line


def _printer() -> tuple[ReferencePrinter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, highlight=False)
    return ReferencePrinter(console), buffer


def test_alive_summary_lists_keys():
    printer, buffer = _printer()

    printer.print_alive_summary(ReferenceSummary(reference_count=3, file_count=2, keys=["a", "b"]))

    assert buffer.getvalue().strip() == "Found 3 feature flag / setting reference(s) in 2 file(s). Keys: [a, b]"


def test_deleted_summary_without_references():
    printer, buffer = _printer()

    printer.print_deleted_summary(ReferenceSummary())

    assert "OK. Didn't find any deleted feature flag / setting references." in buffer.getvalue()


def test_deleted_summary_with_references():
    printer, buffer = _printer()

    printer.print_deleted_summary(ReferenceSummary(reference_count=1, file_count=1, keys=["gone"]))

    assert "1 deleted feature flag/setting reference(s) found in 1 file(s). Keys: [gone]" in buffer.getvalue()


def test_references_are_printed_with_aligned_line_numbers():
    printer, buffer = _printer()
    target = ScanTarget(key="my_flag")
    match = Match(
        file=Path("/repo/app.py"),
        found_target=target,
        matched_text="my_flag",
        line=Line(9, "if my_flag:"),
        pre_lines=(Line(8, "def f():"),),
        post_lines=(Line(10, "    go()"),),
    )

    printer.print_references([FileMatchGroup(file=Path("/repo/app.py"), matches=(match,))])

    lines = buffer.getvalue().splitlines()
    assert str(Path("/repo/app.py")) in lines
    assert "8:  def f():" in lines
    assert "9:  if my_flag:" in lines
    assert "10:     go()" in lines


def test_print_references_with_no_groups_prints_nothing():
    printer, buffer = _printer()

    printer.print_references([])

    assert buffer.getvalue() == ""


def test_highlight_line_marks_every_occurrence():
    target = ScanTarget(key="flag", aliases=frozenset({"FLAG_ALIAS"}))
    match = Match(file=Path("a"), found_target=target, matched_text="flag", line=Line(1, ""))

    text = highlight_line("flag + flag or FLAG_ALIAS", match)

    spans = sorted((s.start, s.end) for s in text.spans if s.style == HIGHLIGHT_STYLE)
    assert spans == [(0, 4), (7, 11), (15, 25)]
