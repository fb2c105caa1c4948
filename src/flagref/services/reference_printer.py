"""
Console rendering of scan results.

Prints the summary lines of a scan and, on request, every reference with
its context lines and the flag key highlighted.
"""

from typing import Iterable, Optional

from rich.console import Console
from rich.text import Text

from flagref.core.models import FileMatchGroup, Line, Match, ReferenceSummary

HIGHLIGHT_STYLE = "bold white on dark_magenta"


def _highlight_terms(match: Match) -> list[str]:
    target = match.found_target
    terms = [target.key, *sorted(target.aliases), *target.discovered_texts, match.matched_text]
    unique: list[str] = []
    for term in terms:
        if term and term not in unique:
            unique.append(term)
    return unique


def highlight_line(text: str, match: Match) -> Text:
    """Return ``text`` with every occurrence of the match's key or aliases highlighted."""
    rendered = Text(text)
    for term in _highlight_terms(match):
        start = text.find(term)
        while start >= 0:
            rendered.stylize(HIGHLIGHT_STYLE, start, start + len(term))
            start = text.find(term, start + len(term))
    return rendered


class ReferencePrinter:
    """Writes scan summaries and references to a Rich console."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console(highlight=False)

    @property
    def console(self) -> Console:
        return self._console

    def print_alive_summary(self, summary: ReferenceSummary) -> None:
        self._console.print(
            Text.assemble(
                "Found ",
                (str(summary.reference_count), "cyan"),
                " feature flag / setting reference(s) in ",
                (str(summary.file_count), "cyan"),
                f" file(s). Keys: [{', '.join(summary.keys)}]",
            ),
            soft_wrap=True,
        )

    def print_deleted_summary(self, summary: ReferenceSummary) -> None:
        if summary.reference_count > 0:
            self._console.print(
                Text(
                    f"{summary.reference_count} deleted feature flag/setting reference(s) found in "
                    f"{summary.file_count} file(s). Keys: [{', '.join(summary.keys)}]",
                    style="yellow",
                ),
                soft_wrap=True,
            )
        else:
            self._console.print(
                Text("OK. Didn't find any deleted feature flag / setting references.", style="green")
            )

    def print_references(self, groups: Iterable[FileMatchGroup]) -> None:
        groups = list(groups)
        if not groups:
            return

        self._console.print()
        for group in groups:
            self._console.print(Text(str(group.file), style="yellow"), soft_wrap=True)
            for match in group.matches:
                self._print_match(match)
                self._console.print()

    def _print_match(self, match: Match) -> None:
        last_number = match.post_lines[-1].number if match.post_lines else match.line.number
        width = len(str(last_number))

        for line in match.pre_lines:
            self._print_line(line, width)

        prefix = self._line_prefix(match.line, width)
        prefix.append_text(highlight_line(match.line.text, match))
        self._console.print(prefix, soft_wrap=True)

        for line in match.post_lines:
            self._print_line(line, width)

    def _print_line(self, line: Line, width: int) -> None:
        prefix = self._line_prefix(line, width)
        prefix.append(line.text, style="bright_black")
        self._console.print(prefix, soft_wrap=True)

    @staticmethod
    def _line_prefix(line: Line, width: int) -> Text:
        prefix = Text()
        prefix.append(f"{line.number}:", style="cyan")
        prefix.append(" " * (width - len(str(line.number))) + " ")
        return prefix
