"""
Data models for code reference scanning.
"""

from dataclasses import dataclass, field
from pathlib import Path

from flagref.core.flag_index import ScanTarget


@dataclass(frozen=True)
class Line:
    """
    A single source line.

    Attributes:
        number: 1-based line number
        text: Line content without the line terminator
    """

    number: int
    text: str

    def to_payload(self) -> dict:
        return {"lineText": self.text, "lineNumber": self.number}


@dataclass(frozen=True)
class Match:
    """
    One occurrence of a scan target in a file, with surrounding context.

    Attributes:
        file: Absolute path of the scanned file
        found_target: The target whose key or alias was found
        matched_text: The key or alias text found on the line
        line: The line containing the occurrence
        pre_lines: Lines immediately before ``line``, ascending
        post_lines: Lines immediately after ``line``, ascending
    """

    file: Path
    found_target: ScanTarget
    matched_text: str
    line: Line
    pre_lines: tuple[Line, ...] = ()
    post_lines: tuple[Line, ...] = ()


@dataclass(frozen=True)
class FileMatchGroup:
    """All matches found in one file, ordered by ascending line number."""

    file: Path
    matches: tuple[Match, ...]


@dataclass(frozen=True)
class ScanResult:
    """
    Output of a scan.

    Attributes:
        groups: One group per file with at least one match, ordered by path
        cancelled: True if the scan was stopped before all files were processed
    """

    groups: tuple[FileMatchGroup, ...] = ()
    cancelled: bool = False


@dataclass(frozen=True)
class ScanReport:
    """Matches partitioned by whether their target is still alive."""

    alive_groups: tuple[FileMatchGroup, ...] = ()
    deleted_groups: tuple[FileMatchGroup, ...] = ()


@dataclass
class ReferenceSummary:
    """Counts used for the console summary lines."""

    reference_count: int = 0
    file_count: int = 0
    keys: list[str] = field(default_factory=list)
