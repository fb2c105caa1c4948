"""
Reference scanner for flagref.

Searches collected files for flag keys and aliases in a thread pool and
records each occurrence with its surrounding context lines. An optional
pre-pass discovers variables the code assigns flag keys to.
"""

import logging
import os
import re
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from flagref.core.flag_index import ScanTarget
from flagref.core.models import FileMatchGroup, Line, Match, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_SIZE = 4
MIN_CONTEXT_SIZE = 1
MAX_CONTEXT_SIZE = 10

_BINARY_PROBE_BYTES = 8192
_IDENTIFIER_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")


class ReferenceScannerError(Exception):
    """Base exception for reference scanner errors."""

    pass


class MatchMode(str, Enum):
    """Line matching policy."""

    SUBSTRING = "substring"
    WORD = "word"


class _ScanCancelled(Exception):
    """Internal signal used to abandon the file being scanned."""


def clamp_context_size(value: Optional[int]) -> int:
    """
    Clamp the requested context line count.

    Values outside ``[1, 10]`` fall back to the default of 4 rather than to
    the nearest bound.
    """
    try:
        value = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_CONTEXT_SIZE

    if value < MIN_CONTEXT_SIZE or value > MAX_CONTEXT_SIZE:
        return DEFAULT_CONTEXT_SIZE
    return value


def _find_occurrence(text: str, line: str, mode: MatchMode) -> int:
    if mode == MatchMode.SUBSTRING:
        return line.find(text)

    start = 0
    while True:
        index = line.find(text, start)
        if index < 0:
            return -1
        end = index + len(text)
        before_ok = index == 0 or line[index - 1] not in _IDENTIFIER_CHARS
        after_ok = end >= len(line) or line[end] not in _IDENTIFIER_CHARS
        if before_ok and after_ok:
            return index
        start = index + 1


def find_matched_text(target: ScanTarget, line: str, mode: MatchMode = MatchMode.SUBSTRING) -> Optional[str]:
    """
    Return the key or alias of ``target`` found earliest on ``line``.

    Ties go to the key, then to aliases in sorted order. Discovered aliases
    are only tried when neither is on the line, and only match as whole
    identifiers.
    """
    best_text = _earliest(target.search_texts, line, mode)
    if best_text is None and target.discovered_aliases:
        best_text = _earliest(target.discovered_texts, line, MatchMode.WORD)
    return best_text


def _earliest(texts: Sequence[str], line: str, mode: MatchMode) -> Optional[str]:
    best_text: Optional[str] = None
    best_index = -1
    for text in texts:
        index = _find_occurrence(text, line, mode)
        if index < 0:
            continue
        if best_text is None or index < best_index:
            best_text = text
            best_index = index
    return best_text


def alias_pattern(key: str) -> re.Pattern:
    """
    Compile the pattern recognising an identifier assigned the quoted ``key``.

    Covers assignments, typed declarations, dictionary and object members,
    for example ``const isNewUi = "new_ui"``, ``IS_NEW_UI: str = 'new_ui'``,
    ``"isNewUi": "new_ui"`` and ``isNewUi := "new_ui"``.
    """
    return re.compile(
        r"(?<![\w$])(?P<alias>[A-Za-z_$][\w$]*)['\"`]?\s*"
        r"(?::\s*[\w<>\[\]?.]+\s*)?"
        r"(?:=|:=|:|=>)\s*"
        r"(?:new\s+[\w.]+\s*\(\s*)?[@$]?"
        r"(?P<quote>['\"`])" + re.escape(key) + r"(?P=quote)"
    )


def find_aliases(pattern: re.Pattern, key: str, line: str) -> set[str]:
    """Return identifiers assigned ``key`` on ``line``."""
    if key not in line:
        return set()
    return {m.group("alias") for m in pattern.finditer(line) if m.group("alias") != key}


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class ReferenceScanner:
    """
    Concurrent scanner for flag references.

    Each file is one task in a ``ThreadPoolExecutor``; a task reads its file
    fully, scans it line by line and returns an immutable
    :class:`FileMatchGroup`. Results are collected after all tasks complete
    and sorted, so the output does not depend on scheduling.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        match_mode: MatchMode | str = MatchMode.SUBSTRING,
    ):
        """
        Initialize the scanner.

        Args:
            max_workers: Worker pool size. Defaults to the CPU count.
            match_mode: ``substring`` or ``word`` matching policy
        """
        if max_workers is None or max_workers < 1:
            max_workers = os.cpu_count() or 1
        self._max_workers = max_workers

        if not isinstance(match_mode, MatchMode):
            try:
                match_mode = MatchMode(str(match_mode))
            except ValueError as e:
                raise ReferenceScannerError(f"Invalid match mode: {match_mode}") from e
        self._match_mode = match_mode

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def match_mode(self) -> MatchMode:
        return self._match_mode

    def scan(
        self,
        files: Sequence[Path],
        targets: Sequence[ScanTarget],
        context_size: Optional[int] = DEFAULT_CONTEXT_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """
        Scan files for references to the given targets.

        Args:
            files: Files to scan
            targets: Keys and aliases to search for
            context_size: Lines of context before/after each match, clamped
            cancel_event: Set to stop the scan; finished files are kept

        Returns:
            ScanResult with one group per file that has matches
        """
        context_size = clamp_context_size(context_size)
        cancel_event = cancel_event or threading.Event()
        targets = tuple(targets)

        if not files or not targets:
            return ScanResult(groups=(), cancelled=cancel_event.is_set())

        groups: list[FileMatchGroup] = self._run_per_file(
            self._scan_file, files, cancel_event, targets, context_size
        )

        groups.sort(key=lambda g: str(g.file))
        logger.debug(
            f"Scanned {len(files)} files with {self._max_workers} workers, "
            f"{len(groups)} with references"
        )
        return ScanResult(groups=tuple(groups), cancelled=cancel_event.is_set())

    def collect_aliases(
        self,
        files: Sequence[Path],
        targets: Sequence[ScanTarget],
        cancel_event: Optional[threading.Event] = None,
    ) -> list[ScanTarget]:
        """
        Find identifiers the scanned code assigns flag keys to.

        A line such as ``const isNewUi = "new_ui"`` makes ``isNewUi`` a
        discovered alias of ``new_ui``, so later uses of the variable are
        reported as references too.

        Args:
            files: Files to search for alias assignments
            targets: Scan targets whose keys are looked for
            cancel_event: Set to stop collecting; finished files are kept

        Returns:
            The targets in the same order, with discovered aliases added
        """
        cancel_event = cancel_event or threading.Event()
        targets = list(targets)

        if not files or not targets:
            return targets

        patterns = tuple((t.key, alias_pattern(t.key)) for t in targets)
        per_file = self._run_per_file(self._collect_file_aliases, files, cancel_event, patterns)

        discovered: dict[int, set[str]] = {}
        for file_aliases in per_file:
            for index, aliases in file_aliases.items():
                discovered.setdefault(index, set()).update(aliases)

        result = []
        for index, target in enumerate(targets):
            aliases = discovered.get(index)
            if aliases:
                logger.debug(f"Discovered aliases of {target.key}: {', '.join(sorted(aliases))}")
                target = target.with_discovered_aliases(aliases)
            result.append(target)
        return result

    def _run_per_file(self, worker, files: Sequence[Path], cancel_event: threading.Event, *args) -> list:
        """Run ``worker(file, *args, cancel_event)`` for every file; None results are dropped."""
        results = []
        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="flagref-scan"
        )
        try:
            pending: set[Future] = {
                executor.submit(worker, Path(f), *args, cancel_event) for f in files
            }
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    if future.cancelled():
                        continue
                    result = future.result()
                    if result is not None:
                        results.append(result)
        except KeyboardInterrupt:
            cancel_event.set()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
        return results

    def _collect_file_aliases(
        self,
        file_path: Path,
        patterns: tuple[tuple[str, re.Pattern], ...],
        cancel_event: threading.Event,
    ) -> Optional[dict[int, set[str]]]:
        if cancel_event.is_set():
            return None

        lines = self._read_lines(file_path)
        if lines is None:
            return None

        found: dict[int, set[str]] = {}
        for text in lines:
            if cancel_event.is_set():
                return None
            for index, (key, pattern) in enumerate(patterns):
                aliases = find_aliases(pattern, key, text)
                if aliases:
                    found.setdefault(index, set()).update(aliases)
        return found or None

    def _read_lines(self, file_path: Path) -> Optional[list[str]]:
        try:
            with open(file_path, "rb") as f:
                if b"\x00" in f.read(_BINARY_PROBE_BYTES):
                    logger.debug(f"Skipping binary file: {file_path}")
                    return None
            with open(file_path, encoding="utf-8", newline=None) as f:
                return _split_lines(f.read())
        except UnicodeDecodeError as e:
            logger.debug(f"Skipping undecodable file: {file_path} - {e}")
            return None
        except OSError as e:
            logger.debug(f"Skipping unreadable file: {file_path} - {e}")
            return None

    def _scan_file(
        self,
        file_path: Path,
        targets: tuple[ScanTarget, ...],
        context_size: int,
        cancel_event: threading.Event,
    ) -> Optional[FileMatchGroup]:
        if cancel_event.is_set():
            return None

        lines = self._read_lines(file_path)
        if lines is None:
            return None

        try:
            matches = self._scan_lines(file_path, lines, targets, context_size, cancel_event)
        except _ScanCancelled:
            logger.debug(f"Discarding partial result for {file_path}")
            return None

        if not matches:
            return None

        # Stable: several targets on one line keep index order
        matches.sort(key=lambda m: m.line.number)
        return FileMatchGroup(file=file_path, matches=tuple(matches))

    def _scan_lines(
        self,
        file_path: Path,
        lines: list[str],
        targets: tuple[ScanTarget, ...],
        context_size: int,
        cancel_event: threading.Event,
    ) -> list[Match]:
        matches: list[Match] = []
        total_lines = len(lines)

        for index, text in enumerate(lines):
            if cancel_event.is_set():
                raise _ScanCancelled()

            for target in targets:
                matched_text = find_matched_text(target, text, self._match_mode)
                if matched_text is None:
                    continue

                line_number = index + 1
                pre_start = max(0, index - context_size)
                post_end = min(total_lines, index + 1 + context_size)
                matches.append(
                    Match(
                        file=file_path,
                        found_target=target,
                        matched_text=matched_text,
                        line=Line(number=line_number, text=text),
                        pre_lines=tuple(
                            Line(number=i + 1, text=lines[i]) for i in range(pre_start, index)
                        ),
                        post_lines=tuple(
                            Line(number=i + 1, text=lines[i])
                            for i in range(index + 1, post_end)
                        ),
                    )
                )

        return matches
