"""
FileCollector implementation for recursive directory collection.

Walks a directory tree, loads every ignore specification found in it and
returns the files that survive the nested ignore rules.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Iterable

from flagref.core.ignore_rules import (
    IGNORE_FILE_NAMES,
    Decision,
    IgnoreFileParseError,
    IgnoreRuleEngine,
    is_ignore_file,
)

logger = logging.getLogger(__name__)


class FileCollector:
    """
    Collects scannable files below a root directory.

    Precedence between ignore specifications mirrors nested ``.gitignore``
    files: the ignore file closest to a file is asked first, and the first
    one with an opinion decides. Files nobody has an opinion on are accepted.
    """

    DEFAULT_SKIP_DIRECTORIES: tuple[str, ...] = (".git",)

    def __init__(
        self,
        ignore_file_names: Iterable[str] | None = None,
        skip_directories: Iterable[str] | None = None,
        follow_symlinks: bool = False,
        case_sensitive: bool | None = None,
    ):
        """
        Initialize the FileCollector.

        Args:
            ignore_file_names: File names recognised as ignore specifications.
            skip_directories: Directory names never descended into.
            follow_symlinks: Whether to descend into symlinked directories.
            case_sensitive: Override case sensitivity for pattern matching.
                           If None, auto-detects based on platform (Windows=insensitive).
        """
        self._ignore_file_names = frozenset(
            ignore_file_names if ignore_file_names is not None else IGNORE_FILE_NAMES
        )
        self._skip_directories = frozenset(
            skip_directories if skip_directories is not None else self.DEFAULT_SKIP_DIRECTORIES
        )
        self._follow_symlinks = follow_symlinks

        if case_sensitive is None:
            self._case_sensitive = sys.platform != "win32"
        else:
            self._case_sensitive = case_sensitive

    def collect(self, root_path: Path) -> list[Path]:
        """
        Return the scannable files below ``root_path``, sorted by path.

        Args:
            root_path: Root directory to collect from

        Returns:
            Absolute file paths accepted by the ignore specifications
        """
        root_path = Path(root_path).resolve()

        if not root_path.is_dir():
            logger.error(f"Root path is not a directory: {root_path}")
            return []

        spec_files: list[Path] = []
        candidates: list[Path] = []
        for file_path in self._enumerate_files(root_path):
            if is_ignore_file(file_path, self._ignore_file_names):
                spec_files.append(file_path)
            else:
                candidates.append(file_path)

        engines = self._load_engines(spec_files, root_path)

        accepted = [f for f in candidates if self._is_accepted(f, engines)]
        accepted.sort()

        logger.debug(
            f"Collected {len(accepted)} of {len(candidates)} files "
            f"using {len(engines)} ignore file(s)"
        )
        return accepted

    def _enumerate_files(self, root_path: Path) -> list[Path]:
        """Recursively list files, silently skipping inaccessible entries."""

        def on_error(error: OSError) -> None:
            logger.debug(f"Skipping inaccessible entry: {error}")

        files: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(
            root_path, onerror=on_error, followlinks=self._follow_symlinks
        ):
            dirnames[:] = [d for d in dirnames if d not in self._skip_directories]

            current = Path(dirpath)
            for name in filenames:
                entry = current / name
                try:
                    if not entry.is_file():
                        continue
                except OSError as e:
                    logger.debug(f"Skipping inaccessible file: {entry} - {e}")
                    continue
                files.append(entry)

        return files

    def _load_engines(self, spec_files: list[Path], root_path: Path) -> list[IgnoreRuleEngine]:
        engines: list[IgnoreRuleEngine] = []
        for spec_file in sorted(spec_files):
            engine = IgnoreRuleEngine(spec_file, root_path, case_sensitive=self._case_sensitive)
            try:
                engine.load()
            except IgnoreFileParseError as e:
                logger.debug(f"Ignoring unreadable ignore file: {e}")
                continue
            logger.debug(f"Using ignore file {spec_file}")
            engines.append(engine)

        # Deepest first; ties keep path order so resolution is deterministic
        engines.sort(key=lambda e: e.rank, reverse=True)
        return engines

    @staticmethod
    def _is_accepted(file_path: Path, engines: list[IgnoreRuleEngine]) -> bool:
        for engine in engines:
            if not engine.handles(file_path):
                continue

            decision = engine.resolve(file_path)
            if decision is Decision.ACCEPT:
                return True
            if decision is Decision.IGNORE:
                return False

        return True
