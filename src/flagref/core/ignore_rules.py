"""
Ignore rule engine for flagref.

Parses a single ignore specification file (``.gitignore``, ``.ignore`` or
``.ccignore``) and answers accept/ignore questions for paths below the
directory that contains it. Supports:
- Negation patterns (!)
- Directory-only patterns (trailing /)
- Basename patterns (no separator) matching at any depth
- Anchored patterns (containing a separator)
- Double-star globs (**)
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional

import pathspec

logger = logging.getLogger(__name__)

IGNORE_FILE_NAMES: frozenset[str] = frozenset([".gitignore", ".ignore", ".ccignore"])


def _strip_trailing_spaces(line: str) -> str:
    """Drop trailing whitespace unless the last space is escaped with a backslash."""
    stripped = line.rstrip()
    if stripped.endswith("\\") and len(stripped) < len(line):
        stripped += line[len(stripped)]
    return stripped


class IgnoreFileParseError(Exception):
    """Raised when an ignore specification file cannot be read."""

    pass


class Decision(str, Enum):
    """Outcome of resolving a path against an ignore specification."""

    ACCEPT = "accept"
    IGNORE = "ignore"
    NO_OPINION = "no_opinion"


def is_ignore_file(path: Path, names: frozenset[str] | set[str] = IGNORE_FILE_NAMES) -> bool:
    """Check whether a file is recognised as an ignore specification by name."""
    return path.name in names


@dataclass(frozen=True)
class IgnoreRule:
    """
    A single pattern line from an ignore specification.

    Attributes:
        pattern: Pattern text without the leading ``!``
        is_negation: True if the line re-includes matching paths
        anchor_directory: Directory containing the ignore file
        rank: Depth of ``anchor_directory`` below the scan root
    """

    pattern: str
    is_negation: bool
    anchor_directory: Path
    rank: int
    _spec: Optional[pathspec.PathSpec] = field(default=None, compare=False, repr=False)

    @classmethod
    def parse(
        cls,
        raw_line: str,
        anchor_directory: Path,
        rank: int,
        case_sensitive: bool = True,
    ) -> "IgnoreRule":
        """
        Parse a stripped, non-comment line into an IgnoreRule.

        Lines pathspec cannot compile are kept and matched literally.
        """
        pattern = raw_line
        is_negation = False

        if pattern.startswith("!"):
            is_negation = True
            pattern = pattern[1:]

        match_text = pattern if case_sensitive else pattern.lower()
        try:
            spec = pathspec.PathSpec.from_lines(
                pathspec.patterns.GitWildMatchPattern, [match_text]
            )
        except Exception as e:
            logger.debug(f"Treating pattern '{raw_line}' as a literal: {e}")
            spec = None

        return cls(
            pattern=pattern,
            is_negation=is_negation,
            anchor_directory=anchor_directory,
            rank=rank,
            _spec=spec,
        )

    def matches(self, relative_path: str, case_sensitive: bool = True) -> bool:
        """
        Check whether the rule matches a path relative to its anchor.

        Args:
            relative_path: Forward-slash path relative to ``anchor_directory``
            case_sensitive: Whether to compare case-sensitively
        """
        if not relative_path:
            return False

        candidate = relative_path if case_sensitive else relative_path.lower()

        if self._spec is None:
            literal = self.pattern if case_sensitive else self.pattern.lower()
            literal = literal.strip("/")
            return candidate == literal or PurePosixPath(candidate).name == literal

        return self._spec.match_file(candidate)


class IgnoreRuleEngine:
    """
    Accept/ignore resolution for one ignore specification file.

    Rules are evaluated in file order and the first matching rule decides.
    Engines are built once and are read-only afterwards, so they can be
    shared between threads.
    """

    def __init__(
        self,
        spec_file: Path,
        root_path: Path,
        case_sensitive: bool | None = None,
    ):
        """
        Initialize the engine.

        Args:
            spec_file: Path to the ignore specification file
            root_path: Root of the scan, used to compute the rank
            case_sensitive: Override case sensitivity (None = auto-detect from platform)
        """
        self._spec_file = Path(spec_file)
        self._anchor_directory = self._spec_file.parent
        self._root_path = Path(root_path)

        if case_sensitive is None:
            # Windows is case-insensitive, POSIX is case-sensitive
            self._case_sensitive = sys.platform != "win32"
        else:
            self._case_sensitive = case_sensitive

        try:
            rel_dir = self._anchor_directory.relative_to(self._root_path)
            self._rank = len(rel_dir.parts)
        except ValueError:
            # Specification outside the root; fall back to absolute depth
            self._rank = len(self._anchor_directory.parts)

        self._rules: tuple[IgnoreRule, ...] = ()

    @property
    def spec_file(self) -> Path:
        return self._spec_file

    @property
    def anchor_directory(self) -> Path:
        return self._anchor_directory

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def rules(self) -> tuple[IgnoreRule, ...]:
        return self._rules

    def load(self) -> tuple[IgnoreRule, ...]:
        """
        Read and parse the ignore file.

        Returns:
            The parsed rules in file order

        Raises:
            IgnoreFileParseError: If the file cannot be read or decoded
        """
        try:
            content = self._spec_file.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise IgnoreFileParseError(f"Invalid UTF-8 encoding in {self._spec_file}: {e}") from e
        except OSError as e:
            raise IgnoreFileParseError(f"Error reading {self._spec_file}: {e}") from e

        rules: list[IgnoreRule] = []
        for line in content.splitlines():
            line = _strip_trailing_spaces(line)

            if not line or line.startswith("#"):
                continue

            rules.append(
                IgnoreRule.parse(
                    line,
                    anchor_directory=self._anchor_directory,
                    rank=self._rank,
                    case_sensitive=self._case_sensitive,
                )
            )

        self._rules = tuple(rules)
        logger.debug(f"Loaded {len(rules)} rules from {self._spec_file} (rank={self._rank})")
        return self._rules

    def handles(self, path: Path) -> bool:
        """Return True if the path lies inside the anchor directory."""
        try:
            Path(path).relative_to(self._anchor_directory)
        except ValueError:
            return False
        return Path(path) != self._anchor_directory

    def resolve(self, path: Path) -> Decision:
        """
        Decide whether a path is accepted, ignored or not covered.

        Args:
            path: Absolute path inside the anchor directory

        Returns:
            ACCEPT for a matching negation rule, IGNORE for a matching plain
            rule, NO_OPINION when no rule matches or the path is out of scope
        """
        try:
            rel_path = Path(path).relative_to(self._anchor_directory)
        except ValueError:
            return Decision.NO_OPINION

        rel_path_str = rel_path.as_posix()
        if rel_path_str == ".":
            return Decision.NO_OPINION

        for rule in self._rules:
            if rule.matches(rel_path_str, self._case_sensitive):
                return Decision.ACCEPT if rule.is_negation else Decision.IGNORE

        return Decision.NO_OPINION
