"""
Path utilities for flagref.

Provides scan directory validation and the path normalisation used when
reporting references relative to a repository root.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class PathValidationResult:
    """Result of path validation.

    Attributes:
        valid: True if the path is valid for the requested operation.
        error_message: Human-readable error message if validation failed.
    """
    valid: bool
    error_message: Optional[str] = None


def validate_scan_directory(path: str | Path) -> PathValidationResult:
    """
    Validate that a path is suitable for scanning.

    Performs the following checks:
    1. Path exists
    2. Path is a directory

    Args:
        path: Path to validate (string or Path object).

    Returns:
        PathValidationResult with valid=True if all checks pass,
        or valid=False with an appropriate error message.
    """
    try:
        p = Path(path) if isinstance(path, str) else path

        if not p.exists():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' does not exist"
            )

        if not p.is_dir():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' is not a directory"
            )

        return PathValidationResult(valid=True)

    except (OSError, ValueError) as e:
        return PathValidationResult(
            valid=False,
            error_message=f"Invalid path '{path}': {e}"
        )


def as_slash(path: str | Path) -> str:
    """Return a path string with forward-slash separators."""
    return str(path).replace("\\", "/")


def relative_slash_path(file_path: str | Path, root: str | Path) -> str:
    """
    Make ``file_path`` relative to ``root`` using forward slashes.

    The prefix comparison is case-insensitive so that drive letters and
    paths reported by git in a different case still line up. Paths outside
    ``root`` are returned normalised but otherwise unchanged.
    """
    file_str = as_slash(file_path)
    root_str = as_slash(root).rstrip("/")

    if root_str and file_str.lower().startswith(root_str.lower() + "/"):
        return file_str[len(root_str):].strip("/")
    if file_str.lower() == root_str.lower():
        return ""

    return file_str
