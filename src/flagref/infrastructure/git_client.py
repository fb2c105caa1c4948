"""Gather git metadata for code reference uploads via subprocess."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class GitInfo:
    """
    Git metadata of a scanned directory.

    Attributes:
        branch: Current branch name, None when HEAD is detached
        commit_hash: Hash of the checked-out commit
        working_directory: Root of the working tree, forward slashes
        active_branches: Remote branch names without the remote prefix
    """

    branch: Optional[str] = None
    commit_hash: Optional[str] = None
    working_directory: Optional[str] = None
    active_branches: list[str] = field(default_factory=list)


class GitClient:
    """Read branch, commit and remote branch information with the git CLI."""

    def __init__(self, git_executable: str = "git", timeout: float = 10.0):
        self._git = git_executable
        self._timeout = timeout

    def gather_info(self, path: Path | str) -> Optional[GitInfo]:
        """Return git metadata for ``path``, or None if it is not inside a git work tree."""
        repo_path = str(Path(path).resolve())

        working_directory = self._run(repo_path, "rev-parse", "--show-toplevel")
        if working_directory is None:
            logger.info("Not a git repository - git metadata unavailable")
            return None

        branch = self._run(repo_path, "rev-parse", "--abbrev-ref", "HEAD")
        if branch == "HEAD":
            branch = None

        commit_hash = self._run(repo_path, "rev-parse", "HEAD")

        return GitInfo(
            branch=branch or None,
            commit_hash=commit_hash or None,
            working_directory=working_directory.replace("\\", "/"),
            active_branches=self._remote_branches(repo_path),
        )

    def _remote_branches(self, repo_path: str) -> list[str]:
        output = self._run(
            repo_path, "for-each-ref", "--format=%(refname:lstrip=3)", "refs/remotes"
        )
        if not output:
            return []

        branches: list[str] = []
        for name in output.splitlines():
            name = name.strip()
            if name and name != "HEAD" and name not in branches:
                branches.append(name)
        return branches

    def _run(self, repo_path: str, *args: str) -> Optional[str]:
        try:
            result = subprocess.run(
                [self._git, "-C", repo_path, *args],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            logger.debug(f"git {' '.join(args)} failed: {e}")
            return None

        if result.returncode != 0:
            logger.debug(f"git {' '.join(args)} exited with {result.returncode}: {result.stderr.strip()}")
            return None

        return result.stdout.strip()
