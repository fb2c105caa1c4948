"""
Reference aggregation for flagref.

Partitions scan results into alive and deleted references, summarises them
for the console and shapes the code reference upload request.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from flagref.core.flag_index import ScanTarget
from flagref.core.models import FileMatchGroup, Match, ReferenceSummary, ScanReport, ScanResult
from flagref.core.path_utils import relative_slash_path

logger = logging.getLogger(__name__)


@dataclass
class UploadOptions:
    """
    Values that go into a code reference upload besides the matches.

    Attributes:
        repository: Repository name shown in the management service
        branch: Branch the scan belongs to
        config_id: Config the flags were loaded from
        uploader: Name of the uploading tool
        repository_root: Directory file paths are made relative to
        commit_hash: Commit the scan belongs to, if known
        file_url_template: Template for per-reference file links
        commit_url_template: Template for the commit link
        active_branches: Branches that still exist in the repository
    """

    repository: str
    branch: str
    config_id: str
    uploader: str
    repository_root: Path
    commit_hash: Optional[str] = None
    file_url_template: Optional[str] = None
    commit_url_template: Optional[str] = None
    active_branches: Optional[list[str]] = None


def _filter_group(
    group: FileMatchGroup, predicate: Callable[[Match], bool]
) -> Optional[FileMatchGroup]:
    matches = tuple(m for m in group.matches if predicate(m))
    if not matches:
        return None
    if len(matches) == len(group.matches):
        return group
    return FileMatchGroup(file=group.file, matches=matches)


def aggregate(result: ScanResult) -> ScanReport:
    """
    Partition file groups by whether their matches refer to deleted flags.

    A file with both kinds of matches appears in both partitions, each copy
    restricted to its own matches.
    """
    alive: list[FileMatchGroup] = []
    deleted: list[FileMatchGroup] = []

    for group in result.groups:
        alive_group = _filter_group(group, lambda m: not m.found_target.is_deleted)
        if alive_group is not None:
            alive.append(alive_group)

        deleted_group = _filter_group(group, lambda m: m.found_target.is_deleted)
        if deleted_group is not None:
            deleted.append(deleted_group)

    return ScanReport(alive_groups=tuple(alive), deleted_groups=tuple(deleted))


def summarize(groups: Iterable[FileMatchGroup]) -> ReferenceSummary:
    """Count references and files, and list distinct keys in first-seen order."""
    summary = ReferenceSummary()
    seen: set[str] = set()

    for group in groups:
        summary.file_count += 1
        summary.reference_count += len(group.matches)
        for match in group.matches:
            key = match.found_target.key
            if key not in seen:
                seen.add(key)
                summary.keys.append(key)

    return summary


def render_template(template: Optional[str], values: dict[str, str]) -> Optional[str]:
    """Replace ``{name}`` placeholders; unknown placeholders are left as is."""
    if not template:
        return None

    rendered = template
    for name, value in values.items():
        rendered = rendered.replace("{" + name + "}", value)
    return rendered


def group_by_target(groups: Iterable[FileMatchGroup]) -> list[tuple[ScanTarget, list[Match]]]:
    """Group matches across files by target, in first-seen target order."""
    by_target: dict[ScanTarget, list[Match]] = {}
    for group in groups:
        for match in group.matches:
            by_target.setdefault(match.found_target, []).append(match)
    return list(by_target.items())


def build_upload_request(
    alive_groups: Iterable[FileMatchGroup], options: UploadOptions
) -> dict[str, Any]:
    """
    Shape the code reference upload request.

    URL fields are only present when a commit hash is known and the matching
    template was supplied.
    """
    commit_hash = options.commit_hash or None
    flag_references: list[dict[str, Any]] = []

    for target, matches in group_by_target(alive_groups):
        references: list[dict[str, Any]] = []
        for match in matches:
            file_path = relative_slash_path(match.file, options.repository_root)
            reference: dict[str, Any] = {"file": file_path}

            if commit_hash and options.file_url_template:
                reference["fileUrl"] = render_template(
                    options.file_url_template,
                    {
                        "branch": options.branch,
                        "filePath": file_path,
                        "lineNumber": str(match.line.number),
                        "commitHash": commit_hash,
                    },
                )

            reference["preLines"] = [line.to_payload() for line in match.pre_lines]
            reference["referenceLine"] = match.line.to_payload()
            reference["postLines"] = [line.to_payload() for line in match.post_lines]
            references.append(reference)

        flag_references.append({"settingId": target.setting_id, "references": references})

    request: dict[str, Any] = {
        "flagReferences": flag_references,
        "repository": options.repository,
        "branch": options.branch,
        "commitHash": commit_hash,
    }

    if commit_hash and options.commit_url_template:
        request["commitUrl"] = render_template(
            options.commit_url_template,
            {"commitHash": commit_hash, "branch": options.branch},
        )

    if options.active_branches is not None:
        request["activeBranches"] = list(options.active_branches)

    request["configId"] = options.config_id
    request["uploader"] = options.uploader

    logger.debug(
        f"Prepared upload with {len(flag_references)} flag(s) for {options.repository}@{options.branch}"
    )
    return request
