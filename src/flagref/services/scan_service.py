"""
Scan service for flagref.

Runs one scan invocation end to end: argument policy, flag loading, file
collection, concurrent scanning, aggregation, console output and the
optional code reference upload.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from rich.text import Text

from flagref import __version__
from flagref.core.file_collector import FileCollector
from flagref.core.flag_index import build_scan_targets
from flagref.core.models import ScanReport
from flagref.core.path_utils import as_slash
from flagref.infrastructure.api import FlagSourceInterface, UploadSinkInterface
from flagref.infrastructure.git_client import GitInfo
from flagref.infrastructure.reference_scanner import ReferenceScanner, clamp_context_size
from flagref.services.reference_aggregator import (
    UploadOptions,
    aggregate,
    build_upload_request,
    summarize,
)
from flagref.services.reference_printer import ReferencePrinter

logger = logging.getLogger(__name__)


class ScanUsageError(Exception):
    """Raised when the scan arguments violate a usage rule."""

    pass


class GitInfoSource(Protocol):
    def gather_info(self, path: Path | str) -> Optional[GitInfo]: ...


@dataclass
class ScanArguments:
    """Options of the ``scan`` command."""

    directory: Path
    config_id: Optional[str] = None
    line_count: int = 4
    print_references: bool = False
    upload: bool = False
    repo: Optional[str] = None
    branch: Optional[str] = None
    commit_hash: Optional[str] = None
    file_url_template: Optional[str] = None
    commit_url_template: Optional[str] = None
    runner: Optional[str] = None


@dataclass
class ScanOutcome:
    """Result of a scan invocation."""

    report: ScanReport
    files_scanned: int
    line_count: int
    cancelled: bool = False
    upload_request: Optional[dict[str, Any]] = None


def default_uploader() -> str:
    return f"flagref {__version__}"


class ScanService:
    """Orchestrates a scan against the flags of one config."""

    def __init__(
        self,
        flag_source: FlagSourceInterface,
        upload_sink: UploadSinkInterface,
        git_client: GitInfoSource,
        file_collector: Optional[FileCollector] = None,
        scanner: Optional[ReferenceScanner] = None,
        printer: Optional[ReferencePrinter] = None,
        default_config_id: str = "",
        collect_aliases: bool = True,
    ):
        self._flag_source = flag_source
        self._upload_sink = upload_sink
        self._git_client = git_client
        self._file_collector = file_collector or FileCollector()
        self._scanner = scanner or ReferenceScanner()
        self._printer = printer or ReferencePrinter()
        self._default_config_id = default_config_id
        self._collect_aliases = collect_aliases

    async def run(
        self, args: ScanArguments, cancel_event: Optional[threading.Event] = None
    ) -> ScanOutcome:
        """
        Execute a scan.

        Raises:
            ScanUsageError: For missing --repo with --upload, a missing config
                id, or an unresolvable branch during upload
            ApiClientError: If loading flags or uploading fails
            asyncio.CancelledError: If the coroutine is cancelled mid-scan;
                ``cancel_event`` is set before re-raising
        """
        if args.upload and not args.repo:
            raise ScanUsageError("The --repo argument is required for code reference upload.")

        config_id = args.config_id or self._default_config_id
        if not config_id:
            raise ScanUsageError(
                "No config to scan against. Use the --config-id argument or set "
                "scan.config_id in the configuration."
            )

        line_count = clamp_context_size(args.line_count)
        directory = Path(args.directory).resolve()

        flags = await self._flag_source.get_flags(config_id)
        deleted_flags = await self._flag_source.get_deleted_flags(config_id)
        targets = build_scan_targets(flags, deleted_flags)
        logger.debug(f"Scanning for {len(targets)} key(s) of config {config_id}")

        # Cancelling the coroutine sets the event; scan threads stop at the
        # next file or line.
        cancel_event = cancel_event or threading.Event()
        try:
            files = await asyncio.to_thread(self._file_collector.collect, directory)
            if self._collect_aliases:
                targets = await asyncio.to_thread(
                    self._scanner.collect_aliases, files, targets, cancel_event
                )
            result = await asyncio.to_thread(
                self._scanner.scan, files, targets, line_count, cancel_event
            )
        except asyncio.CancelledError:
            cancel_event.set()
            raise

        if result.cancelled:
            logger.warning("Scan cancelled, results are partial")

        report = aggregate(result)
        outcome = ScanOutcome(
            report=report,
            files_scanned=len(files),
            line_count=line_count,
            cancelled=result.cancelled,
        )

        self._report(report, args.print_references)

        if not args.upload:
            return outcome

        outcome.upload_request = await self._upload(report, args, config_id, directory)
        return outcome

    def _report(self, report: ScanReport, print_references: bool) -> None:
        printer = self._printer

        printer.print_alive_summary(summarize(report.alive_groups))
        if print_references:
            printer.print_references(report.alive_groups)

        printer.print_deleted_summary(summarize(report.deleted_groups))
        printer.console.print()
        if print_references:
            printer.print_references(report.deleted_groups)

    async def _upload(
        self, report: ScanReport, args: ScanArguments, config_id: str, directory: Path
    ) -> dict[str, Any]:
        console = self._printer.console
        console.print("Initiating code reference upload...")

        git_info = self._git_client.gather_info(directory)

        branch = args.branch or (git_info.branch if git_info else None)
        commit_hash = args.commit_hash or (git_info.commit_hash if git_info else None)

        if not branch:
            raise ScanUsageError(
                "Could not determine the current branch name, make sure the scanned folder "
                "is inside a Git repository, or use the --branch argument."
            )

        for label, value in (("Repository", args.repo), ("Branch", branch), ("Commit", commit_hash)):
            console.print(Text.assemble(f"{label}:", (f" {value or ''}", "cyan")))

        if git_info and git_info.working_directory:
            repository_root = Path(git_info.working_directory)
        else:
            repository_root = Path(as_slash(directory))

        options = UploadOptions(
            repository=args.repo or "",
            branch=branch,
            config_id=config_id,
            uploader=args.runner or default_uploader(),
            repository_root=repository_root,
            commit_hash=commit_hash,
            file_url_template=args.file_url_template,
            commit_url_template=args.commit_url_template,
            active_branches=git_info.active_branches if git_info else None,
        )
        request = build_upload_request(report.alive_groups, options)

        await self._upload_sink.upload(request)
        console.print(Text("Code references uploaded.", style="green"))
        return request
