"""
Centralized services container module for flagref.

Builds the configured collaborators once per CLI invocation so that
commands and tests share one construction path.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console

from flagref.core.config import FlagrefConfig, load_config
from flagref.core.file_collector import FileCollector
from flagref.infrastructure.api import ManagementApiClient, create_api_client
from flagref.infrastructure.git_client import GitClient
from flagref.infrastructure.reference_scanner import ReferenceScanner
from flagref.services.reference_printer import ReferencePrinter
from flagref.services.scan_service import ScanService


@dataclass
class ServicesContainer:
    """
    Container holding all shared service instances.

    Attributes:
        config: Application configuration
        api_client: Management API client (flag source and upload sink)
        git_client: Git metadata collaborator
        file_collector: Collector applying the ignore file hierarchy
        scanner: Concurrent reference scanner
        printer: Console renderer for scan results
    """

    config: FlagrefConfig
    api_client: ManagementApiClient
    git_client: GitClient
    file_collector: FileCollector
    scanner: ReferenceScanner
    printer: ReferencePrinter

    def scan_service(self) -> ScanService:
        return ScanService(
            flag_source=self.api_client,
            upload_sink=self.api_client,
            git_client=self.git_client,
            file_collector=self.file_collector,
            scanner=self.scanner,
            printer=self.printer,
            default_config_id=self.config.scan.config_id,
            collect_aliases=self.config.scan.collect_aliases,
        )


def create_services(
    config_path: Optional[Path] = None,
    console: Optional[Console] = None,
    config: Optional[FlagrefConfig] = None,
) -> ServicesContainer:
    """
    Create and initialize all services.

    Args:
        config_path: Optional path to configuration file. If None, uses the
                    user configuration, environment variables and defaults.
        console: Console used for scan output.
        config: Already loaded configuration; skips loading when given.

    Returns:
        ServicesContainer with all initialized services.
    """
    config = config or load_config(config_path)

    api_client = create_api_client(
        host=config.api.host,
        username=config.api.username,
        password=config.api.password,
        timeout=config.api.timeout,
        max_retries=config.api.max_retries,
    )

    file_collector = FileCollector(
        ignore_file_names=config.scan.ignore_file_names,
        skip_directories=config.scan.skip_directories,
        follow_symlinks=config.scan.follow_symlinks,
    )

    scanner = ReferenceScanner(
        max_workers=config.scan.max_workers,
        match_mode=config.scan.match_mode,
    )

    return ServicesContainer(
        config=config,
        api_client=api_client,
        git_client=GitClient(),
        file_collector=file_collector,
        scanner=scanner,
        printer=ReferencePrinter(console),
    )
