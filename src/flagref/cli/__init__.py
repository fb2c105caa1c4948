"""
CLI for flagref.

Provides the command-line interface for scanning source code for feature
flag references and uploading them to the management service.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flagref import __version__
from flagref.core.config import USER_CONFIG_PATH, FlagrefConfig, load_config
from flagref.core.logging_setup import setup_logging
from flagref.core.path_utils import validate_scan_directory
from flagref.infrastructure.api import ApiClientError
from flagref.infrastructure.reference_scanner import ReferenceScannerError
from flagref.services import ScanArguments, ScanUsageError, create_services

# Initialize Rich Console
console = Console(highlight=False)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="flagref",
    help="Find feature flag and setting references in source code",
    add_completion=False,
)

flag_app = typer.Typer(help="Manage feature flags and settings", add_completion=False)
app.add_typer(flag_app, name="flag")


class _State:
    config_path: Optional[Path] = None


state = _State()


def _print_error(message: object) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(message))}", soft_wrap=True)


def _load_config() -> FlagrefConfig:
    try:
        return load_config(state.config_path)
    except (FileNotFoundError, ValueError) as e:
        _print_error(e)
        raise typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"flagref {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Configuration file (.yaml, .yml or .json)"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show the version"
    ),
):
    """flagref - feature flag code reference scanner."""
    state.config_path = config
    try:
        logging_config = load_config(config).logging
    except (FileNotFoundError, ValueError):
        # Reported by the command that reads the configuration
        logging_config = None
    setup_logging(logging_config, verbose=verbose)


@app.command()
def scan(
    directory: Path = typer.Argument(..., help="Directory to scan"),
    config_id: Optional[str] = typer.Option(
        None, "--config-id", "-c", help="ID of the Config to scan against"
    ),
    line_count: Optional[int] = typer.Option(
        None,
        "--line-count",
        "-l",
        help="Context line count before and after the reference line (min: 1, max: 10, default: 4)",
    ),
    print_references: bool = typer.Option(
        False, "--print", "-p", help="Print found references to output"
    ),
    upload: bool = typer.Option(False, "--upload", "-u", help="Upload references"),
    repo: Optional[str] = typer.Option(
        None, "--repo", "-r", help="Repository name, required for upload"
    ),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        help="Branch name, required for upload when the scanned folder is not a git repository",
    ),
    commit_hash: Optional[str] = typer.Option(
        None,
        "--commit-hash",
        "-cm",
        help="Commit hash, used when the scanned folder is not a git repository",
    ),
    file_url_template: Optional[str] = typer.Option(
        None,
        "--file-url-template",
        "-f",
        help="Template for VCS file links. Parameters: {branch}, {filePath}, {lineNumber}, "
        "{commitHash}. Example: https://github.com/my/repo/blob/{branch}/{filePath}#L{lineNumber}",
    ),
    commit_url_template: Optional[str] = typer.Option(
        None,
        "--commit-url-template",
        "-ct",
        help="Template for VCS commit links. Parameters: {commitHash}. "
        "Example: https://github.com/my/repo/commit/{commitHash}",
    ),
    runner: Optional[str] = typer.Option(
        None, "--runner", "-ru", help="Uploader name override, default: `flagref {version}`"
    ),
):
    """Scan files for feature flag or setting usages."""
    validation = validate_scan_directory(directory)
    if not validation.valid:
        _print_error(validation.error_message)
        raise typer.Exit(1)

    cfg = _load_config()
    container = create_services(console=console, config=cfg)

    args = ScanArguments(
        directory=directory,
        config_id=config_id,
        line_count=line_count if line_count is not None else cfg.scan.line_count,
        print_references=print_references,
        upload=upload,
        repo=repo,
        branch=branch,
        commit_hash=commit_hash,
        file_url_template=file_url_template,
        commit_url_template=commit_url_template,
        runner=runner,
    )

    async def run_scan():
        try:
            return await container.scan_service().run(args)
        finally:
            await container.api_client.close()

    try:
        asyncio.run(run_scan())
    except ScanUsageError as e:
        _print_error(e)
        console.print("Run [bold]flagref scan --help[/bold] for usage.")
        raise typer.Exit(1)
    except (ApiClientError, ReferenceScannerError) as e:
        _print_error(e)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Scan cancelled.[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        _print_error(e)
        raise typer.Exit(1)


@flag_app.command("ls")
def list_flags(
    config_id: Optional[str] = typer.Option(
        None, "--config-id", "-c", help="ID of the Config whose flags are listed"
    ),
    as_json: bool = typer.Option(False, "--json", help="Format the output in JSON"),
):
    """List the feature flags and settings of a Config."""
    cfg = _load_config()
    config_id = config_id or cfg.scan.config_id
    if not config_id:
        _print_error("The --config-id argument is required.")
        raise typer.Exit(1)

    container = create_services(console=console, config=cfg)

    async def load():
        try:
            return await container.api_client.get_flags(config_id)
        finally:
            await container.api_client.close()

    try:
        flags = asyncio.run(load())
    except ApiClientError as e:
        _print_error(e)
        raise typer.Exit(1)

    if as_json:
        console.print_json(
            json.dumps(
                [
                    {
                        "settingId": f.setting_id,
                        "key": f.key,
                        "name": f.name,
                        "aliases": list(f.aliases),
                    }
                    for f in flags
                ]
            )
        )
        return

    table = Table(border_style="blue", header_style="bold white")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Key", style="green")
    table.add_column("Name")
    table.add_column("Aliases", style="dim")
    for f in flags:
        table.add_row(str(f.setting_id), f.key, f.name, ", ".join(f.aliases))
    console.print(table)


@app.command()
def setup(
    api_host: Optional[str] = typer.Option(
        None, "--api-host", "-H", help="The management API host"
    ),
    username: str = typer.Option(
        ..., "--username", "-u", prompt=True, help="The management API basic auth username"
    ),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        prompt=True,
        hide_input=True,
        help="The management API basic auth password",
    ),
):
    """Store management API host and credentials in the user configuration."""
    target = state.config_path or USER_CONFIG_PATH
    try:
        cfg = FlagrefConfig.from_file(target) if Path(target).exists() else FlagrefConfig()
    except ValueError as e:
        _print_error(e)
        raise typer.Exit(1)

    if api_host:
        cfg.api.host = api_host
    cfg.api.username = username
    cfg.api.password = password

    try:
        cfg.save(target)
    except (OSError, ValueError) as e:
        _print_error(e)
        raise typer.Exit(1)

    console.print(f"[green]Configuration saved to[/green] {escape(str(target))}")


if __name__ == "__main__":
    app()
