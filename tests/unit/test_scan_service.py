"""Tests for ScanService orchestration using in-memory fakes."""

import asyncio
import io
import threading
from pathlib import Path

import pytest
from rich.console import Console

from flagref import __version__
from flagref.core.flag_index import DeletedFlagModel, FlagModel
from flagref.infrastructure.api import ApiClientError
from flagref.infrastructure.fakes import FakeGitClient, InMemoryFlagApi
from flagref.infrastructure.git_client import GitInfo
from flagref.infrastructure.reference_scanner import ReferenceScanner
from flagref.services.reference_printer import ReferencePrinter
from flagref.services.scan_service import ScanArguments, ScanService, ScanUsageError, default_uploader

CONFIG_ID = "08d5a03c-feb7-af1e-a1fa-40b3329f8bed"


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "shop"
    (root / "src").mkdir(parents=True)
    (root / "src" / "checkout.py").write_text(
        "def render():\n    if flags.get('newCheckout'):\n        return new()\n    return old()\n",
        encoding="utf-8",
    )
    (root / "src" / "banner.py").write_text(
        "show = flags.get('oldBanner')\nwide = flags.get('newCheckout')\n", encoding="utf-8"
    )
    (root / "README.md").write_text("nothing here\n", encoding="utf-8")
    return root


@pytest.fixture
def flag_api():
    return InMemoryFlagApi(
        flags={CONFIG_ID: [FlagModel(setting_id=11, key="newCheckout")]},
        deleted_flags={CONFIG_ID: [DeletedFlagModel(key="oldBanner", setting_id=12)]},
    )


def _service(flag_api, git_info=None, default_config_id="", scanner=None, collect_aliases=True):
    buffer = io.StringIO()
    printer = ReferencePrinter(Console(file=buffer, width=200, color_system=None, highlight=False))
    service = ScanService(
        flag_source=flag_api,
        upload_sink=flag_api,
        git_client=FakeGitClient(git_info),
        scanner=scanner or ReferenceScanner(max_workers=2),
        printer=printer,
        default_config_id=default_config_id,
        collect_aliases=collect_aliases,
    )
    return service, buffer


class TestScan:
    def test_scan_reports_alive_and_deleted_references(self, workspace, flag_api):
        service, buffer = _service(flag_api)

        outcome = asyncio.run(service.run(ScanArguments(directory=workspace, config_id=CONFIG_ID)))

        assert outcome.files_scanned == 3
        assert [g.file.name for g in outcome.report.alive_groups] == ["banner.py", "checkout.py"]
        assert [g.file.name for g in outcome.report.deleted_groups] == ["banner.py"]
        output = buffer.getvalue()
        assert "Found 2 feature flag / setting reference(s) in 2 file(s). Keys: [newCheckout]" in output
        assert "1 deleted feature flag/setting reference(s) found in 1 file(s). Keys: [oldBanner]" in output
        assert outcome.upload_request is None
        assert flag_api.uploads == []

    def test_line_count_is_clamped(self, workspace, flag_api):
        service, _ = _service(flag_api)

        outcome = asyncio.run(
            service.run(ScanArguments(directory=workspace, config_id=CONFIG_ID, line_count=42))
        )

        assert outcome.line_count == 4

    def test_print_references(self, workspace, flag_api):
        service, buffer = _service(flag_api)

        asyncio.run(
            service.run(
                ScanArguments(directory=workspace, config_id=CONFIG_ID, line_count=1, print_references=True)
            )
        )

        output = buffer.getvalue()
        assert "2:     if flags.get('newCheckout'):" in output
        assert "1:     def render():" not in output
        assert "1: def render():" in output

    def test_default_config_id_is_used(self, workspace, flag_api):
        service, _ = _service(flag_api, default_config_id=CONFIG_ID)

        asyncio.run(service.run(ScanArguments(directory=workspace)))

        assert flag_api.requested_configs == [CONFIG_ID]

    def test_missing_config_id_is_a_usage_error(self, workspace, flag_api):
        service, _ = _service(flag_api)

        with pytest.raises(ScanUsageError):
            asyncio.run(service.run(ScanArguments(directory=workspace)))

        assert flag_api.requested_configs == []


class TestUpload:
    def _git_info(self, root: Path) -> GitInfo:
        return GitInfo(
            branch="feature/checkout",
            commit_hash="4f2c9e1",
            working_directory=str(root.resolve()),
            active_branches=["main", "feature/checkout"],
        )

    def test_upload_requires_repo_before_scanning(self, workspace, flag_api):
        service, buffer = _service(flag_api)

        with pytest.raises(ScanUsageError, match="--repo"):
            asyncio.run(service.run(ScanArguments(directory=workspace, config_id=CONFIG_ID, upload=True)))

        assert flag_api.requested_configs == []
        assert buffer.getvalue() == ""

    def test_upload_sends_alive_references_relative_to_git_root(self, workspace, flag_api):
        service, buffer = _service(flag_api, git_info=self._git_info(workspace))

        outcome = asyncio.run(
            service.run(
                ScanArguments(
                    directory=workspace / "src",
                    config_id=CONFIG_ID,
                    upload=True,
                    repo="shop",
                    commit_url_template="https://git.example/shop/commit/{commitHash}",
                )
            )
        )

        assert flag_api.uploads == [outcome.upload_request]
        request = flag_api.uploads[0]
        assert request["repository"] == "shop"
        assert request["branch"] == "feature/checkout"
        assert request["commitHash"] == "4f2c9e1"
        assert request["commitUrl"] == "https://git.example/shop/commit/4f2c9e1"
        assert request["activeBranches"] == ["main", "feature/checkout"]
        assert request["configId"] == CONFIG_ID
        assert request["uploader"] == default_uploader() == f"flagref {__version__}"
        assert [f["settingId"] for f in request["flagReferences"]] == [11]
        files = [r["file"] for r in request["flagReferences"][0]["references"]]
        assert files == ["src/banner.py", "src/checkout.py"]
        output = buffer.getvalue()
        assert "Initiating code reference upload..." in output
        assert "Branch: feature/checkout" in output
        assert "Code references uploaded." in output

    def test_arguments_override_git_metadata(self, workspace, flag_api):
        service, _ = _service(flag_api, git_info=self._git_info(workspace))

        asyncio.run(
            service.run(
                ScanArguments(
                    directory=workspace,
                    config_id=CONFIG_ID,
                    upload=True,
                    repo="shop",
                    branch="release",
                    commit_hash="deadbeef",
                    runner="ci-bot 1.0",
                )
            )
        )

        request = flag_api.uploads[0]
        assert request["branch"] == "release"
        assert request["commitHash"] == "deadbeef"
        assert request["uploader"] == "ci-bot 1.0"

    def test_upload_outside_git_uses_scanned_directory_as_root(self, workspace, flag_api):
        service, _ = _service(flag_api)

        asyncio.run(
            service.run(
                ScanArguments(
                    directory=workspace, config_id=CONFIG_ID, upload=True, repo="shop", branch="main"
                )
            )
        )

        request = flag_api.uploads[0]
        assert [r["file"] for r in request["flagReferences"][0]["references"]] == [
            "src/banner.py",
            "src/checkout.py",
        ]
        assert request["commitHash"] is None
        assert "activeBranches" not in request

    def test_upload_without_branch_fails_after_reporting(self, workspace, flag_api):
        service, buffer = _service(flag_api)

        with pytest.raises(ScanUsageError, match="--branch"):
            asyncio.run(
                service.run(
                    ScanArguments(directory=workspace, config_id=CONFIG_ID, upload=True, repo="shop")
                )
            )

        assert "Found 2 feature flag / setting reference(s)" in buffer.getvalue()
        assert flag_api.uploads == []

    def test_upload_failure_propagates_after_summary(self, workspace):
        failing_api = InMemoryFlagApi(
            flags={CONFIG_ID: [FlagModel(setting_id=11, key="newCheckout")]}, fail_upload=True
        )
        service, buffer = _service(failing_api, git_info=self._git_info(workspace))

        with pytest.raises(ApiClientError):
            asyncio.run(
                service.run(
                    ScanArguments(directory=workspace, config_id=CONFIG_ID, upload=True, repo="shop")
                )
            )

        output = buffer.getvalue()
        assert "Found 2 feature flag / setting reference(s)" in output
        assert "Code references uploaded." not in output


class _BlockingScanner(ReferenceScanner):
    """Holds the first file it scans until the scan is cancelled."""

    def __init__(self):
        super().__init__(max_workers=1)
        self.started = threading.Event()
        self.scanned = []

    def _scan_file(self, file_path, targets, context_size, cancel_event):
        if not cancel_event.is_set():
            self.scanned.append(file_path.name)
            self.started.set()
            cancel_event.wait(5)
        return super()._scan_file(file_path, targets, context_size, cancel_event)


class TestCancellation:
    def test_cancelling_the_run_stops_the_scan(self, workspace, flag_api):
        scanner = _BlockingScanner()
        service, buffer = _service(flag_api, scanner=scanner)
        cancel_event = threading.Event()

        async def cancel_mid_scan():
            task = asyncio.create_task(
                service.run(ScanArguments(directory=workspace, config_id=CONFIG_ID), cancel_event)
            )
            assert await asyncio.to_thread(scanner.started.wait, 5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(cancel_mid_scan())

        assert cancel_event.is_set()
        assert len(scanner.scanned) == 1
        assert buffer.getvalue() == ""
        assert flag_api.uploads == []


class TestDiscoveredAliases:
    @pytest.fixture
    def aliased_workspace(self, workspace):
        (workspace / "src" / "ui.js").write_text(
            'const useNewCheckout = "newCheckout";\n'
            "if (useNewCheckout) {\n"
            "  render();\n"
            "}\n",
            encoding="utf-8",
        )
        return workspace

    def test_variables_assigned_a_key_are_reported(self, aliased_workspace, flag_api):
        service, _ = _service(flag_api)

        outcome = asyncio.run(
            service.run(ScanArguments(directory=aliased_workspace, config_id=CONFIG_ID))
        )

        ui = next(g for g in outcome.report.alive_groups if g.file.name == "ui.js")
        assert [m.line.number for m in ui.matches] == [1, 2]
        assert [m.matched_text for m in ui.matches] == ["newCheckout", "useNewCheckout"]
        assert ui.matches[1].found_target.discovered_aliases == frozenset({"useNewCheckout"})

    def test_alias_collection_can_be_disabled(self, aliased_workspace, flag_api):
        service, _ = _service(flag_api, collect_aliases=False)

        outcome = asyncio.run(
            service.run(ScanArguments(directory=aliased_workspace, config_id=CONFIG_ID))
        )

        ui = next(g for g in outcome.report.alive_groups if g.file.name == "ui.js")
        assert [m.line.number for m in ui.matches] == [1]
