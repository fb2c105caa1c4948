"""
Fake implementations for testing.

Provides in-memory implementations of infrastructure interfaces
for use in unit and integration tests without network or git access.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from flagref.core.flag_index import DeletedFlagModel, FlagModel
from flagref.infrastructure.api import (
    ApiClientError,
    FlagSourceInterface,
    UploadSinkInterface,
)
from flagref.infrastructure.git_client import GitInfo


class InMemoryFlagApi(FlagSourceInterface, UploadSinkInterface):
    """
    In-memory flag source and upload sink.

    Flags are registered per config id; uploads are recorded in ``uploads``.
    Set ``fail_upload`` to make :meth:`upload` raise.
    """

    def __init__(
        self,
        flags: dict[str, list[FlagModel]] | None = None,
        deleted_flags: dict[str, list[DeletedFlagModel]] | None = None,
        fail_upload: bool = False,
    ):
        self._flags = flags or {}
        self._deleted_flags = deleted_flags or {}
        self.fail_upload = fail_upload
        self.uploads: list[dict[str, Any]] = []
        self.requested_configs: list[str] = []

    async def get_flags(self, config_id: str) -> list[FlagModel]:
        self.requested_configs.append(config_id)
        return list(self._flags.get(config_id, []))

    async def get_deleted_flags(self, config_id: str) -> list[DeletedFlagModel]:
        return list(self._deleted_flags.get(config_id, []))

    async def upload(self, payload: dict[str, Any]) -> None:
        if self.fail_upload:
            raise ApiClientError("Upload rejected by fake sink")
        self.uploads.append(payload)

    async def close(self) -> None:
        pass


class FakeGitClient:
    """Git collaborator returning a fixed GitInfo."""

    def __init__(self, info: Optional[GitInfo] = None):
        self._info = info
        self.requested_paths: list[Path] = []

    def gather_info(self, path: Path | str) -> Optional[GitInfo]:
        self.requested_paths.append(Path(path))
        return self._info
