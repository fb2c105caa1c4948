"""Abstract interfaces for the flag source and code reference upload sink."""

from abc import ABC, abstractmethod
from typing import Any

from flagref.core.flag_index import DeletedFlagModel, FlagModel


class FlagSourceInterface(ABC):
    """Provides the flags of a config."""

    @abstractmethod
    async def get_flags(self, config_id: str) -> list[FlagModel]:
        """
        Return the active flags of a config.

        Args:
            config_id: Identifier of the config

        Returns:
            Active flags with their aliases
        """
        pass

    @abstractmethod
    async def get_deleted_flags(self, config_id: str) -> list[DeletedFlagModel]:
        """Return the recently deleted flags of a config."""
        pass


class UploadSinkInterface(ABC):
    """Receives code reference uploads."""

    @abstractmethod
    async def upload(self, payload: dict[str, Any]) -> None:
        """
        Upload code references.

        Raises:
            ApiClientError: If the upload fails
        """
        pass
