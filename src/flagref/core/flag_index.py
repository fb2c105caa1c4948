"""
Scan target index built from active and deleted flags.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlagModel:
    """An active feature flag or setting as returned by the flag source."""

    setting_id: Any
    key: str
    name: str = ""
    aliases: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "FlagModel":
        return cls(
            setting_id=data.get("settingId"),
            key=data.get("key") or "",
            name=data.get("name") or "",
            aliases=tuple(data.get("aliases") or ()),
        )


@dataclass(frozen=True)
class DeletedFlagModel:
    """A recently deleted feature flag or setting."""

    key: str
    setting_id: Optional[Any] = None
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "DeletedFlagModel":
        return cls(
            key=data.get("key") or "",
            setting_id=data.get("settingId"),
            name=data.get("name") or "",
        )


@dataclass(frozen=True)
class ScanTarget:
    """
    A flag key and its aliases, searched for in source text.

    Attributes:
        key: The flag key
        aliases: Alternative names the flag is referenced by
        setting_id: Identifier of the flag in the management service
        is_deleted: True if the flag was recently deleted
        discovered_aliases: Identifiers found assigned to the key in the
            scanned code; always matched as whole identifiers
    """

    key: str
    aliases: frozenset[str] = field(default_factory=frozenset)
    setting_id: Optional[Any] = None
    is_deleted: bool = False
    discovered_aliases: frozenset[str] = field(default_factory=frozenset)

    @property
    def search_texts(self) -> tuple[str, ...]:
        """Key first, then aliases in a stable order; empty strings dropped."""
        texts = [self.key] + sorted(a for a in self.aliases if a != self.key)
        return tuple(t for t in texts if t)

    @property
    def discovered_texts(self) -> tuple[str, ...]:
        """Discovered aliases not already searched for, sorted."""
        known = set(self.search_texts)
        return tuple(sorted(a for a in self.discovered_aliases if a and a not in known))

    def with_discovered_aliases(self, aliases: Iterable[str]) -> "ScanTarget":
        return replace(self, discovered_aliases=self.discovered_aliases | frozenset(aliases))


def build_scan_targets(
    active_flags: Iterable[FlagModel],
    deleted_flags: Iterable[DeletedFlagModel],
) -> list[ScanTarget]:
    """
    Build the scan targets for one scan.

    Deleted flags whose key is also an active key are dropped, and deleted
    flags are deduplicated by key. Keys are compared case-sensitively.

    Args:
        active_flags: Flags currently defined in the config
        deleted_flags: Recently deleted flags of the config

    Returns:
        Active targets followed by deleted targets, at most one per key
    """
    targets: list[ScanTarget] = []
    seen_keys: set[str] = set()

    for flag in active_flags:
        if not flag.key or flag.key in seen_keys:
            continue
        seen_keys.add(flag.key)
        targets.append(
            ScanTarget(
                key=flag.key,
                aliases=frozenset(a for a in flag.aliases if a),
                setting_id=flag.setting_id,
                is_deleted=False,
            )
        )

    skipped = 0
    for flag in deleted_flags:
        if not flag.key or flag.key in seen_keys:
            skipped += 1
            continue
        seen_keys.add(flag.key)
        targets.append(
            ScanTarget(key=flag.key, setting_id=flag.setting_id, is_deleted=True)
        )

    if skipped:
        logger.debug(f"Skipped {skipped} deleted flag(s) already covered by another key")

    return targets
