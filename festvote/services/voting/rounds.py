from __future__ import annotations

import logging
import math
import string
from datetime import datetime
from typing import Callable, Dict, List, Optional

from festvote.core.clock import Clock, utcnow
from festvote.voting.errors import (
    InvalidStateError,
    NoActiveGroupError,
    PersistenceConflict,
    PrematureRevealError,
)
from festvote.voting.stores.base import VotingStore
from festvote.voting.types import VersionedConfig, VotingConfig

logger = logging.getLogger("festvote.voting")


def is_expired_at(cfg: VotingConfig, now: datetime) -> bool:
    expires_at = cfg.expires_at
    return expires_at is not None and now >= expires_at


def seconds_remaining(cfg: VotingConfig, now: datetime) -> Optional[int]:
    expires_at = cfg.expires_at
    if expires_at is None:
        return None
    return max(0, math.ceil((expires_at - now).total_seconds()))


class RoundController:
    """Moves a show through its voting groups.

    NotStarted -> GroupActive(g) -> GroupClosed(g) -> GroupActive(next) ...
    -> Revealed. Every transition is a compare-and-swap on the config version.
    A lost race is reloaded and re-validated once; operator edits carrying an
    explicit `expected_version` are never retried.

    The timer is advisory. Ballots keep being accepted after it runs out until
    the group is closed, either by an operator or by `close_if_expired`.
    """

    def __init__(self, store: VotingStore, clock: Clock = utcnow) -> None:
        self.store = store
        self.clock = clock

    async def current(self, show_slug: str) -> VersionedConfig:
        return await self.store.load_config(show_slug)

    async def _transition(
        self,
        show_slug: str,
        change: Callable[[VotingConfig], VotingConfig],
        *,
        action: str,
        expected_version: Optional[int] = None,
    ) -> VersionedConfig:
        retries = 0 if expected_version is not None else 1
        while True:
            current = await self.store.load_config(show_slug)
            if expected_version is not None and current.version != expected_version:
                raise PersistenceConflict(show_slug, expected_version)
            updated = change(current.config)
            try:
                version = await self.store.save_config(show_slug, updated, current.version)
            except PersistenceConflict:
                if retries <= 0:
                    logger.warning("voting:%s conflict show=%s version=%s", action, show_slug, current.version)
                    raise
                retries -= 1
                logger.info("voting:%s retry show=%s stale_version=%s", action, show_slug, current.version)
                continue
            logger.info(
                "voting:%s show=%s version=%s active_group=%s",
                action, show_slug, version, updated.active_group,
            )
            return VersionedConfig(updated, version)

    async def start_group(self, show_slug: str, group_name: str) -> VersionedConfig:
        def change(cfg: VotingConfig) -> VotingConfig:
            if cfg.active_group is not None:
                raise InvalidStateError(f"group {cfg.active_group!r} is still active")
            if group_name not in cfg.groups:
                raise InvalidStateError(f"unknown group {group_name!r}")
            return cfg.evolve(active_group=group_name, timer_start=self.clock())

        return await self._transition(show_slug, change, action="start-group")

    async def close_active_group(self, show_slug: str) -> VersionedConfig:
        def change(cfg: VotingConfig) -> VotingConfig:
            if cfg.active_group is None:
                raise NoActiveGroupError(f"no group is active for {show_slug!r}")
            return cfg.evolve(active_group=None, timer_start=None)

        return await self._transition(show_slug, change, action="close-group")

    async def reveal_results(self, show_slug: str) -> VersionedConfig:
        def change(cfg: VotingConfig) -> VotingConfig:
            if cfg.active_group is not None:
                raise PrematureRevealError(f"group {cfg.active_group!r} is still active")
            return cfg.evolve(reveal_results=True)

        return await self._transition(show_slug, change, action="reveal")

    async def is_expired(self, show_slug: str) -> bool:
        current = await self.store.load_config(show_slug)
        return is_expired_at(current.config, self.clock())

    async def time_remaining(self, show_slug: str) -> Optional[int]:
        current = await self.store.load_config(show_slug)
        return seconds_remaining(current.config, self.clock())

    async def close_if_expired(self, show_slug: str) -> bool:
        """Close the active group only if its window has run out."""
        current = await self.store.load_config(show_slug)
        group_name = current.config.active_group
        if group_name is None or not is_expired_at(current.config, self.clock()):
            return False

        def change(cfg: VotingConfig) -> VotingConfig:
            # another request may have closed or restarted in between
            if cfg.active_group != group_name or not is_expired_at(cfg, self.clock()):
                raise InvalidStateError("group is no longer expired")
            return cfg.evolve(active_group=None, timer_start=None)

        try:
            await self._transition(show_slug, change, action="auto-close")
        except InvalidStateError:
            return False
        return True

    async def update_weights(
        self,
        show_slug: str,
        *,
        first: Optional[float] = None,
        second: Optional[float] = None,
        third: Optional[float] = None,
        expected_version: Optional[int] = None,
    ) -> VersionedConfig:
        changes = {
            key: float(val)
            for key, val in (("weight_first", first), ("weight_second", second), ("weight_third", third))
            if val is not None
        }
        for key, val in changes.items():
            if val < 0:
                raise ValueError(f"{key} must be >= 0")

        def change(cfg: VotingConfig) -> VotingConfig:
            return cfg.evolve(**changes)

        return await self._transition(show_slug, change, action="weights", expected_version=expected_version)

    async def configure(
        self,
        show_slug: str,
        groups: Dict[str, List[int]],
        *,
        pool: Optional[List[int]] = None,
        timer_duration: Optional[int] = None,
        num_groups: Optional[int] = None,
        top_per_group: Optional[int] = None,
        hide_bios: Optional[bool] = None,
        expected_version: Optional[int] = None,
    ) -> VersionedConfig:
        changes: Dict[str, object] = {
            "groups": {name: list(ids) for name, ids in groups.items()},
            "pool": list(pool) if pool is not None else [pid for ids in groups.values() for pid in ids],
        }
        for key, val in (
            ("timer_duration", timer_duration),
            ("num_groups", num_groups),
            ("top_per_group", top_per_group),
            ("hide_bios", hide_bios),
        ):
            if val is not None:
                changes[key] = val

        def change(cfg: VotingConfig) -> VotingConfig:
            if cfg.active_group is not None:
                raise InvalidStateError("layout cannot change while a group is active")
            return cfg.evolve(**changes)

        return await self._transition(show_slug, change, action="configure", expected_version=expected_version)

    async def assign_groups(
        self,
        show_slug: str,
        pool: List[int],
        num_groups: int,
        *,
        expected_version: Optional[int] = None,
    ) -> VersionedConfig:
        """Deal the pool round-robin into "Group A", "Group B", ... in pool order."""
        if not 1 <= num_groups <= len(string.ascii_uppercase):
            raise ValueError("num_groups must be between 1 and 26")
        names = [f"Group {letter}" for letter in string.ascii_uppercase[:num_groups]]
        groups: Dict[str, List[int]] = {name: [] for name in names}
        for idx, performer_id in enumerate(pool):
            groups[names[idx % num_groups]].append(performer_id)
        return await self.configure(
            show_slug, groups, pool=list(pool), num_groups=num_groups, expected_version=expected_version
        )
