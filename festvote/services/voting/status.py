from __future__ import annotations

from typing import Any, Dict

from festvote.core.cache import cache_delete, cache_json_get, cache_json_set
from festvote.core.clock import Clock, utcnow
from festvote.core.config import settings
from festvote.services.voting.rounds import is_expired_at, seconds_remaining
from festvote.voting.stores.base import PerformerDirectory, VotingStore
from festvote.voting.types import PerformerInfo, VotingConfig, VotingStatus


def _status_key(show_slug: str) -> str:
    return f"voting:status:{show_slug}"


async def invalidate_status(show_slug: str) -> None:
    if settings.VOTING_STATUS_CACHE_TTL_S > 0:
        await cache_delete(_status_key(show_slug))


class VotingStatusService:
    """What the audience widget polls: which group is open and who is in it.

    The config-derived part of the answer is cached in Redis for a few seconds;
    the countdown is always computed from the clock.
    """

    def __init__(self, store: VotingStore, performers: PerformerDirectory, clock: Clock = utcnow) -> None:
        self.store = store
        self.performers = performers
        self.clock = clock

    async def _snapshot(self, show_slug: str) -> Dict[str, Any]:
        cfg = (await self.store.load_config(show_slug)).config
        performers = []
        if cfg.active_group is not None:
            ids = cfg.groups.get(cfg.active_group, [])
            found = await self.performers.get_many(ids)
            for pid in ids:
                info = found.get(pid)
                if info is None:
                    continue
                performers.append({
                    "id": info.id,
                    "name": info.name,
                    "bio": None if cfg.hide_bios else info.bio,
                    "photo_url": info.photo_url,
                })
        return {"config": cfg.model_dump(mode="json"), "performers": performers}

    async def _cached_snapshot(self, show_slug: str) -> Dict[str, Any]:
        ttl = settings.VOTING_STATUS_CACHE_TTL_S
        if ttl <= 0:
            return await self._snapshot(show_slug)
        key = _status_key(show_slug)
        cached = await cache_json_get(key)
        if cached is not None:
            return cached
        snapshot = await self._snapshot(show_slug)
        await cache_json_set(key, snapshot, ttl)
        return snapshot

    async def status(self, show_slug: str) -> VotingStatus:
        snapshot = await self._cached_snapshot(show_slug)
        cfg = VotingConfig.model_validate(snapshot["config"])
        now = self.clock()
        return VotingStatus(
            show_slug=show_slug,
            active_group=cfg.active_group,
            is_open=cfg.is_active,
            is_expired=is_expired_at(cfg, now),
            time_remaining=seconds_remaining(cfg, now),
            timer_duration=cfg.timer_duration,
            hide_bios=cfg.hide_bios,
            reveal_results=cfg.reveal_results,
            performers=[PerformerInfo(**p) for p in snapshot["performers"]],
        )
