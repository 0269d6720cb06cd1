from datetime import datetime
from typing import Iterable, Optional, Sequence

from festvote.voting.errors import DuplicateVoteError, PersistenceConflict
from festvote.voting.types import PerformerInfo, VersionedConfig, VoteLogEntry, VotingConfig


class InMemoryVotingStore:
    """Process-local store.

    Each method runs to completion without awaiting, so every check-and-write
    is atomic with respect to other coroutines on the same loop.
    """

    def __init__(self) -> None:
        self._configs: dict[str, VersionedConfig] = {}
        self._rows: list[VoteLogEntry] = []
        self._keys: set[tuple[str, str, str, int]] = set()

    async def load_config(self, show_slug: str) -> VersionedConfig:
        return self._configs.get(show_slug) or VersionedConfig(VotingConfig(), 0)

    async def save_config(self, show_slug: str, config: VotingConfig, expected_version: int) -> int:
        current = self._configs.get(show_slug)
        current_version = current.version if current else 0
        if current_version != expected_version:
            raise PersistenceConflict(show_slug, expected_version)
        self._configs[show_slug] = VersionedConfig(config, current_version + 1)
        return current_version + 1

    async def append_vote_rows(self, rows: Sequence[VoteLogEntry]) -> None:
        keys = [(r.show_slug, r.group_name, r.ip_hash, r.vote_rank) for r in rows]
        if len(set(keys)) != len(keys) or any(k in self._keys for k in keys):
            raise DuplicateVoteError("identity already has rows for this group")
        self._keys.update(keys)
        self._rows.extend(rows)

    async def query_vote_log(
        self, show_slug: str, group_name: Optional[str] = None, limit: Optional[int] = None
    ) -> list[VoteLogEntry]:
        rows = [
            r for r in reversed(self._rows)
            if r.show_slug == show_slug and (group_name is None or r.group_name == group_name)
        ]
        return rows[:limit] if limit is not None else rows

    async def recent_origin_votes(self, show_slug: str, origin_hash: str, since: datetime) -> list[VoteLogEntry]:
        return [
            r for r in reversed(self._rows)
            if r.show_slug == show_slug and r.origin_hash == origin_hash and r.voted_at >= since
        ]

    async def shows_with_active_group(self) -> list[str]:
        return sorted(slug for slug, vc in self._configs.items() if vc.config.is_active)


class InMemoryPerformerDirectory:
    def __init__(self, performers: Iterable[PerformerInfo] = ()) -> None:
        self._performers = {p.id: p for p in performers}

    def add(self, performer: PerformerInfo) -> None:
        self._performers[performer.id] = performer

    async def get_many(self, performer_ids: Iterable[int]) -> dict[int, PerformerInfo]:
        return {pid: self._performers[pid] for pid in performer_ids if pid in self._performers}
