from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from festvote.voting.types import PerformerInfo, VersionedConfig, VoteLogEntry, VotingConfig


class VotingStore(Protocol):
    async def load_config(self, show_slug: str) -> VersionedConfig:
        """Stored config, or the default config at version 0 when none exists."""
        ...

    async def save_config(self, show_slug: str, config: VotingConfig, expected_version: int) -> int:
        """Write when the stored version still equals `expected_version`.

        Returns the new version; raises PersistenceConflict otherwise.
        """
        ...

    async def append_vote_rows(self, rows: Sequence[VoteLogEntry]) -> None:
        """Append all rows or none; raises DuplicateVoteError on the identity/rank constraint."""
        ...

    async def query_vote_log(
        self, show_slug: str, group_name: Optional[str] = None, limit: Optional[int] = None
    ) -> list[VoteLogEntry]:
        """Rows newest first."""
        ...

    async def recent_origin_votes(self, show_slug: str, origin_hash: str, since: datetime) -> list[VoteLogEntry]:
        ...

    async def shows_with_active_group(self) -> list[str]:
        ...


class PerformerDirectory(Protocol):
    async def get_many(self, performer_ids: Iterable[int]) -> dict[int, PerformerInfo]:
        ...
