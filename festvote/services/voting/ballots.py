from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from festvote.core.clock import Clock, utcnow
from festvote.services.voting.fraud import FraudMonitor
from festvote.voting.errors import DuplicateVoteError, VotingError
from festvote.voting.stores.base import PerformerDirectory, VotingStore
from festvote.voting.types import (
    Accepted,
    BallotOutcome,
    Rejected,
    RejectReason,
    VoteLogEntry,
    VoterIdentity,
)

logger = logging.getLogger("festvote.voting")

MAX_PICKS = 3


class BallotCollector:
    """Validates and records one ranked ballot per identity per group.

    Checks run in a fixed order: an open group, ballot shape, an identifiable
    voter, membership of the open group, repeated picks, then the
    already-voted check. The last one is the store's uniqueness constraint hit
    by the append itself, so two concurrent submissions from one identity
    cannot both land.
    """

    def __init__(
        self,
        store: VotingStore,
        performers: PerformerDirectory,
        clock: Clock = utcnow,
        fraud: Optional[FraudMonitor] = None,
    ) -> None:
        self.store = store
        self.performers = performers
        self.clock = clock
        self.fraud = fraud

    def _reject(self, show_slug: str, reason: RejectReason) -> Rejected:
        logger.info("voting:ballot rejected show=%s reason=%s", show_slug, reason.value)
        return Rejected(reason)

    async def submit(
        self, show_slug: str, voter: Optional[VoterIdentity], performer_ids: Sequence[int]
    ) -> BallotOutcome:
        cfg = (await self.store.load_config(show_slug)).config
        group_name = cfg.active_group
        if group_name is None:
            return self._reject(show_slug, RejectReason.NO_ACTIVE_VOTING)

        picks = list(performer_ids)
        if not 1 <= len(picks) <= MAX_PICKS or voter is None:
            return self._reject(show_slug, RejectReason.INVALID_BALLOT)

        eligible = set(cfg.groups.get(group_name, []))
        if any(pid not in eligible for pid in picks):
            return self._reject(show_slug, RejectReason.INVALID_PERFORMER)
        if len(set(picks)) != len(picks):
            return self._reject(show_slug, RejectReason.DUPLICATE_SELECTION)

        names = await self.performers.get_many(picks)
        token = voter.ballot_token_id or uuid.uuid4().hex
        voted_at = self.clock()
        rows = [
            VoteLogEntry(
                show_slug=show_slug,
                group_name=group_name,
                performer_id=pid,
                performer_name=names[pid].name if pid in names else "",
                vote_rank=rank,
                ip_hash=voter.identity_hash,
                token=token,
                voted_at=voted_at,
                origin_hash=voter.origin_hash,
            )
            for rank, pid in enumerate(picks, start=1)
        ]
        try:
            await self.store.append_vote_rows(rows)
        except DuplicateVoteError:
            return self._reject(show_slug, RejectReason.ALREADY_VOTED)

        logger.info("voting:ballot accepted show=%s group=%s picks=%s", show_slug, group_name, len(rows))
        if self.fraud is not None:
            try:
                await self.fraud.inspect(show_slug, voter.origin_hash)
            except VotingError as e:
                # the ballot is already committed
                logger.warning("voting:fraud check failed show=%s error=%s", show_slug, e)
        return Accepted(group_name=group_name, token=token, ranks=[r.vote_rank for r in rows])
