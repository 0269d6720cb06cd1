from __future__ import annotations

import logging
import statistics
from datetime import datetime, timedelta
from typing import List

from festvote.core.clock import Clock, utcnow
from festvote.voting.stores.base import VotingStore
from festvote.voting.types import FraudReport, VoteLogEntry

logger = logging.getLogger("festvote.voting.fraud")

RAPID_WINDOW = timedelta(seconds=30)
RAPID_MIN_BALLOTS = 3
TOKEN_WINDOW = timedelta(minutes=5)
TOKEN_MIN_DISTINCT = 5
PATTERN_WINDOW = timedelta(hours=1)
PATTERN_SAMPLE = 10
PATTERN_MIN_BALLOTS = 5
PATTERN_MAX_STDDEV_S = 2.0
PATTERN_MAX_MEAN_S = 10.0
SUSPICIOUS_AT = 50


def _ballot_times(rows: List[VoteLogEntry]) -> List[tuple[str, datetime]]:
    """One (token, voted_at) per ballot, newest first; a ballot spans up to three rows."""
    seen: dict[tuple[str, str], datetime] = {}
    for row in rows:
        key = (row.group_name, row.token)
        if key not in seen or row.voted_at < seen[key]:
            seen[key] = row.voted_at
    return sorted(((token, at) for (_, token), at in seen.items()), key=lambda x: x[1], reverse=True)


class FraudMonitor:
    """Scores the recent ballots from one network origin.

    Flags only. Nothing here rejects a ballot; suspicious activity is logged
    for operators to review in the vote log.
    """

    def __init__(self, store: VotingStore, clock: Clock = utcnow) -> None:
        self.store = store
        self.clock = clock

    async def inspect(self, show_slug: str, origin_hash: str) -> FraudReport:
        now = self.clock()
        rows = await self.store.recent_origin_votes(show_slug, origin_hash, now - PATTERN_WINDOW)
        ballots = _ballot_times(rows)

        score = 0
        indicators: List[str] = []

        if sum(1 for _, at in ballots if at > now - RAPID_WINDOW) >= RAPID_MIN_BALLOTS:
            score += 40
            indicators.append("rapid_voting")

        recent_tokens = {token for token, at in ballots if at > now - TOKEN_WINDOW}
        if len(recent_tokens) >= TOKEN_MIN_DISTINCT:
            score += 30
            indicators.append("multiple_tokens")

        sample = [at for _, at in ballots[:PATTERN_SAMPLE]]
        if len(sample) >= PATTERN_MIN_BALLOTS:
            intervals = [(a - b).total_seconds() for a, b in zip(sample, sample[1:])]
            if statistics.pstdev(intervals) < PATTERN_MAX_STDDEV_S and statistics.fmean(intervals) < PATTERN_MAX_MEAN_S:
                score += 60
                indicators.append("automated_pattern")

        report = FraudReport(is_suspicious=score >= SUSPICIOUS_AT, score=min(100, score), indicators=indicators)
        if report.is_suspicious:
            logger.warning(
                "voting:suspicious show=%s origin=%s... score=%s indicators=%s",
                show_slug, origin_hash[:16], report.score, ",".join(indicators),
            )
        return report
