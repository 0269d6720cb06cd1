from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from festvote.voting.stores.base import VotingStore
from festvote.voting.types import FinalStanding, VoteLogEntry, VoteResult, VotingConfig


@dataclass
class _Tally:
    performer_name: str
    first: int = 0
    second: int = 0
    third: int = 0

    @property
    def total(self) -> int:
        return self.first + self.second + self.third


def rank_results(cfg: VotingConfig, group_name: str, rows: Iterable[VoteLogEntry]) -> List[VoteResult]:
    tallies: Dict[int, _Tally] = {}
    for row in rows:
        tally = tallies.setdefault(row.performer_id, _Tally(row.performer_name))
        if not tally.performer_name and row.performer_name:
            tally.performer_name = row.performer_name
        if row.vote_rank == 1:
            tally.first += 1
        elif row.vote_rank == 2:
            tally.second += 1
        elif row.vote_rank == 3:
            tally.third += 1

    results = [
        VoteResult(
            performer_id=pid,
            performer_name=t.performer_name,
            group_name=group_name,
            first=t.first,
            second=t.second,
            third=t.third,
            total_votes=t.total,
            weighted_score=t.first * cfg.weight_first + t.second * cfg.weight_second + t.third * cfg.weight_third,
        )
        for pid, t in tallies.items()
    ]
    results.sort(key=lambda r: (-r.weighted_score, -r.total_votes, r.performer_id))
    return results


class ScoringEngine:
    """Turns vote rows into weighted rankings.

    Nothing is cached: the weights in effect at scoring time apply to every
    row, so a weight edit re-ranks past groups too while raw counts stay put.
    """

    def __init__(self, store: VotingStore) -> None:
        self.store = store

    async def score_group(self, show_slug: str, group_name: str) -> List[VoteResult]:
        cfg = (await self.store.load_config(show_slug)).config
        rows = await self.store.query_vote_log(show_slug, group_name=group_name)
        return rank_results(cfg, group_name, rows)

    async def score(self, show_slug: str) -> Dict[str, List[VoteResult]]:
        cfg = (await self.store.load_config(show_slug)).config
        rows = await self.store.query_vote_log(show_slug)
        by_group: Dict[str, List[VoteLogEntry]] = {}
        for row in rows:
            by_group.setdefault(row.group_name, []).append(row)

        # configured groups in running order, then groups only the log knows about
        names = list(cfg.groups) + sorted(name for name in by_group if name not in cfg.groups)
        return {name: rank_results(cfg, name, by_group.get(name, [])) for name in names}

    async def finals(self, show_slug: str) -> List[FinalStanding]:
        """Cross-group standings normalized for group size and turnout."""
        per_group = await self.score(show_slug)
        group_votes = {name: sum(r.total_votes for r in results) for name, results in per_group.items()}
        voted = [v for v in group_votes.values() if v > 0]
        avg_votes = sum(voted) / len(voted) if voted else 0.0

        scored = []
        for name, results in per_group.items():
            size = len(results)
            votes = group_votes[name]
            for r in results:
                if votes > 0 and size > 0:
                    normalized = round((r.weighted_score / size) * (avg_votes / votes), 2)
                else:
                    normalized = r.weighted_score
                scored.append((r, normalized))

        scored.sort(key=lambda item: (-item[1], -item[0].first, -item[0].total_votes, item[0].performer_id))
        return [
            FinalStanding(
                performer_id=r.performer_id,
                performer_name=r.performer_name,
                group_name=r.group_name,
                raw_score=r.weighted_score,
                normalized_score=normalized,
                first=r.first,
                second=r.second,
                total_votes=r.total_votes,
                final_rank=idx,
            )
            for idx, (r, normalized) in enumerate(scored, start=1)
        ]
