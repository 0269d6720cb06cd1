from __future__ import annotations

from typing import List, Optional, Union

from festvote.services.voting.scoring import ScoringEngine
from festvote.voting.stores.base import VotingStore
from festvote.voting.types import VoteResult, Withheld


class ResultsPublisher:
    """Gates rankings behind the show's reveal flag; operators always see them."""

    def __init__(self, store: VotingStore, scoring: Optional[ScoringEngine] = None) -> None:
        self.store = store
        self.scoring = scoring or ScoringEngine(store)

    async def is_revealed(self, show_slug: str) -> bool:
        return (await self.store.load_config(show_slug)).config.reveal_results

    async def get_results(
        self, show_slug: str, group: Optional[str] = None, privileged: bool = False
    ) -> Union[List[VoteResult], Withheld]:
        if not privileged and not await self.is_revealed(show_slug):
            return Withheld()
        if group is not None:
            return await self.scoring.score_group(show_slug, group)
        per_group = await self.scoring.score(show_slug)
        return [r for results in per_group.values() for r in results]
