from datetime import datetime, timezone

import pytest

from festvote.services.voting import ResultsPublisher, RoundController, ScoringEngine
from festvote.voting.types import VoteLogEntry, Withheld

SHOW = "summer-fest"
T0 = datetime(2026, 7, 4, 20, 0, tzinfo=timezone.utc)


def ballot(group, voter, *picks):
    return [
        VoteLogEntry(
            show_slug=SHOW,
            group_name=group,
            performer_id=pid,
            performer_name=f"Performer {pid}",
            vote_rank=rank,
            ip_hash=voter,
            token=f"tok-{voter}",
            voted_at=T0,
            origin_hash=voter,
        )
        for rank, pid in enumerate(picks, start=1)
    ]


@pytest.fixture
async def scored_show(store, clock):
    rounds = RoundController(store, clock)
    await rounds.configure(SHOW, {"Group A": [1, 2, 3], "Group B": [4, 5], "Group C": [6]})
    # A (id 1): 2 firsts, 1 second -> 8; B (id 2): 1 first, 3 seconds -> 9
    for rows in (
        ballot("Group A", "v1", 1, 2),
        ballot("Group A", "v2", 1, 2),
        ballot("Group A", "v3", 2, 1),
        ballot("Group A", "v4", 3, 2),
        ballot("Group B", "v1", 4, 5),
        ballot("Group B", "v2", 5),
    ):
        await store.append_vote_rows(rows)
    return rounds


@pytest.mark.asyncio
async def test_weighted_example_b_outranks_a(scored_show, store):
    results = await ScoringEngine(store).score_group(SHOW, "Group A")
    by_id = {r.performer_id: r for r in results}
    assert (by_id[1].first, by_id[1].second, by_id[1].weighted_score) == (2, 1, 8)
    assert (by_id[2].first, by_id[2].second, by_id[2].weighted_score) == (1, 3, 9)
    assert [r.performer_id for r in results] == [2, 1, 3]


@pytest.mark.asyncio
async def test_scoring_is_deterministic(scored_show, store):
    engine = ScoringEngine(store)
    assert await engine.score(SHOW) == await engine.score(SHOW)


@pytest.mark.asyncio
async def test_score_covers_every_group(scored_show, store):
    await store.append_vote_rows(ballot("Encore", "v9", 1))
    per_group = await ScoringEngine(store).score(SHOW)
    assert list(per_group) == ["Group A", "Group B", "Group C", "Encore"]
    assert per_group["Group C"] == []


@pytest.mark.asyncio
async def test_ties_break_on_total_then_id(store, clock):
    await RoundController(store, clock).configure(SHOW, {"Group A": [1, 2, 3]})
    # 1: one first (3, 1 vote); 2: one second + one third (3, 2 votes); 3: one first (3, 1 vote)
    await store.append_vote_rows(ballot("Group A", "v1", 1, 2))
    await store.append_vote_rows(ballot("Group A", "v2", 3, 1, 2)[::2])
    results = await ScoringEngine(store).score_group(SHOW, "Group A")
    assert [(r.performer_id, r.weighted_score, r.total_votes) for r in results] == [
        (2, 3, 2),
        (1, 3, 1),
        (3, 3, 1),
    ]


@pytest.mark.asyncio
async def test_weight_change_rescales_scores_not_counts(scored_show, store):
    engine = ScoringEngine(store)
    before = {r.performer_id: r for r in await engine.score_group(SHOW, "Group A")}
    await scored_show.update_weights(SHOW, first=10, second=1, third=0)
    after = {r.performer_id: r for r in await engine.score_group(SHOW, "Group A")}

    for pid, old in before.items():
        new = after[pid]
        assert (new.first, new.second, new.third, new.total_votes) == (
            old.first, old.second, old.third, old.total_votes,
        )
    assert after[1].weighted_score == 21
    assert after[2].weighted_score == 13
    assert before[1].weighted_score != after[1].weighted_score


@pytest.mark.asyncio
async def test_finals_normalizes_across_groups(scored_show, store):
    standings = await ScoringEngine(store).finals(SHOW)
    assert [s.final_rank for s in standings] == list(range(1, len(standings) + 1))
    by_id = {s.performer_id: s for s in standings}
    # group A: 3 scored performers, 8 rows; group B: 2 performers, 3 rows; avg 5.5
    assert by_id[2].normalized_score == round((9 / 3) * (5.5 / 8), 2)
    assert by_id[5].normalized_score == round((5 / 2) * (5.5 / 3), 2)
    assert standings[0].performer_id == 5
    assert by_id[5].raw_score == 5


@pytest.mark.asyncio
async def test_finals_without_votes(store, clock):
    await RoundController(store, clock).configure(SHOW, {"Group A": [1, 2]})
    assert await ScoringEngine(store).finals(SHOW) == []


@pytest.mark.asyncio
async def test_results_withheld_until_revealed(scored_show, store):
    publisher = ResultsPublisher(store)
    assert await publisher.get_results(SHOW) == Withheld()

    live = await publisher.get_results(SHOW, privileged=True)
    assert [r.performer_id for r in live] == [2, 1, 3, 5, 4]

    await scored_show.reveal_results(SHOW)
    assert await publisher.get_results(SHOW) == live


@pytest.mark.asyncio
async def test_results_single_group(scored_show, store):
    await scored_show.reveal_results(SHOW)
    results = await ResultsPublisher(store).get_results(SHOW, group="Group B")
    assert [r.performer_id for r in results] == [5, 4]
    assert {r.group_name for r in results} == {"Group B"}
