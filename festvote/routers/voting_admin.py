from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from festvote.auth.deps import get_operator_id
from festvote.core.clock import Clock
from festvote.core.config import settings
from festvote.routers.voting_helpers import config_out, get_clock, get_voting_store, valid_show_slug, voting_errors
from festvote.schemas.voting import (
    AssignGroupsIn,
    FinalStandingOut,
    LayoutIn,
    VoteLogOut,
    VotingConfigOut,
    WeightsIn,
)
from festvote.services.voting import RoundController, ScoringEngine, invalidate_status
from festvote.voting.stores import VotingStore

router = APIRouter(
    prefix="/voting", tags=["voting-admin"], dependencies=[Depends(get_operator_id), Depends(valid_show_slug)]
)


@router.get("/{show_slug}/config", response_model=VotingConfigOut)
async def get_config(show_slug: str, store: VotingStore = Depends(get_voting_store)):
    with voting_errors(show_slug):
        current = await store.load_config(show_slug)
    return config_out(current)


@router.put("/{show_slug}/layout", response_model=VotingConfigOut)
async def put_layout(
    show_slug: str,
    payload: LayoutIn,
    store: VotingStore = Depends(get_voting_store),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug, invalid_detail="invalid_layout"):
        current = await RoundController(store, clock).configure(
            show_slug,
            payload.groups,
            pool=payload.pool,
            timer_duration=payload.timer_duration,
            num_groups=payload.num_groups,
            top_per_group=payload.top_per_group,
            hide_bios=payload.hide_bios,
            expected_version=payload.expected_version,
        )
    await invalidate_status(show_slug)
    return config_out(current)


@router.post("/{show_slug}/assign-groups", response_model=VotingConfigOut)
async def assign_groups(
    show_slug: str,
    payload: AssignGroupsIn,
    store: VotingStore = Depends(get_voting_store),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug, invalid_detail="invalid_layout"):
        current = await RoundController(store, clock).assign_groups(
            show_slug, payload.pool, payload.num_groups, expected_version=payload.expected_version
        )
    await invalidate_status(show_slug)
    return config_out(current)


@router.put("/{show_slug}/weights", response_model=VotingConfigOut)
async def put_weights(
    show_slug: str,
    payload: WeightsIn,
    store: VotingStore = Depends(get_voting_store),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug, invalid_detail="invalid_weights"):
        current = await RoundController(store, clock).update_weights(
            show_slug,
            first=payload.first,
            second=payload.second,
            third=payload.third,
            expected_version=payload.expected_version,
        )
    await invalidate_status(show_slug)
    return config_out(current)


@router.post("/{show_slug}/groups/{group_name}/start", response_model=VotingConfigOut)
async def start_group(
    show_slug: str,
    group_name: str,
    store: VotingStore = Depends(get_voting_store),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug):
        current = await RoundController(store, clock).start_group(show_slug, group_name)
    await invalidate_status(show_slug)
    return config_out(current)


@router.post("/{show_slug}/close", response_model=VotingConfigOut)
async def close_group(
    show_slug: str,
    store: VotingStore = Depends(get_voting_store),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug):
        current = await RoundController(store, clock).close_active_group(show_slug)
    await invalidate_status(show_slug)
    return config_out(current)


@router.post("/{show_slug}/reveal", response_model=VotingConfigOut)
async def reveal_results(
    show_slug: str,
    store: VotingStore = Depends(get_voting_store),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug):
        current = await RoundController(store, clock).reveal_results(show_slug)
    await invalidate_status(show_slug)
    return config_out(current)


@router.get("/{show_slug}/finals", response_model=List[FinalStandingOut])
async def get_finals(show_slug: str, store: VotingStore = Depends(get_voting_store)):
    with voting_errors(show_slug):
        standings = await ScoringEngine(store).finals(show_slug)
    return [FinalStandingOut(**asdict(s)) for s in standings]


@router.get("/{show_slug}/logs", response_model=List[VoteLogOut])
async def get_vote_logs(
    show_slug: str,
    group: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=5000),
    store: VotingStore = Depends(get_voting_store),
):
    with voting_errors(show_slug):
        rows = await store.query_vote_log(
            show_slug, group_name=group, limit=limit or settings.VOTE_LOG_DEFAULT_LIMIT
        )
    return [
        VoteLogOut(
            group_name=r.group_name,
            performer_id=r.performer_id,
            performer_name=r.performer_name,
            vote_rank=r.vote_rank,
            ip_hash=r.ip_hash,
            token=r.token,
            voted_at=r.voted_at,
        )
        for r in rows
    ]
