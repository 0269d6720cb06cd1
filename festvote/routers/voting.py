from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from festvote.auth.deps import is_operator_optional
from festvote.core.clock import Clock
from festvote.routers.voting_helpers import (
    BALLOT_COOKIE,
    REJECT_STATUS,
    get_clock,
    get_identity_guard,
    get_performer_directory,
    get_voting_store,
    presented_ballot_token,
    request_context,
    valid_show_slug,
    voting_errors,
)
from festvote.schemas.voting import BallotIn, BallotOut, ResultsOut, VoteResultOut, VotingStatusOut
from festvote.services.voting import BallotCollector, FraudMonitor, ResultsPublisher, VotingStatusService
from festvote.voting.identity import IdentityGuard
from festvote.voting.stores import PerformerDirectory, VotingStore
from festvote.voting.types import Rejected, Withheld

router = APIRouter(prefix="/voting", tags=["voting"], dependencies=[Depends(valid_show_slug)])


@router.get("/{show_slug}/status", response_model=VotingStatusOut)
async def get_voting_status(
    show_slug: str,
    request: Request,
    response: Response,
    store: VotingStore = Depends(get_voting_store),
    performers: PerformerDirectory = Depends(get_performer_directory),
    guard: IdentityGuard = Depends(get_identity_guard),
    clock: Clock = Depends(get_clock),
):
    with voting_errors(show_slug):
        st = await VotingStatusService(store, performers, clock).status(show_slug)
    # a returning widget keeps its token id, so polling never mints a new voter
    token, _ = guard.issue_ballot_token(show_slug, presented_ballot_token(request))
    response.set_cookie(BALLOT_COOKIE, token, max_age=86400, httponly=True, samesite="lax")
    return VotingStatusOut(
        show_slug=st.show_slug,
        active_group=st.active_group,
        is_open=st.is_open,
        is_expired=st.is_expired,
        time_remaining=st.time_remaining,
        timer_duration=st.timer_duration,
        hide_bios=st.hide_bios,
        reveal_results=st.reveal_results,
        performers=[
            {"id": p.id, "name": p.name, "bio": p.bio, "photo_url": p.photo_url} for p in st.performers
        ],
        ballot_token=token,
    )


@router.post("/{show_slug}/ballots", response_model=BallotOut)
async def submit_ballot(
    show_slug: str,
    payload: BallotIn,
    request: Request,
    store: VotingStore = Depends(get_voting_store),
    performers: PerformerDirectory = Depends(get_performer_directory),
    guard: IdentityGuard = Depends(get_identity_guard),
    clock: Clock = Depends(get_clock),
):
    device = payload.device.model_dump(exclude_none=True) if payload.device else None
    voter = guard.resolve(show_slug, request_context(request, payload.token, device))
    collector = BallotCollector(store, performers, clock=clock, fraud=FraudMonitor(store, clock))
    with voting_errors(show_slug):
        outcome = await collector.submit(show_slug, voter, payload.performer_ids)
    if isinstance(outcome, Rejected):
        raise HTTPException(status_code=REJECT_STATUS[outcome.reason], detail=outcome.reason.value)
    return BallotOut(accepted=True, group_name=outcome.group_name, ranks=outcome.ranks)


@router.get("/{show_slug}/results", response_model=ResultsOut)
async def get_results(
    show_slug: str,
    group: Optional[str] = None,
    store: VotingStore = Depends(get_voting_store),
    privileged: bool = Depends(is_operator_optional),
):
    publisher = ResultsPublisher(store)
    with voting_errors(show_slug):
        revealed = await publisher.is_revealed(show_slug)
        results = await publisher.get_results(show_slug, group=group, privileged=privileged)
    if isinstance(results, Withheld):
        return ResultsOut(withheld=True, revealed=False, results=[])
    return ResultsOut(
        withheld=False,
        revealed=revealed,
        results=[VoteResultOut(**r.to_dict()) for r in results],
    )
