import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from festvote.core.clock import Clock, utcnow
from festvote.core.db import get_session
from festvote.voting.errors import (
    InvalidStateError,
    NoActiveGroupError,
    PersistenceConflict,
    PrematureRevealError,
    StorageUnavailable,
)
from festvote.voting.identity import IdentityGuard, RequestContext, build_identity_guard
from festvote.voting.stores import PerformerDirectory, SqlPerformerDirectory, SqlVotingStore, VotingStore
from festvote.voting.types import MAX_SHOW_SLUG, RejectReason, VersionedConfig

logger = logging.getLogger("festvote.voting")

REJECT_STATUS = {
    RejectReason.INVALID_BALLOT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectReason.NO_ACTIVE_VOTING: status.HTTP_409_CONFLICT,
    RejectReason.INVALID_PERFORMER: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectReason.DUPLICATE_SELECTION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectReason.ALREADY_VOTED: status.HTTP_409_CONFLICT,
}


BALLOT_COOKIE = "festvote_ballot"
BALLOT_HEADER = "x-ballot-token"


def valid_show_slug(show_slug: str = Path(min_length=1, max_length=MAX_SHOW_SLUG)) -> str:
    return show_slug


def get_voting_store(session: AsyncSession = Depends(get_session)) -> VotingStore:
    return SqlVotingStore(session)


def get_performer_directory(session: AsyncSession = Depends(get_session)) -> PerformerDirectory:
    return SqlPerformerDirectory(session)


def get_identity_guard() -> IdentityGuard:
    return build_identity_guard()


def get_clock() -> Clock:
    return utcnow


def presented_ballot_token(request: Request) -> str | None:
    return request.cookies.get(BALLOT_COOKIE) or request.headers.get(BALLOT_HEADER)


def request_context(
    request: Request, ballot_token: str | None = None, device: dict | None = None
) -> RequestContext:
    return RequestContext(
        remote_addr=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", ""),
        ballot_token=ballot_token or presented_ballot_token(request),
        device=device or {},
    )


@contextmanager
def voting_errors(show_slug: str, invalid_detail: str = "invalid_request") -> Iterator[None]:
    """Translate voting exceptions raised inside the block into HTTP errors."""
    try:
        yield
    except InvalidStateError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="invalid_state")
    except NoActiveGroupError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="no_active_group")
    except PrematureRevealError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="premature_reveal")
    except PersistenceConflict:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="persistence_conflict")
    except StorageUnavailable as e:
        logger.error("voting:storage unavailable show=%s error=%s", show_slug, e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="storage_unavailable") from e
    except ValueError as e:
        # includes pydantic ValidationError from VotingConfig invariants
        logger.info("voting:rejected edit show=%s reason=%s", show_slug, invalid_detail)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=invalid_detail) from e


def config_out(current: VersionedConfig) -> dict:
    return {"version": current.version, **current.config.model_dump()}
