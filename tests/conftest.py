from datetime import datetime, timedelta, timezone

import pytest

from festvote.core.config import settings
from festvote.main import app
from festvote.auth import deps as auth_deps
from festvote.voting.identity import IdentityGuard, NetworkIdentityStrategy, RequestContext
from festvote.voting.stores import InMemoryPerformerDirectory, InMemoryVotingStore
from festvote.voting.types import PerformerInfo


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 7, 4, 20, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def voting_settings():
    old_ttl = settings.VOTING_STATUS_CACHE_TTL_S
    settings.VOTING_STATUS_CACHE_TTL_S = 0
    yield
    settings.VOTING_STATUS_CACHE_TTL_S = old_ttl


@pytest.fixture(autouse=True)
def override_auth():
    app.dependency_overrides[auth_deps.get_operator_id] = lambda: "test-operator"
    yield
    app.dependency_overrides.pop(auth_deps.get_operator_id, None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryVotingStore()


@pytest.fixture
def performers():
    return InMemoryPerformerDirectory(
        [PerformerInfo(id=pid, name=f"Performer {pid}", bio=f"Bio {pid}") for pid in range(1, 10)]
    )


@pytest.fixture
def guard():
    return IdentityGuard(NetworkIdentityStrategy(), "test-identity-secret")


@pytest.fixture
def voter(guard):
    def _voter(addr: str, show_slug: str = "summer-fest", token: str | None = None):
        return guard.resolve(show_slug, RequestContext(remote_addr=addr, ballot_token=token))

    return _voter
