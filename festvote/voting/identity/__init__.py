from festvote.core.config import settings
from festvote.voting.identity.base import IdentityStrategy, RequestContext
from festvote.voting.identity.guard import IdentityGuard
from festvote.voting.identity.strategies import (
    FingerprintIdentityStrategy,
    NetworkIdentityStrategy,
    SessionTokenIdentityStrategy,
)

_STRATEGIES: dict[str, type] = {
    NetworkIdentityStrategy.name: NetworkIdentityStrategy,
    SessionTokenIdentityStrategy.name: SessionTokenIdentityStrategy,
    FingerprintIdentityStrategy.name: FingerprintIdentityStrategy,
}


def build_identity_guard(strategy: str | None = None) -> IdentityGuard:
    name = (strategy or settings.VOTING_IDENTITY_STRATEGY or "network").lower()
    if name not in _STRATEGIES:
        raise ValueError(f"Unknown identity strategy: {name}")
    return IdentityGuard(_STRATEGIES[name](), settings.VOTING_IDENTITY_SECRET)


__all__ = [
    "IdentityGuard",
    "IdentityStrategy",
    "RequestContext",
    "FingerprintIdentityStrategy",
    "NetworkIdentityStrategy",
    "SessionTokenIdentityStrategy",
    "build_identity_guard",
]
