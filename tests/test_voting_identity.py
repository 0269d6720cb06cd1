import time

import jwt
import pytest

from festvote.auth.jwt import mint_operator_access
from festvote.core.config import settings
from festvote.voting.identity import (
    IdentityGuard,
    NetworkIdentityStrategy,
    RequestContext,
    FingerprintIdentityStrategy,
    SessionTokenIdentityStrategy,
    build_identity_guard,
)


def ctx(addr="203.0.113.7", token=None, device=None, user_agent="pytest"):
    return RequestContext(remote_addr=addr, user_agent=user_agent, ballot_token=token, device=device or {})


def test_identity_is_stable_within_show():
    guard = IdentityGuard(NetworkIdentityStrategy(), "secret")
    assert guard.identify("show-a", ctx()) == guard.identify("show-a", ctx())
    assert len(guard.identify("show-a", ctx())) == 64


def test_identity_differs_across_shows_and_origins():
    guard = IdentityGuard(NetworkIdentityStrategy(), "secret")
    assert guard.identify("show-a", ctx()) != guard.identify("show-b", ctx())
    assert guard.identify("show-a", ctx()) != guard.identify("show-a", ctx("203.0.113.8"))


def test_identity_does_not_contain_address():
    guard = IdentityGuard(NetworkIdentityStrategy(), "secret")
    assert "203.0.113.7" not in guard.identify("show-a", ctx())


def test_identity_depends_on_secret():
    a = IdentityGuard(NetworkIdentityStrategy(), "secret-1")
    b = IdentityGuard(NetworkIdentityStrategy(), "secret-2")
    assert a.identify("show-a", ctx()) != b.identify("show-a", ctx())


def test_network_strategy_collapses_shared_address():
    guard = IdentityGuard(NetworkIdentityStrategy(), "secret")
    t1, _ = guard.issue_ballot_token("show-a")
    t2, _ = guard.issue_ballot_token("show-a")
    assert guard.identify("show-a", ctx(token=t1)) == guard.identify("show-a", ctx(token=t2))


def test_session_strategy_separates_tokens_on_shared_address():
    guard = IdentityGuard(SessionTokenIdentityStrategy(), "secret")
    t1, _ = guard.issue_ballot_token("show-a")
    t2, _ = guard.issue_ballot_token("show-a")
    v1 = guard.resolve("show-a", ctx(token=t1))
    v2 = guard.resolve("show-a", ctx(token=t2))
    assert v1.identity_hash != v2.identity_hash
    assert v1.origin_hash == v2.origin_hash
    assert v1.origin_hash == IdentityGuard(NetworkIdentityStrategy(), "secret").identify("show-a", ctx())


def test_session_strategy_refuses_missing_or_invalid_token():
    guard = IdentityGuard(SessionTokenIdentityStrategy(), "secret")
    assert guard.resolve("show-a", ctx()) is None
    assert guard.resolve("show-a", ctx(token="not-a-jwt")) is None
    foreign, _ = guard.issue_ballot_token("show-b")
    assert guard.resolve("show-a", ctx(token=foreign)) is None


def test_presented_token_is_handed_back():
    guard = IdentityGuard(SessionTokenIdentityStrategy(), "secret")
    token, token_id = guard.issue_ballot_token("show-a")
    assert guard.issue_ballot_token("show-a", token) == (token, token_id)
    # a token for another show or a forged one is replaced
    assert guard.issue_ballot_token("show-b", token)[1] != token_id
    assert guard.issue_ballot_token("show-a", "not-a-jwt")[1] != token_id


def test_expired_token_renewed_with_same_id():
    guard = IdentityGuard(SessionTokenIdentityStrategy(), "secret")
    expired = jwt.encode(
        {"sub": "show-a", "jti": "abc123", "typ": "ballot", "exp": int(time.time()) - 10},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )
    renewed, token_id = guard.issue_ballot_token("show-a", expired)
    assert token_id == "abc123"
    assert renewed != expired
    assert guard.ballot_token_id("show-a", renewed) == "abc123"


def test_fingerprint_strategy_separates_devices_on_shared_address():
    guard = IdentityGuard(FingerprintIdentityStrategy(), "secret")
    phone = {"screen": "390x844", "timezone": "Europe/Berlin", "language": "de-DE", "platform": "iPhone"}
    laptop = {"screen": "1920x1080", "timezone": "Europe/Berlin", "language": "de-DE", "platform": "MacIntel"}
    a = guard.resolve("show-a", ctx(device=phone))
    b = guard.resolve("show-a", ctx(device=laptop))
    assert a.identity_hash != b.identity_hash
    assert a.origin_hash == b.origin_hash
    assert guard.resolve("show-a", ctx(device=dict(phone))).identity_hash == a.identity_hash
    # the user agent is part of the fingerprint
    assert guard.resolve("show-a", ctx(device=phone, user_agent="other")).identity_hash != a.identity_hash
    # and so is the address
    assert guard.resolve("show-a", ctx("203.0.113.9", device=phone)).identity_hash != a.identity_hash


def test_fingerprint_strategy_needs_device_traits():
    guard = IdentityGuard(FingerprintIdentityStrategy(), "secret")
    assert guard.resolve("show-a", ctx()) is None
    assert guard.resolve("show-a", ctx(device={"screen": ""})) is None


def test_ballot_token_bound_to_show():
    guard = IdentityGuard(SessionTokenIdentityStrategy(), "secret")
    token, token_id = guard.issue_ballot_token("show-a")
    assert guard.ballot_token_id("show-a", token) == token_id
    assert guard.ballot_token_id("show-b", token) is None


def test_rejects_garbage_expired_and_foreign_tokens():
    guard = IdentityGuard(SessionTokenIdentityStrategy(), "secret")
    assert guard.ballot_token_id("show-a", None) is None
    assert guard.ballot_token_id("show-a", "not-a-jwt") is None

    expired = jwt.encode(
        {"sub": "show-a", "jti": "x", "typ": "ballot", "exp": int(time.time()) - 10},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )
    assert guard.ballot_token_id("show-a", expired) is None

    # an operator access token is not a ballot token
    assert guard.ballot_token_id("show-a", mint_operator_access("show-a")) is None


def test_build_identity_guard_from_settings():
    assert build_identity_guard().strategy.name == settings.VOTING_IDENTITY_STRATEGY
    assert build_identity_guard("session").strategy.name == "session"
    assert build_identity_guard("Fingerprint").strategy.name == "fingerprint"
    with pytest.raises(ValueError):
        build_identity_guard("cookie")
