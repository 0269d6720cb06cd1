import hashlib
import hmac
import time
from typing import Optional, Tuple

import jwt

from festvote.auth.jwt import decode_token, mint_ballot
from festvote.voting.identity.base import IdentityStrategy, RequestContext
from festvote.voting.types import VoterIdentity


class IdentityGuard:
    """Derives the per-show anonymous identity used for one-ballot-per-group."""

    def __init__(self, strategy: IdentityStrategy, secret: str) -> None:
        self.strategy = strategy
        self._secret = secret.encode()

    def _show_key(self, show_slug: str) -> bytes:
        return hmac.new(self._secret, show_slug.encode(), hashlib.sha256).digest()

    def _hash(self, show_slug: str, material: str) -> str:
        return hmac.new(self._show_key(show_slug), material.encode(), hashlib.sha256).hexdigest()

    def identify(self, show_slug: str, ctx: RequestContext) -> Optional[str]:
        voter = self.resolve(show_slug, ctx)
        return voter.identity_hash if voter else None

    def resolve(self, show_slug: str, ctx: RequestContext) -> Optional[VoterIdentity]:
        """None when the strategy cannot identify the voter from this request."""
        token_id = self.ballot_token_id(show_slug, ctx.ballot_token)
        material = self.strategy.fingerprint(ctx, token_id)
        if material is None:
            return None
        return VoterIdentity(
            identity_hash=self._hash(show_slug, material),
            origin_hash=self._hash(show_slug, ctx.remote_addr),
            ballot_token_id=token_id,
        )

    def issue_ballot_token(self, show_slug: str, presented: Optional[str] = None) -> Tuple[str, str]:
        """Hand back the caller's token for this show, or mint a new one.

        A presented token with a good signature keeps its id even after it
        expired; it is re-signed with a fresh expiry.
        """
        claims = self._ballot_claims(show_slug, presented, verify_exp=False)
        if claims is None:
            return mint_ballot(show_slug)
        if claims.get("exp", 0) <= self._now():
            return mint_ballot(show_slug, jti=claims["jti"])
        return presented, claims["jti"]

    def ballot_token_id(self, show_slug: str, token: Optional[str]) -> Optional[str]:
        claims = self._ballot_claims(show_slug, token)
        return claims["jti"] if claims else None

    def _ballot_claims(self, show_slug: str, token: Optional[str], verify_exp: bool = True) -> Optional[dict]:
        if not token:
            return None
        try:
            data = decode_token(token, verify_exp=verify_exp)
        except jwt.PyJWTError:
            return None
        if data.get("typ") != "ballot" or data.get("sub") != show_slug or not data.get("jti"):
            return None
        return data

    @staticmethod
    def _now() -> int:
        return int(time.time())
