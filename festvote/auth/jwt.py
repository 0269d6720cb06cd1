import time
import uuid
import jwt
from typing import Any, Dict, Optional, Tuple

from festvote.core.config import settings


def mint_operator_access(user_id: str) -> str:
    now = int(time.time())
    return jwt.encode(
        {"sub": user_id, "iat": now, "exp": now + settings.OPERATOR_TOKEN_TTL_S, "typ": "access", "role": "operator"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )


def mint_ballot(show_slug: str, jti: Optional[str] = None) -> Tuple[str, str]:
    """Short-lived token handed to the voting widget; returns (token, token id).

    Passing `jti` renews an existing token id with a fresh expiry.
    """
    now = int(time.time())
    jti = jti or uuid.uuid4().hex
    tok = jwt.encode(
        {"sub": show_slug, "jti": jti, "iat": now, "exp": now + settings.BALLOT_TOKEN_TTL_S, "typ": "ballot"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )
    return tok, jti


def decode_token(tok: str, verify_exp: bool = True) -> Dict[str, Any]:
    return jwt.decode(
        tok,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALG],
        options={"verify_exp": verify_exp},
    )
