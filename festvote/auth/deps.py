from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from festvote.auth.jwt import decode_token

bearer = HTTPBearer(auto_error=False)


def _operator_claims(token: str) -> Optional[dict]:
    try:
        data = decode_token(token)
    except jwt.PyJWTError:
        return None
    if data.get("typ") != "access" or data.get("role") != "operator":
        return None
    return data


def get_operator_id(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
    try:
        data = decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
    if data.get("typ") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
    if data.get("role") != "operator":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
    return data["sub"]


def is_operator_optional(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> bool:
    if not creds:
        return False
    return _operator_claims(creds.credentials) is not None
