"""Caller identity — verifies access tokens issued by the Supabase auth service."""

import jwt
from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

import config
from store import get_user_store

router = APIRouter()
bearer = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"


# ── Helpers ───────────────────────────────────────────────────────────────────

def _decode_token(token: str) -> dict | None:
    """Decode and verify a Supabase access token.

    Args:
        token: Encoded JWT string from the Authorization header.

    Returns:
        The claims dict, or None if the token is invalid, expired, issued for
        another audience, or has no subject.
    """
    try:
        claims = jwt.decode(
            token,
            config.SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=config.SUPABASE_JWT_AUDIENCE,
        )
    except jwt.PyJWTError:
        return None
    if not claims.get("sub"):
        return None
    return claims


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    """FastAPI dependency — extract and validate the Bearer token from the request.

    Args:
        credentials: HTTP Authorization header credentials injected by FastAPI.

    Returns:
        Dict with 'id' (the user's uuid), 'email', 'role' and the raw 'token'
        so the request can be forwarded to the store under the user's identity.

    Raises:
        HTTPException: 401 if no credentials are provided or the token is invalid/expired.
    """
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    claims = _decode_token(credentials.credentials)
    if not claims:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return {
        "id":    claims["sub"],
        "email": claims.get("email"),
        "role":  claims.get("role"),
        "token": credentials.credentials,
    }


def get_store_for_user(user: dict = Depends(get_current_user)):
    """FastAPI dependency — a store that acts with the caller's row-level permissions."""
    return get_user_store(user["token"])


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    """Return the identity carried by the caller's access token."""
    return {"id": user["id"], "email": user["email"], "role": user["role"]}
