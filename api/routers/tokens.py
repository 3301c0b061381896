"""Player API tokens: issue and revoke the credentials used for stat ingestion.

Admins and coaches may manage tokens for other users; the store's row-level
security enforces that, so these handlers pass ``user_id`` through as given.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.routers.auth import get_current_user, get_store_for_user
from errors import APIError, ForbiddenError, StoreError

logger = logging.getLogger(__name__)

router = APIRouter()


class TokenCreate(BaseModel):
    user_id: Optional[str] = None


def _failure(e: StoreError, message: str) -> APIError:
    if e.is_permission_error:
        return ForbiddenError("Permission denied.", details=e.message)
    return APIError(message, details=e.message)


@router.get("/active")
def active_token(user_id: Optional[str] = None,
                 user: dict = Depends(get_current_user),
                 store=Depends(get_store_for_user)):
    """Return the active token for ``user_id`` (defaults to the caller), or null."""
    try:
        row = store.get_active_token(user_id or user["id"])
    except StoreError as e:
        logger.error("Error fetching API token: %s", e.message)
        raise _failure(e, "Failed to fetch API token.")
    return {"token": row}


@router.post("")
def create_token(body: TokenCreate,
                 user: dict = Depends(get_current_user),
                 store=Depends(get_store_for_user)):
    """Revoke any active token for the target user and issue a new one."""
    target = body.user_id or user["id"]
    try:
        row = store.create_token(target)
    except StoreError as e:
        logger.error("Error creating API token: %s", e.message)
        raise _failure(e, "Failed to create API token.")
    logger.info("Issued new API token for user %s", target)
    return JSONResponse(status_code=201, content={"token": row})


@router.delete("/{token_id}")
def revoke_token(token_id: str, store=Depends(get_store_for_user)):
    """Deactivate a token. Ingestion rejects it from then on ("Token is inactive.")."""
    try:
        store.revoke_token(token_id)
    except StoreError as e:
        logger.error("Error revoking API token: %s", e.message)
        raise _failure(e, "Failed to revoke API token.")
    logger.info("Revoked API token %s", token_id)
    return {"status": "revoked"}
