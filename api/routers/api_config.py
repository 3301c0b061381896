"""Third-party API configuration (Riot / GRID keys), admin and coach only.

Who may read or write is decided by the store's row-level security: requests
run with the caller's own token, and a policy rejection comes back as 403.
Stored keys are never echoed back; readers only learn whether one is set.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from api.routers.auth import get_store_for_user
from errors import APIError, ForbiddenError, MethodError, StoreError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

RIOT = "RIOT"
GRID = "GRID"


def _store_failure(e: StoreError, action: str, fallback: str) -> APIError:
    if e.is_permission_error:
        return ForbiddenError(
            f"Permission denied. You might not have the required role (admin/coach) to {action}.",
            details=e.message,
        )
    return APIError(fallback, details=e.message)


def _public_view(row: dict) -> dict:
    api_type = row.get("api_type")
    config_data = row.get("config_data") or {}
    payload = {"api_type": api_type}
    if api_type == RIOT and config_data:
        payload["platformId"] = config_data.get("platformId") or None
        payload["isApiKeySet"] = bool(config_data.get("apiKey"))
    elif api_type == GRID and config_data:
        payload["isApiKeySet"] = bool(config_data.get("apiKey"))
    else:
        payload["isApiKeySet"] = False
    return payload


async def _read_json(request: Request, message: str) -> dict:
    try:
        body = json.loads(await request.body())
    except ValueError:
        raise ValidationError(message)
    return body if isinstance(body, dict) else {}


@router.api_route("", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def get_api_configuration(request: Request, store=Depends(get_store_for_user)):
    """Report whether a key is configured for ``api_type``.

    GET reads ``api_type`` from the query string, POST from the JSON body.
    """
    if request.method == "GET":
        api_type = request.query_params.get("api_type")
    elif request.method == "POST":
        body = await _read_json(request, "Invalid JSON payload for POST request.")
        api_type = body.get("api_type")
    else:
        raise MethodError("Method not allowed. Only GET and POST are accepted.")

    if not api_type:
        raise ValidationError("Missing required parameter: api_type (in query for GET, in body for POST).")

    try:
        row = await run_in_threadpool(store.get_api_configuration, api_type)
    except StoreError as e:
        logger.error("Error fetching API configuration: %s", e.message)
        raise _store_failure(e, "view this configuration", "Failed to fetch API configuration.")

    if row is None:
        return {"message": f"No configuration found for {api_type}.", "isApiKeySet": False, "platformId": None}

    logger.info("API configuration for %s fetched successfully.", api_type)
    return _public_view(row)


@router.post("/save")
async def set_api_configuration(request: Request, store=Depends(get_store_for_user)):
    """Create or replace the configuration for one api_type.

    RIOT needs both ``apiKey`` and ``platformId``; GRID only uses ``apiKey``.
    """
    body = await _read_json(request, "Invalid request body. Ensure you are sending valid JSON.")
    api_type = body.get("api_type")
    api_key = body.get("apiKey")
    platform_id = body.get("platformId")

    if not api_type or (api_type == RIOT and (not api_key or not platform_id)):
        raise ValidationError("Missing required parameters: api_type, and apiKey/platformId for RIOT.")

    if api_type == RIOT:
        config_data = {"apiKey": api_key, "platformId": platform_id}
    elif api_type == GRID:
        config_data = {"apiKey": api_key}
    else:
        raise ValidationError("Invalid api_type.")

    try:
        row = await run_in_threadpool(store.upsert_api_configuration, api_type, config_data)
    except StoreError as e:
        logger.error("Error saving API configuration: %s", e.message)
        raise _store_failure(e, "perform this action", "Failed to save API configuration.")

    logger.info("API configuration for %s saved/updated successfully.", api_type)
    return {"success": True, "message": f"API configuration for {api_type} saved successfully.", "data": row}
