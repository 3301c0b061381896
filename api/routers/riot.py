"""Riot API connectivity check. Tries a key against the platform status endpoint."""

import re
import json as _json
import logging
import urllib.request
import urllib.error

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

import config
from api.cors import CORS_HEADERS
from errors import APIError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

RIOT_STATUS_URL = "https://{platform}.api.riotgames.com/lol/status/v4/platform-data"
PLATFORM_RE     = re.compile(r"^[a-z0-9]+$")


def _parse_maybe_json(text: str):
    try:
        return _json.loads(text)
    except ValueError:
        return text


def fetch_platform_status(platform_id: str, api_key: str):
    """GET the Riot platform-data document with the given key.

    Returns:
        Tuple (http_status, body_text). Non-2xx answers are returned, not raised.

    Raises:
        APIError: 502 if the Riot host cannot be reached.
    """
    url = RIOT_STATUS_URL.format(platform=platform_id)
    req = urllib.request.Request(url, headers={"X-Riot-Token": api_key})
    logger.info("Fetching Riot API status from %s", url)
    try:
        with urllib.request.urlopen(req, timeout=config.RIOT_API_TIMEOUT) as resp:
            return resp.status, resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        return e.code, e.read().decode("utf-8", errors="replace")
    except urllib.error.URLError as e:
        raise APIError("Could not reach Riot API.", status_code=502, details=str(e.reason))


@router.post("/test")
async def test_riot_api(request: Request):
    """Check that a Riot API key works for a platform (e.g. ``euw1``).

    Body: ``{"apiKey": ..., "platformId": ...}``. Upstream failures are
    relayed with the upstream status code.
    """
    try:
        body = _json.loads(await request.body())
    except ValueError:
        raise ValidationError(
            "Invalid request body. Ensure you are sending JSON with 'apiKey' and 'platformId' fields."
        )
    if not isinstance(body, dict):
        body = {}

    api_key = body.get("apiKey")
    platform_id = body.get("platformId")
    if not api_key:
        raise ValidationError("Riot API Key must be provided.")
    if not platform_id:
        raise ValidationError("Riot API Platform ID must be provided.")
    if not isinstance(platform_id, str) or not PLATFORM_RE.match(platform_id):
        raise ValidationError("Invalid Riot API Platform ID.")

    status, text = await run_in_threadpool(fetch_platform_status, platform_id, str(api_key))
    logger.info("Riot API response status: %s", status)

    if not 200 <= status < 300:
        return JSONResponse(
            status_code=status,
            content={"error": f"Riot API request failed: {status}", "details": _parse_maybe_json(text)},
            headers=CORS_HEADERS,
        )

    data = _parse_maybe_json(text)
    region = data.get("id") if isinstance(data, dict) else None
    return {
        "success": True,
        "message": f"Successfully connected to Riot API for region: {region}.",
        "data":    data,
    }
