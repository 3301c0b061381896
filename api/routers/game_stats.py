"""Game stat endpoints — token-authenticated ingestion plus the read side."""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.cors import CORS_HEADERS
from api.routers.auth import get_store_for_user
from errors import APIError, StoreError
from stats_ingest import check_method, ingest_game_stats
from stats_utils import kda_trends, split_game_stats
from store import get_service_store

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Ingestion ─────────────────────────────────────────────────────────────────

@router.options("")
def preflight():
    """Answer a CORS preflight without touching the store."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.api_route("", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"])
def wrong_method(request: Request):
    check_method(request.method)


@router.post("", status_code=201)
async def receive_game_stats(request: Request, store=Depends(get_service_store)):
    """Ingest a batch of stats for one scrim game.

    Authenticated with a player API token (``Authorization: Bearer <token>``),
    not a user session. Body: ``{scrim_game_id, stats: [{stat_type,
    stat_value}], timestamp?}``. The whole batch is stored or nothing is.

    Returns:
        201 with ``{"message": ...}``; failures are raised as APIError and
        rendered by the app's error handler.
    """
    body = await request.body()
    result = await run_in_threadpool(
        ingest_game_stats,
        store,
        request.method,
        request.headers.get("Authorization"),
        body,
    )
    return JSONResponse(status_code=201, content=result, headers=CORS_HEADERS)


# ── Read side ─────────────────────────────────────────────────────────────────

@router.get("/kda-trends")
def player_kda_trends(summoner_name: str = Query(..., min_length=1), store=Depends(get_store_for_user)):
    """Kills/deaths/assists per game for one Riot id, oldest game first."""
    try:
        rows = store.list_summary_stats()
    except StoreError as e:
        logger.error("Error fetching game stats history: %s", e.message)
        raise APIError("Failed to fetch game stats.", details=e.message)
    return kda_trends(rows, summoner_name)


@router.get("/{scrim_game_id}")
def get_game_stats(scrim_game_id: str, store=Depends(get_store_for_user)):
    """Return the summary document and the simple stats recorded for a game."""
    try:
        rows = store.list_game_stats(scrim_game_id)
    except StoreError as e:
        logger.error("Error fetching game stats: %s", e.message)
        raise APIError("Failed to fetch game stats.", details=e.message)
    summary, stats = split_game_stats(rows)
    return {"summary": summary, "stats": stats}
