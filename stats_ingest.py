"""Token-authenticated game stat ingestion.

``ingest_game_stats`` is a pure function of the request pieces and a store:
it holds no state between calls, runs its store calls strictly in sequence
(token lookup, game check, insert) and either returns the success payload or
raises an ``errors.APIError`` subclass describing the HTTP failure.

Nothing is written unless the whole batch validates; the batch goes to the
store as one insert call.
"""

import json
import logging
from datetime import datetime, timezone

import pandas as pd

from errors import APIError, AuthError, MethodError, NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_METHOD = "POST"
BEARER_PREFIX  = "Bearer "

SUCCESS_MESSAGE = "Game stats received and stored successfully."

MSG_METHOD_NOT_ALLOWED = "Method not allowed. Only POST is accepted."
MSG_MISSING_TOKEN      = "Missing or invalid authorization token."
MSG_INVALID_TOKEN      = "Invalid or expired token."
MSG_INACTIVE_TOKEN     = "Token is inactive."
MSG_EXPIRED_TOKEN      = "Token has expired."
MSG_INVALID_JSON       = "Invalid JSON payload."
MSG_INVALID_GAME_ID    = "Missing or invalid scrim_game_id."
MSG_EMPTY_STATS        = "Missing or empty stats array."
MSG_INVALID_STAT       = "Each stat must have a valid stat_type and stat_value."
MSG_INVALID_TIMESTAMP  = "Invalid timestamp."
MSG_STORE_FAILED       = "Failed to store game stats."
MSG_UNEXPECTED         = "An unexpected error occurred."


def to_instant(value) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime.

    Strings without an offset are read as UTC.

    Raises:
        ValueError: if the value cannot be parsed.
    """
    ts = pd.to_datetime(value, utc=True, format="ISO8601")
    if pd.isna(ts):
        raise ValueError(f"not a timestamp: {value!r}")
    return ts.to_pydatetime()


def format_instant(dt: datetime) -> str:
    """Canonical instant form: UTC, millisecond precision, ``Z`` suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def check_method(method: str) -> None:
    if (method or "").upper() != ALLOWED_METHOD:
        raise MethodError(MSG_METHOD_NOT_ALLOWED)


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthError(MSG_MISSING_TOKEN)
    return authorization.split(" ")[1]


def authenticate_token(store, token: str, now: datetime) -> str:
    """Resolve an API token to its owning user id.

    "Not found" and "lookup failed" are reported with the same message so a
    caller cannot tell which tokens exist. Inactive is checked before expiry.
    """
    try:
        token_row = store.lookup_token(token)
    except StoreError as e:
        logger.error("Token validation error: %s", e.message)
        token_row = None

    if not token_row:
        raise AuthError(MSG_INVALID_TOKEN)

    if not token_row.get("is_active"):
        raise AuthError(MSG_INACTIVE_TOKEN)

    expires_at = token_row.get("expires_at")
    if expires_at and to_instant(expires_at) < now:
        raise AuthError(MSG_EXPIRED_TOKEN)

    return token_row["user_id"]


def parse_payload(body) -> dict:
    if isinstance(body, (bytes, bytearray, str)):
        try:
            payload = json.loads(body)
        except ValueError:
            raise ValidationError(MSG_INVALID_JSON)
    else:
        payload = body
    # A JSON array or scalar has no scrim_game_id
    return payload if isinstance(payload, dict) else {}


def validate_game_id(payload: dict) -> str:
    game_id = payload.get("scrim_game_id")
    if not game_id or not isinstance(game_id, str):
        raise ValidationError(MSG_INVALID_GAME_ID)
    return game_id


def ensure_game_exists(store, game_id: str) -> None:
    try:
        exists = store.game_exists(game_id)
    except StoreError as e:
        logger.error("Scrim game ID validation error: %s", e.message)
        exists = False
    if not exists:
        logger.warning("Scrim game %s not found", game_id)
        raise NotFoundError(f"Scrim game with id {game_id} not found.")


def validate_stats(stats) -> list[dict]:
    """Check the stats array as a whole; one bad entry rejects the batch."""
    if not isinstance(stats, list) or len(stats) == 0:
        raise ValidationError(MSG_EMPTY_STATS)
    for stat in stats:
        if not isinstance(stat, dict):
            raise ValidationError(MSG_INVALID_STAT)
        stat_type = stat.get("stat_type")
        # null is a legitimate stat_value; only an absent key is rejected
        if not stat_type or not isinstance(stat_type, str) or "stat_value" not in stat:
            raise ValidationError(MSG_INVALID_STAT)
    return stats


def resolve_timestamp(client_timestamp, now: datetime) -> str:
    if not client_timestamp:
        return format_instant(now)
    if not isinstance(client_timestamp, str):
        raise ValidationError(MSG_INVALID_TIMESTAMP)
    try:
        return format_instant(to_instant(client_timestamp))
    except ValueError:
        raise ValidationError(MSG_INVALID_TIMESTAMP)


def build_records(stats: list[dict], game_id: str, user_id: str, timestamp: str) -> list[dict]:
    return [
        {
            "scrim_game_id": game_id,
            "user_id":       user_id,
            "stat_type":     stat["stat_type"],
            "stat_value":    stat["stat_value"],
            "timestamp":     timestamp,
        }
        for stat in stats
    ]


def _ingest(store, method, authorization, body, now):
    check_method(method)
    token = extract_bearer_token(authorization)
    user_id = authenticate_token(store, token, now)

    payload = parse_payload(body)
    game_id = validate_game_id(payload)
    ensure_game_exists(store, game_id)
    stats = validate_stats(payload.get("stats"))
    timestamp = resolve_timestamp(payload.get("timestamp"), now)

    records = build_records(stats, game_id, user_id, timestamp)
    try:
        store.insert_stats(records)
    except StoreError as e:
        logger.error("Error inserting game stats: %s", e.message)
        raise APIError(MSG_STORE_FAILED, details=e.message)

    logger.info("Inserted %d stats for scrim_game_id %s", len(records), game_id)
    return {"message": SUCCESS_MESSAGE}


def ingest_game_stats(store, method: str, authorization: str | None, body, now: datetime | None = None) -> dict:
    """Validate and persist one batch of game stats.

    Args:
        store: Object with ``lookup_token``, ``game_exists`` and ``insert_stats``
               (normally a ``store.SupabaseStore``).
        method: HTTP method of the request.
        authorization: Raw ``Authorization`` header value, or None.
        body: Raw request body (bytes/str), or an already decoded object.
        now: Current time; defaults to ``datetime.now(timezone.utc)``.

    Returns:
        ``{"message": "Game stats received and stored successfully."}``;
        the caller answers 201.

    Raises:
        APIError: one of its subclasses, carrying the HTTP status to answer with.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    try:
        return _ingest(store, method, authorization, body, now)
    except APIError:
        raise
    except json.JSONDecodeError:
        raise ValidationError(MSG_INVALID_JSON)
    except Exception as e:
        logger.exception("Unexpected error in game stats ingestion")
        raise APIError(MSG_UNEXPECTED, details=str(e))
