"""Persistent-store gateway: every Supabase table the API touches goes through here.

The routers and pipelines only ever see plain dicts/lists and ``StoreError``;
the supabase/postgrest client types stay inside this module.
"""

import logging
import secrets
from datetime import datetime, timezone

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import create_client

import config
from errors import ConfigError, StoreError

logger = logging.getLogger(__name__)

TOKENS_TABLE      = "player_api_tokens"
GAMES_TABLE       = "scrim_games"
STATS_TABLE       = "game_stats"
API_CONFIG_TABLE  = "api_configurations"

# stat_type values that hold a full end-of-game summary document
SUMMARY_STAT_TYPES = ("lol_game_summary", "Raw EOG Data")

# PostgREST "no rows" codes (.single() raises PGRST116, older maybe_single() raises 204)
_NO_ROWS_CODES = {"PGRST116", "204"}


def _wrap(err: PostgrestAPIError) -> StoreError:
    return StoreError(getattr(err, "message", None) or str(err), code=getattr(err, "code", None))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseStore:
    """Thin table-level API over a supabase ``Client``."""

    def __init__(self, client):
        self.client = client

    def _maybe_one(self, query):
        try:
            res = query.maybe_single().execute()
        except PostgrestAPIError as e:
            if getattr(e, "code", None) in _NO_ROWS_CODES:
                return None
            raise _wrap(e)
        if res is None:
            return None
        return res.data or None

    # ── Ingestion ─────────────────────────────────────────────────────────────

    def lookup_token(self, token: str) -> dict | None:
        """Return ``{user_id, is_active, expires_at}`` for an API token, or None."""
        query = (
            self.client.table(TOKENS_TABLE)
            .select("user_id, is_active, expires_at")
            .eq("token", token)
        )
        return self._maybe_one(query)

    def game_exists(self, game_id: str) -> bool:
        query = self.client.table(GAMES_TABLE).select("id").eq("id", game_id)
        return self._maybe_one(query) is not None

    def insert_stats(self, records: list[dict]) -> list[dict]:
        """Write a whole batch of stat rows in a single insert call.

        Args:
            records: Rows with scrim_game_id, user_id, stat_type, stat_value
                     and timestamp already filled in.

        Returns:
            The inserted rows as echoed back by the store.

        Raises:
            StoreError: if the insert is rejected.
        """
        try:
            res = self.client.table(STATS_TABLE).insert(records).execute()
        except PostgrestAPIError as e:
            raise _wrap(e)
        return res.data or []

    # ── Read-side stats ───────────────────────────────────────────────────────

    def list_game_stats(self, game_id: str) -> list[dict]:
        try:
            res = (
                self.client.table(STATS_TABLE)
                .select("*")
                .eq("scrim_game_id", game_id)
                .order("user_id")
                .order("created_at")
                .execute()
            )
        except PostgrestAPIError as e:
            raise _wrap(e)
        return res.data or []

    def list_summary_stats(self) -> list[dict]:
        try:
            res = (
                self.client.table(STATS_TABLE)
                .select("id, timestamp, stat_value")
                .in_("stat_type", list(SUMMARY_STAT_TYPES))
                .order("timestamp")
                .execute()
            )
        except PostgrestAPIError as e:
            raise _wrap(e)
        return res.data or []

    # ── API configuration ─────────────────────────────────────────────────────

    def get_api_configuration(self, api_type: str) -> dict | None:
        query = (
            self.client.table(API_CONFIG_TABLE)
            .select("api_type, config_data")
            .eq("api_type", api_type)
        )
        return self._maybe_one(query)

    def upsert_api_configuration(self, api_type: str, config_data: dict) -> dict:
        try:
            res = (
                self.client.table(API_CONFIG_TABLE)
                .upsert({"api_type": api_type, "config_data": config_data}, on_conflict="api_type")
                .execute()
            )
        except PostgrestAPIError as e:
            raise _wrap(e)
        rows = res.data or []
        return rows[0] if rows else {}

    # ── Player API tokens ─────────────────────────────────────────────────────

    def get_active_token(self, user_id: str) -> dict | None:
        query = (
            self.client.table(TOKENS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True)
        )
        return self._maybe_one(query)

    def create_token(self, user_id: str) -> dict:
        """Revoke the user's active tokens, then issue a fresh one.

        A user holds at most one active token at a time.
        """
        try:
            (
                self.client.table(TOKENS_TABLE)
                .update({"is_active": False, "updated_at": _now_iso()})
                .eq("user_id", user_id)
                .eq("is_active", True)
                .execute()
            )
            res = (
                self.client.table(TOKENS_TABLE)
                .insert({"user_id": user_id, "token": secrets.token_hex(32), "is_active": True})
                .execute()
            )
        except PostgrestAPIError as e:
            raise _wrap(e)
        rows = res.data or []
        return rows[0] if rows else {}

    def revoke_token(self, token_id: str) -> None:
        try:
            (
                self.client.table(TOKENS_TABLE)
                .update({"is_active": False, "updated_at": _now_iso()})
                .eq("id", token_id)
                .execute()
            )
        except PostgrestAPIError as e:
            raise _wrap(e)


# ── Factories ─────────────────────────────────────────────────────────────────

def get_service_store() -> SupabaseStore:
    """Store bound to the service-role key (row-level security bypassed).

    Raises:
        ConfigError: if SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset.
    """
    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("Missing Supabase environment variables")
        raise ConfigError("Server configuration error.")
    return SupabaseStore(create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY))


def get_user_store(access_token: str) -> SupabaseStore:
    """Store acting as the calling user, so row-level security policies apply."""
    if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
        logger.error("Missing Supabase environment variables")
        raise ConfigError("Server configuration error.")
    client = create_client(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)
    client.postgrest.auth(access_token)
    return SupabaseStore(client)
