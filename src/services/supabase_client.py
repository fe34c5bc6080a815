"""Supabase client wrapper and table helpers for imports and listings."""

from typing import Any, Optional

import httpx
from supabase import create_client, Client
from supabase.client import ClientOptions

from src.models.import_ticket import ImportStatus, ImportTicket
from src.utils.config import ImportSettings
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

IMPORTS_TABLE = "imports"
LISTINGS_TABLE = "listings"
PROFILES_TABLE = "profiles"

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        settings = ImportSettings.from_env()
        url = settings.supabase_url
        key = settings.supabase_service_role_key

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
            postgrest_client_timeout=settings.store_timeout_seconds,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


async def close_supabase_client() -> None:
    """Drop the cached client."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self, client: Optional[Client] = None):
        self.client: Optional[Client] = client

    async def __aenter__(self) -> Client:
        if self.client is None:
            self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__
            )
        return False


def _describe_error(verb: str, table: str, error: Exception) -> str:
    # Transport failures must read as network errors for the retry classifier
    if isinstance(error, httpx.TransportError):
        return f"Failed to {verb} {table}: network error ({type(error).__name__}: {error})"
    message = getattr(error, "message", None) or str(error)
    return f"Failed to {verb} {table}: {message}"


class SupabaseStore:
    """
    Generic table access used by the import pipeline.

    Filters are equality matches. Every method raises SupabaseError on failure,
    with a message naming the operation and the underlying cause.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        async with SupabaseClient(self._client) as client:
            try:
                query = client.table(table).select("*")
                for column, value in (filters or {}).items():
                    query = query.eq(column, value)
                if order:
                    query = query.order(order, desc=descending)
                result = query.execute()
                return result.data or []
            except Exception as e:
                raise SupabaseError(_describe_error("select from", table, e)) from e

    async def insert(self, table: str, rows: list[dict] | dict) -> list[dict]:
        async with SupabaseClient(self._client) as client:
            try:
                result = client.table(table).insert(rows).execute()
                return result.data or []
            except Exception as e:
                raise SupabaseError(_describe_error("insert into", table, e)) from e

    async def update(self, table: str, patch: dict, filters: dict[str, Any]) -> list[dict]:
        async with SupabaseClient(self._client) as client:
            try:
                query = client.table(table).update(patch)
                for column, value in filters.items():
                    query = query.eq(column, value)
                result = query.execute()
                return result.data or []
            except Exception as e:
                raise SupabaseError(_describe_error("update", table, e)) from e

    async def delete(self, table: str, filters: dict[str, Any]) -> list[dict]:
        async with SupabaseClient(self._client) as client:
            try:
                query = client.table(table).delete()
                for column, value in filters.items():
                    query = query.eq(column, value)
                result = query.execute()
                return result.data or []
            except Exception as e:
                raise SupabaseError(_describe_error("delete from", table, e)) from e


# Imports table operations
async def create_import_record(store, agency_id: str, file_name: str, num_listings: int) -> ImportTicket:
    """Create an import ticket in processing state."""
    rows = await store.insert(IMPORTS_TABLE, {
        "agency_id": agency_id,
        "file_name": file_name,
        "num_listings": num_listings,
        "listings_inserted": 0,
        "status": ImportStatus.PROCESSING.value,
    })
    if not rows:
        raise SupabaseError("Failed to create import record: no data returned")
    return ImportTicket.model_validate(rows[0])


async def update_import_record(store, import_id: str, updates: dict) -> list[dict]:
    """Patch an import ticket."""
    return await store.update(IMPORTS_TABLE, updates, {"id": import_id})


async def get_import_record(store, import_id: str, agency_id: Optional[str] = None) -> Optional[ImportTicket]:
    """Get an import ticket, optionally scoped to an agency."""
    filters = {"id": import_id}
    if agency_id:
        filters["agency_id"] = agency_id
    rows = await store.select(IMPORTS_TABLE, filters)
    return ImportTicket.model_validate(rows[0]) if rows else None


async def get_imports_for_agency(store, agency_id: str) -> list[ImportTicket]:
    """Import tickets of an agency, newest first."""
    rows = await store.select(IMPORTS_TABLE, {"agency_id": agency_id}, order="import_date", descending=True)
    return [ImportTicket.model_validate(row) for row in rows]


# Listings table operations
async def insert_listings(store, rows: list[dict]) -> list[dict]:
    """Insert listing rows in a single request."""
    return await store.insert(LISTINGS_TABLE, rows)


async def delete_listings_for_import(store, import_id: str) -> list[dict]:
    """Delete every listing row created by an import."""
    return await store.delete(LISTINGS_TABLE, {"import_id": import_id})


async def get_listings_for_import(store, import_id: str) -> list[dict]:
    """Listing rows created by an import."""
    return await store.select(LISTINGS_TABLE, {"import_id": import_id})


# Profiles table operations
async def get_agency_id_for_user(store, user_id: str) -> Optional[str]:
    """Agency of an authenticated user, from the profiles table."""
    rows = await store.select(PROFILES_TABLE, {"user_id": user_id})
    if rows and rows[0].get("agency_id"):
        return rows[0]["agency_id"]
    return None
