"""Import pipeline settings read from environment variables."""

import os
from typing import Optional
from pydantic import BaseModel, Field


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


class ImportSettings(BaseModel):
    """Tunables for the OpenImmo import pipeline."""
    supabase_url: Optional[str] = Field(None, description="Supabase project URL")
    supabase_service_role_key: Optional[str] = Field(None, description="Service role key for server-side writes")
    functions_url: Optional[str] = Field(None, description="Base URL of the Supabase edge functions")
    import_handler_name: str = Field("xml-import-handler", description="Remote import handler function name")
    remote_enabled: bool = Field(True, description="Try the remote handler before the chunked fallback")
    chunk_size: int = Field(5, ge=1, description="Listings per insert request on the chunked path")
    max_retries: int = Field(2, ge=0, description="Extra attempts for transient failures")
    retry_initial_delay_ms: int = Field(1000, ge=0, description="First backoff delay")
    retry_backoff_factor: float = Field(2.0, ge=1.0, description="Backoff multiplier per attempt")
    remote_timeout_seconds: float = Field(30.0, gt=0, description="Remote handler request timeout")
    store_timeout_seconds: float = Field(30.0, gt=0, description="PostgREST request timeout")

    @property
    def import_handler_url(self) -> Optional[str]:
        """Full URL of the remote import handler, if resolvable."""
        base = self.functions_url
        if not base and self.supabase_url:
            base = f"{self.supabase_url.rstrip('/')}/functions/v1"
        if not base:
            return None
        return f"{base.rstrip('/')}/{self.import_handler_name}"

    @classmethod
    def from_env(cls) -> "ImportSettings":
        """Build settings from the process environment."""
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL"),
            supabase_service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
            functions_url=os.environ.get("SUPABASE_FUNCTIONS_URL"),
            import_handler_name=os.environ.get("XML_IMPORT_HANDLER_NAME", "xml-import-handler"),
            remote_enabled=_env_bool("IMPORT_REMOTE_ENABLED", "true"),
            chunk_size=int(os.environ.get("IMPORT_CHUNK_SIZE", "5")),
            max_retries=int(os.environ.get("IMPORT_MAX_RETRIES", "2")),
            retry_initial_delay_ms=int(os.environ.get("IMPORT_RETRY_INITIAL_DELAY_MS", "1000")),
            retry_backoff_factor=float(os.environ.get("IMPORT_RETRY_BACKOFF_FACTOR", "2")),
            remote_timeout_seconds=float(os.environ.get("IMPORT_REMOTE_TIMEOUT_SECONDS", "30")),
            store_timeout_seconds=float(os.environ.get("IMPORT_STORE_TIMEOUT_SECONDS", "30")),
        )
