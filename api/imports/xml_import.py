"""Remote XML import handler endpoint: commits a pre-parsed batch in one request."""

from http.server import BaseHTTPRequestHandler
import asyncio

from src.services.auth import extract_bearer_token
from src.services.remote_import_handler import handle_remote_import
from src.services.supabase_client import SupabaseStore
from src.utils.errors import ImportPipelineError
from src.utils.http import read_json_body, send_json, status_for_error
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for remote imports."""

    def do_GET(self):
        """Status probe."""
        send_json(self, 200, {
            "status": "online",
            "message": "XML import handler is running",
        })

    def do_POST(self):
        """Create a ticket and insert the posted listings for the caller's agency."""
        with correlation_context():
            body = read_json_body(self)
            token = extract_bearer_token(self.headers.get("Authorization"))

            try:
                result = asyncio.run(handle_remote_import(SupabaseStore(), body, token))
            except ImportPipelineError as e:
                # Callers fall back to chunked import on any non-2xx
                status = 401 if status_for_error(e) == 401 else 400
                logger.warning("Remote import rejected", status=status, error=e.message)
                send_json(self, status, {"success": False, "error": e.message})
                return
            except Exception as e:
                logger.error("Error in XML import handler", error=str(e), exc_info=True)
                send_json(self, 500, {"success": False, "error": "Internal error"})
                return

            send_json(self, 200, result.model_dump(by_alias=True, exclude_none=True))
