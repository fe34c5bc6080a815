"""Import history endpoint: an agency's imports, or one import with its listings."""

from http.server import BaseHTTPRequestHandler
from urllib.parse import parse_qs, urlparse
import asyncio

from src.services.auth import extract_bearer_token, resolve_agency
from src.services.import_history import get_import_details, list_imports
from src.services.supabase_client import SupabaseStore
from src.utils.errors import ImportPipelineError
from src.utils.http import send_json, status_for_error
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def load_history(access_token, import_id=None):
    store = SupabaseStore()
    agency_id = await resolve_agency(store, access_token)
    if import_id:
        return await get_import_details(store, agency_id, import_id)
    return await list_imports(store, agency_id)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for import history."""

    def do_GET(self):
        query = parse_qs(urlparse(self.path).query)
        import_id = (query.get("import_id") or [None])[0]
        token = extract_bearer_token(self.headers.get("Authorization"))

        try:
            result = asyncio.run(load_history(token, import_id))
        except ImportPipelineError as e:
            send_json(self, status_for_error(e), {"error": e.message})
            return
        except Exception as e:
            logger.error("Error loading import history", import_id=import_id, error=str(e), exc_info=True)
            send_json(self, 500, {"error": "Error loading imports"})
            return

        if import_id:
            if result is None:
                send_json(self, 404, {"error": "Import not found"})
                return
            send_json(self, 200, result.model_dump(mode="json"))
            return

        send_json(self, 200, {"imports": [ticket.model_dump(mode="json") for ticket in result]})
