"""XML upload endpoint: validate, parse and import a feed for the caller's agency."""

from http.server import BaseHTTPRequestHandler
import asyncio

from src.models.import_ticket import ImportFile, ImportSummary
from src.services.auth import extract_bearer_token, resolve_agency
from src.services.import_orchestrator import XmlImportOrchestrator
from src.services.supabase_client import SupabaseStore
from src.utils.errors import ImportPipelineError
from src.utils.http import read_body, send_json, status_for_error
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)

DEFAULT_FILE_NAME = "import.xml"


async def run_upload(file: ImportFile, access_token: str) -> ImportSummary:
    """Resolve the caller's agency and import the file for it."""
    store = SupabaseStore()
    agency_id = await resolve_agency(store, access_token)
    orchestrator = XmlImportOrchestrator(store=store)
    return await orchestrator.import_file(file, agency_id, access_token=access_token)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for XML uploads."""

    def do_POST(self):
        """Import the raw XML request body; X-File-Name names the file."""
        file = ImportFile(
            name=self.headers.get("X-File-Name") or DEFAULT_FILE_NAME,
            content=read_body(self),
        )
        token = extract_bearer_token(self.headers.get("Authorization"))

        try:
            summary = asyncio.run(run_upload(file, token))
        except ImportPipelineError as e:
            send_json(self, status_for_error(e), {"error": e.message})
            return
        except Exception as e:
            logger.error("Error importing XML upload", file_name=file.name, error=str(e), exc_info=True)
            send_json(self, 500, {"error": "Error processing the XML file"})
            return

        send_json(self, 200, summary.model_dump(by_alias=True))
