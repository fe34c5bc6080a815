"""JSON response helpers shared by the serverless handlers."""

import json
from http.server import BaseHTTPRequestHandler
from typing import Any, Optional

from src.utils.errors import (
    AuthenticationError,
    BatchInsertError,
    EmptyResultError,
    ImportPipelineError,
    SupabaseError,
    TicketCreationError,
    ValidationError,
)


def send_json(request_handler: BaseHTTPRequestHandler, status: int, payload: Any) -> None:
    """Write payload as a JSON response."""
    body = json.dumps(payload).encode("utf-8")
    request_handler.send_response(status)
    request_handler.send_header("Content-Type", "application/json")
    request_handler.send_header("Content-Length", str(len(body)))
    request_handler.end_headers()
    request_handler.wfile.write(body)


def read_body(request_handler: BaseHTTPRequestHandler) -> bytes:
    """Raw request body, empty when there is no Content-Length."""
    content_length = int(request_handler.headers.get("Content-Length", 0) or 0)
    return request_handler.rfile.read(content_length) if content_length > 0 else b""


def read_json_body(request_handler: BaseHTTPRequestHandler) -> Optional[Any]:
    """Request body parsed as JSON, None when empty or malformed."""
    raw_body = read_body(request_handler)
    if not raw_body:
        return None
    try:
        return json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def status_for_error(error: ImportPipelineError) -> int:
    """HTTP status for a pipeline error: caller mistakes 4xx, backend failures 502."""
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, (ValidationError, EmptyResultError)):
        return 400
    if isinstance(error, (TicketCreationError, BatchInsertError, SupabaseError)):
        return 502
    return 400
