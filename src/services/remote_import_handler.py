"""Server side of the remote import path: one ticket, one listings insert."""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from src.models.import_ticket import ImportStatus
from src.models.remote_import import RemoteImportRequest, RemoteImportResponse
from src.services.auth import resolve_agency
from src.services.import_orchestrator import cleanup_failed_import
from src.services.supabase_client import (
    create_import_record,
    insert_listings,
    update_import_record,
)
from src.utils.errors import ImportPipelineError, SupabaseError, ValidationError
from src.utils.logging import get_structured_logger, xml_preview

logger = get_structured_logger(__name__)


def parse_request(body: Any) -> RemoteImportRequest:
    """Validate the posted payload: XML content, file name and at least one listing."""
    try:
        request = RemoteImportRequest.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError("Invalid import data") from e

    if not request.xml_content or not request.file_name or not request.listings:
        raise ValidationError("Invalid import data")
    return request


async def handle_remote_import(store, body: Any, access_token: Optional[str], auth_client=None) -> RemoteImportResponse:
    """
    Import a pre-parsed batch on behalf of the token's agency.

    The whole batch goes in a single insert; on failure the ticket is cleaned
    up and marked failed. Raises ImportPipelineError subclasses for the caller
    to map onto HTTP statuses.
    """
    agency_id = await resolve_agency(store, access_token, client=auth_client)
    request = parse_request(body)

    logger.info(
        "Remote import received",
        agency_id=agency_id,
        file_name=request.file_name,
        num_listings=len(request.listings),
        xml_preview=xml_preview(request.xml_content, max_length=80),
    )

    try:
        ticket = await create_import_record(store, agency_id, request.file_name, len(request.listings))
    except SupabaseError as e:
        raise SupabaseError("Failed to create import record") from e

    rows = [
        {**listing, "agency_id": agency_id, "import_id": ticket.id}
        for listing in request.listings
    ]

    try:
        await insert_listings(store, rows)
    except SupabaseError as e:
        logger.error("Remote import listing insert failed", import_id=ticket.id, error=e.message)
        try:
            await cleanup_failed_import(store, ticket.id)
        except ImportPipelineError as cleanup_error:
            logger.error("Failed to clean up remote import", import_id=ticket.id, error=cleanup_error.message)
        raise SupabaseError("Failed to insert listings") from e

    try:
        await update_import_record(store, ticket.id, {
            "status": ImportStatus.COMPLETED.value,
            "listings_inserted": len(rows),
        })
    except SupabaseError as e:
        # Listings are committed; reporting failure would make the caller import them again
        logger.error(
            "Failed to mark remote import completed",
            import_id=ticket.id,
            num_listings=len(rows),
            error=e.message,
        )

    logger.info("Remote import completed", import_id=ticket.id, num_listings=len(rows))
    return RemoteImportResponse(
        success=True,
        message="Import completed successfully",
        import_id=ticket.id,
        num_listings=len(rows),
    )
