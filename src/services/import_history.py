"""Read side of imports: an agency's tickets and the listings of one ticket."""

from typing import Optional

from pydantic import BaseModel, Field

from src.models.import_ticket import ImportTicket
from src.services.supabase_client import (
    get_import_record,
    get_imports_for_agency,
    get_listings_for_import,
)


class ImportDetails(BaseModel):
    """An import ticket with the listing rows it created."""
    ticket: ImportTicket
    listings: list[dict] = Field(default_factory=list)


async def list_imports(store, agency_id: str) -> list[ImportTicket]:
    """Tickets of an agency, newest first."""
    return await get_imports_for_agency(store, agency_id)


async def get_import_details(store, agency_id: str, import_id: str) -> Optional[ImportDetails]:
    """Ticket and listings of an import, or None if the agency does not own it."""
    ticket = await get_import_record(store, import_id, agency_id=agency_id)
    if ticket is None:
        return None
    listings = await get_listings_for_import(store, import_id)
    return ImportDetails(ticket=ticket, listings=listings)
