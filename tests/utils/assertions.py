"""Custom assertion helpers."""

from typing import Any, Dict

from src.models.listing import ParsedListing


def assert_valid_parsed_listing(listing: ParsedListing) -> None:
    """Assert that a parsed listing satisfies the normalizer's guarantees."""
    assert listing.xml_data is not None
    assert listing.xml_data.raw_xml
    assert isinstance(listing.images, list)
    if listing.offer_type is not None:
        assert listing.offer_type in ("sale", "rent")
        assert listing.price is not None
    if listing.property_type is not None:
        assert listing.property_type in ("apartment", "house", "land")


def assert_valid_ticket(ticket: Dict[str, Any], status: str) -> None:
    """Assert that an imports row is well formed and in the given status."""
    assert ticket["id"]
    assert ticket["agency_id"]
    assert ticket["status"] == status
    assert ticket["listings_inserted"] <= ticket["num_listings"]
    if status == "failed":
        assert ticket.get("error_message")


def assert_listing_row(row: Dict[str, Any], agency_id: str, import_id: str) -> None:
    """Assert that a listings row carries its tenant and ticket scope."""
    assert row["agency_id"] == agency_id
    assert row["import_id"] == import_id
    assert "xml_data" in row
    assert "raw_xml" in row["xml_data"]
