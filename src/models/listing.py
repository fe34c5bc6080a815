"""Listing models."""

from typing import Literal, Optional
from pydantic import BaseModel, Field


OfferType = Literal["sale", "rent"]
PropertyType = Literal["apartment", "house", "land"]


class XmlData(BaseModel):
    """Traceability payload kept with every parsed listing."""
    original_id: Optional[str] = Field(None, description="id attribute of the source <immobilie>")
    raw_xml: str = Field(..., description="Serialized source element")


class ParsedListing(BaseModel):
    """Normalized listing produced from one OpenImmo <immobilie> element."""
    title: Optional[str] = Field(None, description="From objekttitel")
    description: Optional[str] = Field(None, description="dreizeiler, else objektbeschreibung")
    city: Optional[str] = None
    zipcode: Optional[str] = None
    street: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    price: Optional[float] = Field(None, description="kaufpreis or nettokaltmiete")
    offer_type: Optional[OfferType] = Field(None, description="sale or rent, follows the price source")
    living_area: Optional[float] = Field(None, description="wohnflaeche in m2")
    rooms: Optional[int] = Field(None, description="anzahl_zimmer")
    property_type: Optional[PropertyType] = None
    images: list[str] = Field(default_factory=list, description="Picture paths in document order")
    xml_data: XmlData

    def to_payload(self) -> dict:
        """JSON-ready dict with unset fields dropped."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_row(self, agency_id: str, import_id: str) -> dict:
        """Row for the listings table, scoped to an agency and an import ticket."""
        row = self.to_payload()
        row["agency_id"] = agency_id
        row["import_id"] = import_id
        return row
