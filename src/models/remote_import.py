"""Wire models of the remote import handler."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class RemoteImportRequest(BaseModel):
    """Body posted to the remote import handler."""
    model_config = ConfigDict(populate_by_name=True)

    xml_content: str = Field(..., alias="xmlContent")
    file_name: str = Field(..., alias="fileName")
    listings: list[dict[str, Any]] = Field(default_factory=list)


class RemoteImportResponse(BaseModel):
    """Body returned by the remote import handler."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: Optional[str] = None
    message: Optional[str] = None
    import_id: Optional[str] = Field(None, alias="importId")
    num_listings: Optional[int] = Field(None, alias="numListings")
