"""Import ticket models."""

import codecs
import re
from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from src.models.listing import ParsedListing


_ENCODING_DECLARATION = re.compile(rb"""^\s*<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
_BOM = "\ufeff"


class ImportStatus(str, Enum):
    """Lifecycle states of an import ticket."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportTicket(BaseModel):
    """Row of the imports table; one per import attempt."""
    id: str = Field(..., description="Server-assigned ticket ID")
    agency_id: str = Field(..., description="Owning agency")
    file_name: str
    num_listings: int = Field(0, ge=0, description="Listings declared by the parse")
    listings_inserted: int = Field(0, ge=0, description="Listings committed so far")
    status: ImportStatus = ImportStatus.PROCESSING
    error_message: Optional[str] = None
    import_date: Optional[str] = None


class ImportSummary(BaseModel):
    """Result of a successful import."""
    model_config = ConfigDict(populate_by_name=True)

    total_inserted: int = Field(..., ge=0, alias="totalInserted")
    import_id: Optional[str] = Field(None, alias="importId")


class ImportFile(BaseModel):
    """Uploaded feed file."""
    name: str
    content: Union[bytes, str]

    @property
    def size(self) -> int:
        return len(self.content)

    def text(self) -> str:
        """Decode the content, honouring the encoding declared in the XML prolog."""
        if isinstance(self.content, str):
            return self.content.lstrip(_BOM)

        # A UTF-8 byte order mark wins over the declared encoding
        if self.content.startswith(codecs.BOM_UTF8):
            return self.content[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")

        encoding = "utf-8"
        match = _ENCODING_DECLARATION.match(self.content)
        if match:
            encoding = match.group(1).decode("ascii")
        try:
            text = self.content.decode(encoding, errors="replace")
        except LookupError:
            text = self.content.decode("utf-8", errors="replace")
        return text.lstrip(_BOM)


class ImportBatch(BaseModel):
    """Parsed feed ready to be committed for one agency."""
    agency_id: str
    file_name: str
    xml_content: str
    listings: list[ParsedListing] = Field(default_factory=list)
    access_token: Optional[str] = Field(None, repr=False, description="Caller's bearer credential")
