"""Pre-flight checks run on an uploaded feed before any network or store work."""

from typing import Union

from src.models.import_ticket import ImportFile
from src.services.xml_normalizer import normalize
from src.utils.errors import ValidationError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def validate_xml_content(content: str) -> None:
    """
    Reject content that is guaranteed to fail later.

    Checks, in order: non-empty, looks like markup, parses as OpenImmo.
    Raises ValidationError (ParseError for the last check).
    """
    if len(content) == 0:
        raise ValidationError("Empty XML file")

    stripped = content.strip()
    if not (stripped.startswith("<?xml") or stripped.startswith("<")):
        raise ValidationError("File is not valid XML")

    normalize(content)


def validate_file(file: Union[ImportFile, str]) -> None:
    """Validate an uploaded file, logging why it was rejected."""
    content = file.text() if isinstance(file, ImportFile) else file
    file_name = file.name if isinstance(file, ImportFile) else None

    try:
        validate_xml_content(content)
    except ValidationError as e:
        logger.info(
            "XML file rejected by pre-flight validation",
            file_name=file_name,
            content_length=len(content),
            reason=e.message,
        )
        raise
