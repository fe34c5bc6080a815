"""Error handling utilities."""

from typing import Optional


class ImportPipelineError(Exception):
    """Base exception for the OpenImmo import backend."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ImportPipelineError):
    """Uploaded file rejected before any write happened."""
    pass


class ParseError(ValidationError):
    """Document is not well-formed XML or not an OpenImmo feed."""
    pass


class EmptyResultError(ImportPipelineError):
    """Document parsed but produced no listings."""
    pass


class TicketCreationError(ImportPipelineError):
    """Import ticket could not be created; nothing was written."""
    pass


class BatchInsertError(ImportPipelineError):
    """A listing chunk failed and the partial import was rolled back."""

    def __init__(self, message: str, chunk_index: Optional[int] = None, import_id: Optional[str] = None):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.import_id = import_id


class RemoteImportError(ImportPipelineError):
    """Remote import handler did not accept the batch."""
    pass


class AuthenticationError(ImportPipelineError):
    """Bearer credential missing or not resolvable to an agency."""
    pass


class SupabaseError(ImportPipelineError):
    """Supabase operation error."""
    pass
