"""Commit strategies: remote handler in one request, or client-driven chunked inserts."""

from typing import Callable, Optional, Protocol, Sequence, TypeVar

from src.models.import_ticket import ImportBatch, ImportStatus, ImportSummary, ImportTicket
from src.models.remote_import import RemoteImportRequest
from src.services.remote_import_client import RemoteImportClient
from src.services.retry_policy import RetryPolicy, error_message
from src.services.supabase_client import (
    create_import_record,
    delete_listings_for_import,
    insert_listings,
    update_import_record,
)
from src.utils.errors import BatchInsertError, TicketCreationError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[float], None]

DEFAULT_CHUNK_SIZE = 5

# Progress band covered by chunk commits
CHUNK_PROGRESS_START = 70
CHUNK_PROGRESS_SPAN = 20


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive lists of at most size elements."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def _report(on_progress: Optional[ProgressCallback], percent: float) -> None:
    if on_progress:
        on_progress(percent)


class CommitStrategy(Protocol):
    """A way of persisting a parsed batch."""

    name: str

    async def commit(self, batch: ImportBatch, on_progress: Optional[ProgressCallback] = None) -> ImportSummary:
        ...


class RemoteHandlerStrategy:
    """Hand the whole batch to the remote import handler, which owns the ticket."""

    name = "remote_handler"

    def __init__(self, client: RemoteImportClient):
        self.client = client

    async def commit(self, batch: ImportBatch, on_progress: Optional[ProgressCallback] = None) -> ImportSummary:
        request = RemoteImportRequest(
            xml_content=batch.xml_content,
            file_name=batch.file_name,
            listings=[listing.to_payload() for listing in batch.listings],
        )
        response = await self.client.submit(request, batch.access_token)

        total = response.num_listings if response.num_listings is not None else len(batch.listings)
        return ImportSummary(total_inserted=total, import_id=response.import_id)


class ChunkedCommitStrategy:
    """
    Create the ticket and insert listings chunk by chunk.

    Chunks go strictly in order. When a chunk fails after retries the ticket is
    marked failed, every row already written for the import is deleted, and
    BatchInsertError is raised. Later chunks are never attempted.
    """

    name = "chunked"

    def __init__(self, store, retry_policy: Optional[RetryPolicy] = None, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self.chunk_size = chunk_size

    async def commit(self, batch: ImportBatch, on_progress: Optional[ProgressCallback] = None) -> ImportSummary:
        ticket = await self._create_ticket(batch)
        _report(on_progress, CHUNK_PROGRESS_START)

        rows = [listing.to_row(batch.agency_id, ticket.id) for listing in batch.listings]
        chunks = chunked(rows, self.chunk_size)
        total_inserted = 0

        for index, chunk in enumerate(chunks):
            try:
                await self.retry_policy.run(
                    lambda: insert_listings(self.store, chunk),
                    operation=f"insert chunk {index + 1}/{len(chunks)}",
                )
            except Exception as e:
                message = f"Chunk {index + 1} failed: {error_message(e)}"
                logger.error(
                    "Listing chunk insert failed, rolling back import",
                    import_id=ticket.id,
                    chunk_index=index,
                    chunk_size=len(chunk),
                    listings_inserted=total_inserted,
                    error=error_message(e),
                )
                await self._fail_and_rollback(ticket.id, message, total_inserted)
                raise BatchInsertError(message, chunk_index=index, import_id=ticket.id) from e

            total_inserted += len(chunk)
            await self._record_progress(ticket.id, total_inserted)
            _report(on_progress, CHUNK_PROGRESS_START + (index + 1) / len(chunks) * CHUNK_PROGRESS_SPAN)

            logger.debug(
                "Listing chunk committed",
                import_id=ticket.id,
                chunk_index=index,
                total_chunks=len(chunks),
                listings_inserted=total_inserted,
            )

        await self._finalize(ticket.id, total_inserted)
        return ImportSummary(total_inserted=total_inserted, import_id=ticket.id)

    async def _create_ticket(self, batch: ImportBatch) -> ImportTicket:
        try:
            ticket = await self.retry_policy.run(
                lambda: create_import_record(self.store, batch.agency_id, batch.file_name, len(batch.listings)),
                operation="create import ticket",
            )
        except Exception as e:
            logger.error(
                "Failed to create import ticket",
                agency_id=batch.agency_id,
                file_name=batch.file_name,
                error=error_message(e),
            )
            raise TicketCreationError(f"Failed to create import record: {error_message(e)}") from e

        logger.info(
            "Import ticket created",
            import_id=ticket.id,
            agency_id=batch.agency_id,
            num_listings=len(batch.listings),
            chunk_size=self.chunk_size,
        )
        return ticket

    async def _record_progress(self, import_id: str, listings_inserted: int) -> None:
        try:
            await self.retry_policy.run(
                lambda: update_import_record(self.store, import_id, {"listings_inserted": listings_inserted}),
                operation="update import progress",
            )
        except Exception as e:
            # Rows are committed; only the visible counter lags behind
            logger.warning(
                "Failed to persist import progress",
                import_id=import_id,
                listings_inserted=listings_inserted,
                error=error_message(e),
            )

    async def _fail_and_rollback(self, import_id: str, message: str, listings_inserted: int) -> None:
        try:
            await self.retry_policy.run(
                lambda: update_import_record(self.store, import_id, {
                    "status": ImportStatus.FAILED.value,
                    "error_message": message,
                    "listings_inserted": listings_inserted,
                }),
                operation="mark import failed",
            )
        except Exception as e:
            logger.error("Failed to mark import as failed", import_id=import_id, error=error_message(e))

        try:
            await self.retry_policy.run(
                lambda: delete_listings_for_import(self.store, import_id),
                operation="delete partial import",
            )
        except Exception as e:
            logger.error(
                "Failed to delete partially imported listings",
                import_id=import_id,
                listings_inserted=listings_inserted,
                error=error_message(e),
            )

    async def _finalize(self, import_id: str, listings_inserted: int) -> None:
        try:
            await self.retry_policy.run(
                lambda: update_import_record(self.store, import_id, {
                    "status": ImportStatus.COMPLETED.value,
                    "listings_inserted": listings_inserted,
                }),
                operation="mark import completed",
            )
        except Exception as e:
            # Listings are persisted correctly; do not roll back over a status write
            logger.error(
                "Failed to update import status",
                import_id=import_id,
                listings_inserted=listings_inserted,
                error=error_message(e),
            )
