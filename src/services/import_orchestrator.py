"""Import orchestrator - validate, parse and commit an OpenImmo feed for an agency."""

from typing import Optional

from src.models.import_ticket import ImportBatch, ImportFile, ImportStatus, ImportSummary
from src.services.commit_strategies import (
    ChunkedCommitStrategy,
    ProgressCallback,
    RemoteHandlerStrategy,
)
from src.services.remote_import_client import RemoteImportClient
from src.services.retry_policy import RetryPolicy
from src.services.supabase_client import (
    SupabaseStore,
    delete_listings_for_import,
    update_import_record,
)
from src.services.xml_normalizer import normalize
from src.services.xml_validator import validate_file
from src.utils.config import ImportSettings
from src.utils.errors import EmptyResultError, RemoteImportError
from src.utils.logging import correlation_context, get_structured_logger, log_timing

logger = get_structured_logger(__name__)

CLEANUP_ERROR_MESSAGE = "Import cleaned up after a critical error"


async def cleanup_failed_import(store, import_id: str) -> None:
    """
    Delete all listing rows of an import and mark its ticket failed.

    Safe to call repeatedly and on imports that committed nothing.
    """
    await delete_listings_for_import(store, import_id)
    await update_import_record(store, import_id, {
        "status": ImportStatus.FAILED.value,
        "error_message": CLEANUP_ERROR_MESSAGE,
    })
    logger.info("Failed import cleaned up", import_id=import_id)


class XmlImportOrchestrator:
    """
    Drive one feed import end to end.

    The remote handler is tried first; any RemoteImportError falls back to the
    chunked strategy. The two paths never run concurrently.
    """

    def __init__(
        self,
        store=None,
        remote_strategy: Optional[RemoteHandlerStrategy] = None,
        local_strategy: Optional[ChunkedCommitStrategy] = None,
        settings: Optional[ImportSettings] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.settings = settings or ImportSettings.from_env()
        self.store = store if store is not None else SupabaseStore()
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)

        if remote_strategy is None and self.settings.remote_enabled:
            remote_strategy = RemoteHandlerStrategy(
                RemoteImportClient(
                    self.settings.import_handler_url,
                    timeout=self.settings.remote_timeout_seconds,
                )
            )
        self.remote_strategy = remote_strategy
        self.local_strategy = local_strategy or ChunkedCommitStrategy(
            self.store,
            retry_policy=self.retry_policy,
            chunk_size=self.settings.chunk_size,
        )

    async def import_file(
        self,
        file: ImportFile,
        agency_id: str,
        access_token: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportSummary:
        """
        Import a feed file for an agency.

        Raises ValidationError/ParseError, EmptyResultError, TicketCreationError
        or BatchInsertError; on success returns the inserted count and ticket ID.
        """
        def report(percent: float) -> None:
            if on_progress:
                on_progress(percent)

        with correlation_context():
            logger.info(
                "Starting XML import",
                file_name=file.name,
                agency_id=agency_id,
                file_size=file.size,
            )

            with log_timing("validate feed", logger=logger, file_name=file.name):
                validate_file(file)
            report(10)

            xml_content = file.text()
            report(20)

            with log_timing("parse feed", logger=logger, file_name=file.name):
                listings = normalize(xml_content)
            report(40)

            # normalize() already raises ParseError on zero <immobilie>; this guards its contract
            if not listings:
                raise EmptyResultError("No listings found in the XML file")

            batch = ImportBatch(
                agency_id=agency_id,
                file_name=file.name,
                xml_content=xml_content,
                listings=listings,
                access_token=access_token,
            )
            report(60)

            summary = await self._commit(batch, report)
            report(100)

            logger.info(
                "XML import completed",
                file_name=file.name,
                agency_id=agency_id,
                import_id=summary.import_id,
                total_inserted=summary.total_inserted,
            )
            return summary

    async def _commit(self, batch: ImportBatch, report: ProgressCallback) -> ImportSummary:
        if self.remote_strategy is not None:
            try:
                with log_timing("remote import", logger=logger, file_name=batch.file_name):
                    return await self.remote_strategy.commit(batch, report)
            except RemoteImportError as e:
                logger.warning(
                    "Remote import handler failed, falling back to chunked import",
                    file_name=batch.file_name,
                    error=e.message,
                )

        with log_timing("chunked import", logger=logger, file_name=batch.file_name):
            return await self.local_strategy.commit(batch, report)
