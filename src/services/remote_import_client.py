"""HTTP client for the remote (edge function) import handler."""

from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from src.models.remote_import import RemoteImportRequest, RemoteImportResponse
from src.utils.errors import RemoteImportError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class RemoteImportClient:
    """Posts a parsed batch to the remote import handler in a single request."""

    def __init__(
        self,
        url: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def submit(self, request: RemoteImportRequest, access_token: Optional[str]) -> RemoteImportResponse:
        """
        Submit the batch under the caller's bearer credential.

        Raises RemoteImportError on a missing URL or credential, a transport
        failure, a non-2xx status, or a body reporting success: false.
        """
        if not self.url:
            raise RemoteImportError("Remote import handler URL is not configured")
        if not access_token:
            raise RemoteImportError("Not authenticated")

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.url,
                    json=request.model_dump(mode="json", by_alias=True),
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise RemoteImportError(f"Remote import handler network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success:
            error = body.get("error") if isinstance(body, dict) else None
            raise RemoteImportError(error or f"Remote import handler returned HTTP {response.status_code}")

        try:
            result = RemoteImportResponse.model_validate(body)
        except PydanticValidationError as e:
            raise RemoteImportError(f"Unexpected remote import handler response: {e}") from e

        if not result.success:
            raise RemoteImportError(result.error or "Remote import failed")

        logger.info(
            "Remote import handler accepted batch",
            import_id=result.import_id,
            num_listings=result.num_listings,
        )
        return result
