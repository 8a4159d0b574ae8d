"""HTTP client pushing one part to one webhook channel."""

import mimetypes
from typing import Optional

import httpx

from common.constants import (
    DEFAULT_MIME_TYPE,
    UPLOAD_CONNECT_TIMEOUT_SECONDS,
    UPLOAD_READ_TIMEOUT_SECONDS,
    UPLOAD_WRITE_TIMEOUT_SECONDS,
)
from common.logging_config import get_logger
from common.types import Channel, Part, UploadResult
from gateway.channel_pool import ChannelPool
from gateway.exceptions import MalformedResponseError

logger = get_logger(__name__)


def default_upload_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=UPLOAD_CONNECT_TIMEOUT_SECONDS,
        read=UPLOAD_READ_TIMEOUT_SECONDS,
        write=UPLOAD_WRITE_TIMEOUT_SECONDS,
        pool=UPLOAD_CONNECT_TIMEOUT_SECONDS,
    )


def guess_mime_type(name: str) -> str:
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or DEFAULT_MIME_TYPE


def parse_location(payload) -> tuple:
    """
    Extract (channel_id, message_id) from a webhook message payload.

    Raises:
        MalformedResponseError: If either identifier is missing
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("Upload response is not a JSON object")

    channel_id = payload.get("channel_id")
    message_id = payload.get("id")

    if not channel_id or not message_id:
        raise MalformedResponseError("Could not extract channel/message IDs from response")

    return str(channel_id), str(message_id)


class ChannelUploader:
    """
    Sends parts as single-file multipart requests to webhook channels.

    No retry happens here; a failed part is reported through UploadResult and
    the caller decides what to do with it.
    """

    def __init__(
        self,
        pool: ChannelPool,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
    ):
        self.pool = pool
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or default_upload_timeout())

    async def close(self):
        """Close the HTTP client if this uploader created it."""
        if self._owns_client:
            await self._client.aclose()

    async def upload_next(self, part: Part) -> UploadResult:
        """
        Acquire the next ready channel from the pool and upload the part to it.
        """
        channel = await self.pool.acquire()
        return await self.upload(part, channel)

    async def upload(self, part: Part, channel: Channel) -> UploadResult:
        """
        Upload one part to one channel.

        Args:
            part: Staged part to send
            channel: Channel previously acquired from the pool

        Returns:
            UploadResult with the channel/message ids on success
        """
        if not part.path.exists():
            return UploadResult(False, error=f"File does not exist: {part.path}")

        mime_type = guess_mime_type(part.name)
        data = part.path.read_bytes()

        await self.pool.release(channel)

        try:
            response = await self._client.post(
                channel.endpoint,
                params={"wait": "true"},
                files={"file": (part.name, data, mime_type)},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Network error uploading {part.name} to {channel.endpoint}: {e}")
            return UploadResult(False, error=f"Network error: {e}")

        if not response.is_success:
            logger.warning(
                f"Upload of {part.name} rejected: HTTP {response.status_code} {response.reason_phrase}"
            )
            return UploadResult(
                False,
                error=f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        if not response.content:
            return UploadResult(
                False,
                error="Empty response from channel",
                status_code=response.status_code,
            )

        try:
            channel_id, message_id = parse_location(response.json())
        except ValueError as e:
            logger.error(f"Failed to parse upload response for {part.name}: {response.text}")
            return UploadResult(
                False,
                error=f"Failed to parse channel response: {e}",
                status_code=response.status_code,
            )
        except MalformedResponseError as e:
            logger.error(f"Upload response for {part.name} lacks location ids: {response.text}")
            return UploadResult(False, error=str(e), status_code=response.status_code)

        logger.info(f"Uploaded {part.name} [channel_id={channel_id}, message_id={message_id}]")
        return UploadResult(
            True,
            channel_id=channel_id,
            message_id=message_id,
            status_code=response.status_code,
        )
