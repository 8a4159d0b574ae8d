"""Resolves stored channel/message ids to a fetchable attachment URL."""

from typing import Optional, Protocol

import httpx

from common.constants import FETCH_CONNECT_TIMEOUT_SECONDS, FETCH_READ_TIMEOUT_SECONDS
from common.logging_config import get_logger
from gateway.exceptions import RetrieverError

logger = get_logger(__name__)


class Retriever(Protocol):
    async def resolve_fetch_url(
        self,
        channel_id: str,
        message_id: str,
        part_name: str,
        via_channel: bool,
    ) -> str:
        ...


class DiscordRetriever:
    """
    Looks up the message holding a part and returns its attachment URL.

    Attachment URLs are signed and expire, so callers resolve a fresh URL on
    every fetch attempt instead of caching one.
    """

    def __init__(
        self,
        bot_token: Optional[str],
        api_base: str = "https://discord.com/api/v10",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._bot_token = bot_token
        self._api_base = api_base.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(FETCH_READ_TIMEOUT_SECONDS, connect=FETCH_CONNECT_TIMEOUT_SECONDS)
        )

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def resolve_fetch_url(
        self,
        channel_id: str,
        message_id: str,
        part_name: str,
        via_channel: bool,
    ) -> str:
        """
        Resolve the attachment named ``part_name`` on the stored message.

        Raises:
            RetrieverError: If the message or the attachment cannot be found
        """
        if not self._bot_token:
            raise RetrieverError("Bot token not configured, cannot resolve part locations")

        url = f"{self._api_base}/channels/{channel_id}/messages/{message_id}"

        try:
            response = await self._client.get(
                url,
                headers={"Authorization": f"Bot {self._bot_token}"},
            )
        except httpx.HTTPError as e:
            raise RetrieverError(f"Network error resolving {part_name}: {e}") from e

        if response.status_code == 404:
            raise RetrieverError(f"Message {message_id} not found or deleted")
        if not response.is_success:
            raise RetrieverError(
                f"HTTP {response.status_code} resolving {part_name} from message {message_id}"
            )

        try:
            attachments = response.json().get("attachments") or []
        except (ValueError, AttributeError) as e:
            raise RetrieverError(f"Malformed message payload for {part_name}: {e}") from e

        for attachment in attachments:
            if attachment.get("filename") == part_name:
                resolved = attachment.get("proxy_url") or attachment.get("url")
                if resolved:
                    logger.debug(f"Resolved {part_name} [via_channel={via_channel}]")
                    return resolved

        raise RetrieverError(f"Matching attachment {part_name} not found on message {message_id}")
