"""Sequential, retrying reconstruction of a file from its stored parts."""

import asyncio
from typing import AsyncIterator, Awaitable, BinaryIO, Callable, Optional, Protocol, Sequence

import httpx

from common.constants import (
    FETCH_BACKOFF_MS,
    FETCH_CONNECT_TIMEOUT_SECONDS,
    FETCH_MAX_ATTEMPTS,
    FETCH_READ_TIMEOUT_SECONDS,
)
from common.logging_config import get_logger
from common.types import StoredPart
from gateway.exceptions import FetchError, NitroException
from gateway.retriever import Retriever

logger = get_logger(__name__)


class Sink(Protocol):
    async def write(self, data: bytes) -> None:
        ...

    async def flush(self) -> None:
        ...


class FileSink:
    """Adapts a writable binary file object to the Sink protocol."""

    def __init__(self, fileobj: BinaryIO):
        self._fileobj = fileobj

    async def write(self, data: bytes) -> None:
        self._fileobj.write(data)

    async def flush(self) -> None:
        self._fileobj.flush()


class Reassembler:
    """
    Fetches parts strictly in the order given and forwards their bytes.

    Each part gets up to ``max_attempts`` tries. A fresh URL is resolved before
    every try since attachment URLs expire. Between tries the caller waits
    ``backoff_ms * attempt`` milliseconds. Exhausting the tries for any part
    aborts the whole reassembly; later parts are never requested.
    """

    def __init__(
        self,
        retriever: Retriever,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
        backoff_ms: int = FETCH_BACKOFF_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.retriever = retriever
        self.max_attempts = max_attempts
        self.backoff_ms = backoff_ms
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(FETCH_READ_TIMEOUT_SECONDS, connect=FETCH_CONNECT_TIMEOUT_SECONDS),
            follow_redirects=True,
        )

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def iter_parts(self, parts: Sequence[StoredPart]) -> AsyncIterator[bytes]:
        """
        Lazily yield the bytes of every part, in order.

        The iterator is single-use. Closing it early (e.g. the HTTP client went
        away) closes the in-flight response and stops before the next part.

        Raises:
            FetchError: When a part cannot be fetched
        """
        total_parts = len(parts)
        for position, part in enumerate(parts, start=1):
            logger.info(f"Fetching part {position}/{total_parts} ({part.part_name})")
            async for piece in self._iter_part(position, part):
                yield piece

    async def _iter_part(self, position: int, part: StoredPart) -> AsyncIterator[bytes]:
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            forwarded = 0
            try:
                url = await self.retriever.resolve_fetch_url(
                    part.channel_id,
                    part.message_id,
                    part.part_name,
                    part.uploaded_via_channel,
                )
                async with self._client.stream("GET", url) as response:
                    if response.status_code == 200:
                        async for piece in response.aiter_bytes():
                            forwarded += len(piece)
                            yield piece
                        logger.debug(f"Forwarded part {position} ({part.part_name}): {forwarded} bytes")
                        return
                    last_error = f"HTTP {response.status_code}"
            except (httpx.HTTPError, httpx.InvalidURL, NitroException) as e:
                if forwarded:
                    raise FetchError(
                        position,
                        part.part_name,
                        attempt,
                        f"stream interrupted after {forwarded} bytes: {e}",
                    ) from e
                last_error = str(e)

            if attempt < self.max_attempts:
                delay = self.backoff_ms * attempt / 1000
                logger.warning(
                    f"Failed to fetch part {position} ({part.part_name}), retrying in {delay}s "
                    f"(attempt {attempt}/{self.max_attempts}): {last_error}"
                )
                await self._sleep(delay)

        logger.error(
            f"Giving up on part {position} ({part.part_name}) after {self.max_attempts} attempts: {last_error}"
        )
        raise FetchError(position, part.part_name, self.max_attempts, last_error)

    async def reassemble(self, parts: Sequence[StoredPart], sink: Sink) -> int:
        """
        Stream all parts into the sink, flushing only after the last one.

        Returns:
            Number of bytes written

        Raises:
            FetchError: When a part cannot be fetched; the sink is not flushed
        """
        written = 0
        stream = self.iter_parts(parts)
        try:
            async for piece in stream:
                await sink.write(piece)
                written += len(piece)
        finally:
            await stream.aclose()

        await sink.flush()
        logger.info(f"Reassembled {len(parts)} parts, {written} bytes")
        return written
