"""Cooldown-aware rotation over a fixed pool of upload channels."""

import asyncio
import time
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from common.constants import DEFAULT_CHANNEL_COOLDOWN_SECONDS
from common.logging_config import get_logger
from common.types import Channel
from gateway.exceptions import ChannelUnavailableError, ConfigurationError

logger = get_logger(__name__)


def load_channel_endpoints(path: Union[str, Path]) -> List[str]:
    """
    Read channel endpoints from a newline-delimited file.

    Blank lines and lines starting with '#' are ignored.

    Raises:
        ConfigurationError: If the file is missing or lists no endpoints
    """
    channels_file = Path(path)
    if not channels_file.exists():
        raise ConfigurationError(f"Webhooks file not found: {channels_file}")

    endpoints = [
        line.strip()
        for line in channels_file.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]

    if not endpoints:
        raise ConfigurationError(f"No valid webhooks found in file: {channels_file}")

    logger.info(f"Loaded {len(endpoints)} webhooks from {channels_file}")
    return endpoints


class ChannelPool:
    """
    Round-robin scheduler over upload channels with a per-channel cooldown.

    The rotation cursor and last-use times live behind a single asyncio lock.
    The lock is only held for bookkeeping, never while a caller waits for a
    cooldown to expire or performs network I/O.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        cooldown_seconds: float = DEFAULT_CHANNEL_COOLDOWN_SECONDS,
        max_wait_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            endpoints: Ordered channel endpoints
            cooldown_seconds: Minimum time between two dispatches on one channel
            max_wait_seconds: Give up acquiring after this long; None waits indefinitely
            clock: Monotonic time source
            sleep: Awaitable sleep used while every channel is cooling down
        """
        if not endpoints:
            raise ConfigurationError("Channel pool requires at least one endpoint")
        if cooldown_seconds < 0:
            raise ConfigurationError("Channel cooldown cannot be negative")

        self._channels = [Channel(endpoint=endpoint) for endpoint in endpoints]
        self._last_used: Dict[Channel, float] = {}
        self._cooldown = cooldown_seconds
        self._max_wait = max_wait_seconds
        self._clock = clock
        self._sleep = sleep
        self._cursor = 0
        self._lock = asyncio.Lock()

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "ChannelPool":
        return cls(load_channel_endpoints(path), **kwargs)

    def __len__(self) -> int:
        return len(self._channels)

    @property
    def endpoints(self) -> Tuple[str, ...]:
        return tuple(channel.endpoint for channel in self._channels)

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown

    def last_used(self, channel: Channel) -> Optional[float]:
        """Monotonic time of the channel's latest acquisition or dispatch."""
        return self._last_used.get(channel)

    def _is_ready(self, channel: Channel, now: float) -> bool:
        last_used = self._last_used.get(channel)
        return last_used is None or now - last_used >= self._cooldown

    def _scan(self, now: float) -> Optional[Channel]:
        count = len(self._channels)
        for step in range(count):
            index = (self._cursor + step) % count
            channel = self._channels[index]
            if self._is_ready(channel, now):
                self._cursor = (index + 1) % count
                return channel
        return None

    def _time_until_next_ready(self, now: float) -> float:
        earliest = min(self._last_used.values())
        return max(0.0, earliest + self._cooldown - now)

    async def acquire(self) -> Channel:
        """
        Return the next channel whose cooldown has expired.

        The returned channel is stamped as used at the moment of acquisition so
        concurrent callers never receive it again within its cooldown. When all
        channels are cooling down the caller is suspended until the earliest one
        clears, then the scan is repeated.

        Raises:
            ChannelUnavailableError: If max_wait_seconds is set and exceeded
        """
        started = self._clock()

        while True:
            async with self._lock:
                now = self._clock()
                channel = self._scan(now)
                if channel is not None:
                    self._last_used[channel] = now
                    return channel
                wait = self._time_until_next_ready(now)

            if self._max_wait is not None and (now - started) + wait > self._max_wait:
                raise ChannelUnavailableError(
                    f"No upload channel available within {self._max_wait}s "
                    f"({len(self._channels)} channels cooling down)"
                )

            logger.debug(f"All {len(self._channels)} channels cooling down, waiting {wait:.3f}s")
            await self._sleep(wait)

    async def release(self, channel: Channel, timestamp: Optional[float] = None) -> None:
        """
        Record that a request was dispatched on the channel at ``timestamp``.

        The cooldown counts from the later of acquisition and dispatch.
        """
        if not any(candidate is channel for candidate in self._channels):
            raise ValueError("Channel does not belong to this pool")

        async with self._lock:
            if timestamp is None:
                timestamp = self._clock()
            last_used = self._last_used.get(channel)
            if last_used is None or timestamp > last_used:
                self._last_used[channel] = timestamp
