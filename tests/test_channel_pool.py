"""Tests for the cooldown-aware channel scheduler."""

import asyncio
import dataclasses
from collections import defaultdict

import pytest

from common.types import Channel
from gateway.channel_pool import ChannelPool, load_channel_endpoints
from gateway.exceptions import ChannelUnavailableError, ConfigurationError


def _pool(clock, endpoints=("a", "b", "c"), **kwargs) -> ChannelPool:
    return ChannelPool(list(endpoints), clock=clock, sleep=clock.sleep, **kwargs)


class TestLoadChannelEndpoints:
    """Test reading the webhooks file."""

    def test_ignores_comments_and_blank_lines(self, webhooks_file):
        endpoints = load_channel_endpoints(webhooks_file)

        assert endpoints == [
            "https://hooks.test/api/webhooks/1/aaa",
            "https://hooks.test/api/webhooks/2/bbb",
            "https://hooks.test/api/webhooks/4/ccc",
        ]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_channel_endpoints(tmp_path / "missing.txt")

    def test_only_comments(self, tmp_path):
        path = tmp_path / "webhooks.txt"
        path.write_text("# nothing here\n\n")

        with pytest.raises(ConfigurationError):
            load_channel_endpoints(path)

    def test_from_file(self, webhooks_file, clock):
        pool = ChannelPool.from_file(webhooks_file, cooldown_seconds=2.0, clock=clock, sleep=clock.sleep)

        assert len(pool) == 3
        assert pool.cooldown_seconds == 2.0
        assert pool.endpoints[0] == "https://hooks.test/api/webhooks/1/aaa"


class TestChannelPool:
    """Test channel acquisition and release."""

    def test_requires_endpoints(self, clock):
        with pytest.raises(ConfigurationError):
            ChannelPool([], clock=clock, sleep=clock.sleep)

    @pytest.mark.asyncio
    async def test_rotates_in_order(self, clock):
        pool = _pool(clock)

        acquired = [(await pool.acquire()).endpoint for _ in range(3)]

        assert acquired == ["a", "b", "c"]
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_cursor_persists_between_calls(self, clock):
        pool = _pool(clock)

        first = await pool.acquire()
        clock.now += 5
        second = await pool.acquire()
        third = await pool.acquire()
        fourth = await pool.acquire()

        assert first.endpoint == "a"
        assert second.endpoint == "b"
        assert third.endpoint == "c"
        assert fourth.endpoint == "a"

    @pytest.mark.asyncio
    async def test_skips_channels_still_cooling_down(self, clock):
        pool = _pool(clock, cooldown_seconds=1.0)

        await pool.acquire()
        clock.now += 0.5
        await pool.acquire()
        clock.now += 0.6
        await pool.acquire()

        assert (await pool.acquire()).endpoint == "a"
        # b clears first at 1001.5
        assert (await pool.acquire()).endpoint == "b"
        assert clock.sleeps == [pytest.approx(0.4)]

    @pytest.mark.asyncio
    async def test_waits_for_earliest_channel(self, clock):
        pool = _pool(clock, endpoints=("a", "b"), cooldown_seconds=1.0)

        await pool.acquire()
        clock.now += 0.25
        await pool.acquire()

        third = await pool.acquire()

        assert third.endpoint == "a"
        assert clock.sleeps == [pytest.approx(0.75)]
        assert clock.now == pytest.approx(1001.0)

    @pytest.mark.asyncio
    async def test_no_channel_reused_within_cooldown(self, clock):
        pool = _pool(clock, cooldown_seconds=1.0)
        returned_at = defaultdict(list)

        for step in range(30):
            channel = await pool.acquire()
            returned_at[channel.endpoint].append(clock())
            clock.now += 0.1 * (step % 4)

        for times in returned_at.values():
            gaps = [later - earlier for earlier, later in zip(times, times[1:])]
            assert all(gap >= 1.0 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_concurrent_acquirers_respect_cooldown(self, clock):
        pool = _pool(clock, endpoints=("a", "b"), cooldown_seconds=1.0)
        returned_at = defaultdict(list)

        async def worker():
            channel = await pool.acquire()
            returned_at[channel.endpoint].append(clock())

        await asyncio.gather(*(worker() for _ in range(6)))

        assert sum(len(times) for times in returned_at.values()) == 6
        for times in returned_at.values():
            ordered = sorted(times)
            gaps = [later - earlier for earlier, later in zip(ordered, ordered[1:])]
            assert all(gap >= 1.0 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_bounded_wait_raises(self, clock):
        pool = _pool(clock, endpoints=("a",), cooldown_seconds=1.0, max_wait_seconds=0.5)

        await pool.acquire()

        with pytest.raises(ChannelUnavailableError):
            await pool.acquire()
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_release_moves_cooldown_to_dispatch_time(self, clock):
        pool = _pool(clock, endpoints=("a",), cooldown_seconds=1.0)

        channel = await pool.acquire()
        await pool.release(channel, 1000.5)
        clock.now = 1001.2

        again = await pool.acquire()

        assert again is channel
        assert clock.sleeps == [pytest.approx(0.3)]

    @pytest.mark.asyncio
    async def test_release_never_moves_cooldown_backwards(self, clock):
        pool = _pool(clock, endpoints=("a",), cooldown_seconds=1.0)

        channel = await pool.acquire()
        await pool.release(channel, 999.0)

        assert pool.last_used(channel) == 1000.0

    @pytest.mark.asyncio
    async def test_release_foreign_channel(self, clock):
        pool = _pool(clock)

        with pytest.raises(ValueError):
            await pool.release(Channel(endpoint="a"), 1000.0)

    @pytest.mark.asyncio
    async def test_acquired_handle_is_read_only(self, clock):
        pool = _pool(clock, endpoints=("a",), cooldown_seconds=1.0)

        channel = await pool.acquire()

        with pytest.raises(dataclasses.FrozenInstanceError):
            channel.last_used = 0.0
        assert pool.last_used(channel) == 1000.0

    @pytest.mark.asyncio
    async def test_duplicate_endpoints_tracked_separately(self, clock):
        pool = _pool(clock, endpoints=("a", "a"), cooldown_seconds=1.0)

        first = await pool.acquire()
        second = await pool.acquire()

        assert first is not second
        assert clock.sleeps == []
