"""Shared pytest fixtures for all tests."""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from common.types import StoredPart
from gateway.database import init_database


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def test_db(monkeypatch) -> Generator[Path, None, None]:
    """
    Create a temporary catalog database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("gateway.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("gateway.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def webhooks_file(tmp_path):
    """
    Create a webhooks file with comments and blank lines.

    Returns:
        Path to the webhooks file
    """
    path = tmp_path / "webhooks.txt"
    path.write_text(
        "# primary channels\n"
        "https://hooks.test/api/webhooks/1/aaa\n"
        "\n"
        "   https://hooks.test/api/webhooks/2/bbb   \n"
        "#https://hooks.test/api/webhooks/3/disabled\n"
        "https://hooks.test/api/webhooks/4/ccc\n"
    )
    return path


def make_stored_part(
    sequence_index: int,
    part_name: str,
    channel_id: str = "chan-1",
    message_id: str = None,
    size_bytes: int = 0,
    original_filename: str = "data.bin",
) -> StoredPart:
    return StoredPart(
        partial_id=sequence_index,
        channel_id=channel_id,
        message_id=message_id or f"msg-{sequence_index}",
        directory_id=1,
        part_name=part_name,
        sequence_index=sequence_index,
        size_bytes=size_bytes,
        original_filename=original_filename,
        description="",
        mime_type="application/octet-stream",
        uploaded_via_channel=True,
    )


class FakeRetriever:
    """Resolves every part to a CDN URL carrying its name; records each call."""

    def __init__(self, base_url: str = "https://cdn.test", fail_times: dict = None):
        self.base_url = base_url
        self.calls = []
        self.fail_times = dict(fail_times or {})

    async def resolve_fetch_url(self, channel_id, message_id, part_name, via_channel):
        from gateway.exceptions import RetrieverError

        self.calls.append(part_name)
        if self.fail_times.get(part_name, 0) > 0:
            self.fail_times[part_name] -= 1
            raise RetrieverError(f"Message {message_id} not found or deleted")
        return f"{self.base_url}/attachments/{channel_id}/{message_id}/{part_name}"
