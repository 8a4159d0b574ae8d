"""Shared data type definitions (Part, SplitJob, StoredPart, UploadResult, etc.)."""

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union


@dataclass(frozen=True)
class Part:
    """
    One bounded-size contiguous slice of an original file, staged on local disk.
    """
    part_id: str
    sequence_index: int
    name: str
    size_bytes: int
    path: Path


@dataclass
class SplitJob:
    """
    Result of splitting one file. Owns the temporary directory holding the parts.
    """
    original_filename: str
    total_size_bytes: int
    working_dir: Path
    parts: List[Part] = field(default_factory=list)

    @property
    def part_count(self) -> int:
        return len(self.parts)

    def cleanup(self) -> None:
        """Discard the staged part files."""
        shutil.rmtree(self.working_dir, ignore_errors=True)

    def __enter__(self) -> "SplitJob":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


@dataclass(frozen=True, eq=False)
class Channel:
    """
    Handle for one outbound upload endpoint. Use timestamps live inside the pool.
    """
    endpoint: str


@dataclass(frozen=True)
class UploadResult:
    success: bool
    channel_id: Optional[str] = None
    message_id: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass(frozen=True)
class StoredPart:
    """
    Catalog row locating one uploaded part.
    """
    partial_id: int
    channel_id: str
    message_id: str
    directory_id: int
    part_name: str
    sequence_index: int
    size_bytes: int
    original_filename: str
    description: str
    mime_type: str
    uploaded_via_channel: bool
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class StoredFileSummary:
    """
    Grouped view of all parts recorded for one logical file in a directory.
    """
    original_filename: str
    mime_type: str
    directory_id: int
    size: int
    part_count: int
    description: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SplitBySize:
    size_bytes: int


@dataclass(frozen=True)
class SplitByParts:
    num_parts: int


SplitConfig = Union[SplitBySize, SplitByParts]


@dataclass(frozen=True)
class PartOutcome:
    id: str
    name: str
    size: int
    uploaded: bool = False
    channel_id: Optional[str] = None
    message_id: Optional[str] = None


@dataclass(frozen=True)
class SplitOutcome:
    success: bool
    message: str
    parts: List[PartOutcome] = field(default_factory=list)
