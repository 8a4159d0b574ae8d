"""Deterministic chunking of a byte stream into ordered, named parts."""

import math
import re
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from common.constants import (
    CHANNEL_MAX_PAYLOAD_BYTES,
    DEFAULT_NUM_PARTS,
    PART_EXTENSION,
    PART_INDEX_WIDTH,
    SAFETY_MARGIN_BYTES,
    SIZE_UNITS,
    STREAM_PIECE_SIZE_BYTES,
)
from common.logging_config import get_logger
from common.types import Part, SplitByParts, SplitBySize, SplitConfig, SplitJob
from gateway.config import DEFAULT_PART_SIZE_UNIT, DEFAULT_PART_SIZE_VALUE
from gateway.exceptions import InputError, UnsupportedSplitModeError
from gateway.utils import generate_uuid

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s")


def normalize_prefix(prefix: Optional[str], original_filename: str) -> str:
    """
    Derive the part name prefix.

    Falls back to the original filename without its last extension when no
    prefix is given. Whitespace becomes underscores.

    Raises:
        InputError: If the prefix is empty or contains a path separator
    """
    if prefix is None or not prefix.strip():
        stem, dot, _ = original_filename.rpartition(".")
        prefix = stem if dot and stem else original_filename

    prefix = _WHITESPACE.sub("_", prefix.strip())

    if not prefix:
        raise InputError("File prefix cannot be empty")
    if "/" in prefix or "\\" in prefix:
        raise InputError(f"File prefix cannot contain path separators: {prefix!r}")

    return prefix


def part_name(prefix: str, sequence_index: int) -> str:
    return f"{prefix}.part{sequence_index:0{PART_INDEX_WIDTH}d}.{PART_EXTENSION}"


def effective_part_size(max_part_size: int) -> int:
    """
    Bytes available to part content once the safety margin is reserved.

    Raises:
        InputError: If nothing is left after the margin
    """
    effective = max_part_size - SAFETY_MARGIN_BYTES
    if effective <= 0:
        raise InputError(
            f"Part size {max_part_size} bytes must exceed the {SAFETY_MARGIN_BYTES} byte safety margin"
        )
    return effective


def expected_part_count(total_size: int, max_part_size: int) -> int:
    return math.ceil(total_size / effective_part_size(max_part_size))


def resolve_split_config(
    method: Optional[str] = "size",
    part_size: Optional[int] = None,
    size_unit: Optional[str] = None,
    num_parts: Optional[int] = None,
    use_channels: bool = False,
) -> SplitConfig:
    """
    Turn split form parameters into a SplitConfig.

    Uploading through channels forces the channel payload limit regardless of
    the requested size.
    """
    if use_channels:
        return SplitBySize(CHANNEL_MAX_PAYLOAD_BYTES)

    if (method or "size") == "size":
        size = part_size if part_size is not None else DEFAULT_PART_SIZE_VALUE
        unit = (size_unit or DEFAULT_PART_SIZE_UNIT).upper()
        multiplier = SIZE_UNITS.get(unit, SIZE_UNITS["MB"])
        return SplitBySize(size * multiplier)

    return SplitByParts(num_parts if num_parts is not None else DEFAULT_NUM_PARTS)


def _copy_window(content: BinaryIO, destination: Path, length: int) -> int:
    written = 0
    with open(destination, "wb") as out:
        while written < length:
            piece = content.read(min(STREAM_PIECE_SIZE_BYTES, length - written))
            if not piece:
                break
            out.write(piece)
            written += len(piece)
    return written


def split(
    content: BinaryIO,
    total_size: int,
    max_part_size: int,
    prefix: str,
    original_filename: str,
    working_dir: Optional[Path] = None,
) -> SplitJob:
    """
    Split a binary stream into fixed-size parts staged on local disk.

    Every part but the last holds exactly ``max_part_size - SAFETY_MARGIN_BYTES``
    bytes. Bytes are copied unchanged.

    Args:
        content: Readable binary stream positioned at the start of the file
        total_size: Number of bytes to split
        max_part_size: Channel payload limit in bytes
        prefix: Already normalized part name prefix
        original_filename: Name of the file being split
        working_dir: Directory for the part files (a fresh temp dir by default)

    Returns:
        SplitJob owning the staged parts

    Raises:
        InputError: On empty input, a short stream or an unusable part size
    """
    if total_size <= 0:
        raise InputError("Cannot split an empty file")

    effective = effective_part_size(max_part_size)
    part_count = math.ceil(total_size / effective)

    if working_dir is None:
        working_dir = Path(tempfile.mkdtemp(prefix=f"split-{prefix}-"))
    else:
        working_dir.mkdir(parents=True, exist_ok=True)

    job = SplitJob(
        original_filename=original_filename,
        total_size_bytes=total_size,
        working_dir=working_dir,
    )

    logger.info(
        f"Splitting {original_filename}: {total_size} bytes into {part_count} parts "
        f"of max {effective} bytes each"
    )

    try:
        for offset_index in range(part_count):
            sequence_index = offset_index + 1
            expected = min(effective, total_size - offset_index * effective)
            name = part_name(prefix, sequence_index)
            path = working_dir / name

            written = _copy_window(content, path, expected)
            if written != expected:
                raise InputError(
                    f"Input ended after {offset_index * effective + written} of {total_size} bytes"
                )

            job.parts.append(
                Part(
                    part_id=generate_uuid(),
                    sequence_index=sequence_index,
                    name=name,
                    size_bytes=written,
                    path=path,
                )
            )
            logger.debug(f"Created part {sequence_index}: {written} bytes")
    except Exception:
        job.cleanup()
        raise

    return job


def split_with_config(
    content: BinaryIO,
    total_size: int,
    config: SplitConfig,
    prefix: str,
    original_filename: str,
    working_dir: Optional[Path] = None,
) -> SplitJob:
    """
    Dispatch on the split mode. Only split-by-size has defined behaviour.

    Raises:
        UnsupportedSplitModeError: For SplitByParts
    """
    if isinstance(config, SplitByParts):
        raise UnsupportedSplitModeError(
            f"Splitting into a fixed number of parts ({config.num_parts}) is not supported; "
            f"use split-by-size"
        )
    return split(content, total_size, config.size_bytes, prefix, original_filename, working_dir)
