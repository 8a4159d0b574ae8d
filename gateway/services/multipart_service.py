"""Split/upload and reassembly orchestration over the part catalog."""

import asyncio
from typing import AsyncIterator, BinaryIO, List, Optional, Tuple

from common.constants import DEFAULT_MIME_TYPE
from common.logging_config import get_logger
from common.types import (
    Part,
    PartOutcome,
    SplitConfig,
    SplitJob,
    SplitOutcome,
    StoredFileSummary,
    StoredPart,
)
from gateway.exceptions import CatalogError, NameConflictError, NitroException, PartNotFoundError
from gateway.reassembler import Reassembler, Sink
from gateway.repositories.partial_repository import PartialRepository
from gateway.splitter import normalize_prefix, split_with_config
from gateway.uploader import ChannelUploader

logger = get_logger(__name__)


def _not_uploaded(part: Part) -> PartOutcome:
    return PartOutcome(id=part.part_id, name=part.name, size=part.size_bytes, uploaded=False)


class MultipartService:
    def __init__(
        self,
        catalog: Optional[PartialRepository] = None,
        uploader: Optional[ChannelUploader] = None,
        reassembler: Optional[Reassembler] = None,
    ):
        self.catalog = catalog or PartialRepository()
        self.uploader = uploader
        self.reassembler = reassembler

    async def split_and_maybe_upload(
        self,
        file_data: BinaryIO,
        filename: str,
        total_size: int,
        config: SplitConfig,
        prefix: Optional[str] = None,
        directory_id: int = 1,
        description: str = "",
        upload: bool = False,
    ) -> SplitOutcome:
        """
        Split a file and, when requested, push every part through the channel pool.

        Upload failures of individual parts are reported per part; the overall
        outcome succeeds if at least one part was uploaded and recorded. A part
        name already present in the directory aborts before anything is sent.

        Raises:
            InputError: On empty input, a bad prefix or an unsupported split mode
            NameConflictError: If any part name is already recorded
            CatalogError: If the pre-flight name check fails
        """
        normalized = normalize_prefix(prefix, filename)
        job = split_with_config(file_data, total_size, config, normalized, filename)

        with job:
            if not upload:
                return SplitOutcome(
                    success=True,
                    message="File split successfully",
                    parts=[_not_uploaded(part) for part in job.parts],
                )

            if self.uploader is None:
                return SplitOutcome(
                    success=False,
                    message="Channel uploader not configured",
                    parts=[_not_uploaded(part) for part in job.parts],
                )

            self._check_name_conflicts(job, directory_id)
            return await self._upload_job(job, directory_id, description)

    def _check_name_conflicts(self, job: SplitJob, directory_id: int) -> None:
        for part in job.parts:
            if self.catalog.name_exists(part.name, directory_id):
                logger.warning(f"Part name {part.name} already exists in directory {directory_id}")
                raise NameConflictError(part.name, directory_id)

    async def _upload_job(self, job: SplitJob, directory_id: int, description: str) -> SplitOutcome:
        semaphore = asyncio.Semaphore(len(self.uploader.pool))
        total = job.part_count

        async def upload_part(part: Part) -> PartOutcome:
            async with semaphore:
                logger.info(f"Uploading part {part.sequence_index}/{total}: {part.name}")
                try:
                    result = await self.uploader.upload_next(part)
                except (NitroException, OSError) as e:
                    logger.warning(f"Failed to upload part {part.name}: {e}")
                    return _not_uploaded(part)

            if not result.success:
                logger.warning(f"Failed to upload part {part.name}: {result.error}")
                return _not_uploaded(part)

            try:
                partial_id = self.catalog.record_part(
                    channel_id=result.channel_id,
                    message_id=result.message_id,
                    directory_id=directory_id,
                    part_name=part.name,
                    sequence_index=part.sequence_index,
                    size_bytes=part.size_bytes,
                    original_filename=job.original_filename,
                    description=description,
                    mime_type=DEFAULT_MIME_TYPE,
                )
            except CatalogError as e:
                logger.error(f"Failed to record part {part.name} in catalog: {e}")
                return _not_uploaded(part)

            logger.info(f"Uploaded and recorded part {part.name} (partial_id: {partial_id})")
            return PartOutcome(
                id=part.part_id,
                name=part.name,
                size=part.size_bytes,
                uploaded=True,
                channel_id=result.channel_id,
                message_id=result.message_id,
            )

        outcomes = await asyncio.gather(*(upload_part(part) for part in job.parts))
        uploaded = sum(1 for outcome in outcomes if outcome.uploaded)

        if uploaded == total:
            message = f"All {uploaded} parts uploaded successfully"
        else:
            message = f"Uploaded {uploaded}/{total} parts successfully"

        logger.info(f"{job.original_filename}: {message}")
        return SplitOutcome(success=uploaded > 0, message=message, parts=list(outcomes))

    def get_ordered_parts(self, filename: str, directory_id: int) -> List[StoredPart]:
        """
        Parts of a logical file in fetch order.

        Raises:
            PartNotFoundError: If nothing is recorded or the sequence has gaps
        """
        parts = self.catalog.list_parts(filename, directory_id)
        if not parts:
            raise PartNotFoundError(f"No parts recorded for {filename} in directory {directory_id}")

        for expected, part in enumerate(parts, start=1):
            if part.sequence_index != expected:
                raise PartNotFoundError(
                    f"{filename} is missing part {expected} (found part {part.sequence_index})"
                )

        return parts

    def _require_reassembler(self) -> Reassembler:
        if self.reassembler is None:
            raise RuntimeError("Reassembler not configured")
        return self.reassembler

    async def reassemble_to_stream(self, filename: str, directory_id: int, sink: Sink) -> int:
        """
        Write the reconstructed file into the sink.

        Returns:
            Number of bytes written

        Raises:
            PartNotFoundError: If the file has no usable parts
            FetchError: If any part exhausts its fetch attempts
        """
        parts = self.get_ordered_parts(filename, directory_id)
        return await self._require_reassembler().reassemble(parts, sink)

    def open_stream(
        self, filename: str, directory_id: int
    ) -> Tuple[StoredFileSummary, AsyncIterator[bytes]]:
        """
        Look up a file and return its summary with a lazy byte stream.

        Lookup errors surface immediately; fetch errors surface while iterating.
        """
        reassembler = self._require_reassembler()
        parts = self.get_ordered_parts(filename, directory_id)
        summary = StoredFileSummary(
            original_filename=filename,
            mime_type=parts[0].mime_type,
            directory_id=directory_id,
            size=sum(part.size_bytes for part in parts),
            part_count=len(parts),
            description=parts[0].description,
            created_at=parts[-1].created_at,
        )
        return summary, reassembler.iter_parts(parts)

    def list_files(self, directory_id: int, search: Optional[str] = None) -> List[StoredFileSummary]:
        return self.catalog.list_grouped(directory_id, search)

    def delete_file(self, filename: str, directory_id: int) -> int:
        """
        Remove every recorded part of a logical file.

        Raises:
            PartNotFoundError: If nothing was recorded under that name
        """
        deleted = self.catalog.delete_parts(filename, directory_id)
        if deleted == 0:
            raise PartNotFoundError(f"No parts recorded for {filename} in directory {directory_id}")
        return deleted
