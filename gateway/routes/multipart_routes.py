"""Multipart split/upload and reassembly API routes."""

import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from common.types import SplitOutcome, StoredFileSummary
from gateway.config import DEFAULT_DIRECTORY_ID
from gateway.schemas.multipart import (
    DeleteStoredFileResponse,
    ListStoredFilesResponse,
    PartInfoResponse,
    SplitResponse,
    StoredFileResponse,
)
from gateway.service_locator import get_multipart_service
from gateway.services.multipart_service import MultipartService
from gateway.splitter import resolve_split_config
from gateway.utils import parse_bool

router = APIRouter(prefix="/multipart", tags=["Multipart"])


def _to_split_response(outcome: SplitOutcome) -> SplitResponse:
    return SplitResponse(
        success=outcome.success,
        message=outcome.message,
        parts=[
            PartInfoResponse(
                id=part.id,
                name=part.name,
                size=part.size,
                uploaded=part.uploaded,
                channel_id=part.channel_id,
                message_id=part.message_id,
            )
            for part in outcome.parts
        ],
    )


def _to_file_response(summary: StoredFileSummary) -> StoredFileResponse:
    return StoredFileResponse(
        original_filename=summary.original_filename,
        mime_type=summary.mime_type,
        directory_id=summary.directory_id,
        size=summary.size,
        part_count=summary.part_count,
        description=summary.description,
        created_at=summary.created_at.isoformat() if summary.created_at else None,
    )


@router.post("/split", response_model=SplitResponse)
async def split_file(
    file: UploadFile = File(...),
    split_method: str = Form("size", alias="split-method"),
    part_size: Optional[int] = Form(None, alias="part-size"),
    size_unit: Optional[str] = Form(None, alias="size-unit"),
    num_parts: Optional[int] = Form(None, alias="num-parts"),
    use_webhook: Optional[str] = Form(None, alias="use-webhook"),
    directory_id: int = Form(DEFAULT_DIRECTORY_ID, alias="directory-id"),
    file_prefix: Optional[str] = Form(None, alias="file-prefix"),
    file_description: str = Form("", alias="file-description"),
    service: MultipartService = Depends(get_multipart_service),
):
    """
    Split an uploaded file into parts, optionally pushing them to the webhook channels.

    Parameters:
        - file: File to split (multipart/form-data)
        - split-method: "size" (only supported mode) or "parts"
        - part-size / size-unit: Maximum part size, unit KB, MB or GB (default 25 MB)
        - use-webhook: Upload parts through the channel pool (forces 10 MB parts)
        - directory-id: Catalog directory to record the parts in
        - file-prefix: Part name prefix (defaults to the filename without extension)
        - file-description: Stored alongside every part

    Raises:
        - 400: Empty file, bad prefix or unsupported split mode
        - 409: A part name already exists in the directory
        - 503: No upload channel available
    """
    use_channels = parse_bool(use_webhook)
    config = resolve_split_config(
        method=split_method,
        part_size=part_size,
        size_unit=size_unit,
        num_parts=num_parts,
        use_channels=use_channels,
    )

    file.file.seek(0, os.SEEK_END)
    total_size = file.file.tell()
    file.file.seek(0)

    outcome = await service.split_and_maybe_upload(
        file_data=file.file,
        filename=file.filename or "upload",
        total_size=total_size,
        config=config,
        prefix=file_prefix,
        directory_id=directory_id,
        description=file_description,
        upload=use_channels,
    )

    return _to_split_response(outcome)


@router.get("/files", response_model=ListStoredFilesResponse)
async def list_files(
    directory_id: int = Query(DEFAULT_DIRECTORY_ID),
    search: Optional[str] = Query(None),
    service: MultipartService = Depends(get_multipart_service),
):
    """
    List logical files assembled from recorded parts in a directory.
    """
    summaries = service.list_files(directory_id, search)
    return ListStoredFilesResponse(files=[_to_file_response(summary) for summary in summaries])


@router.get("/files/{filename}/download")
async def download_file(
    filename: str,
    directory_id: int = Query(DEFAULT_DIRECTORY_ID),
    service: MultipartService = Depends(get_multipart_service),
):
    """
    Stream a file reassembled from its parts.

    Raises:
        - 404: No parts recorded for the file
    """
    summary, stream = service.open_stream(filename, directory_id)

    return StreamingResponse(
        stream,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{summary.original_filename}"',
            "Content-Length": str(summary.size),
        }
    )


@router.delete("/files/{filename}", response_model=DeleteStoredFileResponse)
async def delete_file(
    filename: str,
    directory_id: int = Query(DEFAULT_DIRECTORY_ID),
    service: MultipartService = Depends(get_multipart_service),
):
    """
    Forget every recorded part of a file. Uploaded messages are left in place.
    """
    deleted = service.delete_file(filename, directory_id)
    return DeleteStoredFileResponse(
        original_filename=filename,
        directory_id=directory_id,
        deleted_parts=deleted,
    )
