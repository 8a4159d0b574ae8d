"""Pydantic schemas for multipart file endpoints."""

from typing import List, Optional
from pydantic import BaseModel


class PartInfoResponse(BaseModel):
    """One part produced by a split request."""
    id: str
    name: str
    size: int
    uploaded: bool = False
    channel_id: Optional[str] = None
    message_id: Optional[str] = None


class SplitResponse(BaseModel):
    """Response model for split (and upload) requests."""
    success: bool
    message: Optional[str] = None
    parts: List[PartInfoResponse] = []


class StoredFileResponse(BaseModel):
    """A logical file reassembled from its recorded parts."""
    original_filename: str
    mime_type: str
    directory_id: int
    size: int
    part_count: int
    description: str
    created_at: Optional[str] = None


class ListStoredFilesResponse(BaseModel):
    files: List[StoredFileResponse]


class DeleteStoredFileResponse(BaseModel):
    original_filename: str
    directory_id: int
    deleted_parts: int
