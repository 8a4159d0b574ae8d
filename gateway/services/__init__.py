"""Service layer for business logic."""

from gateway.services.multipart_service import MultipartService

__all__ = [
    "MultipartService",
]
