"""Service locator for the process-wide multipart service."""

from typing import Optional

from gateway.services.multipart_service import MultipartService

_multipart_service: Optional[MultipartService] = None


def set_multipart_service(service: Optional[MultipartService]):
    """Set global multipart service instance"""
    global _multipart_service
    _multipart_service = service


def get_multipart_service() -> MultipartService:
    """Get global multipart service instance, creating a catalog-only one if unset"""
    global _multipart_service
    if _multipart_service is None:
        _multipart_service = MultipartService()
    return _multipart_service
