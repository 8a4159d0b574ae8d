"""API routes package."""

from gateway.routes.multipart_routes import router as multipart_router

__all__ = ["multipart_router"]
