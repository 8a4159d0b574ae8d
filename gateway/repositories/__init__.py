"""Repository layer for data access."""

from gateway.repositories.partial_repository import PartialRepository

__all__ = [
    "PartialRepository",
]
