"""Utility helper functions for the gateway."""

import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def get_current_timestamp() -> str:
    """
    Get current timestamp in ISO format.

    Returns:
        Current UTC timestamp as ISO format string
    """
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """
    Parse an HTML form boolean ("true", "on", "1").

    Args:
        value: Raw form value, may be None

    Returns:
        Parsed boolean, or default when the value is missing
    """
    if value is None:
        return default
    return value.strip().lower() in ("true", "on", "1", "yes")
