"""Configuration settings for the gateway server."""

import os
from typing import Optional

from common.constants import (
    DEFAULT_CHANNEL_COOLDOWN_SECONDS,
    DEFAULT_PART_SIZE,
    DEFAULT_SIZE_UNIT,
)


DATABASE_PATH = os.environ.get("NITRO_DATABASE_PATH", "/app/data/catalog.db")

GATEWAY_HOST = os.environ.get("NITRO_GATEWAY_HOST", "0.0.0.0")

GATEWAY_PORT = int(os.environ.get("NITRO_GATEWAY_PORT", "8000"))

# Newline-delimited webhook URLs, '#' lines are comments
WEBHOOKS_FILE = os.environ.get("NITRO_WEBHOOKS_FILE", "webhooks.txt")

CHANNEL_COOLDOWN_SECONDS = float(
    os.environ.get("NITRO_CHANNEL_COOLDOWN_SECONDS", str(DEFAULT_CHANNEL_COOLDOWN_SECONDS))
)


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    return float(value)


# Unset means acquire waits as long as it takes for a channel to cool down
CHANNEL_MAX_WAIT_SECONDS = _optional_float(os.environ.get("NITRO_CHANNEL_MAX_WAIT_SECONDS"))

DEFAULT_PART_SIZE_VALUE = int(os.environ.get("NITRO_DEFAULT_PART_SIZE", str(DEFAULT_PART_SIZE)))

DEFAULT_PART_SIZE_UNIT = os.environ.get("NITRO_DEFAULT_SIZE_UNIT", DEFAULT_SIZE_UNIT).upper()

DEFAULT_DIRECTORY_ID = 1

BOT_TOKEN = os.environ.get("NITRO_BOT_TOKEN")

DISCORD_API_BASE = os.environ.get("NITRO_DISCORD_API_BASE", "https://discord.com/api/v10")
