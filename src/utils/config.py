"""Application configuration with environment variable support."""

import os
from datetime import tzinfo, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class AppConfig:
    """Centralized application configuration."""

    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development").lower()
    SERVICE_NAME = os.environ.get("SERVICE_NAME", "volunteerhub-backend")
    # Timezone used to interpret naive timestamps coming back from storage
    DATETIME_TIMEZONE = os.environ.get("DATETIME_TIMEZONE", "UTC")

    @classmethod
    def timezone(cls) -> tzinfo:
        """Resolve DATETIME_TIMEZONE, falling back to UTC for unknown names."""
        try:
            return ZoneInfo(cls.DATETIME_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            return timezone.utc

    @classmethod
    def is_test(cls) -> bool:
        return cls.ENVIRONMENT == "test"
