"""
Interaction feed application settings.

Extends the base settings with content repository and notification
feed configuration.
"""

from typing import Optional
from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Notification feed settings."""

    # ==========================================================================
    # Content Repository (Sanity)
    # ==========================================================================
    SANITY_PROJECT_ID: str = ""
    SANITY_DATASET: str = "production"
    SANITY_API_VERSION: str = "2023-03-01"
    SANITY_API_TOKEN: Optional[str] = None
    SANITY_USE_CDN: bool = False
    SANITY_TIMEOUT_SECONDS: float = 10.0

    # ==========================================================================
    # Notification Feed
    # ==========================================================================
    # Only interactions newer than this are eligible for notifications
    NOTIFICATION_LOOKBACK_DAYS: int = 30

    # Periodic refresh while a subject user is active
    NOTIFICATION_REFRESH_INTERVAL_SECONDS: float = 300.0

    # Upper bound on a single fetch (repository query + aggregation)
    NOTIFICATION_FETCH_TIMEOUT_SECONDS: float = 15.0

    # Max characters of comment text quoted in a message
    NOTIFICATION_SNIPPET_LENGTH: int = 50

    # Per-user feeds kept in memory by the API; least recently used are dropped
    NOTIFICATION_MAX_CACHED_FEEDS: int = 1000

    DEFAULT_AVATAR_URL: str = "https://via.placeholder.com/150"

    # ==========================================================================
    # Local Storage
    # ==========================================================================
    LOCAL_STORE_BACKEND: str = "mongodb"  # "mongodb" or "memory"
    LOCAL_STORE_COLLECTION: str = "localstore"
    READ_STATE_STORAGE_KEY: str = "readNotifications"
    SUBJECT_USER_STORAGE_KEY: str = "sanity_user"

    def validate_required(self) -> None:
        """
        Validate that required settings are configured.

        Raises:
            ValueError: If required settings are missing
        """
        errors = []

        if not self.SANITY_PROJECT_ID:
            errors.append("SANITY_PROJECT_ID is required")

        if self.LOCAL_STORE_BACKEND not in ("mongodb", "memory"):
            errors.append("LOCAL_STORE_BACKEND must be 'mongodb' or 'memory'")

        if self.NOTIFICATION_LOOKBACK_DAYS < 1:
            errors.append("NOTIFICATION_LOOKBACK_DAYS must be at least 1")

        if errors:
            raise ValueError("Configuration errors:\n- " + "\n- ".join(errors))


# Global settings instance
settings = Settings()
