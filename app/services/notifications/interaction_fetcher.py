"""
Raw interaction fetcher.

Queries the content repository for every post and video authored by the
subject user, with their nested likes and comments and the actors'
profile fields dereferenced. The result is handed to the aggregator
untouched.

Fetch failures are soft: the caller always gets a RawInteractionData,
with `failed` set instead of an exception.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from common.content import SanityClient
from common.utils.exceptions import ContentRepositoryException
from app.services.notifications.types import RawInteractionData, RAW_COLLECTIONS

logger = logging.getLogger(__name__)

_ACTOR_PROJECTION = """{
          _id,
          firstName,
          lastName,
          username,
          "avatar": profile.avatar,
          isVerified,
          isBlueVerified
        }"""

_ELIGIBLE = "(!defined(_createdAt) || _createdAt >= $since)"

INTERACTIONS_QUERY = f"""{{
  "postLikes": *[_type == "post" && author._ref == $userId] {{
    _id,
    title,
    "snippet": content[0..50],
    "likedBy": likes[{_ELIGIBLE}]{{ _ref, _key, _createdAt }},
    "likedByUsers": likes[{_ELIGIBLE}]->{_ACTOR_PROJECTION}
  }},
  "postComments": *[_type == "post" && author._ref == $userId] {{
    _id,
    title,
    "snippet": content[0..50],
    "comments": comments[{_ELIGIBLE}] {{
      _key,
      text,
      _createdAt,
      author->{_ACTOR_PROJECTION}
    }}
  }},
  "videoLikes": *[_type == "video" && author._ref == $userId] {{
    _id,
    title,
    thumbnail,
    "likedBy": likedBy[{_ELIGIBLE}]{{ _ref, _key, _createdAt }},
    "likedByUsers": likedBy[{_ELIGIBLE}]->{_ACTOR_PROJECTION}
  }},
  "videoComments": *[_type == "video" && author._ref == $userId] {{
    _id,
    title,
    thumbnail,
    "comments": comments[{_ELIGIBLE}] {{
      _key,
      text,
      _createdAt,
      author->{_ACTOR_PROJECTION}
    }}
  }}
}}"""


class InteractionFetcher:
    """Fetches raw like/comment data for a subject user's content."""

    def __init__(self, client: SanityClient, lookback_days: int = 30):
        """
        Initialize InteractionFetcher.

        Args:
            client: Content repository client
            lookback_days: Default lookback window
        """
        self._client = client
        self._lookback_days = lookback_days

    @property
    def lookback_days(self) -> int:
        return self._lookback_days

    async def fetch(
        self,
        subject_user_id: Optional[str],
        lookback_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> RawInteractionData:
        """
        Fetch content items and interactions for a subject user.

        Args:
            subject_user_id: Owner of the content
            lookback_days: Override of the default lookback window
            now: Reference time for the window (defaults to current UTC time)

        Returns:
            RawInteractionData; empty when there is no user, `failed` when
            the repository query failed
        """
        if not subject_user_id:
            logger.warning("No subject user provided to interaction fetcher")
            return RawInteractionData()

        now = now or datetime.now(timezone.utc)
        days = lookback_days if lookback_days is not None else self._lookback_days
        since = (now - timedelta(days=days)).isoformat()

        try:
            result = await self._client.fetch(
                INTERACTIONS_QUERY,
                {"userId": subject_user_id, "since": since},
            )
        except ContentRepositoryException as e:
            logger.warning(f"Interaction query failed for user {subject_user_id}: {e}")
            return RawInteractionData.failure(e.message)
        except Exception as e:
            logger.error(f"Unexpected error fetching interactions for user {subject_user_id}: {e}")
            return RawInteractionData.failure("Unexpected error querying content repository")

        if not isinstance(result, dict):
            logger.warning(f"Interaction query returned {type(result).__name__}, expected object")
            return RawInteractionData.failure("Content repository returned an invalid response")

        collections = {}
        for name in RAW_COLLECTIONS.values():
            items = result.get(name) or []
            collections[name] = [item for item in items if isinstance(item, dict)]

        logger.debug(
            f"Fetched interactions for user {subject_user_id}: "
            + ", ".join(f"{name}={len(items)}" for name, items in collections.items())
        )
        return RawInteractionData(collections=collections)
