"""
Notification aggregator.

Turns the raw repository result into one NotificationGroup per
(interaction kind, content item). Groups are recomputed on every fetch;
their IDs are deterministic so read marks carry over between fetches.

Malformed records never abort aggregation: missing actors, avatars or
timestamps get fallback values, and records that can't be tied to a
content item are skipped with a warning.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from common.content import SanityImageUrlResolver, DEFAULT_PLACEHOLDER_URL
from app.services.notifications.formatting import format_time_ago, truncate_snippet
from app.services.notifications.types import (
    Actor,
    ContentItem,
    InteractionRecord,
    NotificationGroup,
    RawInteractionData,
    RAW_COLLECTIONS,
    INTERACTION_KINDS,
)

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"
SOMEONE = "Someone"
DEFAULT_USERNAME = "user"


def make_group_id(kind: str, content_id: str) -> str:
    return f"{kind}-group-{content_id}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class NotificationAggregator:
    """
    Groups likes and comments into notification groups.

    One group per (kind, content item) with at least one eligible
    interaction. Members are deduplicated and ordered newest first; the
    newest member is the group's latest actor and timestamp.
    """

    def __init__(
        self,
        image_resolver: Optional[SanityImageUrlResolver] = None,
        lookback_days: int = 30,
        snippet_length: int = 50,
    ):
        """
        Initialize NotificationAggregator.

        Args:
            image_resolver: Resolves avatar/thumbnail sources to URLs
            lookback_days: Interactions older than this are ignored
            snippet_length: Max characters of comment text in messages
        """
        self._image_resolver = image_resolver or SanityImageUrlResolver(
            project_id="", placeholder_url=DEFAULT_PLACEHOLDER_URL
        )
        self._lookback_days = lookback_days
        self._snippet_length = snippet_length

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    def aggregate(
        self,
        raw: RawInteractionData,
        now: Optional[datetime] = None,
    ) -> List[NotificationGroup]:
        """
        Build notification groups from raw interaction data.

        Args:
            raw: Fetcher output
            now: Reference time for the lookback window and relative times

        Returns:
            Flat list of groups across all kinds and content types, all
            with read=False
        """
        now = now or datetime.now(timezone.utc)
        items = self.parse_content_items(raw, now)

        groups: List[NotificationGroup] = []
        for item in items:
            for kind in INTERACTION_KINDS:
                group = self._build_group(item, kind, now)
                if group is not None:
                    groups.append(group)

        logger.debug(f"Aggregated {len(groups)} notification groups from {len(items)} content items")
        return groups

    def parse_content_items(
        self,
        raw: RawInteractionData,
        now: Optional[datetime] = None,
    ) -> List[ContentItem]:
        """
        Merge the four raw collections into ContentItems.

        A post appears once in postLikes and once in postComments; both
        contribute to the same ContentItem.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._lookback_days)
        items: Dict[Tuple[str, str], ContentItem] = {}

        for (content_type, kind), name in RAW_COLLECTIONS.items():
            for doc in raw.collections.get(name) or []:
                content_id = doc.get("_id") if isinstance(doc, dict) else None
                if not content_id:
                    logger.warning(f"Skipping {content_type} without _id in {name}")
                    continue

                item = items.get((content_type, content_id))
                if item is None:
                    item = self._parse_content_item(doc, content_type)
                    items[(content_type, content_id)] = item
                else:
                    self._fill_missing_fields(item, doc)

                if kind == "like":
                    records = self._parse_likes(doc, item, now)
                else:
                    records = self._parse_comments(doc, item, now)

                eligible = [r for r in records if r.created_at >= cutoff]
                item.interactions(kind).extend(eligible)

        return list(items.values())

    # ─────────────────────────────────────────────────────────────
    # Parsing
    # ─────────────────────────────────────────────────────────────

    def _parse_content_item(self, doc: Dict[str, Any], content_type: str) -> ContentItem:
        snippet = doc.get("snippet") if isinstance(doc.get("snippet"), str) else None
        return ContentItem(
            id=str(doc["_id"]),
            content_type=content_type,
            title=doc.get("title") or None,
            snippet=snippet or None,
            thumbnail=doc.get("thumbnail") or None,
        )

    def _fill_missing_fields(self, item: ContentItem, doc: Dict[str, Any]) -> None:
        if not item.title and doc.get("title"):
            item.title = doc["title"]
        if not item.snippet and isinstance(doc.get("snippet"), str):
            item.snippet = doc["snippet"] or None
        if not item.thumbnail and doc.get("thumbnail"):
            item.thumbnail = doc["thumbnail"]

    def _parse_actor(self, data: Any, fallback_id: str = "") -> Actor:
        """Build an Actor, falling back for deleted or partial profiles."""
        if not isinstance(data, dict):
            return Actor(
                id=fallback_id,
                name=UNKNOWN_USER,
                first_name=SOMEONE,
                username=DEFAULT_USERNAME,
                avatar=self._image_resolver.placeholder_url,
            )

        first_name = data.get("firstName")
        last_name = data.get("lastName")
        username = data.get("username")

        if first_name and last_name:
            name = f"{first_name} {last_name}"
        else:
            name = username or UNKNOWN_USER

        return Actor(
            id=str(data.get("_id") or fallback_id),
            name=name,
            first_name=first_name or username or SOMEONE,
            username=username or DEFAULT_USERNAME,
            avatar=self._image_resolver.resolve(data.get("avatar")),
            is_verified=bool(data.get("isVerified")),
            is_blue_verified=bool(data.get("isBlueVerified")),
        )

    def _parse_likes(
        self, doc: Dict[str, Any], item: ContentItem, now: datetime
    ) -> List[InteractionRecord]:
        """
        Join like entries to their dereferenced actors by reference ID.

        The same like key, or the same actor liking twice, collapses to
        the newest entry.
        """
        actors_by_id = {}
        for user in doc.get("likedByUsers") or []:
            if isinstance(user, dict) and user.get("_id"):
                actors_by_id[user["_id"]] = user

        by_actor: Dict[str, InteractionRecord] = {}
        seen_keys = set()

        for index, entry in enumerate(doc.get("likedBy") or []):
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed like on {item.content_type} {item.id}")
                continue

            ref = entry.get("_ref") or ""
            key = entry.get("_key") or ref or f"like-{index}"
            if key in seen_keys:
                continue
            seen_keys.add(key)

            created_at = parse_timestamp(entry.get("_createdAt")) or now
            record = InteractionRecord(
                id=str(key),
                content_id=item.id,
                content_type=item.content_type,
                kind="like",
                actor=self._parse_actor(actors_by_id.get(ref), fallback_id=ref),
                created_at=created_at,
            )

            actor_key = ref or key
            existing = by_actor.get(actor_key)
            if existing is None or record.created_at > existing.created_at:
                by_actor[actor_key] = record

        return list(by_actor.values())

    def _parse_comments(
        self, doc: Dict[str, Any], item: ContentItem, now: datetime
    ) -> List[InteractionRecord]:
        by_key: Dict[str, InteractionRecord] = {}

        for index, comment in enumerate(doc.get("comments") or []):
            if not isinstance(comment, dict):
                logger.warning(f"Skipping malformed comment on {item.content_type} {item.id}")
                continue

            key = str(comment.get("_key") or f"comment-{index}")
            text = comment.get("text")
            record = InteractionRecord(
                id=key,
                content_id=item.id,
                content_type=item.content_type,
                kind="comment",
                actor=self._parse_actor(comment.get("author")),
                created_at=parse_timestamp(comment.get("_createdAt")) or now,
                text=text if isinstance(text, str) else "",
            )

            existing = by_key.get(key)
            if existing is None or record.created_at > existing.created_at:
                by_key[key] = record

        return list(by_key.values())

    # ─────────────────────────────────────────────────────────────
    # Grouping
    # ─────────────────────────────────────────────────────────────

    def _build_group(
        self, item: ContentItem, kind: str, now: datetime
    ) -> Optional[NotificationGroup]:
        records = item.interactions(kind)
        if not records:
            return None

        members = sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)
        latest = members[0]
        title, message = self._compose_text(kind, item.content_type, members)

        group = NotificationGroup(
            id=make_group_id(kind, item.id),
            type=kind,
            title=title,
            message=message,
            content_id=item.id,
            content_type=item.content_type,
            latest_actor=latest.actor,
            created_at=latest.created_at,
            members=members,
            time=format_time_ago(latest.created_at, now),
            read=False,
        )

        if item.content_type == "video":
            group.video_title = item.title or "Your video"
            if item.thumbnail:
                group.content_image = self._image_resolver.resolve(item.thumbnail)
        else:
            group.content_snippet = item.snippet or item.title or "Your post"

        return group

    def _compose_text(
        self, kind: str, content_type: str, members: List[InteractionRecord]
    ) -> Tuple[str, str]:
        """Title and message for a group, singular or "X and N others"."""
        latest = members[0]
        actor_name = latest.actor.first_name
        others = len(members) - 1

        if others:
            subject = f"{actor_name} and {others} {'other' if others == 1 else 'others'}"
        else:
            subject = actor_name

        if kind == "like":
            if others:
                title = f"Multiple likes on your {content_type}"
            else:
                title = f"New like on your {content_type}"
            return title, f"{subject} liked your {content_type}"

        if others:
            title = f"Multiple comments on your {content_type}"
        else:
            title = f"New comment on your {content_type}"

        snippet = truncate_snippet(latest.text, self._snippet_length)
        if snippet:
            message = f'{subject} commented: "{snippet}"'
        else:
            message = f"{subject} commented on your {content_type}"
        return title, message
