"""Unit tests for NotificationAggregator and display helpers."""

import pytest
from datetime import timedelta

from app.services.notifications.aggregator import NotificationAggregator, parse_timestamp
from app.services.notifications.formatting import format_time_ago, truncate_snippet
from app.services.notifications.types import RawInteractionData

from factories import make_comment, make_like, make_post, make_user


def _by_id(groups):
    return {g.id: g for g in groups}


def _raw_for_post(post_id, comments=None, likes=None, liked_by_users=None):
    post_likes, post_comments = make_post(post_id, comments, likes, liked_by_users)
    return RawInteractionData(collections={
        "postLikes": [post_likes],
        "postComments": [post_comments],
        "videoLikes": [],
        "videoComments": [],
    })


# ─────────────────────────────────────────────────────────────────
# Grouping
# ─────────────────────────────────────────────────────────────────


class TestGrouping:
    def test_one_group_per_kind_and_content_item(self, aggregator, raw_data, now):
        groups = aggregator.aggregate(raw_data, now=now)

        assert sorted(g.id for g in groups) == [
            "comment-group-P",
            "like-group-P",
            "like-group-V",
        ]

    def test_comment_scenario_orders_members_newest_first(self, aggregator, raw_data, now):
        group = _by_id(aggregator.aggregate(raw_data, now=now))["comment-group-P"]

        assert [m.actor.username for m in group.members] == ["bob", "alice"]
        assert group.latest_actor.username == "bob"
        assert group.title == "Multiple comments on your post"
        assert group.message == 'Bob and 1 other commented: "Totally agree"'
        assert group.created_at == group.members[0].created_at
        assert group.content_type == "post"
        assert group.content_snippet == "Hello world"

    def test_single_like_uses_singular_phrasing(self, aggregator, raw_data, now):
        group = _by_id(aggregator.aggregate(raw_data, now=now))["like-group-P"]

        assert group.member_count == 1
        assert group.title == "New like on your post"
        assert group.message == "Alice liked your post"

    def test_video_group_carries_video_fields(self, aggregator, raw_data, now):
        group = _by_id(aggregator.aggregate(raw_data, now=now))["like-group-V"]

        assert group.title == "Multiple likes on your video"
        assert group.message == "Bob and 1 other liked your video"
        assert group.video_title == "Trip video"
        assert group.content_image == "https://cdn.example.com/thumb.jpg"
        assert group.content_snippet is None
        assert group.time == "10 minutes ago"

    def test_all_groups_start_unread(self, aggregator, raw_data, now):
        assert all(g.read is False for g in aggregator.aggregate(raw_data, now=now))

    def test_three_commenters_use_plural_others(self, aggregator, now):
        authors = [make_user(f"u{i}", f"User{i}", None, f"user{i}") for i in range(3)]
        comments = [
            make_comment(f"c{i}", authors[i], f"comment {i}", now - timedelta(minutes=10 - i))
            for i in range(3)
        ]

        group = aggregator.aggregate(_raw_for_post("P", comments=comments), now=now)[0]

        assert group.message == 'User2 and 2 others commented: "comment 2"'

    def test_no_groups_for_content_without_interactions(self, aggregator, now):
        raw = _raw_for_post("P")

        assert aggregator.aggregate(raw, now=now) == []

    def test_empty_raw_data(self, aggregator, now):
        assert aggregator.aggregate(RawInteractionData(), now=now) == []


# ─────────────────────────────────────────────────────────────────
# Determinism
# ─────────────────────────────────────────────────────────────────


class TestDeterminism:
    def test_group_ids_are_stable_across_runs(self, aggregator, raw_data, now):
        first = [g.id for g in aggregator.aggregate(raw_data, now=now)]
        second = [g.id for g in aggregator.aggregate(raw_data, now=now + timedelta(minutes=5))]

        assert first == second
        assert len(set(first)) == len(first)

    def test_identical_input_yields_identical_groups(self, aggregator, raw_data, now):
        assert aggregator.aggregate(raw_data, now=now) == aggregator.aggregate(raw_data, now=now)

    def test_same_content_id_in_post_and_video_gets_distinct_groups(self, aggregator, now, alice):
        t = now - timedelta(hours=1)
        raw = RawInteractionData(collections={
            "postLikes": [],
            "postComments": [{"_id": "X", "comments": [make_comment("c1", alice, "hi", t)]}],
            "videoLikes": [{"_id": "X", "likedBy": [make_like("l1", "user-alice", t)], "likedByUsers": [alice]}],
            "videoComments": [],
        })

        ids = sorted(g.id for g in aggregator.aggregate(raw, now=now))

        assert ids == ["comment-group-X", "like-group-X"]


# ─────────────────────────────────────────────────────────────────
# Comment snippets
# ─────────────────────────────────────────────────────────────────


class TestCommentSnippet:
    def test_long_comment_is_truncated_with_ellipsis(self, aggregator, now, alice):
        text = "x" * 80
        raw = _raw_for_post("P", comments=[make_comment("c1", alice, text, now)])

        group = aggregator.aggregate(raw, now=now)[0]

        assert group.message == f'Alice commented: "{"x" * 50}..."'

    def test_short_comment_is_kept_whole(self, aggregator, now, alice):
        text = "y" * 30
        raw = _raw_for_post("P", comments=[make_comment("c1", alice, text, now)])

        group = aggregator.aggregate(raw, now=now)[0]

        assert group.message == f'Alice commented: "{text}"'
        assert "..." not in group.message

    def test_empty_comment_omits_quote(self, aggregator, now, alice):
        raw = _raw_for_post("P", comments=[make_comment("c1", alice, "", now)])

        group = aggregator.aggregate(raw, now=now)[0]

        assert group.title == "New comment on your post"
        assert group.message == "Alice commented on your post"

    def test_snippet_length_is_configurable(self, now, alice):
        aggregator = NotificationAggregator(snippet_length=5)
        raw = _raw_for_post("P", comments=[make_comment("c1", alice, "abcdefgh", now)])

        assert aggregator.aggregate(raw, now=now)[0].message == 'Alice commented: "abcde..."'


# ─────────────────────────────────────────────────────────────────
# Malformed records
# ─────────────────────────────────────────────────────────────────


class TestMalformedRecords:
    def test_missing_comment_author_falls_back(self, aggregator, image_resolver, now):
        raw = _raw_for_post("P", comments=[make_comment("c1", None, "anon", now)])

        group = aggregator.aggregate(raw, now=now)[0]

        assert group.latest_actor.name == "Unknown User"
        assert group.latest_actor.first_name == "Someone"
        assert group.latest_actor.username == "user"
        assert group.latest_actor.avatar == image_resolver.placeholder_url
        assert group.message == 'Someone commented: "anon"'

    def test_deleted_liker_still_counts(self, aggregator, now, alice):
        likes = [
            make_like("l1", "user-alice", now - timedelta(minutes=5)),
            make_like("l2", "user-deleted", now - timedelta(minutes=1)),
        ]
        raw = _raw_for_post("P", likes=likes, liked_by_users=[alice, None])

        group = aggregator.aggregate(raw, now=now)[0]

        assert group.member_count == 2
        assert group.latest_actor.id == "user-deleted"
        assert group.latest_actor.name == "Unknown User"
        assert group.message == "Someone and 1 other liked your post"

    def test_partial_profile_uses_username(self, aggregator, now):
        author = make_user("u1", first_name=None, last_name=None, username="ghost")
        raw = _raw_for_post("P", comments=[make_comment("c1", author, "boo", now)])

        actor = aggregator.aggregate(raw, now=now)[0].latest_actor

        assert actor.name == "ghost"
        assert actor.first_name == "ghost"

    def test_avatar_asset_reference_is_resolved(self, aggregator, raw_data, now):
        group = _by_id(aggregator.aggregate(raw_data, now=now))["comment-group-P"]

        assert group.latest_actor.avatar == (
            "https://cdn.sanity.io/images/proj123/production/bobavatar-200x200.png"
        )

    def test_missing_timestamp_uses_now(self, aggregator, now, alice):
        comment = {"_key": "c1", "text": "hi", "author": alice}
        raw = _raw_for_post("P", comments=[comment])

        assert aggregator.aggregate(raw, now=now)[0].created_at == now

    def test_content_without_id_is_skipped(self, aggregator, now, alice):
        raw = RawInteractionData(collections={
            "postComments": [
                {"title": "orphan", "comments": [make_comment("c1", alice, "hi", now)]},
                {"_id": "P", "comments": [make_comment("c2", alice, "ok", now)]},
            ],
        })

        assert [g.id for g in aggregator.aggregate(raw, now=now)] == ["comment-group-P"]

    def test_non_dict_records_are_skipped(self, aggregator, now, alice):
        raw = _raw_for_post("P", comments=["garbage", make_comment("c1", alice, "ok", now)])

        assert aggregator.aggregate(raw, now=now)[0].member_count == 1


# ─────────────────────────────────────────────────────────────────
# Deduplication and lookback
# ─────────────────────────────────────────────────────────────────


class TestDedupAndLookback:
    def test_duplicate_like_keys_collapse(self, aggregator, now, alice):
        like = make_like("l1", "user-alice", now)
        raw = _raw_for_post("P", likes=[like, dict(like)], liked_by_users=[alice])

        assert aggregator.aggregate(raw, now=now)[0].member_count == 1

    def test_same_actor_liking_twice_keeps_newest(self, aggregator, now, alice):
        likes = [
            make_like("l1", "user-alice", now - timedelta(hours=3)),
            make_like("l2", "user-alice", now - timedelta(hours=1)),
        ]
        raw = _raw_for_post("P", likes=likes, liked_by_users=[alice])

        group = aggregator.aggregate(raw, now=now)[0]

        assert group.member_count == 1
        assert group.members[0].id == "l2"

    def test_interactions_outside_lookback_are_ignored(self, aggregator, now, alice, bob):
        comments = [
            make_comment("old", alice, "ancient", now - timedelta(days=40)),
            make_comment("new", bob, "fresh", now - timedelta(days=1)),
        ]
        raw = _raw_for_post("P", comments=comments)

        group = aggregator.aggregate(raw, now=now)[0]

        assert [m.id for m in group.members] == ["new"]
        assert group.title == "New comment on your post"

    def test_old_interactions_never_resurrect_a_group(self, aggregator, now, alice):
        raw = _raw_for_post("P", comments=[make_comment("old", alice, "x", now - timedelta(days=31))])

        assert aggregator.aggregate(raw, now=now) == []


# ─────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────


class TestFormatting:
    @pytest.mark.parametrize("text,expected", [
        ("a" * 80, "a" * 50 + "..."),
        ("a" * 50, "a" * 50),
        ("short", "short"),
        ("", ""),
        (None, ""),
    ])
    def test_truncate_snippet(self, text, expected):
        assert truncate_snippet(text, 50) == expected

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=5), "Just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=45), "45 minutes ago"),
        (timedelta(hours=2), "2 hours ago"),
        (timedelta(days=1), "1 day ago"),
        (timedelta(days=65), "2 months ago"),
        (timedelta(days=400), "1 year ago"),
    ])
    def test_format_time_ago(self, now, delta, expected):
        assert format_time_ago(now - delta, now) == expected

    def test_format_time_ago_without_date(self):
        assert format_time_ago(None) == "Recently"

    def test_parse_timestamp_handles_zulu_and_naive(self):
        zulu = parse_timestamp("2026-10-01T10:00:00Z")
        naive = parse_timestamp("2026-10-01T10:00:00")

        assert zulu == naive
        assert zulu.tzinfo is not None
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None
