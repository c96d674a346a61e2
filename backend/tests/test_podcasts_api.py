"""Tests for podcast management, distribution statuses and usage."""

import pytest
from sqlalchemy import func, select

from podhost.models import DistributionStatus, Episode, FeedToken

NEW_PODCAST = {
    "title": "Night Shift Radio",
    "description": "Conversations after dark",
    "category": "Technology",
    "language": "en",
}


@pytest.mark.asyncio
class TestPodcastCrud:
    """Tests for /api/podcasts."""

    async def test_requires_auth(self, client) -> None:
        """Test that anonymous calls get 401 in the error envelope."""
        response = await client.get("/api/podcasts")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    async def test_create_provisions_token_and_statuses(self, client, session, owner) -> None:
        """Test that creation returns feed URLs and seeds per-target statuses."""
        _, headers = owner

        response = await client.post("/api/podcasts", json=NEW_PODCAST, headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["visibility"] == "private"
        assert body["public_rss_url"] == f"https://pod.example.com/rss/{body['id']}.xml"
        assert body["private_rss_url"].startswith(f"https://pod.example.com/rss/{body['id']}.xml?token=")
        tokens = (await session.execute(select(FeedToken).where(FeedToken.podcast_id == body["id"]))).scalars().all()
        assert len(tokens) == 1
        targets = (
            await session.execute(
                select(DistributionStatus.target_id, DistributionStatus.status).where(
                    DistributionStatus.podcast_id == body["id"]
                )
            )
        ).all()
        assert sorted(targets) == [("amazon", "not_submitted"), ("apple", "not_submitted"), ("spotify", "not_submitted")]

    async def test_create_validation_error(self, client, owner) -> None:
        """Test that a missing title is a 400 validation_error naming the field."""
        _, headers = owner
        response = await client.post("/api/podcasts", json={"description": "x", "category": "y"}, headers=headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert any(d["field"] == "title" for d in error["details"])

    async def test_free_plan_podcast_limit(self, client, free_owner, make_podcast) -> None:
        """Test that a free account cannot create a third podcast."""
        user, headers = free_owner
        await make_podcast(user)
        await make_podcast(user)

        response = await client.post("/api/podcasts", json=NEW_PODCAST, headers=headers)

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "plan_limit_exceeded"
        assert error["details"] == [{"field": "podcasts", "reason": "limit_exceeded", "current": 2, "limit": 2}]

    async def test_list_counts_episodes_by_status(self, client, owner, make_podcast, make_episode) -> None:
        """Test the per-status episode counts in the listing."""
        user, headers = owner
        podcast = await make_podcast(user)
        await make_episode(podcast)
        await make_episode(podcast)
        await make_episode(podcast, status="draft", with_audio=False)

        response = await client.get("/api/podcasts", headers=headers)

        assert response.status_code == 200
        [item] = response.json()["items"]
        assert item["id"] == podcast.id
        assert item["episode_counts"] == {"draft": 1, "scheduled": 0, "published": 2}

    async def test_other_users_podcast_is_404(self, client, owner, make_user, make_podcast) -> None:
        """Test that podcasts are scoped to their owner."""
        user, _ = owner
        podcast = await make_podcast(user)
        _, other_headers = await make_user("intruder@example.com", "pro")

        assert (await client.get(f"/api/podcasts/{podcast.id}", headers=other_headers)).status_code == 404
        assert (await client.delete(f"/api/podcasts/{podcast.id}", headers=other_headers)).status_code == 404

    async def test_patch_updates_fields(self, client, owner, make_podcast) -> None:
        """Test a partial update."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.patch(
            f"/api/podcasts/{podcast.id}",
            json={"visibility": "private", "explicit": True, "author_name": "Ada"},
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["visibility"] == "private"
        assert body["explicit"] is True
        assert body["author_name"] == "Ada"
        assert body["title"] == "Night Shift Radio"

    @pytest.mark.parametrize("field", ["visibility", "explicit", "podcast_type", "theme_color", "theme_mode"])
    async def test_patch_null_required_field(self, client, owner, make_podcast, field) -> None:
        """Test that nulling a required setting is a validation error and changes nothing."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.patch(f"/api/podcasts/{podcast.id}", json={field: None}, headers=headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "validation_error"
        assert error["details"][0]["field"] == field
        unchanged = (await client.get(f"/api/podcasts/{podcast.id}", headers=headers)).json()
        assert unchanged[field] is not None

    async def test_delete_cascades(self, client, session, owner, make_podcast, make_episode) -> None:
        """Test that deleting a podcast removes its episodes and token."""
        user, headers = owner
        podcast = await make_podcast(user)
        await make_episode(podcast)

        response = await client.delete(f"/api/podcasts/{podcast.id}", headers=headers)

        assert response.status_code == 204
        assert (await client.get(f"/api/podcasts/{podcast.id}", headers=headers)).status_code == 404
        episodes = (await session.execute(select(func.count(Episode.id)))).scalar_one()
        tokens = (await session.execute(select(func.count(FeedToken.id)))).scalar_one()
        assert (episodes, tokens) == (0, 0)


@pytest.mark.asyncio
class TestDistribution:
    """Tests for distribution statuses and directory checks."""

    async def test_list_backfills_missing_targets(self, client, owner, make_podcast) -> None:
        """Test that podcasts without status rows still list every target."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.get(f"/api/podcasts/{podcast.id}/distribution-statuses", headers=headers)

        assert response.status_code == 200
        items = response.json()["items"]
        assert [i["target_id"] for i in items] == ["amazon", "apple", "spotify"]
        assert {i["status"] for i in items} == {"not_submitted"}

    async def test_patch_status(self, client, owner, make_podcast) -> None:
        """Test moving a target to submitted with a note."""
        user, headers = owner
        podcast = await make_podcast(user)
        await client.get(f"/api/podcasts/{podcast.id}/distribution-statuses", headers=headers)

        response = await client.patch(
            f"/api/podcasts/{podcast.id}/distribution-statuses/apple",
            json={"status": "submitted", "note": "sent on Monday"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "submitted"
        assert response.json()["note"] == "sent on Monday"

    async def test_patch_unknown_target(self, client, owner, make_podcast) -> None:
        """Test that an unknown target is 404."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.patch(
            f"/api/podcasts/{podcast.id}/distribution-statuses/napster",
            json={"status": "submitted"},
            headers=headers,
        )

        assert response.status_code == 404

    async def test_directory_check(self, client, owner, make_podcast) -> None:
        """Test that Amazon needs a contact email and missing cover art only warns."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.post(
            f"/api/podcasts/{podcast.id}/rss/validate", json={"targets": ["apple", "amazon"]}, headers=headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is False
        apple, amazon = body["results"]
        assert apple["ok"] is True
        assert {w["code"] for w in apple["warnings"]} == {"missing_cover_image", "no_published_episodes"}
        assert [e["code"] for e in amazon["errors"]] == ["missing_itunes_email"]


@pytest.mark.asyncio
class TestPublicAndUsage:
    """Tests for the public website API and usage summary."""

    async def test_public_podcast_hides_private(self, client, owner, make_podcast) -> None:
        """Test that private podcasts are invisible to the public API."""
        user, _ = owner
        public = await make_podcast(user, visibility="public")
        private = await make_podcast(user, visibility="private")

        assert (await client.get(f"/api/public/podcasts/{public.id}")).status_code == 200
        assert (await client.get(f"/api/public/podcasts/{private.id}")).status_code == 404

    async def test_public_episodes_only_published(self, client, owner, make_podcast, make_episode) -> None:
        """Test that drafts stay off the public episode list."""
        user, _ = owner
        podcast = await make_podcast(user, visibility="public")
        await make_episode(podcast, title="Live")
        await make_episode(podcast, title="Draft", status="draft")

        response = await client.get(f"/api/public/podcasts/{podcast.id}/episodes")

        assert [e["title"] for e in response.json()["items"]] == ["Live"]

    async def test_usage(self, client, free_owner, make_podcast) -> None:
        """Test the usage summary for a free account."""
        user, headers = free_owner
        await make_podcast(user)

        response = await client.get("/api/me/usage", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["plan"] == "free"
        assert body["podcasts"] == {"current": 1, "limit": 2}
        assert body["monthly_plays"] == {"current": 0, "limit": 10000, "exceeded": False}
        assert body["analytics"] is False
