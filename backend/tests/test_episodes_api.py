"""Tests for episode management and the publish gate."""

from datetime import datetime, timedelta, timezone

import pytest

from podhost.models import Asset


def iso(dt: datetime) -> str:
    return dt.isoformat()


@pytest.mark.asyncio
class TestEpisodeCreate:
    """Tests for POST /api/podcasts/{id}/episodes."""

    async def test_create_draft(self, client, owner, make_podcast) -> None:
        """Test that a bare draft needs only a title."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.post(
            f"/api/podcasts/{podcast.id}/episodes", json={"title": "Pilot"}, headers=headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "draft"
        assert body["audio"] is None

    async def test_create_published_without_audio(self, client, owner, make_podcast) -> None:
        """Test that publishing at creation fails and names both missing fields."""
        user, headers = owner
        podcast = await make_podcast(user)

        response = await client.post(
            f"/api/podcasts/{podcast.id}/episodes",
            json={"title": "Pilot", "status": "published"},
            headers=headers,
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "publish_conditions_not_met"
        assert {d["field"] for d in error["details"]} == {"published_at", "audio_asset_id"}

    async def test_episode_limit(self, client, free_owner, make_podcast, make_episode) -> None:
        """Test the free plan episode quota."""
        user, headers = free_owner
        podcast = await make_podcast(user)
        for _ in range(10):
            await make_episode(podcast, status="draft", with_audio=False)

        response = await client.post(
            f"/api/podcasts/{podcast.id}/episodes", json={"title": "One too many"}, headers=headers
        )

        assert response.status_code == 403
        assert response.json()["error"]["details"][0]["field"] == "episodes"


@pytest.mark.asyncio
class TestEpisodeUpdate:
    """Tests for PATCH and the audio attachment."""

    async def test_publish_after_attaching_audio(self, client, session, owner, make_podcast, make_episode) -> None:
        """Test the draft, attach audio, publish flow."""
        user, headers = owner
        podcast = await make_podcast(user)
        draft = await make_episode(podcast, status="draft", with_audio=False)
        asset = Asset(
            owner_id=user.id,
            type="audio",
            storage_key="audio/flow.mp3",
            public_url="https://cdn.example.com/audio/flow.mp3",
            content_type="audio/mpeg",
            byte_size=10,
        )
        session.add(asset)
        await session.commit()
        base = f"/api/podcasts/{podcast.id}/episodes/{draft.id}"

        refused = await client.patch(base, json={"status": "published"}, headers=headers)
        attached = await client.post(
            f"{base}/audio", json={"audio_asset_id": asset.id, "duration_seconds": 600}, headers=headers
        )
        published = await client.patch(base, json={"status": "published"}, headers=headers)

        assert refused.status_code == 422
        assert attached.status_code == 200
        assert attached.json()["duration_seconds"] == 600
        assert published.status_code == 200
        assert published.json()["status"] == "published"
        assert published.json()["audio"]["public_url"] == "https://cdn.example.com/audio/flow.mp3"

    async def test_schedule_in_past_is_refused(self, client, owner, make_podcast, make_episode) -> None:
        """Test the future-date rule through the API."""
        user, headers = owner
        podcast = await make_podcast(user)
        episode = await make_episode(podcast, status="draft")
        past = datetime.now(timezone.utc) - timedelta(hours=1)

        response = await client.patch(
            f"/api/podcasts/{podcast.id}/episodes/{episode.id}",
            json={"status": "scheduled", "published_at": iso(past)},
            headers=headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["details"] == [{"field": "published_at", "reason": "must_be_future"}]

    async def test_schedule_in_future(self, client, owner, make_podcast, make_episode) -> None:
        """Test that scheduling with audio and a future date is accepted."""
        user, headers = owner
        podcast = await make_podcast(user)
        episode = await make_episode(podcast, status="draft")
        future = datetime.now(timezone.utc) + timedelta(days=2)

        response = await client.patch(
            f"/api/podcasts/{podcast.id}/episodes/{episode.id}",
            json={"status": "scheduled", "published_at": iso(future)},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "scheduled"

    async def test_title_edit_skips_publish_gate(self, client, owner, make_podcast, make_episode) -> None:
        """Test that editing text on a published episode is not re-validated."""
        user, headers = owner
        podcast = await make_podcast(user)
        episode = await make_episode(podcast)

        response = await client.patch(
            f"/api/podcasts/{podcast.id}/episodes/{episode.id}", json={"title": "Better title"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Better title"

    async def test_duration_over_plan_cap(self, client, free_owner, make_podcast, make_episode) -> None:
        """Test that the free plan refuses audio longer than 30 minutes."""
        user, headers = free_owner
        podcast = await make_podcast(user)
        episode = await make_episode(podcast, status="draft")

        response = await client.post(
            f"/api/podcasts/{podcast.id}/episodes/{episode.id}/audio",
            json={"audio_asset_id": episode.audio_asset_id, "duration_seconds": 1801},
            headers=headers,
        )

        assert response.status_code == 403
        assert response.json()["error"]["details"][0]["field"] == "duration_seconds"

    async def test_attach_image_asset_refused(self, client, session, owner, make_podcast, make_episode) -> None:
        """Test that only audio assets can be attached."""
        user, headers = owner
        podcast = await make_podcast(user)
        episode = await make_episode(podcast, status="draft", with_audio=False)
        image = Asset(
            owner_id=user.id,
            type="image",
            storage_key="image/cover.png",
            public_url="https://cdn.example.com/image/cover.png",
            content_type="image/png",
            byte_size=10,
        )
        session.add(image)
        await session.commit()

        response = await client.post(
            f"/api/podcasts/{podcast.id}/episodes/{episode.id}/audio",
            json={"audio_asset_id": image.id},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_asset_type"


@pytest.mark.asyncio
class TestEpisodeReadDelete:
    """Tests for listing, fetching and deleting episodes."""

    async def test_list_filter_by_status(self, client, owner, make_podcast, make_episode) -> None:
        """Test the status filter on the listing."""
        user, headers = owner
        podcast = await make_podcast(user)
        await make_episode(podcast, title="Out")
        await make_episode(podcast, title="Pending", status="draft", with_audio=False)

        response = await client.get(
            f"/api/podcasts/{podcast.id}/episodes", params={"status": "draft"}, headers=headers
        )

        assert [e["title"] for e in response.json()["items"]] == ["Pending"]

    async def test_episode_of_other_podcast(self, client, owner, make_podcast, make_episode) -> None:
        """Test that an episode is only reachable through its own podcast."""
        user, headers = owner
        first = await make_podcast(user)
        second = await make_podcast(user)
        episode = await make_episode(first)

        response = await client.get(f"/api/podcasts/{second.id}/episodes/{episode.id}", headers=headers)

        assert response.status_code == 404

    async def test_delete_removes_from_feed(self, client, owner, make_podcast, make_episode) -> None:
        """Test that a deleted episode disappears from the RSS feed."""
        user, headers = owner
        podcast = await make_podcast(user)
        episode = await make_episode(podcast, title="Gone Soon")

        deleted = await client.delete(f"/api/podcasts/{podcast.id}/episodes/{episode.id}", headers=headers)
        feed = await client.get(f"/rss/{podcast.id}.xml")

        assert deleted.status_code == 204
        assert "Gone Soon" not in feed.text
