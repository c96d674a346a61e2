"""Tests for the two-phase asset upload and file serving."""

import pytest

from podhost.services.storage import InvalidStorageKey, LocalStorage, build_storage_key, extension_for

UPLOAD = {"type": "audio", "file_name": "Pilot Episode.MP3", "content_type": "audio/mpeg", "byte_size": 999}


class TestStorageHelpers:
    """Tests for storage key handling."""

    def test_extension(self) -> None:
        """Test extension extraction and normalisation."""
        assert extension_for("show.MP3") == "mp3"
        assert extension_for("noext") == ""
        assert extension_for("dir.d/file") == ""

    def test_storage_key(self) -> None:
        """Test key layout by asset type."""
        assert build_storage_key("audio", "abc", "x.mp3") == "audio/abc.mp3"
        assert build_storage_key("image", "abc", "cover") == "image/abc"

    def test_rejects_traversal(self, tmp_path) -> None:
        """Test that keys cannot escape the storage root."""
        storage = LocalStorage(tmp_path, "https://files.example.com/")
        with pytest.raises(InvalidStorageKey):
            storage.path_for("../etc/passwd")
        with pytest.raises(InvalidStorageKey):
            storage.path_for("/abs/path")
        assert storage.public_url("audio/a.mp3") == "https://files.example.com/audio/a.mp3"

    def test_exists_only_for_files(self, tmp_path) -> None:
        """Test that directories and missing keys do not count as stored objects."""
        storage = LocalStorage(tmp_path, "https://files.example.com")
        (tmp_path / "audio").mkdir()
        (tmp_path / "audio" / "a.mp3").write_bytes(b"x")

        assert storage.exists("audio/a.mp3")
        assert not storage.exists("audio")
        assert not storage.exists("audio/b.mp3")
        with pytest.raises(InvalidStorageKey):
            storage.exists("../a.mp3")


@pytest.mark.asyncio
class TestUploadFlow:
    """Tests for upload-url, upload and complete."""

    async def test_full_flow(self, client, owner, storage_dir) -> None:
        """Test reserving, uploading, completing and downloading an asset."""
        _, headers = owner

        reserved = await client.post("/api/assets/upload-url", json=UPLOAD, headers=headers)
        assert reserved.status_code == 201
        asset_id = reserved.json()["asset_id"]
        upload = reserved.json()["upload"]
        assert upload["method"] == "PUT"

        put = await client.put(
            upload["url"], content=b"ID3-audio-bytes", headers={**headers, **upload["headers"]}
        )
        completed = await client.post(
            f"/api/assets/{asset_id}/complete", json={"checksum": "sha256:abc"}, headers=headers
        )

        assert put.status_code == 200
        assert completed.status_code == 200
        body = completed.json()
        assert body["byte_size"] == len(b"ID3-audio-bytes")
        assert body["checksum"] == "sha256:abc"
        assert body["completed_at"] is not None
        assert body["public_url"] == f"https://pod.example.com/audio/audio/{asset_id}.mp3"
        assert (storage_dir / "audio" / f"{asset_id}.mp3").read_bytes() == b"ID3-audio-bytes"

        served = await client.get(f"/audio/audio/{asset_id}.mp3")
        assert served.status_code == 200
        assert served.content == b"ID3-audio-bytes"
        assert served.headers["content-type"].startswith("audio/mpeg")

    async def test_bad_content_type(self, client, owner, storage_dir) -> None:
        """Test that images cannot be reserved as audio."""
        _, headers = owner

        response = await client.post(
            "/api/assets/upload-url", json={**UPLOAD, "content_type": "image/png"}, headers=headers
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_content_type"
        assert error["details"][0]["field"] == "content_type"

    async def test_complete_before_upload(self, client, owner, storage_dir) -> None:
        """Test that completing without stored bytes fails."""
        _, headers = owner
        reserved = await client.post("/api/assets/upload-url", json=UPLOAD, headers=headers)

        response = await client.post(f"/api/assets/{reserved.json()['asset_id']}/complete", json={}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "upload_not_found"

    async def test_other_users_asset(self, client, owner, make_user, storage_dir) -> None:
        """Test that assets are private to their uploader."""
        _, headers = owner
        _, other_headers = await make_user("other@example.com", "starter")
        reserved = await client.post("/api/assets/upload-url", json=UPLOAD, headers=headers)

        response = await client.put(
            f"/api/assets/{reserved.json()['asset_id']}/upload", content=b"x", headers=other_headers
        )

        assert response.status_code == 404

    async def test_missing_file(self, client, storage_dir) -> None:
        """Test that unknown files are 404."""
        response = await client.get("/audio/audio/nothing.mp3")
        assert response.status_code == 404

    async def test_directory_is_not_served(self, client, storage_dir) -> None:
        """Test that a directory under the storage root is not a file."""
        (storage_dir / "audio").mkdir(exist_ok=True)
        response = await client.get("/audio/audio")
        assert response.status_code == 404
