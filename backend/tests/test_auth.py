"""Tests for admin authentication."""

import pytest

from podhost import routes_auth
from podhost.integrations.resend_api import magic_link_email, send_email
from podhost.services.auth import hash_password, verify_password
from podhost.settings import get_settings

from conftest import PASSWORD


class TestPasswords:
    """Tests for password hashing."""

    def test_round_trip(self) -> None:
        """Test that the right password verifies and a wrong one does not."""
        stored = hash_password("hunter2", iterations=1000)
        assert stored.startswith("pbkdf2:1000:")
        assert verify_password("hunter2", stored)
        assert not verify_password("hunter3", stored)

    @pytest.mark.parametrize("stored", [None, "", "plain", "pbkdf2:x:zz:00"])
    def test_malformed_hash(self, stored) -> None:
        """Test that malformed stored values never verify."""
        assert not verify_password("anything", stored)


@pytest.mark.asyncio
class TestPasswordLogin:
    """Tests for login, me and logout."""

    async def test_login_me_logout(self, client, owner) -> None:
        """Test a full session lifecycle."""
        user, _ = owner

        login = await client.post("/api/auth/login", json={"email": "Owner@Example.com", "password": PASSWORD})
        assert login.status_code == 200
        token = login.json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        me = await client.get("/api/auth/me", headers=headers)
        assert me.json() == {"id": user.id, "email": "owner@example.com", "plan": "starter"}

        assert (await client.post("/api/auth/logout", headers=headers)).status_code == 200
        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401

    async def test_wrong_password(self, client, owner) -> None:
        """Test that bad credentials give 401 invalid_credentials."""
        response = await client.post("/api/auth/login", json={"email": "owner@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "invalid_credentials"

    async def test_garbage_bearer(self, client) -> None:
        """Test that an unknown bearer token is rejected."""
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-session"})
        assert response.status_code == 401


@pytest.mark.asyncio
class TestMagicLink:
    """Tests for magic-link login."""

    @pytest.fixture
    def outbox(self, monkeypatch):
        sent = []

        async def _capture(to, subject, html_body, timeout_s=10):
            sent.append({"to": to, "subject": subject, "html": html_body})
            return True

        monkeypatch.setattr(routes_auth, "send_email", _capture)
        return sent

    @staticmethod
    def _token_from(message: dict) -> str:
        return message["html"].split("token=", 1)[1].split('"', 1)[0]

    async def test_first_login_creates_free_user(self, client, outbox) -> None:
        """Test that verifying a link for a new address creates a free account."""
        requested = await client.post("/api/auth/magic-link", json={"email": " New@Example.com "})
        assert requested.status_code == 202
        assert outbox[0]["to"] == "new@example.com"

        verified = await client.post("/api/auth/magic-link/verify", json={"token": self._token_from(outbox[0])})

        assert verified.status_code == 200
        assert verified.json()["user"]["email"] == "new@example.com"
        assert verified.json()["user"]["plan"] == "free"

    async def test_link_is_single_use(self, client, outbox) -> None:
        """Test that a consumed link cannot be replayed."""
        await client.post("/api/auth/magic-link", json={"email": "once@example.com"})
        token = self._token_from(outbox[0])

        first = await client.post("/api/auth/magic-link/verify", json={"token": token})
        second = await client.post("/api/auth/magic-link/verify", json={"token": token})

        assert first.status_code == 200
        assert second.status_code == 401

    async def test_existing_user_keeps_plan(self, client, owner, outbox) -> None:
        """Test that a known address logs into the existing account."""
        user, _ = owner
        await client.post("/api/auth/magic-link", json={"email": "owner@example.com"})

        verified = await client.post("/api/auth/magic-link/verify", json={"token": self._token_from(outbox[0])})

        assert verified.json()["user"]["id"] == user.id
        assert verified.json()["user"]["plan"] == "starter"

    async def test_invalid_email(self, client, outbox) -> None:
        """Test that a malformed address is a validation error."""
        response = await client.post("/api/auth/magic-link", json={"email": "not-an-address"})

        assert response.status_code == 400
        assert outbox == []


class TestResend:
    """Tests for the email client."""

    @pytest.mark.asyncio
    async def test_disabled_without_key(self, monkeypatch) -> None:
        """Test that sending is skipped when no API key is configured."""
        monkeypatch.setattr(get_settings(), "resend_api_key", None)
        assert await send_email("a@example.com", "hi", "<p>hi</p>") is False

    def test_link_is_escaped(self) -> None:
        """Test that the link is HTML-escaped in the body."""
        subject, body = magic_link_email("https://pod.example.com/auth/verify?token=a&b", 15)
        assert subject == "Log in to podhost"
        assert "token=a&amp;b" in body
        assert "15 minutes" in body
