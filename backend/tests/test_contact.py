"""Tests for the contact form."""

import pytest

from podhost import routes_contact
from podhost.integrations.resend_api import contact_email
from podhost.settings import get_settings

MESSAGE = {"name": "Ada", "email": "ada@example.com", "subject": "bug", "message": "Feed <b>breaks</b> on iOS"}


class TestContactEmail:
    """Tests for the operator notification body."""

    def test_fields_are_escaped(self) -> None:
        """Test that user input is HTML-escaped and the subject carries the label."""
        subject, body = contact_email("Ada & co", "ada@example.com", "feature", "<script>x</script>")

        assert subject == "[podhost] Feature request: Ada & co"
        assert "Ada &amp; co" in body
        assert "&lt;script&gt;x&lt;/script&gt;" in body
        assert "<script>" not in body


@pytest.mark.asyncio
class TestContactApi:
    """Tests for POST /api/contact."""

    @pytest.fixture
    def outbox(self, monkeypatch):
        sent = []

        async def _capture(to, subject, html_body, timeout_s=10):
            sent.append({"to": to, "subject": subject, "html": html_body})
            return True

        monkeypatch.setattr(routes_contact, "send_email", _capture)
        monkeypatch.setattr(get_settings(), "resend_api_key", "re_test")
        monkeypatch.setattr(get_settings(), "resend_from", "ops@podhost.example")
        return sent

    async def test_message_is_sent_to_operator(self, client, outbox) -> None:
        """Test that a valid submission emails the configured sender address."""
        response = await client.post("/api/contact", json=MESSAGE)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert outbox[0]["to"] == "ops@podhost.example"
        assert outbox[0]["subject"] == "[podhost] Bug report: Ada"
        assert "Feed &lt;b&gt;breaks&lt;/b&gt; on iOS" in outbox[0]["html"]

    async def test_accepted_without_resend(self, client, monkeypatch) -> None:
        """Test that submissions succeed without sending when Resend is not configured."""
        called = []

        async def _fail(*args, **kwargs):
            called.append(args)
            return False

        monkeypatch.setattr(routes_contact, "send_email", _fail)
        monkeypatch.setattr(get_settings(), "resend_api_key", None)

        response = await client.post("/api/contact", json=MESSAGE)

        assert response.status_code == 200
        assert called == []

    async def test_send_failure(self, client, outbox, monkeypatch) -> None:
        """Test that a Resend failure surfaces as send_failed."""

        async def _fail(*args, **kwargs):
            return False

        monkeypatch.setattr(routes_contact, "send_email", _fail)

        response = await client.post("/api/contact", json=MESSAGE)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "send_failed"

    @pytest.mark.parametrize(
        "override",
        [{"subject": "spam"}, {"email": "nope"}, {"name": ""}, {"message": "x" * 5001}],
    )
    async def test_invalid_submission(self, client, outbox, override) -> None:
        """Test that malformed submissions are validation errors and send nothing."""
        response = await client.post("/api/contact", json={**MESSAGE, **override})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"
        assert outbox == []
