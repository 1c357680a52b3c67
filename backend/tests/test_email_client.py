"""
Prompt & Pause Backend — Resend Email Client Tests
===================================================
"""

import json

import httpx
import pytest

from promptpause.exceptions import EmailProviderUnavailableError
from promptpause.schemas.maintenance import FailureKind
from promptpause.services.email_client import (
    EmailClientConfig,
    EmailMessage,
    ResendEmailClient,
)


def _client(handler, api_key="re_test"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = EmailClientConfig(api_key=api_key, sender="Prompt & Pause <noreply@example.com>")
    return ResendEmailClient(config, client=http), http


def _messages(n):
    return [EmailMessage(to=f"u{i}@example.com", subject="Hi", html="<p>Hi</p>") for i in range(n)]


class TestSendBatch:
    """One Resend batch call and its outcome mapping."""

    @pytest.mark.asyncio
    async def test_posts_permissive_batch(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"id": "a"}, {"id": "b"}]})

        client, http = _client(handler)
        async with http:
            failures = await client.send_batch(_messages(2))

        assert failures == []
        assert seen["url"] == "https://api.resend.com/emails/batch"
        assert seen["headers"]["x-batch-validation"] == "permissive"
        assert seen["headers"]["Authorization"] == "Bearer re_test"
        assert seen["body"][1] == {
            "from": "Prompt & Pause <noreply@example.com>",
            "to": ["u1@example.com"],
            "subject": "Hi",
            "html": "<p>Hi</p>",
        }

    @pytest.mark.asyncio
    async def test_errors_are_mapped_by_index(self):
        body = {
            "data": [{"id": "a"}, {"id": "c"}],
            "errors": [{"index": 1, "message": "Invalid `to` field"}, {"index": 99}],
        }
        client, http = _client(lambda r: httpx.Response(200, json=body))
        async with http:
            failures = await client.send_batch(_messages(3))

        assert len(failures) == 1
        assert failures[0].email == "u1@example.com"
        assert failures[0].error_kind == FailureKind.REJECTED
        assert failures[0].message == "Invalid `to` field"

    @pytest.mark.asyncio
    async def test_repeated_errors_for_one_message_count_once(self):
        """Two errors for message 1: one failure, first message kept, message 0 still succeeds."""
        body = {
            "data": [{"id": "a"}],
            "errors": [
                {"index": 2, "message": "Invalid `to` field"},
                {"index": 1, "message": "bad to"},
                {"index": 1, "message": "bad domain"},
            ],
        }
        client, http = _client(lambda r: httpx.Response(200, json=body))
        async with http:
            failures = await client.send_batch(_messages(3))

        assert [(f.email, f.message) for f in failures] == [
            ("u1@example.com", "bad to"),
            ("u2@example.com", "Invalid `to` field"),
        ]
        assert 3 - len(failures) == 1

    @pytest.mark.asyncio
    async def test_server_error_fails_whole_batch_without_raising(self):
        client, http = _client(lambda r: httpx.Response(500, text="internal"))
        async with http:
            failures = await client.send_batch(_messages(3))

        assert [f.email for f in failures] == ["u0@example.com", "u1@example.com", "u2@example.com"]
        assert {f.error_kind for f in failures} == {FailureKind.BATCH_REJECTED}

    @pytest.mark.asyncio
    async def test_unreadable_success_body_is_malformed(self):
        client, http = _client(lambda r: httpx.Response(200, text="not json"))
        async with http:
            failures = await client.send_batch(_messages(2))

        assert {f.error_kind for f in failures} == {FailureKind.MALFORMED_RESPONSE}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_credentials_raise(self, status):
        client, http = _client(lambda r: httpx.Response(status, json={"message": "bad key"}))
        async with http:
            with pytest.raises(EmailProviderUnavailableError):
                await client.send_batch(_messages(1))

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client, http = _client(handler)
        async with http:
            with pytest.raises(EmailProviderUnavailableError):
                await client.send_batch(_messages(1))

    @pytest.mark.asyncio
    async def test_missing_key_raises_before_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"data": []})

        client, http = _client(handler, api_key=None)
        async with http:
            with pytest.raises(EmailProviderUnavailableError):
                await client.send_batch(_messages(1))
        assert calls == []
        assert client.is_configured is False

    @pytest.mark.asyncio
    async def test_oversized_batch_is_refused(self):
        client, http = _client(lambda r: httpx.Response(200, json={"data": []}))
        async with http:
            with pytest.raises(ValueError):
                await client.send_batch(_messages(101))
