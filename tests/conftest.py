"""Shared test fixtures for line-completion-relay."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.config import RelaySettings
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.webhook.completion import CompletionResponse
from src.webhook.signature import compute_signature

CHANNEL_SECRET = "test-channel-secret"
TRIGGER = "Nick:>"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def settings() -> RelaySettings:
    return make_settings()


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> RelaySettings:
    """Factory for RelaySettings with sensible defaults."""
    defaults: dict[str, Any] = {
        "channel_secret": CHANNEL_SECRET,
        "channel_access_token": "test-access-token",
        "completion_api_key": "test-api-key",
        "chat_prompt": TRIGGER,
        "completion_url": "https://completions.test/v1/completions",
        "line_api_base": "https://line.test/v2/bot",
    }
    defaults.update(kwargs)
    return RelaySettings(**defaults)


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.AUTH_FAILURE,
        "action": "verify_signature",
        "result": "rejected",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)


def make_text_event(
    text: str = "Nick:>hello there",
    reply_token: str = "reply-token-1",
    **kwargs: Any,
) -> dict[str, Any]:
    """A LINE message event carrying a text message, in wire format."""
    event: dict[str, Any] = {
        "type": "message",
        "mode": "active",
        "timestamp": 1700000000000,
        "source": {"type": "user", "userId": "U123"},
        "webhookEventId": "01HEVENT",
        "deliveryContext": {"isRedelivery": False},
        "replyToken": reply_token,
        "message": {"id": "m1", "type": "text", "text": text},
    }
    event.update(kwargs)
    return event


def make_message_event(message: dict[str, Any], reply_token: str = "reply-token-1") -> dict[str, Any]:
    return make_text_event(reply_token=reply_token, message=message)


def make_payload(*events: dict[str, Any]) -> dict[str, Any]:
    return {"destination": "Ubot", "events": list(events)}


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode()


def sign(body: bytes, secret: str = CHANNEL_SECRET) -> str:
    return compute_signature(secret, body)


def make_completion(*texts: str) -> CompletionResponse:
    return CompletionResponse.model_validate({
        "choices": [{"text": t, "index": i} for i, t in enumerate(texts)],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    })


def mock_async_client(post: Any) -> AsyncMock:
    """An httpx.AsyncClient stand-in usable as an async context manager."""
    client = AsyncMock()
    if isinstance(post, BaseException) or (callable(post) and not isinstance(post, MagicMock)):
        client.post.side_effect = post
    else:
        client.post.return_value = post
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client
