"""Selects the events that should be forwarded to the completion backend."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from src.webhook.models import MessageEvent, TextMessage, WebhookPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerRule:
    """Literal, case-sensitive substring that activates the completion call."""

    prompt: str

    def __post_init__(self) -> None:
        if not self.prompt:
            raise ValueError("trigger prompt must not be empty")

    def extract(self, text: str) -> str | None:
        """Return text with the trigger removed and trimmed, or None if absent."""
        if self.prompt not in text:
            return None
        return text.replace(self.prompt, "").strip()


@dataclass(frozen=True)
class TriggeredMessage:
    index: int
    event: MessageEvent
    prompt: str

    @property
    def reply_token(self) -> str:
        return self.event.reply_token


def iter_triggered(
    payload: WebhookPayload, rule: TriggerRule,
) -> Iterator[TriggeredMessage]:
    """Yield matching text-message events in payload order."""
    for index, event in enumerate(payload.events):
        if not isinstance(event, MessageEvent):
            logger.debug("Skipping event %d: type=%s", index, event.type)
            continue
        if not isinstance(event.message, TextMessage):
            logger.debug("Skipping event %d: message type=%s", index, event.message.type)
            continue
        prompt = rule.extract(event.message.text)
        if prompt is None:
            logger.debug("Skipping event %d: no trigger", index)
            continue
        yield TriggeredMessage(index=index, event=event, prompt=prompt)
