"""LINE Messaging API reply gateway.

Posts outbound messages to the conversation identified by a reply token.
Reply tokens are single-use, so a failed reply is reported, never retried.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from src.config import DEFAULT_LINE_API_BASE, DEFAULT_TIMEOUT_SECONDS
from src.webhook.context import RequestContext
from src.webhook.errors import GatewayFailureKind, ReplyError
from src.webhook.models import OutboundMessage, to_wire

logger = logging.getLogger(__name__)

# LINE accepts at most five messages per reply call.
MAX_REPLY_MESSAGES = 5


class LineReplyClient:
    """Sends replies through the LINE Messaging API."""

    def __init__(
        self,
        access_token: str,
        api_base: str = DEFAULT_LINE_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._access_token = access_token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    async def reply_message(
        self,
        reply_token: str,
        messages: Sequence[OutboundMessage],
        context: RequestContext | None = None,
    ) -> None:
        """Send messages as the reply to reply_token.

        TLS certificate verification enabled.
        Raises ReplyError on transport failure, an undecodable response, or a
        non-2xx status.
        """
        if not messages:
            raise ValueError("at least one message is required")
        if len(messages) > MAX_REPLY_MESSAGES:
            raise ValueError(f"at most {MAX_REPLY_MESSAGES} messages per reply")

        context = context or RequestContext()
        url = f"{self._api_base}/message/reply"
        payload = {
            "replyToken": reply_token,
            "messages": [to_wire(m) for m in messages],
        }
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            **context.outbound_headers(),
        }

        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(
                    url, json=payload, headers=headers, timeout=self._timeout,
                )
        except httpx.DecodingError as e:
            raise ReplyError(GatewayFailureKind.DECODE, str(e) or type(e).__name__) from e
        except httpx.RequestError as e:
            raise ReplyError(GatewayFailureKind.TRANSPORT, str(e) or type(e).__name__) from e

        if not 200 <= resp.status_code < 300:
            raise ReplyError(
                GatewayFailureKind.STATUS,
                "LINE reply API returned an error",
                status_code=resp.status_code,
            )
        logger.info(
            "[%s] Reply sent messages=%d status=%d",
            context.request_id, len(messages), resp.status_code,
        )
