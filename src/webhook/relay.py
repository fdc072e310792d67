"""Webhook relay pipeline.

Runs one inbound LINE webhook request end to end using direct function calls.

Pipeline stages:
1. Signature check on the raw body (401, nothing decoded)
2. Decode into tagged events (400 on malformed input)
3. Select text messages containing the trigger, in payload order
4. Completion call, then reply with the completion text, per event
5. Audit log

A gateway failure stops only the event it happened on; the remaining events
are still processed and the batch answers 500.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.models import AuditEvent, AuditEventType, RiskLevel
from src.webhook.context import RequestContext
from src.webhook.dispatcher import TriggeredMessage, TriggerRule, iter_triggered
from src.webhook.errors import CompletionError, GatewayError, GatewayFailureKind
from src.webhook.models import (
    OutboundTextMessage,
    WebhookDecodeError,
    WebhookResponse,
    decode_payload,
)

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.webhook.completion import CompletionGateway
    from src.webhook.line import LineReplyClient
    from src.webhook.signature import SignatureVerifier

logger = logging.getLogger(__name__)


class WebhookRelayPipeline:
    """Authenticates, decodes, and relays one webhook request."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        trigger: TriggerRule,
        completion: CompletionGateway,
        reply_client: LineReplyClient,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._verifier = verifier
        self._trigger = trigger
        self._completion = completion
        self._reply = reply_client
        self._audit = audit_logger

    async def handle(
        self,
        body: bytes,
        signature: str | None,
        context: RequestContext | None = None,
        source_ip: str | None = None,
    ) -> WebhookResponse:
        """Run the full pipeline for one raw request body."""
        context = context or RequestContext()

        # Stage 1: Signature check
        if not self._verifier.verify(body, signature):
            reason = "missing_signature" if not signature else "invalid_signature"
            logger.warning("[%s] Rejected webhook: %s", context.request_id, reason)
            self._log_audit(AuditEvent(
                event_type=AuditEventType.AUTH_FAILURE,
                request_id=context.request_id,
                source_ip=source_ip,
                action="verify_signature",
                result="rejected",
                risk_level=RiskLevel.HIGH,
                details={"reason": reason},
            ))
            return WebhookResponse(status_code=401, error="Invalid webhook signature")

        # Stage 2: Decode
        try:
            payload = decode_payload(body)
        except WebhookDecodeError as e:
            logger.warning("[%s] %s", context.request_id, e)
            self._log_audit(AuditEvent(
                event_type=AuditEventType.WEBHOOK_DECODE_FAILURE,
                request_id=context.request_id,
                source_ip=source_ip,
                action="decode",
                result="rejected",
                risk_level=RiskLevel.MEDIUM,
            ))
            return WebhookResponse(status_code=400, error="Malformed webhook body")

        # Stages 3-4: Dispatch and relay, one event at a time
        response = WebhookResponse(status_code=200)
        for triggered in iter_triggered(payload, self._trigger):
            response.matched += 1
            try:
                await self._relay_event(triggered, context)
            except GatewayError as e:
                logger.error(
                    "[%s] Event %d not relayed: %s", context.request_id, triggered.index, e,
                )
                response.failed.append(f"{triggered.index}:{e.gateway}:{e.kind.value}")
                self._log_audit(AuditEvent(
                    event_type=AuditEventType.GATEWAY_FAILURE,
                    request_id=context.request_id,
                    source_ip=source_ip,
                    action=e.gateway,
                    result="failure",
                    risk_level=RiskLevel.MEDIUM,
                    details={
                        "event_index": triggered.index,
                        "kind": e.kind.value,
                        "status_code": e.status_code,
                    },
                ))
                continue
            response.replied += 1

        if response.failed:
            response.status_code = 500
            response.error = "Downstream failure"

        # Stage 5: Audit log
        logger.info(
            "[%s] Webhook processed events=%d matched=%d replied=%d failed=%d",
            context.request_id, len(payload.events), response.matched,
            response.replied, len(response.failed),
        )
        self._log_audit(AuditEvent(
            event_type=AuditEventType.WEBHOOK_RELAY,
            request_id=context.request_id,
            source_ip=source_ip,
            action="relay",
            result="success" if response.status_code == 200 else "failure",
            risk_level=RiskLevel.INFO,
            details={
                "events": len(payload.events),
                "matched": response.matched,
                "replied": response.replied,
                "failed": len(response.failed),
            },
        ))
        return response

    async def _relay_event(
        self, triggered: TriggeredMessage, context: RequestContext,
    ) -> None:
        completion = await self._completion.complete(triggered.prompt, context)
        text = completion.text
        if not text:
            raise CompletionError(GatewayFailureKind.DECODE, "completion text is empty")
        await self._reply.reply_message(
            triggered.reply_token, [OutboundTextMessage(text=text)], context,
        )

    def _log_audit(self, event: AuditEvent) -> None:
        if self._audit:
            self._audit.log(event)
