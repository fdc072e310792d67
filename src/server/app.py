"""FastAPI application exposing the LINE webhook endpoint."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.audit.logger import AuditLogger
from src.config import RelaySettings
from src.logging_config import setup_logging
from src.webhook.completion import CompletionGateway
from src.webhook.context import RequestContext
from src.webhook.dispatcher import TriggerRule
from src.webhook.line import LineReplyClient
from src.webhook.relay import WebhookRelayPipeline
from src.webhook.signature import SIGNATURE_HEADER, SignatureVerifier

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/v1/line/webhook"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables.

    Missing required settings raise ConfigurationError and stop startup.
    """
    settings = RelaySettings.from_env()
    setup_logging(settings.log_level)
    audit_logger = (
        AuditLogger.from_env(settings.audit_log_path) if settings.audit_log_path else None
    )
    logger.info("Starting LINE completion relay (model=%s)", settings.completion_model)
    return create_app(settings, audit_logger)


def build_pipeline(
    settings: RelaySettings,
    audit_logger: AuditLogger | None = None,
) -> WebhookRelayPipeline:
    """Wire the pipeline stages from frozen settings."""
    return WebhookRelayPipeline(
        verifier=SignatureVerifier(settings.channel_secret),
        trigger=TriggerRule(settings.chat_prompt),
        completion=CompletionGateway(
            api_key=settings.completion_api_key,
            model=settings.completion_model,
            max_tokens=settings.effective_max_tokens,
            temperature=settings.effective_temperature,
            url=settings.completion_url,
            timeout=settings.timeout_seconds,
        ),
        reply_client=LineReplyClient(
            access_token=settings.channel_access_token,
            api_base=settings.line_api_base,
            timeout=settings.timeout_seconds,
        ),
        audit_logger=audit_logger,
    )


def create_app(
    settings: RelaySettings,
    audit_logger: AuditLogger | None = None,
    pipeline: WebhookRelayPipeline | None = None,
) -> FastAPI:
    """Create the relay app; every request shares the same settings and pipeline."""
    app = FastAPI(docs_url=None, redoc_url=None)
    app.state.settings = settings
    relay = pipeline or build_pipeline(settings, audit_logger)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Hello World!"

    @app.post(WEBHOOK_PATH)
    async def line_webhook(request: Request) -> Response:
        context = RequestContext(traceparent=request.headers.get("traceparent"))
        body = await request.body()
        try:
            result = await relay.handle(
                body,
                request.headers.get(SIGNATURE_HEADER),
                context,
                source_ip=request.client.host if request.client else None,
            )
        except Exception:
            logger.exception("[%s] Unexpected error handling webhook", context.request_id)
            return JSONResponse(
                {"error": "Internal error"},
                status_code=500,
                headers={"X-Request-Id": context.request_id},
            )

        headers = {"X-Request-Id": context.request_id}
        if result.status_code == 200:
            return Response(status_code=200, headers=headers)
        return JSONResponse(
            {"error": result.error},
            status_code=result.status_code,
            headers=headers,
        )

    return app
