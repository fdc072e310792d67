"""Completion backend gateway (OpenAI-style ``/v1/completions``).

Shapes the request, unwraps the candidate texts, and turns every failure
into a CompletionError. No retries.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.config import (
    DEFAULT_COMPLETION_MODEL,
    DEFAULT_COMPLETION_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
)
from src.webhook.context import RequestContext
from src.webhook.errors import CompletionError, GatewayFailureKind

logger = logging.getLogger(__name__)


class CompletionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    prompt: str
    max_tokens: int = Field(gt=0)
    temperature: float | None = None


class CompletionChoice(BaseModel):
    text: str
    index: int | None = None
    finish_reason: str | None = None


class CompletionUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionResponse(BaseModel):
    choices: list[CompletionChoice] = Field(min_length=1)
    usage: CompletionUsage | None = None

    @property
    def text(self) -> str:
        """All candidate texts joined, trimmed at both ends."""
        return "".join(choice.text for choice in self.choices).strip()


class CompletionGateway:
    """Calls the completion backend with a fixed model and generation parameters."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_COMPLETION_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float | None = DEFAULT_TEMPERATURE,
        url: str = DEFAULT_COMPLETION_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._url = url
        self._timeout = timeout

    def build_request(self, prompt: str) -> CompletionRequest:
        return CompletionRequest(
            model=self._model,
            prompt=prompt,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )

    async def complete(
        self, prompt: str, context: RequestContext | None = None,
    ) -> CompletionResponse:
        """Request a completion for prompt.

        Raises CompletionError on transport failure, non-2xx status, or an
        undecodable response body.
        """
        context = context or RequestContext()
        request = self.build_request(prompt)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            **context.outbound_headers(),
        }
        logger.info(
            "[%s] Completion request model=%s max_tokens=%d",
            context.request_id, request.model, request.max_tokens,
        )
        logger.debug("[%s] Completion prompt=%r", context.request_id, request.prompt)

        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    self._url,
                    json=request.model_dump(exclude_none=True),
                    headers=headers,
                    timeout=self._timeout,
                )
        except httpx.DecodingError as e:
            raise CompletionError(GatewayFailureKind.DECODE, str(e) or type(e).__name__) from e
        except httpx.RequestError as e:
            raise CompletionError(GatewayFailureKind.TRANSPORT, str(e) or type(e).__name__) from e

        if not 200 <= resp.status_code < 300:
            raise CompletionError(
                GatewayFailureKind.STATUS,
                "completion backend returned an error",
                status_code=resp.status_code,
            )

        try:
            result = CompletionResponse.model_validate(resp.json())
        except ValueError as e:
            raise CompletionError(GatewayFailureKind.DECODE, "unexpected response body") from e

        if result.usage is not None:
            logger.info(
                "[%s] Completion usage prompt_tokens=%d completion_tokens=%d total_tokens=%d",
                context.request_id,
                result.usage.prompt_tokens,
                result.usage.completion_tokens,
                result.usage.total_tokens,
            )
        return result
