"""Failures raised by the outbound gateways (completion backend, LINE reply API)."""

from __future__ import annotations

from enum import Enum


class GatewayFailureKind(str, Enum):
    TRANSPORT = "transport"  # connection error or timeout
    STATUS = "status"  # remote answered with a non-success status
    DECODE = "decode"  # response body did not match the expected shape


class GatewayError(Exception):
    """Raised when an outbound call fails. Never retried by the relay."""

    gateway = "gateway"

    def __init__(
        self,
        kind: GatewayFailureKind,
        detail: str,
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{self.gateway} {kind.value} failure: {detail}{suffix}")


class CompletionError(GatewayError):
    """The completion backend could not produce a usable response."""

    gateway = "completion"


class ReplyError(GatewayError):
    """The LINE reply API rejected or never received the reply."""

    gateway = "reply"
