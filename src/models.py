"""Shared Pydantic data models for line-completion-relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# --- Enums ---


class AuditEventType(str, Enum):
    AUTH_FAILURE = "auth_failure"
    WEBHOOK_DECODE_FAILURE = "webhook_decode_failure"
    WEBHOOK_RELAY = "webhook_relay"
    GATEWAY_FAILURE = "gateway_failure"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    request_id: str | None = None
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "rejected"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
