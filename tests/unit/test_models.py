"""Tests for shared Pydantic data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models import AuditEvent, AuditEventType, RiskLevel


class TestAuditEvent:
    def test_enums_serialize_lowercase(self):
        event = AuditEvent(
            event_type=AuditEventType.GATEWAY_FAILURE,
            action="completion",
            result="failure",
            risk_level=RiskLevel.MEDIUM,
        )
        data = event.model_dump(mode="json")
        assert data["event_type"] == "gateway_failure"
        assert data["risk_level"] == "medium"

    def test_timestamp_defaults_to_utc_iso(self):
        event = AuditEvent(
            event_type=AuditEventType.WEBHOOK_RELAY,
            action="relay",
            result="success",
            risk_level=RiskLevel.INFO,
        )
        assert event.timestamp.endswith("+00:00")

    def test_optional_fields_default_none(self):
        event = AuditEvent(
            event_type=AuditEventType.AUTH_FAILURE,
            action="verify_signature",
            result="rejected",
            risk_level=RiskLevel.HIGH,
        )
        assert event.request_id is None
        assert event.source_ip is None
        assert event.details is None

    def test_unknown_event_type_rejected(self):
        with pytest.raises(ValidationError):
            AuditEvent(
                event_type="skill_scan",  # type: ignore[arg-type]
                action="x",
                result="x",
                risk_level=RiskLevel.LOW,
            )
