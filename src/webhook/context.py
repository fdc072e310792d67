"""Per-request context threaded explicitly into outbound gateway calls."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    traceparent: str | None = None

    def outbound_headers(self) -> dict[str, str]:
        """Headers that tie an outbound call back to the inbound request."""
        headers = {"X-Request-Id": self.request_id}
        if self.traceparent:
            headers["traceparent"] = self.traceparent
        return headers
