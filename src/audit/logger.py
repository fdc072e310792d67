"""Audit trail for webhook outcomes: JSON Lines with rotation and a hash chain.

Entries record what happened to a request (rejected, decoded, relayed,
gateway failures), never the message text itself.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from src.models import AuditEvent


def _chain_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check that every entry's prev_hash matches the line before it."""
    lines = [line for line in log_path.read_text().splitlines() if line]
    previous: str | None = None
    for number, line in enumerate(lines, start=1):
        expected = _chain_hash(previous) if previous is not None else None
        if json.loads(line).get("prev_hash") != expected:
            return ChainValidationResult(valid=False, broken_at_line=number)
        previous = line
    return ChainValidationResult(valid=True)


class AuditLogger:
    """Append-only audit log shared by every request handler."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._lock_path = self.log_path.with_name(f".{self.log_path.name}.lock")

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        """Create an AuditLogger with rotation limits from environment variables."""
        return cls(
            log_path=log_path,
            max_bytes=int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760")),
            backup_count=int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5")),
        )

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _rotate_if_full(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return
        self._backup(self._backup_count).unlink(missing_ok=True)
        for index in range(self._backup_count - 1, 0, -1):
            if self._backup(index).exists():
                self._backup(index).rename(self._backup(index + 1))
        self.log_path.rename(self._backup(1))

    def _last_line(self) -> str | None:
        # After a rotation the chain continues from the newest backup.
        for path in (self.log_path, self._backup(1)):
            if path.exists() and path.stat().st_size:
                return _tail_line(path)
        return None

    def log(self, event: AuditEvent) -> None:
        """Append one entry linked to the previous one.

        Rotation and the append run under an exclusive lock file, so every
        worker process writing to the same path extends a single chain.
        """
        data = json.loads(event.model_dump_json())
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._rotate_if_full()
                last = self._last_line()
                data["prev_hash"] = _chain_hash(last) if last is not None else None
                line = json.dumps(data, separators=(",", ":"))
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)


def _tail_line(path: Path, block: int = 65_536) -> str | None:
    with open(path, "rb") as f:
        f.seek(0, os.SEEK_END)
        size = f.tell()
        f.seek(max(0, size - block))
        lines = [line for line in f.read().splitlines() if line]
    return lines[-1].decode() if lines else None
