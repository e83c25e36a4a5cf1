from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class AuditRecord:
    """One completed request, as observed after its response was sent."""

    timestamp: int
    method: Optional[str]
    path: str
    status_code: int
    duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "method": self.method,
            "path": self.path,
            "statusCode": self.status_code,
            "durationMs": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AuditRecord":
        method = raw.get("method")
        return cls(
            timestamp=int(raw["timestamp"]),
            method=str(method) if method is not None else None,
            path=str(raw["path"]),
            status_code=int(raw["statusCode"]),
            duration_ms=max(int(raw["durationMs"]), 0),
        )


class AuditStore:
    """Durable append / full read of audit records."""

    async def append(self, record: AuditRecord) -> None:
        raise NotImplementedError

    async def read_all(self) -> List[AuditRecord]:
        raise NotImplementedError
