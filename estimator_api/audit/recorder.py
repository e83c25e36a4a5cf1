from __future__ import annotations

import asyncio
import logging
from typing import Set

from estimator_api.audit.fault_log import FaultLog
from estimator_api.audit.models import AuditRecord, AuditStore

_log = logging.getLogger("audit")


class AuditRecorder:
    """
    Submits audit records to the store as detached tasks.

    The caller (the timing middleware) has already sent the response, so a
    failed append is written to the fault log instead of being raised.
    """

    def __init__(self, store: AuditStore, faults: FaultLog) -> None:
        self.store = store
        self.faults = faults
        self._pending: Set[asyncio.Task[None]] = set()

    def submit(self, record: AuditRecord) -> asyncio.Task[None]:
        task = asyncio.create_task(self._write(record))
        # keep a strong reference until the task finishes
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, record: AuditRecord) -> None:
        try:
            await self.store.append(record)
        except Exception as exc:
            _log.warning(
                "audit append failed",
                extra={"path": record.path, "status_code": record.status_code},
            )
            await self.faults.record(exc, method=record.method, path=record.path)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every audit write submitted so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
