from __future__ import annotations

from typing import List

from estimator_api.audit.fault_log import FaultLog
from estimator_api.audit.models import AuditRecord, AuditStore
from estimator_api.audit.recorder import AuditRecorder
from estimator_api.audit.store import LedgerAuditStore
from estimator_api.errors import StoreFault


class _BrokenStore(AuditStore):
    async def append(self, record: AuditRecord) -> None:
        raise StoreFault("disk full")

    async def read_all(self) -> List[AuditRecord]:
        return []


def _record() -> AuditRecord:
    return AuditRecord(timestamp=1, method="POST", path="/json", status_code=200, duration_ms=3)


async def test_submit_persists_in_background(tmp_path):
    store = LedgerAuditStore(str(tmp_path / "audit-log.txt"))
    recorder = AuditRecorder(store, FaultLog(str(tmp_path / "error-log.txt")))

    task = recorder.submit(_record())
    assert recorder.pending == 1
    await recorder.drain()

    assert task.done()
    assert recorder.pending == 0
    assert await store.read_all() == [_record()]


async def test_failed_append_goes_to_fault_log(tmp_path):
    faults = FaultLog(str(tmp_path / "error-log.txt"))
    recorder = AuditRecorder(_BrokenStore(), faults)

    recorder.submit(_record())
    await recorder.drain()

    entries = await faults.read_all()
    assert len(entries) == 1
    assert entries[0]["error"] == "StoreFault: disk full"
    assert entries[0]["path"] == "/json"


async def test_drain_with_nothing_pending_returns(tmp_path):
    recorder = AuditRecorder(_BrokenStore(), FaultLog(str(tmp_path / "e.txt")))
    await recorder.drain()
    assert recorder.pending == 0
