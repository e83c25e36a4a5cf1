from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, List

import anyio

from estimator_api.audit.models import AuditRecord, AuditStore
from estimator_api.config import Settings
from estimator_api.errors import StoreFault

_log = logging.getLogger("audit_store")


class LedgerFile:
    """Append-only line file; opened per call, never held across requests."""

    def __init__(self, path: str) -> None:
        self.path = path

    def append_line(self, line: str) -> None:
        directory = os.path.dirname(self.path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            # one write per entry; O_APPEND keeps concurrent writers from interleaving
            with open(self.path, "a", encoding="utf-8") as handle:
                handle.write(line + "\n")
                handle.flush()
        except OSError as exc:
            raise StoreFault(f"append to {self.path} failed: {exc}", path=self.path) from exc

    def read_lines(self) -> List[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                return [line.rstrip("\n") for line in handle if line.strip()]
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StoreFault(f"read of {self.path} failed: {exc}", path=self.path) from exc


class LedgerAuditStore(AuditStore):
    """One NDJSON line per record; appends never read existing content."""

    def __init__(self, path: str) -> None:
        self._file = LedgerFile(path)

    @property
    def path(self) -> str:
        return self._file.path

    async def append(self, record: AuditRecord) -> None:
        line = json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)
        await anyio.to_thread.run_sync(self._file.append_line, line)

    async def read_all(self) -> List[AuditRecord]:
        lines = await anyio.to_thread.run_sync(self._file.read_lines)
        records: List[AuditRecord] = []
        for lineno, raw in enumerate(lines, start=1):
            try:
                records.append(AuditRecord.from_dict(json.loads(raw)))
            except (AttributeError, ValueError, KeyError, TypeError) as exc:
                raise StoreFault(
                    f"malformed audit entry at {self.path}:{lineno}", path=self.path
                ) from exc
        return records


class SnapshotAuditStore(AuditStore):
    """
    Whole audit log kept as one JSON object mapping timestamp -> record.

    Every append loads the document, inserts one key and rewrites the file.
    The cycle runs under a lock: without it two completions that overlap
    each load the same snapshot and the last writer drops the other's entry.
    Records sharing a millisecond are kept under "<timestamp>-<n>" keys.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                text = handle.read()
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StoreFault(f"read of {self.path} failed: {exc}", path=self.path) from exc
        if not text.strip():
            return {}
        try:
            raw = json.loads(text)
        except ValueError as exc:
            raise StoreFault(f"malformed audit snapshot {self.path}", path=self.path) from exc
        if not isinstance(raw, dict):
            raise StoreFault(f"audit snapshot {self.path} is not an object", path=self.path)
        return raw

    def _store(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(prefix=".audit_snapshot.", dir=directory)
        except OSError as exc:
            raise StoreFault(f"write of {self.path} failed: {exc}", path=self.path) from exc
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, separators=(",", ":"))
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StoreFault(f"write of {self.path} failed: {exc}", path=self.path) from exc
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError as exc:
                    _log.debug("cleanup of %s failed: %s", tmp_path, exc)

    @staticmethod
    def _free_key(data: Dict[str, Any], timestamp: int) -> str:
        key = str(timestamp)
        n = 0
        while key in data:
            n += 1
            key = f"{timestamp}-{n}"
        return key

    def _append_sync(self, record: AuditRecord) -> None:
        with self._lock:
            data = self._load()
            data[self._free_key(data, record.timestamp)] = record.to_dict()
            self._store(data)

    def _read_sync(self) -> List[AuditRecord]:
        with self._lock:
            data = self._load()
        records: List[AuditRecord] = []
        for key, value in data.items():
            try:
                records.append(AuditRecord.from_dict(value))
            except (AttributeError, ValueError, KeyError, TypeError) as exc:
                raise StoreFault(
                    f"malformed audit entry {key!r} in {self.path}", path=self.path
                ) from exc
        return records

    async def append(self, record: AuditRecord) -> None:
        await anyio.to_thread.run_sync(self._append_sync, record)

    async def read_all(self) -> List[AuditRecord]:
        return await anyio.to_thread.run_sync(self._read_sync)


def build_audit_store(settings: Settings) -> AuditStore:
    if settings.AUDIT_BACKEND == "snapshot":
        return SnapshotAuditStore(settings.AUDIT_LOG_FILE)
    return LedgerAuditStore(settings.AUDIT_LOG_FILE)
