from __future__ import annotations

import json
import logging
import traceback
from typing import Any, Dict, List, Optional

import anyio

from estimator_api.audit.models import now_ms
from estimator_api.audit.store import LedgerFile
from estimator_api.errors import StoreFault

_log = logging.getLogger("fault_log")


def _describe(exc: BaseException) -> str:
    text = str(exc)
    name = type(exc).__name__
    return f"{name}: {text}" if text else name


class FaultLog:
    """Durable, newline-delimited record of unhandled failures."""

    def __init__(self, path: str) -> None:
        self._file = LedgerFile(path)

    @property
    def path(self) -> str:
        return self._file.path

    async def record(
        self,
        exc: BaseException,
        *,
        request_id: Optional[str] = None,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> bool:
        """
        Persist one fault entry. Never raises: a failure to write the fault
        log is reported through logging and the caller carries on.
        """
        entry: Dict[str, Any] = {
            "ts": now_ms(),
            "request_id": request_id,
            "method": method,
            "path": path,
            "error": _describe(exc),
            "traceback": "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        }
        try:
            line = json.dumps(entry, ensure_ascii=False, default=str)
            await anyio.to_thread.run_sync(self._file.append_line, line)
        except Exception as write_exc:
            _log.warning(
                "fault log write failed",
                extra={"fault_log": self.path, "error": _describe(write_exc)},
                exc_info=exc,
            )
            return False
        return True

    async def read_all(self) -> List[Dict[str, Any]]:
        lines = await anyio.to_thread.run_sync(self._file.read_lines)
        entries: List[Dict[str, Any]] = []
        for lineno, raw in enumerate(lines, start=1):
            try:
                entries.append(json.loads(raw))
            except ValueError as exc:
                raise StoreFault(
                    f"malformed fault entry at {self.path}:{lineno}", path=self.path
                ) from exc
        return entries
