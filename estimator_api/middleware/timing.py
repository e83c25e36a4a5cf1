from __future__ import annotations

import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from estimator_api.audit.models import AuditRecord, now_ms
from estimator_api.audit.recorder import AuditRecorder


def _request_target(scope: Scope) -> str:
    path = scope.get("path", "") or "/"
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


class TimingMiddleware:
    """
    Times every HTTP request and submits one audit record once the response
    has been sent in full.

    The final body message is the terminal signal: the record is built only
    after the server accepted it, and at most once per request. Responses
    that never complete (disconnect, failure mid-stream) leave no record.
    """

    def __init__(self, app: ASGIApp, recorder: AuditRecorder) -> None:
        self.app = app
        self.recorder = recorder

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        method: Optional[str] = scope.get("method")
        target = _request_target(scope)
        status_code = 0
        finished = False

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code, finished
            if message["type"] == "http.response.start":
                status_code = int(message["status"])
            await send(message)
            if (
                message["type"] == "http.response.body"
                and not message.get("more_body", False)
                and not finished
            ):
                finished = True
                elapsed = max(int((time.perf_counter() - start) * 1000), 0)
                self.recorder.submit(
                    AuditRecord(
                        timestamp=now_ms(),
                        method=method,
                        path=target,
                        status_code=status_code,
                        duration_ms=elapsed,
                    )
                )

        await self.app(scope, receive, send_wrapper)
