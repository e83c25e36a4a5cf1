from __future__ import annotations

import logging

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from estimator_api.audit.fault_log import FaultLog
from estimator_api.middleware.request_id import get_request_id

_log = logging.getLogger("faults")

FAULT_STATUS = 500
FAULT_BODY = "Internal server error."


class FaultMiddleware:
    """
    Last line of defence for the request pipeline.

    Any exception raised by an inner stage moves the request to the faulted
    state: the client gets one uniform plain-text 500 (unless a response had
    already started, in which case nothing more is sent), then the fault is
    appended to the fault log. The exception is not re-raised.
    """

    def __init__(self, app: ASGIApp, faults: FaultLog) -> None:
        self.app = app
        self.faults = faults

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            _log.error(
                "unhandled fault",
                extra={"method": scope.get("method"), "route": scope.get("path")},
                exc_info=exc,
            )
            if not response_started:
                response = PlainTextResponse(FAULT_BODY, status_code=FAULT_STATUS)
                try:
                    await response(scope, receive, send)
                except Exception as send_exc:
                    _log.warning("fault response not delivered: %s", send_exc)
            await self.faults.record(
                exc,
                request_id=get_request_id(),
                method=scope.get("method"),
                path=scope.get("path"),
            )
