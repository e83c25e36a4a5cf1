from __future__ import annotations

from typing import Any, Dict, List

from starlette.types import Message, Receive, Scope, Send

from estimator_api.audit.models import AuditRecord
from estimator_api.middleware.timing import TimingMiddleware


class _FakeRecorder:
    def __init__(self, events: List[Any]) -> None:
        self.events = events
        self.records: List[AuditRecord] = []

    def submit(self, record: AuditRecord) -> None:
        self.events.append("submit")
        self.records.append(record)


def _scope(path: str = "/api/v1/on-covid-19/json", query: bytes = b"") -> Dict[str, Any]:
    return {"type": "http", "method": "POST", "path": path, "query_string": query, "headers": []}


async def _receive() -> Message:
    return {"type": "http.request", "body": b"", "more_body": False}


async def _ok_app(scope: Scope, receive: Receive, send: Send) -> None:
    await send({"type": "http.response.start", "status": 201, "headers": []})
    await send({"type": "http.response.body", "body": b"a", "more_body": True})
    await send({"type": "http.response.body", "body": b"b"})


async def test_record_built_after_final_body_is_sent():
    events: List[Any] = []
    recorder = _FakeRecorder(events)

    async def send(message: Message) -> None:
        events.append(message["type"])

    mw = TimingMiddleware(_ok_app, recorder=recorder)  # type: ignore[arg-type]
    await mw(_scope(query=b"x=1"), _receive, send)

    assert events == [
        "http.response.start",
        "http.response.body",
        "http.response.body",
        "submit",
    ]
    rec = recorder.records[0]
    assert rec.method == "POST"
    assert rec.path == "/api/v1/on-covid-19/json?x=1"
    assert rec.status_code == 201
    assert rec.duration_ms >= 0
    assert rec.timestamp > 0


async def test_disconnect_before_completion_leaves_no_record():
    recorder = _FakeRecorder([])

    async def send(message: Message) -> None:
        if message["type"] == "http.response.body":
            raise OSError("client went away")

    mw = TimingMiddleware(_ok_app, recorder=recorder)  # type: ignore[arg-type]
    try:
        await mw(_scope(), _receive, send)
    except OSError:
        pass

    assert recorder.records == []


async def test_failure_after_completion_records_once():
    recorder = _FakeRecorder([])

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"done"})
        raise RuntimeError("late failure")

    async def send(message: Message) -> None:
        return None

    mw = TimingMiddleware(app, recorder=recorder)  # type: ignore[arg-type]
    try:
        await mw(_scope(), _receive, send)
    except RuntimeError:
        pass

    assert len(recorder.records) == 1
    assert recorder.records[0].status_code == 200


async def test_non_http_scopes_pass_through():
    recorder = _FakeRecorder([])
    seen: List[str] = []

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        seen.append(scope["type"])

    async def send(message: Message) -> None:
        return None

    mw = TimingMiddleware(app, recorder=recorder)  # type: ignore[arg-type]
    await mw({"type": "lifespan"}, _receive, send)

    assert seen == ["lifespan"]
    assert recorder.records == []
