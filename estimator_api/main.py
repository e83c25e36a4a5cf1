# estimator_api/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from estimator_api.audit.fault_log import FaultLog
from estimator_api.audit.models import AuditStore
from estimator_api.audit.recorder import AuditRecorder
from estimator_api.audit.store import build_audit_store
from estimator_api.config import Settings, get_settings
from estimator_api.middleware.faults import FaultMiddleware
from estimator_api.middleware.request_id import RequestIDMiddleware
from estimator_api.middleware.timing import TimingMiddleware
from estimator_api.routes import health
from estimator_api.routes.estimate import build_router
from estimator_api.services.estimator import Estimator, covid19_estimator
from estimator_api.telemetry.logging import configure_root_logging

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    log.info(
        "server is listening",
        extra={
            "service": settings.APP_NAME,
            "port": settings.PORT,
            "base_path": settings.base_path,
            "audit_backend": settings.AUDIT_BACKEND,
            "audit_log": settings.AUDIT_LOG_FILE,
            "fault_log": settings.FAULT_LOG_FILE,
        },
    )
    try:
        yield
    finally:
        recorder: AuditRecorder = app.state.audit_recorder
        if recorder.pending:
            log.info("flushing pending audit records", extra={"pending": recorder.pending})
        await recorder.drain()


def create_app(
    settings: Optional[Settings] = None,
    *,
    estimator: Optional[Estimator] = None,
    audit_store: Optional[AuditStore] = None,
    fault_log: Optional[FaultLog] = None,
) -> FastAPI:
    """
    Build the service. Stores and the estimator are constructed once here and
    handed to the middleware and routes; nothing reads them from globals.
    """
    settings = settings or get_settings()
    configure_root_logging(settings.LOG_LEVEL, json_lines=settings.LOG_JSON)

    store = audit_store or build_audit_store(settings)
    faults = fault_log or FaultLog(settings.FAULT_LOG_FILE)
    recorder = AuditRecorder(store, faults)

    app = FastAPI(
        title=settings.APP_NAME,
        description="COVID-19 impact estimator with request audit logging.",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.estimator = estimator or covid19_estimator
    app.state.audit_store = store
    app.state.fault_log = faults
    app.state.audit_recorder = recorder

    app.include_router(health.router)
    app.include_router(build_router(settings.base_path))

    # add_middleware prepends: the last one added is the outermost.
    app.add_middleware(FaultMiddleware, faults=faults)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(TimingMiddleware, recorder=recorder)
    return app
