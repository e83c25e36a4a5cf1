from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from estimator_api.audit.models import AuditStore
from estimator_api.dependencies.components import get_audit_store, get_estimator
from estimator_api.egress.encoder import Encoded, ResponseFormat
from estimator_api.services.estimator import Estimator
from estimator_api.services.pipeline import render_audit_report, run_estimate

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _respond(encoded: Encoded) -> Response:
    return Response(content=encoded.body, status_code=200, media_type=encoded.media_type)


def build_router(base_path: str) -> APIRouter:
    """Estimator and audit-report routes mounted under ``base_path``."""
    router = APIRouter(prefix=base_path, tags=["estimator"])

    async def _estimate(request: Request, estimator: Estimator, fmt: ResponseFormat) -> Response:
        raw = await request.body()
        content_type = request.headers.get("content-type")
        return _respond(run_estimate(raw, estimator, fmt, content_type))

    @router.post("", summary="Estimate (JSON)")
    async def estimate_default(
        request: Request, estimator: Estimator = Depends(get_estimator)
    ) -> Response:
        return await _estimate(request, estimator, ResponseFormat.JSON)

    @router.post("/json", summary="Estimate (JSON)")
    async def estimate_json(
        request: Request, estimator: Estimator = Depends(get_estimator)
    ) -> Response:
        return await _estimate(request, estimator, ResponseFormat.JSON)

    @router.post("/xml", summary="Estimate (XML)")
    async def estimate_xml(
        request: Request, estimator: Estimator = Depends(get_estimator)
    ) -> Response:
        return await _estimate(request, estimator, ResponseFormat.XML)

    @router.api_route("/logs", methods=_ALL_METHODS, summary="Audit log report")
    async def logs(store: AuditStore = Depends(get_audit_store)) -> Response:
        return _respond(await render_audit_report(store))

    return router
