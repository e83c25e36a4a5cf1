"""FastAPI dependencies resolving the components built once by ``create_app``."""

from __future__ import annotations

from fastapi import Request

from estimator_api.audit.models import AuditStore
from estimator_api.config import Settings
from estimator_api.services.estimator import Estimator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_audit_store(request: Request) -> AuditStore:
    return request.app.state.audit_store


def get_estimator(request: Request) -> Estimator:
    return request.app.state.estimator
