"""Fault taxonomy shared by the pipeline, the stores and the fault interceptor."""

from __future__ import annotations


class ApiFault(Exception):
    """Base class for every failure the service knows how to classify."""


class DecodeFault(ApiFault):
    """The request body could not be decoded into a structured input."""


class EstimationFault(ApiFault):
    """The estimator collaborator rejected or failed on its input."""


class EncodeFault(ApiFault):
    """A value could not be rendered in the requested response format."""


class StoreFault(ApiFault):
    """Audit store or fault log I/O failed, or a persisted document is malformed."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
