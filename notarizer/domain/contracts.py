from __future__ import annotations

from typing import Protocol, runtime_checkable

from notarizer.domain.models import (
    ArtifactOutcome,
    ArtifactRequest,
    LogResult,
    PhaseRecord,
    StatusResult,
    TrackingHandle,
)


@runtime_checkable
class NotaryService(Protocol):
    """Remote notarization service boundary.

    Failures are raised as RemoteServiceError when the service returned a
    structured error, or as any other exception when the transport itself
    broke. Implementations never retry.
    """

    async def submit(self, *, path: str, bundle_id: str | None = None) -> str: ...

    async def query_status(self, *, submission_id: str) -> StatusResult: ...

    async def query_log(self, *, submission_id: str) -> LogResult: ...


@runtime_checkable
class Stapler(Protocol):
    async def staple(self, *, path: str) -> None: ...


@runtime_checkable
class StatusReporter(Protocol):
    """Observation sink. Must be safe to call from several workers at once."""

    def submitting(self, request: ArtifactRequest) -> None: ...

    def submitted(self, request: ArtifactRequest, handle: TrackingHandle) -> None: ...

    def phase_changed(self, request: ArtifactRequest, record: PhaseRecord) -> None: ...

    def finished(self, outcome: ArtifactOutcome) -> None: ...
