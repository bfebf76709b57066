from __future__ import annotations

import logging
from dataclasses import dataclass

from notarizer.domain.contracts import NotaryService
from notarizer.domain.errors import UploadError
from notarizer.domain.models import ArtifactRequest, TrackingHandle

logger = logging.getLogger("notarizer")


@dataclass(frozen=True)
class SubmissionAdapter:
    service: NotaryService

    async def upload(self, request: ArtifactRequest) -> TrackingHandle:
        """Submit one artifact, exactly once. Failures are wrapped verbatim."""
        try:
            submission_id = await self.service.submit(path=request.path, bundle_id=request.bundle_id)
        except Exception as exc:
            raise UploadError(request.path, exc) from exc

        if not submission_id:
            raise UploadError(request.path, ValueError("service returned an empty submission id"))

        logger.info(
            "artifact uploaded",
            extra={"artifact": request.path, "submission_id": submission_id},
        )
        return TrackingHandle(submission_id=submission_id, request=request)
