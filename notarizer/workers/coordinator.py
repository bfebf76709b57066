from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from notarizer.domain.contracts import NotaryService, Stapler, StatusReporter
from notarizer.domain.errors import (
    DomainError,
    NotarizationCancelledError,
    RemoteRejectedError,
    StapleError,
)
from notarizer.domain.models import (
    ArtifactOutcome,
    ArtifactRequest,
    Disposition,
    PollState,
    RunOutcome,
    TrackingHandle,
)
from notarizer.workers.poller import StatusPoller, until_stopped
from notarizer.workers.reporter import GuardedReporter, NullReporter
from notarizer.workers.settings import PollerSettings
from notarizer.workers.submission import SubmissionAdapter

logger = logging.getLogger("notarizer")


@dataclass
class NotarizationCoordinator:
    """Runs one worker per artifact.

    Uploads go through a single run-wide lock because the service rejects
    overlapping uploads that share context such as the bundle id. Polling is
    not serialized.
    """

    service: NotaryService
    settings: PollerSettings = field(default_factory=PollerSettings)
    reporter: StatusReporter = field(default_factory=NullReporter)
    stapler: Stapler | None = None
    run_id: str = ""

    async def run(
        self,
        requests: Sequence[ArtifactRequest],
        *,
        stop_event: asyncio.Event | None = None,
    ) -> RunOutcome:
        if not requests:
            return RunOutcome()

        stop = stop_event if stop_event is not None else asyncio.Event()
        upload_section = asyncio.Lock()
        reporter = GuardedReporter(self.reporter)
        adapter = SubmissionAdapter(service=self.service)
        poller = StatusPoller(
            service=self.service,
            settings=self.settings,
            reporter=reporter,
            stop_event=stop,
            run_id=self.run_id,
        )

        logger.info(
            "notarization run started",
            extra={"run_id": self.run_id, "artifacts": len(requests)},
        )
        outcomes = await asyncio.gather(
            *(
                self._notarize_one(
                    request,
                    adapter=adapter,
                    poller=poller,
                    reporter=reporter,
                    upload_section=upload_section,
                    stop=stop,
                )
                for request in requests
            )
        )
        result = RunOutcome(outcomes=tuple(outcomes))
        logger.info(
            "notarization run finished",
            extra={
                "run_id": self.run_id,
                "accepted": len(result.accepted),
                "rejected": len(result.rejected),
                "errored": len(result.errored),
            },
        )
        return result

    async def _notarize_one(
        self,
        request: ArtifactRequest,
        *,
        adapter: SubmissionAdapter,
        poller: StatusPoller,
        reporter: GuardedReporter,
        upload_section: asyncio.Lock,
        stop: asyncio.Event,
    ) -> ArtifactOutcome:
        handle: TrackingHandle | None = None
        try:
            cancelled_message = f"upload of {request.path} was cancelled"
            await until_stopped(stop, upload_section.acquire(), cancelled_message=cancelled_message)
            try:
                if stop.is_set():
                    raise NotarizationCancelledError(cancelled_message)
                reporter.submitting(request)
                handle = await until_stopped(stop, adapter.upload(request), cancelled_message=cancelled_message)
            finally:
                upload_section.release()
            reporter.submitted(request, handle)

            record = await poller.run(handle)
            if record.phase is PollState.ACCEPTED:
                if request.staple:
                    await self._staple(request)
                outcome = ArtifactOutcome(
                    request=request,
                    disposition=Disposition.ACCEPTED,
                    handle=handle,
                    record=record,
                )
            elif record.phase is PollState.REJECTED:
                outcome = ArtifactOutcome(
                    request=request,
                    disposition=Disposition.REJECTED,
                    handle=handle,
                    record=record,
                    diagnostic_ref=record.diagnostic_ref,
                    cause=RemoteRejectedError(request.path, record.diagnostic_ref),
                )
            else:
                outcome = ArtifactOutcome(
                    request=request,
                    disposition=Disposition.ERRORED,
                    handle=handle,
                    record=record,
                    cause=record.error,
                )
        except DomainError as exc:
            outcome = self._errored(request, handle, exc)
        except Exception as exc:
            logger.exception(
                "unexpected notarization failure",
                extra={"run_id": self.run_id, "artifact": request.path},
            )
            outcome = self._errored(request, handle, exc)

        if outcome.disposition is not Disposition.ACCEPTED:
            logger.warning(
                "artifact not notarized",
                extra={
                    "run_id": self.run_id,
                    "artifact": request.path,
                    "state": str(outcome.disposition),
                    "error_code": type(outcome.cause).__name__ if outcome.cause else None,
                },
            )
        reporter.finished(outcome)
        return outcome

    async def _staple(self, request: ArtifactRequest) -> None:
        if self.stapler is None:
            return
        try:
            await self.stapler.staple(path=request.path)
        except StapleError:
            raise
        except Exception as exc:
            raise StapleError(f"stapling {request.path} failed: {exc}") from exc

    def _errored(
        self,
        request: ArtifactRequest,
        handle: TrackingHandle | None,
        error: BaseException,
    ) -> ArtifactOutcome:
        return ArtifactOutcome(
            request=request,
            disposition=Disposition.ERRORED,
            handle=handle,
            cause=error,
        )
