from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from notarizer.domain.contracts import NotaryService, StatusReporter
from notarizer.domain.errors import DomainInvariantError, NotarizationCancelledError, UnclassifiedRemoteError
from notarizer.domain.lifecycle import (
    Observation,
    Verdict,
    advance,
    combine_verdicts,
    ensure_transition,
    remote_verdict,
)
from notarizer.domain.models import LogResult, PhaseRecord, PollState, StatusResult, TrackingHandle
from notarizer.workers.settings import PollerSettings

logger = logging.getLogger("notarizer")

Query = Callable[[], Awaitable[StatusResult | LogResult]]
T = TypeVar("T")


async def wait_or_stopped(stop_event: asyncio.Event, seconds: float) -> bool:
    """Sleep for ``seconds``; return True early if the stop event fires."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=max(seconds, 0))
    except TimeoutError:
        return False
    return True


async def until_stopped(stop_event: asyncio.Event, awaitable: Awaitable[T], *, cancelled_message: str) -> T:
    """Await ``awaitable`` unless the stop event fires first.

    On stop the pending work is cancelled and ``NotarizationCancelledError``
    is raised. Work that already finished wins over a simultaneous stop.
    """
    task = asyncio.ensure_future(awaitable)
    stopper = asyncio.ensure_future(stop_event.wait())
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
        if not task.done():
            task.cancel()

    if not task.done():
        await asyncio.wait({task})
    if task.cancelled():
        raise NotarizationCancelledError(cancelled_message)
    return task.result()


@dataclass
class StatusPoller:
    service: NotaryService
    settings: PollerSettings
    reporter: StatusReporter
    stop_event: asyncio.Event
    run_id: str = ""

    async def run(self, handle: TrackingHandle) -> PhaseRecord:
        record = PhaseRecord(submission_id=handle.submission_id)
        self.reporter.phase_changed(handle.request, record)

        status_verdict = await self._poll_resource(
            handle,
            record,
            resource="status",
            query=lambda: self.service.query_status(submission_id=handle.submission_id),
        )
        if status_verdict is None:
            return record

        log_verdict: Verdict | None = None
        if self.settings.fetch_log:
            self._enter(handle, record, PollState.POLLING)
            log_verdict = await self._poll_resource(
                handle,
                record,
                resource="log",
                query=lambda: self.service.query_log(submission_id=handle.submission_id),
            )
            if log_verdict is None:
                return record

        final_state = combine_verdicts(status_verdict, log_verdict)
        if final_state is PollState.REJECTED:
            record.diagnostic_ref = _diagnostic_for(record)
        self._enter(handle, record, final_state)
        return record

    async def _poll_resource(
        self,
        handle: TrackingHandle,
        record: PhaseRecord,
        *,
        resource: str,
        query: Query,
    ) -> Verdict | None:
        # The log resource has its own queue/poll cadence; only the status
        # resource drives the record's phase before the verdict.
        state = PollState.AWAITING_QUEUE if resource == "status" else record.phase
        while True:
            if self.stop_event.is_set():
                self._cancel(handle, record)
                return None

            try:
                result = await until_stopped(
                    self.stop_event,
                    query(),
                    cancelled_message=f"{resource} query for {handle.request.path} was cancelled",
                )
            except NotarizationCancelledError:
                self._cancel(handle, record)
                return None
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                observation = Observation.from_error(exc)
            else:
                self._apply(handle, record, result)
                observation = Observation.from_status(result.status)

            step = advance(state, observation)
            if observation.disposition == "transient_network":
                logger.warning(
                    "notarization service unavailable, will retry",
                    extra=self._extra(handle, record, resource=resource),
                )

            if step.next_state is PollState.ERRORED:
                if observation.error is None:
                    raise DomainInvariantError("errored step without an observed error")
                self._fail(
                    handle,
                    record,
                    UnclassifiedRemoteError(handle.request.path, handle.submission_id, observation.error),
                )
                return None
            if step.done:
                return remote_verdict(observation.remote_status)

            state = step.next_state
            if resource == "status":
                self._enter(handle, record, state)

            if step.sleep is None:
                raise DomainInvariantError(f"non-terminal step to '{state}' without a poll cadence")
            if await wait_or_stopped(self.stop_event, self.settings.interval_for(step.sleep)):
                self._cancel(handle, record)
                return None

    def _apply(self, handle: TrackingHandle, record: PhaseRecord, result: StatusResult | LogResult) -> None:
        if isinstance(result, StatusResult):
            changed = result.status != record.remote_status
            record.remote_status = result.status
            record.raw_payload = dict(result.raw_payload)
            if result.diagnostic_ref:
                record.diagnostic_ref = result.diagnostic_ref
        else:
            changed = result.status != record.log_status
            record.log_status = result.status
            if result.log_body is not None:
                record.log_body = result.log_body
        if changed:
            self.reporter.phase_changed(handle.request, record)

    def _enter(self, handle: TrackingHandle, record: PhaseRecord, state: PollState) -> None:
        if record.phase is state:
            return
        ensure_transition(record.phase, state)
        record.phase = state
        logger.info("poller state changed", extra=self._extra(handle, record))
        self.reporter.phase_changed(handle.request, record)

    def _fail(self, handle: TrackingHandle, record: PhaseRecord, error: BaseException) -> None:
        record.error = error
        self._enter(handle, record, PollState.ERRORED)

    def _cancel(self, handle: TrackingHandle, record: PhaseRecord) -> None:
        self._fail(
            handle,
            record,
            NotarizationCancelledError(f"polling for {handle.request.path} was cancelled"),
        )

    def _extra(self, handle: TrackingHandle, record: PhaseRecord, **extra: object) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "artifact": handle.request.path,
            "submission_id": handle.submission_id,
            "state": str(record.phase),
            "remote_status": record.remote_status,
            **extra,
        }


def _diagnostic_for(record: PhaseRecord) -> str:
    if record.diagnostic_ref:
        return record.diagnostic_ref
    if record.log_body:
        return record.log_body
    return json.dumps(record.raw_payload, sort_keys=True, default=str)
