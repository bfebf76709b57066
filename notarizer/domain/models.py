from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True)
class ArtifactRequest:
    path: str
    bundle_id: str | None = None
    staple: bool = False

    def __str__(self) -> str:
        if self.bundle_id:
            return f"{self.path} ({self.bundle_id})"
        return self.path


@dataclass(frozen=True)
class TrackingHandle:
    submission_id: str
    request: ArtifactRequest


# Poller states.
#
# IMPORTANT: keep this enum synchronized with ALLOWED_TRANSITIONS in
# notarizer/domain/lifecycle.py.
class PollState(StrEnum):
    # Uploaded, status not visible to the query endpoint yet.
    AWAITING_QUEUE = "awaiting_queue"

    # Visible and being analyzed.
    POLLING = "polling"

    # Terminal states.
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERRORED = "errored"


TERMINAL_POLL_STATES: frozenset[PollState] = frozenset(
    {PollState.ACCEPTED, PollState.REJECTED, PollState.ERRORED}
)


class Disposition(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERRORED = "errored"


@dataclass(frozen=True)
class StatusResult:
    status: str
    diagnostic_ref: str | None = None
    raw_payload: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class LogResult:
    status: str
    log_body: str | None = None
    raw_payload: dict[str, object] = field(default_factory=dict)


@dataclass
class PhaseRecord:
    """Latest known status of one submission. Owned by a single poller."""

    submission_id: str
    phase: PollState = PollState.AWAITING_QUEUE
    remote_status: str | None = None
    diagnostic_ref: str | None = None
    raw_payload: dict[str, object] = field(default_factory=dict)
    log_status: str | None = None
    log_body: str | None = None
    error: BaseException | None = None


@dataclass(frozen=True)
class ArtifactOutcome:
    request: ArtifactRequest
    disposition: Disposition
    handle: TrackingHandle | None = None
    record: PhaseRecord | None = None
    diagnostic_ref: str | None = None
    cause: BaseException | None = None

    def __str__(self) -> str:
        if self.disposition is Disposition.ACCEPTED:
            return f"{self.request.path}: accepted"
        if self.disposition is Disposition.REJECTED:
            return f"{self.request.path}: rejected"
        return f"{self.request.path}: errored ({self.cause})"


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


@dataclass(frozen=True)
class RunOutcome:
    outcomes: tuple[ArtifactOutcome, ...] = ()

    @property
    def accepted(self) -> tuple[ArtifactOutcome, ...]:
        return self._with(Disposition.ACCEPTED)

    @property
    def rejected(self) -> tuple[ArtifactOutcome, ...]:
        return self._with(Disposition.REJECTED)

    @property
    def errored(self) -> tuple[ArtifactOutcome, ...]:
        return self._with(Disposition.ERRORED)

    @property
    def succeeded(self) -> bool:
        return all(outcome.disposition is Disposition.ACCEPTED for outcome in self.outcomes)

    @property
    def error(self) -> ExceptionGroup | None:
        failures = [outcome.cause for outcome in self.outcomes if outcome.cause is not None]
        if not failures:
            return None
        # ExceptionGroup only accepts Exception instances.
        exceptions = [f if isinstance(f, Exception) else RuntimeError(str(f)) for f in failures]
        return ExceptionGroup(
            f"notarization failed for {len(exceptions)} of {len(self.outcomes)} artifact(s)",
            exceptions,
        )

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.succeeded else EXIT_FAILED

    def _with(self, disposition: Disposition) -> tuple[ArtifactOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.disposition is disposition)
