from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from notarizer.domain.error_taxonomy import (
    RETRY_CADENCE,
    PollCadence,
    RemoteDisposition,
    classify_remote_error,
    is_retryable,
)
from notarizer.domain.errors import DomainInvariantError
from notarizer.domain.models import TERMINAL_POLL_STATES, PollState

Verdict = Literal["accepted", "rejected"]

ACCEPTED_REMOTE_STATUSES = frozenset({"accepted"})
REJECTED_REMOTE_STATUSES = frozenset({"rejected", "invalid"})

# Self-loops on non-terminal states are always allowed.
ALLOWED_TRANSITIONS: dict[PollState, set[PollState]] = {
    PollState.AWAITING_QUEUE: {PollState.POLLING, PollState.ACCEPTED, PollState.REJECTED, PollState.ERRORED},
    PollState.POLLING: {PollState.ACCEPTED, PollState.REJECTED, PollState.ERRORED},
    PollState.ACCEPTED: set(),
    PollState.REJECTED: set(),
    PollState.ERRORED: set(),
}


@dataclass(frozen=True)
class Observation:
    """Classified result of one status or log query."""

    disposition: RemoteDisposition
    remote_status: str | None = None
    error: BaseException | None = None

    @classmethod
    def from_error(cls, error: BaseException) -> Observation:
        return cls(disposition=classify_remote_error(error), error=error)

    @classmethod
    def from_status(cls, remote_status: str) -> Observation:
        return cls(disposition=classify_remote_error(None), remote_status=remote_status)

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Step:
    next_state: PollState
    sleep: PollCadence | None

    @property
    def done(self) -> bool:
        return self.next_state in TERMINAL_POLL_STATES


def normalize_remote_status(status: str) -> str:
    return status.strip().lower().replace("_", "-").replace(" ", "-")


def remote_verdict(status: str | None) -> Verdict | None:
    if status is None:
        return None
    normalized = normalize_remote_status(status)
    if normalized in ACCEPTED_REMOTE_STATUSES:
        return "accepted"
    if normalized in REJECTED_REMOTE_STATUSES:
        return "rejected"
    return None


def advance(state: PollState, observation: Observation) -> Step:
    if state in TERMINAL_POLL_STATES:
        raise DomainInvariantError(f"poller already finished in state '{state}'")

    if not observation.succeeded:
        if not is_retryable(observation.disposition):
            return _step(state, PollState.ERRORED, None)
        return _step(state, state, RETRY_CADENCE[observation.disposition])

    verdict = remote_verdict(observation.remote_status)
    if verdict == "accepted":
        return _step(state, PollState.ACCEPTED, None)
    if verdict == "rejected":
        return _step(state, PollState.REJECTED, None)
    return _step(state, PollState.POLLING, "slow")


def ensure_transition(from_state: PollState, to_state: PollState) -> None:
    if from_state == to_state and from_state not in TERMINAL_POLL_STATES:
        return
    if to_state not in ALLOWED_TRANSITIONS[from_state]:
        raise DomainInvariantError(f"illegal poller transition: {from_state} -> {to_state}")


def combine_verdicts(status_verdict: Verdict | None, log_verdict: Verdict | None) -> PollState:
    if "rejected" in (status_verdict, log_verdict):
        return PollState.REJECTED
    return PollState.ACCEPTED


def _step(from_state: PollState, to_state: PollState, sleep: PollCadence | None) -> Step:
    ensure_transition(from_state, to_state)
    return Step(next_state=to_state, sleep=sleep)
