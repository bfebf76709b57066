import pytest

from notarizer.domain.errors import DomainInvariantError, RemoteServiceError
from notarizer.domain.lifecycle import (
    ALLOWED_TRANSITIONS,
    Observation,
    advance,
    combine_verdicts,
    ensure_transition,
    remote_verdict,
)
from notarizer.domain.models import TERMINAL_POLL_STATES, PollState


def _queued() -> Observation:
    return Observation.from_error(RemoteServiceError.single(1519))


def _transient() -> Observation:
    return Observation.from_error(RemoteServiceError.single(-19000))


@pytest.mark.unit
def test_queued_keeps_awaiting_queue_on_slow_cadence() -> None:
    step = advance(PollState.AWAITING_QUEUE, _queued())
    assert step.next_state is PollState.AWAITING_QUEUE
    assert step.sleep == "slow"
    assert step.done is False


@pytest.mark.unit
@pytest.mark.parametrize("state", [PollState.AWAITING_QUEUE, PollState.POLLING])
def test_transient_keeps_current_state_on_fast_cadence(state: PollState) -> None:
    step = advance(state, _transient())
    assert step.next_state is state
    assert step.sleep == "fast"


@pytest.mark.unit
@pytest.mark.parametrize("state", [PollState.AWAITING_QUEUE, PollState.POLLING])
def test_terminal_error_moves_to_errored(state: PollState) -> None:
    step = advance(state, Observation.from_error(RemoteServiceError.single(42)))
    assert step.next_state is PollState.ERRORED
    assert step.sleep is None
    assert step.done is True


@pytest.mark.unit
@pytest.mark.parametrize(
    ("remote_status", "expected"),
    [
        ("Accepted", PollState.ACCEPTED),
        ("Invalid", PollState.REJECTED),
        ("Rejected", PollState.REJECTED),
        ("In Progress", PollState.POLLING),
        ("in_progress", PollState.POLLING),
    ],
)
def test_successful_query_maps_remote_status(remote_status: str, expected: PollState) -> None:
    step = advance(PollState.AWAITING_QUEUE, Observation.from_status(remote_status))
    assert step.next_state is expected


@pytest.mark.unit
def test_in_progress_sleeps_slow_interval() -> None:
    step = advance(PollState.POLLING, Observation.from_status("In Progress"))
    assert step.next_state is PollState.POLLING
    assert step.sleep == "slow"


@pytest.mark.unit
@pytest.mark.parametrize("state", sorted(TERMINAL_POLL_STATES))
def test_terminal_states_never_advance(state: PollState) -> None:
    with pytest.raises(DomainInvariantError):
        advance(state, Observation.from_status("In Progress"))
    assert ALLOWED_TRANSITIONS[state] == set()


@pytest.mark.unit
def test_polling_never_regresses_to_awaiting_queue() -> None:
    with pytest.raises(DomainInvariantError, match="illegal poller transition"):
        ensure_transition(PollState.POLLING, PollState.AWAITING_QUEUE)


@pytest.mark.unit
def test_remote_verdict_normalizes_status() -> None:
    assert remote_verdict("  ACCEPTED ") == "accepted"
    assert remote_verdict("invalid") == "rejected"
    assert remote_verdict("In Progress") is None
    assert remote_verdict(None) is None


@pytest.mark.unit
def test_combined_verdict_rejects_when_either_resource_rejects() -> None:
    assert combine_verdicts("accepted", "accepted") is PollState.ACCEPTED
    assert combine_verdicts("accepted", None) is PollState.ACCEPTED
    assert combine_verdicts("rejected", "accepted") is PollState.REJECTED
    assert combine_verdicts("accepted", "rejected") is PollState.REJECTED
