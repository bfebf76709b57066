from __future__ import annotations

from typing import Literal

from notarizer.domain.errors import RemoteServiceError

# Every remote error maps to exactly one of these.
RemoteDisposition = Literal["queued_not_found", "transient_network", "terminal"]

# The submission id is not visible to the query endpoint yet. The upload is
# still sitting in an upstream queue which can be hours deep.
CODE_QUEUED_NOT_FOUND = 1519

# The service or the local network became unavailable.
CODE_NETWORK_UNAVAILABLE = -19000

# Dispositions the poller recovers from locally. Neither counts toward a
# failure budget.
RETRYABLE_DISPOSITIONS: frozenset[RemoteDisposition] = frozenset(
    {
        "queued_not_found",
        "transient_network",
    }
)

PollCadence = Literal["slow", "fast"]

RETRY_CADENCE: dict[RemoteDisposition, PollCadence] = {
    "queued_not_found": "slow",
    "transient_network": "fast",
}


def classify_remote_error(error: BaseException | None) -> RemoteDisposition:
    # None is a successful structured response; the poller decides the
    # transition from its phase.
    if not isinstance(error, RemoteServiceError):
        return "terminal"
    if error.contains_code(CODE_QUEUED_NOT_FOUND):
        return "queued_not_found"
    if error.contains_code(CODE_NETWORK_UNAVAILABLE):
        return "transient_network"
    # Unknown codes fail closed.
    return "terminal"


def is_retryable(disposition: RemoteDisposition) -> bool:
    return disposition in RETRYABLE_DISPOSITIONS
