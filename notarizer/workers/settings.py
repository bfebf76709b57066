from __future__ import annotations

import os
from dataclasses import dataclass

from notarizer.domain.error_taxonomy import PollCadence

DEFAULT_SLOW_INTERVAL_SECONDS = 30.0
# Constant short poll. No rate limit has been observed on this path.
DEFAULT_FAST_INTERVAL_SECONDS = 5.0


@dataclass(frozen=True)
class PollerSettings:
    slow_interval_seconds: float = DEFAULT_SLOW_INTERVAL_SECONDS
    fast_interval_seconds: float = DEFAULT_FAST_INTERVAL_SECONDS
    # Poll the log resource after the status resource is terminal.
    fetch_log: bool = True

    def interval_for(self, cadence: PollCadence) -> float:
        if cadence == "slow":
            return self.slow_interval_seconds
        return self.fast_interval_seconds


def poller_settings_from_env() -> PollerSettings:
    return PollerSettings(
        slow_interval_seconds=_env_float("NOTARIZE_POLL_INTERVAL_SECONDS", DEFAULT_SLOW_INTERVAL_SECONDS),
        fetch_log=_env_bool("NOTARIZE_FETCH_LOG", True),
    )


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = float(value)
    except ValueError:
        return default

    return parsed if parsed > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off"):
        return False
    return default
