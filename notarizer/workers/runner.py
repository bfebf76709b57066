from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Sequence

from notarizer.domain.models import ArtifactRequest, RunOutcome
from notarizer.workers.coordinator import NotarizationCoordinator

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def run_until_complete(
    *,
    coordinator: NotarizationCoordinator,
    requests: Sequence[ArtifactRequest],
    logger: logging.Logger,
    stop_event: asyncio.Event | None = None,
    handle_signals: bool = False,
) -> RunOutcome:
    stop = stop_event if stop_event is not None else asyncio.Event()
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        logger.warning("stop requested, abandoning in-flight polling", extra={"run_id": coordinator.run_id})
        stop.set()

    installed: list[signal.Signals] = []
    if handle_signals:
        for sig in STOP_SIGNALS:
            try:
                loop.add_signal_handler(sig, _request_stop)
            except (NotImplementedError, RuntimeError):
                continue
            installed.append(sig)

    try:
        return await coordinator.run(requests, stop_event=stop)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
