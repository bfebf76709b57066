from __future__ import annotations

import logging
import os
import sys
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TextIO

from notarizer.domain.contracts import StatusReporter
from notarizer.domain.models import (
    ArtifactOutcome,
    ArtifactRequest,
    Disposition,
    PhaseRecord,
    TrackingHandle,
)

logger = logging.getLogger("notarizer.reporter")


class NullReporter:
    def submitting(self, request: ArtifactRequest) -> None:
        del request

    def submitted(self, request: ArtifactRequest, handle: TrackingHandle) -> None:
        del request, handle

    def phase_changed(self, request: ArtifactRequest, record: PhaseRecord) -> None:
        del request, record

    def finished(self, outcome: ArtifactOutcome) -> None:
        del outcome


class LoggingReporter:
    def submitting(self, request: ArtifactRequest) -> None:
        logger.info("submitting artifact", extra={"artifact": request.path})

    def submitted(self, request: ArtifactRequest, handle: TrackingHandle) -> None:
        logger.info(
            "artifact submitted",
            extra={"artifact": request.path, "submission_id": handle.submission_id},
        )

    def phase_changed(self, request: ArtifactRequest, record: PhaseRecord) -> None:
        logger.info(
            "artifact status",
            extra={
                "artifact": request.path,
                "submission_id": record.submission_id,
                "state": str(record.phase),
                "remote_status": record.remote_status,
            },
        )

    def finished(self, outcome: ArtifactOutcome) -> None:
        level = logging.INFO if outcome.disposition is Disposition.ACCEPTED else logging.WARNING
        logger.log(
            level,
            "artifact finished",
            extra={"artifact": outcome.request.path, "state": str(outcome.disposition)},
        )


@dataclass
class StreamReporter:
    """Human-readable progress lines, one prefix per artifact.

    Workers report concurrently; every write holds the output lock so lines
    from different artifacts never interleave.
    """

    stream: TextIO = field(default_factory=lambda: sys.stdout)
    prefixes: dict[str, str] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def submitting(self, request: ArtifactRequest) -> None:
        self._write(request, "Submitting file for notarization...")

    def submitted(self, request: ArtifactRequest, handle: TrackingHandle) -> None:
        self._write(request, f"Submitted. Submission ID: {handle.submission_id}")
        self._write(request, "Waiting for results from the notarization service. This can take minutes to hours.")

    def phase_changed(self, request: ArtifactRequest, record: PhaseRecord) -> None:
        line = f"Status: {record.phase}"
        if record.remote_status:
            line += f" (remote: {record.remote_status})"
        if record.log_status:
            line += f" (log: {record.log_status})"
        self._write(request, line)

    def finished(self, outcome: ArtifactOutcome) -> None:
        if outcome.disposition is Disposition.ACCEPTED:
            self._write(outcome.request, "File notarized!")
        elif outcome.disposition is Disposition.REJECTED:
            self._write(outcome.request, "Notarization rejected. Diagnostics:")
            for line in (outcome.diagnostic_ref or "").splitlines():
                self._write(outcome.request, f"  {line}")
        else:
            self._write(outcome.request, f"Error: {outcome.cause}")

    def _write(self, request: ArtifactRequest, message: str) -> None:
        prefix = self.prefixes.get(request.path, f"[{os.path.basename(request.path)}]")
        with self._lock:
            self.stream.write(f"    {prefix} {message}\n")
            self.stream.flush()


@dataclass
class FanoutReporter:
    reporters: Sequence[StatusReporter]

    def submitting(self, request: ArtifactRequest) -> None:
        for reporter in self.reporters:
            reporter.submitting(request)

    def submitted(self, request: ArtifactRequest, handle: TrackingHandle) -> None:
        for reporter in self.reporters:
            reporter.submitted(request, handle)

    def phase_changed(self, request: ArtifactRequest, record: PhaseRecord) -> None:
        for reporter in self.reporters:
            reporter.phase_changed(request, record)

    def finished(self, outcome: ArtifactOutcome) -> None:
        for reporter in self.reporters:
            reporter.finished(outcome)


@dataclass
class GuardedReporter:
    """Keeps reporter failures out of the notarization control flow."""

    inner: StatusReporter

    def submitting(self, request: ArtifactRequest) -> None:
        try:
            self.inner.submitting(request)
        except Exception:
            logger.exception("reporter failed", extra={"artifact": request.path})

    def submitted(self, request: ArtifactRequest, handle: TrackingHandle) -> None:
        try:
            self.inner.submitted(request, handle)
        except Exception:
            logger.exception("reporter failed", extra={"artifact": request.path})

    def phase_changed(self, request: ArtifactRequest, record: PhaseRecord) -> None:
        try:
            self.inner.phase_changed(request, record)
        except Exception:
            logger.exception("reporter failed", extra={"artifact": request.path})

    def finished(self, outcome: ArtifactOutcome) -> None:
        try:
            self.inner.finished(outcome)
        except Exception:
            logger.exception("reporter failed", extra={"artifact": outcome.request.path})


def status_prefixes(requests: Iterable[ArtifactRequest]) -> dict[str, str]:
    """Short, aligned display prefixes; full paths only where base names clash."""
    paths = [request.path for request in requests]
    names = [os.path.basename(path) for path in paths]
    labels = [path if names.count(name) > 1 else name for path, name in zip(paths, names)]
    width = max((len(label) for label in labels), default=0)
    return {path: f"[{label}]".ljust(width + 2) for path, label in zip(paths, labels)}
