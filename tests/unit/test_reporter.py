import io
import threading

import pytest

from notarizer.domain.errors import UploadError
from notarizer.domain.models import (
    ArtifactOutcome,
    ArtifactRequest,
    Disposition,
    PhaseRecord,
    PollState,
    TrackingHandle,
)
from notarizer.workers.reporter import FanoutReporter, NullReporter, StreamReporter, status_prefixes


@pytest.mark.unit
def test_status_prefixes_are_aligned_and_disambiguated() -> None:
    requests = [
        ArtifactRequest(path="dist/amd64/app.zip"),
        ArtifactRequest(path="dist/arm64/app.zip"),
        ArtifactRequest(path="dist/app.dmg"),
    ]

    prefixes = status_prefixes(requests)

    assert prefixes["dist/amd64/app.zip"].strip() == "[dist/amd64/app.zip]"
    assert prefixes["dist/arm64/app.zip"].strip() == "[dist/arm64/app.zip]"
    assert prefixes["dist/app.dmg"].strip() == "[app.dmg]"
    assert len({len(prefix) for prefix in prefixes.values()}) == 1


@pytest.mark.unit
def test_stream_reporter_renders_lifecycle() -> None:
    stream = io.StringIO()
    request = ArtifactRequest(path="app.zip")
    reporter = StreamReporter(stream=stream, prefixes=status_prefixes([request]))
    record = PhaseRecord(submission_id="sub-1", phase=PollState.POLLING, remote_status="In Progress")

    reporter.submitting(request)
    reporter.submitted(request, TrackingHandle(submission_id="sub-1", request=request))
    reporter.phase_changed(request, record)
    reporter.finished(
        ArtifactOutcome(
            request=request,
            disposition=Disposition.REJECTED,
            diagnostic_ref="line one\nline two",
        )
    )

    lines = stream.getvalue().splitlines()
    assert all(line.startswith("    [app.zip]") for line in lines)
    assert "Submission ID: sub-1" in lines[1]
    assert "Status: polling (remote: In Progress)" in lines[3]
    assert lines[-2].endswith("  line one")
    assert lines[-1].endswith("  line two")


@pytest.mark.unit
def test_stream_reporter_reports_errors() -> None:
    stream = io.StringIO()
    request = ArtifactRequest(path="app.pkg")
    reporter = StreamReporter(stream=stream)

    reporter.finished(
        ArtifactOutcome(
            request=request,
            disposition=Disposition.ERRORED,
            cause=UploadError("app.pkg", ConnectionError("reset")),
        )
    )

    assert "Error: upload of app.pkg failed: reset" in stream.getvalue()


@pytest.mark.unit
def test_stream_reporter_lines_do_not_interleave_across_threads() -> None:
    stream = io.StringIO()
    requests = [ArtifactRequest(path=f"app-{idx}.zip") for idx in range(8)]
    reporter = StreamReporter(stream=stream, prefixes=status_prefixes(requests))

    def _report(request: ArtifactRequest) -> None:
        for _ in range(50):
            reporter.submitting(request)

    threads = [threading.Thread(target=_report, args=(request,)) for request in requests]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = stream.getvalue().splitlines()
    assert len(lines) == 400
    assert all(line.strip().endswith("Submitting file for notarization...") for line in lines)


@pytest.mark.unit
def test_fanout_reporter_forwards_to_every_reporter() -> None:
    first, second = io.StringIO(), io.StringIO()
    request = ArtifactRequest(path="app.zip")
    reporter = FanoutReporter(
        reporters=(StreamReporter(stream=first), NullReporter(), StreamReporter(stream=second))
    )

    reporter.finished(ArtifactOutcome(request=request, disposition=Disposition.ACCEPTED))

    assert "File notarized!" in first.getvalue()
    assert "File notarized!" in second.getvalue()
