from __future__ import annotations

from dataclasses import dataclass, field

from notarizer.domain.models import LogResult, StatusResult

ScriptedStatus = StatusResult | Exception
ScriptedLog = LogResult | Exception


@dataclass
class StubNotaryService:
    """Non-network notary service with scripted responses per artifact path.

    Each script is consumed one entry per query; the last entry repeats. An
    artifact without a script is accepted on the first query.
    """

    statuses: dict[str, list[ScriptedStatus]] = field(default_factory=dict)
    logs: dict[str, list[ScriptedLog]] = field(default_factory=dict)
    submit_errors: dict[str, Exception] = field(default_factory=dict)
    submissions: dict[str, str] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def submit(self, *, path: str, bundle_id: str | None = None) -> str:
        del bundle_id
        self.calls.append(("submit", path))
        error = self.submit_errors.get(path)
        if error is not None:
            raise error
        submission_id = f"stub-{len(self.submissions) + 1}"
        self.submissions[submission_id] = path
        return submission_id

    async def query_status(self, *, submission_id: str) -> StatusResult:
        self.calls.append(("status", submission_id))
        path = self._path_for(submission_id)
        return _next(self.statuses.get(path), StatusResult(status="Accepted"))

    async def query_log(self, *, submission_id: str) -> LogResult:
        self.calls.append(("log", submission_id))
        path = self._path_for(submission_id)
        return _next(self.logs.get(path), LogResult(status="Accepted"))

    def _path_for(self, submission_id: str) -> str:
        path = self.submissions.get(submission_id)
        if path is None:
            raise KeyError(f"submission is not found: {submission_id}")
        return path


@dataclass
class StubStapler:
    stapled: list[str] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)

    async def staple(self, *, path: str) -> None:
        error = self.failures.get(path)
        if error is not None:
            raise error
        self.stapled.append(path)


def _next(script, default):
    if not script:
        return default
    item = script.pop(0) if len(script) > 1 else script[0]
    if isinstance(item, Exception):
        raise item
    return item
