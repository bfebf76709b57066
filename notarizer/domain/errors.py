from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class CredentialsError(DomainValidationError):
    pass


@dataclass(frozen=True)
class RemoteErrorDetail:
    code: int
    message: str = ""


class RemoteServiceError(DomainDependencyError):
    """Structured error reported by the notarization service.

    One response can carry several error entries, so the codes are kept as a
    tuple and matched with ``contains_code``.
    """

    def __init__(self, details: Iterable[RemoteErrorDetail]) -> None:
        self.details = tuple(details)
        super().__init__(self._render())

    @classmethod
    def single(cls, code: int, message: str = "") -> RemoteServiceError:
        return cls([RemoteErrorDetail(code=code, message=message)])

    @property
    def codes(self) -> tuple[int, ...]:
        return tuple(detail.code for detail in self.details)

    def contains_code(self, code: int) -> bool:
        return code in self.codes

    def _render(self) -> str:
        if not self.details:
            return "remote service error"
        return "; ".join(f"{detail.message or 'remote error'} ({detail.code})" for detail in self.details)


class UploadError(DomainDependencyError):
    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"upload of {path} failed: {cause}")


class RemoteRejectedError(DomainDependencyError):
    def __init__(self, path: str, diagnostic_ref: str | None) -> None:
        self.path = path
        self.diagnostic_ref = diagnostic_ref
        super().__init__(f"{path} was rejected by the notarization service")


class UnclassifiedRemoteError(DomainDependencyError):
    def __init__(self, path: str, submission_id: str, cause: BaseException) -> None:
        self.path = path
        self.submission_id = submission_id
        self.cause = cause
        super().__init__(f"status query for {path} ({submission_id}) failed: {cause}")


class StapleError(DomainDependencyError):
    pass


class NotarizationCancelledError(DomainDependencyError):
    pass


class ToolInvocationError(DomainDependencyError):
    def __init__(self, command: str, returncode: int | None, stderr: str) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(f"`{command}` exited with status {returncode}: {detail}")
