from __future__ import annotations

import json

from pydantic import ValidationError

from notarizer.clients.payloads import ErrorPayload, InfoPayload, LogPayload, SubmitPayload
from notarizer.domain.errors import RemoteErrorDetail, RemoteServiceError
from notarizer.domain.models import LogResult, StatusResult


def decode_submit(payload: bytes) -> str:
    return SubmitPayload.model_validate_json(payload).id


def decode_info(payload: bytes) -> StatusResult:
    info = InfoPayload.model_validate_json(payload)
    return StatusResult(
        status=info.status,
        diagnostic_ref=info.log_file_url,
        raw_payload=info.model_dump(mode="json", by_alias=True),
    )


def decode_log(payload: bytes) -> LogResult:
    log = LogPayload.model_validate_json(payload)
    return LogResult(
        status=log.status,
        log_body=payload.decode("utf-8", errors="replace"),
        raw_payload=log.model_dump(mode="json", by_alias=True),
    )


def decode_error(payload: bytes) -> RemoteServiceError | None:
    """Return the structured remote error in ``payload``, if it carries one."""
    try:
        loaded = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(loaded, dict):
        return None

    try:
        parsed = ErrorPayload.model_validate(loaded)
    except ValidationError:
        return None

    entries = [*parsed.product_errors, *parsed.errors]
    details = [RemoteErrorDetail(code=entry.code, message=entry.message) for entry in entries]
    if parsed.code is not None:
        details.append(RemoteErrorDetail(code=parsed.code, message=parsed.message))
    if not details:
        return None
    return RemoteServiceError(details)
