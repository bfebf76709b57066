import pytest

from notarizer.domain.error_taxonomy import (
    CODE_NETWORK_UNAVAILABLE,
    CODE_QUEUED_NOT_FOUND,
    classify_remote_error,
    is_retryable,
)
from notarizer.domain.errors import RemoteErrorDetail, RemoteServiceError, ToolInvocationError


@pytest.mark.unit
def test_queued_code_is_classified_as_queued_not_found() -> None:
    error = RemoteServiceError.single(CODE_QUEUED_NOT_FOUND, "Could not find the RequestUUID.")
    assert classify_remote_error(error) == "queued_not_found"


@pytest.mark.unit
def test_network_unavailable_code_is_transient() -> None:
    error = RemoteServiceError.single(CODE_NETWORK_UNAVAILABLE, "The network connection was lost.")
    assert classify_remote_error(error) == "transient_network"


@pytest.mark.unit
def test_queued_code_wins_when_response_carries_both_codes() -> None:
    error = RemoteServiceError(
        [
            RemoteErrorDetail(code=CODE_NETWORK_UNAVAILABLE),
            RemoteErrorDetail(code=CODE_QUEUED_NOT_FOUND),
        ]
    )
    assert classify_remote_error(error) == "queued_not_found"


@pytest.mark.unit
@pytest.mark.parametrize("code", [0, 1, 1518, 1520, -18000, 19000, 401])
def test_unknown_codes_fail_closed(code: int) -> None:
    assert classify_remote_error(RemoteServiceError.single(code)) == "terminal"


@pytest.mark.unit
def test_success_and_non_remote_errors_are_terminal() -> None:
    assert classify_remote_error(None) == "terminal"
    assert classify_remote_error(ToolInvocationError("notarytool info", 1, "boom")) == "terminal"
    assert classify_remote_error(OSError("no such file")) == "terminal"
    assert classify_remote_error(RemoteServiceError([])) == "terminal"


@pytest.mark.unit
def test_retryable_dispositions() -> None:
    assert is_retryable("queued_not_found") is True
    assert is_retryable("transient_network") is True
    assert is_retryable("terminal") is False


@pytest.mark.unit
def test_remote_error_message_lists_every_entry() -> None:
    error = RemoteServiceError(
        [
            RemoteErrorDetail(code=1519, message="not found"),
            RemoteErrorDetail(code=7, message="other"),
        ]
    )
    assert error.codes == (1519, 7)
    assert "not found (1519)" in str(error)
    assert "other (7)" in str(error)
