"""Helpers for classifying references and re-mapping API error responses."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from fleet_models.errors import (
    ApplicationNotFoundError,
    RequestError,
    SupervisorLockedError,
)

NOT_FOUND_STATUS_CODE = 404
LOCKED_STATUS_CODE = 423
NO_APPLICATION_FOR_KEY_MESSAGE = (
    "Error: No application found to associate with the api key"
)


def is_id(value: Any) -> bool:
    """Return True if value is a numeric resource id."""
    return isinstance(value, int) and not isinstance(value, bool)


def is_not_found_response(error: Exception) -> bool:
    """Return True if error is a 404 response."""
    return (
        isinstance(error, RequestError)
        and error.status_code == NOT_FOUND_STATUS_CODE
    )


def is_no_application_for_key_response(error: Exception) -> bool:
    """Return True if error is the API's 'no application for api key' response."""
    return (
        isinstance(error, RequestError)
        and error.status_code == 500
        and error.body == NO_APPLICATION_FOR_KEY_MESSAGE
    )


@contextmanager
def treat_as_missing_application(
    reference: Any,
    predicate: Callable[[Exception], bool] = is_not_found_response,
) -> Iterator[None]:
    """Re-raise matching request errors as ApplicationNotFoundError.

    Args:
        reference: The application reference the caller passed in.
        predicate: Selects which request errors mean "application missing".

    Raises:
        ApplicationNotFoundError: If the wrapped block fails with a matching error.
    """
    try:
        yield
    except RequestError as e:
        if predicate(e):
            raise ApplicationNotFoundError(reference) from e
        raise


@contextmanager
def with_supervisor_locked_error() -> Iterator[None]:
    """Re-raise 423 Locked responses as SupervisorLockedError."""
    try:
        yield
    except RequestError as e:
        if e.status_code == LOCKED_STATUS_CODE:
            raise SupervisorLockedError() from e
        raise


__all__ = [
    "LOCKED_STATUS_CODE",
    "NO_APPLICATION_FOR_KEY_MESSAGE",
    "NOT_FOUND_STATUS_CODE",
    "is_id",
    "is_no_application_for_key_response",
    "is_not_found_response",
    "treat_as_missing_application",
    "with_supervisor_locked_error",
]
