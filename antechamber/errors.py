"""Error taxonomy shared by the workflow engine and its steps."""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Application error carrying a machine readable code and status code.

    Errors with a status code below 500 describe client or semantic problems
    (bad input, missing records) and are never retried. Everything else is
    treated as an infrastructure failure.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__("UNAUTHORIZED", message, 401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__("FORBIDDEN", message, 403)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found") -> None:
        super().__init__("NOT_FOUND", message, 404)


class ValidationError(AppError):
    def __init__(
        self, message: str = "Validation failed", details: Optional[Any] = None
    ) -> None:
        super().__init__("VALIDATION_ERROR", message, 400, details)


class StepTimeoutError(AppError):
    """Raised when a step attempt does not finish within its deadline."""

    def __init__(self, step_name: str, timeout_ms: int) -> None:
        super().__init__(
            "STEP_TIMEOUT",
            f'Step "{step_name}" timed out after {timeout_ms}ms',
            504,
            {"step": step_name, "timeout_ms": timeout_ms},
        )


class StepOutputUnavailable(LookupError):
    """A step asked for the output of a step that has not produced one yet."""

    retryable = False

    def __init__(self, step_name: str) -> None:
        super().__init__(f'Step output "{step_name}" not available')
        self.step_name = step_name


def is_retryable(exc: BaseException) -> bool:
    """Return whether ``exc`` should consume another attempt.

    Errors that do not declare a ``retryable`` flag (network failures,
    unexpected exceptions) are assumed to be transient.
    """
    return bool(getattr(exc, "retryable", True))


__all__ = [
    "AppError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    "StepTimeoutError",
    "StepOutputUnavailable",
    "is_retryable",
]
