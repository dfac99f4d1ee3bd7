"""Error taxonomy shared by every layer.

Learn: Each error carries an ErrorKind. Entities, stores and use-cases
raise these; nobody below the HTTP layer knows about status codes. The
exception handlers in taskkeeper.api.errors are the only place where a
kind becomes a status.

Use-cases wrap their work with `reraise()`: known errors are logged with
context and propagate unchanged, anything else is logged and replaced by an
InternalError chained to the original exception.
"""

import enum
from typing import Any, NoReturn, Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class AppError(Exception):
    """Base class for all errors that cross layer boundaries."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def with_context(self, **context: Any) -> "AppError":
        """Attach extra context without overwriting what is already there."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self


class ValidationError(AppError):
    """Malformed or missing input, or a violated entity constraint."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(AppError):
    """Missing, invalid, expired or revoked credential."""

    kind = ErrorKind.AUTHENTICATION


class InvalidCredential(AuthenticationError):
    """The bearer credential (or bootstrap token) was rejected."""


class InvalidSession(AuthenticationError):
    """The session credential was rejected."""


class AuthorizationError(AppError):
    """Authenticated, but not the owner of the resource."""

    kind = ErrorKind.AUTHORIZATION


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT


class InternalError(AppError):
    kind = ErrorKind.INTERNAL


def reraise(
    logger, error: BaseException, event: str, message: str, **context: Any
) -> NoReturn:
    """Log a caught error under `event`, then propagate it.

    AppErrors keep their kind and message. Anything else becomes an
    InternalError whose message is prefixed with `message`.
    """
    if isinstance(error, AppError):
        error.with_context(**context)
        logger.warning(event, error=error.message, kind=error.kind.value, **context)
        raise error

    logger.error(event, error=str(error), error_type=type(error).__name__, **context)
    raise InternalError(f"{message}: {error}", context) from error
