"""Exception hierarchy for swizzle.

All exceptions inherit from :class:`SwizzleError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`swizzle.exit_codes`.
The top-level error handler in :func:`swizzle.app.main` catches
``SwizzleError`` and exits with the appropriate code.

Build-time errors (subclasses of :class:`BuildError`) are fatal: the builder
aborts and surfaces them immediately with the offending document and name
attached. :class:`ResponseValidationError` is the only error expected in
steady-state operation; it carries a machine-readable violation list.

Subclass hierarchy::

    SwizzleError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- ConfigError              (exit 1)
    +-- ConnectionError_         (exit 6)
    +-- OperationError           (exit 5)
    +-- DecoderContractError     (exit 1)
    +-- ResponseValidationError  (exit 9)
    +-- BuildError               (exit 8)
        +-- MalformedSourceError     (exit 7)
        +-- DanglingReferenceError
        +-- UnregisteredClassError
        +-- NameCollisionError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from swizzle.exit_codes import (
    EXIT_BUILD_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MALFORMED_SOURCE,
    EXIT_OPERATION_ERROR,
    EXIT_VALIDATION_ERROR,
)

if TYPE_CHECKING:
    from swizzle.models import Violation


class SwizzleError(Exception):
    """Base exception for all swizzle errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`swizzle.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SwizzleError):
    """Raised for invalid arguments, or configuration changed after the build started."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(SwizzleError):
    """Raised for configuration problems (invalid project file, bad environment values)."""

    exit_code = EXIT_GENERIC_FAILURE


class ConnectionError_(SwizzleError):
    """Raised on network-level failures while fetching source documents.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class BuildError(SwizzleError):
    """Base class for fatal errors raised while compiling a service model.

    Args:
        message: Description of the defect.
        subject: The offending model, operation or reference name.
        document: The declaration path being processed, when known. The
            builder fills this in as the error propagates.
    """

    exit_code = EXIT_BUILD_ERROR

    def __init__(
        self,
        message: str,
        subject: Optional[str] = None,
        document: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.subject = subject
        self.document = document

    def __str__(self) -> str:
        if self.document:
            return f"{self.message} (in {self.document})"
        return self.message


class MalformedSourceError(BuildError):
    """Raised when a source document has the wrong shape or an unsupported Swagger version."""

    exit_code = EXIT_MALFORMED_SOURCE


class DanglingReferenceError(BuildError):
    """Raised when a named model reference is never registered."""


class UnregisteredClassError(BuildError):
    """Raised when a response resolves to a class decoder that nobody registered."""


class NameCollisionError(BuildError):
    """Raised when two operations resolve to the same name."""


class DecoderContractError(SwizzleError):
    """Raised when a registered decoder or result class lacks the required capability.

    This denotes a configuration defect in the host application, not a bad
    response, so it is never caught by the per-request validation path.
    """


class ResponseValidationError(SwizzleError):
    """Raised when a decoded response violates its declared model.

    Attributes:
        operation: Name of the operation that produced the response.
        violations: Every violation found, in traversal order.
    """

    exit_code = EXIT_VALIDATION_ERROR

    def __init__(self, operation: str, violations: list[Violation]):
        lines = "\n".join(f"  {v.path}: {v.message}" for v in violations)
        super().__init__(
            f"Response of '{operation}' failed model validation:\n{lines}"
        )
        self.operation = operation
        self.violations = violations


class OperationError(SwizzleError):
    """Raised by the runtime client when an operation returns an HTTP error status.

    Attributes:
        operation: Name of the called operation.
        status_code: The HTTP status code received.
        phrase: The declared error phrase for the status, or the server's
            reason phrase when the operation declares none.
    """

    exit_code = EXIT_OPERATION_ERROR

    def __init__(self, operation: str, status_code: int, phrase: str):
        super().__init__(f"{operation} failed with HTTP {status_code}: {phrase}")
        self.operation = operation
        self.status_code = status_code
        self.phrase = phrase
