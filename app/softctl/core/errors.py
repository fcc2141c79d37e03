"""Error taxonomy for install and uninstall operations.

Every failure that reaches the caller is mapped onto a small set of
kinds before it is reported, so the stream always ends with one
classified message.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of an operation failure."""

    PERMISSION_DENIED = "permission_denied"
    FILE_NOT_FOUND = "file_not_found"
    PROCESS_RUNNING = "process_running"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    INVALID_PACKAGE = "invalid_package"
    NOT_FOUND = "not_found"
    NO_BUNDLE_FOUND = "no_bundle_found"
    UNKNOWN = "unknown"


class SoftctlError(Exception):
    """Base exception for classified operation failures.

    Attributes:
        kind: Taxonomy entry describing the failure.
        message: Human-readable message.
        details: Optional additional context for the caller.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class PermissionDeniedError(SoftctlError):
    """Raised when the operation lacks filesystem or process permissions."""

    kind = ErrorKind.PERMISSION_DENIED


class PackageFileNotFoundError(SoftctlError):
    """Raised when a package or a required binary is missing."""

    kind = ErrorKind.FILE_NOT_FOUND


class ProcessRunningError(SoftctlError):
    """Raised when a process survives every termination attempt."""

    kind = ErrorKind.PROCESS_RUNNING


class OperationCancelledError(SoftctlError):
    """Raised when the caller cancelled the operation."""

    kind = ErrorKind.CANCELLED


class OperationTimeoutError(SoftctlError):
    """Raised when the operation or a command exceeded its deadline."""

    kind = ErrorKind.TIMEOUT


class InvalidPackageError(SoftctlError):
    """Raised when a package reference or archive format is unusable."""

    kind = ErrorKind.INVALID_PACKAGE


class ApplicationNotFoundError(SoftctlError):
    """Raised when no installed application matches a request."""

    kind = ErrorKind.NOT_FOUND


class NoBundleFoundError(SoftctlError):
    """Raised when an archive contains nothing deployable."""

    kind = ErrorKind.NO_BUNDLE_FOUND


class RemovalFailedError(SoftctlError):
    """Raised when an application is still present after removal."""

    kind = ErrorKind.UNKNOWN


class CommandError(Exception):
    """Base exception for Command Runner failures.

    Attributes:
        args_list: Command and arguments that failed.
    """

    def __init__(self, args_list: list[str], message: str) -> None:
        super().__init__(message)
        self.args_list = args_list


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout."""

    def __init__(self, args_list: list[str], timeout: float) -> None:
        super().__init__(args_list, f"Command timed out after {timeout:.1f}s: {args_list[0]}")
        self.timeout = timeout


class CommandCancelledError(CommandError):
    """Raised when a command is aborted by a cancellation request."""

    def __init__(self, args_list: list[str]) -> None:
        super().__init__(args_list, f"Command cancelled: {args_list[0]}")


class CommandFailedError(CommandError):
    """Raised when a command exits non-zero after all retries.

    Attributes:
        returncode: Exit code of the last attempt.
        output: Combined stdout and stderr of the last attempt.
    """

    def __init__(self, args_list: list[str], returncode: int, output: str) -> None:
        super().__init__(
            args_list,
            f"Command failed with code {returncode}: {output.strip()[:200]}",
        )
        self.returncode = returncode
        self.output = output


# Message templates per kind, keyed by operation ("install" / "uninstall")
_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.PERMISSION_DENIED: "Permission denied. Please check your permissions.",
    ErrorKind.FILE_NOT_FOUND: "Installation file not found.",
    ErrorKind.PROCESS_RUNNING: "Application is currently running. Please close it and try again.",
    ErrorKind.CANCELLED: "The {operation} was cancelled.",
    ErrorKind.TIMEOUT: "Operation timed out.",
    ErrorKind.INVALID_PACKAGE: "The package is not a supported installer format.",
    ErrorKind.NOT_FOUND: (
        'Application "{subject}" could not be found. '
        "It may have been already uninstalled or moved."
    ),
    ErrorKind.NO_BUNDLE_FOUND: "No application was found in the package for {subject}.",
    ErrorKind.UNKNOWN: "An unknown error occurred during the {operation}.",
}

_PERMISSION_MARKERS = ("permission denied", "operation not permitted", "eacces", "eperm")
_MISSING_MARKERS = ("no such file", "not found", "enoent")


def user_message(kind: ErrorKind, subject: str = "", operation: str = "operation") -> str:
    """Render the user-facing message for an error kind.

    Args:
        kind: Classified error kind.
        subject: Application display name the operation targets.
        operation: Operation name ("installation" or "uninstallation").

    Returns:
        Templated message.
    """
    return _MESSAGES[kind].format(subject=subject, operation=operation)


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map an arbitrary exception onto the error taxonomy.

    Args:
        exc: The exception raised by a step.

    Returns:
        The matching ErrorKind, UNKNOWN when nothing clearly applies.
    """
    if isinstance(exc, SoftctlError):
        return exc.kind
    if isinstance(exc, CommandCancelledError):
        return ErrorKind.CANCELLED
    if isinstance(exc, CommandTimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.FILE_NOT_FOUND
    if isinstance(exc, CommandFailedError):
        output = exc.output.lower()
        if any(marker in output for marker in _PERMISSION_MARKERS):
            return ErrorKind.PERMISSION_DENIED
        if any(marker in output for marker in _MISSING_MARKERS):
            return ErrorKind.FILE_NOT_FOUND
    return ErrorKind.UNKNOWN
