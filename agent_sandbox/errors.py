"""Error types raised by the sandbox services.

Every failure a service can report is a ``SandboxError`` subclass carrying
the wire-level code (Connect error code names) and the HTTP status the API
layer answers with.
"""

from __future__ import annotations


class SandboxError(Exception):
    """Base class for all sandbox failures."""

    code: str = "internal"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(SandboxError):
    """Configuration file missing or invalid."""


class GenerationError(SandboxError):
    """Secure random source failed while creating a sandbox id or API key."""


class StorageError(SandboxError):
    """Persistent key store could not be read or written."""


class NotFoundError(SandboxError):
    code = "not_found"
    status_code = 404


class NotAFileError(SandboxError):
    code = "invalid_argument"
    status_code = 400


class PathEscapeError(SandboxError):
    """Resolved path falls outside the workspace root."""

    code = "permission_denied"
    status_code = 403


class TooLargeError(SandboxError):
    code = "resource_exhausted"
    status_code = 413


class FileOperationError(SandboxError):
    """Filesystem call failed for a reason other than the checked ones."""


class ExecutionFailedError(SandboxError):
    """Shell command exited non-zero or hit its deadline.

    ``output`` holds whatever the command printed before failing, so callers
    can report an error and partial output together.
    """

    def __init__(
        self,
        message: str,
        output: str = "",
        exit_code: int | None = None,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.output = output
        self.exit_code = exit_code
        self.timed_out = timed_out
        if timed_out:
            self.code = "deadline_exceeded"
            self.status_code = 504


class UnauthenticatedError(SandboxError):
    code = "unauthenticated"
    status_code = 401


class MissingCredentialError(UnauthenticatedError):
    pass


class InvalidCredentialError(UnauthenticatedError):
    pass
