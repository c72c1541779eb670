"""
Error taxonomy for tracer.

Validation and not-configured errors are terminal and carry actionable text.
IO and external-service errors wrap the underlying failure with operation
context. TrackingWarning is returned, not raised: it marks a commit that
succeeded but could not be attached to a story.
"""


class TracerError(Exception):
    """Base class for all tracer errors."""


class ValidationError(TracerError):
    """A required value is empty or malformed."""


class NotConfiguredError(TracerError):
    """Project or user has not been configured yet."""

    def __init__(self, what: str, command: str):
        self.what = what
        self.command = command
        super().__init__(f"{what} not configured. Please run '{command}' first")


class NotFoundError(TracerError):
    """An explicitly requested story or file does not exist."""


class ScopeUnavailable(TracerError):
    """Neither a git root nor a home directory could be determined."""


class StorageError(TracerError):
    """Filesystem read/write failure."""


class DirectoryNotWritable(StorageError):
    """The resolved scope directory rejects writes."""

    def __init__(self, path, reason: str = ""):
        self.path = path
        message = f"directory not writable: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ConfigError(StorageError):
    """An existing config file could not be read or parsed."""


class ExternalServiceError(TracerError):
    """git subprocess or HTTP collaborator failure."""


class GitError(ExternalServiceError):
    """A git command failed."""


class LockTimeout(TracerError):
    """Lock acquisition timed out."""


class TrackingWarning(Warning):
    """Commit succeeded but linking it to the active story did not.

    Carried in CommitResult.warning; callers report it without undoing
    the commit.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)


def exit_code(err: TracerError) -> int:
    """CLI exit code: 2 for user-correctable input, 1 for everything else."""
    if isinstance(err, (ValidationError, NotConfiguredError)):
        return 2
    return 1
