"""Error taxonomy for cleanup operations."""

from __future__ import annotations

import errno

from reclaim.models.report import ErrorKind


class CleanupError(Exception):
    """Base class for errors recorded against a single cleanup item.

    ``bytes_freed`` counts what was removed before the item failed, for
    strategies that delete an item piecewise.
    """

    kind = ErrorKind.OS_ERROR
    bytes_freed = 0


class PermissionDenied(CleanupError):
    """The OS refused to stat, copy or delete the item."""

    kind = ErrorKind.PERMISSION_DENIED


class ItemNotFound(CleanupError):
    """The item vanished between scan and cleanup."""

    kind = ErrorKind.NOT_FOUND


class ProtectedSystemFile(CleanupError):
    """High-risk item under a protected system root; deletion refused."""

    kind = ErrorKind.PROTECTED_SYSTEM_FILE


class BackupFailed(CleanupError):
    """The pre-deletion backup could not be created."""

    kind = ErrorKind.BACKUP_FAILED


class CleanupInProgressError(Exception):
    """Raised when a cleanup is requested while another one is running."""


def from_os_error(exc: OSError) -> CleanupError:
    """Map an OSError onto the cleanup error taxonomy."""
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        error: CleanupError = ItemNotFound(str(exc))
    elif isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
        error = PermissionDenied(str(exc))
    else:
        error = CleanupError(str(exc))
    error.__cause__ = exc
    return error
