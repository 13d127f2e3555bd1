"""Error hierarchy for backup and restore operations."""
from typing import Optional


class BackupError(RuntimeError):
    """Base exception for backup related failures.

    ``database`` and ``stage`` are filled in by the orchestrators so the run
    report can name where a failure happened.
    """

    def __init__(self, message: str, *, database: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.database = database
        self.stage = stage

    def annotate(self, database: str, stage: str) -> "BackupError":
        if self.database is None:
            self.database = database
        if self.stage is None:
            self.stage = stage
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.database and self.stage:
            return f"[{self.database}/{self.stage}] {message}"
        return message


class ConnectivityError(BackupError):
    """Raised when the server cannot be reached or rejects the credentials."""


class NotFoundError(BackupError):
    """Raised when no prior backup or marker exists for a restore target."""


class FilesystemError(BackupError):
    """Raised when a directory or file cannot be created, read or found."""


class ProcessFailure(BackupError):
    """Raised when an external tool exits non-zero."""

    def __init__(self, tool: str, returncode: int, stderr: str = "", **kwargs):
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no error output"
        super().__init__(f"{tool} exited with status {returncode}: {detail}", **kwargs)
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr


class UtilityNotFoundError(BackupError):
    """Raised when a required executable is not on PATH."""


class BinlogDisabledError(BackupError):
    """Raised when the server reports no active binary log."""


class LockError(BackupError):
    """Raised when another run already holds the lock file."""


class ConfigurationError(BackupError):
    """Raised for invalid or incomplete configuration."""


__all__ = [
    "BackupError",
    "ConnectivityError",
    "NotFoundError",
    "FilesystemError",
    "ProcessFailure",
    "UtilityNotFoundError",
    "BinlogDisabledError",
    "LockError",
    "ConfigurationError",
]
