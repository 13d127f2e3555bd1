from contextlib import contextmanager
from enum import Enum

from errors import BackupError, FilesystemError


class BackupStage(Enum):
    START = "start"
    SKIP = "skip"
    DUMPING = "dumping"
    COMPRESSING = "compressing"
    MARKING_BINLOG = "marking_binlog"
    DONE = "done"
    FAILED = "failed"


class RestoreStage(Enum):
    START = "start"
    LOCATING = "locating"
    DROPPING = "dropping"
    CREATING = "creating"
    LOADING = "loading"
    FLUSHING = "flushing"
    ORDERING = "ordering"
    REPLAYING = "replaying"
    DONE = "done"
    FAILED = "failed"


@contextmanager
def stage_scope(database: str, stage: Enum, logger=None):
    """Tag any failure raised inside the block with the database and stage."""
    if logger is not None:
        logger.debug(f"{database}: {stage.value}")
    try:
        yield
    except BackupError as e:
        e.annotate(database, stage.value)
        raise
    except OSError as e:
        raise FilesystemError(str(e), database=database, stage=stage.value) from e
