import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from errors import FilesystemError
from services.backup.naming import NamingScheme
from services.interfaces import ILogger


class ChangeDetector:
    """
    Decides whether a database needs a new full backup.

    The database directory's mtime is compared with the newest artifact's.
    Engines that write rows into existing files (InnoDB with a shared
    tablespace, for instance) may not bump the directory mtime, so an
    "unchanged" verdict is a heuristic. Use force when that matters.

    A database directory that does not exist here (datadir on another host)
    is never "changed"; only force backs it up.
    """

    def __init__(self, naming: NamingScheme, logger: Optional[ILogger] = None):
        self._naming = naming
        self._logger = logger

    def should_backup(self, database: str, data_dir, force: bool = False) -> bool:
        db_dir = Path(data_dir) / database
        try:
            db_time = db_dir.stat().st_mtime
        except FileNotFoundError:
            # datadir not local to this host: only a forced backup goes ahead
            self._log("warning", f"MySQL database directory ({db_dir}) does not exist, "
                                 f"{'backing up anyway (forced)' if force else 'skipping'}")
            return force
        except OSError as e:
            raise FilesystemError(f"Cannot read {db_dir}: {e}", database=database) from e

        backup = self._naming.newest_artifact(database)
        if backup is None:
            self._log("info", f"No previous backup of {database}, backing up")
            return True

        backup_time = backup.stat().st_mtime
        self._log("debug", f"{database}: data dir mtime {_fmt(db_time)}, newest backup {backup.name} "
                           f"mtime {_fmt(backup_time)} (directory mtime may miss row-level writes)")

        changed = db_time > backup_time
        if not changed:
            self._log("info", f"Unchanged: {database}")
            # mark the artifact as current: we saw it, keep it
            os.utime(backup, None)
        return changed or force

    def _log(self, level: str, message: str) -> None:
        if self._logger is not None:
            getattr(self._logger, level, self._logger.info)(message)


def should_backup(database: str, data_dir, backup_dir, force: bool = False,
                  logger: Optional[ILogger] = None) -> bool:
    return ChangeDetector(NamingScheme(backup_dir), logger).should_backup(database, data_dir, force)


def _fmt(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).isoformat(sep=" ", timespec="seconds")
