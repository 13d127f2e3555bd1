import os
from pathlib import Path
from typing import Optional

from errors import FilesystemError, LockError


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class RunLock:
    """
    Exclusive lock file for a whole run: overlapping dumps against the same
    server are not supported. A lock left behind by a dead process is reclaimed.
    """

    def __init__(self, path, logger=None):
        self._path = Path(path)
        self._logger = logger
        self._held = False

    @property
    def path(self) -> Path:
        return self._path

    def _holder(self) -> Optional[int]:
        try:
            return int(self._path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def acquire(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create directory for lock file {self._path}: {e}") from e

        for _attempt in range(2):
            try:
                fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                holder = self._holder()
                if holder is not None and not _pid_alive(holder):
                    if self._logger:
                        self._logger.warning(f"Removing stale lock {self._path} left by PID {holder}")
                    self._path.unlink(missing_ok=True)
                    continue
                raise LockError(f"Another backup run holds {self._path} (PID {holder or 'unknown'}); "
                                "backups cannot be run in parallel")
            except OSError as e:
                raise FilesystemError(f"Cannot create lock file {self._path}: {e}") from e
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{os.getpid()}\n")
            self._held = True
            return
        raise LockError(f"Could not acquire {self._path}")

    def release(self) -> None:
        if self._held:
            self._path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
