import os
import shutil
from pathlib import Path
from typing import List, Optional

import oschmod

from errors import BinlogDisabledError, FilesystemError
from services.backup.naming import NamingScheme, segment_sequence
from services.interfaces import ILogger, IServerInspector


class BinlogTracker:
    """Tracks where each database's incremental window starts and archives closed log segments."""

    def __init__(self, inspector: IServerInspector, naming: NamingScheme, archive_dir,
                 logger: Optional[ILogger] = None):
        self._inspector = inspector
        self._naming = naming
        self._archive_dir = Path(archive_dir)
        self._logger = logger

    @property
    def archive_dir(self) -> Path:
        return self._archive_dir

    def current_log_file(self) -> str:
        status = self._inspector.master_status()
        if not status or not status.split():
            raise BinlogDisabledError("Server reports no active binary log; is log_bin enabled?")
        return status.split()[0]

    def record_marker(self, database: str, timestamp: str) -> Path:
        log_file = self.current_log_file()
        marker = self._naming.marker_path(database, timestamp)
        partial = self._naming.partial_path(marker)
        try:
            partial.write_text(f"{log_file}\n", encoding="utf-8")
            oschmod.set_mode(str(partial), "600")
            os.replace(partial, marker)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise FilesystemError(f"Cannot write binlog marker {marker}: {e}", database=database) from e
        if self._logger:
            self._logger.debug(f"Database {database} now begins at log: {log_file}")
        return marker

    @staticmethod
    def read_marker(marker: Path) -> str:
        try:
            content = Path(marker).read_text(encoding="utf-8").strip()
        except OSError as e:
            raise FilesystemError(f"Cannot read binlog marker {marker}: {e}") from e
        if not content:
            raise FilesystemError(f"Binlog marker {marker} is empty")
        return content.split()[0]

    def _ensure_archive_dir(self) -> None:
        try:
            existed = self._archive_dir.is_dir()
            self._archive_dir.mkdir(parents=True, exist_ok=True)
            if not existed:
                oschmod.set_mode(str(self._archive_dir), "700")
        except OSError as e:
            raise FilesystemError(f"Cannot create log archive directory {self._archive_dir}: {e}") from e

    def collect_archivable(self, log_bin: str, log_bin_dir) -> List[Path]:
        """
        Copy every closed segment of log_bin found in log_bin_dir into the archive.

        The segment the server is writing to is never copied. Segments whose
        archived copy is at least as new as the source are left alone.
        Returns the archived paths, in sequence order.
        """
        log_bin_dir = Path(log_bin_dir)
        base = Path(log_bin).name
        active = self.current_log_file()

        try:
            candidates = [p for p in log_bin_dir.iterdir()
                          if p.is_file() and segment_sequence(p.name, base) is not None]
        except OSError as e:
            raise FilesystemError(f"Cannot list binary logs in {log_bin_dir}: {e}") from e

        closed = sorted((p for p in candidates if p.name != Path(active).name),
                        key=lambda p: segment_sequence(p.name, base))

        self._ensure_archive_dir()
        archived = []
        copied = 0
        for source in closed:
            destination = self._archive_dir / source.name
            try:
                if not _is_up_to_date(source, destination):
                    shutil.copy2(source, destination)
                    copied += 1
            except OSError as e:
                raise FilesystemError(f"Cannot archive {source}: {e}") from e
            archived.append(destination)

        if self._logger:
            self._logger.info(f"Archived {copied} new binary log segment(s) of {len(closed)} closed "
                              f"into {self._archive_dir} (active: {active})")
        return archived


def _is_up_to_date(source: Path, destination: Path) -> bool:
    if not destination.exists():
        return False
    return destination.stat().st_mtime >= source.stat().st_mtime
