from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from backup_config import BackupConfig
from errors import BackupError, NotFoundError, ProcessFailure
from services.backup.binlog_tracker import BinlogTracker
from services.backup.naming import NamingScheme, log_file_sequence, segment_sequence
from services.interfaces import ILogger, IMessenger, IMysqlTools
from services.stages import RestoreStage, stage_scope


@dataclass
class RestoreResult:
    database: str
    stage: RestoreStage
    artifact: Optional[Path] = None
    segments: List[Path] = field(default_factory=list)


def order_segments(paths: Iterable[Path], base: str, start: int) -> List[Path]:
    """Segments of `base` numbered `start` or later, in numeric order (.9 before .10)."""
    numbered = []
    for path in paths:
        sequence = segment_sequence(Path(path).name, base)
        if sequence is not None and sequence >= start:
            numbered.append((sequence, Path(path)))
    return [path for _sequence, path in sorted(numbered)]


class RestoreOrchestrator:
    """Full restore from the newest dump, and point-in-time replay of archived binary logs."""

    def __init__(self,
                 config: BackupConfig,
                 tools: IMysqlTools,
                 tracker: BinlogTracker,
                 naming: NamingScheme,
                 logger: ILogger,
                 messenger: IMessenger):
        self._config = config
        self._tools = tools
        self._tracker = tracker
        self._naming = naming
        self._logger = logger
        self._messenger = messenger

    def recreate(self, database: str) -> RestoreResult:
        """Drop the database, create it empty and load its newest full backup."""
        with stage_scope(database, RestoreStage.LOCATING, self._logger):
            backup = self._naming.newest_artifact(database)
            if backup is None:
                raise NotFoundError(f"No backups found for: {database}")

        with stage_scope(database, RestoreStage.DROPPING, self._logger):
            self._messenger.warning(f"Dropping: {database}")
            try:
                self._tools.drop_database(database)
            except ProcessFailure as e:
                # usually "database doesn't exist", which a full restore does not care about
                self._messenger.warning(f"Drop of {database} failed, continuing: {e}")

        with stage_scope(database, RestoreStage.CREATING, self._logger):
            self._logger.debug(f"Creating: {database}")
            self._tools.create_database(database)

        with stage_scope(database, RestoreStage.LOADING, self._logger):
            self._messenger.info(f"Restoring {database} from {backup}")
            self._tools.load_artifact(backup, database)

        self._messenger.success(f"Restored {database} from {backup.name}")
        return RestoreResult(database, RestoreStage.DONE, artifact=backup)

    def replay(self, database: str, stop_datetime: Optional[str] = None) -> RestoreResult:
        """
        Re-execute the archived binary logs recorded since the last full backup,
        for this database only, optionally stopping at stop_datetime.

        Logs are flushed and archived first, so "now" is the end of the
        window. No log rotation may happen between the flush and the listing.
        """
        stop_datetime = stop_datetime if stop_datetime is not None else self._config.stop_datetime

        with stage_scope(database, RestoreStage.FLUSHING, self._logger):
            self._tools.flush_logs()
            self._tracker.collect_archivable(self._config.log_bin_basename, self._config.log_bin_dir)

        with stage_scope(database, RestoreStage.LOCATING, self._logger):
            marker = self._naming.newest_marker(database)
            if marker is None:
                raise NotFoundError(f"No binlog marker found for: {database}")
            log_file = self._tracker.read_marker(marker)
            start = log_file_sequence(log_file)
            if start is None:
                raise BackupError(f"Binlog marker {marker.name} holds no numbered log file: '{log_file}'")
            base = Path(log_file).name.rsplit(".", 1)[0]
            if base != self._config.log_bin_basename:
                self._messenger.warning(f"Marker {marker.name} names log base '{base}', "
                                        f"configured log_bin is '{self._config.log_bin_basename}'; using '{base}'")

        with stage_scope(database, RestoreStage.ORDERING, self._logger):
            archive_dir = self._tracker.archive_dir
            available = archive_dir.iterdir() if archive_dir.is_dir() else []
            segments = order_segments(available, base, start)

        if not segments:
            self._messenger.warning(f"No archived binary logs from {log_file} onwards, nothing to replay for {database}")
            return RestoreResult(database, RestoreStage.DONE)

        with stage_scope(database, RestoreStage.REPLAYING, self._logger):
            listing = "\n".join(f"  {s.name}" for s in segments)
            self._messenger.info(f"Replaying on {database}:\n{listing}")
            if stop_datetime:
                self._messenger.info(f"Stopping at {stop_datetime}")
            self._tools.replay(segments, database, stop_datetime)

        self._messenger.success(f"Replayed {len(segments)} binary log segment(s) on {database}")
        return RestoreResult(database, RestoreStage.DONE, segments=segments)
