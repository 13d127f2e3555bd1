import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import oschmod

from backup_config import BackupConfig
from services.backup.binlog_tracker import BinlogTracker
from services.backup.change_detector import ChangeDetector
from services.backup.dump_options import resolve_dump_argv
from services.backup.engine_classifier import EngineClassifier
from services.backup.naming import NamingScheme
from services.interfaces import ILogger, IMessenger, IMysqlTools
from services.stages import BackupStage, stage_scope


@dataclass
class BackupResult:
    database: str
    stage: BackupStage
    artifact: Optional[Path] = None
    marker: Optional[Path] = None
    options: Optional[List[str]] = None

    @property
    def skipped(self) -> bool:
        return self.stage is BackupStage.SKIP


class BackupOrchestrator:
    """
    Full backup of one database at a time, plus the log-only incremental step.

    The dump is streamed straight into the compressor and written under a
    hidden partial name; only a complete artifact is renamed into place, so
    a failed run never leaves a truncated file that looks like the newest
    backup.
    """

    def __init__(self,
                 config: BackupConfig,
                 tools: IMysqlTools,
                 classifier: EngineClassifier,
                 tracker: BinlogTracker,
                 naming: NamingScheme,
                 logger: ILogger,
                 messenger: IMessenger):
        self._config = config
        self._tools = tools
        self._classifier = classifier
        self._tracker = tracker
        self._naming = naming
        self._detector = ChangeDetector(naming, logger)
        self._logger = logger
        self._messenger = messenger

    def backup(self, database: str) -> BackupResult:
        with stage_scope(database, BackupStage.START, self._logger):
            changed = self._detector.should_backup(database, self._config.datadir, self._config.force)
        if not changed:
            self._messenger.info(f"Skipping {database}: unchanged since last backup")
            return BackupResult(database, BackupStage.SKIP)

        timestamp = self._naming.timestamp()
        artifact = self._naming.artifact_path(database, timestamp)
        partial = self._naming.partial_path(artifact)

        with stage_scope(database, BackupStage.DUMPING, self._logger):
            options = self._dump_options(database)

        self._messenger.info(f"Dumping {database} to {artifact.name}")
        try:
            with stage_scope(database, BackupStage.COMPRESSING, self._logger):
                self._naming.backup_dir.mkdir(parents=True, exist_ok=True)
                self._tools.dump_compressed(database, options, partial)
                oschmod.set_mode(str(partial), "600")

            # marker first: an artifact under its final name always has one
            with stage_scope(database, BackupStage.MARKING_BINLOG, self._logger):
                marker = self._tracker.record_marker(database, timestamp)
                try:
                    os.replace(partial, artifact)
                except OSError:
                    marker.unlink(missing_ok=True)
                    raise
        finally:
            if partial.exists():
                self._logger.warning(f"Removing incomplete backup file {partial}")
                partial.unlink()

        size_mb = artifact.stat().st_size / (1024 ** 2)
        self._messenger.success(f"Backup of {database} written to {artifact} ({size_mb:.2f} MB)")
        self._logger.info(f"Backup artifact: {artifact}, binlog marker: {marker}")
        return BackupResult(database, BackupStage.DONE, artifact=artifact, marker=marker, options=options)

    def _dump_options(self, database: str) -> List[str]:
        if self._config.dump_options:
            self._logger.debug(f"Using configured dump options for {database}")
            return resolve_dump_argv(self._config.dump_options, None)
        engine_class = self._classifier.classify(database)
        self._logger.debug(f"Backing up database {database} as table type: {engine_class.value}")
        return resolve_dump_argv(None, engine_class)

    def flush_logs(self) -> List[Path]:
        """Incremental backup of all databases: rotate the binary log and archive the closed segments."""
        self._messenger.info("Flushing binary logs")
        self._tools.flush_logs()
        archived = self._tracker.collect_archivable(self._config.log_bin_basename, self._config.log_bin_dir)
        self._messenger.success(f"{len(archived)} binary log segment(s) archived in {self._tracker.archive_dir}")
        return archived
