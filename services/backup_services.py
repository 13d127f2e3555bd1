from typing import Callable, List, Optional

from backup_config import BackupConfig
from custom_logging import BackupLogger, OperationReport
from errors import BackupError
from services.backup.binlog_tracker import BinlogTracker
from services.backup.core import BackupOrchestrator
from services.backup.engine_classifier import EngineClassifier
from services.backup.naming import NamingScheme
from services.interfaces import IMessenger, IMysqlTools, IServerInspector
from services.restore.orchestrator import RestoreOrchestrator
from services.run_lock import RunLock


class BackupService:
    """
    Runs one command over every selected database, one database at a time.

    Each database is its own unit of failure: an error is recorded in the
    report with the stage it happened in and the next database is processed.
    """

    def __init__(self,
                 config: BackupConfig,
                 inspector: IServerInspector,
                 tools: IMysqlTools,
                 logger: BackupLogger,
                 messenger: IMessenger,
                 naming: Optional[NamingScheme] = None):
        self._config = config
        self._inspector = inspector
        self._logger = logger
        self._messenger = messenger
        self._naming = naming or NamingScheme(config.backup_dir)
        tracker = BinlogTracker(inspector, self._naming, config.backup_log_dir, logger)
        self.backups = BackupOrchestrator(config, tools, EngineClassifier(inspector), tracker,
                                          self._naming, logger, messenger)
        self.restores = RestoreOrchestrator(config, tools, tracker, self._naming, logger, messenger)

    def databases(self) -> List[str]:
        if self._config.databases:
            return list(self._config.databases)
        names = self._inspector.list_databases(include_test=self._config.include_test_databases)
        self._logger.debug(f"Databases: {' '.join(names)}")
        return names

    def _run_each(self, command: str, operation: str, action: Callable[[str], object]) -> OperationReport:
        report = OperationReport(command)
        with RunLock(self._config.lock_file, self._logger):
            for database in self.databases():
                self._messenger.section_header(f"{command}: {database}")
                record = self._logger.start_operation(operation, database)
                try:
                    result = action(database)
                except BackupError as e:
                    self._messenger.error(f"{command} of {database} failed: {e}")
                    self._logger.finish_operation(record, success=False, stage=e.stage, error=e)
                else:
                    skipped = getattr(result, "skipped", False)
                    self._logger.finish_operation(record, success=True, status="skipped" if skipped else None)
                    for name in ("artifact", "marker"):
                        path = getattr(result, name, None)
                        if path is not None:
                            record.artifacts.append(str(path))
                report.add(record)
        return report

    def backup(self) -> OperationReport:
        return self._run_each("backup", "backup", self.backups.backup)

    def recreate(self) -> OperationReport:
        return self._run_each("recreate", "restore", self.restores.recreate)

    def replay(self) -> OperationReport:
        return self._run_each("replay", "replay", self.restores.replay)

    def flush_logs(self) -> OperationReport:
        report = OperationReport("flush-logs")
        with RunLock(self._config.lock_file, self._logger):
            record = self._logger.start_operation("flush-logs", "(all databases)")
            try:
                archived = self.backups.flush_logs()
            except BackupError as e:
                self._messenger.error(f"flush-logs failed: {e}")
                self._logger.finish_operation(record, success=False, stage=e.stage or "flushing", error=e)
            else:
                record.artifacts.extend(str(p) for p in archived)
                self._logger.finish_operation(record, success=True)
            report.add(record)
        return report
