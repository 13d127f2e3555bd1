from pathlib import Path
from typing import Optional, Sequence

from backup_config import BackupConfig
from decorators.utility_available import check_utility_available
from errors import FilesystemError
from mixins.conection_config_mixin import ConnectionConfigMixin
from services.execution.pipeline import Command, TwoStagePipeline, run_command
from services.interfaces import ILogger, IMysqlTools


class MysqlTools(ConnectionConfigMixin, IMysqlTools):
    """Runs mysqldump, mysql, mysqladmin, mysqlbinlog and pigz for the orchestrators."""

    def __init__(self, config: BackupConfig, logger: ILogger):
        self._config = config
        self._logger = logger

    def _command(self, name: str, *args: str) -> Command:
        return Command(name, [name, *self.credential_args(), *args], env=self.tool_env())

    def compress_command(self) -> Command:
        argv = ["pigz", "-c", f"-{self._config.compress_level}"]
        if self._config.compress_threads:
            argv += ["-p", str(self._config.compress_threads)]
        return Command("pigz", argv)

    def dump_command(self, database: str, options: Sequence[str]) -> Command:
        return self._command("mysqldump", *options, database)

    def load_command(self, database: Optional[str] = None) -> Command:
        args = []
        if self._config.skip_binlog_on_restore:
            args.append("--init-command=SET SQL_LOG_BIN=0")
        if database:
            args.append(database)
        return self._command("mysql", *args)

    def binlog_command(self, segments: Sequence[Path], database: str,
                       stop_datetime: Optional[str] = None) -> Command:
        args = [f"--database={database}", "--disable-log-bin"]
        if stop_datetime:
            args.append(f"--stop-datetime={stop_datetime}")
        # mysqlbinlog reads local files, connection flags are not needed
        return Command("mysqlbinlog", ["mysqlbinlog", *args, *(str(s) for s in segments)])

    def admin_command(self, *args: str) -> Command:
        return self._command("mysqladmin", *args)

    @check_utility_available("mysqldump", "pigz")
    def dump_compressed(self, database: str, options: Sequence[str], destination: Path) -> None:
        dump = self.dump_command(database, options)
        self._logger.debug(f"Running: {dump.display()} | {self.compress_command().display()} > {destination}")
        try:
            with open(destination, "wb") as out:
                TwoStagePipeline(dump, self.compress_command()).run(stdout=out)
        except OSError as e:
            raise FilesystemError(f"Cannot write {destination}: {e}") from e

    @check_utility_available("pigz", "mysql")
    def load_artifact(self, artifact: Path, database: str) -> None:
        decompress = Command("pigz", ["pigz", "-dc", str(artifact)])
        TwoStagePipeline(decompress, self.load_command(database)).run()

    @check_utility_available("mysqlbinlog", "mysql")
    def replay(self, segments: Sequence[Path], database: str, stop_datetime: Optional[str] = None) -> None:
        binlog = self.binlog_command(segments, database, stop_datetime)
        self._logger.debug(f"Running: {binlog.display()} | mysql")
        TwoStagePipeline(binlog, self._command("mysql")).run()

    @check_utility_available("mysqladmin")
    def create_database(self, database: str) -> None:
        run_command(self.admin_command("create", database))

    @check_utility_available("mysqladmin")
    def drop_database(self, database: str) -> None:
        run_command(self.admin_command("--force", "drop", database))

    @check_utility_available("mysqladmin")
    def flush_logs(self) -> None:
        run_command(self.admin_command("flush-logs"))
