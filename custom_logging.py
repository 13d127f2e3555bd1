import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def generate_operation_id(operation: str, database: str, timestamp: datetime) -> str:
    timestamp_format = "%Y%m%d_%H%M%S"
    suffix = uuid.uuid4().hex[:4]
    return f"{operation}_{database}_{timestamp.strftime(timestamp_format)}_{suffix}"


@dataclass
class OperationRecord:
    id: str
    operation: str
    database: str
    started: datetime
    finished: Optional[datetime] = None
    status: str = "in_progress"
    stage: Optional[str] = None
    error: Optional[str] = None
    artifacts: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        end = self.finished or datetime.now()
        return (end - self.started).total_seconds()

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class BackupLogger:
    def __init__(self, name: str = "mysqlbackup", log_file: Optional[str] = None, level: int = logging.INFO,
                 console: bool = True):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.handlers.clear()
        self.logger.propagate = False

        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    def start_operation(self, operation: str, database: str) -> OperationRecord:
        started = datetime.now()
        record = OperationRecord(
            id=generate_operation_id(operation, database, started),
            operation=operation,
            database=database,
            started=started,
        )
        self.logger.info(f"Starting {operation} of {database}: {record.id}")
        return record

    def finish_operation(self, record: OperationRecord, success: bool = True, status: Optional[str] = None,
                         stage: Optional[str] = None, error: Optional[BaseException] = None) -> OperationRecord:
        record.finished = datetime.now()
        record.status = status or ("completed" if success else "failed")
        record.stage = stage
        if error is not None:
            record.error = str(error)

        if success:
            self.logger.info(
                f"{record.operation.capitalize()} {record.status}: {record.database} "
                f"({record.duration_seconds:.2f}s)"
            )
        else:
            self.logger.error(
                f"{record.operation.capitalize()} failed: {record.database} at stage "
                f"'{stage or 'unknown'}': {record.error}"
            )
        return record

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)


class OperationReport:
    """Outcome of one run: one record per database (or one for flush-logs)."""

    def __init__(self, command: str):
        self.command = command
        self.records: List[OperationRecord] = []

    def add(self, record: OperationRecord) -> None:
        self.records.append(record)

    @property
    def failures(self) -> List[OperationRecord]:
        return [r for r in self.records if r.failed]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def summary(self) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for record in self.records:
            counts[record.status] = counts.get(record.status, 0) + 1
        return {"command": self.command, "total": len(self.records), "statuses": counts}
