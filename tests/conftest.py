import gzip
import os

import pytest

from backup_config import BackupConfig
from errors import ProcessFailure
from services.interfaces import IMysqlTools, IServerInspector


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def debug(self, message: str):  # pragma: no cover - recorder
        self.events.append(("debug", message))

    def info(self, message: str):  # pragma: no cover - recorder
        self.events.append(("info", message))

    def warning(self, message: str):  # pragma: no cover - recorder
        self.events.append(("warning", message))

    def error(self, message: str):  # pragma: no cover - recorder
        self.events.append(("error", message))


class StubMessenger(StubLogger):
    def success(self, message: str):  # pragma: no cover - recorder
        self.events.append(("success", message))

    def section_header(self, title: str):  # pragma: no cover - recorder
        self.events.append(("section", title))


class FakeInspector(IServerInspector):
    def __init__(self, engines=None, active_log="mysql-bin.000001", databases=None):
        self.engines = engines or {}
        self.active_log = active_log
        self.databases = databases or []
        self.queries = []

    def table_engines(self, database):
        self.queries.append(("table_engines", database))
        return list(self.engines.get(database, {}).items())

    def master_status(self):
        self.queries.append(("master_status",))
        return self.active_log

    def list_databases(self, include_test=False):
        names = list(self.databases)
        if not include_test:
            names = [n for n in names if not n.startswith("test_")]
        return names


class FakeTools(IMysqlTools):
    """Records every call; fail_on maps a method name to the ProcessFailure it raises."""

    def __init__(self, inspector=None, log_dir=None):
        self.calls = []
        self.fail_on = {}
        self.inspector = inspector
        self.log_dir = log_dir

    def _maybe_fail(self, name, database=None):
        failure = self.fail_on.get(name)
        if failure is not None and (not isinstance(failure, dict) or database in failure):
            if isinstance(failure, dict):
                failure = failure[database]
            raise failure

    def dump_compressed(self, database, options, destination):
        self.calls.append(("dump", database, list(options), destination))
        with gzip.open(destination, "wb") as f:
            f.write(f"-- dump of {database}\n".encode())
            self._maybe_fail("dump", database)

    def load_artifact(self, artifact, database):
        self.calls.append(("load", artifact, database))
        self._maybe_fail("load", database)

    def replay(self, segments, database, stop_datetime=None):
        self.calls.append(("replay", [s.name for s in segments], database, stop_datetime))
        self._maybe_fail("replay", database)

    def create_database(self, database):
        self.calls.append(("create", database))
        self._maybe_fail("create", database)

    def drop_database(self, database):
        self.calls.append(("drop", database))
        self._maybe_fail("drop", database)

    def flush_logs(self):
        self.calls.append(("flush",))
        self._maybe_fail("flush")
        # rotate: the server starts writing the next segment
        if self.inspector is not None and self.log_dir is not None:
            base, seq = self.inspector.active_log.rsplit(".", 1)
            next_log = f"{base}.{int(seq) + 1:0{len(seq)}d}"
            (self.log_dir / next_log).write_text("")
            self.inspector.active_log = next_log

    def names(self):
        return [call[0] for call in self.calls]


def failure(tool="mysqldump", code=2, stderr="boom"):
    return ProcessFailure(tool, code, stderr)


def set_mtime(path, when):
    os.utime(path, (when, when))


@pytest.fixture
def logger():
    return StubLogger()


@pytest.fixture
def messenger():
    return StubMessenger()


@pytest.fixture
def dirs(tmp_path):
    paths = {
        "backup": tmp_path / "backups",
        "data": tmp_path / "data",
        "binlog": tmp_path / "binlogs",
    }
    for path in paths.values():
        path.mkdir()
    return paths


@pytest.fixture
def config(dirs):
    return BackupConfig(
        backup_dir=dirs["backup"],
        datadir=dirs["data"],
        log_bin=dirs["binlog"] / "mysql-bin",
    )


@pytest.fixture
def inspector():
    return FakeInspector()


@pytest.fixture
def tools(inspector, dirs):
    return FakeTools(inspector, dirs["binlog"])
