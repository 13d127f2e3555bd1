from dataclasses import replace

import pytest

from commands.registry import build_dispatcher
from conftest import FakeInspector, failure
from custom_logging import BackupLogger
from errors import LockError
from services.backup_services import BackupService
from services.run_lock import RunLock


@pytest.fixture
def backup_logger():
    return BackupLogger(name="mysqlbackup-test", console=False)


@pytest.fixture
def service_for(inspector, tools, backup_logger, messenger):
    def build(config):
        return BackupService(config, inspector, tools, backup_logger, messenger)
    return build


def _data_dirs(dirs, *names):
    for name in names:
        (dirs["data"] / name).mkdir()


def test_one_failing_database_does_not_stop_the_others(service_for, config, dirs, tools):
    _data_dirs(dirs, "alpha", "beta", "gamma")
    tools.fail_on["dump"] = {"beta": failure("mysqldump", 2, "Access denied for beta")}

    report = service_for(config.with_databases(["alpha", "beta", "gamma"])).backup()

    assert [r.database for r in report.records] == ["alpha", "beta", "gamma"]
    assert [r.status for r in report.records] == ["completed", "failed", "completed"]
    beta = report.records[1]
    assert beta.stage == "compressing"
    assert "Access denied for beta" in beta.error
    assert report.exit_code == 1
    assert sorted(p.name.split("-")[0] for p in dirs["backup"].glob("*.sql.gz")) == ["alpha", "gamma"]


def test_skipped_databases_are_reported(service_for, config, dirs):
    _data_dirs(dirs, "alpha")
    service = service_for(config.with_databases(["alpha"]))
    service.backup()

    report = service.backup()
    # artifact was written after the directory was created, so nothing changed
    assert report.records[0].status == "skipped"
    assert report.exit_code == 0


def test_artifacts_are_recorded(service_for, config, dirs):
    _data_dirs(dirs, "alpha")
    record = service_for(config.with_databases(["alpha"])).backup().records[0]

    assert len(record.artifacts) == 2
    assert record.artifacts[0].endswith(".sql.gz")
    assert "-binlog-" in record.artifacts[1]


def test_databases_default_to_server_listing(tools, backup_logger, messenger, config):
    inspector = FakeInspector(databases=["app", "test_scratch", "mysql"])
    service = BackupService(config, inspector, tools, backup_logger, messenger)
    assert service.databases() == ["app", "mysql"]

    service = BackupService(replace(config, include_test_databases=True), inspector, tools, backup_logger, messenger)
    assert service.databases() == ["app", "test_scratch", "mysql"]


def test_missing_restore_target_fails_only_that_database(service_for, config, dirs, tools):
    (dirs["backup"] / "alpha-2020-01-01_00.00.00.sql.gz").write_bytes(b"x")

    report = service_for(config.with_databases(["alpha", "beta"])).recreate()

    assert [r.status for r in report.records] == ["completed", "failed"]
    assert report.records[1].stage == "locating"
    assert ("load", dirs["backup"] / "alpha-2020-01-01_00.00.00.sql.gz", "alpha") in tools.calls


def test_flush_logs_is_a_single_operation(service_for, config, dirs, inspector):
    (dirs["binlog"] / "mysql-bin.000001").write_text("")

    report = service_for(config).flush_logs()

    assert len(report.records) == 1
    assert report.records[0].status == "completed"
    assert report.records[0].artifacts == [str(config.backup_log_dir / "mysql-bin.000001")]


def test_flush_logs_failure_is_reported(service_for, config, tools):
    tools.fail_on["flush"] = failure("mysqladmin", 1, "Access denied; you need RELOAD")

    report = service_for(config).flush_logs()

    assert report.exit_code == 1
    assert report.records[0].stage == "flushing"


def test_concurrent_run_is_refused(service_for, config, dirs):
    _data_dirs(dirs, "alpha")
    with RunLock(config.lock_file):
        with pytest.raises(LockError):
            service_for(config.with_databases(["alpha"])).backup()


def test_dispatcher_routes_commands_and_aliases(service_for, config, dirs, tools):
    (dirs["backup"] / "alpha-2020-01-01_00.00.00.sql.gz").write_bytes(b"x")
    dispatcher = build_dispatcher(service_for(config.with_databases(["alpha"])))

    assert dispatcher.command_names == ["backup", "flush-logs", "recreate", "replay"]
    assert dispatcher.dispatch("restore").command == "recreate"
    assert dispatcher.dispatch("incremental").command == "flush-logs"
    with pytest.raises(ValueError):
        dispatcher.dispatch("vacuum")
