import time

import pytest

from conftest import set_mtime
from errors import FilesystemError
from services.backup.change_detector import ChangeDetector, should_backup
from services.backup.naming import NamingScheme


@pytest.fixture
def db_dir(dirs):
    path = dirs["data"] / "mydb"
    path.mkdir()
    return path


def _artifact(dirs, name="mydb-2020-01-01_00.00.00.sql.gz", mtime=1_000):
    path = dirs["backup"] / name
    path.write_bytes(b"dump")
    set_mtime(path, mtime)
    return path


def test_no_artifact_means_backup(dirs, db_dir):
    set_mtime(db_dir, 1_000)
    assert should_backup("mydb", dirs["data"], dirs["backup"]) is True


def test_changed_database_is_backed_up_and_artifact_untouched(dirs, db_dir):
    artifact = _artifact(dirs, mtime=1_000)
    set_mtime(db_dir, 2_000)

    assert should_backup("mydb", dirs["data"], dirs["backup"]) is True
    assert artifact.stat().st_mtime == 1_000


@pytest.mark.parametrize("db_time", [500, 1_000])
def test_unchanged_database_is_skipped_and_artifact_touched(dirs, db_dir, db_time, logger):
    artifact = _artifact(dirs, mtime=1_000)
    set_mtime(db_dir, db_time)
    before = time.time()

    detector = ChangeDetector(NamingScheme(dirs["backup"]), logger)
    assert detector.should_backup("mydb", dirs["data"]) is False
    assert artifact.stat().st_mtime >= before - 1
    assert ("info", "Unchanged: mydb") in logger.events


def test_force_backs_up_unchanged_database_and_still_touches(dirs, db_dir):
    artifact = _artifact(dirs, mtime=1_000)
    set_mtime(db_dir, 500)

    assert should_backup("mydb", dirs["data"], dirs["backup"], force=True) is True
    assert artifact.stat().st_mtime > 1_000


def test_force_on_changed_database_does_not_touch(dirs, db_dir):
    artifact = _artifact(dirs, mtime=1_000)
    set_mtime(db_dir, 2_000)

    assert should_backup("mydb", dirs["data"], dirs["backup"], force=True) is True
    assert artifact.stat().st_mtime == 1_000


def test_newest_artifact_decides(dirs, db_dir):
    _artifact(dirs, "mydb-2020-01-01_00.00.00.sql.gz", mtime=1_000)
    _artifact(dirs, "mydb-2020-01-02_00.00.00.sql.gz", mtime=3_000)
    set_mtime(db_dir, 2_000)

    assert should_backup("mydb", dirs["data"], dirs["backup"]) is False


def test_missing_database_directory_is_skipped_with_a_warning(dirs, logger):
    assert should_backup("remote_db", dirs["data"], dirs["backup"], logger=logger) is False
    assert any(level == "warning" and "does not exist" in msg for level, msg in logger.events)


def test_missing_database_directory_is_backed_up_when_forced(dirs):
    artifact = _artifact(dirs, "remote_db-2020-01-01_00.00.00.sql.gz", mtime=1_000)

    assert should_backup("remote_db", dirs["data"], dirs["backup"], force=True) is True
    assert artifact.stat().st_mtime == 1_000


def test_unreadable_database_directory_raises(dirs, db_dir, monkeypatch):
    def denied(self, *args, **kwargs):
        raise PermissionError("permission denied")
    monkeypatch.setattr(type(db_dir), "stat", denied)

    with pytest.raises(FilesystemError) as excinfo:
        should_backup("mydb", dirs["data"], dirs["backup"])
    assert excinfo.value.database == "mydb"
