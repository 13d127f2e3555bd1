from argparse import Namespace
from pathlib import Path

import pytest

from backup_config import (
    BackupConfig,
    expand_databases,
    load_config,
    read_database_list,
    read_mycnf,
    resolve_log_bin,
    validate_stop_datetime,
)
from cli.dbtool import build_parser
from errors import ConfigurationError

MYCNF = """\
!includedir /etc/mysql/conf.d/
[client]
socket = /tmp/mysql.sock

[mysqld]
datadir = /srv/mysql   # data lives here
log-bin = mysql-bin
skip-name-resolve
"""


def test_read_mycnf_mysqld_section(tmp_path):
    path = tmp_path / "my.cnf"
    path.write_text(MYCNF)
    mysqld = read_mycnf(path)
    assert mysqld["datadir"] == "/srv/mysql"
    assert mysqld["log-bin"] == "mysql-bin"
    assert "skip-name-resolve" in mysqld
    assert "socket" not in mysqld


def test_read_mycnf_missing_file(tmp_path):
    assert read_mycnf(tmp_path / "absent.cnf") == {}


def test_resolve_log_bin():
    assert resolve_log_bin({"log-bin": "mysql-bin"}, Path("/srv/mysql"), "db1") == Path("/srv/mysql/mysql-bin")
    assert resolve_log_bin({"log_bin": "/logs/binlog"}, Path("/srv/mysql"), "db1") == Path("/logs/binlog")
    assert resolve_log_bin({"log_bin": None}, Path("/srv/mysql"), "db1") == Path("/srv/mysql/db1-bin")


def test_database_list_file(tmp_path):
    listing = tmp_path / "databases.txt"
    listing.write_text("# nightly\nstuff\n\n other_stuff  # legacy\n")
    assert read_database_list(listing) == ["stuff", "other_stuff"]
    assert expand_databases([str(listing), "extra"]) == ["stuff", "other_stuff", "extra"]


def test_stop_datetime_validation():
    assert validate_stop_datetime("2010-12-25 10:00:00") == "2010-12-25 10:00:00"
    with pytest.raises(ConfigurationError):
        validate_stop_datetime("25/12/2010 10am")


def test_config_defaults_and_validation(tmp_path):
    config = BackupConfig(backup_dir=tmp_path, datadir=tmp_path / "data", log_bin=tmp_path / "logs" / "mysql-bin")
    assert config.backup_log_dir == tmp_path / "log-bin"
    assert config.lock_file.parent == tmp_path
    assert config.log_bin_basename == "mysql-bin"
    assert config.log_bin_dir == tmp_path / "logs"
    with pytest.raises(ConfigurationError):
        BackupConfig(backup_dir=tmp_path, datadir=tmp_path, log_bin=tmp_path / "b", compress_level=12)


def _args(*argv):
    return build_parser().parse_args(list(argv))


def test_load_config_precedence(tmp_path):
    mycnf = tmp_path / "my.cnf"
    mycnf.write_text(MYCNF)
    environ = {"DB_HOST": "env-host", "DB_PORT": "3307", "DB_USER": "env-user", "DB_PASSWORD": "pw",
               "MYSQLBACKUP_DIR": str(tmp_path / "env-backups")}

    config = load_config(_args("backup", "--mycnf", str(mycnf), "--host", "cli-host", "--db", "stuff"), environ)

    assert config.host == "cli-host"
    assert config.port == 3307
    assert config.user == "env-user"
    assert config.password == "pw"
    assert config.backup_dir == tmp_path / "env-backups"
    assert config.datadir == Path("/srv/mysql")
    assert config.log_bin == Path("/srv/mysql/mysql-bin")
    assert config.databases == ("stuff",)
    assert config.dump_options is None


def test_load_config_dumpopts_and_stop_datetime(tmp_path):
    config = load_config(
        _args("replay", "--mycnf", str(tmp_path / "none.cnf"), "--host", "h", "--datadir", str(tmp_path),
              "--dumpopts", "--single-transaction --where='id > 5'", "--stop-datetime", "2010-12-25 10:00:00"),
        {},
    )
    assert config.dump_options == ("--single-transaction", "--where=id > 5")
    assert config.stop_datetime == "2010-12-25 10:00:00"
    assert config.log_bin == tmp_path / "h-bin"


def test_load_config_rejects_bad_port(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(_args("backup", "--mycnf", str(tmp_path / "none.cnf"), "--port", "abc"), {})


def test_unknown_command_is_rejected():
    with pytest.raises(SystemExit):
        _args("vacuum")


def test_namespace_without_optional_attributes(tmp_path):
    config = load_config(Namespace(command="backup", mycnf=str(tmp_path / "none.cnf"), host="h"), {})
    assert config.backup_dir == Path(".")
    assert config.compress_level == 9
