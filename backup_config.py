import configparser
import os
import shlex
import socket
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional, Tuple

from errors import ConfigurationError

DEFAULT_MYCNF = "/etc/my.cnf"
DEFAULT_DATADIR = "/var/lib/mysql"
DEFAULT_PORT = 3306
LOCK_FILE_NAME = ".mysqlbackup.lock"
STOP_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class BackupConfig:
    """Everything one run needs, fixed for its whole duration."""

    backup_dir: Path
    datadir: Path
    log_bin: Path
    user: Optional[str] = None
    password: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    backup_log_dir: Optional[Path] = None
    mycnf: Path = Path(DEFAULT_MYCNF)
    databases: Tuple[str, ...] = ()
    force: bool = False
    dump_options: Optional[Tuple[str, ...]] = None
    stop_datetime: Optional[str] = None
    compress_level: int = 9
    compress_threads: Optional[int] = None
    skip_binlog_on_restore: bool = False
    include_test_databases: bool = False
    lock_file: Optional[Path] = None
    log_file: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if self.backup_log_dir is None:
            object.__setattr__(self, "backup_log_dir", Path(self.backup_dir) / "log-bin")
        if self.lock_file is None:
            object.__setattr__(self, "lock_file", Path(self.backup_dir) / LOCK_FILE_NAME)
        if not 1 <= self.compress_level <= 11:
            raise ConfigurationError(f"Compression level must be between 1 and 11, got {self.compress_level}")
        if self.compress_threads is not None and self.compress_threads < 1:
            raise ConfigurationError(f"Compression threads must be positive, got {self.compress_threads}")
        if self.stop_datetime is not None:
            validate_stop_datetime(self.stop_datetime)

    @property
    def log_bin_basename(self) -> str:
        return Path(self.log_bin).name

    @property
    def log_bin_dir(self) -> Path:
        return Path(self.log_bin).parent

    def with_databases(self, databases) -> "BackupConfig":
        return replace(self, databases=tuple(databases))


def validate_stop_datetime(value: str) -> str:
    try:
        datetime.strptime(value, STOP_DATETIME_FORMAT)
    except ValueError:
        raise ConfigurationError(
            f"Invalid stop datetime '{value}', expected format YYYY-MM-DD HH:MM:SS"
        ) from None
    return value


def short_hostname() -> str:
    return socket.gethostname().split(".")[0]


def read_mycnf(path) -> dict:
    """Return the [mysqld] section of a my.cnf file, or {} if it is unreadable."""
    parser = configparser.ConfigParser(allow_no_value=True, strict=False, interpolation=None,
                                       inline_comment_prefixes=("#", ";"))
    try:
        with open(path, "r", encoding="utf-8") as f:
            parser.read_file(_strip_includes(f))
    except OSError:
        return {}
    except configparser.Error as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e
    if not parser.has_section("mysqld"):
        return {}
    return dict(parser.items("mysqld"))


def _strip_includes(lines):
    # !include and !includedir directives are not ini syntax
    for line in lines:
        if line.lstrip().startswith("!"):
            continue
        yield line


def resolve_log_bin(mysqld: Mapping[str, Optional[str]], datadir: Path, host: Optional[str]) -> Path:
    value = mysqld.get("log_bin") or mysqld.get("log-bin")
    if not value:
        value = f"{host or short_hostname()}-bin"
    path = Path(value)
    if not path.is_absolute():
        path = Path(datadir) / path
    return path


def read_database_list(path) -> list[str]:
    """Database names from a file, one per line; blank lines and # comments ignored."""
    names = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].replace(" ", "").strip()
            if line:
                names.append(line)
    return names


def expand_databases(entries) -> list[str]:
    databases = []
    for entry in entries or ():
        if os.path.isfile(entry) and os.access(entry, os.R_OK):
            databases.extend(read_database_list(entry))
        else:
            name = entry.replace(" ", "")
            if name:
                databases.append(name)
    return databases


def _first(*values):
    for value in values:
        if value not in (None, ""):
            return value
    return None


def _as_int(name: str, value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got '{value}'") from None


def load_config(args, environ: Optional[Mapping[str, str]] = None) -> BackupConfig:
    """Build the configuration from parsed CLI arguments, the environment and my.cnf.

    CLI arguments win over environment variables, which win over my.cnf and
    built-in defaults.
    """
    environ = os.environ if environ is None else environ

    mycnf = Path(_first(getattr(args, "mycnf", None), environ.get("MYSQLBACKUP_MYCNF"), DEFAULT_MYCNF))
    mysqld = read_mycnf(mycnf)

    host = _first(getattr(args, "host", None), environ.get("DB_HOST"))
    if host is None:
        host = short_hostname()

    datadir = Path(_first(getattr(args, "datadir", None), environ.get("MYSQLBACKUP_DATADIR"),
                          mysqld.get("datadir"), DEFAULT_DATADIR))
    log_bin_arg = _first(getattr(args, "log_bin", None), environ.get("MYSQLBACKUP_LOG_BIN"))
    if log_bin_arg:
        log_bin = resolve_log_bin({"log_bin": log_bin_arg}, datadir, host)
    else:
        log_bin = resolve_log_bin(mysqld, datadir, host)

    backup_dir = Path(_first(getattr(args, "backupdir", None), environ.get("MYSQLBACKUP_DIR"), "."))
    backup_log_dir = _first(getattr(args, "backuplogdir", None), environ.get("MYSQLBACKUP_LOG_DIR"))

    dumpopts = _first(getattr(args, "dumpopts", None), environ.get("MYSQLBACKUP_DUMPOPTS"))
    dump_options = tuple(shlex.split(dumpopts)) if dumpopts else None

    return BackupConfig(
        backup_dir=backup_dir,
        backup_log_dir=Path(backup_log_dir) if backup_log_dir else None,
        datadir=datadir,
        log_bin=log_bin,
        mycnf=mycnf,
        user=_first(getattr(args, "user", None), environ.get("DB_USER")),
        password=_first(getattr(args, "password", None), environ.get("DB_PASSWORD")),
        host=host,
        port=_as_int("port", _first(getattr(args, "port", None), environ.get("DB_PORT"))),
        databases=tuple(expand_databases(getattr(args, "db", None))),
        force=bool(getattr(args, "force", False)),
        dump_options=dump_options,
        stop_datetime=_first(getattr(args, "stop_datetime", None)),
        compress_level=_as_int("compress level", getattr(args, "compress_level", None)) or 9,
        compress_threads=_as_int("compress threads", getattr(args, "compress_threads", None)),
        skip_binlog_on_restore=bool(getattr(args, "skip_binlog_on_restore", False)),
        include_test_databases=bool(getattr(args, "all_databases", False)),
        log_file=_first(getattr(args, "log_file", None), environ.get("MYSQLBACKUP_LOG_FILE")),
        log_level=str(_first(getattr(args, "log_level", None), environ.get("LOG_LEVEL"), "INFO")).upper(),
    )
