import os
from pathlib import Path

from backup_config import BackupConfig
from console_utils import get_messenger
from errors import ConfigurationError

LOG_COMMANDS = {"flush-logs", "replay"}


def _ensure_directory(path: Path, label: str) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"{label} {path} cannot be created: {e}") from e
    if not os.access(path, os.W_OK):
        raise ConfigurationError(f"{label} {path} is not writable")


def validate_config(config: BackupConfig, command: str) -> BackupConfig:
    """Check that the directories a command needs are usable before anything runs"""
    messenger = get_messenger()

    _ensure_directory(Path(config.backup_dir), "Backup directory")

    if command == "backup" and not Path(config.datadir).is_dir():
        messenger.warning(
            f"MySQL data directory {config.datadir} not found; change detection is unavailable "
            "and only --force backs databases up. Run on the database server itself or pass --datadir."
        )

    if command in LOG_COMMANDS and not Path(config.log_bin_dir).is_dir():
        raise ConfigurationError(
            f"Binary log directory {config.log_bin_dir} not found. "
            "Check log_bin in my.cnf or pass --log-bin."
        )

    if config.stop_datetime and command != "replay":
        messenger.warning("--stop-datetime only applies to replay; ignoring it")

    if config.dump_options and command != "backup":
        messenger.warning("--dumpopts only applies to backup; ignoring it")

    if not config.password:
        messenger.warning("No password provided (DB_PASSWORD / --password). Connection may fail.")

    return config


def print_config(config: BackupConfig, command: str) -> None:
    messenger = get_messenger()
    messenger.section_header(f"Configuration ({command})")
    messenger.config_item("Host", config.host)
    messenger.config_item("Port", config.port)
    messenger.config_item("User", config.user)
    messenger.config_item("Password", config.password, mask_value=True)
    messenger.config_item("Databases", ", ".join(config.databases) or "(all on server)")
    messenger.config_item("Backup dir", config.backup_dir)
    messenger.config_item("Log archive dir", config.backup_log_dir)
    messenger.config_item("Data dir", config.datadir)
    messenger.config_item("Binary log", config.log_bin)
    if command == "backup":
        messenger.config_item("Force", config.force)
        messenger.config_item("Dump options", " ".join(config.dump_options) if config.dump_options else "(by engine)")
    if command == "replay":
        messenger.config_item("Stop datetime", config.stop_datetime)
    messenger.info("")
