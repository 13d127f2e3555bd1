import argparse
import logging
import os
import sys

from colorama import init
from dotenv import load_dotenv

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backup_config import load_config
from cli.validateconfig import print_config, validate_config
from clients.mysql_client import MysqlClient
from commands.registry import build_dispatcher
from console_utils import configure_messenger, get_messenger
from custom_logging import BackupLogger
from errors import BackupError
from services.backup_services import BackupService
from services.execution.mysql_tools import MysqlTools

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

COMMANDS = ["backup", "flush-logs", "recreate", "replay"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mysqlbackup",
        description="Backup or restore one or more MySQL databases, with binary log based incremental restore",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full backup of every changed database (run on the database server)
  mysqlbackup backup --backupdir /mnt/backups

  # Force a backup of two databases, credentials from .env
  mysqlbackup backup --db stuff --db other_stuff --force

  # Incremental backup: flush and archive the binary logs
  mysqlbackup flush-logs --backupdir /mnt/backups

  # Full restore, then replay the logs up to a point in time
  mysqlbackup recreate --db stuff
  mysqlbackup replay --db stuff --stop-datetime "2010-12-25 10:00:00"

Rights needed by the backup user:
  GRANT SELECT, RELOAD, LOCK TABLES, SHOW VIEW, SUPER, REPLICATION CLIENT ON *.* TO 'backup'@'localhost';
    """
    )

    parser.add_argument("command", choices=COMMANDS, help="Command to execute")
    parser.add_argument(
        "--db",
        action="append",
        help="Database to process; repeatable. A readable file is read as one name per line. Default: all databases",
    )
    parser.add_argument("--all-databases", action="store_true",
                        help="When listing databases from the server, include test_* databases")

    parser.add_argument("--host", help="Hostname of the DB server (default: short hostname, or DB_HOST)")
    parser.add_argument("--port", help="Database port (default: 3306, or DB_PORT)")
    parser.add_argument("--user", help="MySQL backup user name (or DB_USER)")
    parser.add_argument("--password", help="MySQL password, if required (or DB_PASSWORD)")

    parser.add_argument("--backupdir", help='Directory to save backup files in (default ".", or MYSQLBACKUP_DIR)')
    parser.add_argument("--backuplogdir", help="Directory to save log files in (default <backupdir>/log-bin)")
    parser.add_argument("--mycnf", help="Path to my.cnf (default /etc/my.cnf)")
    parser.add_argument("--datadir", help="Directory of raw database files (default from my.cnf, else /var/lib/mysql)")
    parser.add_argument("--log-bin", dest="log_bin",
                        help="Base name of binary log files (default from my.cnf, else <datadir>/<host>-bin)")

    parser.add_argument("--force", action="store_true",
                        help="Backup even when a database has not changed since last backup")
    parser.add_argument("--dumpopts",
                        help="Options to pass to mysqldump verbatim. Default depends on whether a database "
                             "contains only InnoDB tables")
    parser.add_argument("--compress-level", type=int, help="pigz compression level (default 9)")
    parser.add_argument("--compress-threads", type=int, help="pigz threads (default: pigz decides)")
    parser.add_argument("--stop-datetime", dest="stop_datetime",
                        help='Point in time restore for replay, e.g. "2001-01-01 01:01:01"')
    parser.add_argument("--skip-binlog-on-restore", action="store_true",
                        help="Load full restores with SQL_LOG_BIN=0 (needs SUPER)")

    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level (default INFO)")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    return parser


def main(argv=None) -> int:
    init(autoreset=True)
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    messenger = get_messenger()

    try:
        config = load_config(args)
        logger = BackupLogger(log_file=config.log_file, level=getattr(logging, config.log_level, logging.INFO),
                              console=False)
        messenger = configure_messenger(logger=logger.logger, enable_colors=not args.no_color)

        print_config(config, args.command)
        validate_config(config, args.command)

        with MysqlClient(config, logger) as client:
            service = BackupService(config, client, MysqlTools(config, logger), logger, messenger)
            report = build_dispatcher(service).dispatch(args.command)

        messenger.report(report)
        return report.exit_code

    except KeyboardInterrupt:
        messenger.info("\n\nInterrupted by user. Exiting...")
        return EXIT_INTERRUPTED

    except BackupError as e:
        messenger.critical(str(e))
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
