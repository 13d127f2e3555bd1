from typing import List, Optional, Tuple

import pymysql
import pymysql.cursors
from pymysql import err
from pymysql.connections import Connection

from backup_config import BackupConfig
from errors import ConnectivityError
from mixins.conection_config_mixin import ConnectionConfigMixin
from services.interfaces import ILogger, IServerInspector

SYSTEM_SCHEMAS = {"information_schema", "performance_schema", "sys"}
ER_PARSE_ERROR = 1064


class MysqlClient(ConnectionConfigMixin, IServerInspector):
    """Metadata queries against the live server over PyMySQL"""

    def __init__(self, config: BackupConfig, logger: Optional[ILogger] = None):
        self._config = config
        self._logger = logger
        self._connection: Optional[Connection] = None
        self._database_version: Optional[str] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()
        return False

    @property
    def connection(self):
        return self._connection

    @property
    def database_version(self) -> Optional[str]:
        return self._database_version

    @property
    def is_connected(self) -> bool:
        if self._connection is None:
            return False
        try:
            self._connection.ping(reconnect=False)
            return True
        except Exception:
            return False

    def connect(self) -> Connection:
        if self._connection is not None:
            return self._connection
        params = self.connection_params
        try:
            self._connection = pymysql.connect(
                **params,
                cursorclass=pymysql.cursors.Cursor,
                connect_timeout=10,
            )
            with self._connection.cursor() as cursor:
                cursor.execute("SELECT VERSION()")
                self._database_version = cursor.fetchone()[0]
        except err.MySQLError as e:
            self._connection = None
            if self._logger:
                self._logger.error(f"Connection failed: {e}")
            raise ConnectivityError(
                f"Unable to connect to MySQL at {params['host']}:{params['port']} as "
                f"'{params['user']}'. Details: {e}"
            ) from e
        if self._logger:
            self._logger.info(f"Connected to MySQL {self._database_version}")
        return self._connection

    def disconnect(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
        except err.MySQLError as e:
            if self._logger:
                self._logger.warning(f"Error closing connection: {e}")
        finally:
            self._connection = None

    def _query(self, sql: str, params=None) -> list:
        connection = self.connect()
        try:
            with connection.cursor() as cursor:
                cursor.execute(sql, params)
                return list(cursor.fetchall())
        except err.MySQLError as e:
            raise ConnectivityError(f"Query failed: {sql.split()[0]} ... ({e})") from e

    def table_engines(self, database: str) -> List[Tuple[str, Optional[str]]]:
        rows = self._query(
            "SELECT table_name, engine FROM information_schema.tables "
            "WHERE table_schema = %s AND table_type = 'BASE TABLE'",
            (database,),
        )
        return [(row[0], row[1]) for row in rows]

    def master_status(self) -> Optional[str]:
        try:
            rows = self._query("SHOW MASTER STATUS")
        except ConnectivityError as e:
            # MySQL 8.4 removed SHOW MASTER STATUS
            cause = e.__cause__
            if not (isinstance(cause, err.ProgrammingError) and cause.args and cause.args[0] == ER_PARSE_ERROR):
                raise
            rows = self._query("SHOW BINARY LOG STATUS")
        if not rows:
            return None
        return rows[0][0]

    def list_databases(self, include_test: bool = False) -> List[str]:
        names = [row[0] for row in self._query("SHOW DATABASES")]
        names = [n for n in names if n.lower() not in SYSTEM_SCHEMAS]
        if not include_test:
            names = [n for n in names if not n.startswith("test_")]
        return names
