import os

from backup_config import DEFAULT_PORT, BackupConfig


class ConnectionConfigMixin:
    """Derives connection settings for PyMySQL and the client utilities from one BackupConfig"""

    _config: BackupConfig

    @property
    def config(self) -> BackupConfig:
        return self._config

    @property
    def connection_params(self) -> dict:
        """Keyword arguments for pymysql.connect"""
        params = {
            'host': self._config.host or 'localhost',
            'port': self._config.port or DEFAULT_PORT,
            'user': self._config.user or '',
            'password': self._config.password or '',
        }
        return params

    def credential_args(self) -> list[str]:
        """Connection flags shared by mysql, mysqldump, mysqladmin and mysqlbinlog"""
        args = []
        if self._config.user:
            args.append(f"--user={self._config.user}")
        if self._config.host:
            args.append(f"--host={self._config.host}")
        if self._config.port:
            args.append(f"--port={self._config.port}")
        return args

    def tool_env(self) -> dict:
        # the password never appears on a command line
        env = os.environ.copy()
        if self._config.password:
            env['MYSQL_PWD'] = self._config.password
        return env
