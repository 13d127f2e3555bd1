from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

class ILogger(ABC):
    @abstractmethod
    def debug(self, message: str): pass
    @abstractmethod
    def info(self, message: str): pass
    @abstractmethod
    def error(self, message: str): pass
    @abstractmethod
    def warning(self, message: str): pass

class IMessenger(ABC):
    @abstractmethod
    def success(self, message: str): pass
    @abstractmethod
    def error(self, message: str): pass
    @abstractmethod
    def info(self, message: str): pass
    @abstractmethod
    def warning(self, message: str): pass


class IServerInspector(ABC):
    """Read-only questions asked of the live server."""

    @abstractmethod
    def table_engines(self, database: str) -> List[Tuple[str, Optional[str]]]:
        '''(table, engine) pairs for the base tables of a database.'''

    @abstractmethod
    def master_status(self) -> Optional[str]:
        '''Name of the binary log file currently being written, or None.'''

    @abstractmethod
    def list_databases(self, include_test: bool = False) -> List[str]: pass


class IMysqlTools(ABC):
    """The external client utilities, one method per job."""

    @abstractmethod
    def dump_compressed(self, database: str, options: Sequence[str], destination: Path) -> None:
        '''mysqldump piped through the compressor into destination.'''

    @abstractmethod
    def load_artifact(self, artifact: Path, database: str) -> None:
        '''Decompress artifact and feed it to the server as SQL.'''

    @abstractmethod
    def replay(self, segments: Sequence[Path], database: str, stop_datetime: Optional[str] = None) -> None:
        '''Replay log segments for one database into the server.'''

    @abstractmethod
    def create_database(self, database: str) -> None: pass

    @abstractmethod
    def drop_database(self, database: str) -> None: pass

    @abstractmethod
    def flush_logs(self) -> None: pass
