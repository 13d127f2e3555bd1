"""
Artifact naming for full backups, binlog markers and archived log segments.

Layout inside the backup directory:
    <db>-<timestamp>.sql.gz          full backup
    <db>-binlog-<timestamp>.txt      binlog file active when that backup finished
    .<db>-<timestamp>.sql.gz.partial backup still being written

Timestamps have one second resolution. Backing up the same database twice
within one second is not supported.
"""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple

TIMESTAMP_FORMAT = "%Y-%m-%d_%H.%M.%S"
ARTIFACT_SUFFIX = ".sql.gz"
MARKER_INFIX = "-binlog-"
MARKER_SUFFIX = ".txt"
PARTIAL_SUFFIX = ".partial"

Entry = Tuple[Path, float]
Lister = Callable[[Path], Iterable[Entry]]


def scan_directory(directory: Path) -> Iterable[Entry]:
    """(path, mtime) for every regular file directly inside directory."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    entries = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.is_file():
                entries.append((Path(entry.path), entry.stat().st_mtime))
    return entries


def select_newest(entries: Iterable[Entry], prefix: str,
                  accept: Optional[Callable[[str], bool]] = None) -> Optional[Path]:
    """Newest path by mtime among entries whose name starts with prefix.

    Equal mtimes fall back to the name, whose timestamp component sorts
    chronologically.
    """
    newest = None
    newest_key = None
    for path, mtime in entries:
        name = Path(path).name
        if not name.startswith(prefix):
            continue
        if accept is not None and not accept(name):
            continue
        key = (mtime, name)
        if newest_key is None or key > newest_key:
            newest, newest_key = Path(path), key
    return newest


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> Optional[datetime]:
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def segment_sequence(name: str, base: str) -> Optional[int]:
    """Numeric suffix of a log segment called <base>.<digits>, else None."""
    match = re.fullmatch(re.escape(base) + r"\.(\d+)", name)
    return int(match.group(1)) if match else None


def log_file_sequence(name: str) -> Optional[int]:
    match = re.search(r"\.(\d+)$", name.strip())
    return int(match.group(1)) if match else None


class NamingScheme:
    def __init__(self, backup_dir, lister: Lister = scan_directory,
                 clock: Callable[[], datetime] = datetime.now):
        self._backup_dir = Path(backup_dir)
        self._lister = lister
        self._clock = clock

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    def timestamp(self) -> str:
        return format_timestamp(self._clock())

    def artifact_path(self, database: str, timestamp: str) -> Path:
        return self._backup_dir / f"{database}-{timestamp}{ARTIFACT_SUFFIX}"

    def marker_path(self, database: str, timestamp: str) -> Path:
        return self._backup_dir / f"{database}{MARKER_INFIX}{timestamp}{MARKER_SUFFIX}"

    @staticmethod
    def partial_path(path: Path) -> Path:
        path = Path(path)
        return path.with_name(f".{path.name}{PARTIAL_SUFFIX}")

    def is_artifact_name(self, database: str, name: str) -> bool:
        prefix = f"{database}-"
        if not (name.startswith(prefix) and name.endswith(ARTIFACT_SUFFIX)):
            return False
        return parse_timestamp(name[len(prefix):-len(ARTIFACT_SUFFIX)]) is not None

    def is_marker_name(self, database: str, name: str) -> bool:
        prefix = f"{database}{MARKER_INFIX}"
        if not (name.startswith(prefix) and name.endswith(MARKER_SUFFIX)):
            return False
        return parse_timestamp(name[len(prefix):-len(MARKER_SUFFIX)]) is not None

    def newest_matching(self, prefix: str, accept: Optional[Callable[[str], bool]] = None,
                        directory: Optional[Path] = None) -> Optional[Path]:
        directory = self._backup_dir if directory is None else Path(directory)
        return select_newest(self._lister(directory), prefix, accept)

    def newest_artifact(self, database: str) -> Optional[Path]:
        return self.newest_matching(f"{database}-", lambda name: self.is_artifact_name(database, name))

    def newest_marker(self, database: str) -> Optional[Path]:
        return self.newest_matching(f"{database}{MARKER_INFIX}", lambda name: self.is_marker_name(database, name))
