"""
Backup artifact kinds and naming.

File names are fixed:
- db_{YYYYMMDD_HHMMSS}.sql.gz
- wp-content_{YYYYMMDD_HHMMSS}.tar.gz
"""

import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from fnmatch import fnmatchcase
from typing import Optional


TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'


class ArtifactKind(Enum):
    """Kind of backup artifact, with its file name prefix and suffix."""

    DATABASE_DUMP = ('db_', '.sql.gz', 'database')
    CONTENT_ARCHIVE = ('wp-content_', '.tar.gz', 'file')

    def __init__(self, prefix: str, suffix: str, label: str):
        self.prefix = prefix
        self.suffix = suffix
        self.label = label

    @property
    def pattern(self) -> str:
        """Glob used to discover artifacts of this kind."""
        return f"{self.prefix}*{self.suffix}"

    def filename(self, timestamp: str) -> str:
        return f"{self.prefix}{timestamp}{self.suffix}"

    def matches(self, filename: str) -> bool:
        return fnmatchcase(filename, self.pattern)


@dataclass(frozen=True)
class BackupArtifact:
    """A single backup file."""

    kind: ArtifactKind
    path: str
    created_at: Optional[datetime] = None
    size_bytes: Optional[int] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """
    Generate the timestamp shared by all artifacts of one run.

    Args:
        now: Time to format (default: current local time)

    Returns:
        Timestamp string in YYYYMMDD_HHMMSS format
    """
    if now is None:
        now = datetime.now()
    return now.strftime(TIMESTAMP_FORMAT)


def artifact_path(backup_dir: str, kind: ArtifactKind, timestamp: str) -> str:
    """Full path of the artifact of `kind` created at `timestamp`."""
    return os.path.join(backup_dir, kind.filename(timestamp))


def format_size(size_bytes: int) -> str:
    """
    Format a byte count in human readable form, like `du -h`.

    Examples: 512 -> '512B', 4096 -> '4.0K', 12582912 -> '12M'
    """
    size = float(size_bytes)
    for unit in ('B', 'K', 'M', 'G', 'T'):
        if size < 1024 or unit == 'T':
            if unit == 'B':
                return f"{int(size)}B"
            if size < 10:
                return f"{size:.1f}{unit}"
            return f"{size:.0f}{unit}"
        size /= 1024
