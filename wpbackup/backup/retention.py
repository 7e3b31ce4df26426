"""
Retention policy enforcement for backups.

Keeps the N most recent artifacts of each kind in the backup directory and
deletes the rest. Each kind is rotated independently. Deletion is best-effort
per file and irreversible: there is no trash or rollback step.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Tuple, Iterable, Sequence, TypeVar

from .artifacts import ArtifactKind, BackupArtifact


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class KindReport:
    """Rotation outcome for one artifact kind."""

    kind: ArtifactKind
    matched_count: int = 0
    kept_count: int = 0
    removed_count: int = 0
    removed_paths: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def remaining_count(self) -> int:
        return self.matched_count - self.removed_count


@dataclass
class RotationReport:
    """Rotation outcome for a backup directory."""

    directory: str
    retain_count: int
    dry_run: bool
    kinds: List[KindReport] = field(default_factory=list)

    def for_kind(self, kind: ArtifactKind) -> KindReport:
        for report in self.kinds:
            if report.kind is kind:
                return report
        raise KeyError(kind)

    @property
    def removed_count(self) -> int:
        return sum(report.removed_count for report in self.kinds)

    @property
    def errors(self) -> List[str]:
        return [error for report in self.kinds for error in report.errors]

    @property
    def remaining_set_count(self) -> int:
        """
        Approximate number of complete backup sets left.

        Half of the remaining dumps plus archives; the two kinds are not
        actually checked to pair up.
        """
        remaining = sum(report.remaining_count for report in self.kinds)
        return remaining // 2


def sort_key(entry: Tuple[str, float]) -> Tuple[float, str]:
    """
    Ordering key for (path, timestamp) entries, newest first when reversed.

    Identical timestamps fall back to the file name, so the later named
    artifact counts as newer.
    """
    path, timestamp = entry
    return timestamp, os.path.basename(path)


def partition_artifacts(
    entries: Iterable[Tuple[T, float]],
    retain_count: int
) -> Tuple[List[Tuple[T, float]], List[Tuple[T, float]]]:
    """
    Split artifacts into the ones to keep and the ones to remove.

    Pure function: no filesystem access.

    Args:
        entries: (path, timestamp) pairs of one artifact kind
        retain_count: Number of most recent entries to keep. 0 removes all.

    Returns:
        Tuple (keep, remove), both ordered newest first
    """
    ordered = sorted(entries, key=sort_key, reverse=True)
    retain_count = max(retain_count, 0)
    return ordered[:retain_count], ordered[retain_count:]


def discover_artifacts(directory: str, kind: ArtifactKind) -> List[BackupArtifact]:
    """
    List artifacts of one kind directly inside `directory` (non-recursive).

    Only regular files whose name matches the kind's pattern are returned;
    symlinks are not followed and never count as artifacts. Files that
    disappear while being listed are skipped.

    Args:
        directory: Backup directory
        kind: Artifact kind to look for

    Returns:
        List of BackupArtifact with modification time and size filled in
    """
    artifacts = []

    with os.scandir(directory) as entries:
        for entry in entries:
            if not kind.matches(entry.name):
                continue

            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                stat = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                continue

            artifacts.append(BackupArtifact(
                kind=kind,
                path=entry.path,
                created_at=datetime.fromtimestamp(stat.st_mtime),
                size_bytes=stat.st_size
            ))

    return artifacts


class RetentionManager:
    """
    Enforces a count based retention policy over a backup directory.
    """

    def __init__(self, kinds: Sequence[ArtifactKind] = tuple(ArtifactKind)):
        """
        Initialize retention manager.

        Args:
            kinds: Artifact kinds to rotate, in processing order
        """
        self.kinds = kinds
        self.logs = []

    def rotate(self, directory: str, retain_count: int, dry_run: bool = False) -> RotationReport:
        """
        Rotate every artifact kind in `directory`.

        Args:
            directory: Existing, readable backup directory
            retain_count: Number of most recent artifacts to keep per kind
            dry_run: Report what would be removed without deleting anything

        Returns:
            RotationReport with one KindReport per kind
        """
        self._log(f"Rotating backups (keeping last {retain_count})")
        if retain_count == 0:
            self._log("Retain count is 0: all backups will be removed", logging.WARNING)

        report = RotationReport(directory=directory, retain_count=retain_count, dry_run=dry_run)

        for kind in self.kinds:
            report.kinds.append(self.rotate_kind(directory, kind, retain_count, dry_run))

        if dry_run:
            self._log(
                f"[DRY RUN] Rotation would leave {report.remaining_set_count} backup sets"
            )
        else:
            self._log(f"Rotation complete. {report.remaining_set_count} backup sets remaining.")

        if report.errors:
            self._log(f"{len(report.errors)} backups could not be removed", logging.WARNING)

        return report

    def rotate_kind(
        self,
        directory: str,
        kind: ArtifactKind,
        retain_count: int,
        dry_run: bool = False
    ) -> KindReport:
        """
        Rotate artifacts of a single kind.

        A failed deletion is recorded in the report and does not stop the
        remaining deletions.

        Args:
            directory: Backup directory
            kind: Artifact kind
            retain_count: Number of most recent artifacts to keep
            dry_run: Do not delete anything

        Returns:
            KindReport for this kind
        """
        artifacts = discover_artifacts(directory, kind)
        entries = [(a.path, a.created_at.timestamp()) for a in artifacts]
        keep, remove = partition_artifacts(entries, retain_count)

        result = KindReport(kind=kind, matched_count=len(entries), kept_count=len(keep))

        if dry_run:
            result.removed_paths = [path for path, _ in remove]
            result.removed_count = len(remove)
            self._log(
                f"[DRY RUN] Found {result.matched_count} {kind.label} backups, "
                f"would remove {result.removed_count}"
            )
            for path in result.removed_paths:
                self._log(f"[DRY RUN] Would remove old {kind.label} backup: {path}", logging.DEBUG)
            return result

        for path, _ in remove:
            try:
                os.remove(path)
                result.removed_paths.append(path)
                result.removed_count += 1
                self._log(f"Removing old {kind.label} backup: {path}", logging.DEBUG)
            except FileNotFoundError:
                # Already gone: counted as removed so remaining counts stay true
                result.removed_paths.append(path)
                result.removed_count += 1
                self._log(f"Old {kind.label} backup vanished before removal: {path}", logging.WARNING)
            except OSError as e:
                error_msg = f"Failed to remove {kind.label} backup {path}: {e}"
                result.errors.append(error_msg)
                self._log(error_msg, logging.WARNING)

        self._log(
            f"Rotated {kind.label} backups: {result.matched_count} found, "
            f"{result.removed_count} removed",
            logging.DEBUG
        )
        return result

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def rotate_backups(directory: str, retain_count: int, dry_run: bool = False) -> RotationReport:
    """
    Rotate database dumps and content archives in `directory`.

    Returns:
        RotationReport from RetentionManager.rotate()
    """
    manager = RetentionManager()
    return manager.rotate(directory, retain_count, dry_run)
