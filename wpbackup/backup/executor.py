"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Check required external tools
2. Resolve database credentials
3. Validate source paths, create backup directory
4. Dump the database
5. Archive wp-content
6. Rotate old backups

Any failure before or during steps 4-5 aborts the run; rotation only runs
after both artifacts were produced.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from ..config import BackupConfig
from ..credentials import detect_db_credentials
from .artifacts import BackupArtifact, generate_timestamp
from .producer import produce_database_dump, produce_content_archive
from .retention import RetentionManager, RotationReport


logger = logging.getLogger(__name__)


REQUIRED_COMMANDS = ('mysqldump', 'tar', 'gzip')


class PreflightError(Exception):
    """Raised when the environment is not ready for a backup."""
    pass


@dataclass
class BackupResult:
    """Outcome of a successful backup run."""

    config: BackupConfig
    timestamp: str
    artifacts: List[BackupArtifact] = field(default_factory=list)
    rotation: Optional[RotationReport] = None
    logs: List[str] = field(default_factory=list)


def check_dependencies(commands: Sequence[str] = REQUIRED_COMMANDS):
    """
    Verify that the external tools are available on PATH.

    Raises:
        PreflightError: Listing every missing command
    """
    missing = [cmd for cmd in commands if shutil.which(cmd) is None]

    if missing:
        raise PreflightError(f"Missing required commands: {' '.join(missing)}")


def validate_paths(config: BackupConfig):
    """
    Check the WordPress paths and prepare the backup directory.

    The backup directory is only created outside dry run.

    Raises:
        PreflightError: If a path is missing or the backup directory cannot be
            created or accessed
    """
    if not os.path.isdir(config.wp_path):
        raise PreflightError(f"WordPress path not found: {config.wp_path}")

    if not os.path.isdir(config.wp_content_path):
        raise PreflightError(f"wp-content directory not found in {config.wp_path}")

    if not config.dry_run:
        try:
            os.makedirs(config.backup_dir, exist_ok=True)
        except OSError as e:
            raise PreflightError(f"Cannot create backup directory: {config.backup_dir} ({e})")

    # Rotation lists and deletes entries, dry run only lists them
    required_access = os.R_OK | os.X_OK if config.dry_run else os.R_OK | os.W_OK | os.X_OK
    if os.path.isdir(config.backup_dir) and not os.access(config.backup_dir, required_access):
        raise PreflightError(f"Backup directory is not accessible: {config.backup_dir}")


class BackupExecutor:
    """
    Orchestrates the complete backup workflow for one installation.
    """

    def __init__(self, config: BackupConfig):
        """
        Initialize backup executor.

        Args:
            config: Resolved configuration
        """
        self.config = config
        self.logs = []

    def execute(self, now: Optional[datetime] = None) -> BackupResult:
        """
        Execute the backup.

        Args:
            now: Run time used for artifact names (default: current time)

        Returns:
            BackupResult with produced artifacts and rotation report

        Raises:
            ConfigError: If credentials cannot be resolved
            PreflightError: If tools or paths are missing, or the backup
                directory cannot be listed
            ProductionError: If the dump or archive step fails
        """
        check_dependencies()
        self.config = detect_db_credentials(self.config)
        validate_paths(self.config)

        config = self.config
        result = BackupResult(config=config, timestamp=generate_timestamp(now), logs=self.logs)

        self._log("Starting WordPress backup")
        self._log(f"WordPress path: {config.wp_path}", logging.DEBUG)
        self._log(f"Backup directory: {config.backup_dir}", logging.DEBUG)
        self._log(f"Retain count: {config.retain_count}", logging.DEBUG)

        # Step 1: Database dump
        artifact = produce_database_dump(config, result.timestamp, dry_run=config.dry_run)
        if artifact is not None:
            result.artifacts.append(artifact)

        # Step 2: wp-content archive
        artifact = produce_content_archive(config, result.timestamp, dry_run=config.dry_run)
        if artifact is not None:
            result.artifacts.append(artifact)

        # Step 3: Rotation
        result.rotation = self._rotate()

        self._log("Backup complete!")
        return result

    def _rotate(self) -> RotationReport:
        """Rotate old backups in the backup directory."""
        config = self.config

        if not os.path.isdir(config.backup_dir):
            # Only reachable on dry run, the directory is created otherwise
            self._log(f"[DRY RUN] Backup directory {config.backup_dir} does not exist yet, nothing to rotate")
            return RotationReport(
                directory=config.backup_dir,
                retain_count=config.retain_count,
                dry_run=config.dry_run
            )

        manager = RetentionManager()
        try:
            report = manager.rotate(config.backup_dir, config.retain_count, dry_run=config.dry_run)
        except OSError as e:
            raise PreflightError(f"Cannot list backup directory {config.backup_dir}: {e}")
        finally:
            self.logs.extend(manager.logs)
        return report

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


def execute_backup(config: BackupConfig) -> BackupResult:
    """
    Run a complete backup with the given configuration.

    Returns:
        BackupResult from BackupExecutor.execute()
    """
    executor = BackupExecutor(config)
    return executor.execute()
