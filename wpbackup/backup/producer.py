"""
Artifact production - database dump and wp-content archive.

Each artifact is produced by one external tool chain:
- mysqldump | gzip > db_{timestamp}.sql.gz
- tar -czf wp-content_{timestamp}.tar.gz -C {wp_path} wp-content
"""

import logging
import os
import subprocess
import tempfile
from typing import List, Optional, Sequence, Mapping

from ..config import BackupConfig
from .artifacts import ArtifactKind, BackupArtifact, artifact_path, format_size


logger = logging.getLogger(__name__)


class ProductionError(Exception):
    """Raised when an external backup tool fails."""
    pass


def build_mysqldump_command(config: BackupConfig) -> List[str]:
    """
    Build the mysqldump command line.

    The password is not part of the command line; see build_mysqldump_env().
    """
    return [
        'mysqldump',
        '-h', config.db_host or 'localhost',
        '-u', config.db_user,
        '--single-transaction',
        '--routines',
        '--triggers',
        '--add-drop-table',
        config.db_name,
    ]


def build_mysqldump_env(config: BackupConfig, base_env: Optional[Mapping[str, str]] = None) -> dict:
    """
    Environment for the mysqldump process.

    The password is passed through MYSQL_PWD so it does not show up in the
    process list.
    """
    env = dict(os.environ if base_env is None else base_env)
    if config.db_pass:
        env['MYSQL_PWD'] = config.db_pass
    return env


def build_tar_command(config: BackupConfig, archive: str) -> List[str]:
    return ['tar', '-czf', archive, '-C', config.wp_path, 'wp-content']


def run_pipeline(
    commands: Sequence[Sequence[str]],
    output_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None
):
    """
    Run commands connected by pipes, writing the last stdout to a file.

    Args:
        commands: Command lines, each one reading the previous one's stdout
        output_path: File receiving the last command's stdout (None: discard)
        env: Environment for the first command (the others inherit ours)

    Raises:
        ProductionError: If a command cannot be started or exits non-zero
    """
    processes = []
    failures = []
    output = open(output_path, 'wb') if output_path else subprocess.DEVNULL

    try:
        previous_stdout = None
        for index, command in enumerate(commands):
            is_last = index == len(commands) - 1
            # stderr goes to a temp file so a chatty tool cannot block the pipe
            stderr_file = tempfile.TemporaryFile()
            try:
                process = subprocess.Popen(
                    list(command),
                    stdin=previous_stdout,
                    stdout=output if is_last else subprocess.PIPE,
                    stderr=stderr_file,
                    env=dict(env) if env is not None and index == 0 else None
                )
            except OSError as e:
                stderr_file.close()
                raise ProductionError(f"Failed to start {command[0]}: {e}")

            # Let the upstream process receive SIGPIPE if this one exits early
            if previous_stdout is not None:
                previous_stdout.close()

            processes.append((command, process, stderr_file))
            previous_stdout = process.stdout

        for command, process, stderr_file in processes:
            returncode = process.wait()
            if returncode != 0:
                stderr_file.seek(0)
                message = stderr_file.read().decode('utf-8', errors='replace').strip()
                failures.append(
                    f"{command[0]} exited with status {returncode}"
                    + (f": {message}" if message else "")
                )
    finally:
        for _, process, stderr_file in processes:
            if process.poll() is None:
                process.kill()
                process.wait()
            if process.stdout is not None and not process.stdout.closed:
                process.stdout.close()
            stderr_file.close()
        if output_path:
            output.close()

    if failures:
        raise ProductionError("; ".join(failures))


def _remove_partial(path: str):
    """Remove a partially written artifact."""
    if os.path.exists(path):
        try:
            os.remove(path)
            logger.debug(f"Removed partial artifact: {path}")
        except OSError as e:
            logger.warning(f"Could not remove partial artifact {path}: {e}")


def _finish(kind: ArtifactKind, path: str) -> BackupArtifact:
    try:
        size = os.path.getsize(path)
    except OSError as e:
        raise ProductionError(f"Cannot read size of {path}: {e}")

    return BackupArtifact(kind=kind, path=path, size_bytes=size)


def produce_database_dump(config: BackupConfig, timestamp: str, dry_run: bool = False) -> Optional[BackupArtifact]:
    """
    Dump the database into a gzip compressed SQL file.

    Args:
        config: Configuration with resolved database credentials
        timestamp: Run timestamp used in the file name
        dry_run: Only log the file that would be created

    Returns:
        The created BackupArtifact, or None on dry run

    Raises:
        ProductionError: If mysqldump or gzip fails
    """
    dump_file = artifact_path(config.backup_dir, ArtifactKind.DATABASE_DUMP, timestamp)
    logger.info(f"Backing up database: {config.db_name}")

    if dry_run:
        logger.info(f"[DRY RUN] Would dump database to {dump_file}")
        return None

    try:
        run_pipeline(
            [build_mysqldump_command(config), ['gzip']],
            output_path=dump_file,
            env=build_mysqldump_env(config)
        )
    except ProductionError as e:
        _remove_partial(dump_file)
        raise ProductionError(f"Database backup failed: {e}")
    except OSError as e:
        _remove_partial(dump_file)
        raise ProductionError(f"Database backup failed writing {dump_file}: {e}")

    artifact = _finish(ArtifactKind.DATABASE_DUMP, dump_file)
    logger.info(f"Database backup complete: {dump_file} ({format_size(artifact.size_bytes)})")
    return artifact


def produce_content_archive(config: BackupConfig, timestamp: str, dry_run: bool = False) -> Optional[BackupArtifact]:
    """
    Archive the wp-content directory as a tar.gz file.

    Args:
        config: Configuration
        timestamp: Run timestamp used in the file name
        dry_run: Only log the file that would be created

    Returns:
        The created BackupArtifact, or None on dry run

    Raises:
        ProductionError: If tar fails
    """
    archive = artifact_path(config.backup_dir, ArtifactKind.CONTENT_ARCHIVE, timestamp)
    logger.info("Backing up wp-content directory")

    if dry_run:
        logger.info(f"[DRY RUN] Would create archive: {archive}")
        return None

    try:
        run_pipeline([build_tar_command(config, archive)])
    except ProductionError as e:
        _remove_partial(archive)
        raise ProductionError(f"File backup failed: {e}")

    artifact = _finish(ArtifactKind.CONTENT_ARCHIVE, archive)
    logger.info(f"File backup complete: {archive} ({format_size(artifact.size_bytes)})")
    return artifact
