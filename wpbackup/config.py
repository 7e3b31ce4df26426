"""
Configuration loading for wpbackup.

Values are resolved in increasing priority:
built-in default, config file (.env format), process environment, CLI flag.
The result is an immutable BackupConfig passed explicitly to every component.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Dict

from dotenv import dotenv_values


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_FILE = '.env'

# Keys read from the config file and environment, with their defaults
DEFAULTS = {
    'WP_PATH': '/var/www/html',
    'BACKUP_DIR': '/var/backups/wordpress',
    'RETAIN_COUNT': '7',
    'DB_HOST': '',
    'DB_NAME': '',
    'DB_USER': '',
    'DB_PASS': '',
    'LOG_FILE': '',
}


class ConfigError(Exception):
    """Raised when the configuration is invalid or incomplete."""
    pass


@dataclass(frozen=True)
class BackupConfig:
    """Effective configuration of one backup run."""

    wp_path: str = DEFAULTS['WP_PATH']
    backup_dir: str = DEFAULTS['BACKUP_DIR']
    retain_count: int = 7
    db_host: str = ''
    db_name: str = ''
    db_user: str = ''
    db_pass: str = ''
    log_file: str = ''
    dry_run: bool = False
    verbose: bool = False

    @property
    def wp_content_path(self) -> str:
        return os.path.join(self.wp_path, 'wp-content')

    def with_credentials(self, **values: str) -> 'BackupConfig':
        """Return a copy with the given database fields replaced."""
        return replace(self, **values)

    def describe(self) -> Dict[str, object]:
        """Settings safe to log (password masked)."""
        return {
            'wp_path': self.wp_path,
            'backup_dir': self.backup_dir,
            'retain_count': self.retain_count,
            'db_host': self.db_host or 'localhost',
            'db_name': self.db_name,
            'db_user': self.db_user,
            'db_pass': '***' if self.db_pass else '',
            'dry_run': self.dry_run,
        }


def read_config_file(config_file: Path) -> Dict[str, str]:
    """
    Read recognised keys from a .env style config file.

    Comments, blank lines, `export` prefixes and quoted values are handled by
    python-dotenv. Unknown keys are ignored.

    Args:
        config_file: Path to the config file

    Returns:
        Dict of recognised keys found in the file (missing file -> empty dict)

    Raises:
        ConfigError: If the file exists but cannot be read
    """
    if not config_file.is_file():
        logger.debug(f"No config file found at {config_file}, using defaults/environment")
        return {}

    logger.debug(f"Loading config from {config_file}")

    try:
        raw_values = dotenv_values(config_file)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {config_file}: {e}")

    values = {}
    for key, value in raw_values.items():
        if key in DEFAULTS and value is not None:
            values[key] = value.strip()
    return values


def parse_retain_count(value: str) -> int:
    """
    Parse the RETAIN_COUNT setting.

    Zero is accepted (every backup gets removed on rotation), negative and
    non-integer values are rejected.

    Raises:
        ConfigError: If value is not a non-negative integer
    """
    try:
        retain_count = int(str(value).strip())
    except ValueError:
        raise ConfigError(f"RETAIN_COUNT must be an integer, got: {value!r}")

    if retain_count < 0:
        raise ConfigError(f"RETAIN_COUNT must not be negative, got: {retain_count}")

    return retain_count


def load_config(
    config_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
    verbose: bool = False
) -> BackupConfig:
    """
    Resolve the effective configuration.

    Args:
        config_file: Path to the config file (default: .env in the working directory)
        environ: Environment mapping (default: os.environ, read once here)
        dry_run: --dry-run flag
        verbose: --verbose flag

    Returns:
        Immutable BackupConfig

    Raises:
        ConfigError: If the config file is unreadable or a value is invalid
    """
    if environ is None:
        environ = os.environ

    path = Path(config_file) if config_file else Path.cwd() / DEFAULT_CONFIG_FILE
    file_values = read_config_file(path)

    merged = dict(DEFAULTS)
    merged.update(file_values)

    # A non-empty environment value wins over the config file
    for key in DEFAULTS:
        env_value = environ.get(key)
        if env_value:
            if key in file_values:
                logger.debug(f"{key} already set via environment, skipping config value")
            merged[key] = env_value

    return BackupConfig(
        wp_path=merged['WP_PATH'],
        backup_dir=merged['BACKUP_DIR'],
        retain_count=parse_retain_count(merged['RETAIN_COUNT']),
        db_host=merged['DB_HOST'],
        db_name=merged['DB_NAME'],
        db_user=merged['DB_USER'],
        db_pass=merged['DB_PASS'],
        log_file=merged['LOG_FILE'],
        dry_run=dry_run,
        verbose=verbose,
    )
