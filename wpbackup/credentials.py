"""
Database credential detection from a WordPress installation.

This is a best-effort scrape of `define('KEY', 'value')` statements in
wp-config.php, not a PHP parser. Values built from expressions, constants or
concatenation are not recognised.
"""

import logging
import os
import re
from typing import Dict

from .config import BackupConfig, ConfigError


logger = logging.getLogger(__name__)


# wp-config.php constant -> BackupConfig field
WP_CONFIG_KEYS = {
    'DB_NAME': 'db_name',
    'DB_USER': 'db_user',
    'DB_PASSWORD': 'db_pass',
    'DB_HOST': 'db_host',
}


class CredentialError(ConfigError):
    """Raised when database credentials cannot be resolved."""
    pass


def _define_pattern(key: str) -> re.Pattern:
    return re.compile(
        r"define\(\s*(['\"])" + re.escape(key) + r"\1\s*,\s*(['\"])(?P<value>.*?)\2\s*\)"
    )


def scrape_wp_config(wp_config_path: str) -> Dict[str, str]:
    """
    Extract database settings from a wp-config.php file.

    Args:
        wp_config_path: Path to wp-config.php

    Returns:
        Dict mapping wp-config constant names to their values. Constants that
        are not found (or an unreadable file) are simply absent.
    """
    try:
        with open(wp_config_path, 'r', encoding='utf-8', errors='replace') as f:
            content = f.read()
    except OSError as e:
        logger.warning(f"Could not read {wp_config_path}: {e}")
        return {}

    values = {}
    for key in WP_CONFIG_KEYS:
        match = _define_pattern(key).search(content)
        if match and match.group('value'):
            values[key] = match.group('value')

    return values


def detect_db_credentials(config: BackupConfig) -> BackupConfig:
    """
    Fill in missing database credentials from wp-config.php.

    Only fields left empty by config file and environment are taken from
    wp-config.php.

    Args:
        config: Resolved configuration

    Returns:
        Configuration with credentials filled in

    Raises:
        CredentialError: If DB_NAME or DB_USER cannot be determined
    """
    if config.db_name and config.db_user:
        logger.debug("Database credentials provided via config/environment")
        return config

    wp_config = os.path.join(config.wp_path, 'wp-config.php')

    if os.path.isfile(wp_config):
        logger.debug(f"Reading database credentials from {wp_config}")
        scraped = scrape_wp_config(wp_config)

        updates = {}
        for key, field in WP_CONFIG_KEYS.items():
            if not getattr(config, field) and key in scraped:
                updates[field] = scraped[key]

        if updates:
            config = config.with_credentials(**updates)

    if not config.db_name:
        raise CredentialError("DB_NAME not set and could not be read from wp-config.php")
    if not config.db_user:
        raise CredentialError("DB_USER not set and could not be read from wp-config.php")

    return config
