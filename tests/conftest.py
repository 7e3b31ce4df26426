"""
Shared pytest fixtures for wpbackup tests.

This module provides fixtures for:
- A fake WordPress installation (wp-content, wp-config.php)
- A backup directory and an artifact factory with controlled mtimes
- A resolved BackupConfig
- Logging reset between tests
"""

import logging
import os

import pytest

from wpbackup.config import BackupConfig
from wpbackup.backup.artifacts import ArtifactKind


WP_CONFIG_TEMPLATE = """<?php
/** The name of the database for WordPress */
define( 'DB_NAME', 'wordpress_db' );

/** Database username */
define( 'DB_USER', 'wp_user' );

/** Database password */
define( 'DB_PASSWORD', 's3cr3t' );

/** Database hostname */
define( 'DB_HOST', 'db.internal' );

$table_prefix = 'wp_';
"""

# Base mtime for generated artifacts (2024-01-15 12:00:00 UTC)
BASE_MTIME = 1705320000


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by configure_logging() during a test."""
    yield
    package_logger = logging.getLogger('wpbackup')
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def wp_install(tmp_path):
    """
    Create a minimal WordPress installation.

    Creates:
    - wordpress/wp-config.php
    - wordpress/wp-content/uploads/photo.jpg
    - wordpress/wp-content/themes/theme/style.css
    """
    wp_path = tmp_path / 'wordpress'
    (wp_path / 'wp-content' / 'uploads').mkdir(parents=True)
    (wp_path / 'wp-content' / 'themes' / 'theme').mkdir(parents=True)

    (wp_path / 'wp-content' / 'uploads' / 'photo.jpg').write_bytes(b'\xff\xd8 not really a jpeg')
    (wp_path / 'wp-content' / 'themes' / 'theme' / 'style.css').write_text('body { color: red; }')
    (wp_path / 'wp-config.php').write_text(WP_CONFIG_TEMPLATE)

    return wp_path


@pytest.fixture
def backup_dir(tmp_path):
    """Empty backup directory."""
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def make_artifact(backup_dir):
    """
    Factory creating artifact files with a given age.

    Usage: make_artifact(ArtifactKind.DATABASE_DUMP, index) creates a file
    named after its timestamp whose mtime grows with `index`.
    """
    def _make(kind, index, mtime=None, directory=None, content=b'backup data'):
        directory = directory or backup_dir
        timestamp = f"202401{index + 1:02d}_120000"
        path = directory / kind.filename(timestamp)
        path.write_bytes(content)

        if mtime is None:
            mtime = BASE_MTIME + index * 86400
        os.utime(path, (mtime, mtime))
        return path

    return _make


@pytest.fixture
def config(wp_install, backup_dir):
    """Resolved configuration pointing at the fake installation."""
    return BackupConfig(
        wp_path=str(wp_install),
        backup_dir=str(backup_dir),
        retain_count=3,
        db_host='localhost',
        db_name='wordpress_db',
        db_user='wp_user',
        db_pass='s3cr3t'
    )


@pytest.fixture
def db_kind():
    return ArtifactKind.DATABASE_DUMP


@pytest.fixture
def content_kind():
    return ArtifactKind.CONTENT_ARCHIVE
