"""
Unit tests for configuration loading (wpbackup/config.py).
"""

import dataclasses

import pytest

from wpbackup.config import (
    BackupConfig,
    ConfigError,
    load_config,
    parse_retain_count,
    read_config_file
)


@pytest.fixture
def env_file(tmp_path):
    """Write a .env style config file and return its path."""
    def _write(text):
        path = tmp_path / 'backup.env'
        path.write_text(text)
        return path
    return _write


class TestLoadConfig:
    """Test the default < file < environment < flag precedence."""

    def test_defaults(self, tmp_path):
        config = load_config(str(tmp_path / 'missing.env'), environ={})

        assert config.wp_path == '/var/www/html'
        assert config.backup_dir == '/var/backups/wordpress'
        assert config.retain_count == 7
        assert config.db_name == ''
        assert config.log_file == ''
        assert config.dry_run is False

    def test_file_values(self, env_file):
        path = env_file(
            "# WordPress backup settings\n"
            "\n"
            "WP_PATH=/srv/blog\n"
            "BACKUP_DIR=\"/srv/backups\"\n"
            "RETAIN_COUNT='14'\n"
            "DB_NAME = blog\n"
            "export DB_USER=blogger\n"
        )

        config = load_config(str(path), environ={})

        assert config.wp_path == '/srv/blog'
        assert config.backup_dir == '/srv/backups'
        assert config.retain_count == 14
        assert config.db_name == 'blog'
        assert config.db_user == 'blogger'

    def test_environment_overrides_file(self, env_file):
        path = env_file("BACKUP_DIR=/from/file\nDB_NAME=file_db\n")

        config = load_config(str(path), environ={'BACKUP_DIR': '/from/env', 'DB_NAME': ''})

        assert config.backup_dir == '/from/env'
        # Empty environment values do not override the file
        assert config.db_name == 'file_db'

    def test_unknown_keys_ignored(self, env_file):
        path = env_file("SOMETHING_ELSE=1\nPATH=/evil\nRETAIN_COUNT=2\n")

        config = load_config(str(path), environ={})

        assert config.retain_count == 2
        assert not hasattr(config, 'something_else')

    def test_flags(self, tmp_path):
        config = load_config(str(tmp_path / 'missing.env'), environ={}, dry_run=True, verbose=True)

        assert config.dry_run is True
        assert config.verbose is True

    def test_default_file_in_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / '.env').write_text("RETAIN_COUNT=3\n")
        monkeypatch.chdir(tmp_path)

        config = load_config(environ={})

        assert config.retain_count == 3

    def test_invalid_retain_count(self, env_file):
        path = env_file("RETAIN_COUNT=seven\n")

        with pytest.raises(ConfigError, match="RETAIN_COUNT must be an integer"):
            load_config(str(path), environ={})

    def test_config_is_immutable(self, tmp_path):
        config = load_config(str(tmp_path / 'missing.env'), environ={})

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.retain_count = 1


class TestParseRetainCount:

    @pytest.mark.parametrize("value,expected", [("7", 7), (" 3 ", 3), ("0", 0), ("1", 1)])
    def test_valid(self, value, expected):
        assert parse_retain_count(value) == expected

    @pytest.mark.parametrize("value", ["-1", "abc", "", "2.5"])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_retain_count(value)


class TestReadConfigFile:

    def test_missing_file(self, tmp_path):
        assert read_config_file(tmp_path / 'nope.env') == {}

    def test_only_recognised_keys(self, env_file):
        path = env_file("DB_PASS='p@ss word'\nFOO=bar\n")

        assert read_config_file(path) == {'DB_PASS': 'p@ss word'}


class TestBackupConfig:

    def test_wp_content_path(self):
        config = BackupConfig(wp_path='/srv/blog')

        assert config.wp_content_path.replace('\\', '/') == '/srv/blog/wp-content'

    def test_with_credentials_returns_copy(self):
        config = BackupConfig()

        updated = config.with_credentials(db_name='blog')

        assert updated.db_name == 'blog'
        assert config.db_name == ''

    def test_describe_masks_password(self):
        config = BackupConfig(db_pass='hunter2')

        described = config.describe()

        assert described['db_pass'] == '***'
        assert 'hunter2' not in str(described)
