"""
Unit tests for dbmigrate.config.

Tests cover:
- Target parsing ('latest', 'skip', versions)
- Defaults, config files and environment precedence
- Log level parsing and logger configuration
"""

import json
import logging

import pytest

from dbmigrate.config import (
    LATEST,
    SKIP,
    MigrateConfig,
    configure_logger,
    get_config,
    load_config_file,
    parse_log_level,
    parse_target,
)
from dbmigrate.errors import ConfigError


class TestParseTarget:
    """Test migration target parsing."""

    @pytest.mark.parametrize('value', [None, '', '  ', 'latest', 'LATEST'])
    def test_latest(self, value):
        assert parse_target(value) == LATEST

    @pytest.mark.parametrize('value', ['skip', 'Skip'])
    def test_skip(self, value):
        assert parse_target(value) == SKIP

    @pytest.mark.parametrize('value,expected', [('0', 0), ('7', 7), (' 3 ', 3), (4, 4)])
    def test_versions(self, value, expected):
        assert parse_target(value) == expected

    def test_invalid(self):
        with pytest.raises(ConfigError, match="Invalid migration target 'sideways'"):
            parse_target('sideways')


class TestGetConfig:
    """Test configuration precedence."""

    def test_defaults(self):
        config = get_config(environ={})

        assert config == MigrateConfig()
        assert config.database_path == './app.db'
        assert config.migrations_path == './migrations.yaml'
        assert config.resolve_target() == LATEST

    def test_environment(self):
        config = get_config(environ={
            'DATABASE_PATH': '/data/app.db',
            'MIGRATIONS_PATH': '/srv/migrations.yaml',
            'DATABASE_MIGRATION_TARGET': '3',
            'DBMIGRATE_LOG_LEVEL': 'debug',
        })

        assert config.database_path == '/data/app.db'
        assert config.migrations_path == '/srv/migrations.yaml'
        assert config.resolve_target() == 3
        assert config.log_level == 'debug'

    def test_empty_environment_values_ignored(self):
        config = get_config(environ={'DATABASE_PATH': ''})

        assert config.database_path == './app.db'

    def test_yaml_file(self, tmp_path):
        path = tmp_path / 'dbmigrate.yaml'
        path.write_text('database_path: /data/app.db\nmigration_target: 2\nunknown: 1\n')

        config = get_config(str(path), environ={})

        assert config.database_path == '/data/app.db'
        assert config.migration_target == '2'
        assert config.resolve_target() == 2

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / 'dbmigrate.json'
        path.write_text(json.dumps({'database_path': '/from/file.db'}))

        config = get_config(str(path), environ={'DATABASE_PATH': '/from/env.db'})

        assert config.database_path == '/from/env.db'

    def test_overrides_skip_none(self):
        config = MigrateConfig().with_overrides(database_path=None, log_level='WARNING')

        assert config.database_path == './app.db'
        assert config.log_level == 'WARNING'


class TestLoadConfigFile:
    """Test config file errors."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match='Failed to read config file'):
            load_config_file(str(tmp_path / 'absent.json'))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('{not json')

        with pytest.raises(ConfigError):
            load_config_file(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n')

        with pytest.raises(ConfigError, match='must contain a mapping'):
            load_config_file(str(path))

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / 'empty.yml'
        path.write_text('')

        assert load_config_file(str(path)) == {}


class TestLogging:
    """Test log level parsing and logger setup."""

    @pytest.mark.parametrize('value,expected', [
        ('debug', logging.DEBUG),
        ('INFO', logging.INFO),
        ('Warning', logging.WARNING),
        (logging.ERROR, logging.ERROR),
    ])
    def test_parse_log_level(self, value, expected):
        assert parse_log_level(value) == expected

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match='Unknown log level'):
            parse_log_level('chatty')

    def test_configure_logger_file(self, tmp_path):
        log_file = tmp_path / 'migrate.log'
        logger = configure_logger('dbmigrate.test_config', str(log_file),
                                  log_level=logging.DEBUG)
        try:
            logger.debug('Applied migration %d', 1)
            for handler in logger.handlers:
                handler.flush()
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

        content = log_file.read_text(encoding='utf-8')
        assert '[dbmigrate.test_config] [DEBUG] Applied migration 1' in content
