#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration and logging setup for the migration command.

Configuration hierarchy (later overrides earlier):
1. Defaults in MigrateConfig
2. Config file (JSON, or YAML for .yaml/.yml)
3. Environment variables
4. Command-line flags (applied by the CLI)
"""
import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Union

import yaml

from dbmigrate.errors import ConfigError

LOG_FORMAT = '[%(asctime).19s] [%(name)s] [%(levelname)s] %(message)s'

SKIP = 'skip'
LATEST = 'latest'

# Environment variable -> MigrateConfig field
ENV_VARS = {
    'DATABASE_PATH': 'database_path',
    'MIGRATIONS_PATH': 'migrations_path',
    'DATABASE_MIGRATION_TARGET': 'migration_target',
    'DBMIGRATE_LOG_LEVEL': 'log_level',
    'DBMIGRATE_LOG_FILE': 'log_file',
}


class RobustFileHandler(logging.FileHandler):
    """FileHandler that tolerates flush errors on Windows"""

    def flush(self):
        """Flush the stream, ignoring EINVAL from stale Windows handles"""
        try:
            super().flush()
        except OSError as e:
            if e.errno != 22:  # EINVAL
                raise


def configure_logger(logger,
                     log_file=None,
                     log_format=LOG_FORMAT,
                     log_level=logging.INFO):
    """Configure a logger with a file or stream handler

    Args:
        logger: Logger instance or logger name string
        log_file: File path string or file-like object (None for stderr)
        log_format: Format string for log messages
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)

    Returns:
        Configured logger instance
    """
    if isinstance(log_file, str):
        handler = RobustFileHandler(
            log_file,
            mode='a',
            encoding='utf-8',
            errors='replace'
        )
    else:
        handler = logging.StreamHandler(log_file)

    handler.setFormatter(logging.Formatter(log_format))

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    logger.addHandler(handler)
    logger.setLevel(log_level)

    return logger


def parse_log_level(level: Union[str, int]) -> int:
    """
    Convert 'debug'/'INFO'/... or a numeric level to a logging constant.

    Raises:
        ConfigError: If the level name is unknown
    """
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).upper(), None)
    if not isinstance(value, int):
        raise ConfigError(f"Unknown log level: {level!r}")
    return value


@dataclass(frozen=True)
class MigrateConfig:
    """
    Settings for a migration run.

    Attributes:
        database_path: SQLite file path or SQLAlchemy URL
        migrations_path: Path to the migration source
        migration_target: 'latest', 'skip' or a version number as text
        log_level: Log level name
        log_file: Optional log file path (stderr if None)
    """
    database_path: str = './app.db'
    migrations_path: str = './migrations.yaml'
    migration_target: str = LATEST
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    def resolve_target(self) -> Union[int, str]:
        """
        Interpret migration_target.

        Returns:
            'skip', 'latest' or an int version

        Raises:
            ConfigError: If the value is none of those
        """
        return parse_target(self.migration_target)

    def with_overrides(self, **overrides) -> 'MigrateConfig':
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


def parse_target(value: Union[str, int, None]) -> Union[int, str]:
    """Parse a migration target from configuration text."""
    if value is None:
        return LATEST
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if text.lower() in ('', LATEST):
        return LATEST
    if text.lower() == SKIP:
        return SKIP
    try:
        return int(text)
    except ValueError:
        raise ConfigError(
            f"Invalid migration target {value!r}: expected 'latest', 'skip' "
            f"or a version number"
        ) from None


def load_config_file(config_file: str) -> dict:
    """
    Load a JSON or YAML config file.

    The format is chosen from the extension: .yaml/.yml is YAML,
    anything else is JSON.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        with open(config_file, 'r', encoding='utf-8') as fp:
            if config_file.endswith(('.yaml', '.yml')):
                conf = yaml.safe_load(fp)
            else:
                conf = json.load(fp)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {config_file}: {e}") from e

    if conf is None:
        return {}
    if not isinstance(conf, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping")
    return conf


def get_config(config_file: Optional[str] = None,
               environ: Optional[Mapping[str, str]] = None) -> MigrateConfig:
    """Build the configuration from defaults, an optional file and the environment

    Args:
        config_file: Optional JSON/YAML config file path
        environ: Environment mapping (defaults to os.environ)

    Returns:
        MigrateConfig
    """
    config = MigrateConfig()

    if config_file:
        conf = load_config_file(config_file)
        fields = set(MigrateConfig.__dataclass_fields__)
        values = {k: v for k, v in conf.items() if k in fields}
        if 'migration_target' in values and values['migration_target'] is not None:
            values['migration_target'] = str(values['migration_target'])
        config = config.with_overrides(**values)

    environ = os.environ if environ is None else environ
    env_values = {
        field_name: environ[var]
        for var, field_name in ENV_VARS.items()
        if environ.get(var)
    }
    return config.with_overrides(**env_values)
