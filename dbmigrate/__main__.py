#!/usr/bin/env python3
"""
Migration command line.

Usage:
    dbmigrate                  # Migrate to latest (or DATABASE_MIGRATION_TARGET)
    dbmigrate --to <version>   # Migrate to a specific version
    dbmigrate status           # Show migration status
    dbmigrate plan [--to N]    # Show the steps a migration would take

Environment variables:
    DATABASE_PATH              # Path to database file (default: ./app.db)
    MIGRATIONS_PATH            # Path to migrations.yaml (default: ./migrations.yaml)
    DATABASE_MIGRATION_TARGET  # Target version, 'latest' or 'skip' (default: latest)
    DBMIGRATE_LOG_LEVEL        # Log level (default: INFO)
    DBMIGRATE_LOG_FILE         # Log file (default: stderr)
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Union

from dbmigrate.config import (
    LOG_FORMAT,
    SKIP,
    MigrateConfig,
    configure_logger,
    get_config,
    parse_log_level,
)
from dbmigrate.database import create_database, create_test_database, database_file
from dbmigrate.errors import ConfigError, MigrationError
from dbmigrate.filesystem import create_file_system
from dbmigrate.manager import DatabaseManager
from dbmigrate.migrations import LATEST, format_status

logger = logging.getLogger('dbmigrate')

COMMANDS = ('latest', 'status', 'plan')

READ_ONLY_COMMANDS = ('status', 'plan')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dbmigrate',
        description='Apply or revert versioned SQLite schema migrations.',
        epilog='Environment variables:' + __doc__.split('Environment variables:')[1],
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('command', nargs='?', choices=COMMANDS, default='latest',
                        help='latest (default), status or plan')
    parser.add_argument('--to', dest='to', metavar='VERSION',
                        help='Target version number')
    parser.add_argument('--config', help='JSON or YAML config file')
    parser.add_argument('--database', help='Database file path or SQLAlchemy URL')
    parser.add_argument('--migrations', help='Migration source file')
    parser.add_argument('--log-level', dest='log_level', help='Log level')
    return parser


def source_parser(migrations_path: str):
    """Pick the migration source parser from the file extension."""
    if migrations_path.endswith('.json'):
        return json.loads
    return None


def setup_logging(config: MigrateConfig) -> None:
    log_level = parse_log_level(config.log_level)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    if config.log_file:
        configure_logger(logging.getLogger(), config.log_file, LOG_FORMAT, log_level)


def open_database(command: str, database_path: str):
    """
    Create the database for a command.

    Read-only commands never create a missing database file; they report
    against an empty in-memory database instead.
    """
    path = database_file(database_path)
    if command in READ_ONLY_COMMANDS and path is not None and not path.exists():
        print(f'Database file not found: {path}', file=sys.stderr)
        return create_test_database()
    return create_database(database_path)


async def run(command: str, target: Union[int, str], config: MigrateConfig) -> int:
    """
    Execute one command against the configured database.

    Returns:
        Process exit code (0 success, 1 failure)
    """
    manager = DatabaseManager(open_database(command, config.database_path))
    manager.initialize_migrations(
        create_file_system(),
        config.migrations_path,
        parser=source_parser(config.migrations_path),
    )

    try:
        if command == 'status':
            print(format_status(await manager.status()))
        elif command == 'plan':
            plan = await manager.plan(target)
            print(f'Current version: {plan.current}')
            print(f'Target version: {plan.target}')
            if not plan.steps:
                print('Nothing to do.')
            for step in plan.steps:
                print(f'  {step.direction}: {step.version}')
        else:
            result = await manager.migrate_to(target)
            if result.applied:
                print(f'✓ Migrated from version {result.start_version} to '
                      f'{result.target_version} ({len(result.applied)} steps)')
            else:
                print(f'✓ Database is already at version {result.target_version}')
        return 0

    except MigrationError as e:
        print(f'✗ Migration failed: {e}', file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug('Unexpected error', exc_info=True)
        print(f'✗ Migration failed: {e}', file=sys.stderr)
        return 1
    finally:
        await manager.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = get_config(args.config).with_overrides(
            database_path=args.database,
            migrations_path=args.migrations,
            log_level=args.log_level,
        )
        configured_target = config.resolve_target()
        setup_logging(config)
    except ConfigError as e:
        print(f'Configuration error: {e}', file=sys.stderr)
        return 1

    if args.to is not None:
        try:
            target = int(args.to)
        except ValueError:
            print('Invalid version number', file=sys.stderr)
            return 1
    elif configured_target == SKIP:
        if args.command == 'latest':
            print('DATABASE_MIGRATION_TARGET=skip, skipping migrations')
            return 0
        target = LATEST
    else:
        target = configured_target

    return asyncio.run(run(args.command, target, config))


def cli() -> None:
    sys.exit(main())


if __name__ == '__main__':
    cli()
