"""Command line interface for wpbackup."""

import logging

import click

from . import __version__, configure_logging
from .backup.executor import BackupExecutor, PreflightError
from .backup.producer import ProductionError
from .config import ConfigError, load_config


logger = logging.getLogger(__name__)

FATAL_ERRORS = (ConfigError, PreflightError, ProductionError)


class BackupCommand(click.Command):
    """Command whose usage errors exit with status 1 like every other fatal error."""

    def parse_args(self, ctx: click.Context, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.command(cls=BackupCommand, context_settings={'help_option_names': ['-h', '--help']})
@click.option('-c', '--config', 'config_file', metavar='FILE',
              help='Path to config file (default: .env in the working directory)')
@click.option('-n', '--dry-run', is_flag=True, help='Show what would be done without making changes')
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.version_option(__version__)
@click.pass_context
def main(ctx: click.Context, config_file: str, dry_run: bool, verbose: bool) -> None:
    """Automated WordPress backup: dumps the database and compresses wp-content with backup rotation."""
    configure_logging(verbose)

    try:
        config = load_config(config_file, dry_run=dry_run, verbose=verbose)
        if config.log_file:
            try:
                configure_logging(verbose, config.log_file)
            except OSError as e:
                raise ConfigError(f"Cannot open log file {config.log_file}: {e}")

        logger.debug(f"Effective configuration: {config.describe()}")

        executor = BackupExecutor(config)
        executor.execute()
    except FATAL_ERRORS as e:
        logger.error(str(e))
        ctx.exit(1)
