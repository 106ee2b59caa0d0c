"""
Command line interface for genbackup.

Commands live in the ``backup`` group:

    genbackup backup run --config backup.json
    genbackup backup validate --config backup.json
    genbackup backup list --config backup.json
    genbackup backup prune --config backup.json

The same group is available as ``flask --app genbackup backup ...``.
"""

import click
from flask import current_app
from flask.cli import AppGroup, FlaskGroup

from genbackup import create_app
from genbackup.models import BackupConfig, ConfigLoadError, load_config
from genbackup.backup.compression import create_archiver
from genbackup.backup.orchestrator import ResultCollector, perform_backup
from genbackup.backup.retention import PruneFailed, RetentionManager
from genbackup.backup.validation import ConfigError, validate_config


backup_cli = AppGroup('backup', help='Create and rotate backup bundles.')

config_option = click.option(
    '--config', '-c', 'config_path',
    type=click.Path(dir_okay=False),
    default=None,
    help='Path to the JSON backup configuration (default: GENBACKUP_CONFIG).'
)


def _load(config_path) -> BackupConfig:
    """Load the configuration, turning load errors into a single CLI error."""
    path = config_path or current_app.config.get('BACKUP_CONFIG')
    if not path:
        raise click.UsageError('No configuration given. Use --config or set GENBACKUP_CONFIG.')

    try:
        return load_config(path)
    except ConfigLoadError as e:
        raise click.ClickException(str(e))


def _load_validated(config_path) -> BackupConfig:
    config = _load(config_path)
    try:
        validate_config(config)
    except ConfigError as e:
        raise click.ClickException(str(e))
    return config


def _number_setting(key, convert, minimum):
    """Read a numeric setting; None when unset."""
    value = current_app.config.get(key)
    if value is None:
        return None

    try:
        number = convert(value)
    except (TypeError, ValueError):
        raise click.ClickException(f"Invalid {key} setting: {value!r} is not a number")
    if number < minimum:
        raise click.ClickException(f"Invalid {key} setting: must be at least {minimum}")
    return number


@backup_cli.command('run')
@config_option
@click.option('--archiver', type=click.Choice(['tar', 'tarfile']), default=None,
              help='Archiver backend (default: ARCHIVER setting).')
@click.option('--max-workers', type=click.IntRange(min=1), default=None,
              help='Cap on concurrent entries (default: one per entry).')
@click.pass_context
def run_command(ctx, config_path, archiver, max_workers):
    """Archive every entry and prune old generations."""
    config = _load(config_path)

    settings = current_app.config
    timeout = _number_setting('ARCHIVE_TIMEOUT', float, 0)
    if max_workers is None:
        max_workers = _number_setting('MAX_WORKERS', int, 1)

    try:
        backend = create_archiver(
            archiver or settings['ARCHIVER'],
            tar_command=settings['TAR_COMMAND'],
            timeout=timeout
        )
    except ValueError as e:
        raise click.ClickException(str(e))
    collector = ResultCollector(report=click.echo)

    try:
        perform_backup(
            config,
            archiver=backend,
            collector=collector,
            max_workers=max_workers
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    summary = collector.summary()
    if not collector.ok:
        click.echo(f"{len(summary['failed'])} of {summary['total']} entries failed", err=True)
        ctx.exit(1)

    click.echo(f"Backed up {summary['total']} entries to {config.destination}")


@backup_cli.command('validate')
@config_option
def validate_command(config_path):
    """Check the configuration without backing anything up."""
    config = _load_validated(config_path)
    click.echo(
        f"Configuration OK: {len(config.entries)} entries, "
        f"destination={config.destination}, keep_generations={config.keep_generations}"
    )


@backup_cli.command('list')
@config_option
@click.pass_context
def list_command(ctx, config_path):
    """Show each entry's generations, oldest first."""
    config = _load_validated(config_path)
    manager = RetentionManager()
    failed = False

    for entry in config.entries:
        try:
            generations = manager.list_generations(config.destination, entry.name)
        except PruneFailed as e:
            click.echo(f"{entry.name}: error: {e}")
            failed = True
            continue

        click.echo(f"{entry.name}: {len(generations)} generations (keep {config.keep_generations})")
        for generation in generations:
            click.echo(f"  {generation.filename}")

    if failed:
        ctx.exit(1)


@backup_cli.command('prune')
@config_option
@click.pass_context
def prune_command(ctx, config_path):
    """Apply the retention limit without creating new bundles."""
    config = _load_validated(config_path)
    summary = RetentionManager().enforce_all(config)

    for error in summary['errors']:
        click.echo(error)
    click.echo(f"Deleted {summary['deleted']} old generations from {config.destination}")

    if summary['errors']:
        ctx.exit(1)


def main():
    """Console script entry point."""
    cli = FlaskGroup(
        create_app=create_app,
        add_default_commands=False,
        help='Rotating tar.gz backups of named paths.'
    )
    cli.main()
