# --- main.py ---

import logging
import sys
from typing import List, Optional

import click

import utils
from config import LOG_LEVELS, load_config
from filters import parse_age_bound, parse_size_bound
from models import AttachmentUnit, FileTypeCategory, total_size
from session import ScanSession


def setup_logging(level: str, log_file: Optional[str] = None):
    """Set up logging configuration."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr, so listings on stdout stay pipeable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            click.echo(f"Warning: Could not set up file logging: {e}", err=True)


@click.group()
@click.option('--config', '-c', 'config_path',
              help='Path to configuration file')
@click.option('--root', 'store_root',
              help='Attachment store root (overrides the configured one)')
@click.option('--log-level', default=None,
              type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help='Logging level')
@click.option('--log-file',
              help='Log file path')
@click.pass_context
def cli(ctx, config_path: Optional[str], store_root: Optional[str],
        log_level: Optional[str], log_file: Optional[str]):
    """Attachment Sweeper - find, filter and clean up attachment folders."""
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    setup_logging(log_level or config.log_level, log_file or config.log_file)

    ctx.ensure_object(dict)
    ctx.obj['session'] = ScanSession(store_root or config.store_root, config.hidden_prefix)


def filter_options(func):
    """Adds the --older-than / --larger-than / --type options."""
    func = click.option('--type', 'category', default=FileTypeCategory.ALL.value,
                        type=click.Choice([c.value for c in FileTypeCategory]),
                        help='Only units of this category')(func)
    func = click.option('--larger-than', default=None,
                        help='Preset (1mb, 10mb, 50mb, 100mb) or e.g. "7.5 MB"')(func)
    func = click.option('--older-than', default=None,
                        help='Preset (week, month, three_months, six_months, year) '
                             'or e.g. "3 months"')(func)
    return func


def _run_scan(session: ScanSession):
    with click.progressbar(length=100, label='Scanning', file=sys.stderr) as bar:
        def on_change(s: ScanSession):
            step = int(s.progress * 100) - bar.pos
            if step > 0:
                bar.update(step)

        unsubscribe = session.subscribe(on_change)
        try:
            report = session.scan()
        finally:
            unsubscribe()

    if not report.ok:
        raise click.ClickException(session.status)
    return report


def _select(session: ScanSession, older_than: Optional[str], larger_than: Optional[str],
            category: str) -> List[AttachmentUnit]:
    _run_scan(session)
    return session.filtered(
        max_age_days=parse_age_bound(older_than),
        min_size_bytes=parse_size_bound(larger_than),
        category=FileTypeCategory(category),
    )


def _summary(units: List[AttachmentUnit]) -> str:
    return f"{len(units)} attachments ({utils.format_bytes(total_size(units))})"


@cli.command()
@click.pass_context
def scan(ctx):
    """Scan the attachment store and report what it holds."""
    session: ScanSession = ctx.obj['session']
    _run_scan(session)
    click.echo(f"Found {_summary(list(session.units))} in {session.root_path}")


@cli.command(name='list')
@filter_options
@click.pass_context
def list_units(ctx, older_than: Optional[str], larger_than: Optional[str], category: str):
    """List attachment units matching the filters, newest first."""
    units = _select(ctx.obj['session'], older_than, larger_than, category)
    if not units:
        click.echo("No attachments match your filters")
        return

    for unit in units:
        click.echo(
            f"{unit.date_string:<13} {unit.size_string:>10}  {unit.category.value:<11}  "
            f"{unit.display_name}  {unit.path}"
        )
    click.echo(f"\nResults: {_summary(units)}")


@cli.command()
@filter_options
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def delete(ctx, older_than: Optional[str], larger_than: Optional[str], category: str, yes: bool):
    """Move matching attachment units to the Trash."""
    session: ScanSession = ctx.obj['session']
    units = _select(session, older_than, larger_than, category)
    if not units:
        click.echo("No attachments match your filters")
        return

    if not yes:
        click.confirm(f"Move {_summary(units)} to Trash?", abort=True)

    result = session.delete_units(units)
    click.echo(f"Moved {result.succeeded} to Trash "
               f"({utils.format_bytes(result.bytes_processed)} freed), {result.failed} failed")
    if session.last_error:
        click.echo(f"Warning: {session.status}", err=True)


@cli.command()
@filter_options
@click.argument('destination', type=click.Path(exists=True, file_okay=False))
@click.pass_context
def copy(ctx, older_than: Optional[str], larger_than: Optional[str], category: str,
         destination: str):
    """Copy matching attachment units into DESTINATION."""
    session: ScanSession = ctx.obj['session']
    units = _select(session, older_than, larger_than, category)
    if not units:
        click.echo("No attachments match your filters")
        return

    succeeded, failed = session.copy_units(units, destination)
    click.echo(f"Copied {succeeded} to {destination}, {failed} failed")


if __name__ == "__main__":
    cli()
