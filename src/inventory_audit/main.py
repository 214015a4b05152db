"""
Inventory Audit CLI

Imports spreadsheet rows, exports the inventory and shows the activity log,
using JSON file stores under ``storage.data_dir``.
"""

import csv
import json
import asyncio
import logging
from pathlib import Path
from typing import Optional, List, Any

import click

from .utils.config_loader import ConfigLoader
from .utils.logger import setupLogging
from .utils.metrics import MetricsCollector
from .storage import InMemoryRecordStore, InMemoryLogStore, JsonFileRecordStore, JsonFileLogStore
from .normalization.exporter import writeCsv, writeJson
from .normalization.normalizer import RowParseError
from .service import InventoryService


class InventoryApp:
    """
    Wires configuration, logging, stores and the inventory service.
    """

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        """
        Initialize the application.

        Args:
            config_path: Path to configuration file, defaults only when None
            log_level: Overrides the configured log level

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config validation fails
        """
        self.config_loader = ConfigLoader(config_path)
        self.config = self.config_loader.load()

        if not self.config_loader.validate():
            raise ValueError("Invalid configuration, see log for details")

        setupLogging(self.config, log_level)
        self.logger = logging.getLogger(self.__class__.__name__)

        self.metrics = MetricsCollector()

        storageConfig = self.config.get('storage', {})
        if storageConfig.get('backend') == 'memory':
            recordStore, logStore = InMemoryRecordStore(storageConfig), InMemoryLogStore(storageConfig)
        else:
            recordStore, logStore = JsonFileRecordStore(storageConfig), JsonFileLogStore(storageConfig)

        self.service = InventoryService(recordStore, logStore, self.config, metrics=self.metrics)
        self.logger.debug("Inventory service initialized")


def readRows(path: Path) -> List[Any]:
    if path.suffix.lower() == '.csv':
        with open(path, 'r', newline='', encoding='utf-8-sig') as f:
            return list(csv.DictReader(f))

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get('rows', [])
    if not isinstance(data, list):
        raise click.ClickException(f"{path} must hold a JSON array of rows")
    return data


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.option(
    '--config',
    default=None,
    help='Path to configuration file'
)
@click.option(
    '--log-level',
    default=None,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    help='Override logging.level from the configuration'
)
@click.pass_context
def cli(ctx, config, log_level):
    """Inventory normalization and audit trail"""
    try:
        ctx.obj = InventoryApp(config, log_level)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))


@cli.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--source-name', default=None, help='Name recorded in the import log entry')
@click.pass_obj
def importCommand(app: InventoryApp, path: Path, source_name: Optional[str]):
    """Import rows from a JSON or CSV file."""
    rows = readRows(path)

    try:
        summary = _run(app.service.importRows(rows, sourceName=source_name or path.name))
    except RowParseError as e:
        raise click.ClickException(str(e))

    click.echo(json.dumps({
        'accepted': summary.accepted,
        'rejected': summary.rejected,
        'errors': [{'row': e.rowIndex, 'reason': e.reason} for e in summary.errors]
    }))
    app.metrics.logMetrics()


@cli.command('export')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--format', 'export_format', type=click.Choice(['csv', 'json']), default='csv')
@click.pass_obj
def exportCommand(app: InventoryApp, path: Path, export_format: str):
    """Export the inventory using the canonical display headers."""
    rows = _run(app.service.exportRecords(export_format))

    with open(path, 'w', newline='', encoding='utf-8') as f:
        if export_format == 'csv':
            writeCsv(rows, f)
        else:
            writeJson(rows, f)

    click.echo(f"Exported {len(rows)} items to {path}")


@cli.command('list')
@click.pass_obj
def listCommand(app: InventoryApp):
    """List stored records."""
    for record in _run(app.service.listRecords()):
        flag = '*' if record.isFlagged else ' '
        click.echo(
            f"{record.id:>5} {flag} {record.lineItemNumber:<6} {record.stockNumber:<16} "
            f"{record.nomenclature} (auth {record.quantityAuthorized}, "
            f"on hand {record.quantityOnHand}, short {record.quantityShort})"
        )


@cli.command('history')
@click.option('--limit', default=None, type=int, help='Number of entries to show')
@click.pass_obj
def historyCommand(app: InventoryApp, limit: Optional[int]):
    """Show the activity log, newest first."""
    for entry in _run(app.service.getActivity(limit)):
        subject = f" #{entry.subjectRecordId}" if entry.subjectRecordId is not None else ''
        click.echo(f"{entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.action.value:<16}{subject} {entry.summary}")


def _report(result) -> None:
    if not result.changed:
        click.echo("No change")
        return
    click.echo(f"Record {result.recordId} updated")
    if result.logEntryId is None:
        click.echo("Warning: activity log entry could not be written", err=True)


@cli.command('flag')
@click.argument('record_id', type=int)
@click.option('--unflag', is_flag=True, help='Clear the flag instead')
@click.pass_obj
def flagCommand(app: InventoryApp, record_id: int, unflag: bool):
    """Flag or unflag a record."""
    _report(_guard(app.service.setFlag(record_id, not unflag)))


@cli.command('verify')
@click.argument('record_id', type=int)
@click.pass_obj
def verifyCommand(app: InventoryApp, record_id: int):
    """Mark a record as verified now."""
    _report(_guard(app.service.markVerified(record_id)))


@cli.command('delete')
@click.argument('record_id', type=int)
@click.pass_obj
def deleteCommand(app: InventoryApp, record_id: int):
    """Delete a record."""
    result = _guard(app.service.deleteItem(record_id))
    click.echo(f"Record {result.recordId} deleted")
    if result.logEntryId is None:
        click.echo("Warning: activity log entry could not be written", err=True)


def _guard(coro):
    try:
        return _run(coro)
    except KeyError as e:
        raise click.ClickException(str(e))


if __name__ == '__main__':
    cli()
