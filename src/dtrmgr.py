from __future__ import annotations
from pathlib import Path
from typing import List, NoReturn, Optional
import errno
import logging
import sys
import typer
import yaml

from durations import parse_duration, precision_for
from intervals import TimeInterval
from persistence import StorageError, load_schedule, save
from scheduling import Schedule
from settings import Settings
from timestamps import Timestamp



logger = logging.getLogger(__name__)

app = typer.Typer(help='Keeps track of busy time and allocates free slots.')



def _fail(message: str, code: int) -> NoReturn:
    typer.echo(f'Error: {message}', err=True)
    raise typer.Exit(code)


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj


def _parse_interval(text: str) -> TimeInterval:
    interval = TimeInterval.parse(text)
    if not interval.is_valid:
        _fail(f'Invalid interval: {text!r}.', errno.EINVAL)
    return interval


def _load(ctx: typer.Context, file: Path) -> Schedule:
    if not file.is_file():
        _fail(f'No such schedule file: {str(file)!r}.', errno.ENOENT)

    try:
        return load_schedule(file, validate=_settings(ctx).validate)
    except StorageError as e:
        _fail(str(e), errno.EIO)


def _save(schedule: Schedule, file: Path) -> None:
    try:
        save(schedule, file)
    except StorageError as e:
        _fail(str(e), errno.EIO)


def _insert_all(schedule: Schedule, intervals: List[TimeInterval]) -> int:
    '''Inserts the intervals, warning about those outside the period.
    Returns how many were inserted.'''

    inserted = 0
    for interval in intervals:
        if schedule.insert(interval):
            inserted += 1
        else:
            typer.echo(
                f'Warning: {interval} lies outside of {schedule.period}; skipped.',
                err=True
            )
    return inserted



@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, '--config', '-c', help='Path to a YAML settings file.'
    ),
    validate: bool = typer.Option(
        False, '--validate', help='Re-check every stored block when loading.'
    ),
    verbose: bool = typer.Option(
        False, '--verbose', '-v', help='Log debug messages to stderr.'
    ),
):
    '''Keeps track of busy time and allocates free slots.'''

    try:
        settings = Settings.locate(config)
    except FileNotFoundError as e:
        _fail(f'No such settings file: {e.filename!r}.', errno.ENOENT)
    except (OSError, yaml.YAMLError, ValueError) as e:
        _fail(f'Unable to load settings: {e}', errno.EINVAL)

    if validate:
        settings.validate = True
    if verbose:
        settings.log_level = 'DEBUG'

    try:
        settings.apply()
    except ValueError as e:
        _fail(str(e), errno.EINVAL)

    ctx.obj = settings


@app.command('init')
def init(
    file: Path = typer.Argument(..., help='Schedule file to create.'),
    period: str = typer.Argument(..., help='Scheduling period, e.g. 20191001:20191101.'),
    force: bool = typer.Option(False, '--force', '-f', help='Replace an existing file.'),
):
    '''Creates a schedule file with an empty scheduling period.'''

    if file.exists() and not force:
        _fail(f'{str(file)!r} already exists; use --force to replace it.', errno.EEXIST)

    schedule = Schedule(_parse_interval(period))
    _save(schedule, file)
    logger.info('Created %s for %s.', file, schedule.period)


@app.command('show')
def show(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help='Schedule file.'),
):
    '''Prints the scheduling period and the busy blocks.'''

    typer.echo(_load(ctx, file).summary())


@app.command('add')
def add(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help='Schedule file.'),
    ranges: List[str] = typer.Argument(..., help='Busy intervals, e.g. 20191001T0900:20191001T1700.'),
):
    '''Marks the given intervals as busy.'''

    # Every interval is checked before the file is touched.
    intervals = [_parse_interval(text) for text in ranges]

    schedule = _load(ctx, file)
    inserted = _insert_all(schedule, intervals)
    _save(schedule, file)

    logger.info('Inserted %d of %d intervals into %s.', inserted, len(intervals), file)


@app.command('add-file')
def add_file(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help='Schedule file.'),
    source: str = typer.Argument(..., help='File with one interval per line, or - for stdin.'),
):
    '''Marks the intervals listed in a file as busy.'''

    if source == '-':
        lines = sys.stdin.read().splitlines()
    else:
        try:
            lines = Path(source).read_text(encoding='utf-8').splitlines()
        except FileNotFoundError:
            _fail(f'No such file: {source!r}.', errno.ENOENT)
        except OSError as e:
            _fail(f'Unable to read {source!r}: {e.strerror}.', errno.EIO)

    intervals = [_parse_interval(line) for line in lines if line.strip()]

    schedule = _load(ctx, file)
    inserted = _insert_all(schedule, intervals)
    _save(schedule, file)

    logger.info('Inserted %d of %d intervals into %s.', inserted, len(intervals), file)


@app.command('next')
def next_slots(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help='Schedule file.'),
    count: int = typer.Option(1, '--count', '-n', help='Number of slots to allocate.'),
    duration: Optional[str] = typer.Option(
        None, '--duration', '-d', help='Slot length, e.g. 90m, 2h or 1:30.'
    ),
    before: str = typer.Option(
        'now', '--before', '-b', help='Slots end before this date-time.'
    ),
):
    '''Allocates free slots before a cutoff and prints them.

    The cutoff is justified down to whole days, hours or minutes
    depending on the slot length.'''

    if count <= 0:
        _fail(f'The slot count must be positive: {count}.', errno.EINVAL)

    if duration is None:
        seconds = _settings(ctx).duration
    else:
        try:
            seconds = parse_duration(duration)
        except ValueError as e:
            _fail(str(e), errno.EINVAL)

    try:
        cutoff = Timestamp.parse(before).justify(precision_for(seconds))
    except ValueError as e:
        _fail(str(e), errno.EINVAL)

    schedule = _load(ctx, file)
    slots = schedule.allocate(count, seconds, cutoff.epoch)

    if not slots:
        typer.echo(f'No open slots before {cutoff}.', err=True)
        return

    for slot in slots:
        typer.echo(slot.text)

    _save(schedule, file)



if __name__ == '__main__':
    app()
