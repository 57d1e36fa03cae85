from __future__ import annotations
from pathlib import Path
import logging
import sqlite3

from intervals import TimeInterval
from scheduling import Schedule



logger = logging.getLogger(__name__)


_CREATE_SCHEDULE_TABLE = (
    'CREATE TABLE IF NOT EXISTS schedule ('
    '  period TEXT NOT NULL'
    ')'
)

_CREATE_BLOCKS_TABLE = (
    'CREATE TABLE IF NOT EXISTS blocks ('
    '  block_id INTEGER PRIMARY KEY,'
    '  period TEXT UNIQUE NOT NULL'
    ')'
)



class StorageError(Exception):
    '''Failure to read or write a schedule file.'''



def _connect_readonly(path: Path) -> sqlite3.Connection:
    '''Opens an existing schedule file for reading. Never creates one.'''

    if not path.is_file():
        raise StorageError(f'Unable to open {str(path)!r}: no such schedule file.')

    try:
        con = sqlite3.connect(f'{path.resolve().as_uri()}?mode=ro', uri=True)
    except sqlite3.Error as e:
        raise StorageError(f'Unable to open {str(path)!r}: {e}.') from e

    con.row_factory = sqlite3.Row
    return con


def _parse_field(value: object, what: str) -> TimeInterval:
    '''Parses a stored interval, which must be present and valid.'''

    if not isinstance(value, str) or not value:
        raise StorageError(f'Missing {what}.')

    interval = TimeInterval.parse(value)
    if not interval.is_valid:
        raise StorageError(f'Invalid {what}: {value!r}.')

    return interval


def _read(path: Path) -> tuple[TimeInterval, list[TimeInterval]]:
    '''Reads the period and the stored intervals, in storage order,
    without checking how they relate to each other.'''

    con = _connect_readonly(path)
    try:
        row = con.execute('SELECT period FROM schedule LIMIT 1').fetchone()
        if row is None:
            raise StorageError(f'No scheduling period in {str(path)!r}.')
        period = _parse_field(row['period'], 'scheduling period')

        blocks = [
            _parse_field(row['period'], f'block #{row["block_id"]}')
            for row in con.execute('SELECT block_id, period FROM blocks ORDER BY block_id')
        ]
    except sqlite3.Error as e:
        raise StorageError(f'Unable to read {str(path)!r}: {e}.') from e
    finally:
        con.close()

    return period, blocks


def load_trusted(path: str | Path) -> tuple[TimeInterval, list[TimeInterval]]:
    '''Reads the period and busy blocks of a schedule file as they are.

    The file is trusted to hold ordered, coalesced blocks inside
    the period; nothing is re-checked.'''

    period, blocks = _read(Path(path))
    logger.info('Loaded %d blocks from %s.', len(blocks), path)
    return period, blocks


def load_validating(path: str | Path) -> Schedule:
    '''Reads a schedule file, passing every stored block through
    'Schedule.insert'.

    Blocks that are out of order, overlapping or partly outside
    the period are corrected. A block entirely outside the period
    is skipped.'''

    period, blocks = _read(Path(path))

    schedule = Schedule(period)
    for block in blocks:
        if not schedule.insert(block):
            logger.warning('Skipping stored block %s outside of period %s.', block, period)

    logger.info(
        'Loaded %d stored blocks from %s into %d busy blocks.',
        len(blocks), path, len(schedule)
    )
    return schedule


def load_schedule(path: str | Path, validate: bool = False) -> Schedule:
    '''Reads a schedule file, trusting its contents unless 'validate'
    is set.'''

    if validate:
        return load_validating(path)

    period, blocks = load_trusted(path)
    return Schedule.from_blocks(period, blocks)


def save(schedule: Schedule, path: str | Path) -> None:
    '''Writes the schedule to a file, replacing its period and all its
    blocks.

    The replacement happens in a single transaction: on failure the file
    keeps its previous contents. The failure message is also stored
    in 'schedule.last_error'; success clears it.'''

    path = Path(path)

    try:
        _write(schedule, path)
    except StorageError as e:
        schedule.last_error = str(e)
        raise

    schedule.last_error = None
    logger.info('Saved %d blocks to %s.', len(schedule), path)


def _write(schedule: Schedule, path: Path) -> None:
    if path.exists() and not path.is_file():
        raise StorageError(f'Attempt to write schedule to non-file object {str(path)!r}.')

    try:
        # Transactions are managed explicitly.
        con = sqlite3.connect(path, isolation_level=None)
    except sqlite3.Error as e:
        raise StorageError(f'Unable to open {str(path)!r}: {e}.') from e

    step = 'start transaction'
    try:
        con.execute('BEGIN IMMEDIATE')

        step = 'create tables'
        con.execute(_CREATE_SCHEDULE_TABLE)
        con.execute(_CREATE_BLOCKS_TABLE)

        step = 'update scheduling period'
        con.execute('DELETE FROM schedule')
        con.execute('INSERT INTO schedule (period) VALUES (?)', (schedule.period.text,))

        step = 'replace scheduled blocks'
        con.execute('DELETE FROM blocks')
        con.executemany(
            'INSERT INTO blocks (period) VALUES (?)',
            ((block.text,) for block in schedule)
        )

        step = 'commit transaction'
        con.execute('COMMIT')
    except (sqlite3.Error, ValueError, OverflowError, OSError) as e:
        # Besides SQLite errors, an interval whose bounds cannot be
        # written as date-time text fails here.
        if con.in_transaction:
            con.execute('ROLLBACK')
        raise StorageError(f'Error at {step} for {str(path)!r}: {e}.') from e
    finally:
        con.close()
