import logging
import sqlite3

import pytest

from intervals import TimeInterval
from persistence import (
    StorageError,
    load_schedule,
    load_trusted,
    load_validating,
    save,
)
from scheduling import Schedule



D0 = TimeInterval.parse('20191001T000000-0400').start


def between(start_offset, end_offset):
    return TimeInterval.between(D0 + start_offset, D0 + end_offset)


@pytest.fixture
def schedule():
    schedule = Schedule(between(0, 9999))
    schedule.insert(between(100, 199))
    schedule.insert(between(500, 599))
    return schedule


def write_raw(path, period, blocks):
    '''Writes a schedule file directly, bypassing 'save'.'''

    con = sqlite3.connect(path)
    with con:
        con.execute('CREATE TABLE schedule (period TEXT NOT NULL)')
        con.execute(
            'CREATE TABLE blocks (block_id INTEGER PRIMARY KEY, period TEXT UNIQUE NOT NULL)'
        )
        con.execute('INSERT INTO schedule (period) VALUES (?)', (period,))
        con.executemany('INSERT INTO blocks (period) VALUES (?)', [(b,) for b in blocks])
    con.close()



def test_round_trip_trusted(schedule, tmp_path):
    path = tmp_path / 'schedule.db'
    save(schedule, path)

    period, blocks = load_trusted(path)
    assert period == schedule.period
    assert blocks == list(schedule.blocks)

    loaded = load_schedule(path)
    assert loaded.period == schedule.period
    assert loaded.blocks == schedule.blocks


def test_round_trip_validating(schedule, tmp_path):
    path = tmp_path / 'schedule.db'
    save(schedule, path)

    loaded = load_schedule(path, validate=True)
    assert loaded.period == schedule.period
    assert loaded.blocks == schedule.blocks


def test_save_replaces_previous_contents(schedule, tmp_path):
    path = tmp_path / 'schedule.db'
    save(schedule, path)

    schedule.insert(between(200, 499))
    save(schedule, path)

    assert load_schedule(path).blocks == (between(100, 599),)


def test_round_trip_rays(tmp_path):
    path = tmp_path / 'schedule.db'
    schedule = Schedule(TimeInterval.starting(D0))
    schedule.insert(between(0, 59))
    save(schedule, path)

    assert load_schedule(path).period == TimeInterval.starting(D0)


def test_validating_load_corrects_stored_blocks(tmp_path):
    path = tmp_path / 'schedule.db'
    write_raw(path, between(0, 999).text, [
        between(500, 599).text,
        between(550, 650).text,
        between(100, 199).text,
        between(200, 299).text,
        between(900, 1500).text,
    ])

    schedule = load_validating(path)

    assert schedule.blocks == (between(100, 299), between(500, 650), between(900, 999))


def test_validating_load_skips_blocks_outside_the_period(tmp_path, caplog):
    path = tmp_path / 'schedule.db'
    write_raw(path, between(0, 999).text, [
        between(100, 199).text,
        between(5000, 5999).text,
    ])

    with caplog.at_level(logging.WARNING, logger='persistence'):
        schedule = load_validating(path)

    assert schedule.blocks == (between(100, 199),)
    assert 'Skipping' in caplog.text


def test_trusted_load_takes_blocks_as_stored(tmp_path):
    path = tmp_path / 'schedule.db'
    stored = [between(500, 599), between(100, 199)]
    write_raw(path, between(0, 999).text, [b.text for b in stored])

    assert load_schedule(path).blocks == tuple(stored)


def test_load_missing_file(tmp_path):
    path = tmp_path / 'missing.db'

    with pytest.raises(StorageError):
        load_schedule(path)
    assert not path.exists()


def test_load_not_a_database(tmp_path):
    path = tmp_path / 'schedule.db'
    path.write_text('not a database\n' * 100)

    with pytest.raises(StorageError):
        load_schedule(path)


def test_load_without_tables(tmp_path):
    path = tmp_path / 'schedule.db'
    sqlite3.connect(path).close()

    with pytest.raises(StorageError):
        load_schedule(path)


def test_load_without_period(tmp_path):
    path = tmp_path / 'schedule.db'
    con = sqlite3.connect(path)
    with con:
        con.execute('CREATE TABLE schedule (period TEXT NOT NULL)')
        con.execute('CREATE TABLE blocks (block_id INTEGER PRIMARY KEY, period TEXT)')
    con.close()

    with pytest.raises(StorageError, match='No scheduling period'):
        load_schedule(path)


@pytest.mark.parametrize('validate', [False, True])
@pytest.mark.parametrize('period, blocks', [
    ('junk', []),
    ('<invalid>', []),
    ('20191001:20191002', ['junk']),
    ('20191001:20191002', ['<invalid>']),
])
def test_load_invalid_fields(tmp_path, validate, period, blocks):
    path = tmp_path / 'schedule.db'
    write_raw(path, period, blocks)

    with pytest.raises(StorageError):
        load_schedule(path, validate=validate)


def test_save_to_directory_fails(schedule, tmp_path):
    with pytest.raises(StorageError):
        save(schedule, tmp_path)

    assert 'non-file' in schedule.last_error


def test_failed_save_keeps_previous_contents(schedule, tmp_path):
    path = tmp_path / 'schedule.db'
    save(schedule, path)
    assert schedule.last_error is None

    # Duplicate blocks break the uniqueness of stored intervals.
    broken = Schedule.from_blocks(
        between(0, 99999),
        [between(100, 199), between(100, 199)]
    )
    with pytest.raises(StorageError):
        save(broken, path)
    assert broken.last_error is not None

    loaded = load_schedule(path)
    assert loaded.period == schedule.period
    assert loaded.blocks == schedule.blocks


def test_successful_save_clears_last_error(schedule, tmp_path):
    schedule.last_error = 'Earlier failure.'

    save(schedule, tmp_path / 'schedule.db')

    assert schedule.last_error is None


def test_save_interval_that_cannot_be_written(tmp_path):
    path = tmp_path / 'schedule.db'
    schedule = Schedule(TimeInterval.between(0, 10 ** 12))

    with pytest.raises(StorageError):
        save(schedule, path)

    assert schedule.last_error is not None
    assert 'update scheduling period' in schedule.last_error
