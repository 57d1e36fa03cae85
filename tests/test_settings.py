import logging

import pytest

from durations import DEFAULT_DURATION
from settings import Settings, configure_logging
from timestamps import local_timezone



def test_defaults():
    settings = Settings()

    assert settings.duration == DEFAULT_DURATION
    assert settings.timezone is None
    assert settings.validate is False
    assert settings.log_level == 'WARNING'


def test_load_from_yaml(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(
        'duration: 90m\n'
        'timezone: Europe/Berlin\n'
        'validate: true\n'
        'log_level: debug\n'
    )

    settings = Settings.load_from_yaml(path)

    assert settings == Settings(
        duration=5400,
        timezone='Europe/Berlin',
        validate=True,
        log_level='DEBUG',
    )


def test_empty_file_means_defaults(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text('')

    assert Settings.load_from_yaml(path) == Settings()


@pytest.mark.parametrize('content', [
    '- a list\n',
    'duration: forever\n',
    'duration: 0\n',
    'duration: -5\n',
    'duration: true\n',
    'duration: [1, 2]\n',
    'timezone: 5\n',
    'validate: maybe\n',
    'log_level: loud\n',
    'colour: blue\n',
])
def test_load_from_yaml_rejects(tmp_path, content):
    path = tmp_path / 'config.yaml'
    path.write_text(content)

    with pytest.raises(ValueError):
        Settings.load_from_yaml(path)


def test_locate_order(tmp_path, monkeypatch):
    explicit = tmp_path / 'explicit.yaml'
    explicit.write_text('duration: 1\n')
    from_env = tmp_path / 'env.yaml'
    from_env.write_text('duration: 2\n')
    default = tmp_path / 'home' / '.config' / 'dtrmgr' / 'config.yaml'
    default.parent.mkdir(parents=True)
    default.write_text('duration: 3\n')

    monkeypatch.setenv('DTRMGR_CONFIG', str(from_env))
    assert Settings.locate(explicit).duration == 1
    assert Settings.locate().duration == 2

    monkeypatch.delenv('DTRMGR_CONFIG')
    assert Settings.locate().duration == 3

    default.unlink()
    assert Settings.locate() == Settings()


def test_apply_sets_time_zone():
    Settings(timezone='Asia/Tokyo').apply()
    assert str(local_timezone()) == 'Asia/Tokyo'

    # Without a configured zone the current one stays.
    Settings().apply()
    assert str(local_timezone()) == 'Asia/Tokyo'


def test_apply_rejects_unknown_time_zone():
    with pytest.raises(ValueError):
        Settings(timezone='Nowhere/Special').apply()


def test_configure_logging():
    root = logging.getLogger()
    level = root.level
    try:
        configure_logging('DEBUG')
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(level)
