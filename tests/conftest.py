import pytest

from timestamps import set_local_timezone



@pytest.fixture(autouse=True)
def utc_zone(monkeypatch, tmp_path):
    '''Pins date-time text to UTC and hides any settings file
    of the user running the tests.'''

    monkeypatch.delenv('DTRMGR_CONFIG', raising=False)
    monkeypatch.setenv('HOME', str(tmp_path / 'home'))

    set_local_timezone('Etc/UTC')
    yield
    set_local_timezone(None)
