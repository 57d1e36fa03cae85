from __future__ import annotations
import re

from timestamps import Precision



SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

DEFAULT_DURATION = 12 * SECONDS_PER_HOUR


_UNITS = {
    SECONDS_PER_DAY: ('d', 'day', 'days'),
    SECONDS_PER_HOUR: ('h', 'hr', 'hrs', 'hour', 'hours'),
    SECONDS_PER_MINUTE: ('m', 'min', 'mins', 'minute', 'minutes'),
    1: ('s', 'sec', 'secs', 'second', 'seconds'),
}

_UNIT_MULTIPLIERS = {
    name: multiplier
    for multiplier, names in _UNITS.items()
    for name in names
}

_WITH_UNIT = re.compile(r'(?P<value>\d+)\s*(?P<unit>[A-Za-z]*)')
_CLOCK = re.compile(r'(?P<hours>\d+):(?P<minutes>\d+)(?::(?P<seconds>\d+))?')
_DAY_CLOCK = re.compile(
    r'(?P<days>\d+)-(?P<hours>\d+)(?::(?P<minutes>\d+)(?::(?P<seconds>\d+))?)?'
)



def parse_duration(text: str) -> int:
    '''Parses a duration and returns it in seconds.

    Accepted forms:
     - '<n>'                 seconds,
     - '<n><unit>'           with the unit 's', 'm', 'h' or 'd', or a longer
                             spelling such as 'mins' or 'hours',
     - '<h>:<m>' and '<h>:<m>:<s>',
     - '<d>-<h>', '<d>-<h>:<m>' and '<d>-<h>:<m>:<s>'.

    Raises 'ValueError' for anything else and for a zero duration.'''

    text = text.strip()

    if (match := _DAY_CLOCK.fullmatch(text)) is not None:
        parts = match.groupdict()
        seconds = (
            int(parts['days']) * SECONDS_PER_DAY
            + int(parts['hours']) * SECONDS_PER_HOUR
            + int(parts['minutes'] or 0) * SECONDS_PER_MINUTE
            + int(parts['seconds'] or 0)
        )
    elif (match := _CLOCK.fullmatch(text)) is not None:
        parts = match.groupdict()
        seconds = (
            int(parts['hours']) * SECONDS_PER_HOUR
            + int(parts['minutes']) * SECONDS_PER_MINUTE
            + int(parts['seconds'] or 0)
        )
    elif (match := _WITH_UNIT.fullmatch(text)) is not None:
        unit = match['unit'].lower()
        if unit and unit not in _UNIT_MULTIPLIERS:
            raise ValueError(f'Invalid duration unit: {match["unit"]!r}')
        seconds = int(match['value']) * _UNIT_MULTIPLIERS.get(unit, 1)
    else:
        raise ValueError(f'Invalid duration: {text!r}')

    if seconds <= 0:
        raise ValueError(f'The duration must be positive: {text!r}')

    return seconds


def precision_for(duration: int) -> Precision:
    '''Returns the precision to which a cutoff is justified when
    allocating slots of the given duration.'''

    if duration >= SECONDS_PER_DAY:
        return Precision.DAYS
    if duration >= SECONDS_PER_HOUR:
        return Precision.HOURS
    return Precision.MINUTES
