from __future__ import annotations
from dataclasses import dataclass
from functools import total_ordering
from enum import Enum, auto
import datetime
import re
import zoneinfo
import tzlocal



_zone_override: zoneinfo.ZoneInfo | None = None



def set_local_timezone(timezone_iana: str | None) -> None:
    '''Overrides the time zone used to read and write date-time text.

    Passing 'None' restores detection of the machine time zone.'''

    global _zone_override

    if timezone_iana is None:
        _zone_override = None
        return

    try:
        _zone_override = zoneinfo.ZoneInfo(timezone_iana)
    except Exception as e:
        # 'ZoneInfo' raises 'ZoneInfoNotFoundError' (subclass
        # of Exception) on bad names.
        raise ValueError(f'Invalid IANA time zone: {timezone_iana}') from e


def local_timezone() -> zoneinfo.ZoneInfo:
    '''Returns the time zone used to read and write date-time text.

    Notes:
    - Dependency: 'tzlocal' (for detecting local IANA zone name).'''

    if _zone_override is not None:
        return _zone_override

    try:
        return zoneinfo.ZoneInfo(tzlocal.get_localzone_name())
    except Exception as e:
        raise RuntimeError(
            'Failed to determine local time zone.'
        ) from e



class Precision(Enum):
    '''Specifies the field to which a moment is justified.'''

    MINUTES = auto()
    HOURS = auto()
    DAYS = auto()



@dataclass(frozen=True)
@total_ordering
class Timestamp:
    '''A moment in time with one-second resolution, seen from a time zone.

    Contains an aware datetime. Comparison, hashing and 'epoch' ignore
    the zone; the zone only matters for 'compact' and 'justify'.

    Requirements:
    - 'tzinfo' must be set.'''


    COMPACT_FORMAT = '%Y%m%dT%H%M%S%z'


    _dt: datetime.datetime


    # YYYYMMDD, then optionally Thhmm, ss and an offset of ±hh or ±hhmm.
    # An offset is only accepted after the seconds.
    _PATTERN = re.compile(
        r'(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})'
        r'(?:T(?P<hour>\d{2})(?P<minute>\d{2})'
        r'(?:(?P<second>\d{2})'
        r'(?:(?P<sign>[+-])(?P<off_h>\d{2})(?P<off_m>\d{2})?)?)?)?'
    )

    _DAY_KEYWORDS = {
        'today': 0,
        'yesterday': -1,
        'tomorrow': 1,
    }


    def __post_init__(self) -> None:
        if self._dt.tzinfo is None or self._dt.utcoffset() is None:
            raise ValueError('The time zone has been set incorrectly.')


    def __str__(self) -> str:
        return self.compact


    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented

        return self.epoch == other.epoch


    def __hash__(self) -> int:
        return hash(self.epoch)


    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented

        return self.epoch < other.epoch


    def __add__(self, other: datetime.timedelta) -> Timestamp:
        '''Time shift by a specified interval, keeping the zone.'''

        if not isinstance(other, datetime.timedelta):
            return NotImplemented

        tz = self._dt.tzinfo
        dt_utc = self._dt.astimezone(datetime.timezone.utc)
        return Timestamp((dt_utc + other).astimezone(tz))


    def __sub__(self, other: datetime.timedelta) -> Timestamp:
        if not isinstance(other, datetime.timedelta):
            return NotImplemented

        return self + (-other)


    @classmethod
    def from_epoch(
        cls,
        seconds: int,
        tz: datetime.tzinfo | None = None
    ) -> Timestamp:
        '''Creates a timestamp from seconds since the Unix epoch, seen
        from 'tz' (the local time zone by default).'''

        if tz is None:
            tz = local_timezone()
        return cls(datetime.datetime.fromtimestamp(seconds, tz))


    @classmethod
    def now(cls) -> Timestamp:
        '''Creates a new timestamp with the current local time, truncated
        to whole seconds.'''

        dt = datetime.datetime.now(local_timezone())
        return cls(dt.replace(microsecond=0))


    @classmethod
    def parse(cls, text: str) -> Timestamp:
        '''Parses a date-time string.

        Accepted forms:
         - 'now', 'today', 'yesterday', 'tomorrow' (case-insensitive;
           the last three are truncated to local midnight),
         - 'YYYYMMDDThhmmss±hhmm',
         - 'YYYYMMDDThhmmss±hh',
         - 'YYYYMMDDThhmmss'   (local time),
         - 'YYYYMMDDThhmm'     (local time),
         - 'YYYYMMDD'          (local midnight).

        Raises 'ValueError' if the string matches none of them.'''

        keyword = text.strip().lower()

        if keyword == 'now':
            return cls.now()

        if keyword in cls._DAY_KEYWORDS:
            shifted = cls.now() + datetime.timedelta(days=cls._DAY_KEYWORDS[keyword])
            return shifted.justify(Precision.DAYS)

        match = cls._PATTERN.fullmatch(text.strip())
        if match is None:
            raise ValueError(f'Invalid date-time string: {text!r}')

        fields = match.groupdict()

        try:
            if fields['sign'] is not None:
                offset = datetime.timedelta(
                    hours=int(fields['off_h']),
                    minutes=int(fields['off_m'] or 0)
                )
                if fields['sign'] == '-':
                    offset = -offset
                tz: datetime.tzinfo = datetime.timezone(offset)
            else:
                tz = local_timezone()

            dt = datetime.datetime(
                int(fields['year']),
                int(fields['month']),
                int(fields['day']),
                int(fields['hour'] or 0),
                int(fields['minute'] or 0),
                int(fields['second'] or 0),
                tzinfo=tz
            )
        except ValueError as e:
            # Out-of-range fields, e.g. month 13 or an offset of 24 hours.
            raise ValueError(f'Invalid date-time string: {text!r}') from e

        return cls(dt)


    @property
    def datetime(self) -> datetime.datetime:
        return self._dt


    @property
    def epoch(self) -> int:
        '''Returns the number of seconds since the Unix epoch.'''

        return int(self._dt.timestamp())


    @property
    def compact(self) -> str:
        '''Returns the timestamp as 'YYYYMMDDThhmmss±hhmm' in the time
        zone in which it is seen.'''

        return self._dt.strftime(Timestamp.COMPACT_FORMAT)


    def to_local(self) -> Timestamp:
        '''Creates a new timestamp by converting the given one to the local
        time zone.'''

        return Timestamp(self._dt.astimezone(local_timezone()))


    def justify(self, precision: Precision, round_up: bool = False) -> Timestamp:
        '''Justifies the timestamp to whole minutes, hours or days
        of the wall clock in its time zone.

        Fields below the precision are set to zero. When rounding up,
        a nonzero field carries one unit into the next field first,
        so 10:00:03 justified up to minutes becomes 10:01:00.'''

        tz = self._dt.tzinfo
        day = self._dt.date()
        hour, minute, second = self._dt.hour, self._dt.minute, self._dt.second

        if round_up and second > 0:
            minute += 1
        second = 0

        if precision is not Precision.MINUTES:
            if round_up and minute > 0:
                hour += 1
            minute = 0

            if precision is Precision.DAYS:
                if round_up and hour > 0:
                    day += datetime.timedelta(days=1)
                hour = 0

        # Carried fields may overflow (minute 60, hour 24); the timedelta
        # normalizes them. The zone is re-attached to the wall-clock
        # value so a DST change in between is honored.
        wall = datetime.datetime.combine(day, datetime.time())
        wall += datetime.timedelta(hours=hour, minutes=minute)
        return Timestamp(wall.replace(tzinfo=tz))
