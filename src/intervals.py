from __future__ import annotations
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterator
import math

from timestamps import Timestamp



INFINITE_COUNT = math.inf    # Tile count of an interval that is not fully bounded.

INVALID_TEXT = '<invalid>'
UNBOUNDED_TEXT = '-'



@dataclass(frozen=True)
@total_ordering
class TimeInterval:
    '''A set of consecutive whole seconds since the Unix epoch.

    Either bound may be missing, making the interval a ray or the whole
    timeline. Both bounds are inclusive. There are two special values:
    the invalid interval, which stands for "no result", and the unbounded
    interval, which has no bounds at all. Use the module constants
    'INVALID' and 'UNBOUNDED' for them.

    Operations never raise on data: an undefined result is 'INVALID'
    or 'None'. Constructing a malformed value directly raises
    'ValueError'.'''


    _start: int | None = None
    _end: int | None = None
    _valid: bool = True


    def _is_valid(self) -> bool:
        '''Checks whether the time interval is set correctly.'''

        if not self._valid:
            return self._start is None and self._end is None

        if self._start is not None and self._end is not None:
            return self._start <= self._end

        return True


    def __post_init__(self) -> None:
        if not self._is_valid():
            raise ValueError('The time interval has been set incorrectly.')


    def __str__(self) -> str:
        return self.text


    def __contains__(self, moment: object) -> bool:
        '''Checks whether the given second falls within the interval.'''

        if not isinstance(moment, int) or isinstance(moment, bool):
            return False

        return self.contains_instant(moment)


    def __lt__(self, other: object) -> bool:
        if not isinstance(other, TimeInterval):
            return NotImplemented

        return compare(self, other) < 0


    def __and__(self, other: TimeInterval) -> TimeInterval:
        '''The intersection of two time intervals.'''

        return self.intersection(other)


    @classmethod
    def invalid(cls) -> TimeInterval:
        '''Returns the invalid interval.'''

        return INVALID


    @classmethod
    def unbounded(cls) -> TimeInterval:
        '''Returns the interval without any bounds.'''

        return UNBOUNDED


    @classmethod
    def between(cls, start: int, end: int) -> TimeInterval:
        '''Creates a bounded interval. Returns 'INVALID' if the start
        comes after the end.'''

        if start > end:
            return INVALID

        return cls(_start=start, _end=end)


    @classmethod
    def starting(cls, start: int) -> TimeInterval:
        '''Creates an interval with a start and no end.'''

        return cls(_start=start)


    @classmethod
    def ending(cls, end: int) -> TimeInterval:
        '''Creates an interval with an end and no start.'''

        return cls(_end=end)


    @classmethod
    def with_duration(cls, start: int, duration: int) -> TimeInterval:
        '''Creates a bounded interval of 'duration' seconds beginning
        at 'start'.'''

        return cls.between(start, start + duration - 1)


    @classmethod
    def from_bounds(cls, start: int | None, end: int | None) -> TimeInterval:
        '''Creates a valid time interval from optional bounds.

        If neither bound is given, the result is 'UNBOUNDED'.'''

        if start is None and end is None:
            return UNBOUNDED
        if start is not None and end is not None:
            return cls.between(start, end)

        return cls(_start=start, _end=end)


    @classmethod
    def parse(cls, text: str) -> TimeInterval:
        '''Parses '[<date-time>]:[<date-time>]', a single '<date-time>'
        (a start with no end) or '-' (no bounds).

        Returns 'UNBOUNDED' for an empty string and 'INVALID' if any part
        of the text cannot be parsed. See 'Timestamp.parse' for the
        accepted date-time forms.'''

        text = text.strip()

        if text in ('', UNBOUNDED_TEXT):
            return UNBOUNDED

        # Without a colon the whole text is the start.
        start_text, _, end_text = text.partition(':')

        try:
            start = Timestamp.parse(start_text).epoch if start_text else None
            end = Timestamp.parse(end_text).epoch if end_text else None

            # Each bound must be writable back in the local time zone.
            for bound in (start, end):
                if bound is not None:
                    Timestamp.from_epoch(bound)
        except (ValueError, OverflowError, OSError):
            return INVALID

        return cls.from_bounds(start, end)


    @property
    def text(self) -> str:
        '''Returns the textual form that 'parse' reads back.

        Bounds are written in the local time zone together with their
        UTC offset.'''

        if not self._valid:
            return INVALID_TEXT

        if self._start is None and self._end is None:
            return UNBOUNDED_TEXT

        start = '' if self._start is None else Timestamp.from_epoch(self._start).compact
        end = '' if self._end is None else Timestamp.from_epoch(self._end).compact
        return f'{start}:{end}'


    @property
    def is_valid(self) -> bool:
        return self._valid


    @property
    def start(self) -> int | None:
        '''Returns the first second of the interval, or 'None' if it has
        no lower bound (or is invalid).'''

        return self._start


    @property
    def end(self) -> int | None:
        '''Returns the last second of the interval, or 'None' if it has
        no upper bound (or is invalid).'''

        return self._end


    @property
    def is_start_set(self) -> bool:
        return self._start is not None


    @property
    def is_end_set(self) -> bool:
        return self._end is not None


    @property
    def is_bounded(self) -> bool:
        '''Checks whether the interval is valid and has both bounds.'''

        return self._valid and self._start is not None and self._end is not None


    @property
    def is_unbounded(self) -> bool:
        '''Checks whether the interval is valid and has no bounds.'''

        return self._valid and self._start is None and self._end is None


    @property
    def duration(self) -> int | None:
        '''Returns the number of seconds in a bounded interval, 'None'
        otherwise.'''

        if not self.is_bounded:
            return None

        assert self._start is not None and self._end is not None
        return self._end - self._start + 1


    def contains_instant(self, moment: int) -> bool:
        '''Checks whether the given second falls within the interval.'''

        if not self._valid:
            return False
        if self._start is not None and moment < self._start:
            return False
        if self._end is not None and moment > self._end:
            return False

        return True


    def precedes(self, moment: int) -> bool:
        '''Checks whether the interval starts strictly after the given
        second.'''

        return self._valid and self._start is not None and moment < self._start


    def follows(self, moment: int) -> bool:
        '''Checks whether the interval ends strictly before the given
        second.'''

        return self._valid and self._end is not None and moment > self._end


    def contains(self, other: TimeInterval) -> bool:
        '''Checks whether this interval contains another one.

        A bound that this interval has and 'other' lacks can never be
        satisfied, so a ray is never contained in a bounded interval.'''

        if not self._valid or not other._valid:
            return False

        if self._start is not None:
            if other._start is None or other._start < self._start:
                return False

        if self._end is not None:
            if other._end is None or other._end > self._end:
                return False

        return True


    def is_contained_in(self, other: TimeInterval) -> bool:
        '''Checks whether a given interval is contained in another.'''

        return other.contains(self)


    def intersects(self, other: TimeInterval) -> bool:
        '''Checks whether the two intervals share at least one second.'''

        if not self._valid or not other._valid:
            return False

        # Each interval must start no later than the other one ends.
        # A missing bound lies at infinity and never prevents this.
        if self._start is not None and other._end is not None:
            if self._start > other._end:
                return False

        if other._start is not None and self._end is not None:
            if other._start > self._end:
                return False

        return True


    def is_contiguous(self, other: TimeInterval) -> bool:
        '''Checks whether one interval ends exactly one second before
        the other one starts.'''

        if not self._valid or not other._valid:
            return False

        if self._end is not None and other._start is not None:
            if self._end + 1 == other._start:
                return True

        if other._end is not None and self._start is not None:
            if other._end + 1 == self._start:
                return True

        return False


    def intersection(self, other: TimeInterval) -> TimeInterval:
        '''Returns the seconds common to both intervals, or 'INVALID'.'''

        if not self.intersects(other):
            return INVALID

        # The latest of the present starts and the earliest of the
        # present ends.
        starts = [s for s in (self._start, other._start) if s is not None]
        ends = [e for e in (self._end, other._end) if e is not None]

        return TimeInterval.from_bounds(
            max(starts) if starts else None,
            min(ends) if ends else None
        )


    def _span(self, other: TimeInterval) -> TimeInterval:
        '''The span of two intervals, bounded on a side only when both
        intervals are bounded on that side.'''

        start = None
        if self._start is not None and other._start is not None:
            start = min(self._start, other._start)

        end = None
        if self._end is not None and other._end is not None:
            end = max(self._end, other._end)

        return TimeInterval.from_bounds(start, end)


    def union(self, other: TimeInterval) -> TimeInterval:
        '''Returns the span of two intersecting intervals, or 'INVALID'
        if they do not intersect.

        The result keeps a bound only where both intervals have one.'''

        if not self.intersects(other):
            return INVALID

        return self._span(other)


    def join(self, other: TimeInterval) -> TimeInterval:
        '''Returns the span of two contiguous intervals, or 'INVALID'
        if they are not contiguous.

        The result keeps a bound only where both intervals have one.'''

        if not self.is_contiguous(other):
            return INVALID

        return self._span(other)


    def clip(self, bounds: TimeInterval) -> TimeInterval:
        '''Narrows this interval to 'bounds'.

        Each bound is replaced by the bound of 'bounds' where that one
        is tighter; a bound missing from 'bounds' never widens the
        result. Returns 'INVALID' if the intervals do not intersect.'''

        # Tightening every bound is exactly the intersection.
        return self.intersection(bounds)


    def leading(self, inner: TimeInterval) -> TimeInterval | None:
        '''Returns the part of this interval that lies before 'inner'.

        Returns 'None' if the intervals do not intersect or if nothing
        of this interval precedes 'inner'.'''

        if not self.intersects(inner):
            return None

        if inner._start is None:
            return None

        if self._start is None:
            return TimeInterval.ending(inner._start - 1)

        if self._start < inner._start:
            return TimeInterval.between(self._start, inner._start - 1)

        return None


    def trailing(self, inner: TimeInterval) -> TimeInterval | None:
        '''Returns the part of this interval that lies after 'inner'.

        Returns 'None' if the intervals do not intersect or if nothing
        of this interval follows 'inner'.'''

        if not self.intersects(inner):
            return None

        if inner._end is None:
            return None

        if self._end is None:
            return TimeInterval.starting(inner._end + 1)

        if self._end > inner._end:
            return TimeInterval.between(inner._end + 1, self._end)

        return None


    def leading_before(self, moment: int) -> TimeInterval | None:
        '''Returns the part of this interval strictly before 'moment'.

        Returns 'None' unless 'moment' lies within the interval, and
        when 'moment' is the very first second of it.'''

        if not self.contains_instant(moment):
            return None

        if self._start is None:
            return TimeInterval.ending(moment - 1)

        if self._start < moment:
            return TimeInterval.between(self._start, moment - 1)

        return None


    def trailing_after(self, moment: int) -> TimeInterval | None:
        '''Returns the part of this interval strictly after 'moment'.

        Returns 'None' unless 'moment' lies within the interval, and
        when 'moment' is the very last second of it.'''

        if not self.contains_instant(moment):
            return None

        if self._end is None:
            return TimeInterval.starting(moment + 1)

        if moment < self._end:
            return TimeInterval.between(moment + 1, self._end)

        return None


    def count_of_sub_periods(self, length: int) -> int | float:
        '''Returns how many tiles of 'length' seconds cover the interval.

        The last tile may be shorter. An invalid interval has no tiles;
        an interval that is not fully bounded has 'INFINITE_COUNT'.'''

        if length <= 0:
            raise ValueError(f'The tile length must be positive: {length}.')

        if not self._valid:
            return 0

        duration = self.duration
        if duration is None:
            return INFINITE_COUNT

        return -(-duration // length)


    def sub_period_at(self, length: int, index: int) -> TimeInterval | None:
        '''Returns the tile of 'length' seconds with the given index.

        With a lower bound, tiles start at it and walk forward; a tile
        running past the upper bound is cut short at it, and 'None'
        is returned once the tiles are past the interval. Without
        a lower bound but with an upper bound, tile 0 ends at the upper
        bound and tiles walk backward. An interval without bounds has
        no tiles.'''

        if length <= 0:
            raise ValueError(f'The tile length must be positive: {length}.')
        if index < 0:
            raise ValueError(f'The tile index must not be negative: {index}.')

        if not self._valid:
            return None

        offset = length * index

        if self._start is not None:
            start = self._start + offset
            end = start + length - 1

            if self._end is not None:
                if start > self._end:
                    return None
                end = min(end, self._end)

            return TimeInterval.between(start, end)

        if self._end is not None:
            end = self._end - offset
            return TimeInterval.between(end - length + 1, end)

        return None


    def sub_periods(self, length: int) -> Iterator[TimeInterval]:
        '''Yields the tiles of 'length' seconds in index order.

        The iteration is endless for an interval that is not fully
        bounded, and empty for one without bounds.'''

        index = 0
        while True:
            tile = self.sub_period_at(length, index)
            if tile is None:
                return
            yield tile
            index += 1



INVALID = TimeInterval(_valid=False)
UNBOUNDED = TimeInterval()



def compare(a: TimeInterval, b: TimeInterval) -> int:
    '''Orders two intervals, returning -1, 0 or +1.

    Invalid intervals come first. Valid ones are ordered by start,
    a missing start being the earliest, then by end, a missing end
    being the latest.'''

    if not a.is_valid or not b.is_valid:
        # 'True' sorts after 'False'.
        return (a.is_valid > b.is_valid) - (a.is_valid < b.is_valid)
    # From this point onwards, both intervals are considered to be
    # valid.

    def start_key(i: TimeInterval):
        return (i.start is not None, i.start or 0)

    def end_key(i: TimeInterval):
        return (i.end is None, i.end or 0)

    key_a = (start_key(a), end_key(a))
    key_b = (start_key(b), end_key(b))
    return (key_a > key_b) - (key_a < key_b)
