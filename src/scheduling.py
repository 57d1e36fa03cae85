from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Iterator
import logging

from intervals import TimeInterval



logger = logging.getLogger(__name__)



@dataclass
class Schedule:
    '''A scheduling period and the busy time within it.

    The busy blocks are kept coalesced at all times:
    - every block is a valid interval contained in the period,
    - no two blocks intersect or are contiguous,
    - blocks are in ascending order (by start, and therefore by end).

    Busy time only ever grows: each insertion leaves the blocks
    unchanged, extends a block or adds a new disjoint one.'''

    period: TimeInterval
    _blocks: list[TimeInterval] = field(default_factory=list)
    last_error: str | None = None


    def __post_init__(self) -> None:
        if not self.period.is_valid:
            raise ValueError('The scheduling period must be a valid interval.')


    def __len__(self) -> int:
        '''Returns the number of busy blocks.'''

        return len(self._blocks)


    def __bool__(self) -> bool:
        '''A schedule is truthy even without busy blocks.'''

        return True


    def __iter__(self) -> Iterator[TimeInterval]:
        return iter(self._blocks)


    def __str__(self) -> str:
        return self.summary()


    @classmethod
    def from_blocks(
        cls,
        period: TimeInterval,
        blocks: Iterable[TimeInterval]
    ) -> Schedule:
        '''Creates a schedule whose busy blocks are taken as they are.

        The caller guarantees that 'blocks' is already coalesced,
        ordered and inside 'period'. Use 'insert' for anything that
        may not be.'''

        return cls(period=period, _blocks=list(blocks))


    @property
    def blocks(self) -> tuple[TimeInterval, ...]:
        return tuple(self._blocks)


    def block_count(self) -> int:
        return len(self._blocks)


    def block_at(self, index: int) -> TimeInterval | None:
        '''Returns the busy block at the given position, or 'None'
        if there is none.'''

        if 0 <= index < len(self._blocks):
            return self._blocks[index]
        return None


    def is_full(self) -> bool:
        '''Checks whether the whole period is busy.'''

        return len(self._blocks) == 1 and self._blocks[0] == self.period


    @staticmethod
    def _mergeable(a: TimeInterval, b: TimeInterval) -> bool:
        return a.is_contiguous(b) or a.intersects(b)


    @staticmethod
    def _merge(a: TimeInterval, b: TimeInterval) -> TimeInterval:
        if a.is_contiguous(b):
            return a.join(b)
        return a.union(b)


    def insert(self, block: TimeInterval) -> bool:
        '''Marks the part of 'block' that lies in the period as busy.

        Returns 'False' (and changes nothing) if 'block' does not
        overlap the period.'''

        added = block.clip(self.period)
        if not added.is_valid:
            logger.debug('Block %s lies outside of period %s.', block, self.period)
            return False

        # Position of the first block that sorts after the new one.
        position = 0
        while position < len(self._blocks) and not added < self._blocks[position]:
            position += 1

        merged_at = None

        if position > 0:
            previous = self._blocks[position - 1]
            if added.is_contained_in(previous):
                return True
            if self._mergeable(added, previous):
                self._blocks[position - 1] = self._merge(added, previous)
                merged_at = position - 1

        if merged_at is None and position < len(self._blocks):
            following = self._blocks[position]
            if added.is_contained_in(following):
                return True
            if self._mergeable(added, following):
                self._blocks[position] = self._merge(added, following)
                merged_at = position

        if merged_at is None:
            self._blocks.insert(position, added)
            logger.debug('Added busy block %s at %d.', added, position)
            return True

        logger.debug('Merged %s into busy block %d.', added, merged_at)

        # The merged block may now reach its other neighbours.
        self._coalesce()
        return True


    def _coalesce(self) -> None:
        '''Merges neighbouring blocks until no two of them intersect
        or are contiguous.'''

        index = 0
        while index + 1 < len(self._blocks):
            current, following = self._blocks[index], self._blocks[index + 1]

            if self._mergeable(current, following):
                self._blocks[index] = self._merge(current, following)
                del self._blocks[index + 1]
            else:
                index += 1


    def open_gaps(self) -> Iterator[TimeInterval]:
        '''Yields the parts of the period that are not busy,
        in ascending order.'''

        if not self._blocks:
            yield self.period
            return

        leading = self.period.leading(self._blocks[0])
        if leading is not None:
            yield leading

        for current, following in zip(self._blocks, self._blocks[1:]):
            if current.is_contiguous(following):
                # Cannot happen for coalesced blocks; tolerated.
                continue
            if current.end is None or following.start is None:
                continue
            gap = TimeInterval.between(current.end + 1, following.start - 1)
            if gap.is_valid:
                yield gap

        trailing = self.period.trailing(self._blocks[-1])
        if trailing is not None:
            yield trailing


    def next_open_gap(self) -> TimeInterval | None:
        '''Returns the earliest part of the period that is not busy.

        With no busy blocks this is the whole period. Returns 'None'
        only when the schedule is full.'''

        return next(self.open_gaps(), None)


    def next_open_gap_before(self, cutoff: int) -> TimeInterval | None:
        '''Returns the earliest part of the period that is not busy,
        cut so that it ends before 'cutoff'.

        A cutoff after a period with an end is treated as the second
        right after the period. Returns 'None' if the cutoff precedes
        the period or nothing before the cutoff is free.'''

        if self.is_full():
            return None

        if not self.period.contains_instant(cutoff):
            if not self.period.follows(cutoff):
                # The cutoff precedes the period.
                return None
            assert self.period.end is not None
            cutoff = self.period.end + 1

        window = TimeInterval.ending(cutoff - 1)

        for gap in self.open_gaps():
            if gap.start is not None and gap.start >= cutoff:
                break
            clipped = gap.clip(window)
            if clipped.is_valid:
                return clipped

        logger.debug('No open gap before %d in %s.', cutoff, self.period)
        return None


    def allocate(self, count: int, duration: int, before: int) -> list[TimeInterval]:
        '''Marks up to 'count' free slots of 'duration' seconds before
        'before' as busy, and returns them in allocation order.

        Slots are tiles of the successive open gaps. A gap ending
        before a slot completes yields a shorter slot. A gap without
        a start is tiled backward from its end.'''

        if count <= 0:
            raise ValueError(f'The slot count must be positive: {count}.')

        allocated: list[TimeInterval] = []

        while len(allocated) < count:
            gap = self.next_open_gap_before(before)
            if gap is None:
                break

            for tile in gap.sub_periods(duration):
                self.insert(tile)
                allocated.append(tile)
                if len(allocated) == count:
                    break

        logger.info('Allocated %d of %d requested slots.', len(allocated), count)
        return allocated


    def summary(self) -> str:
        '''Returns a human-readable description of the schedule.'''

        lines = [
            f'period: {self.period}',
            f'blocks: {len(self._blocks)}',
        ]
        lines.extend(
            f'  {index:5d} : {block}'
            for index, block in enumerate(self._blocks)
        )
        lines.append(f'last error: {self.last_error or "<none>"}')
        return '\n'.join(lines)
