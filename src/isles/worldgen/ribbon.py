"""Streaming ribbon window: which rows of each column have been explored.

The ribbon keeps one half-open interval of rows ``[lo, hi)`` per column
(a column is a tile x). Rows inside the interval have been checked
against sea level; rows outside have not. Intervals only widen, except
when the player ends up far from a column's interval (after a teleport,
say), in which case the column restarts at the player's row.
"""

from dataclasses import dataclass
from typing import Callable, Iterator

from ..types import TilePos

LandProbe = Callable[[int, int], bool]


@dataclass
class RowInterval:
    """Explored rows ``[lo, hi)`` of one column."""

    lo: int
    hi: int

    def __contains__(self, y: int) -> bool:
        return self.lo <= y < self.hi

    def __len__(self) -> int:
        return self.hi - self.lo

    def gap_to(self, y: int) -> int:
        """Rows between ``y`` and the interval (0 when covered)."""
        if y < self.lo:
            return self.lo - y
        if y >= self.hi:
            return y - self.hi + 1
        return 0


class Ribbon:
    """Sparse per-column explored intervals around the player.

    Not thread-safe: owned by the thread driving generation.
    """

    def __init__(self, is_land: LandProbe, view_distance: int, reset_factor: int = 2):
        self.is_land = is_land
        self.view_distance = view_distance
        self.reset_factor = reset_factor
        self._columns: dict[int, RowInterval] = {}
        self.resets = 0

    def __contains__(self, pos: TilePos) -> bool:
        x, y = pos
        interval = self._columns.get(x)
        return interval is not None and y in interval

    def __len__(self) -> int:
        return len(self._columns)

    def interval(self, x: int) -> RowInterval | None:
        """Explored interval of a column, if it has one."""
        return self._columns.get(x)

    def columns(self) -> Iterator[tuple[int, RowInterval]]:
        """Columns with their intervals, in ascending x order."""
        for x in sorted(self._columns):
            yield x, self._columns[x]

    def _probe(self, x: int, y: int, seeds: list[TilePos]) -> None:
        if self.is_land(x, y):
            seeds.append((x, y))

    def _start_column(self, x: int, y: int, seeds: list[TilePos]) -> RowInterval:
        interval = RowInterval(lo=y, hi=y + 1)
        self._columns[x] = interval
        self._probe(x, y, seeds)
        return interval

    def note_player_position(self, pos: TilePos) -> list[TilePos]:
        """Advance the ribbon around the player by one step.

        Every column within the view distance gets an interval, and each
        interval edge moves one row outward while the row it adds is
        within the view distance of the player's row.

        Args:
            pos: Player tile position.

        Returns:
            Newly explored land tiles, in discovery order.
        """
        px, py = pos
        view = self.view_distance
        seeds: list[TilePos] = []

        for x in range(px - view, px + view + 1):
            interval = self._columns.get(x)
            if interval is None:
                interval = self._start_column(x, py, seeds)
            elif interval.gap_to(py) > self.reset_factor * view:
                self.resets += 1
                interval = self._start_column(x, py, seeds)

            if py - interval.lo < view:
                interval.lo -= 1
                self._probe(x, interval.lo, seeds)
            if interval.hi - py <= view:
                self._probe(x, interval.hi, seeds)
                interval.hi += 1

        return seeds

    def cover(self, x: int, y: int) -> list[TilePos]:
        """Grow a column so it covers row ``y``.

        Rows skipped between the old interval and ``y`` are probed so no
        land in the gap is missed. Row ``y`` itself is left to the caller.

        Returns:
            Land tiles found in the gap, in row order.
        """
        seeds: list[TilePos] = []
        interval = self._columns.get(x)
        if interval is None:
            self._columns[x] = RowInterval(lo=y, hi=y + 1)
            return seeds

        if y < interval.lo:
            for gy in range(y + 1, interval.lo):
                self._probe(x, gy, seeds)
            interval.lo = y
        elif y >= interval.hi:
            for gy in range(interval.hi, y):
                self._probe(x, gy, seeds)
            interval.hi = y + 1
        return seeds
