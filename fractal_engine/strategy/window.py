"""
Rolling bar window for fractal evaluation.
"""

from collections import deque
from typing import List

from ..core.models import Bar


class WindowBuffer:
    """
    Holds the most recent ``2 * period + 1`` bars of one instrument.

    The oldest bar is evicted first once the window is full. The pivot
    candidate is the bar at ``center_index``.

    Examples:
        >>> window = WindowBuffer(period=2)
        >>> window.capacity
        5
        >>> window.is_ready()
        False
    """

    def __init__(self, period: int):
        """
        Args:
            period: Bars on each side of the center bar. Must be >= 1.

        Raises:
            ValueError: If period is less than 1.
        """
        if period < 1:
            raise ValueError(f"period must be >= 1, got {period}")

        self.period = period
        self._bars: deque = deque(maxlen=2 * period + 1)

    def push(self, bar: Bar) -> None:
        self._bars.append(bar)

    def is_ready(self) -> bool:
        """True once the window holds capacity bars."""
        return len(self._bars) == self._bars.maxlen

    def clear(self) -> None:
        self._bars.clear()

    def bars(self) -> List[Bar]:
        return list(self._bars)

    def highs(self) -> List[float]:
        return [bar.high for bar in self._bars]

    def lows(self) -> List[float]:
        return [bar.low for bar in self._bars]

    @property
    def capacity(self) -> int:
        return self._bars.maxlen

    @property
    def center_index(self) -> int:
        return self.period

    def center(self) -> Bar:
        """
        Return the pivot candidate bar.

        Raises:
            IndexError: If the window is not full yet.
        """
        if not self.is_ready():
            raise IndexError(
                f"Window not ready: {len(self._bars)}/{self.capacity} bars"
            )
        return self._bars[self.period]

    def __len__(self) -> int:
        return len(self._bars)
