"""
Fractal pivot detection over high/low price sequences.

A bearish fractal is a bar whose high is strictly above the highs of its
``radius`` neighbours on each side; a bullish fractal is a bar whose low is
strictly below the lows of the same neighbours. Only centers inside
``[period, len - period)`` are evaluated: edge bars lack the neighbours that
would confirm them and are always reported as no pivot.

All functions here are pure: the same inputs always produce the same output.
"""

from enum import Enum
from typing import List, NamedTuple, Sequence, Set


DEFAULT_RADIUS = 2


class InsufficientDataError(ValueError):
    """Raised when a sequence is too short to confirm any pivot."""


class PivotSide(Enum):
    """Which price series a pivot was found in."""

    BEARISH = "bearish"  # local top in highs
    BULLISH = "bullish"  # local bottom in lows


class FractalMasks(NamedTuple):
    """
    Per-index pivot flags, kept separately for each side.

    Attributes:
        bearish: True where highs form a local top
        bullish: True where lows form a local bottom
    """

    bearish: List[bool]
    bullish: List[bool]

    def merged(self) -> List[bool]:
        """Return one mask that is True where either side fired."""
        return [high or low for high, low in zip(self.bearish, self.bullish)]

    def sides_at(self, index: int) -> Set[PivotSide]:
        sides = set()
        if self.bearish[index]:
            sides.add(PivotSide.BEARISH)
        if self.bullish[index]:
            sides.add(PivotSide.BULLISH)
        return sides


def _validate_inputs(
    highs: Sequence[float],
    lows: Sequence[float],
    period: int,
    radius: int
) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
    if radius < 1:
        raise ValueError(f"radius must be >= 1, got {radius}")
    if len(highs) != len(lows):
        raise ValueError(
            f"highs and lows must be aligned, got {len(highs)} highs "
            f"and {len(lows)} lows"
        )

    required = period + radius
    if len(highs) < required or len(lows) < required:
        raise InsufficientDataError(
            f"Insufficient price data: need at least {required} bars "
            f"(period {period} + radius {radius}), got {len(highs)}"
        )


def _neighbours(values: Sequence[float], index: int, radius: int) -> List[float]:
    return [
        values[index + offset]
        for offset in range(-radius, radius + 1)
        if offset != 0
    ]


def _is_local_max(values: Sequence[float], index: int, radius: int) -> bool:
    center = values[index]
    return all(center > value for value in _neighbours(values, index, radius))


def _is_local_min(values: Sequence[float], index: int, radius: int) -> bool:
    center = values[index]
    return all(center < value for value in _neighbours(values, index, radius))


def detect_sides(
    highs: Sequence[float],
    lows: Sequence[float],
    period: int,
    radius: int = DEFAULT_RADIUS
) -> FractalMasks:
    """
    Detect bearish and bullish fractals as two independent masks.

    Args:
        highs: High prices, oldest first
        lows: Low prices aligned with highs
        period: Edge margin; indices outside [period, len - period) are False
        radius: Neighbours compared on each side of a candidate (default 2)

    Returns:
        FractalMasks with one entry per input bar in each mask

    Raises:
        InsufficientDataError: If fewer than period + radius bars are given
        ValueError: If period or radius is below 1 or the lengths differ

    Examples:
        >>> masks = detect_sides([1, 2, 5, 2, 1], [0.5, 1, 4, 1, 0.5], period=2)
        >>> masks.bearish
        [False, False, True, False, False]
        >>> masks.bullish
        [False, False, False, False, False]
    """
    _validate_inputs(highs, lows, period, radius)

    length = len(highs)
    bearish = [False] * length
    bullish = [False] * length

    # Every evaluated center needs radius neighbours on both sides.
    margin = max(period, radius)
    for i in range(margin, length - margin):
        bearish[i] = _is_local_max(highs, i, radius)
        bullish[i] = _is_local_min(lows, i, radius)

    return FractalMasks(bearish=bearish, bullish=bullish)


def detect(
    highs: Sequence[float],
    lows: Sequence[float],
    period: int,
    radius: int = DEFAULT_RADIUS
) -> List[bool]:
    """
    Detect fractal pivots, merging both sides into one mask.

    The merged mask does not say which side fired; use detect_sides() when
    the direction matters.

    Examples:
        >>> detect([30, 20, 40, 50, 25, 60], [10, 5, 15, 20, 10, 25], period=2)
        [False, False, False, False, False, False]
    """
    return detect_sides(highs, lows, period, radius).merged()


def pivot_strength(
    highs: Sequence[float],
    lows: Sequence[float],
    index: int,
    side: PivotSide,
    radius: int = DEFAULT_RADIUS
) -> float:
    """
    Measure how far a pivot dominates its neighbours.

    The dominance is the distance between the pivot and the closest competing
    neighbour extreme (``high - max(neighbour highs)`` for a bearish pivot,
    ``min(neighbour lows) - low`` for a bullish one), divided by the full
    price range ``max(highs) - min(lows)`` of the sequence.

    Args:
        highs: High prices of the evaluated window
        lows: Low prices of the evaluated window
        index: Pivot index
        side: Which side the pivot was found on
        radius: Neighbours compared on each side

    Returns:
        Strength in (0, 1] for a confirmed pivot, 0.0 for a flat window.
        Not clamped: a non-pivot index may yield a negative value.

    Examples:
        >>> pivot_strength([1, 2, 5, 2, 1], [0, 1, 4, 1, 0], 2, PivotSide.BEARISH)
        0.6
    """
    price_range = max(highs) - min(lows)
    if price_range <= 0:
        return 0.0

    if side is PivotSide.BEARISH:
        dominance = highs[index] - max(_neighbours(highs, index, radius))
    else:
        dominance = min(_neighbours(lows, index, radius)) - lows[index]

    return dominance / price_range
