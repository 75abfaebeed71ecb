"""
Strategy module for fractal pivot detection and signal generation.

This module implements:
- WindowBuffer: rolling window of the latest 2*period+1 bars
- Fractal detection over high/low sequences
- SignalGenerator interface and the FractalStrategy implementation
"""

from .base import SignalGenerator
from .fractal_strategy import FractalStrategy
from .fractals import (
    FractalMasks,
    InsufficientDataError,
    PivotSide,
    detect,
    detect_sides,
    pivot_strength,
)
from .window import WindowBuffer

__all__ = [
    "FractalMasks",
    "FractalStrategy",
    "InsufficientDataError",
    "PivotSide",
    "SignalGenerator",
    "WindowBuffer",
    "detect",
    "detect_sides",
    "pivot_strength",
]
