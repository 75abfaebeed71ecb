"""
Signal generator interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.models import MarketEvent, Signal


class SignalGenerator(ABC):
    """
    Takes a market observation and optionally emits a Signal.

    Implementations keep whatever per-instrument state they need; returning
    None means "no opinion this tick", never an error.
    """

    @abstractmethod
    def generate_signal(self, market: MarketEvent) -> Optional[Signal]:
        """
        Analyse one market observation.

        Args:
            market (MarketEvent): The latest observation for an instrument

        Returns:
            Signal or None: Trading decisions derived from the observation
        """
        pass
