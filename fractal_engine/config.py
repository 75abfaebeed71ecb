"""
Configuration models and loader for Fractal Engine.

Settings live in ``config.yaml`` (parsed with PyYAML) and are validated into
pydantic models. A ``.env`` file is loaded with python-dotenv so that the
following environment variables can override the file:

- FRACTAL_ENGINE_CONFIG: path of the YAML file (default: config.yaml)
- FRACTAL_ENGINE_LOG_LEVEL: log level override
"""

import os
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from .core.event_bus import DEFAULT_QUEUE_CAPACITY, OverflowPolicy
from .core.models import Instrument, Market


DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_PATH_ENV = "FRACTAL_ENGINE_CONFIG"
LOG_LEVEL_ENV = "FRACTAL_ENGINE_LOG_LEVEL"


class FeesConfig(BaseModel):
    """
    Simulated fees, in percent of order value.

    Validated and carried in the configuration for external execution
    collaborators; nothing in this package reads them.
    """

    exchange: float = Field(default=0.1, ge=0)
    slippage: float = Field(default=0.05, ge=0)
    network: float = Field(default=0.0, ge=0)


class StrategyConfig(BaseModel):
    """
    Fractal strategy parameters.

    Attributes:
        period: Window margin; the window holds 2*period+1 bars
        radius: Neighbours compared on each side of a pivot candidate
        fixed_strength: Constant strength for every decision. When unset the
            strength is derived from the pivot's dominance over its neighbours
        fees: Simulated fees, carried for external execution collaborators

    Examples:
        >>> StrategyConfig(period=2).window_size
        5
    """

    period: int = Field(default=2, ge=1)
    radius: int = Field(default=2, ge=1)
    fixed_strength: Optional[float] = Field(default=None)
    fees: FeesConfig = Field(default_factory=FeesConfig)

    @model_validator(mode="after")
    def validate_radius(self) -> "StrategyConfig":
        """The center of the window must have radius neighbours on each side."""
        if self.radius > self.period:
            raise ValueError(
                f"radius ({self.radius}) must not exceed period ({self.period}): "
                f"the window of {2 * self.period + 1} bars cannot confirm the center."
            )
        return self

    @property
    def window_size(self) -> int:
        return 2 * self.period + 1


class QueueConfig(BaseModel):
    """Event queue sizing. A capacity of 0 means unbounded."""

    capacity: int = Field(default=DEFAULT_QUEUE_CAPACITY, ge=0)
    overflow: OverflowPolicy = OverflowPolicy.BLOCK


class MarketConfig(BaseModel):
    exchange: str = "binance"
    base: str = "btc"
    quote: str = "usdt"
    kind: Literal["spot", "future", "perpetual"] = "spot"

    def to_market(self) -> Market:
        return Market(
            exchange=self.exchange,
            instrument=Instrument(base=self.base, quote=self.quote, kind=self.kind),
        )


class EngineConfig(BaseModel):
    """Top-level engine configuration."""

    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    data_path: Optional[Path] = None
    market: MarketConfig = Field(default_factory=MarketConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load engine configuration from YAML with environment overrides.

    Args:
        path: YAML file to read. Defaults to $FRACTAL_ENGINE_CONFIG, then
            config.yaml in the working directory

    Returns:
        EngineConfig: Validated configuration

    Raises:
        FileNotFoundError: If the YAML file does not exist
        ValueError: If the YAML is not a mapping
        pydantic.ValidationError: If a value is invalid
    """
    load_dotenv(override=False)

    if path is None:
        path = os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
    config_path = Path(path)

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(
            f"{config_path} must contain a mapping, got {type(raw).__name__}"
        )

    log_level = os.getenv(LOG_LEVEL_ENV)
    if log_level:
        raw["log_level"] = log_level.upper()

    # Relative data paths are resolved against the config file location.
    data_path = raw.get("data_path")
    if data_path and not Path(data_path).is_absolute():
        raw["data_path"] = config_path.parent / data_path

    return EngineConfig(**raw)
