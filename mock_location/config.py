"""
Simulator configuration.

Configuration is resolved in priority order:
1. Defaults (the dataclass field defaults)
2. JSON config file
3. Environment variables ``MOCKLOC_<FIELD>`` (highest priority)

Usage:
    from mock_location.config import load_config

    config = load_config('simulator.json')
    simulator = Simulator(sink, config=config)
"""

import json
import logging
import os
from dataclasses import dataclass, fields, asdict, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = 'MOCKLOC_'


@dataclass(frozen=True)
class SimulatorConfig:
    """Tunable parameters of the tick loop and its kinematic model."""
    interval_seconds: float = 1.0
    max_speed: float = 1.0              # m/s
    acceleration_rate: float = 0.3      # m/s^2
    deceleration_rate: float = 0.5      # m/s^2 while paused
    speed_epsilon: float = 0.01         # m/s, snap-to-target window
    stationary_speed: float = 0.01      # m/s, below this the follower jitters in place
    stationary_jitter_degrees: float = 5e-6
    reporting_speed_floor: float = 0.1  # m/s, slower speeds are reported as 0
    history_size: int = 5
    speed_jitter: float = 0.05          # fraction, multiplicative
    bearing_jitter: float = 1.5         # degrees, additive
    accuracy_meters: float = 3.0
    warmup_samples: int = 3
    warmup_interval_seconds: float = 0.1

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigError if any value is out of range."""
        if self.interval_seconds <= 0:
            raise ConfigError("interval_seconds must be positive",
                              details={'interval_seconds': self.interval_seconds})
        if self.history_size < 1:
            raise ConfigError("history_size must be at least 1",
                              details={'history_size': self.history_size})
        if self.warmup_samples < 0:
            raise ConfigError("warmup_samples cannot be negative",
                              details={'warmup_samples': self.warmup_samples})
        for name in ('max_speed', 'acceleration_rate', 'deceleration_rate', 'speed_epsilon',
                     'stationary_speed', 'stationary_jitter_degrees', 'reporting_speed_floor',
                     'speed_jitter', 'bearing_jitter', 'accuracy_meters',
                     'warmup_interval_seconds'):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"{name} cannot be negative", details={name: value})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(name: str, raw: Any, target_type: type) -> Any:
    try:
        if target_type is int:
            return int(raw)
        return float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}", details={name: raw}) from e


def _field_types() -> Dict[str, type]:
    # dataclass annotations are the builtin types themselves, no __future__ import here
    return {f.name: f.type for f in fields(SimulatorConfig)}


def _load_json(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_config(path: Optional[Union[str, Path]] = None,
                env: Optional[Mapping[str, str]] = None,
                **overrides: Any) -> SimulatorConfig:
    """
    Build a SimulatorConfig from defaults, an optional JSON file and the environment.

    Args:
        path: Optional JSON file holding a subset of the config fields
        env: Environment mapping (defaults to os.environ)
        **overrides: Explicit values applied last (e.g. from CLI flags)

    Returns:
        Validated SimulatorConfig
    """
    types = _field_types()
    values: Dict[str, Any] = {}

    if path is not None:
        for key, raw in _load_json(path).items():
            if key not in types:
                logger.warning("Ignoring unknown config key %r in %s", key, path)
                continue
            values[key] = _coerce(key, raw, types[key])
        logger.debug("Loaded %d config values from %s", len(values), path)

    env = os.environ if env is None else env
    for name, target_type in types.items():
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = _coerce(name, raw, target_type)

    for name, raw in overrides.items():
        if raw is None:
            continue
        if name not in types:
            raise ConfigError(f"Unknown config key: {name}")
        values[name] = _coerce(name, raw, types[name])

    return replace(SimulatorConfig(), **values)
