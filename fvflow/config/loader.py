"""
YAML configuration loader with validation.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Union, List
from dataclasses import fields, is_dataclass

from .schema import SimulationConfig

_NUMERIC = {float: float, int: int}


def _merge_dict(base: dict, override: dict) -> dict:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge_dict(current, value)
        else:
            merged[key] = value
    return merged


def _coerce_type(value, field_type):
    """Coerce a YAML scalar (or list of scalars) to the declared field type."""
    if field_type == List[float] and isinstance(value, (list, tuple)):
        return [_coerce_type(v, float) for v in value]
    convert = _NUMERIC.get(field_type)
    if convert is None or isinstance(value, bool):
        return value
    # "1.0e-3" arrives as a string from YAML 1.1
    if isinstance(value, str) or (field_type is float and isinstance(value, int)):
        try:
            return convert(value)
        except ValueError:
            return value
    return value


def _dict_to_dataclass(cls, data: dict):
    """Build a (possibly nested) config section, dropping unknown keys."""
    if not is_dataclass(cls):
        return data

    known = {f.name: f.type for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        field_type = known.get(key)
        if field_type is None:
            continue
        if is_dataclass(field_type) and isinstance(value, dict):
            kwargs[key] = _dict_to_dataclass(field_type, value)
        else:
            kwargs[key] = _coerce_type(value, field_type)
    return cls(**kwargs)


def load_yaml(path: Union[str, Path]) -> SimulationConfig:
    """
    Load simulation configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        SimulationConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}

    return from_dict(data)


def from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """
    Create SimulationConfig from a dictionary.

    Missing sections and keys take their dataclass defaults. The physics
    tag is validated here; the turbulence tag is resolved later by the
    model selector, which maps unknown tags to the Off state.
    """
    defaults = SimulationConfig().to_dict()
    merged = _merge_dict(defaults, data)
    config = _dict_to_dataclass(SimulationConfig, merged)

    # Fail fast on a bad physics tag
    _ = config.physics_variant

    return config


def apply_overrides(config: SimulationConfig, overrides: Dict[str, Any]) -> SimulationConfig:
    """
    Apply dotted-key overrides (e.g. {"solver.courant.target": 2.0}).

    Args:
        config: Base configuration
        overrides: Mapping of dotted paths to values; None values are ignored

    Returns:
        Updated SimulationConfig
    """
    config_dict = config.to_dict()

    for dotted, value in overrides.items():
        if value is None:
            continue
        target = config_dict
        keys = dotted.split(".")
        for key in keys[:-1]:
            target = target[key]
        target[keys[-1]] = value

    return from_dict(config_dict)


def save_yaml(config: SimulationConfig, path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
