"""Scoring config loader: applies a YAML override file onto the built-in defaults."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from glowscore.core.scoring.config import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfig,
    validate_config,
)
from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.math import CalibrationCurve, ensure_finite

logger = logging.getLogger(__name__)

_SECTIONS = ("thresholds", "face", "body")


def load_scoring_config(path: str | Path | None) -> ScoringConfig:
    """Load the scoring config, optionally overridden by a YAML file.

    With no path, returns the built-in defaults. An override file must set
    ``version`` explicitly: cached results are keyed on it, so a table change
    without a new version would serve results computed under the old tables.

    Example override::

        version: "1.1.0"
        thresholds:
          allow_extremes: 0.65
        face:
          calibration: {a: 7.0, b: 0.56}
          pillar_weights: {harmony: 0.40, symmetry: 0.20, thirds: 0.15,
                           geometry: 0.15, presentation: 0.10}
    """
    if path is None or str(path) == "":
        return DEFAULT_SCORING_CONFIG

    config_file = Path(path).expanduser()
    try:
        with open(config_file) as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidInputError(f"Cannot read scoring config {config_file}: {exc}") from exc

    config = apply_overrides(DEFAULT_SCORING_CONFIG, data)
    logger.info("Loaded scoring config v%s from %s", config.version, config_file)
    return config


def apply_overrides(base: ScoringConfig, data: Mapping[str, Any]) -> ScoringConfig:
    """Return a new config with ``data`` layered over ``base``."""
    if not isinstance(data, Mapping):
        raise InvalidInputError("scoring config override must be a mapping")

    version = data.get("version")
    if not version:
        raise InvalidInputError("scoring config override must declare a 'version'")
    version = str(version)
    if version == base.version:
        logger.warning(
            "Scoring config override keeps version %s; cached results from the "
            "built-in tables will be served for it",
            version,
        )

    unknown = set(data) - {"version", *_SECTIONS}
    if unknown:
        raise InvalidInputError(f"Unknown scoring config sections: {sorted(unknown)}")

    changes: dict[str, Any] = {"version": version}
    for section in _SECTIONS:
        if section in data:
            changes[section] = _override_section(section, getattr(base, section), data[section])

    return validate_config(dataclasses.replace(base, **changes))


def _override_section(name: str, current: Any, overrides: Any) -> Any:
    if not isinstance(overrides, Mapping):
        raise InvalidInputError(f"'{name}' override must be a mapping")

    fields = {f.name for f in dataclasses.fields(current)}
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in fields:
            raise InvalidInputError(f"Unknown field '{name}.{key}'")
        existing = getattr(current, key)
        changes[key] = _coerce(f"{name}.{key}", existing, value)
    return dataclasses.replace(current, **changes)


def _number(path: str, value: Any) -> float:
    return ensure_finite(value, f"'{path}'")


def _coerce(path: str, existing: Any, value: Any) -> Any:
    """Convert a YAML value to the type of the field it replaces."""
    if isinstance(existing, CalibrationCurve):
        if not isinstance(value, Mapping) or set(value) != {"a", "b"}:
            raise InvalidInputError(f"'{path}' must be a mapping with keys a and b")
        return CalibrationCurve(a=_number(f"{path}.a", value["a"]), b=_number(f"{path}.b", value["b"]))

    if isinstance(existing, Mapping):
        if not isinstance(value, Mapping):
            raise InvalidInputError(f"'{path}' must be a mapping")
        sample = next(iter(existing.values()), None)
        if sample is not None and not isinstance(sample, (int, float)):
            raise InvalidInputError(f"'{path}' cannot be overridden from YAML")
        return MappingProxyType({str(k): _number(f"{path}.{k}", v) for k, v in value.items()})

    if isinstance(existing, tuple):
        if not isinstance(value, (list, tuple)) or len(value) != len(existing):
            raise InvalidInputError(f"'{path}' must be a list of {len(existing)} items")
        if existing and not isinstance(existing[0], (int, float, str)):
            raise InvalidInputError(f"'{path}' cannot be overridden from YAML")
        return tuple(
            str(v) if isinstance(e, str) else type(e)(_number(f"{path}[{i}]", v))
            for i, (e, v) in enumerate(zip(existing, value))
        )

    if isinstance(existing, bool) or not isinstance(existing, (int, float, str)):
        raise InvalidInputError(f"'{path}' cannot be overridden from YAML")
    if isinstance(existing, str):
        return str(value)
    return type(existing)(_number(path, value))
