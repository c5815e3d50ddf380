# -*- coding: utf-8 -*-
"""
Run configuration.

Defaults mirror the values the merge has always been tuned with; a JSON file
(--config) can override any key, and CLI flags override the file.
"""
from __future__ import annotations

import os
import json
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

SEARCH_STRATEGIES = ("fine", "coarse")
FIT_CHECKS = ("lines", "contents")
_OPTIONAL_KEYS = ("output_path", "row_limit", "event_log_path")


class ConfigError(ValueError):
    """Invalid or unreadable configuration."""


@dataclass(frozen=True)
class LayoutConfig:
    template_path: str = "template.indt"
    data_path: str = "data.tsv"
    output_path: Optional[str] = None

    # limit the number of rows read (for testing); None or 0 reads all rows
    row_limit: Optional[int] = 500

    # the smaller the fine increment, the more precise the fit and the slower the run
    fine_increment: float = 0.25
    coarse_increment: float = 2.0
    max_point_size: float = 48.0
    # lower bound for the coupled demographic/disease correction only
    min_point_size: float = 16.0

    # space between record groups, in points
    spacing: float = 15.0
    # save every N placed groups; 0 disables checkpoints
    checkpoint_interval: int = 50

    search_strategy: str = "fine"
    fit_check: str = "lines"
    nonbreaking_names: bool = True
    event_log_path: Optional[str] = None

    def validate(self) -> "LayoutConfig":
        if self.fine_increment <= 0:
            raise ConfigError(f"fine_increment must be > 0 (got {self.fine_increment})")
        if self.coarse_increment <= 0:
            raise ConfigError(f"coarse_increment must be > 0 (got {self.coarse_increment})")
        ratio = self.coarse_increment / self.fine_increment
        if abs(ratio - round(ratio)) > 1e-9 or round(ratio) < 1:
            raise ConfigError(
                f"coarse_increment ({self.coarse_increment}) must be a whole multiple "
                f"of fine_increment ({self.fine_increment})"
            )
        if self.min_point_size <= 0:
            raise ConfigError(f"min_point_size must be > 0 (got {self.min_point_size})")
        if self.min_point_size > self.max_point_size:
            raise ConfigError(
                f"min_point_size ({self.min_point_size}) exceeds max_point_size ({self.max_point_size})"
            )
        if self.spacing < 0:
            raise ConfigError(f"spacing must be >= 0 (got {self.spacing})")
        if self.checkpoint_interval < 0:
            raise ConfigError(f"checkpoint_interval must be >= 0 (got {self.checkpoint_interval})")
        if self.row_limit is not None and self.row_limit < 0:
            raise ConfigError(f"row_limit must be >= 0 (got {self.row_limit})")
        if self.search_strategy not in SEARCH_STRATEGIES:
            raise ConfigError(
                f"search_strategy must be one of {SEARCH_STRATEGIES} (got {self.search_strategy!r})"
            )
        if self.fit_check not in FIT_CHECKS:
            raise ConfigError(f"fit_check must be one of {FIT_CHECKS} (got {self.fit_check!r})")
        return self

    def search_ceiling(self, start: float) -> float:
        """Largest size on the fine grid from `start` that does not exceed max_point_size."""
        if start >= self.max_point_size:
            return start
        steps = math.floor((self.max_point_size - start) / self.fine_increment + 1e-9)
        return round(start + steps * self.fine_increment, 6)

    def with_overrides(self, **overrides: Any) -> "LayoutConfig":
        clean = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(clean) - _field_names()
        if unknown:
            raise ConfigError(f"unknown config keys: {sorted(unknown)}")
        return replace(self, **clean).validate()


def _field_names():
    return {f.name for f in fields(LayoutConfig)}


def _coerce(raw: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for f in fields(LayoutConfig):
        if f.name not in raw:
            continue
        value = raw[f.name]
        if value is None:
            if f.name not in _OPTIONAL_KEYS:
                raise ConfigError(f"{f.name} may not be null")
            out[f.name] = None
            continue
        default = f.default
        try:
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise TypeError("expected true/false")
            elif isinstance(default, int) or f.name == "row_limit":
                value = int(value)
            elif isinstance(default, float):
                value = float(value)
            elif not isinstance(value, str):
                raise TypeError("expected a string")
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"bad value for {f.name}: {value!r} ({exc})") from exc
        out[f.name] = value
    return out


def load_config(path: Optional[str] = None) -> LayoutConfig:
    """Defaults, optionally overlaid with a JSON object read from `path`."""
    if not path:
        return LayoutConfig().validate()
    cfg_abs = os.path.abspath(path)
    try:
        with open(cfg_abs, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except FileNotFoundError:
        raise ConfigError(f"config not found: {cfg_abs}")
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"failed to read config {cfg_abs}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"config must be a JSON object: {cfg_abs}")
    unknown = set(raw) - _field_names()
    if unknown:
        raise ConfigError(f"unknown config keys in {cfg_abs}: {sorted(unknown)}")
    return replace(LayoutConfig(), **_coerce(raw)).validate()
