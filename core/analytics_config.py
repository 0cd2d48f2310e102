# =============================================================================
# POLYEDGE ANALYTICS - CONFIGURATION
# =============================================================================
#
# All tunable constants of the scoring pipeline live here.
# Defaults are the production values. config/analytics.yaml may override
# any of them; REQUIRED_CONFIG_KEYS must be present in that file.
#
# NOTE ON EDGE THRESHOLDS:
# EDGE_THRESHOLD (quality gates) and PICK_MIN_EDGE (should_make_pick) are
# two separate thresholds and both must be met. They have drifted apart
# (0.005 vs 0.03); keep both until someone decides which one is intended.
#
# =============================================================================

import logging
import os
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(__file__)),
    "config",
    "analytics.yaml",
)

REQUIRED_CONFIG_KEYS = [
    "EDGE_THRESHOLD",
    "FRESHNESS_THRESHOLD_MINUTES",
    "CONFIDENCE_BINS",
    "DRIFT_WINDOWS",
]


def _default_confidence_bins() -> Dict[str, float]:
    return {"HIGH": 0.65, "MED": 0.5, "LOW": 0.5}


def _default_bin_breakpoints() -> Dict[str, float]:
    return {"HIGH_UPPER": 0.7, "HIGH_LOWER": 0.3, "MED_UPPER": 0.55, "MED_LOWER": 0.45}


def _default_drift_windows() -> Dict[str, int]:
    return {"SHORT": 5, "MEDIUM": 15, "LONG": 60}


@dataclass(frozen=True)
class AnalyticsConfig:
    """
    Immutable pipeline configuration.

    Field names mirror the YAML keys in lower case. Nested mappings are
    stored as read-only copies.
    """
    # Quality gates
    edge_threshold: float = 0.005
    freshness_threshold_minutes: float = 60.0
    confidence_bins: Mapping[str, float] = field(default_factory=_default_confidence_bins)
    dispersion_check_enabled: bool = False
    max_dispersion: float = 0.25
    time_to_start_check_enabled: bool = False
    min_minutes_to_start: float = 30.0

    # Pick decision
    pick_min_edge: float = 0.03
    fallback_min_edge: float = 0.005
    fallback_min_prob: float = 0.6

    # Confidence binning
    confidence_bin_breakpoints: Mapping[str, float] = field(default_factory=_default_bin_breakpoints)

    # Calibration
    calibration_min_samples: int = 100
    calibration_validation_split: float = 0.8
    cv_window_days: int = 60

    # Features
    drift_windows: Mapping[str, int] = field(default_factory=_default_drift_windows)

    # Logistic regression
    learning_rate: float = 0.01
    max_iterations: int = 1000
    convergence_loss: float = 0.001
    convergence_check_every: int = 100

    # Training
    min_training_samples: int = 10

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Mapping):
                object.__setattr__(self, f.name, MappingProxyType(dict(value)))

    def __hash__(self):
        return hash(tuple(
            tuple(sorted(value.items())) if isinstance(value, Mapping) else value
            for value in (getattr(self, f.name) for f in fields(self))
        ))

    @property
    def window_minutes(self):
        """Drift windows as (short, medium, long) minutes."""
        return (
            self.drift_windows["SHORT"],
            self.drift_windows["MEDIUM"],
            self.drift_windows["LONG"],
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyticsConfig":
        """
        Build a config from a YAML-style dict with upper-case keys.

        Unknown keys are ignored with a warning. Nested dicts are merged
        over the defaults so partial overrides work.
        """
        known = {f.name for f in fields(cls)}
        defaults = cls()
        kwargs: Dict[str, Any] = {}

        for key, value in (data or {}).items():
            name = str(key).lower()
            if name not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            current = getattr(defaults, name)
            if isinstance(current, Mapping):
                if not isinstance(value, dict):
                    raise ValueError(f"Config key {key} must be a mapping")
                merged = dict(current)
                merged.update({str(k).upper(): v for k, v in value.items()})
                kwargs[name] = merged
            else:
                kwargs[name] = value

        config = cls(**kwargs)
        _check_ranges(config)
        return config

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name.upper()] = dict(value) if isinstance(value, Mapping) else value
        return data


def _check_ranges(config: AnalyticsConfig) -> None:
    """Reject values that would make the pipeline meaningless."""
    errors = []
    if config.learning_rate <= 0:
        errors.append("LEARNING_RATE must be > 0")
    if config.max_iterations < 1:
        errors.append("MAX_ITERATIONS must be >= 1")
    if config.convergence_check_every < 1:
        errors.append("CONVERGENCE_CHECK_EVERY must be >= 1")
    if not 0.0 < config.calibration_validation_split < 1.0:
        errors.append("CALIBRATION_VALIDATION_SPLIT must be in (0, 1)")
    for name in ("SHORT", "MEDIUM", "LONG"):
        if name not in config.drift_windows:
            errors.append(f"DRIFT_WINDOWS.{name} missing")
    if errors:
        raise ValueError(f"analytics config invalid: {', '.join(errors)}")


def validate_config(config: Any) -> None:
    """
    Validate that analytics.yaml contains all required keys.

    Raises:
        ValueError: If config is None or missing required keys.
    """
    if config is None:
        raise ValueError("analytics.yaml is empty or invalid")
    if not isinstance(config, dict):
        raise ValueError("analytics.yaml must contain a mapping")
    errors = []
    for key in REQUIRED_CONFIG_KEYS:
        if key not in config:
            errors.append(f"Missing key: {key}")
    if errors:
        raise ValueError(f"analytics.yaml validation failed: {', '.join(errors)}")


def load_config(config_path: Optional[str] = None) -> AnalyticsConfig:
    """
    Load pipeline configuration from a YAML file.

    Args:
        config_path: Path to config file. If None, uses config/analytics.yaml.

    Returns:
        AnalyticsConfig

    Raises:
        ValueError: If config is invalid or missing required keys.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    validate_config(raw)
    config = AnalyticsConfig.from_dict(raw)
    logger.info(f"Loaded analytics config from {config_path}")
    return config


DEFAULT_CONFIG = AnalyticsConfig()
