# =============================================================================
# POLYEDGE ANALYTICS - SHARED MODULE
# =============================================================================
#
# Shared vocabulary, error types and logging utilities.
# No business logic lives here.
#
# =============================================================================

from .enums import (
    ConfidenceBin,
    CalibrationMethod,
    PickSide,
    Recommendation,
    MarketType,
    Platform,
    MarketStatus,
)
from .exceptions import (
    AnalyticsError,
    InvalidInputError,
    NotFittedError,
    DimensionMismatchError,
    MissingYesOutcomeError,
)
from .logging_config import setup_logging, get_pipeline_logger, AuditLogger

__all__ = [
    "ConfidenceBin",
    "CalibrationMethod",
    "PickSide",
    "Recommendation",
    "MarketType",
    "Platform",
    "MarketStatus",
    "AnalyticsError",
    "InvalidInputError",
    "NotFittedError",
    "DimensionMismatchError",
    "MissingYesOutcomeError",
    "setup_logging",
    "get_pipeline_logger",
    "AuditLogger",
]
