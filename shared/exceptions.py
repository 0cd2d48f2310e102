# =============================================================================
# POLYEDGE ANALYTICS - ERROR TAXONOMY
# =============================================================================
#
# FITTING ERRORS:      InvalidInputError (empty / mismatched inputs)
# LIFECYCLE ERRORS:    NotFittedError (predict/transform before fit)
# SHAPE ERRORS:        DimensionMismatchError (wrong feature vector length)
# PIPELINE ERRORS:     MissingYesOutcomeError (edge cannot be priced)
#
# Low-level primitives raise these. The pick generator converts every
# pipeline failure into the heuristic fallback and never re-raises.
#
# =============================================================================


class AnalyticsError(Exception):
    """Base class for all analytics errors."""


class InvalidInputError(AnalyticsError, ValueError):
    """Raised when fit inputs are empty or have mismatched lengths."""


class NotFittedError(AnalyticsError, RuntimeError):
    """Raised when a model or calibrator is used before fit()."""


class DimensionMismatchError(AnalyticsError, ValueError):
    """Raised when a feature vector does not match the fitted weights."""


class MissingYesOutcomeError(AnalyticsError):
    """Raised when a market has no outcome labeled 'yes'."""

    def __init__(self, market_id: str):
        self.market_id = market_id
        super().__init__(f"Market {market_id} must have a YES outcome")
