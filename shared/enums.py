# =============================================================================
# POLYEDGE ANALYTICS - SHARED ENUMS
# =============================================================================
#
# These enums define the shared vocabulary of the scoring pipeline.
# String values are the wire values used by downstream consumers
# (stored recommendations, JSON output), so they must not change.
#
# =============================================================================

from enum import Enum


class ConfidenceBin(Enum):
    """
    Coarse confidence category of a calibrated probability.

    Derived from the distance of the calibrated probability to 0.5:
    HIGH: probability >= 0.7 or <= 0.3
    MED:  probability >= 0.55 or <= 0.45
    LOW:  everything in between (0.45, 0.55)
    """
    HIGH = "HIGH"
    MED = "MED"
    LOW = "LOW"


class CalibrationMethod(Enum):
    """Calibration method selected by the calibration wrapper."""
    PLATT = "platt"
    ISOTONIC = "isotonic"
    NONE = "none"


class PickSide(Enum):
    """
    Side of a generated pick.

    YES: Take the YES position.
    NO: Take the NO position.
    WATCH: No actionable pick, keep observing.
    """
    YES = "YES"
    NO = "NO"
    WATCH = "WATCH"


class Recommendation(Enum):
    """Recommendation label of a stored pick (mapped from PickSide)."""
    BUY = "buy"
    SELL = "sell"
    WATCH = "watch"


class MarketType(Enum):
    """
    Market type used to key trained models.

    BINARY: exactly two outcomes.
    MULTI_OUTCOME: more than two outcomes.
    UNKNOWN: zero or one outcome.
    """
    BINARY = "binary"
    MULTI_OUTCOME = "multi_outcome"
    UNKNOWN = "unknown"


class Platform(Enum):
    """Platforms with a dedicated one-hot feature. Anything else is OTHER."""
    POLYMARKET = "polymarket"
    KALSHI = "kalshi"
    MANIFOLD = "manifold"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: str) -> "Platform":
        """Map a platform name to a Platform, OTHER if unknown."""
        for platform in cls:
            if platform is not cls.OTHER and platform.value == name:
                return platform
        return cls.OTHER


class MarketStatus(Enum):
    """Lifecycle status of an inbound market record."""
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"
