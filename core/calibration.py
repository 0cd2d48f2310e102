# =============================================================================
# POLYEDGE ANALYTICS - PROBABILITY CALIBRATION
# =============================================================================
#
# Two stateful calibrators fit on (raw probability, binary outcome) pairs:
# - PlattScaling: linear map in log-odds space, then sigmoid back
# - IsotonicRegression: monotone step function fit by Pool Adjacent Violators
#
# CalibrationWrapper fits both on a chronological 80/20 split, keeps the
# one with the lower validation Brier score, and skips calibration
# entirely below CALIBRATION_MIN_SAMPLES.
#
# INVARIANTS:
# - transform() output is always in [0, 1]
# - IsotonicRegression.transform is non-decreasing in its input
# - transform() before fit() raises NotFittedError
#
# =============================================================================

import bisect
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Any

from shared.enums import CalibrationMethod, ConfidenceBin
from shared.exceptions import InvalidInputError, NotFittedError

from .analytics_config import AnalyticsConfig, DEFAULT_CONFIG
from .calibration_metrics import brier_score

logger = logging.getLogger(__name__)

# Probabilities are clamped to [EPSILON, 1 - EPSILON] before log-odds
EPSILON = 1e-10


# =============================================================================
# NUMERIC HELPERS
# =============================================================================


def clamp_probability(p: float) -> float:
    """Clamp to [0, 1]."""
    return max(0.0, min(1.0, p))


def sigmoid(z: float) -> float:
    """Logistic function, stable for large |z|."""
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


def log_odds(p: float) -> float:
    """ln(p / (1 - p)) with both terms kept away from zero."""
    return math.log(max(p, EPSILON) / max(1.0 - p, EPSILON))


def round_half_up(x: float) -> int:
    """Nearest integer, halves rounded up (12.5 -> 13)."""
    return int(math.floor(x + 0.5))


def _check_fit_input(raw_probs: Sequence[float], labels: Sequence[float], name: str) -> None:
    if len(raw_probs) != len(labels) or len(raw_probs) == 0:
        raise InvalidInputError(
            f"Invalid input for {name}: {len(raw_probs)} probabilities, {len(labels)} labels"
        )


# =============================================================================
# PREDICTION RESULT
# =============================================================================


@dataclass(frozen=True)
class CalibratedPrediction:
    """
    A raw model probability after calibration.

    calibrated_prob is always in [0, 1].
    """
    raw_prob: float
    calibrated_prob: float
    confidence_bin: ConfidenceBin
    calibration_method: CalibrationMethod

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_prob": self.raw_prob,
            "calibrated_prob": self.calibrated_prob,
            "confidence_bin": self.confidence_bin.value,
            "calibration_method": self.calibration_method.value,
        }


def confidence_bin_for(
    calibrated_prob: float,
    breakpoints: Optional[Dict[str, float]] = None,
) -> ConfidenceBin:
    """
    Bin a calibrated probability by its distance from 0.5.

    >= 0.7 or <= 0.3   -> HIGH
    >= 0.55 or <= 0.45 -> MED
    otherwise          -> LOW

    The MED band is open towards the LOW band: 0.46 is LOW, 0.44 is MED,
    and 0.5 itself is LOW.
    """
    bp = breakpoints or DEFAULT_CONFIG.confidence_bin_breakpoints
    if calibrated_prob >= bp["HIGH_UPPER"] or calibrated_prob <= bp["HIGH_LOWER"]:
        return ConfidenceBin.HIGH
    if calibrated_prob >= bp["MED_UPPER"] or calibrated_prob <= bp["MED_LOWER"]:
        return ConfidenceBin.MED
    return ConfidenceBin.LOW


# =============================================================================
# PLATT SCALING
# =============================================================================


class PlattScaling:
    """
    Platt scaling via closed-form linear regression in log-odds space.

    Fits label ~ a * logit(raw_prob) + b with the normal equations and
    maps back with sigmoid(a * logit(p) + b). A numerically degenerate
    design (all raw probabilities equal) falls back to identity a=1, b=0.
    """

    DEGENERATE_DENOMINATOR = 1e-10

    def __init__(self):
        self.a: float = 0.0
        self.b: float = 0.0
        self.fitted: bool = False

    def fit(self, raw_probs: Sequence[float], labels: Sequence[float]) -> None:
        _check_fit_input(raw_probs, labels, "Platt scaling")

        xs = [log_odds(p) for p in raw_probs]
        n = len(xs)
        sum_x = sum(xs)
        sum_y = sum(labels)
        sum_xy = sum(x * y for x, y in zip(xs, labels))
        sum_xx = sum(x * x for x in xs)

        denominator = n * sum_xx - sum_x * sum_x
        if abs(denominator) < self.DEGENERATE_DENOMINATOR:
            logger.debug("Platt scaling design is degenerate, using identity map")
            self.a = 1.0
            self.b = 0.0
        else:
            self.a = (n * sum_xy - sum_x * sum_y) / denominator
            self.b = (sum_y - self.a * sum_x) / n

        self.fitted = True

    def transform(self, raw_prob: float) -> float:
        if not self.fitted:
            raise NotFittedError("Platt scaling not fitted")
        return clamp_probability(sigmoid(self.a * log_odds(raw_prob) + self.b))


# =============================================================================
# ISOTONIC REGRESSION (PAVA)
# =============================================================================


class IsotonicRegression:
    """
    Isotonic calibration fit with the Pool Adjacent Violators Algorithm.

    The fitted model is a step function over the unique training
    probabilities. Inputs below the first threshold take the first
    step's value, inputs at or beyond the last take the last step's value.
    """

    def __init__(self):
        self.thresholds: List[float] = []
        self.values: List[float] = []
        self.fitted: bool = False

    def fit(self, raw_probs: Sequence[float], labels: Sequence[float]) -> None:
        _check_fit_input(raw_probs, labels, "isotonic regression")

        pairs = sorted(zip(raw_probs, labels), key=lambda pair: pair[0])
        pooled = self._pool_adjacent_violators([float(label) for _, label in pairs])

        # One step per unique probability. Pooled values are non-decreasing,
        # so the mean over a run of equal probabilities keeps the order.
        self.thresholds = []
        self.values = []
        run_sum = 0.0
        run_count = 0
        for i, (prob, _) in enumerate(pairs):
            run_sum += pooled[i]
            run_count += 1
            is_last_of_run = i == len(pairs) - 1 or pairs[i + 1][0] != prob
            if is_last_of_run:
                self.thresholds.append(prob)
                self.values.append(run_sum / run_count)
                run_sum = 0.0
                run_count = 0

        self.fitted = True

    @staticmethod
    def _pool_adjacent_violators(values: List[float]) -> List[float]:
        """
        Pool adjacent blocks while an earlier block's mean exceeds a later one.

        Every point starts as its own block with weight 1. Returns one
        fitted value per input point.
        """
        # Each block: [mean, weight, point_count]
        blocks: List[List[float]] = []
        for value in values:
            blocks.append([value, 1.0, 1])
            while len(blocks) > 1 and blocks[-2][0] > blocks[-1][0]:
                later = blocks.pop()
                earlier = blocks[-1]
                total_weight = earlier[1] + later[1]
                earlier[0] = (earlier[0] * earlier[1] + later[0] * later[1]) / total_weight
                earlier[1] = total_weight
                earlier[2] += later[2]

        fitted: List[float] = []
        for mean, _, count in blocks:
            fitted.extend([mean] * int(count))
        return fitted

    def transform(self, raw_prob: float) -> float:
        if not self.fitted:
            raise NotFittedError("Isotonic regression not fitted")
        index = bisect.bisect_right(self.thresholds, raw_prob) - 1
        index = max(0, min(index, len(self.values) - 1))
        return clamp_probability(self.values[index])


# =============================================================================
# CALIBRATION WRAPPER
# =============================================================================


class CalibrationWrapper:
    """
    Fits Platt and isotonic calibration and keeps the better one.

    PROCESS:
    1. Fewer than CALIBRATION_MIN_SAMPLES samples -> method NONE (identity)
    2. Chronological split: first 80% train, last 20% validation
    3. Fit both calibrators on the train split
    4. Keep the lower validation Brier score (ties go to Platt)
    5. Any fitting failure -> method NONE
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG):
        self.config = config
        self.platt = PlattScaling()
        self.isotonic = IsotonicRegression()
        self.method: CalibrationMethod = CalibrationMethod.NONE
        self.validation_scores: Dict[str, float] = {}
        self.fitted: bool = False

    def fit(self, raw_probs: Sequence[float], labels: Sequence[float]) -> None:
        if len(raw_probs) != len(labels) or len(raw_probs) == 0:
            raise InvalidInputError(
                f"Invalid input for calibration: {len(raw_probs)} probabilities, {len(labels)} labels"
            )

        self.validation_scores = {}

        if len(raw_probs) < self.config.calibration_min_samples:
            logger.warning(
                f"Insufficient samples for calibration ({len(raw_probs)} < "
                f"{self.config.calibration_min_samples}), using raw probabilities"
            )
            self.method = CalibrationMethod.NONE
            self.fitted = True
            return

        split_index = int(len(raw_probs) * self.config.calibration_validation_split)
        train_probs, val_probs = list(raw_probs[:split_index]), list(raw_probs[split_index:])
        train_labels, val_labels = list(labels[:split_index]), list(labels[split_index:])

        try:
            self.platt.fit(train_probs, train_labels)
            self.isotonic.fit(train_probs, train_labels)
        except InvalidInputError as e:
            logger.warning(f"Calibration fitting failed, using raw probabilities: {e}")
            self.method = CalibrationMethod.NONE
            self.fitted = True
            return

        platt_brier = self._evaluate(val_probs, val_labels, self.platt.transform)
        isotonic_brier = self._evaluate(val_probs, val_labels, self.isotonic.transform)
        self.validation_scores = {
            CalibrationMethod.PLATT.value: platt_brier,
            CalibrationMethod.ISOTONIC.value: isotonic_brier,
        }

        if platt_brier <= isotonic_brier:
            self.method = CalibrationMethod.PLATT
        else:
            self.method = CalibrationMethod.ISOTONIC
        self.fitted = True

        logger.info(
            f"Calibration fitted using {self.method.value} method "
            f"(Brier: {self.validation_scores[self.method.value]:.4f})"
        )

    def calibrate(self, raw_prob: float) -> float:
        """Calibrated probability only."""
        if not self.fitted:
            raise NotFittedError("Calibration wrapper not fitted")
        if self.method is CalibrationMethod.PLATT:
            return self.platt.transform(raw_prob)
        if self.method is CalibrationMethod.ISOTONIC:
            return self.isotonic.transform(raw_prob)
        return clamp_probability(raw_prob)

    def transform(self, raw_prob: float) -> CalibratedPrediction:
        calibrated = self.calibrate(raw_prob)
        return CalibratedPrediction(
            raw_prob=raw_prob,
            calibrated_prob=calibrated,
            confidence_bin=confidence_bin_for(
                calibrated, self.config.confidence_bin_breakpoints
            ),
            calibration_method=self.method,
        )

    @staticmethod
    def _evaluate(
        raw_probs: List[float],
        labels: List[float],
        calibrator: Callable[[float], float],
    ) -> float:
        return brier_score([calibrator(p) for p in raw_probs], labels)
