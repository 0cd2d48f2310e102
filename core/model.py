# =============================================================================
# POLYEDGE ANALYTICS - WIN PROBABILITY MODEL
# =============================================================================
#
# LogisticRegression: linear-in-features classifier trained by batch
#   gradient descent on SQUARED ERROR (gradient = error * x, no sigmoid
#   derivative). Downstream calibration is tuned against this objective;
#   do not switch it to cross-entropy.
# CalibratedModel: LogisticRegression + CalibrationWrapper.
# ModelRegistry: market type -> CalibratedModel, owned by the caller.
#
# LIFECYCLE:
# - LogisticRegression.predict before fit -> NotFittedError
# - CalibratedModel.predict before fit   -> default prediction (is_default)
# - Retraining builds a NEW CalibratedModel and swaps it into the registry
#   only after fit() completes. Callers must serialize retraining per key.
#
# =============================================================================

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union, Any

from shared.enums import CalibrationMethod, ConfidenceBin, MarketType
from shared.exceptions import (
    DimensionMismatchError,
    InvalidInputError,
    NotFittedError,
)

from .analytics_config import AnalyticsConfig, DEFAULT_CONFIG
from .calibration import CalibratedPrediction, CalibrationWrapper, sigmoid
from .calibration_metrics import (
    CrossValidationResult,
    PerformanceMetrics,
    evaluate,
    summarize_folds,
)
from .features import FEATURE_COUNT, FEATURE_NAMES, MarketFeatures, features_to_array

logger = logging.getLogger(__name__)

FeatureInput = Union[MarketFeatures, Sequence[float]]


def _as_array(features: FeatureInput) -> List[float]:
    if isinstance(features, MarketFeatures):
        return features_to_array(features)
    return [float(x) for x in features]


# =============================================================================
# LOGISTIC REGRESSION
# =============================================================================


class LogisticRegression:
    """
    Logistic regression over the fixed MarketFeatures ordering.

    21 weights + bias, batch gradient descent. Early exit when the mean
    squared error drops below CONVERGENCE_LOSS, checked every
    CONVERGENCE_CHECK_EVERY iterations.
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG):
        self.config = config
        self.feature_names = FEATURE_NAMES
        self.weights: List[float] = []
        self.bias: float = 0.0
        self.fitted: bool = False
        self.iterations_run: int = 0
        self.final_loss: Optional[float] = None

    def fit(
        self,
        features: Sequence[FeatureInput],
        labels: Sequence[float],
        learning_rate: Optional[float] = None,
        max_iterations: Optional[int] = None,
    ) -> None:
        """
        Fit weights by gradient descent.

        Args:
            features: MarketFeatures records (or raw vectors in FEATURE_NAMES order)
            labels: Targets in [0, 1], one per sample
            learning_rate: Overrides LEARNING_RATE
            max_iterations: Overrides MAX_ITERATIONS

        Raises:
            InvalidInputError: Empty or mismatched inputs, or max_iterations < 1
            DimensionMismatchError: A raw vector has the wrong length
        """
        if len(features) != len(labels) or len(features) == 0:
            raise InvalidInputError(
                f"Invalid input for logistic regression: "
                f"{len(features)} samples, {len(labels)} labels"
            )

        rate = self.config.learning_rate if learning_rate is None else learning_rate
        iterations = self.config.max_iterations if max_iterations is None else max_iterations
        if iterations < 1:
            raise InvalidInputError(f"max_iterations must be >= 1, got {iterations}")

        X = [_as_array(f) for f in features]
        for row in X:
            if len(row) != FEATURE_COUNT:
                raise DimensionMismatchError(
                    f"Feature dimension mismatch: expected {FEATURE_COUNT}, got {len(row)}"
                )
        y = [float(label) for label in labels]
        n = len(X)

        self.weights = [0.0] * FEATURE_COUNT
        self.bias = 0.0
        self.iterations_run = 0

        for iteration in range(iterations):
            total_loss = 0.0
            weight_gradients = [0.0] * FEATURE_COUNT
            bias_gradient = 0.0

            for row, target in zip(X, y):
                error = self._linear_probability(row) - target
                total_loss += error * error
                for j, x in enumerate(row):
                    weight_gradients[j] += error * x
                bias_gradient += error

            for j in range(FEATURE_COUNT):
                self.weights[j] -= rate * weight_gradients[j] / n
            self.bias -= rate * bias_gradient / n

            self.iterations_run = iteration + 1
            self.final_loss = total_loss / n

            if iteration % self.config.convergence_check_every == 0:
                if self.final_loss < self.config.convergence_loss:
                    break

        self.fitted = True
        logger.info(
            f"Logistic regression fitted with {n} samples "
            f"(iterations={self.iterations_run}, mse={self.final_loss:.6f})"
        )

    def _linear_probability(self, row: Sequence[float]) -> float:
        z = self.bias
        for w, x in zip(self.weights, row):
            z += w * x
        return sigmoid(z)

    def predict_probability(self, feature_array: Sequence[float]) -> float:
        """
        sigmoid(bias + weights . features) for a raw feature vector.

        Raises:
            NotFittedError: Called before fit()
            DimensionMismatchError: Vector length differs from weight count
        """
        if not self.fitted:
            raise NotFittedError("Logistic regression not fitted")
        if len(feature_array) != len(self.weights):
            raise DimensionMismatchError(
                f"Feature dimension mismatch: expected {len(self.weights)}, "
                f"got {len(feature_array)}"
            )
        return self._linear_probability(feature_array)

    def predict(self, features: FeatureInput) -> float:
        """Predict the raw probability for one market."""
        return self.predict_probability(_as_array(features))

    def coefficients(self) -> Dict[str, float]:
        """Fitted weights keyed by feature name."""
        if not self.fitted:
            raise NotFittedError("Logistic regression not fitted")
        return dict(zip(self.feature_names, self.weights))


# =============================================================================
# CALIBRATED MODEL
# =============================================================================


@dataclass(frozen=True)
class ModelPrediction:
    """
    Result of CalibratedModel.predict.

    is_default=True marks the placeholder returned by an unfitted model
    (0.5, LOW, method NONE). Callers can branch on it instead of
    inspecting the numbers.
    """
    prediction: CalibratedPrediction
    is_default: bool = False

    @property
    def raw_prob(self) -> float:
        return self.prediction.raw_prob

    @property
    def calibrated_prob(self) -> float:
        return self.prediction.calibrated_prob

    @property
    def confidence_bin(self) -> ConfidenceBin:
        return self.prediction.confidence_bin

    @property
    def calibration_method(self) -> CalibrationMethod:
        return self.prediction.calibration_method

    def to_dict(self) -> Dict[str, Any]:
        data = self.prediction.to_dict()
        data["is_default"] = self.is_default
        return data

    @classmethod
    def default(cls) -> "ModelPrediction":
        return cls(
            prediction=CalibratedPrediction(
                raw_prob=0.5,
                calibrated_prob=0.5,
                confidence_bin=ConfidenceBin.LOW,
                calibration_method=CalibrationMethod.NONE,
            ),
            is_default=True,
        )


class CalibratedModel:
    """
    Logistic regression whose outputs are calibrated on its own
    training-set predictions.
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG):
        self.config = config
        self.model = LogisticRegression(config)
        self.calibrator = CalibrationWrapper(config)
        self.fitted: bool = False
        self.training_samples: int = 0

    def fit(self, features: Sequence[FeatureInput], labels: Sequence[float]) -> None:
        if len(features) != len(labels) or len(features) == 0:
            raise InvalidInputError(
                f"Invalid input for model fitting: {len(features)} samples, {len(labels)} labels"
            )

        self.model.fit(features, labels)
        raw_probs = [self.model.predict(f) for f in features]
        self.calibrator.fit(raw_probs, labels)

        self.fitted = True
        self.training_samples = len(features)
        logger.info(
            f"Calibrated model fitted with {len(features)} samples "
            f"(calibration={self.calibrator.method.value})"
        )

    def predict(self, features: FeatureInput) -> ModelPrediction:
        """
        Calibrated prediction for one market.

        An unfitted model returns ModelPrediction.default() instead of raising.
        """
        if not self.fitted:
            logger.warning("Model not fitted - returning default prediction")
            return ModelPrediction.default()

        raw_prob = self.model.predict(features)
        return ModelPrediction(prediction=self.calibrator.transform(raw_prob))

    def get_performance_metrics(
        self,
        features: Sequence[FeatureInput],
        labels: Sequence[float],
    ) -> PerformanceMetrics:
        """
        Accuracy (threshold 0.5), Brier score and log-loss on the given set.

        Raises:
            NotFittedError: Called before fit()
            InvalidInputError: Empty or mismatched inputs
        """
        if not self.fitted:
            raise NotFittedError("Model not fitted")
        probs = [self.predict(f).calibrated_prob for f in features]
        return evaluate(probs, labels)


# =============================================================================
# MODEL REGISTRY
# =============================================================================


class ModelRegistry:
    """
    Market type -> CalibratedModel.

    Models are created lazily on first get_model(). train_model() fits a
    fresh instance and swaps it in after fitting, so predictions running
    against the previous instance are never disturbed.
    """

    def __init__(self, config: AnalyticsConfig = DEFAULT_CONFIG):
        self.config = config
        self._models: Dict[str, CalibratedModel] = {}
        self._lock = threading.Lock()

    def get_model(self, market_type: Union[str, MarketType]) -> CalibratedModel:
        key = _type_key(market_type)
        with self._lock:
            model = self._models.get(key)
            if model is None:
                model = CalibratedModel(self.config)
                self._models[key] = model
            return model

    def has_model(self, market_type: Union[str, MarketType]) -> bool:
        return _type_key(market_type) in self._models

    def train_model(
        self,
        market_type: Union[str, MarketType],
        features: Sequence[FeatureInput],
        labels: Sequence[float],
    ) -> CalibratedModel:
        """Fit a new model for market_type and replace the registered one."""
        model = CalibratedModel(self.config)
        model.fit(features, labels)
        self.set_model(market_type, model)
        return model

    def set_model(self, market_type: Union[str, MarketType], model: CalibratedModel) -> None:
        with self._lock:
            self._models[_type_key(market_type)] = model

    def get_trained_models(self) -> Dict[str, CalibratedModel]:
        """Registered models whose fitted flag is set."""
        with self._lock:
            return {key: model for key, model in self._models.items() if model.fitted}

    def market_types(self) -> List[str]:
        with self._lock:
            return list(self._models.keys())


def _type_key(market_type: Union[str, MarketType]) -> str:
    if isinstance(market_type, MarketType):
        return market_type.value
    return str(market_type)


def get_market_type(features: MarketFeatures) -> MarketType:
    """2 outcomes -> BINARY, more -> MULTI_OUTCOME, otherwise UNKNOWN."""
    if features.outcome_count == 2:
        return MarketType.BINARY
    if features.outcome_count > 2:
        return MarketType.MULTI_OUTCOME
    return MarketType.UNKNOWN


# =============================================================================
# CROSS-VALIDATION
# =============================================================================


def cross_validate(
    features: Sequence[FeatureInput],
    labels: Sequence[float],
    n_folds: int = 5,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> CrossValidationResult:
    """
    k-fold cross-validation over contiguous folds.

    Fold size is floor(n / k); the last fold absorbs the remainder. Each
    fold trains a fresh CalibratedModel on the other folds.

    Raises:
        InvalidInputError: Empty or mismatched inputs, n_folds < 2,
            or more folds than samples.
    """
    if len(features) != len(labels) or len(features) == 0:
        raise InvalidInputError(
            f"Invalid input for cross-validation: {len(features)} samples, {len(labels)} labels"
        )
    if n_folds < 2 or n_folds > len(features):
        raise InvalidInputError(
            f"Invalid fold count {n_folds} for {len(features)} samples"
        )

    features = list(features)
    labels = list(labels)
    fold_size = len(features) // n_folds
    fold_metrics: List[PerformanceMetrics] = []

    for fold in range(n_folds):
        start = fold * fold_size
        end = len(features) if fold == n_folds - 1 else (fold + 1) * fold_size

        model = CalibratedModel(config)
        model.fit(features[:start] + features[end:], labels[:start] + labels[end:])
        metrics = model.get_performance_metrics(features[start:end], labels[start:end])
        fold_metrics.append(metrics)

        logger.debug(
            f"Fold {fold + 1}/{n_folds}: accuracy={metrics.accuracy:.3f} "
            f"brier={metrics.brier_score:.4f} log_loss={metrics.log_loss:.4f}"
        )

    result = summarize_folds(fold_metrics)
    logger.info(
        f"Cross-validation complete | folds={n_folds} | "
        f"accuracy={result.mean_accuracy:.3f} | brier={result.mean_brier_score:.4f}"
    )
    return result
