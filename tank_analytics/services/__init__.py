"""Service layer for the consumption analytics pipeline."""

from .consumption_estimator import ConsumptionEstimator
from .depletion_predictor import DepletionPredictor
from .reading_normalizer import ReadingNormalizer
from .refill_analyzer import RefillAnalyzer
from .staleness_classifier import StalenessClassifier
from .trend_analyzer import TrendAnalyzer
from .urgency_classifier import UrgencyClassifier

__all__ = [
    "ConsumptionEstimator",
    "DepletionPredictor",
    "ReadingNormalizer",
    "RefillAnalyzer",
    "StalenessClassifier",
    "TrendAnalyzer",
    "UrgencyClassifier",
]
