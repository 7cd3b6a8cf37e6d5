# glmagg/__init__.py
__version__ = "0.1.0"

from .utils.logger import Logging, logs
from .utils.retry import Retry
from .utils.errors import (
    AggregationError,
    ConfigurationError,
    DimensionMismatchError,
    VariantMismatchError,
)
from .config.app_config import AppConfig
from .data.labeled_point import LabeledPoint
from .normalization.context import FeatureSummary, NormalizationContext, NormalizationType
from .function.aggregator import Aggregator, AggregatorKind
from .function.objective import GLMObjective

# alias 简化调用
retry = Retry

__all__ = [
    "logs", "Logging",
    "retry",
    "AppConfig",
    "AggregationError", "ConfigurationError",
    "DimensionMismatchError", "VariantMismatchError",
    "LabeledPoint",
    "FeatureSummary", "NormalizationContext", "NormalizationType",
    "Aggregator", "AggregatorKind",
    "GLMObjective",
]
