# glmagg/utils/errors.py
class AggregationError(RuntimeError):
    """
    Base class for programmer / data errors raised while aggregating.
    Never retried, never swallowed.
    """


class ConfigurationError(AggregationError):
    """
    Malformed normalization parameters, unknown loss name, bad driver settings.
    Raised before any data is processed.
    """


class DimensionMismatchError(AggregationError):
    """A feature vector or another aggregator disagrees with the coefficient dimension."""


class VariantMismatchError(AggregationError):
    """Merge between a gradient aggregator and a Hessian-vector aggregator."""
