"""
Enumeration types for the performance capture pipeline.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class AggregationRule(str, Enum):
    """
    How the source values of a derived metric are combined at one timestamp.

    SCALED_SUM_RATE turns byte counters into a kilo-units-per-second rate over
    the inferred reporting interval. MEAN averages percentage-style readings.
    """

    SCALED_SUM_RATE = "scaled_sum_rate"
    MEAN = "mean"


class UnitKey(str, Enum):
    """Unit identifiers understood by the performance-history consumer."""

    PERCENT = "percent"
    KILOBYTES_PER_SECOND = "kilobytespersecond"


class Rollup(str, Enum):
    """Rollup kind reported in counter metadata."""

    AVERAGE = "average"
