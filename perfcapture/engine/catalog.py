"""
Counter catalog: derived metric definitions and their aggregation rules.

Each derived metric names the raw monitoring metrics it is built from and
the rule that combines whichever of those raw values are present at a
timestamp. Aggregation is a single pure function dispatched on the rule,
preceded by an explicit present-values extraction step:

- SCALED_SUM_RATE: sum / 1024 / gap seconds (bytes -> KB/s over the interval)
- MEAN: arithmetic mean of present values

When no source value is present the result is None, so callers can tell
"nothing reported" apart from a genuine zero.
"""

from collections import OrderedDict
from typing import Iterable, Iterator, Mapping, Optional

from perfcapture.models.counters import DerivedMetricSpec
from perfcapture.models.enums import AggregationRule, UnitKey

BYTES_PER_KILOBYTE = 1024.0


def present_values(
    source_names: Iterable[str], values: Mapping[str, Optional[float]]
) -> list[float]:
    """Values reported for ``source_names``, in source order, skipping missing ones."""
    return [values[name] for name in source_names if values.get(name) is not None]


def aggregate(rule: AggregationRule, values: list[float], gap_seconds: float) -> Optional[float]:
    """
    Combine present source values according to ``rule``.

    Args:
        rule: Aggregation rule of the derived metric
        values: Present source values only
        gap_seconds: Length of the inferred reporting interval

    Returns:
        The derived value, or None when ``values`` is empty
    """
    if not values:
        return None

    if rule is AggregationRule.SCALED_SUM_RATE:
        if gap_seconds <= 0:
            raise ValueError(f"gap_seconds must be positive, got {gap_seconds}")
        return sum(values) / BYTES_PER_KILOBYTE / gap_seconds
    if rule is AggregationRule.MEAN:
        return sum(values) / len(values)

    raise ValueError(f"Unsupported aggregation rule: {rule}")


class CounterCatalog:
    """Registry of derived metric specs, keyed by derived key."""

    def __init__(self, specs: Iterable[DerivedMetricSpec] = ()) -> None:
        self._specs: "OrderedDict[str, DerivedMetricSpec]" = OrderedDict()
        for spec in specs:
            self.register(spec)

    def register(self, spec: DerivedMetricSpec) -> None:
        if spec.derived_key in self._specs:
            raise ValueError(f"Derived metric '{spec.derived_key}' is already registered.")
        self._specs[spec.derived_key] = spec

    def get(self, derived_key: str) -> DerivedMetricSpec:
        if derived_key not in self._specs:
            raise KeyError(f"Derived metric '{derived_key}' is not registered.")
        return self._specs[derived_key]

    def __iter__(self) -> Iterator[DerivedMetricSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, derived_key: object) -> bool:
        return derived_key in self._specs

    def all_raw_names(self) -> set[str]:
        """Every raw metric name needed by at least one derived metric."""
        return {name for spec in self for name in spec.source_names}

    def compute_for(
        self,
        derived_key: str,
        values_at_timestamp: Mapping[str, Optional[float]],
        gap_seconds: float,
    ) -> Optional[float]:
        """Derived value for one timestamp, or None when no source reported."""
        spec = self.get(derived_key)
        values = present_values(spec.source_names, values_at_timestamp)
        return aggregate(spec.rule, values, gap_seconds)

    def metadata_table(self) -> dict[str, dict]:
        """Per-derived-key metadata rows for the performance-history consumer."""
        return {spec.derived_key: spec.metadata() for spec in self}


DEFAULT_SPECS = (
    DerivedMetricSpec(
        derived_key="cpu_usage_rate_average",
        source_names=("CPUUtilization",),
        rule=AggregationRule.MEAN,
        unit_key=UnitKey.PERCENT,
        precision=1,
    ),
    DerivedMetricSpec(
        derived_key="disk_usage_rate_average",
        source_names=("DiskReadBytes", "DiskWriteBytes"),
        rule=AggregationRule.SCALED_SUM_RATE,
        unit_key=UnitKey.KILOBYTES_PER_SECOND,
        precision=2,
    ),
    DerivedMetricSpec(
        derived_key="net_usage_rate_average",
        source_names=("NetworkIn", "NetworkOut"),
        rule=AggregationRule.SCALED_SUM_RATE,
        unit_key=UnitKey.KILOBYTES_PER_SECOND,
        precision=2,
    ),
    DerivedMetricSpec(
        derived_key="mem_usage_absolute_average",
        source_names=(
            "MemoryUtilization",
            "mem_used_percent",  # Linux agent
            "Memory % Committed Bytes In Use",  # Windows agent
        ),
        rule=AggregationRule.MEAN,
        unit_key=UnitKey.PERCENT,
        precision=1,
    ),
    DerivedMetricSpec(
        derived_key="mem_swapped_absolute_average",
        source_names=(
            "SwapUtilization",
            "swap_used_percent",  # Linux agent
            # TODO: averaging is wrong for hosts with more than one paging file
            "Paging File % Usage",  # Windows agent
        ),
        rule=AggregationRule.MEAN,
        unit_key=UnitKey.PERCENT,
        precision=1,
    ),
)


def default_catalog() -> CounterCatalog:
    """Catalog of the five realtime counters collected for compute instances."""
    return CounterCatalog(DEFAULT_SPECS)
