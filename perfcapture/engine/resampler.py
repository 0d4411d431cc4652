"""
Interval resampler: raw monitoring series -> derived metrics on a 20 s grid.

The monitoring API reports each metric either every 5 minutes (basic) or
every minute (detailed) and never says which. The only usable signal is the
spacing between consecutive datapoints, so for every derived metric:

1. Take the sorted union of timestamps across its source series.
2. Walk consecutive pairs (prev, cur). Keep the pair only when cur - prev is
   exactly one of the known reporting cadences; any other gap, including the
   first datapoint (which has no predecessor), is dropped.
3. Aggregate the source values present at cur over the gap length.
4. Hold that value on every 20 s tick from prev + 20 s through cur.

The 20 s grid matches the sample spacing of the performance-history schema.
Matching is strict equality; a gap of cadence + 1 s produces nothing.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterator, Mapping

import structlog

from perfcapture.engine.catalog import CounterCatalog, aggregate, present_values
from perfcapture.models.counters import DerivedMetricSpec, ResampledPoint
from perfcapture.utils.timestamps import format_iso8601

logger = structlog.get_logger()

# Basic (5 minute) and detailed (1 minute) monitoring.
REPORTING_CADENCES = (timedelta(minutes=5), timedelta(minutes=1))

FINE_STEP = timedelta(seconds=20)

SeriesByCounter = Mapping[str, Mapping[datetime, float]]
PointTable = dict[str, dict[str, float]]


def is_known_cadence(gap: timedelta) -> bool:
    return gap in REPORTING_CADENCES


def fine_grid(prev: datetime, cur: datetime) -> list[datetime]:
    """Ticks from ``prev + FINE_STEP`` through ``cur`` inclusive."""
    ticks = []
    tick = prev + FINE_STEP
    while tick <= cur:
        ticks.append(tick)
        tick += FINE_STEP
    return ticks


class IntervalResampler:
    """
    Converts raw per-counter series into derived values on the fine grid.

    Stateless apart from the catalog; calling ``resample`` twice on the same
    input yields the same table.
    """

    def __init__(self, catalog: CounterCatalog):
        self.catalog = catalog

    def iter_points(self, series_by_counter: SeriesByCounter) -> Iterator[ResampledPoint]:
        """Yield every resampled point, one derived metric at a time."""
        for spec in self.catalog:
            yield from self._resample_spec(spec, series_by_counter)

    def resample(self, series_by_counter: SeriesByCounter) -> PointTable:
        """
        Build the ``iso_timestamp -> derived_key -> value`` table.

        Args:
            series_by_counter: Raw metric name -> {UTC timestamp: average}

        Returns:
            Point table with timestamps in ascending order
        """
        table: dict[str, dict[str, float]] = defaultdict(dict)
        for point in self.iter_points(series_by_counter):
            table[point.timestamp][point.derived_key] = point.value

        # Fixed-width UTC strings sort chronologically.
        return {ts: table[ts] for ts in sorted(table)}

    def _resample_spec(
        self, spec: DerivedMetricSpec, series_by_counter: SeriesByCounter
    ) -> Iterator[ResampledPoint]:
        sources = {
            name: series_by_counter[name]
            for name in spec.source_names
            if series_by_counter.get(name)
        }
        timestamps = sorted({ts for series in sources.values() for ts in series})

        emitted = 0
        irregular_gaps = 0
        missing_values = 0

        for prev, cur in zip(timestamps, timestamps[1:]):
            gap = cur - prev
            if not is_known_cadence(gap):
                irregular_gaps += 1
                continue

            values_at_cur = {name: series.get(cur) for name, series in sources.items()}
            value = aggregate(
                spec.rule,
                present_values(spec.source_names, values_at_cur),
                gap.total_seconds(),
            )
            if value is None:
                missing_values += 1
                continue

            for tick in fine_grid(prev, cur):
                emitted += 1
                yield ResampledPoint(
                    timestamp=format_iso8601(tick),
                    derived_key=spec.derived_key,
                    value=value,
                )

        logger.debug(
            "derived_metric_resampled",
            derived_key=spec.derived_key,
            source_timestamps=len(timestamps),
            points=emitted,
            irregular_gaps=irregular_gaps,
            missing_values=missing_values,
        )
