"""
Capture engine: counter catalog, interval resampling and output assembly.

All engine components are synchronous and free of I/O.
"""

from perfcapture.engine.assembler import OutputAssembler
from perfcapture.engine.catalog import (
    DEFAULT_SPECS,
    CounterCatalog,
    aggregate,
    default_catalog,
    present_values,
)
from perfcapture.engine.resampler import (
    FINE_STEP,
    REPORTING_CADENCES,
    IntervalResampler,
    fine_grid,
    is_known_cadence,
)

__all__ = [
    "CounterCatalog",
    "DEFAULT_SPECS",
    "aggregate",
    "default_catalog",
    "present_values",
    "IntervalResampler",
    "FINE_STEP",
    "REPORTING_CADENCES",
    "fine_grid",
    "is_known_cadence",
    "OutputAssembler",
]
