"""Packages counter metadata and resampled values keyed by target identity."""

from typing import Any

from perfcapture.engine.catalog import CounterCatalog
from perfcapture.engine.resampler import PointTable

MetadataByTarget = dict[str, dict[str, dict[str, Any]]]
PointsByTarget = dict[str, PointTable]


class OutputAssembler:
    """Builds the two mappings handed to the performance-history consumer."""

    def assemble(
        self, target_id: str, catalog: CounterCatalog, points: PointTable
    ) -> tuple[MetadataByTarget, PointsByTarget]:
        """
        Args:
            target_id: Identity of the target in the monitoring API
            catalog: Catalog the points were computed from
            points: ``iso_timestamp -> derived_key -> value`` table

        Returns:
            ``({target_id: metadata_table}, {target_id: points})``
        """
        return {target_id: catalog.metadata_table()}, {target_id: points}
