"""
Capture router - run a realtime performance capture for a target.

Wired to:
- MetricsCaptureService for fetch -> resample -> assemble
- Settings for the default monitoring endpoint binding
"""

from datetime import datetime
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from perfcapture.connectors.monitoring_client import TransportError
from perfcapture.models.capture import CaptureResult
from perfcapture.services.capture_service import (
    ConfigurationError,
    MetricsCaptureService,
    target_from_settings,
)
from perfcapture.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@lru_cache
def get_capture_service() -> MetricsCaptureService:
    """Cached capture service (the catalog is static for the process lifetime)."""
    return MetricsCaptureService()


@router.get("/{target_id}", response_model=CaptureResult)
async def capture_target(
    target_id: str,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    service: MetricsCaptureService = Depends(get_capture_service),
):
    """
    Capture realtime metrics for a target over the requested window.
    Defaults to the 4 hours preceding now.
    """
    logger.info("capture_requested", target_id=target_id)

    target = target_from_settings(target_id, service.settings)

    try:
        counters_by_id, values_by_id = await service.perf_collect_metrics(
            target, start_time=start_time, end_time=end_time
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except TransportError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return CaptureResult(
        target_id=target_id,
        counters=counters_by_id[target_id],
        values=values_by_id[target_id],
    )


@router.get("/catalog/counters")
async def list_counters(service: MetricsCaptureService = Depends(get_capture_service)):
    """Metadata of every derived counter produced by a capture."""
    return {
        "success": True,
        "data": {
            "counters": service.catalog.metadata_table(),
            "raw_metrics": sorted(service.catalog.all_raw_names()),
        },
    }
