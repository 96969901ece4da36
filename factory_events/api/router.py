from typing import Any
from fastapi import APIRouter, Body, HTTPException, Query
import structlog
from ..engine.aggregator import LineResult, StatsResult
from ..engine.batch import BatchResult
from ..services.event_service import service
from ..config import get_settings

router = APIRouter(prefix="/events")
settings = get_settings()
log = structlog.get_logger()


@router.post("/batch", response_model=BatchResult)
async def ingest_batch(events: list[Any] = Body(...)):
    if len(events) > settings.MAX_BATCH_SIZE:
        log.warning("batch.too_large", size=len(events), max_size=settings.MAX_BATCH_SIZE)
        raise HTTPException(413, detail=f"Batch exceeds maximum of {settings.MAX_BATCH_SIZE} events")
    return await service.ingest_batch(events)


@router.get("/stats", response_model=StatsResult)
async def get_stats(
    machine_id: str = Query(..., alias="machineId"),
    start: str = Query(...),
    end: str = Query(...),
):
    return await service.get_stats(machine_id, start, end)


@router.get("/stats/top-defect-lines", response_model=list[LineResult])
async def get_top_defect_lines(
    factory_id: str = Query(..., alias="factoryId"),
    from_: str = Query(..., alias="from"),
    to: str = Query(...),
    limit: int = Query(settings.DEFAULT_TOP_LINES_LIMIT, ge=1),
):
    return await service.get_top_defect_lines(factory_id, from_, to, limit)
