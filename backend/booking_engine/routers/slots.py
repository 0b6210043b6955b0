# backend/booking_engine/routers/slots.py
"""
Slots API endpoints.

GET  /slots/day        - Open slots of a service or offer on a day
GET  /slots/check      - Advisory check of one slot (the reservation rechecks under lock)
POST /slots/invalidate - Drop cached slot grids (merchant tools, admin)
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_read_db
from ..dependencies import get_availability_service, get_redis
from ..schemas.slots import (
    BookingRulesSchema,
    DetailedSlot,
    SlotCheckResponse,
    SlotsDayResponse,
    SlotsInvalidateRequest,
    StoreInfoSchema,
)
from ..services.results import SlotOpen, SlotsAvailable
from ..services.slots import (
    AvailabilityService,
    EntityType,
    get_affected_dates,
    invalidate_service_cache,
    invalidate_store_cache,
)


router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    entity_id: int,
    entity_type: str = EntityType.SERVICE.value,
    target_date: str = Query(..., alias="date"),
    db: Session = Depends(get_read_db),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Open slots with remaining capacity, booking rules and store info."""
    result = availability.list_slots(db, entity_id, entity_type, target_date)

    if isinstance(result, SlotsAvailable):
        return SlotsDayResponse(
            success=True,
            service_id=result.service_id,
            date=result.date,
            available_slots=result.available_slots,
            detailed_slots=[DetailedSlot.model_validate(slot) for slot in result.slots],
            booking_rules=BookingRulesSchema.model_validate(result.booking_rules),
            store_info=_store_info(result.store_info),
        )

    body = SlotsDayResponse(
        success=False,
        store_info=_store_info(result.store_info),
        reason=result.reason,
        kind=result.kind.value,
    )
    return JSONResponse(status_code=result.status_code, content=body.model_dump(mode="json"))


@router.get("/check", response_model=SlotCheckResponse)
def check_slot(
    entity_id: int,
    time: str,
    entity_type: str = EntityType.SERVICE.value,
    target_date: str = Query(..., alias="date"),
    db: Session = Depends(get_read_db),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Is this slot still open? Advisory only."""
    result = availability.check_slot(db, entity_id, entity_type, target_date, time)

    if isinstance(result, SlotOpen):
        return SlotCheckResponse(
            available=True,
            remaining_slots=result.remaining,
            total_slots=result.total,
        )

    return SlotCheckResponse(available=False, reason=result.reason, kind=result.kind.value)


@router.post("/invalidate")
def invalidate_slots_cache(
    data: SlotsInvalidateRequest,
    db: Session = Depends(get_read_db),
    redis: Redis | None = Depends(get_redis),
):
    """Manually invalidate cached slot grids for a service or a whole store."""
    if data.service_id is None and data.store_id is None:
        raise HTTPException(status_code=400, detail="service_id or store_id required")

    if redis is None:
        return {"deleted_keys": 0, "cache": "disabled"}

    dates = data.dates
    if dates is None and data.date_from is not None:
        dates = get_affected_dates(data.date_from, data.date_to or data.date_from)

    if data.service_id is not None:
        deleted = invalidate_service_cache(redis, data.service_id, dates)
    else:
        deleted = invalidate_store_cache(redis, db, data.store_id)

    return {
        "service_id": data.service_id,
        "store_id": data.store_id,
        "deleted_keys": deleted,
        "dates": [d.isoformat() for d in dates] if dates and data.service_id is not None else "all",
    }


def _store_info(info) -> StoreInfoSchema | None:
    if info is None:
        return None
    return StoreInfoSchema(
        name=info.name,
        location=info.location,
        opening_time=info.opening_time,
        closing_time=info.closing_time,
        working_days=list(info.working_days),
    )
