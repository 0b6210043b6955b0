# backend/booking_engine/routers/bookings.py
# PATCH = 405, DELETE = 405: status changes go through the lifecycle endpoints

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_read_db
from ..dependencies import get_lifecycle, get_reservations
from ..schemas.bookings import (
    BookingCreate,
    BookingDetailRead,
    BookingRead,
    BookingTransition,
)
from ..services.lifecycle import BookingLifecycle, LifecycleAction
from ..services.repositories import BookingRepository
from ..services.reservations import ReservationRequest, ReservationTransaction
from ..services.results import ReservationRejected

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/{id}", response_model=BookingDetailRead)
def get_booking(id: int, db: Session = Depends(get_read_db)):
    obj = BookingRepository().get(db, id, with_history=True)
    if not obj:
        raise HTTPException(status_code=404, detail="Booking not found")
    return obj


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    reservations: ReservationTransaction = Depends(get_reservations),
):
    result = reservations.reserve(ReservationRequest(**data.model_dump()))
    if isinstance(result, ReservationRejected):
        # Mapped to its status code by the BookingEngineError handler
        raise result.error
    return result.booking


def _transition_endpoint(action: LifecycleAction):
    def endpoint(
        id: int,
        data: BookingTransition,
        lifecycle: BookingLifecycle = Depends(get_lifecycle),
    ):
        return lifecycle.transition(id, action, data.actor, data.reason)

    endpoint.__name__ = f"{action.value}_booking"
    return endpoint


for _path, _action in (
    ("confirm", LifecycleAction.CONFIRM),
    ("check-in", LifecycleAction.CHECK_IN),
    ("complete", LifecycleAction.COMPLETE),
    ("cancel", LifecycleAction.CANCEL),
    ("no-show", LifecycleAction.NO_SHOW),
):
    router.add_api_route(
        f"/{{id}}/{_path}",
        _transition_endpoint(_action),
        methods=["POST"],
        response_model=BookingRead,
    )


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
