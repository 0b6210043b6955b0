# backend/booking_engine/schemas/bookings.py

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel


class BookingCreate(BaseModel):
    entity_id: int
    entity_type: Literal["service", "offer"] = "service"
    start_time: datetime
    customer_id: int

    staff_id: Optional[int] = None
    store_id: Optional[int] = None
    branch_id: Optional[int] = None

    notes: Optional[str] = None
    source_channel: str = "web"


class BookingTransition(BaseModel):
    actor: str
    reason: Optional[str] = None


class BookingHistoryRead(BaseModel):
    from_status: Optional[str] = None
    to_status: str
    actor: str
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int

    service_id: int
    offer_id: Optional[int] = None
    customer_id: int
    staff_id: Optional[int] = None
    store_id: Optional[int] = None
    branch_id: Optional[int] = None

    start_time: datetime
    end_time: datetime

    status: str
    booking_type: str
    source_channel: str
    auto_confirmed: bool
    notes: Optional[str] = None
    verification_code: Optional[str] = None
    qr_payload: Optional[str] = None

    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    no_show_reason: Optional[str] = None
    completion_method: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingDetailRead(BookingRead):
    status_history: list[BookingHistoryRead] = []
