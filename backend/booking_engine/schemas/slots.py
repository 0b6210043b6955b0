# backend/booking_engine/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

import datetime as dt

from pydantic import BaseModel, Field


class DetailedSlot(BaseModel):
    """One open slot with its remaining capacity."""
    start: str  # "HH:MM"
    end: str
    time: str  # "9:00 AM"
    available: int
    total: int
    booked: int

    model_config = {"from_attributes": True}


class BookingRulesSchema(BaseModel):
    max_concurrent_bookings: int
    service_duration: int = Field(description="Minutes")
    buffer_time: int = Field(description="Minutes between consecutive slots")
    min_advance_booking: int = Field(description="Minutes")
    max_advance_booking: int = Field(description="Minutes")

    model_config = {"from_attributes": True}


class StoreInfoSchema(BaseModel):
    name: str
    location: str | None = None
    opening_time: str
    closing_time: str
    working_days: list[str]

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Open slots of a service or offer on a day."""
    success: bool
    service_id: int | None = None
    date: dt.date | None = None
    available_slots: list[str] = []
    detailed_slots: list[DetailedSlot] = []
    booking_rules: BookingRulesSchema | None = None
    store_info: StoreInfoSchema | None = None
    reason: str | None = None
    kind: str | None = None


class SlotCheckResponse(BaseModel):
    """Advisory availability of one slot."""
    available: bool
    remaining_slots: int | None = None
    total_slots: int | None = None
    reason: str | None = None
    kind: str | None = None


class SlotsInvalidateRequest(BaseModel):
    service_id: int | None = None
    store_id: int | None = None
    dates: list[dt.date] | None = None
    # Alternative to `dates`: inclusive range
    date_from: dt.date | None = None
    date_to: dt.date | None = None
