from .tables import (
    Base,
    BookingStatusHistory,
    Bookings,
    Branches,
    Offers,
    Services,
    SlotGuards,
    Staff,
    StaffServices,
    Stores,
    metadata,
)

__all__ = [
    "Base",
    "BookingStatusHistory",
    "Bookings",
    "Branches",
    "Offers",
    "Services",
    "SlotGuards",
    "Staff",
    "StaffServices",
    "Stores",
    "metadata",
]
