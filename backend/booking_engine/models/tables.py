from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    false,
    func,
    text,
    true,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Stores(Base):
    __tablename__ = 'stores'

    merchant_id = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    # Local wall-clock "HH:MM" / "HH:MM:SS", no timezone
    opening_time = Column(Text, nullable=False)
    closing_time = Column(Text, nullable=False)
    # JSON array, comma string or NULL; normalized by OperatingCalendar
    working_days = Column(Text)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    id = Column(Integer, primary_key=True)
    location = Column(Text)

    branches = relationship('Branches', back_populates='store')
    services = relationship('Services', back_populates='store')
    staff = relationship('Staff', back_populates='store')


class Branches(Base):
    __tablename__ = 'branches'

    store_id = Column(ForeignKey('stores.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    id = Column(Integer, primary_key=True)

    store = relationship('Stores', back_populates='branches')


class Staff(Base):
    __tablename__ = 'staff'

    store_id = Column(ForeignKey('stores.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    id = Column(Integer, primary_key=True)
    branch_id = Column(ForeignKey('branches.id', ondelete='SET NULL'))

    store = relationship('Stores', back_populates='staff')


class StaffServices(Base):
    """Which services a staff member performs."""
    __tablename__ = 'staff_services'
    __table_args__ = (
        UniqueConstraint('staff_id', 'service_id'),
    )

    staff_id = Column(ForeignKey('staff.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=true())
    id = Column(Integer, primary_key=True)


class Services(Base):
    __tablename__ = 'services'

    store_id = Column(ForeignKey('stores.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    branch_id = Column(ForeignKey('branches.id', ondelete='SET NULL'))
    # NULL / 0 fall back to BookingDefaults
    duration = Column(Integer)
    buffer_time = Column(Integer)
    max_concurrent_bookings = Column(Integer)
    min_advance_booking = Column(Integer)
    max_advance_booking = Column(Integer)
    grace_period_minutes = Column(Integer)
    booking_enabled = Column(Boolean, nullable=False, server_default=true())
    auto_confirm_bookings = Column(Boolean, nullable=False, server_default=false())
    auto_complete_on_duration = Column(Boolean, nullable=False, server_default=true())

    store = relationship('Stores', back_populates='services')
    offers = relationship('Offers', back_populates='service')


class Offers(Base):
    __tablename__ = 'offers'

    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    id = Column(Integer, primary_key=True)
    title = Column(Text)
    discount = Column(Numeric(5, 2))
    expiration_date = Column(DateTime)

    service = relationship('Services', back_populates='offers')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_service_start', 'service_id', 'start_time'),
        Index('ix_bookings_offer_id', 'offer_id'),
        Index('ix_bookings_status', 'status'),
    )

    # Always the capacity pool, also for offer bookings
    service_id = Column(ForeignKey('services.id'), nullable=False)
    offer_id = Column(ForeignKey('offers.id'))
    customer_id = Column(Integer, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    booking_type = Column(Text, nullable=False, server_default=text("'service'"))
    source_channel = Column(Text, nullable=False, server_default=text("'web'"))
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
    id = Column(Integer, primary_key=True)
    staff_id = Column(ForeignKey('staff.id', ondelete='SET NULL'))
    store_id = Column(ForeignKey('stores.id', ondelete='SET NULL'))
    branch_id = Column(ForeignKey('branches.id', ondelete='SET NULL'))
    notes = Column(Text)
    verification_code = Column(Text)
    qr_payload = Column(Text)
    auto_confirmed = Column(Boolean, nullable=False, server_default=false())
    confirmed_at = Column(DateTime)
    checked_in_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    no_show_at = Column(DateTime)
    cancellation_reason = Column(Text)
    no_show_reason = Column(Text)
    completion_method = Column(Text)
    created_by = Column(Text)
    updated_by = Column(Text)

    service = relationship('Services')
    offer = relationship('Offers')
    status_history = relationship(
        'BookingStatusHistory',
        back_populates='booking',
        order_by='BookingStatusHistory.id',
    )


class BookingStatusHistory(Base):
    __tablename__ = 'booking_status_history'

    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False)
    to_status = Column(Text, nullable=False)
    actor = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    id = Column(Integer, primary_key=True)
    from_status = Column(Text)
    reason = Column(Text)

    booking = relationship('Bookings', back_populates='status_history')


class SlotGuards(Base):
    """One row per reserved (service, slot start); the row lock reservations queue on."""
    __tablename__ = 'slot_guards'
    __table_args__ = (
        UniqueConstraint('service_id', 'slot_start'),
    )

    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    slot_start = Column(DateTime, nullable=False)
    id = Column(Integer, primary_key=True)
