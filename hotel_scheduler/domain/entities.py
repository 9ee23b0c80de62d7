"""Domain Entities - Aggregates"""
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID, uuid4
from datetime import datetime, date, timezone
from typing import Optional

from hotel_scheduler.domain.enums import RoomType, RoomStatus, ReservationStatus
from hotel_scheduler.domain.exceptions import BusinessRuleError
from hotel_scheduler.domain.value_objects import DateRange, Money


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(BaseModel):
    """Room Aggregate Root Entity

    ``status`` caches whether active reservations hold the room. Only
    RoomStatusCoordinator calls ``apply_status``; nothing else writes it.
    """
    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    # Identity
    room_id: UUID = Field(default_factory=uuid4)
    number: str = Field(min_length=1, max_length=20)

    # Attributes
    room_type: RoomType
    nightly_rate: Money
    capacity: int = Field(ge=1)
    description: Optional[str] = None

    # Cached operational state
    status: RoomStatus = RoomStatus.AVAILABLE

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        number: str,
        room_type: RoomType,
        nightly_rate: Money,
        capacity: int,
        description: Optional[str] = None
    ) -> "Room":
        """Create a new room; new rooms start AVAILABLE"""
        if capacity < 1:
            raise BusinessRuleError("Room capacity must be at least 1")
        return Room(
            number=number,
            room_type=room_type,
            nightly_rate=nightly_rate,
            capacity=capacity,
            description=description,
            status=RoomStatus.AVAILABLE
        )

    # ==================== MODIFICATION METHODS ====================
    def update_details(
        self,
        number: str,
        room_type: RoomType,
        nightly_rate: Money,
        capacity: int,
        description: Optional[str] = None
    ) -> None:
        """Update catalog attributes; status is left untouched"""
        if capacity < 1:
            raise BusinessRuleError("Room capacity must be at least 1")
        self.number = number
        self.room_type = room_type
        self.nightly_rate = nightly_rate
        self.capacity = capacity
        self.description = description
        self._touch()

    def apply_status(self, new_status: RoomStatus) -> RoomStatus:
        """Set the cached status and return the previous one"""
        previous = self.status
        self.status = new_status
        self._touch()
        return previous

    # ==================== QUERY METHODS ====================
    def is_out_of_service(self) -> bool:
        return self.status == RoomStatus.OUT_OF_SERVICE

    def can_host(self, guest_count: int) -> bool:
        return guest_count <= self.capacity

    def _touch(self) -> None:
        self.updated_at = utcnow()
        self.version += 1


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity

    Created CONFIRMED; the only transition is CONFIRMED -> CANCELLED, which
    is terminal.
    """
    model_config = ConfigDict(from_attributes=True)

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References to other aggregates
    client_id: UUID
    room_id: UUID

    # Value Objects
    date_range: DateRange
    guest_count: int = Field(ge=1)
    total_price: Money

    # Status
    status: ReservationStatus = ReservationStatus.CONFIRMED
    cancellation_reason: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    modified_at: datetime = Field(default_factory=utcnow)
    version: int = 1

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        client_id: UUID,
        room_id: UUID,
        date_range: DateRange,
        guest_count: int,
        total_price: Money
    ) -> "Reservation":
        """Create a confirmed reservation"""
        return Reservation(
            client_id=client_id,
            room_id=room_id,
            date_range=date_range,
            guest_count=guest_count,
            total_price=total_price,
            status=ReservationStatus.CONFIRMED
        )

    # ==================== MODIFICATION METHODS ====================
    def reschedule(
        self,
        date_range: DateRange,
        guest_count: int,
        total_price: Money,
        today: date
    ) -> None:
        """Replace dates, guest count and price while still upcoming"""
        if self.status == ReservationStatus.CANCELLED:
            raise BusinessRuleError("Cannot update a cancelled reservation")
        if self.has_check_in_passed(today):
            raise BusinessRuleError("Cannot modify reservation after check-in date has passed")

        self.date_range = date_range
        self.guest_count = guest_count
        self.total_price = total_price
        self._touch()

    def move_to_room(self, room_id: UUID, today: date) -> None:
        """Reassign to another room; dates, guests and price are kept"""
        if self.status == ReservationStatus.CANCELLED:
            raise BusinessRuleError("Cannot update a cancelled reservation")
        if self.has_check_in_passed(today):
            raise BusinessRuleError("Cannot modify reservation after check-in date has passed")

        self.room_id = room_id
        self._touch()

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self) -> None:
        """Reservations are born confirmed, so there is nothing to confirm"""
        if self.status == ReservationStatus.CONFIRMED:
            raise BusinessRuleError("Reservation is already confirmed")
        raise BusinessRuleError("Cannot confirm a cancelled reservation")

    def cancel(self, reason: str, today: date) -> None:
        """Cancel reservation; allowed up to and including the check-in day"""
        if self.status == ReservationStatus.CANCELLED:
            raise BusinessRuleError("Reservation is already cancelled")
        if self.has_check_in_passed(today):
            raise BusinessRuleError("Cannot cancel reservation after check-in date has passed")

        self.status = ReservationStatus.CANCELLED
        self.cancellation_reason = reason
        self._touch()

    # ==================== QUERY METHODS ====================
    @property
    def check_in(self) -> date:
        return self.date_range.check_in

    @property
    def check_out(self) -> date:
        return self.date_range.check_out

    def is_confirmed(self) -> bool:
        return self.status == ReservationStatus.CONFIRMED

    def has_check_in_passed(self, today: date) -> bool:
        return self.date_range.check_in < today

    def is_active_on(self, day: date) -> bool:
        """Guest is in house on ``day``"""
        return self.is_confirmed() and self.date_range.contains(day)

    def holds_room_after(self, day: date) -> bool:
        return self.is_confirmed() and self.date_range.check_out > day

    def get_nights(self) -> int:
        return self.date_range.nights()

    def _touch(self) -> None:
        self.modified_at = utcnow()
        self.version += 1


class RoomStatusUpdate(BaseModel):
    """Audit entry for one room status transition; append-only"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    update_id: UUID = Field(default_factory=uuid4)
    room_id: UUID
    previous_status: RoomStatus
    new_status: RoomStatus
    reason: str
    updated_by: UUID
    updated_by_name: str
    is_automatic: bool = False
    updated_at: datetime = Field(default_factory=utcnow)
