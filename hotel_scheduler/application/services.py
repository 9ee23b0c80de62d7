"""Application Services - Business use cases"""
import logging
from contextlib import AsyncExitStack
from uuid import UUID
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional

from hotel_scheduler.application.availability import AvailabilityChecker
from hotel_scheduler.application.pricing import PricingCalculator
from hotel_scheduler.application.room_status import RoomStatusCoordinator
from hotel_scheduler.config import Settings
from hotel_scheduler.domain.auth import User
from hotel_scheduler.domain.entities import Room, Reservation, RoomStatusUpdate
from hotel_scheduler.domain.enums import RoomStatus, RoomType, ReservationStatus
from hotel_scheduler.domain.exceptions import BusinessRuleError, ConflictError, NotFoundError
from hotel_scheduler.domain.repositories import (
    RoomRepository, ReservationRepository, UserRepository, UnitOfWork, LoyaltyLedger
)
from hotel_scheduler.domain.value_objects import DateRange, Money, is_currency_code

logger = logging.getLogger(__name__)


class ReservationService:
    """Reservation lifecycle: create, update, cancel, confirm.

    Each write runs inside ``room_transaction`` so that the availability
    check, the reservation write, the room status change and its audit
    record either all happen or none do, and no other booking for the same
    room can interleave.
    """

    def __init__(self,
                 room_repo: RoomRepository,
                 reservation_repo: ReservationRepository,
                 user_repo: UserRepository,
                 unit_of_work: UnitOfWork,
                 availability: AvailabilityChecker,
                 pricing: PricingCalculator,
                 status_coordinator: RoomStatusCoordinator,
                 loyalty: Optional[LoyaltyLedger] = None,
                 settings: Optional[Settings] = None,
                 today: Callable[[], date] = date.today):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo
        self.user_repo = user_repo
        self.unit_of_work = unit_of_work
        self.availability = availability
        self.pricing = pricing
        self.status_coordinator = status_coordinator
        self.loyalty = loyalty
        self.settings = settings or Settings()
        self.today = today

    # ==================== LIFECYCLE ====================
    async def create_reservation(
        self,
        room_id: UUID,
        client_id: UUID,
        check_in: date,
        check_out: date,
        guest_count: int,
        currency: str
    ) -> Reservation:
        """Book a room for [check_in, check_out)"""
        self._validate_reservation_inputs(check_in, check_out, guest_count, currency)

        await self._get_room(room_id)
        await self._get_client(client_id)

        async with self.unit_of_work.room_transaction(room_id):
            room = await self._get_room(room_id)
            self._validate_room_capacity(room, guest_count)
            await self._check_room_availability(room, check_in, check_out)

            total_price = self.pricing.calculate_price(room, check_in, check_out, guest_count)
            reservation = Reservation.create(
                client_id=client_id,
                room_id=room_id,
                date_range=DateRange(check_in=check_in, check_out=check_out),
                guest_count=guest_count,
                total_price=Money(amount=total_price, currency=currency)
            )
            await self.reservation_repo.save(reservation)

            await self.status_coordinator.mark_occupied(
                room_id,
                reason=f"Reservation {reservation.reservation_id} created for {check_in} to {check_out}"
            )

        logger.info("Reservation %s created: room %s, %s..%s, %d guest(s), %s",
                    reservation.reservation_id, room.number, check_in, check_out,
                    guest_count, reservation.total_price)

        await self._earn_loyalty_points(reservation)
        return reservation

    async def update_reservation(
        self,
        reservation_id: UUID,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
        guest_count: Optional[int] = None,
        currency: Optional[str] = None
    ) -> Reservation:
        """Change dates, guest count or currency of an upcoming reservation.

        Omitted values keep their current value. Room status is not touched:
        the room is already held by this reservation.
        """
        reservation = await self.get_reservation(reservation_id)

        new_check_in = check_in if check_in is not None else reservation.check_in
        new_check_out = check_out if check_out is not None else reservation.check_out
        new_guest_count = guest_count if guest_count is not None else reservation.guest_count
        new_currency = currency if currency is not None else reservation.total_price.currency

        self._ensure_modifiable(reservation)
        self._validate_reservation_inputs(new_check_in, new_check_out, new_guest_count, new_currency)

        room_id = reservation.room_id
        async with self.unit_of_work.room_transaction(room_id):
            reservation = await self.get_reservation(reservation_id)
            self._ensure_same_room(reservation, room_id)
            self._ensure_modifiable(reservation)

            room = await self._get_room(reservation.room_id)
            self._validate_room_capacity(room, new_guest_count)
            await self._check_room_availability(room, new_check_in, new_check_out,
                                                exclude_reservation_id=reservation_id)

            total_price = self.pricing.calculate_price(room, new_check_in, new_check_out, new_guest_count)
            reservation.reschedule(
                date_range=DateRange(check_in=new_check_in, check_out=new_check_out),
                guest_count=new_guest_count,
                total_price=Money(amount=total_price, currency=new_currency),
                today=self.today()
            )
            await self.reservation_repo.save(reservation)

        logger.info("Reservation %s updated: %s..%s, %d guest(s), %s",
                    reservation_id, new_check_in, new_check_out, new_guest_count, reservation.total_price)
        return reservation

    async def cancel_reservation(self, reservation_id: UUID, reason: str = "Guest requested cancellation") -> Reservation:
        """Cancel reservation and release the room"""
        reservation = await self.get_reservation(reservation_id)

        room_id = reservation.room_id
        async with self.unit_of_work.room_transaction(room_id):
            reservation = await self.get_reservation(reservation_id)
            self._ensure_same_room(reservation, room_id)
            reservation.cancel(reason, self.today())
            await self.reservation_repo.save(reservation)

            await self.status_coordinator.mark_available(
                reservation.room_id,
                reason=f"Reservation {reservation_id} cancelled: {reason}"
            )

        logger.info("Reservation %s cancelled: %s", reservation_id, reason)

        await self._refund_loyalty_points(reservation)
        return reservation

    async def reassign_reservation(self, reservation_id: UUID, new_room_id: UUID) -> Reservation:
        """Move an upcoming reservation to another room for the same dates.

        Both rooms are locked, in a fixed order, for the duration of the move.
        The price is kept; both rooms' statuses are re-derived afterwards.
        """
        reservation = await self.get_reservation(reservation_id)
        old_room_id = reservation.room_id
        if old_room_id == new_room_id:
            raise BusinessRuleError("Reservation is already assigned to this room")
        await self._get_room(new_room_id)
        self._ensure_modifiable(reservation)

        async with AsyncExitStack() as stack:
            for room_id in sorted((old_room_id, new_room_id), key=str):
                await stack.enter_async_context(self.unit_of_work.room_transaction(room_id))

            reservation = await self.get_reservation(reservation_id)
            self._ensure_same_room(reservation, old_room_id)
            self._ensure_modifiable(reservation)

            new_room = await self._get_room(new_room_id)
            self._validate_room_capacity(new_room, reservation.guest_count)
            await self._check_room_availability(new_room, reservation.check_in, reservation.check_out,
                                                exclude_reservation_id=reservation_id)

            reservation.move_to_room(new_room_id, self.today())
            await self.reservation_repo.save(reservation)

            await self.status_coordinator.synchronize(old_room_id)
            await self.status_coordinator.synchronize(new_room_id)

        logger.info("Reservation %s moved from room %s to room %s", reservation_id, old_room_id, new_room.number)
        return reservation

    async def confirm_reservation(self, reservation_id: UUID) -> Reservation:
        """Always rejected: reservations are confirmed when created"""
        reservation = await self.get_reservation(reservation_id)
        reservation.confirm()
        return reservation

    # ==================== AVAILABILITY & PRICING ====================
    async def is_room_available(self, room_id: UUID, check_in: date, check_out: date) -> bool:
        return await self.availability.is_available(room_id, check_in, check_out)

    async def get_available_rooms(self, check_in: date, check_out: date, min_guest_count: int = 1) -> List[Room]:
        """Rooms that can host ``min_guest_count`` guests for the whole stay"""
        if check_out <= check_in:
            raise BusinessRuleError("Check-out date must be after check-in date")

        available = []
        for room in await self.room_repo.find_all():
            if not room.can_host(min_guest_count):
                continue
            if await self.availability.is_room_free(room, check_in, check_out):
                available.append(room)
        return available

    def calculate_total_price(self, room: Room, check_in: date, check_out: date, guest_count: int) -> Decimal:
        return self.pricing.calculate_price(room, check_in, check_out, guest_count)

    # ==================== QUERIES ====================
    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        """Get reservation by ID"""
        reservation = await self.reservation_repo.find_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        return reservation

    async def get_reservations_by_client(self, client_id: UUID) -> List[Reservation]:
        return await self.reservation_repo.find_by_client(client_id)

    async def get_reservations_by_room(self, room_id: UUID) -> List[Reservation]:
        await self._get_room(room_id)
        return await self.reservation_repo.find_by_room(room_id)

    async def get_reservations_by_status(self, status: ReservationStatus) -> List[Reservation]:
        return await self.reservation_repo.find_by_status(status)

    async def get_upcoming_reservations(self) -> List[Reservation]:
        """Reservations of any status checking in today or later"""
        today = self.today()
        return [r for r in await self.reservation_repo.find_all() if r.check_in >= today]

    async def get_reservations_by_date_range(self, start: date, end: date) -> List[Reservation]:
        """Reservations of any status whose check-in falls in [start, end], both ends inclusive"""
        if end < start:
            raise BusinessRuleError("End date must not be before start date")
        return [r for r in await self.reservation_repo.find_all() if start <= r.check_in <= end]

    async def get_active_reservations(self) -> List[Reservation]:
        """Confirmed reservations with the guest in house today"""
        today = self.today()
        return [r for r in await self.reservation_repo.find_all() if r.is_active_on(today)]

    async def get_all_reservations(self) -> List[Reservation]:
        return await self.reservation_repo.find_all()

    # ==================== PRIVATE VALIDATION METHODS ====================
    def _validate_reservation_inputs(self, check_in: date, check_out: date, guest_count: int, currency: str) -> None:
        if check_in < self.today():
            raise BusinessRuleError("Check-in date cannot be in the past")

        if check_out <= check_in:
            raise BusinessRuleError("Check-out date must be after check-in date")

        nights = (check_out - check_in).days
        if nights > self.settings.max_stay_nights:
            raise BusinessRuleError(f"Maximum stay is {self.settings.max_stay_nights} nights")

        if not self.settings.min_guests <= guest_count <= self.settings.max_guests:
            raise BusinessRuleError(
                f"Number of guests must be between {self.settings.min_guests} and {self.settings.max_guests}"
            )

        if not is_currency_code(currency):
            raise BusinessRuleError("Currency must be a 3-letter code (e.g., USD, EUR)")

    @staticmethod
    def _validate_room_capacity(room: Room, guest_count: int) -> None:
        if not room.can_host(guest_count):
            raise BusinessRuleError(
                f"Number of guests ({guest_count}) exceeds room capacity ({room.capacity})"
            )

    def _ensure_modifiable(self, reservation: Reservation) -> None:
        if reservation.status == ReservationStatus.CANCELLED:
            raise BusinessRuleError("Cannot update a cancelled reservation")
        if reservation.has_check_in_passed(self.today()):
            raise BusinessRuleError("Cannot modify reservation after check-in date has passed")

    @staticmethod
    def _ensure_same_room(reservation: Reservation, room_id: UUID) -> None:
        if reservation.room_id != room_id:
            raise ConflictError(f"Reservation {reservation.reservation_id} was moved to another room")

    async def _check_room_availability(
        self,
        room: Room,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> None:
        if room.is_out_of_service():
            raise BusinessRuleError(f"Room {room.number} is not available: out of service")

        conflicts = await self.availability.find_conflicts(
            room.room_id, check_in, check_out, exclude_reservation_id
        )
        if conflicts:
            logger.warning("Rejected booking of room %s for %s..%s: %d conflict(s)",
                           room.number, check_in, check_out, len(conflicts))
            raise BusinessRuleError(
                "Room is not available for the selected dates. "
                f"Conflicting reservations: {len(conflicts)}"
            )

    async def _get_room(self, room_id: UUID) -> Room:
        room = await self.room_repo.find_by_id(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room

    async def _get_client(self, client_id: UUID) -> User:
        client = await self.user_repo.find_by_id(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    # ==================== LOYALTY (best-effort) ====================
    async def _earn_loyalty_points(self, reservation: Reservation) -> None:
        if self.loyalty is None:
            return
        try:
            await self.loyalty.earn_points(
                reservation.client_id,
                reservation.total_price.amount,
                reservation.total_price.currency,
                reservation.reservation_id
            )
        except Exception:
            logger.warning("Loyalty credit failed for reservation %s", reservation.reservation_id, exc_info=True)

    async def _refund_loyalty_points(self, reservation: Reservation) -> None:
        if self.loyalty is None:
            return
        try:
            await self.loyalty.refund_points(reservation.client_id, reservation.reservation_id)
        except Exception:
            logger.warning("Loyalty refund failed for reservation %s", reservation.reservation_id, exc_info=True)


class RoomService:
    """Service for the room catalog.

    Writes to an existing room run inside ``room_transaction`` and reload the
    room under the lock, so they never race a booking's status change.
    """

    def __init__(self, repository: RoomRepository, status_coordinator: RoomStatusCoordinator,
                 unit_of_work: UnitOfWork):
        self.repository = repository
        self.status_coordinator = status_coordinator
        self.unit_of_work = unit_of_work

    async def create_room(
        self,
        number: str,
        room_type: RoomType,
        nightly_rate: Decimal,
        currency: str,
        capacity: int,
        description: Optional[str] = None
    ) -> Room:
        """Create a new room"""
        if await self.repository.find_by_number(number) is not None:
            raise BusinessRuleError(f"Room number already exists: {number}")

        room = Room.create(
            number=number,
            room_type=room_type,
            nightly_rate=self._money(nightly_rate, currency),
            capacity=capacity,
            description=description
        )
        await self.repository.save(room)
        logger.info("Room %s created (%s, capacity %d, %s/night)",
                    number, room_type.value, capacity, room.nightly_rate)
        return room

    async def get_room(self, room_id: UUID) -> Room:
        """Get room by ID"""
        room = await self.repository.find_by_id(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room

    async def get_room_by_number(self, number: str) -> Room:
        room = await self.repository.find_by_number(number)
        if room is None:
            raise NotFoundError("Room", number)
        return room

    async def update_room(
        self,
        room_id: UUID,
        number: str,
        room_type: RoomType,
        nightly_rate: Decimal,
        currency: str,
        capacity: int,
        description: Optional[str] = None
    ) -> Room:
        """Update catalog data; status only changes through the coordinator"""
        rate = self._money(nightly_rate, currency)
        await self.get_room(room_id)

        async with self.unit_of_work.room_transaction(room_id):
            room = await self.get_room(room_id)
            if room.number != number and await self.repository.find_by_number(number) is not None:
                raise BusinessRuleError(f"Room number already exists: {number}")

            room.update_details(
                number=number,
                room_type=room_type,
                nightly_rate=rate,
                capacity=capacity,
                description=description
            )
            await self.repository.save(room)

        logger.info("Room %s updated", room.number)
        return room

    async def delete_room(self, room_id: UUID, acting_user: User, reason: str = "Room removed from service") -> Room:
        """Soft delete: the room goes OUT_OF_SERVICE and keeps its history"""
        await self.get_room(room_id)
        async with self.unit_of_work.room_transaction(room_id):
            return await self.status_coordinator.mark_out_of_service(room_id, reason, acting_user=acting_user)

    async def update_room_status(
        self,
        room_id: UUID,
        new_status: RoomStatus,
        acting_user: User,
        reason: str = "Status updated"
    ) -> Room:
        """Manual status change by staff"""
        await self.get_room(room_id)
        async with self.unit_of_work.room_transaction(room_id):
            return await self.status_coordinator.set_status(room_id, new_status, reason, acting_user,
                                                            is_automatic=False)

    # ==================== QUERIES ====================
    async def get_all_rooms(self) -> List[Room]:
        return await self.repository.find_all()

    async def get_rooms_by_status(self, status: RoomStatus) -> List[Room]:
        return await self.repository.find_by_status(status)

    async def get_rooms_by_type(self, room_type: RoomType) -> List[Room]:
        return await self.repository.find_by_type(room_type)

    async def get_rooms_by_price_range(self, min_price: Decimal, max_price: Decimal) -> List[Room]:
        """Rooms whose nightly rate lies in [min_price, max_price]"""
        return await self.search_rooms(min_price=min_price, max_price=max_price)

    async def search_rooms(
        self,
        room_type: Optional[RoomType] = None,
        min_capacity: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        status: Optional[RoomStatus] = None
    ) -> List[Room]:
        """Rooms matching every given criterion; omitted criteria match all"""
        if min_price is not None and max_price is not None and min_price > max_price:
            raise BusinessRuleError("Minimum price cannot exceed maximum price")

        rooms = await self.repository.find_all()
        if room_type is not None:
            rooms = [r for r in rooms if r.room_type == room_type]
        if min_capacity is not None:
            rooms = [r for r in rooms if r.capacity >= min_capacity]
        if min_price is not None:
            rooms = [r for r in rooms if r.nightly_rate.amount >= min_price]
        if max_price is not None:
            rooms = [r for r in rooms if r.nightly_rate.amount <= max_price]
        if status is not None:
            rooms = [r for r in rooms if r.status == status]
        return rooms

    async def get_room_status_history(self, room_id: UUID) -> List[RoomStatusUpdate]:
        return await self.status_coordinator.get_status_history(room_id)

    @staticmethod
    def _money(amount: Decimal, currency: str) -> Money:
        if not is_currency_code(currency):
            raise BusinessRuleError("Currency must be a 3-letter code (e.g., USD, EUR)")
        if amount < 0:
            raise BusinessRuleError("Nightly rate cannot be negative")
        return Money(amount=amount, currency=currency)
