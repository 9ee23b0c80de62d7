"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date

from hotel_scheduler.domain.auth import User
from hotel_scheduler.domain.entities import Room, Reservation, RoomStatusUpdate
from hotel_scheduler.domain.enums import RoomStatus, RoomType, ReservationStatus


class RoomRepository(ABC):
    """Repository interface for Room Aggregate"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Insert or replace room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_by_number(self, number: str) -> Optional[Room]:
        """Find room by its human-facing number"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        """Find all rooms"""
        pass

    @abstractmethod
    async def find_by_status(self, status: RoomStatus) -> List[Room]:
        """Find rooms by cached status"""
        pass

    @abstractmethod
    async def find_by_type(self, room_type: RoomType) -> List[Room]:
        """Find rooms by type"""
        pass


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Insert or replace reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_overlapping(self, room_id: UUID, check_in: date, check_out: date) -> List[Reservation]:
        """CONFIRMED reservations on the room whose stay overlaps [check_in, check_out)"""
        pass

    @abstractmethod
    async def find_by_room(self, room_id: UUID) -> List[Reservation]:
        """Find reservations for a room"""
        pass

    @abstractmethod
    async def find_by_client(self, client_id: UUID) -> List[Reservation]:
        """Find reservations made by a client"""
        pass

    @abstractmethod
    async def find_by_status(self, status: ReservationStatus) -> List[Reservation]:
        """Find reservations by status"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Reservation]:
        """Find all reservations"""
        pass


class RoomStatusUpdateRepository(ABC):
    """Append-only audit log of room status transitions"""

    @abstractmethod
    async def append(self, update: RoomStatusUpdate) -> RoomStatusUpdate:
        """Record one transition"""
        pass

    @abstractmethod
    async def find_by_room(self, room_id: UUID) -> List[RoomStatusUpdate]:
        """Transitions for a room, newest first"""
        pass

    @abstractmethod
    async def count_by_room(self, room_id: UUID) -> int:
        """Number of transitions recorded for a room"""
        pass


class UserRepository(ABC):
    """Repository interface for users known to the identity provider"""

    @abstractmethod
    async def save(self, user: User) -> User:
        """Insert or replace user"""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        """Find user by ID"""
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Find user by e-mail, the well-known identifier of the system actor"""
        pass


class UnitOfWork(ABC):
    """Transactional boundary of the store"""

    @abstractmethod
    def room_transaction(self, room_id: UUID) -> AbstractAsyncContextManager:
        """Isolate a block of writes against one room.

        Holds an exclusive per-room lock while the block runs and undoes every
        write made inside it if the block raises. Raises ConflictError when the
        lock cannot be acquired in time.
        """
        pass


class LoyaltyLedger(ABC):
    """Downstream points ledger; calls are best-effort"""

    @abstractmethod
    async def earn_points(self, client_id: UUID, amount: Decimal, currency: str, reference: UUID) -> None:
        """Credit points for a confirmed stay"""
        pass

    @abstractmethod
    async def refund_points(self, client_id: UUID, reference: UUID) -> None:
        """Reverse points credited for a cancelled stay"""
        pass
