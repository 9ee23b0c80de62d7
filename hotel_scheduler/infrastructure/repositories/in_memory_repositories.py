"""In-Memory Repository Implementations

All repositories share one ``InMemoryDatabase``. Entities are copied on the
way in and out so callers never hold a reference to stored state, the same as
with a real database. Writes made inside ``room_transaction`` are journaled
and undone if the block raises.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Callable, Dict, List, Optional
from uuid import UUID
from datetime import date

from hotel_scheduler.domain.auth import User
from hotel_scheduler.domain.entities import Room, Reservation, RoomStatusUpdate
from hotel_scheduler.domain.enums import RoomStatus, RoomType, ReservationStatus
from hotel_scheduler.domain.exceptions import ConflictError
from hotel_scheduler.domain.repositories import (
    RoomRepository, ReservationRepository, RoomStatusUpdateRepository,
    UserRepository, UnitOfWork
)
from hotel_scheduler.domain.value_objects import overlaps

logger = logging.getLogger(__name__)

_journal: ContextVar[Optional[List[Callable[[], None]]]] = ContextVar("_journal", default=None)


class InMemoryDatabase:
    """Shared storage, per-room locks and the undo journal"""

    def __init__(self, latency: float = 0.0):
        self.rooms: Dict[UUID, Room] = {}
        self.reservations: Dict[UUID, Reservation] = {}
        self.status_updates: List[RoomStatusUpdate] = []
        self.users: Dict[UUID, User] = {}
        self.latency = latency
        self._room_locks: Dict[UUID, asyncio.Lock] = {}

    async def pause(self) -> None:
        """Simulated I/O; always yields to the event loop"""
        await asyncio.sleep(self.latency)

    def lock_for(self, room_id: UUID) -> asyncio.Lock:
        return self._room_locks.setdefault(room_id, asyncio.Lock())

    def put(self, table: Dict, key: UUID, value) -> None:
        journal = _journal.get()
        if journal is not None:
            if key in table:
                previous = table[key]
                journal.append(lambda: table.__setitem__(key, previous))
            else:
                journal.append(lambda: table.pop(key, None))
        table[key] = value

    def append_update(self, update: RoomStatusUpdate) -> None:
        journal = _journal.get()
        if journal is not None:
            journal.append(lambda: self.status_updates.remove(update))
        self.status_updates.append(update)


class InMemoryUnitOfWork(UnitOfWork):
    """Per-room asyncio locks with journal-based rollback"""

    def __init__(self, db: InMemoryDatabase, lock_timeout: float = 5.0):
        self._db = db
        self._lock_timeout = lock_timeout

    @asynccontextmanager
    async def room_transaction(self, room_id: UUID):
        lock = self._db.lock_for(room_id)
        try:
            async with asyncio.timeout(self._lock_timeout):
                await lock.acquire()
        except TimeoutError:
            raise ConflictError(f"Timed out waiting for a lock on room {room_id}") from None

        # nested transactions share the outermost journal; only it undoes
        outer = _journal.get()
        journal: List[Callable[[], None]] = outer if outer is not None else []
        token = _journal.set(journal)
        try:
            yield
        except BaseException:
            if outer is None:
                for undo in reversed(journal):
                    undo()
                logger.info("Rolled back %d write(s) on room %s", len(journal), room_id)
            raise
        finally:
            _journal.reset(token)
            lock.release()


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        await self._db.pause()
        self._db.put(self._db.rooms, room.room_id, room.model_copy(deep=True))
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        await self._db.pause()
        room = self._db.rooms.get(room_id)
        return room.model_copy(deep=True) if room else None

    async def find_by_number(self, number: str) -> Optional[Room]:
        """Find room by number"""
        await self._db.pause()
        for room in self._db.rooms.values():
            if room.number == number:
                return room.model_copy(deep=True)
        return None

    async def find_all(self) -> List[Room]:
        """Find all rooms, ordered by number"""
        await self._db.pause()
        rooms = sorted(self._db.rooms.values(), key=lambda r: r.number)
        return [r.model_copy(deep=True) for r in rooms]

    async def find_by_status(self, status: RoomStatus) -> List[Room]:
        return [r for r in await self.find_all() if r.status == status]

    async def find_by_type(self, room_type: RoomType) -> List[Room]:
        return [r for r in await self.find_all() if r.room_type == room_type]


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        await self._db.pause()
        self._db.put(self._db.reservations, reservation.reservation_id, reservation.model_copy(deep=True))
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        await self._db.pause()
        reservation = self._db.reservations.get(reservation_id)
        return reservation.model_copy(deep=True) if reservation else None

    async def find_overlapping(self, room_id: UUID, check_in: date, check_out: date) -> List[Reservation]:
        """Confirmed reservations on the room overlapping [check_in, check_out)"""
        return [
            r for r in await self.find_by_room(room_id)
            if r.status == ReservationStatus.CONFIRMED
            and overlaps(r.check_in, r.check_out, check_in, check_out)
        ]

    async def find_by_room(self, room_id: UUID) -> List[Reservation]:
        return [r for r in await self.find_all() if r.room_id == room_id]

    async def find_by_client(self, client_id: UUID) -> List[Reservation]:
        return [r for r in await self.find_all() if r.client_id == client_id]

    async def find_by_status(self, status: ReservationStatus) -> List[Reservation]:
        return [r for r in await self.find_all() if r.status == status]

    async def find_all(self) -> List[Reservation]:
        """Find all reservations, ordered by check-in"""
        await self._db.pause()
        reservations = sorted(self._db.reservations.values(), key=lambda r: (r.check_in, r.created_at))
        return [r.model_copy(deep=True) for r in reservations]


class InMemoryRoomStatusUpdateRepository(RoomStatusUpdateRepository):
    """In-memory append-only audit log"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def append(self, update: RoomStatusUpdate) -> RoomStatusUpdate:
        await self._db.pause()
        self._db.append_update(update)
        return update

    async def find_by_room(self, room_id: UUID) -> List[RoomStatusUpdate]:
        await self._db.pause()
        updates = [u for u in self._db.status_updates if u.room_id == room_id]
        # appended in time order; reversing keeps ties stable
        return list(reversed(updates))

    async def count_by_room(self, room_id: UUID) -> int:
        return len(await self.find_by_room(room_id))


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository"""

    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def save(self, user: User) -> User:
        await self._db.pause()
        self._db.put(self._db.users, user.user_id, user.model_copy(deep=True))
        return user

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        await self._db.pause()
        user = self._db.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def find_by_email(self, email: str) -> Optional[User]:
        await self._db.pause()
        for user in self._db.users.values():
            if user.email and user.email.lower() == email.lower():
                return user.model_copy(deep=True)
        return None
