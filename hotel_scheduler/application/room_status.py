"""Room status coordination and audit trail"""
import logging
from datetime import date
from typing import Callable, List, Optional
from uuid import UUID

from hotel_scheduler.domain.auth import User
from hotel_scheduler.domain.entities import Room, RoomStatusUpdate
from hotel_scheduler.domain.enums import RoomStatus
from hotel_scheduler.domain.exceptions import BusinessRuleError, NotFoundError
from hotel_scheduler.domain.repositories import (
    RoomRepository, ReservationRepository, RoomStatusUpdateRepository
)

logger = logging.getLogger(__name__)


class RoomStatusCoordinator:
    """The single writer of ``Room.status``.

    Every call to ``set_status`` saves the room and appends exactly one
    RoomStatusUpdate. Whether a transition makes sense is the caller's
    business; this class only applies and records it.

    Automatic transitions are attributed to ``system_actor``, which is
    provisioned once at startup and injected here.
    """

    def __init__(
        self,
        room_repo: RoomRepository,
        audit_repo: RoomStatusUpdateRepository,
        reservation_repo: ReservationRepository,
        system_actor: User,
        today: Callable[[], date] = date.today
    ):
        self.room_repo = room_repo
        self.audit_repo = audit_repo
        self.reservation_repo = reservation_repo
        self.system_actor = system_actor
        self.today = today

    async def set_status(
        self,
        room_id: UUID,
        new_status: RoomStatus,
        reason: str,
        acting_user: Optional[User] = None,
        is_automatic: bool = False
    ) -> Room:
        """Apply ``new_status`` to the room and append an audit record"""
        if is_automatic:
            actor = self.system_actor
        elif acting_user is None:
            raise BusinessRuleError("Manual room status changes require an acting user")
        else:
            actor = acting_user

        room = await self.room_repo.find_by_id(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)

        previous_status = room.apply_status(new_status)
        await self.room_repo.save(room)

        await self.audit_repo.append(RoomStatusUpdate(
            room_id=room.room_id,
            previous_status=previous_status,
            new_status=new_status,
            reason=reason,
            updated_by=actor.user_id,
            updated_by_name=actor.display_name,
            is_automatic=is_automatic
        ))

        logger.info(
            "Room %s: %s -> %s (%s, by %s): %s",
            room.number, previous_status.value, new_status.value,
            "automatic" if is_automatic else "manual", actor.display_name, reason
        )
        return room

    # ==================== CONVENIENCE WRAPPERS ====================
    # Manual when an acting user is given, automatic otherwise.

    async def mark_available(self, room_id: UUID, reason: str = "Status updated",
                             acting_user: Optional[User] = None) -> Room:
        return await self.set_status(room_id, RoomStatus.AVAILABLE, reason,
                                     acting_user, is_automatic=acting_user is None)

    async def mark_occupied(self, room_id: UUID, reason: str = "Status updated",
                            acting_user: Optional[User] = None) -> Room:
        return await self.set_status(room_id, RoomStatus.OCCUPIED, reason,
                                     acting_user, is_automatic=acting_user is None)

    async def mark_out_of_service(self, room_id: UUID, reason: str,
                                  acting_user: Optional[User] = None) -> Room:
        return await self.set_status(room_id, RoomStatus.OUT_OF_SERVICE, reason,
                                     acting_user, is_automatic=acting_user is None)

    # ==================== RE-SYNCHRONIZATION ====================
    async def derive_status(self, room: Room, today: date) -> RoomStatus:
        """Status implied by the room's confirmed reservations"""
        if room.is_out_of_service():
            return RoomStatus.OUT_OF_SERVICE
        reservations = await self.reservation_repo.find_by_room(room.room_id)
        if any(r.holds_room_after(today) for r in reservations):
            return RoomStatus.OCCUPIED
        return RoomStatus.AVAILABLE

    async def synchronize(self, room_id: UUID, today: Optional[date] = None) -> Room:
        """Re-derive the cached status; writes only if it has drifted"""
        today = today or self.today()
        room = await self.room_repo.find_by_id(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)

        derived = await self.derive_status(room, today)
        if derived == room.status:
            return room
        return await self.set_status(room_id, derived, "Status re-synchronized with reservations",
                                     is_automatic=True)

    # ==================== QUERIES ====================
    async def get_status_history(self, room_id: UUID) -> List[RoomStatusUpdate]:
        """Audit trail for a room, newest first"""
        if await self.room_repo.find_by_id(room_id) is None:
            raise NotFoundError("Room", room_id)
        return await self.audit_repo.find_by_room(room_id)
