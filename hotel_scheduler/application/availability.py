"""Room availability over date ranges"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from hotel_scheduler.domain.entities import Room, Reservation
from hotel_scheduler.domain.exceptions import BusinessRuleError, NotFoundError
from hotel_scheduler.domain.repositories import RoomRepository, ReservationRepository

logger = logging.getLogger(__name__)


class AvailabilityChecker:
    """Decides whether a room can take a stay of [check_in, check_out).

    Read-only. A result obtained outside ``UnitOfWork.room_transaction`` is
    advisory; booking code re-checks inside the transaction.
    """

    def __init__(self, room_repo: RoomRepository, reservation_repo: ReservationRepository):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo

    async def is_available(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        """True if the room is in service and no confirmed stay overlaps"""
        room = await self._get_room(room_id)
        return await self.is_room_free(room, check_in, check_out, exclude_reservation_id)

    async def is_room_free(
        self,
        room: Room,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        if room.is_out_of_service():
            logger.debug("Room %s is out of service", room.number)
            return False
        conflicts = await self.find_conflicts(room.room_id, check_in, check_out, exclude_reservation_id)
        logger.debug("Room %s %s..%s: %d conflict(s)", room.number, check_in, check_out, len(conflicts))
        return not conflicts

    async def find_conflicts(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Confirmed reservations on the room that overlap the range"""
        if check_in >= check_out:
            raise BusinessRuleError("Check-out date must be after check-in date")

        conflicts = await self.reservation_repo.find_overlapping(room_id, check_in, check_out)
        if exclude_reservation_id is not None:
            conflicts = [r for r in conflicts if r.reservation_id != exclude_reservation_id]
        return conflicts

    async def _get_room(self, room_id: UUID) -> Room:
        room = await self.room_repo.find_by_id(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room
