"""Dashboard aggregates over the store"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

from hotel_scheduler.domain.enums import RoomStatus, ReservationStatus
from hotel_scheduler.domain.repositories import RoomRepository, ReservationRepository

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ReservationStatistics:
    total_reservations: int
    confirmed_reservations: int
    cancelled_reservations: int
    total_revenue: Decimal
    average_price: Decimal
    revenue_by_currency: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def confirmation_rate(self) -> Decimal:
        """Share of reservations still confirmed, in percent"""
        return _percent(self.confirmed_reservations, self.total_reservations)

    @property
    def cancellation_rate(self) -> Decimal:
        return _percent(self.cancelled_reservations, self.total_reservations)


def _percent(part: int, whole: int) -> Decimal:
    if whole == 0:
        return ZERO
    return (Decimal(part) * HUNDRED / whole).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RoomStatistics:
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    out_of_service_rooms: int


class StatisticsReporter:
    """Read-only counts and revenue. Revenue only counts confirmed stays."""

    def __init__(self, room_repo: RoomRepository, reservation_repo: ReservationRepository):
        self.room_repo = room_repo
        self.reservation_repo = reservation_repo

    async def get_reservation_statistics(self) -> ReservationStatistics:
        reservations = await self.reservation_repo.find_all()
        confirmed = [r for r in reservations if r.status == ReservationStatus.CONFIRMED]
        cancelled = [r for r in reservations if r.status == ReservationStatus.CANCELLED]

        total_revenue = sum((r.total_price.amount for r in confirmed), ZERO)
        average_price = (total_revenue / len(confirmed)).quantize(CENTS, rounding=ROUND_HALF_UP) if confirmed else ZERO

        by_currency: Dict[str, Decimal] = {}
        for r in confirmed:
            currency = r.total_price.currency
            by_currency[currency] = by_currency.get(currency, ZERO) + r.total_price.amount

        return ReservationStatistics(
            total_reservations=len(reservations),
            confirmed_reservations=len(confirmed),
            cancelled_reservations=len(cancelled),
            total_revenue=total_revenue,
            average_price=average_price,
            revenue_by_currency=by_currency
        )

    async def get_revenue_by_currency(self, currency: str) -> Decimal:
        stats = await self.get_reservation_statistics()
        return stats.revenue_by_currency.get(currency.upper(), ZERO)

    async def get_room_statistics(self) -> RoomStatistics:
        rooms = await self.room_repo.find_all()
        return RoomStatistics(
            total_rooms=len(rooms),
            available_rooms=sum(1 for r in rooms if r.status == RoomStatus.AVAILABLE),
            occupied_rooms=sum(1 for r in rooms if r.status == RoomStatus.OCCUPIED),
            out_of_service_rooms=sum(1 for r in rooms if r.status == RoomStatus.OUT_OF_SERVICE)
        )
