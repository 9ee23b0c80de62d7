"""Composition root: builds the store adapters and services"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional

from hotel_scheduler.application.availability import AvailabilityChecker
from hotel_scheduler.application.pricing import PricingCalculator
from hotel_scheduler.application.room_status import RoomStatusCoordinator
from hotel_scheduler.application.services import ReservationService, RoomService
from hotel_scheduler.application.statistics import StatisticsReporter
from hotel_scheduler.config import Settings
from hotel_scheduler.domain.auth import User
from hotel_scheduler.domain.repositories import UserRepository
from hotel_scheduler.infrastructure.loyalty import InMemoryLoyaltyLedger
from hotel_scheduler.infrastructure.repositories.in_memory_repositories import (
    InMemoryDatabase, InMemoryUnitOfWork, InMemoryRoomRepository, InMemoryReservationRepository,
    InMemoryRoomStatusUpdateRepository, InMemoryUserRepository
)

logger = logging.getLogger(__name__)


async def provision_system_actor(user_repo: UserRepository, settings: Settings) -> User:
    """Find the system user by its well-known e-mail, creating it if absent.

    Called once at startup, before any request can trigger an automatic
    status change.
    """
    user = await user_repo.find_by_email(settings.system_user_email)
    if user is not None:
        return user

    user = User(
        username="system",
        email=settings.system_user_email,
        full_name=settings.system_user_name,
        is_system=True
    )
    await user_repo.save(user)
    logger.info("Provisioned system actor %s", settings.system_user_email)
    return user


@dataclass
class SchedulerContainer:
    settings: Settings
    db: InMemoryDatabase
    room_repo: InMemoryRoomRepository
    reservation_repo: InMemoryReservationRepository
    audit_repo: InMemoryRoomStatusUpdateRepository
    user_repo: InMemoryUserRepository
    unit_of_work: InMemoryUnitOfWork
    loyalty: InMemoryLoyaltyLedger
    system_actor: User
    availability: AvailabilityChecker
    pricing: PricingCalculator
    status_coordinator: RoomStatusCoordinator
    reservation_service: ReservationService
    room_service: RoomService
    statistics: StatisticsReporter


async def build_in_memory_container(
    settings: Optional[Settings] = None,
    users: Iterable[User] = (),
    today: Callable[[], date] = date.today
) -> SchedulerContainer:
    """Wire every service against a fresh in-memory store"""
    settings = settings or Settings()

    db = InMemoryDatabase(latency=settings.store_latency_seconds)
    room_repo = InMemoryRoomRepository(db)
    reservation_repo = InMemoryReservationRepository(db)
    audit_repo = InMemoryRoomStatusUpdateRepository(db)
    user_repo = InMemoryUserRepository(db)
    unit_of_work = InMemoryUnitOfWork(db, lock_timeout=settings.lock_timeout_seconds)
    loyalty = InMemoryLoyaltyLedger()

    for user in users:
        await user_repo.save(user)
    system_actor = await provision_system_actor(user_repo, settings)

    availability = AvailabilityChecker(room_repo, reservation_repo)
    pricing = PricingCalculator(settings)
    status_coordinator = RoomStatusCoordinator(room_repo, audit_repo, reservation_repo, system_actor, today)

    return SchedulerContainer(
        settings=settings,
        db=db,
        room_repo=room_repo,
        reservation_repo=reservation_repo,
        audit_repo=audit_repo,
        user_repo=user_repo,
        unit_of_work=unit_of_work,
        loyalty=loyalty,
        system_actor=system_actor,
        availability=availability,
        pricing=pricing,
        status_coordinator=status_coordinator,
        reservation_service=ReservationService(
            room_repo=room_repo,
            reservation_repo=reservation_repo,
            user_repo=user_repo,
            unit_of_work=unit_of_work,
            availability=availability,
            pricing=pricing,
            status_coordinator=status_coordinator,
            loyalty=loyalty,
            settings=settings,
            today=today
        ),
        room_service=RoomService(room_repo, status_coordinator, unit_of_work),
        statistics=StatisticsReporter(room_repo, reservation_repo)
    )
