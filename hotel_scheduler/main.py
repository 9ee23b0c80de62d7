import logging
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from hotel_scheduler.api.schemas import (
    # Rooms
    CreateRoomRequest, UpdateRoomRequest, UpdateRoomStatusRequest, RoomResponse,
    RoomStatusUpdateResponse, AvailabilityResponse, PriceQuoteRequest, PriceQuoteResponse,
    # Reservations
    CreateReservationRequest, UpdateReservationRequest, CancelReservationRequest, ReassignReservationRequest,
    ReservationResponse,
    # Statistics
    ReservationStatisticsResponse, RoomStatisticsResponse,
    # Auth
    Token, UserResponse
)
from hotel_scheduler.api.dependencies import (
    AuthenticatedUser, directory_users, fake_users_db, get_user,
    get_current_active_user, get_current_staff_user,
    get_container, get_reservation_service, get_room_service, get_statistics_reporter
)
from hotel_scheduler.application.bootstrap import SchedulerContainer, build_in_memory_container
from hotel_scheduler.application.retry import retry_on_conflict
from hotel_scheduler.application.services import ReservationService, RoomService
from hotel_scheduler.application.statistics import StatisticsReporter
from hotel_scheduler.config import configure_logging, get_settings
from hotel_scheduler.domain.entities import Room, Reservation, RoomStatusUpdate
from hotel_scheduler.domain.enums import ErrorKind, RoomStatus, RoomType, ReservationStatus
from hotel_scheduler.domain.exceptions import BusinessRuleError, SchedulerError
from hotel_scheduler.infrastructure.security import verify_password, issue_access_token

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.BUSINESS_RULE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    app.state.container = await build_in_memory_container(settings, users=directory_users())
    logger.info("Reservation scheduler ready")
    yield


app = FastAPI(
    title="Hotel Reservation Scheduler API",
    description="Room booking, availability, pricing and room status for the hotel back office",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(SchedulerError)
async def scheduler_error_handler(request: Request, exc: SchedulerError):
    return JSONResponse(
        status_code=ERROR_STATUS[exc.kind],
        content={"kind": exc.kind.value, "detail": exc.message, "path": request.url.path},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    # pydantic validation raised while building domain objects
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"kind": ErrorKind.BUSINESS_RULE.value, "detail": str(exc), "path": request.url.path},
    )


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = issue_access_token(user.username)
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: AuthenticatedUser = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@app.post("/api/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Create a room (staff only)"""
    room = await service.create_room(
        number=request.number,
        room_type=request.room_type,
        nightly_rate=request.nightly_rate,
        currency=request.currency,
        capacity=request.capacity,
        description=request.description
    )
    return _room_to_response(room)


@app.get("/api/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    room_status: Optional[RoomStatus] = Query(default=None, alias="status"),
    room_type: Optional[RoomType] = None,
    min_capacity: Optional[int] = Query(default=None, ge=1),
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """List rooms, optionally filtered by status, type, capacity and price range"""
    rooms = await service.search_rooms(
        room_type=room_type,
        min_capacity=min_capacity,
        min_price=min_price,
        max_price=max_price,
        status=room_status
    )
    return [_room_to_response(r) for r in rooms]


@app.get("/api/rooms/available", response_model=List[RoomResponse], tags=["Rooms"])
async def get_available_rooms(
    check_in: date,
    check_out: date,
    min_guest_count: int = Query(default=1, ge=1),
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Rooms free for the whole stay and large enough for the party"""
    rooms = await service.get_available_rooms(check_in, check_out, min_guest_count)
    return [_room_to_response(r) for r in rooms]


@app.get("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Get room by ID"""
    return _room_to_response(await service.get_room(room_id))


@app.put("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: UpdateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Update room catalog data (staff only)"""
    room = await service.update_room(
        room_id=room_id,
        number=request.number,
        room_type=request.room_type,
        nightly_rate=request.nightly_rate,
        currency=request.currency,
        capacity=request.capacity,
        description=request.description
    )
    return _room_to_response(room)


@app.delete("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def delete_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Take a room out of service (soft delete)"""
    return _room_to_response(await service.delete_room(room_id, acting_user=current_user))


@app.put("/api/rooms/{room_id}/status", response_model=RoomResponse, tags=["Rooms"])
async def update_room_status(
    room_id: UUID,
    request: UpdateRoomStatusRequest,
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Manual room status change (staff only)"""
    room = await service.update_room_status(room_id, request.status, current_user, request.reason)
    return _room_to_response(room)


@app.post("/api/rooms/{room_id}/status/sync", response_model=RoomResponse, tags=["Rooms"])
async def synchronize_room_status(
    room_id: UUID,
    container: SchedulerContainer = Depends(get_container),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Re-derive a room's status from its reservations"""
    async with container.unit_of_work.room_transaction(room_id):
        room = await container.status_coordinator.synchronize(room_id)
    return _room_to_response(room)


@app.get("/api/rooms/{room_id}/status/history", response_model=List[RoomStatusUpdateResponse], tags=["Rooms"])
async def get_room_status_history(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Status audit trail, newest first"""
    updates = await service.get_room_status_history(room_id)
    return [_status_update_to_response(u) for u in updates]


@app.get("/api/rooms/{room_id}/availability", response_model=AvailabilityResponse, tags=["Rooms"])
async def check_room_availability(
    room_id: UUID,
    check_in: date,
    check_out: date,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Check whether a room is free for [check_in, check_out)"""
    available = await service.is_room_available(room_id, check_in, check_out)
    return AvailabilityResponse(room_id=room_id, check_in=check_in, check_out=check_out, available=available)


@app.post("/api/pricing/quote", response_model=PriceQuoteResponse, tags=["Rooms"])
async def quote_price(
    request: PriceQuoteRequest,
    container: SchedulerContainer = Depends(get_container),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Price breakdown for a prospective stay"""
    if request.check_out <= request.check_in:
        raise BusinessRuleError("Check-out date must be after check-in date")
    room = await container.room_service.get_room(request.room_id)
    quote = container.pricing.quote(room, request.check_in, request.check_out, request.guest_count)
    return PriceQuoteResponse(
        room_id=room.room_id,
        nights=quote.nights,
        base=quote.base,
        extra_guest_surcharge=quote.extra_guest_surcharge,
        subtotal=quote.subtotal,
        tax=quote.tax,
        total=quote.total,
        currency=quote.currency
    )

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Create new reservation"""
    client_id = request.client_id or current_user.user_id
    if client_id != current_user.user_id and not current_user.is_staff:
        raise HTTPException(status_code=403, detail="You can only create reservations for yourself")

    settings = get_settings()
    reservation = await retry_on_conflict(
        lambda: service.create_reservation(
            room_id=request.room_id,
            client_id=client_id,
            check_in=request.check_in,
            check_out=request.check_out,
            guest_count=request.guest_count,
            currency=request.currency
        ),
        attempts=settings.conflict_retry_attempts,
        backoff_seconds=settings.conflict_retry_backoff_seconds
    )
    return _reservation_to_response(reservation)


@app.get("/api/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def list_reservations(
    reservation_status: Optional[ReservationStatus] = Query(default=None, alias="status"),
    room_id: Optional[UUID] = None,
    check_in_from: Optional[date] = None,
    check_in_to: Optional[date] = None,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Staff see every reservation; guests see their own"""
    if not current_user.is_staff:
        reservations = await service.get_reservations_by_client(current_user.user_id)
    elif room_id is not None:
        reservations = await service.get_reservations_by_room(room_id)
    elif check_in_from is not None and check_in_to is not None:
        reservations = await service.get_reservations_by_date_range(check_in_from, check_in_to)
    elif reservation_status is not None:
        reservations = await service.get_reservations_by_status(reservation_status)
    else:
        reservations = await service.get_all_reservations()

    if reservation_status is not None:
        reservations = [r for r in reservations if r.status == reservation_status]
    if check_in_from is not None:
        reservations = [r for r in reservations if r.check_in >= check_in_from]
    if check_in_to is not None:
        reservations = [r for r in reservations if r.check_in <= check_in_to]
    return [_reservation_to_response(r) for r in reservations]


@app.get("/api/reservations/upcoming", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_upcoming_reservations(
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Reservations checking in today or later, any status"""
    return [_reservation_to_response(r) for r in await service.get_upcoming_reservations()]


@app.get("/api/reservations/active", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_active_reservations(
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Guests currently in house"""
    return [_reservation_to_response(r) for r in await service.get_active_reservations()]


@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    _ensure_owner_or_staff(reservation, current_user, "view")
    return _reservation_to_response(reservation)


@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Change dates, guest count or currency"""
    _ensure_owner_or_staff(await service.get_reservation(reservation_id), current_user, "update")

    settings = get_settings()
    reservation = await retry_on_conflict(
        lambda: service.update_reservation(
            reservation_id=reservation_id,
            check_in=request.check_in,
            check_out=request.check_out,
            guest_count=request.guest_count,
            currency=request.currency
        ),
        attempts=settings.conflict_retry_attempts,
        backoff_seconds=settings.conflict_retry_backoff_seconds
    )
    return _reservation_to_response(reservation)


@app.post("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_active_user)
):
    """Cancel reservation"""
    _ensure_owner_or_staff(await service.get_reservation(reservation_id), current_user, "cancel")

    settings = get_settings()
    reservation = await retry_on_conflict(
        lambda: service.cancel_reservation(reservation_id, request.reason),
        attempts=settings.conflict_retry_attempts,
        backoff_seconds=settings.conflict_retry_backoff_seconds,
        exhausted_message="Reservation is busy, please try again"
    )
    return _reservation_to_response(reservation)


@app.post("/api/reservations/{reservation_id}/reassign", response_model=ReservationResponse, tags=["Reservations"])
async def reassign_reservation(
    reservation_id: UUID,
    request: ReassignReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Move reservation to another room (staff only)"""
    settings = get_settings()
    reservation = await retry_on_conflict(
        lambda: service.reassign_reservation(reservation_id, request.room_id),
        attempts=settings.conflict_retry_attempts,
        backoff_seconds=settings.conflict_retry_backoff_seconds
    )
    return _reservation_to_response(reservation)


@app.post("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    """Confirm reservation; always rejected since reservations are born confirmed"""
    return _reservation_to_response(await service.confirm_reservation(reservation_id))

# ============================================================================
# STATISTICS ENDPOINTS
# ============================================================================

@app.get("/api/statistics/reservations", response_model=ReservationStatisticsResponse, tags=["Statistics"])
async def get_reservation_statistics(
    reporter: StatisticsReporter = Depends(get_statistics_reporter),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    stats = await reporter.get_reservation_statistics()
    return ReservationStatisticsResponse(
        total_reservations=stats.total_reservations,
        confirmed_reservations=stats.confirmed_reservations,
        cancelled_reservations=stats.cancelled_reservations,
        total_revenue=stats.total_revenue,
        average_price=stats.average_price,
        revenue_by_currency=stats.revenue_by_currency,
        confirmation_rate=stats.confirmation_rate,
        cancellation_rate=stats.cancellation_rate
    )


@app.get("/api/statistics/rooms", response_model=RoomStatisticsResponse, tags=["Statistics"])
async def get_room_statistics(
    reporter: StatisticsReporter = Depends(get_statistics_reporter),
    current_user: AuthenticatedUser = Depends(get_current_staff_user)
):
    stats = await reporter.get_room_statistics()
    return RoomStatisticsResponse(
        total_rooms=stats.total_rooms,
        available_rooms=stats.available_rooms,
        occupied_rooms=stats.occupied_rooms,
        out_of_service_rooms=stats.out_of_service_rooms
    )

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _ensure_owner_or_staff(reservation: Reservation, user: AuthenticatedUser, action: str) -> None:
    if not user.is_staff and reservation.client_id != user.user_id:
        raise HTTPException(status_code=403, detail=f"You can only {action} your own reservations")


def _room_to_response(room: Room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        number=room.number,
        room_type=room.room_type.value,
        nightly_rate=room.nightly_rate.amount,
        currency=room.nightly_rate.currency,
        capacity=room.capacity,
        status=room.status.value,
        description=room.description,
        created_at=room.created_at,
        updated_at=room.updated_at,
        version=room.version
    )


def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        client_id=reservation.client_id,
        room_id=reservation.room_id,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
        nights=reservation.get_nights(),
        guest_count=reservation.guest_count,
        total_price=reservation.total_price.amount,
        currency=reservation.total_price.currency,
        status=reservation.status.value,
        cancellation_reason=reservation.cancellation_reason,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )


def _status_update_to_response(update: RoomStatusUpdate) -> RoomStatusUpdateResponse:
    """Convert RoomStatusUpdate entity to its DTO"""
    return RoomStatusUpdateResponse(
        update_id=update.update_id,
        room_id=update.room_id,
        previous_status=update.previous_status.value,
        new_status=update.new_status.value,
        reason=update.reason,
        updated_by=update.updated_by,
        updated_by_name=update.updated_by_name,
        is_automatic=update.is_automatic,
        updated_at=update.updated_at
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
