"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import Dict, Optional

from hotel_scheduler.domain.enums import RoomType, RoomStatus


# ============================================================================
# ROOM SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    number: str = Field(min_length=1, max_length=20)
    room_type: RoomType
    nightly_rate: Decimal = Field(ge=0)
    currency: str = "USD"
    capacity: int = Field(ge=1)
    description: Optional[str] = None


class UpdateRoomRequest(CreateRoomRequest):
    """Update room request DTO"""
    pass


class UpdateRoomStatusRequest(BaseModel):
    """Manual room status change DTO"""
    status: RoomStatus
    reason: str = "Status updated"


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    number: str
    room_type: str
    nightly_rate: Decimal
    currency: str
    capacity: int
    status: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    version: int


class RoomStatusUpdateResponse(BaseModel):
    """Room status audit entry DTO"""
    update_id: UUID
    room_id: UUID
    previous_status: str
    new_status: str
    reason: str
    updated_by: UUID
    updated_by_name: str
    is_automatic: bool
    updated_at: datetime


class AvailabilityResponse(BaseModel):
    """Room availability DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    available: bool


class PriceQuoteRequest(BaseModel):
    """Price quote request DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    guest_count: int = Field(ge=1)


class PriceQuoteResponse(BaseModel):
    """Price breakdown DTO"""
    room_id: UUID
    nights: int
    base: Decimal
    extra_guest_surcharge: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO

    ``client_id`` defaults to the authenticated user; only staff may book on
    behalf of someone else.
    """
    room_id: UUID
    client_id: Optional[UUID] = None
    check_in: date
    check_out: date
    guest_count: int
    currency: str = "USD"


class UpdateReservationRequest(BaseModel):
    """Update reservation request DTO"""
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guest_count: Optional[int] = None
    currency: Optional[str] = None


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: str = "Guest changed plans"


class ReassignReservationRequest(BaseModel):
    """Move reservation to another room"""
    room_id: UUID


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    client_id: UUID
    room_id: UUID
    check_in: date
    check_out: date
    nights: int
    guest_count: int
    total_price: Decimal
    currency: str
    status: str
    cancellation_reason: Optional[str] = None
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# STATISTICS SCHEMAS
# ============================================================================

class ReservationStatisticsResponse(BaseModel):
    total_reservations: int
    confirmed_reservations: int
    cancelled_reservations: int
    total_revenue: Decimal
    average_price: Decimal
    revenue_by_currency: Dict[str, Decimal]
    confirmation_rate: Decimal
    cancellation_rate: Decimal


class RoomStatisticsResponse(BaseModel):
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    out_of_service_rooms: int


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool
    role: str
