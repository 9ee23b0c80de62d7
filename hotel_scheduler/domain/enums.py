"""Domain Enums"""
from enum import Enum


class RoomType(str, Enum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    DELUXE = "DELUXE"
    FAMILY = "FAMILY"
    SUITE = "SUITE"


class RoomStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class ReservationStatus(str, Enum):
    # No PENDING: every reservation is confirmed when it is created
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    BUSINESS_RULE = "BUSINESS_RULE"
    CONFLICT = "CONFLICT"
