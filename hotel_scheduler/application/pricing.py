"""Stay pricing"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from hotel_scheduler.config import Settings
from hotel_scheduler.domain.entities import Room

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    nights: int
    base: Decimal
    extra_guest_surcharge: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str


class PricingCalculator:
    """Price of a stay from nightly rate, length and guest count.

    Pure arithmetic: the caller has already checked that check-out is after
    check-in.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.tax_rate = settings.tax_rate
        self.extra_guest_fee = settings.extra_guest_fee
        self.base_occupancy = settings.base_occupancy

    def quote(self, room: Room, check_in: date, check_out: date, guest_count: int) -> PriceBreakdown:
        nights = (check_out - check_in).days
        base = room.nightly_rate.amount * nights

        extra_guests = max(0, guest_count - self.base_occupancy)
        surcharge = self.extra_guest_fee * extra_guests * nights

        subtotal = base + surcharge
        tax = subtotal * self.tax_rate
        total = (subtotal + tax).quantize(CENTS, rounding=ROUND_HALF_UP)

        return PriceBreakdown(
            nights=nights,
            base=base.quantize(CENTS, rounding=ROUND_HALF_UP),
            extra_guest_surcharge=surcharge.quantize(CENTS, rounding=ROUND_HALF_UP),
            subtotal=subtotal.quantize(CENTS, rounding=ROUND_HALF_UP),
            tax=tax.quantize(CENTS, rounding=ROUND_HALF_UP),
            total=total,
            currency=room.nightly_rate.currency
        )

    def calculate_price(self, room: Room, check_in: date, check_out: date, guest_count: int) -> Decimal:
        """Total charge, rounded half-up to cents"""
        return self.quote(room, check_in, check_out, guest_count).total
