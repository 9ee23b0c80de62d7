"""Domain Value Objects"""
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DateRange(BaseModel):
    """Value Object for a stay: nights in [check_in, check_out)"""
    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_out_after_check_in(self) -> "DateRange":
        if self.check_out <= self.check_in:
            raise ValueError("Check-out date must be after check-in date")
        return self

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        """Half-open overlap; a checkout and a check-in on the same day do not clash"""
        return overlaps(self.check_in, self.check_out, other.check_in, other.check_out)

    def contains(self, day: date) -> bool:
        return self.check_in <= day < self.check_out


def overlaps(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """[start_a, end_a) and [start_b, end_b) intersect iff start_a < end_b and start_b < end_a"""
    return start_a < end_b and start_b < end_a


class Money(BaseModel):
    """Value Object for monetary amounts tagged with a single currency"""
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(ge=0)
    currency: str = "USD"

    @field_validator("currency")
    @classmethod
    def currency_is_iso_code(cls, v: str) -> str:
        if not is_currency_code(v):
            raise ValueError("Currency must be a 3-letter code (e.g., USD, EUR)")
        return v.upper()

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


def is_currency_code(value) -> bool:
    return isinstance(value, str) and len(value) == 3 and value.isascii() and value.isalpha()
