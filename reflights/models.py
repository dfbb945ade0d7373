"""Data models used throughout the project."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

_OPEN_ENDED = re.compile(r"^\s*(\d+)\s*\+")
_BOUNDED = re.compile(r"^\s*(\d+)\s*-\s*(\d+)")


def parse_timeframe(timeframe: str) -> Tuple[float, float]:
    """Return the ``[lower, upper)`` hour interval encoded by *timeframe*.

    ``"24+ hours"`` is ``[24, inf)`` and ``"2-24 hours"`` is ``[2, 24)``.
    Anything after the numbers is ignored.
    """
    m = _OPEN_ENDED.match(timeframe)
    if m:
        return float(m.group(1)), math.inf
    m = _BOUNDED.match(timeframe)
    if m:
        lower, upper = float(m.group(1)), float(m.group(2))
        if lower >= upper:
            raise ValueError(
                f"timeframe {timeframe!r} has an empty interval"
            )
        return lower, upper
    raise ValueError(f"unparseable timeframe {timeframe!r}")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        ts = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class RefundRule(BaseModel):
    """One row of an airline policy: hour window, percentage, description."""

    model_config = ConfigDict(frozen=True)

    timeframe: str
    percentage: int = Field(ge=0, le=100)
    description: str = ""

    @field_validator("timeframe")
    @classmethod
    def _timeframe_parses(cls, v: str) -> str:
        parse_timeframe(v)
        return v

    @property
    def bounds(self) -> Tuple[float, float]:
        return parse_timeframe(self.timeframe)

    def matches(self, hours: float) -> bool:
        lower, upper = self.bounds
        return lower <= hours < upper


class RefundPolicy(BaseModel):
    """Airline refund policy; rules are evaluated in listed order."""

    model_config = ConfigDict(frozen=True)

    airline: str
    rules: List[RefundRule] = Field(min_length=1)


class SeatClass(str, Enum):
    ECONOMY = "economy"
    BUSINESS = "business"
    FIRST = "first"


@dataclass(slots=True, frozen=True)
class Ticket:
    id: str
    flight_number: str
    airline: str
    departure_time: datetime
    price: float
    booking_time: Optional[datetime] = None
    seat_class: SeatClass = SeatClass.ECONOMY

    def __post_init__(self) -> None:
        if not math.isfinite(self.price):
            raise ValueError("ticket price must be a finite number")
        if self.price < 0:
            raise ValueError("ticket price must not be negative")

    @classmethod
    def from_dict(cls, data: dict) -> "Ticket":
        """Build a ticket from the backend's camelCase JSON."""
        booked = data.get("bookingTime")
        return cls(
            id=str(data["id"]),
            flight_number=data.get("flightNumber", ""),
            airline=data["airline"],
            departure_time=parse_timestamp(data["departureTime"]),
            price=float(data["price"]),
            booking_time=parse_timestamp(booked) if booked else None,
            seat_class=SeatClass(str(data.get("class", "economy")).lower()),
        )


@dataclass(slots=True)
class RefundEligibility:
    eligible: bool
    percentage: Optional[int] = None
    refund_amount: Optional[float] = None
    processing_fee: Optional[float] = None
    rule: Optional[RefundRule] = None
    hours_until_flight: Optional[int] = None
    estimated_processing_time: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        if self.rule is None:
            return {"eligible": self.eligible, "reason": self.reason}
        return {
            "eligible": self.eligible,
            "percentage": self.percentage,
            "refundAmount": self.refund_amount,
            "processingFee": self.processing_fee,
            "rule": self.rule.model_dump(),
            "hoursUntilFlight": self.hours_until_flight,
            "estimatedProcessingTime": self.estimated_processing_time,
        }


@dataclass(slots=True, frozen=True)
class RefundRequest:
    ticket_id: str
    refund_amount: float
    reason: str
    policy: RefundRule

    def to_dict(self) -> dict:
        return {
            "ticketId": self.ticket_id,
            "refundAmount": self.refund_amount,
            "reason": self.reason,
            "policy": self.policy.model_dump(),
        }


class RefundStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class RefundRecord:
    id: str
    ticket_id: str
    status: RefundStatus
    airline: str
    flight_number: str
    original_price: float
    refund_amount: float
    refund_percentage: int
    request_date: Optional[date]
    reason: str
    processed_date: Optional[date] = None
    estimated_processing: Optional[date] = None


__all__ = [
    "parse_timeframe",
    "parse_timestamp",
    "RefundRule",
    "RefundPolicy",
    "SeatClass",
    "Ticket",
    "RefundEligibility",
    "RefundRequest",
    "RefundStatus",
    "RefundRecord",
]
