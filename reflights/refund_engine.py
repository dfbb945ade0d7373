from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from .models import RefundEligibility, RefundPolicy, RefundRule, Ticket

logger = logging.getLogger(__name__)

PROCESSING_FEE_RATE = 0.05
MIN_PROCESSING_FEE = 0.01
ESTIMATED_PROCESSING_TIME = "2-4 hours"
POLICY_NOT_FOUND = "Airline policy not found"


def hours_until(departure: datetime, now: Optional[datetime] = None) -> float:
    """Return fractional hours until *departure*, never below zero."""
    if now is None:
        now = datetime.now(timezone.utc)
    if departure.tzinfo is None:
        departure = departure.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0.0, (departure - now).total_seconds() / 3600.0)


def select_rule(policy: RefundPolicy, hours: float) -> RefundRule:
    """Return the first rule whose window contains *hours*.

    Falls back to the last rule when no window matches.
    """
    for rule in policy.rules:
        if rule.matches(hours):
            return rule
    logger.debug(
        "No %s rule covers %.2fh, using last rule", policy.airline, hours
    )
    return policy.rules[-1]


def processing_fee(gross: float) -> float:
    return max(MIN_PROCESSING_FEE, gross * PROCESSING_FEE_RATE)


def calculate_refund(
    ticket: Ticket,
    policy: Optional[RefundPolicy],
    now: Optional[datetime] = None,
) -> RefundEligibility:
    """Compute refund eligibility for *ticket* under *policy* at *now*."""

    hours = hours_until(ticket.departure_time, now)

    if policy is None:
        logger.info("No refund policy for %s", ticket.airline)
        return RefundEligibility(eligible=False, reason=POLICY_NOT_FOUND)

    rule = select_rule(policy, hours)

    gross = ticket.price * rule.percentage / 100
    fee = processing_fee(gross)
    final = max(0.0, gross - fee)

    logger.info(
        "Ticket %s: %.2fh to departure, rule %r -> %d%%",
        ticket.id,
        hours,
        rule.timeframe,
        rule.percentage,
    )
    return RefundEligibility(
        eligible=rule.percentage > 0,
        percentage=rule.percentage,
        refund_amount=final,
        processing_fee=fee,
        rule=rule,
        hours_until_flight=math.floor(hours),
        estimated_processing_time=ESTIMATED_PROCESSING_TIME,
    )


__all__ = [
    "PROCESSING_FEE_RATE",
    "MIN_PROCESSING_FEE",
    "ESTIMATED_PROCESSING_TIME",
    "POLICY_NOT_FOUND",
    "hours_until",
    "select_rule",
    "processing_fee",
    "calculate_refund",
]
