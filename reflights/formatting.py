from __future__ import annotations

import math
from typing import List, Optional

from .models import RefundEligibility, RefundPolicy, RefundRule, Ticket

# Countdown progress is measured against the last week before departure.
PROGRESS_WINDOW_H = 168


def format_time_until(hours: float) -> str:
    """Human text for the time left before departure."""
    if hours < 1:
        return f"{math.floor(hours * 60)} minutes"
    if hours < 24:
        return f"{math.floor(hours)} hours"
    return f"{math.floor(hours / 24)} days"


def format_amount(value: float, currency: str = "AVAX", places: int = 4) -> str:
    return f"{value:.{places}f} {currency}"


def status_color(eligibility: Optional[RefundEligibility]) -> str:
    if eligibility is None or eligibility.percentage is None:
        return "gray"
    if eligibility.percentage >= 80:
        return "green"
    if eligibility.percentage >= 50:
        return "yellow"
    if eligibility.percentage > 0:
        return "orange"
    return "red"


def urgency(hours: float) -> str:
    """Badge variant for the countdown."""
    if hours > 24:
        return "default"
    if hours > 2:
        return "secondary"
    return "destructive"


def flight_progress(hours: float, window_h: float = PROGRESS_WINDOW_H) -> float:
    """Percentage of the countdown window already elapsed, 0-100."""
    return max(0.0, min(100.0, 100.0 - (hours / window_h) * 100.0))


def describe_rule(rule: RefundRule) -> str:
    text = f"{rule.timeframe} before departure: {rule.percentage}%"
    if rule.description:
        text += f" ({rule.description})"
    return text


def policy_lines(policy: RefundPolicy) -> List[str]:
    return [describe_rule(rule) for rule in policy.rules]


def render_eligibility(
    ticket: Ticket,
    eligibility: RefundEligibility,
    currency: str = "AVAX",
) -> str:
    """Multi-line refund breakdown for *ticket*."""
    if eligibility.rule is None:
        return eligibility.reason or "Unable to calculate refund eligibility"

    if not eligibility.eligible:
        return "No refund available for this timeframe"

    gross = ticket.price * eligibility.percentage / 100
    lines = [
        f"{eligibility.percentage}% refund available",
        f"Original price:   {ticket.price} {currency}",
        f"Refund rate ({eligibility.percentage}%): {format_amount(gross, currency)}",
        f"Processing fee:   -{format_amount(eligibility.processing_fee, currency)}",
        f"Final refund:     {format_amount(eligibility.refund_amount, currency)}",
        f"{ticket.airline} policy: {eligibility.rule.description}",
        f"Estimated processing: {eligibility.estimated_processing_time}",
    ]
    return "\n".join(lines)


__all__ = [
    "PROGRESS_WINDOW_H",
    "format_time_until",
    "format_amount",
    "status_color",
    "urgency",
    "flight_progress",
    "describe_rule",
    "policy_lines",
    "render_eligibility",
]
