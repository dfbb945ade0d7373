from datetime import datetime, timezone

import pytest

from reflights.formatting import (
    describe_rule,
    flight_progress,
    format_amount,
    format_time_until,
    policy_lines,
    render_eligibility,
    status_color,
    urgency,
)
from reflights.models import RefundEligibility, RefundRule, Ticket
from reflights.policy_provider import AIRLINE_POLICIES


def make_ticket(price=1.0):
    return Ticket(
        id="TKT-001",
        flight_number="SL 1234",
        airline="SkyLink Airways",
        departure_time=datetime(2024, 12, 15, 14, 30, tzinfo=timezone.utc),
        price=price,
    )


@pytest.mark.parametrize(
    "hours,text",
    [
        (0.5, "30 minutes"),
        (0, "0 minutes"),
        (1, "1 hours"),
        (23.9, "23 hours"),
        (24, "1 days"),
        (80, "3 days"),
    ],
)
def test_format_time_until(hours, text):
    assert format_time_until(hours) == text


def test_format_amount():
    assert format_amount(0.7125) == "0.7125 AVAX"
    assert format_amount(1, currency="ETH", places=2) == "1.00 ETH"


@pytest.mark.parametrize(
    "percentage,color",
    [(100, "green"), (80, "green"), (75, "yellow"), (50, "yellow"), (25, "orange"), (0, "red")],
)
def test_status_color(percentage, color):
    assert status_color(RefundEligibility(eligible=percentage > 0, percentage=percentage)) == color


def test_status_color_without_result():
    assert status_color(None) == "gray"
    assert status_color(RefundEligibility(eligible=False, reason="x")) == "gray"


def test_urgency():
    assert urgency(30) == "default"
    assert urgency(10) == "secondary"
    assert urgency(2) == "destructive"


def test_flight_progress_clamped():
    assert flight_progress(168) == 0
    assert flight_progress(84) == pytest.approx(50)
    assert flight_progress(0) == 100
    assert flight_progress(500) == 0


def test_policy_lines():
    lines = policy_lines(AIRLINE_POLICIES["SkyLink Airways"])
    assert lines[0] == "24+ hours before departure: 100% (Full refund available)"
    assert describe_rule(RefundRule(timeframe="0-2 hours", percentage=25)) == (
        "0-2 hours before departure: 25%"
    )


def test_render_eligible_breakdown():
    rule = AIRLINE_POLICIES["SkyLink Airways"].rules[1]
    result = RefundEligibility(
        eligible=True,
        percentage=75,
        refund_amount=0.7125,
        processing_fee=0.0375,
        rule=rule,
        hours_until_flight=10,
        estimated_processing_time="2-4 hours",
    )
    text = render_eligibility(make_ticket(), result)
    assert "75% refund available" in text
    assert "0.7500 AVAX" in text
    assert "-0.0375 AVAX" in text
    assert "0.7125 AVAX" in text
    assert "Partial refund with fee" in text
    assert "2-4 hours" in text


def test_render_not_eligible_and_not_found():
    rule = RefundRule(timeframe="0-2 hours", percentage=0)
    no_refund = RefundEligibility(
        eligible=False, percentage=0, refund_amount=0.0, processing_fee=0.01, rule=rule
    )
    assert render_eligibility(make_ticket(), no_refund) == "No refund available for this timeframe"

    missing = RefundEligibility(eligible=False, reason="Airline policy not found")
    assert render_eligibility(make_ticket(), missing) == "Airline policy not found"
