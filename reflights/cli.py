from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

import click
from apscheduler.schedulers.blocking import BlockingScheduler

from .config import get_settings
from .formatting import (
    flight_progress,
    format_amount,
    format_time_until,
    policy_lines,
    render_eligibility,
)
from .models import RefundEligibility, SeatClass, Ticket, parse_timestamp
from .policy_provider import PolicyProvider
from .reflights_api import ReflightsApiError, ReflightsClient
from .session import RefundCountdown, RefundNotEligibleError, RefundSession

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    settings = get_settings()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=settings.log_level,
        handlers=handlers,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _ticket_options(func):
    options = [
        click.option("--ticket-file", type=click.File("r"), help="Ticket JSON (camelCase)"),
        click.option("--airline", help="Airline name, e.g. 'SkyLink Airways'"),
        click.option("--price", type=float, help="Ticket price"),
        click.option("--departure", help="Departure time (ISO 8601)"),
        click.option("--ticket-id", default="TKT-CLI", show_default=True),
        click.option("--flight-number", default=""),
        click.option(
            "--seat-class",
            type=click.Choice([c.value for c in SeatClass]),
            default=SeatClass.ECONOMY.value,
            show_default=True,
        ),
        click.option("--booked-at", help="Booking time (ISO 8601)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_ticket(
    ticket_file,
    airline: Optional[str],
    price: Optional[float],
    departure: Optional[str],
    ticket_id: str,
    flight_number: str,
    seat_class: str,
    booked_at: Optional[str],
) -> Ticket:
    try:
        if ticket_file is not None:
            return Ticket.from_dict(json.load(ticket_file))
        if not airline or price is None or not departure:
            raise click.UsageError(
                "give --ticket-file or all of --airline, --price, --departure"
            )
        return Ticket(
            id=ticket_id,
            flight_number=flight_number,
            airline=airline,
            departure_time=parse_timestamp(departure),
            price=price,
            booking_time=parse_timestamp(booked_at) if booked_at else None,
            seat_class=SeatClass(seat_class),
        )
    except (KeyError, ValueError) as exc:
        raise click.BadParameter(f"invalid ticket: {exc}") from exc


def _echo_status(session: RefundSession, result: RefundEligibility) -> None:
    hours = session.hours_until_flight
    click.echo(
        f"Time until departure: {format_time_until(hours)} "
        f"(progress {flight_progress(hours):.0f}%)"
    )
    click.echo(render_eligibility(session.ticket, result, get_settings().currency))


@click.group()
def cli() -> None:
    """Smart refund calculator for reFlights tickets."""
    _setup_logging()


@cli.command()
@click.argument("airline")
def policy(airline: str) -> None:
    """Show the refund policy used for AIRLINE."""
    lookup = PolicyProvider().fetch(airline)
    if lookup.error:
        click.echo(f"Policy service: {lookup.error}", err=True)
    if lookup.policy is None:
        raise click.ClickException("Airline policy not found")
    click.echo(f"{airline} refund policy ({lookup.source})")
    for line in policy_lines(lookup.policy):
        click.echo(f"  {line}")


@cli.command()
@_ticket_options
@click.option("--request", "make_request", is_flag=True, help="Print the refund request payload")
@click.option("--reason", default="Passenger requested refund", show_default=True)
def calculate(make_request: bool, reason: str, **ticket_args) -> None:
    """Calculate refund eligibility once."""
    ticket = _build_ticket(**ticket_args)
    session = RefundSession(ticket)
    session.load_policy()
    if session.policy_error:
        click.echo(f"Policy service: {session.policy_error}", err=True)
    _echo_status(session, session.eligibility)

    if make_request:
        try:
            request = session.request_refund(reason)
        except RefundNotEligibleError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(json.dumps(request.to_dict(), indent=2))


@cli.command()
@_ticket_options
def watch(**ticket_args) -> None:
    """Recalculate on the countdown interval until interrupted."""
    ticket = _build_ticket(**ticket_args)
    session = RefundSession(ticket)
    session.load_policy()
    if session.policy_error:
        click.echo(f"Policy service: {session.policy_error}", err=True)

    def _update(result: RefundEligibility) -> None:
        click.echo(f"--- {datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S} UTC")
        _echo_status(session, result)

    sched = BlockingScheduler(timezone="UTC")
    countdown = RefundCountdown(session, scheduler=sched, on_update=_update)
    try:
        countdown.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Countdown for %s stopped", ticket.id)
    finally:
        countdown.stop()
        if sched.running:
            sched.shutdown(wait=False)


@cli.command()
def refunds() -> None:
    """List refund history."""
    currency = get_settings().currency
    try:
        records = ReflightsClient().get_user_refunds()
    except ReflightsApiError as exc:
        raise click.ClickException(str(exc)) from exc
    if not records:
        click.echo("No refunds found")
        return
    for rec in records:
        click.echo(
            f"{rec.id} {rec.status.value:<8} {rec.airline} {rec.flight_number} "
            f"{format_amount(rec.refund_amount, currency)} "
            f"({rec.refund_percentage}%) {rec.reason}"
        )


@cli.command()
@click.argument("refund_id")
def claim(refund_id: str) -> None:
    """Claim an approved refund."""
    try:
        data = ReflightsClient().claim_refund(refund_id)
    except ReflightsApiError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(data, indent=2) if data is not None else f"Claimed {refund_id}")


@cli.command()
@click.argument("refund_id")
def track(refund_id: str) -> None:
    """Show processing status of a refund."""
    try:
        data = ReflightsClient().track_refund(refund_id)
    except ReflightsApiError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(data, indent=2))


if __name__ == "__main__":
    cli()
