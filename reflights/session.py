"""session.py – per-ticket refund state and the countdown refresh.

• ``RefundSession`` – policy load, recalculation, refund request
• ``RefundCountdown`` – APScheduler interval job calling ``RefundSession.tick``
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from .config import get_settings
from .models import RefundEligibility, RefundPolicy, RefundRequest, Ticket
from .policy_provider import PolicyLookup, PolicyProvider
from .refund_engine import calculate_refund, hours_until

logger = logging.getLogger(__name__)

DEFAULT_REFUND_REASON = "Passenger requested refund"


class RefundState(str, Enum):
    IDLE = "idle"
    CALCULATING = "calculating"
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"
    ERROR = "error"


class RefundNotEligibleError(ValueError):
    """Refund requested for a ticket without an eligible calculation."""


class RefundSession:
    """Refund state for one ticket.

    Policy loads are tagged with a generation number. A load that finishes
    after the ticket changed, or after a newer load started, is discarded.
    """

    def __init__(
        self,
        ticket: Ticket,
        provider: PolicyProvider | None = None,
        *,
        on_refund_request: Callable[[RefundRequest], None] | None = None,
    ) -> None:
        self.provider = provider or PolicyProvider()
        self.on_refund_request = on_refund_request
        self._lock = threading.RLock()
        self._generation = 0
        self.ticket = ticket
        self.lookup: Optional[PolicyLookup] = None
        self.policy_loading = False
        self.state = RefundState.IDLE
        self.eligibility: Optional[RefundEligibility] = None
        self.hours_until_flight = 0.0

    @property
    def policy(self) -> Optional[RefundPolicy]:
        with self._lock:
            if self.lookup is not None and self.lookup.policy is not None:
                return self.lookup.policy
            return self.provider.static_policy(self.ticket.airline)

    @property
    def policy_error(self) -> Optional[str]:
        with self._lock:
            return self.lookup.error if self.lookup else None

    def change_ticket(self, ticket: Ticket) -> None:
        with self._lock:
            self._generation += 1
            self.ticket = ticket
            self.lookup = None
            self.policy_loading = False
            self.eligibility = None
            self.state = RefundState.IDLE

    def load_policy(self, now: Optional[datetime] = None) -> PolicyLookup:
        """Fetch the ticket's policy, then recalculate if still current."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            airline = self.ticket.airline
            self.policy_loading = True
            self.state = RefundState.CALCULATING

        lookup = self.provider.fetch(airline)

        with self._lock:
            if generation != self._generation:
                logger.warning("Discarding stale %s policy load", airline)
                return lookup
            self.lookup = lookup
            self.policy_loading = False

        self.recalculate(now)
        return lookup

    def recalculate(self, now: Optional[datetime] = None) -> RefundEligibility:
        with self._lock:
            self.hours_until_flight = hours_until(self.ticket.departure_time, now)
            result = calculate_refund(self.ticket, self.policy, now)
            self.eligibility = result
            if result.rule is None:
                self.state = RefundState.ERROR
            elif result.eligible:
                self.state = RefundState.ELIGIBLE
            else:
                self.state = RefundState.INELIGIBLE
            return result

    def tick(self, now: Optional[datetime] = None) -> RefundEligibility:
        """Countdown refresh."""
        return self.recalculate(now)

    def request_refund(self, reason: str = DEFAULT_REFUND_REASON) -> RefundRequest:
        with self._lock:
            result = self.eligibility
            if result is None or not result.eligible or result.rule is None:
                raise RefundNotEligibleError(
                    f"Ticket {self.ticket.id} is not eligible for a refund"
                )
            request = RefundRequest(
                ticket_id=self.ticket.id,
                refund_amount=result.refund_amount,
                reason=reason,
                policy=result.rule,
            )

        logger.info(
            "Refund requested for %s: %.4f", request.ticket_id, request.refund_amount
        )
        if self.on_refund_request is not None:
            self.on_refund_request(request)
        return request


class RefundCountdown:
    """Re-run a session's calculation on a fixed interval."""

    def __init__(
        self,
        session: RefundSession,
        *,
        interval_s: int | None = None,
        scheduler: BaseScheduler | None = None,
        on_update: Callable[[RefundEligibility], None] | None = None,
    ) -> None:
        self.session = session
        self.interval_s = interval_s or get_settings().refresh_interval_s
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.on_update = on_update
        self._job = None

    def _run(self) -> None:
        result = self.session.tick()
        if self.on_update is not None:
            self.on_update(result)

    def start(self) -> None:
        if self._job is not None:
            return
        self._run()
        self._job = self.scheduler.add_job(
            self._run,
            "interval",
            seconds=self.interval_s,
            id=f"refund-countdown-{self.session.ticket.id}",
            replace_existing=True,
        )
        logger.info(
            "Refund countdown for %s every %ss",
            self.session.ticket.id,
            self.interval_s,
        )
        if not self.scheduler.running:
            self.scheduler.start()

    def stop(self) -> None:
        if self._job is not None:
            try:
                self._job.remove()
            except JobLookupError:
                logger.debug("Countdown job for %s already gone", self.session.ticket.id)
            self._job = None
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def __enter__(self) -> "RefundCountdown":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


__all__ = [
    "DEFAULT_REFUND_REASON",
    "RefundState",
    "RefundNotEligibleError",
    "RefundSession",
    "RefundCountdown",
]
