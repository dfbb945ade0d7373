# -*- coding: utf-8 -*-
"""
policy_provider – airline refund policies.

The backend policy service is asked first; when it fails or returns nothing
the built-in table below is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from .models import RefundPolicy, RefundRule
from .reflights_api import ReflightsApiError, ReflightsClient

logger = logging.getLogger(__name__)


def _policy(airline: str, *rules: tuple) -> RefundPolicy:
    return RefundPolicy(
        airline=airline,
        rules=[
            RefundRule(timeframe=tf, percentage=pct, description=desc)
            for tf, pct, desc in rules
        ],
    )


AIRLINE_POLICIES: dict[str, RefundPolicy] = {
    "SkyLink Airways": _policy(
        "SkyLink Airways",
        ("24+ hours", 100, "Full refund available"),
        ("2-24 hours", 75, "Partial refund with fee"),
        ("0-2 hours", 25, "Minimal refund only"),
    ),
    "ChainFly": _policy(
        "ChainFly",
        ("48+ hours", 100, "Full refund guaranteed"),
        ("4-48 hours", 80, "Good refund rate"),
        ("0-4 hours", 30, "Emergency refund only"),
    ),
    "AeroChain": _policy(
        "AeroChain",
        ("72+ hours", 95, "Near full refund"),
        ("6-72 hours", 70, "Standard refund"),
        ("0-6 hours", 20, "Last minute penalty"),
    ),
}


@dataclass(slots=True, frozen=True)
class PolicyLookup:
    airline: str
    policy: Optional[RefundPolicy]
    source: Optional[str]  # "remote", "static" or None
    error: Optional[str] = None


class PolicyProvider:
    """Resolve refund policies, remote first, static table second."""

    def __init__(
        self,
        client: ReflightsClient | None = None,
        static_policies: Mapping[str, RefundPolicy] | None = None,
    ) -> None:
        self.client = client or ReflightsClient()
        self.static_policies = (
            AIRLINE_POLICIES if static_policies is None else static_policies
        )

    def static_policy(self, airline: str) -> Optional[RefundPolicy]:
        return self.static_policies.get(airline)

    def fetch(self, airline: str) -> PolicyLookup:
        error: Optional[str] = None
        try:
            policy = self.client.fetch_refund_policy(airline)
        except ReflightsApiError as exc:
            logger.warning("Failed to load %s refund policy: %s", airline, exc)
            policy = None
            error = str(exc) or "Failed to load airline policy"

        if policy is not None:
            logger.info("Using remote refund policy for %s", airline)
            return PolicyLookup(airline, policy, "remote")

        fallback = self.static_policy(airline)
        if fallback is None:
            logger.warning("No refund policy available for %s", airline)
            return PolicyLookup(airline, None, None, error)

        logger.info("Using built-in refund policy for %s", airline)
        return PolicyLookup(airline, fallback, "static", error)


__all__ = ["AIRLINE_POLICIES", "PolicyLookup", "PolicyProvider"]
