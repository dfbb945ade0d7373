from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from .config import get_settings
from .models import RefundPolicy, RefundRecord, RefundStatus

logger = logging.getLogger(__name__)


class ReflightsApiError(RuntimeError):
    """Error talking to the reFlights backend."""


class ReflightsClient:
    """
    Client for the refund endpoints of the reFlights backend.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout if timeout is not None else settings.http_timeout_s

    # ──────────────────────────────────────────────────────────

    def fetch_refund_policy(self, airline: str) -> Optional[RefundPolicy]:
        """Return the airline's refund policy, or ``None`` for an empty body."""
        url = f"{self.base_url}/airlines/{quote(airline, safe='')}/refund-policy"
        logger.info("Fetching refund policy for %s", airline)
        data = self._request("GET", url)
        if not data:
            return None

        try:
            return RefundPolicy.model_validate(data)
        except ValidationError as exc:
            logger.warning("Rejecting malformed policy for %s: %s", airline, exc)
            raise ReflightsApiError(
                f"Malformed refund policy for {airline}"
            ) from exc

    def get_user_refunds(self) -> list[RefundRecord]:
        """Return the user's refund history, skipping incomplete rows."""
        data = self._request("GET", f"{self.base_url}/user/refunds")
        if isinstance(data, dict):
            data = data.get("data") or data.get("refunds") or []
        records = [self._to_record(item) for item in data or []]
        return [rec for rec in records if rec]

    def claim_refund(self, refund_id: str) -> Any:
        logger.info("Claiming refund %s", refund_id)
        url = f"{self.base_url}/api/refunds/{quote(refund_id, safe='')}/claim"
        return self._request("POST", url)

    def track_refund(self, refund_id: str) -> Any:
        url = f"{self.base_url}/api/refunds/{quote(refund_id, safe='')}/track"
        return self._request("GET", url)

    # ──────────────────────────────────────────────────────────

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, url: str) -> Any:
        try:
            if method == "POST":
                resp = requests.post(
                    url, json={}, timeout=self.timeout, headers=self._headers()
                )
            else:
                resp = requests.get(url, timeout=self.timeout, headers=self._headers())
        except requests.RequestException as exc:
            raise ReflightsApiError(f"Request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise ReflightsApiError(
                f"HTTP {resp.status_code} – {resp.text[:120]}"
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise ReflightsApiError("Invalid JSON in response") from exc

    def _to_record(self, item: Any) -> RefundRecord | None:
        """Map a JSON row onto a RefundRecord; incomplete rows give ``None``."""
        if not isinstance(item, dict) or not item.get("id"):
            return None

        try:
            request_date = _parse_date(item.get("requestDate"))
            processed = _parse_date(item.get("processedDate"))
            estimated = _parse_date(item.get("estimatedProcessing"))
            original_price = float(item.get("originalPrice", 0.0))
            refund_amount = float(item.get("refundAmount", 0.0))
            refund_percentage = int(item.get("refundPercentage", 0))
        except (TypeError, ValueError):
            return None

        try:
            status = RefundStatus(str(item.get("status", "")).lower())
        except ValueError:
            status = RefundStatus.UNKNOWN

        return RefundRecord(
            id=str(item["id"]),
            ticket_id=str(item.get("ticketId") or ""),
            status=status,
            airline=item.get("airline") or "",
            flight_number=item.get("flightNumber") or "",
            original_price=original_price,
            refund_amount=refund_amount,
            refund_percentage=refund_percentage,
            request_date=request_date,
            reason=item.get("reason") or "",
            processed_date=processed,
            estimated_processing=estimated,
        )


def _parse_date(raw: str | None) -> dt.date | None:
    if not raw:
        return None
    return dt.date.fromisoformat(str(raw)[:10])


__all__ = ["ReflightsClient", "ReflightsApiError"]
