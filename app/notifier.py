"""HTTP client for the escalation endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .escalation import EscalationEvent, NotificationResult
from .timestamps import to_iso

ALERT_ENDPOINT = "/api/alert-operator"


def build_alert_payload(event: EscalationEvent) -> Dict[str, Any]:
    """Return the JSON body expected by ``POST /api/alert-operator``.

    ``escalationLevel`` carries the level chosen by the monitor; the
    endpoint sends that level's e-mail.
    """

    payload = {
        "operateurNom": event.operator_name,
        "nombreOccurrences": event.defect_count,
        "previousOccurrences": event.previous_count,
        "escalationLevel": event.threshold_level,
        "timestamp": to_iso(event.occurred_at),
        "defectType": event.defect_type,
    }
    if event.operator_id is not None:
        payload["operatorId"] = event.operator_id
    return payload


def _error_message(resp: httpx.Response, body: Any) -> str:
    if isinstance(body, dict) and body.get("error"):
        details = body.get("details")
        return f"{body['error']}: {details}" if details else str(body["error"])
    return f"Alert endpoint answered HTTP {resp.status_code}"


class HttpEscalationNotifier:
    """Deliver escalation events to the alert endpoint service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.logger = logger or logging.getLogger(__name__)

    def notify(self, event: EscalationEvent) -> NotificationResult:
        payload = build_alert_payload(event)
        self.logger.info("Sending escalation for %s to %s.", event.operator_name, self.base_url)
        try:
            with httpx.Client(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = client.post(
                    ALERT_ENDPOINT,
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            return NotificationResult(success=False, error=str(exc))

        try:
            body = resp.json()
        except ValueError as exc:
            if resp.is_error:
                return NotificationResult(success=False, error=_error_message(resp, None))
            return NotificationResult(success=False, error=f"Invalid response body: {exc}")

        if resp.is_error or not isinstance(body, dict) or not body.get("success"):
            return NotificationResult(success=False, error=_error_message(resp, body))
        if not body.get("emailId"):
            # A 200 without an e-mail id means the endpoint decided not to alert.
            return NotificationResult(
                success=False, error=body.get("message") or "Alert endpoint sent no e-mail"
            )
        return NotificationResult(success=True, message_id=body["emailId"])


__all__ = ["ALERT_ENDPOINT", "HttpEscalationNotifier", "build_alert_payload"]
