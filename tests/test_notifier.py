import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.escalation import EscalationEvent
from app.notifier import ALERT_ENDPOINT, HttpEscalationNotifier, build_alert_payload


EVENT = EscalationEvent(
    operator_name="Alice",
    defect_count=5,
    threshold_level=5,
    previous_count=4,
    defect_type="Fils blessés",
    operator_id="M001",
    occurred_at=datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc),
)


def _notifier(handler):
    return HttpEscalationNotifier("http://alerts.test/", transport=httpx.MockTransport(handler))


def test_payload_uses_endpoint_field_names():
    assert build_alert_payload(EVENT) == {
        "operateurNom": "Alice",
        "nombreOccurrences": 5,
        "previousOccurrences": 4,
        "escalationLevel": 5,
        "timestamp": "2024-06-01T08:00:00+00:00",
        "defectType": "Fils blessés",
        "operatorId": "M001",
    }


def test_notify_posts_event_and_returns_message_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True, "emailId": "<abc@mail>"})

    result = _notifier(handler).notify(EVENT)

    assert result.success is True
    assert result.message_id == "<abc@mail>"
    assert seen[0].method == "POST"
    assert seen[0].url.path == ALERT_ENDPOINT
    assert json.loads(seen[0].content)["operateurNom"] == "Alice"


def test_http_error_becomes_failed_result():
    def handler(request):
        return httpx.Response(
            500,
            json={"success": False, "error": "Internal server error", "details": "smtp down"},
        )

    result = _notifier(handler).notify(EVENT)

    assert result.success is False
    assert result.error == "Internal server error: smtp down"


def test_http_error_without_json_body_reports_status():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    result = _notifier(handler).notify(EVENT)

    assert result.success is False
    assert "502" in result.error


def test_transport_error_becomes_failed_result():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = _notifier(handler).notify(EVENT)

    assert result.success is False
    assert "connection refused" in result.error


def test_unsuccessful_body_becomes_failed_result():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "no recipients"})

    result = _notifier(handler).notify(EVENT)

    assert result.success is False
    assert result.error == "no recipients"


def test_reply_without_email_id_is_a_failure():
    def handler(request):
        return httpx.Response(
            200, json={"success": True, "message": "No alert needed - no threshold crossed"}
        )

    result = _notifier(handler).notify(EVENT)

    assert result.success is False
    assert result.error.startswith("No alert needed")
