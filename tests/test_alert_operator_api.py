import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import api_alert_operator
from config.escalation import ALLOWED_ORIGINS, level_config


@pytest.fixture
def sent(monkeypatch):
    messages = []

    def fake_send_email(*, email_to, subject, html_content):
        messages.append({"to": list(email_to), "subject": subject, "html": html_content})
        return "<message-1@example.com>"

    monkeypatch.setattr(api_alert_operator, "send_email", fake_send_email)
    return messages


@pytest.fixture
def client():
    return TestClient(api_alert_operator.app)


def test_missing_operator_name_is_rejected(client, sent):
    response = client.post("/api/alert-operator", json={"nombreOccurrences": 5})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "operateurNom" in response.json()["error"]
    assert sent == []


def test_no_threshold_crossed(client, sent):
    response = client.post(
        "/api/alert-operator",
        json={"operateurNom": "Alice", "nombreOccurrences": 4, "previousOccurrences": 3},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["message"].startswith("No alert needed")
    assert "escalationLevel" not in body
    assert sent == []


def test_jump_sends_single_highest_level_email(client, sent):
    response = client.post(
        "/api/alert-operator",
        json={
            "operateurNom": "Alice",
            "nombreOccurrences": 8,
            "previousOccurrences": 2,
            "defectType": "Fils blessés",
            "timestamp": "2024-06-01T08:00:00Z",
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert body["escalationLevel"] == 7
    assert body["emailId"] == "<message-1@example.com>"
    assert body["recipients"] == ", ".join(level_config(7).recipients)
    assert body["timestamp"] == "2024-06-01T08:00:00+00:00"
    assert len(sent) == 1
    assert sent[0]["to"] == list(level_config(7).recipients)
    assert "Alice" in sent[0]["subject"]
    assert "Niveau 3" in sent[0]["subject"]
    assert "Fils blessés" in sent[0]["html"]


def test_non_integer_counts_are_treated_as_zero(client, sent):
    response = client.post(
        "/api/alert-operator",
        json={"operateurNom": "Alice", "nombreOccurrences": "3", "previousOccurrences": "abc"},
    )

    assert response.json()["escalationLevel"] == 3

    response = client.post(
        "/api/alert-operator", json={"operateurNom": "Alice", "nombreOccurrences": 3.5}
    )
    assert response.json()["defectCount"] == 0


def test_send_failure_returns_500(client, monkeypatch):
    def failing_send_email(**kwargs):
        raise RuntimeError("SMTP delivery failed: auth")

    monkeypatch.setattr(api_alert_operator, "send_email", failing_send_email)

    response = client.post(
        "/api/alert-operator", json={"operateurNom": "Alice", "nombreOccurrences": 3}
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Internal server error"
    assert "auth" in body["details"]


def test_other_methods_are_not_allowed(client):
    response = client.get("/api/alert-operator")

    assert response.status_code == 405
    assert response.json() == {"success": False, "error": "Method not allowed. Use POST."}


def test_preflight_is_answered_directly(client):
    origin = ALLOWED_ORIGINS[0]
    response = client.options("/api/alert-operator", headers={"Origin": origin})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == origin
    assert "POST" in response.headers["access-control-allow-methods"]
    assert "Content-Type" in response.headers["access-control-allow-headers"]


def test_unknown_origin_is_not_echoed(client, sent):
    response = client.post(
        "/api/alert-operator",
        json={"operateurNom": "Alice", "nombreOccurrences": 1},
        headers={"Origin": "https://evil.example"},
    )

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_requested_level_is_used_as_is(client, sent):
    response = client.post(
        "/api/alert-operator",
        json={
            "operateurNom": "Alice",
            "nombreOccurrences": 2,
            "previousOccurrences": 0,
            "escalationLevel": 7,
            "operatorId": "M001",
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert body["escalationLevel"] == 7
    assert body["operatorId"] == "M001"
    assert body["recipients"] == ", ".join(level_config(7).recipients)
    assert sent[0]["to"] == list(level_config(7).recipients)


def test_unknown_requested_level_is_rejected(client, sent):
    response = client.post(
        "/api/alert-operator",
        json={"operateurNom": "Alice", "nombreOccurrences": 4, "escalationLevel": 4},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert sent == []
