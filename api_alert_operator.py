from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from app.escalation import crossed_level
from app.mailer import render_escalation_email, send_email
from app.timestamps import normalize_timestamp, utc_now
from config.escalation import (
    ALLOW_HEADERS,
    ALLOW_METHODS,
    ALLOWED_ORIGINS,
    escalation_thresholds,
    level_config,
)

logger = logging.getLogger(__name__)

ALERT_PATH = "/api/alert-operator"
DEFAULT_DEFECT_TYPE = "Non spécifié"

app = FastAPI(title="Operator Escalation Alert API")


def _cors_headers(origin: Optional[str]) -> Dict[str, str]:
    if origin and origin in ALLOWED_ORIGINS:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }
    return {}


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in _cors_headers(request.headers.get("origin")).items():
        response.headers[name] = value
    return response


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body", "details": str(exc)},
    )


def _as_count(value: Any) -> int:
    """Integral values pass through, anything else counts as 0."""

    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return int(number) if number.is_integer() else 0


@app.options(ALERT_PATH)
def alert_operator_preflight():
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
        },
    )


@app.api_route(ALERT_PATH, methods=["GET", "PUT", "PATCH", "DELETE"])
def alert_operator_method_not_allowed():
    return JSONResponse(
        status_code=405,
        content={"success": False, "error": "Method not allowed. Use POST."},
        headers={"Allow": "POST, OPTIONS"},
    )


@app.post(ALERT_PATH)
def alert_operator(
    payload: Optional[Dict[str, Any]] = Body(default=None, examples=[{
        "operateurNom": "Jane Doe",
        "nombreOccurrences": 5,
        "previousOccurrences": 4,
        "defectType": "Fils blessés",
    }])
):
    payload = payload or {}
    operator_name = payload.get("operateurNom")
    if not operator_name:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Le nom de l'opérateur est requis (operateurNom)",
            },
        )

    current_count = _as_count(payload.get("nombreOccurrences", 0))
    previous_count = _as_count(payload.get("previousOccurrences", 0))
    defect_type = payload.get("defectType") or DEFAULT_DEFECT_TYPE
    alert_timestamp = normalize_timestamp(payload.get("timestamp")) or utc_now()

    logger.info(
        "Alert request for %s (%s): %s -> %s",
        operator_name,
        payload.get("operatorId") or "no id",
        previous_count,
        current_count,
    )

    requested_level = payload.get("escalationLevel")
    if requested_level is not None:
        level = _as_count(requested_level)
        if level not in escalation_thresholds():
            return JSONResponse(
                status_code=400,
                content={
                    "success": False,
                    "error": f"Unknown escalation level: {requested_level}",
                },
            )
    else:
        level = crossed_level(previous_count, current_count, escalation_thresholds())
    if level is None:
        return {
            "success": True,
            "message": "No alert needed - no threshold crossed",
            "operator": operator_name,
            "defectCount": current_count,
            "previousCount": previous_count,
            "defectType": defect_type,
            "timestamp": alert_timestamp.isoformat(),
        }

    config = level_config(level)
    email = render_escalation_email(
        config,
        {
            "operator_name": operator_name,
            "defect_count": current_count,
            "defect_type": defect_type,
            "timestamp": alert_timestamp.strftime("%d/%m/%Y %H:%M"),
        },
    )
    try:
        email_id = send_email(
            email_to=config.recipients,
            subject=email.subject,
            html_content=email.html_content,
        )
    except Exception as exc:
        logger.error("Level %s alert for %s failed: %s", level, operator_name, exc)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
                "details": str(exc),
                "timestamp": utc_now().isoformat(),
            },
        )

    logger.warning(
        "Level %s escalation sent for %s (%s defects).", level, operator_name, current_count
    )
    return {
        "success": True,
        "message": f"Level {level} escalation alert sent for operator {operator_name}",
        "emailId": email_id,
        "operator": operator_name,
        "operatorId": payload.get("operatorId"),
        "defectCount": current_count,
        "escalationLevel": level,
        "recipients": ", ".join(config.recipients),
        "timestamp": alert_timestamp.isoformat(),
    }


# To run locally:
#   uvicorn api_alert_operator:app --reload --port 3001
