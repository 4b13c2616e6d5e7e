"""Escalation levels, e-mail templates and endpoint origins.

Each escalation level maps to a recipient list and a pair of jinja2
templates (subject and body).  The mapping is data: deployments can replace
or extend it through ``ESCALATION_LEVELS_JSON`` without touching the monitor
or the endpoint service.  Templates are rendered with ``operator_name``,
``defect_count``, ``level``, ``defect_type`` and ``timestamp``.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class EscalationLevel:
    """Recipients and templates for one escalation threshold."""

    threshold: int
    recipients: Tuple[str, ...]
    subject: str
    body: str
    badge_color: str = "#ffc107"
    # Dashboard classification of counts at or above this threshold.
    alert_label: str = "warning"
    alert_color: str = "#FFC300"


_DEFAULT_ESCALATION_LEVELS: Dict[int, EscalationLevel] = {
    3: EscalationLevel(
        threshold=3,
        recipients=("formateur.ligne@example.com", "agent.qualite@example.com"),
        subject=(
            "RE: Notification - Sensibilisation opérateur {{ operator_name }}"
            " - 3 défauts internes_Escalation_Niveau 1"
        ),
        body="""
Bonjour,<br><br>
L'opérateur <strong>{{ operator_name }}</strong> a atteint <strong>3 défauts internes</strong> aujourd'hui.<br><br>
Conformément à notre procédure, une sensibilisation sur terrain est requise, incluant :<br>
• Une reformation immédiate par le formateur ligne,<br>
• Un entretien avec le Shift Leader, l'agent qualité, et le coordinateur formateur,<br>
• La signature d'un engagement écrit par l'opérateur.<br><br>
Merci de planifier cette action dans les plus brefs délais.<br><br>
Cordialement,<br>
<strong>Service qualité</strong>
""",
        badge_color="#ffc107",
        alert_label="warning",
        alert_color="#FFC300",
    ),
    5: EscalationLevel(
        threshold=5,
        recipients=("responsable.segment@example.com", "responsable.qualite@example.com"),
        subject=(
            "RE: Notification - Sensibilisation opérateur {{ operator_name }}"
            " - 5 défauts internes_Escalation_Niveau 2"
        ),
        body="""
Bonjour,<br><br>
L'opérateur <strong>{{ operator_name }}</strong> a atteint <strong>5 défauts internes</strong> aujourd'hui.<br><br>
Il doit être orienté vers l'École de formation pour une requalification, incluant :<br>
• Un test de vigilance validé par l'agent qualité,<br>
• Un entretien avec le responsable segment, le responsable qualité, et le coordinateur formateur,<br>
• La signature d'un engagement écrit par l'opérateur.<br><br>
Merci de coordonner cette requalification rapidement.<br><br>
Cordialement,<br>
<strong>Service qualité</strong>
""",
        badge_color="#fd7e14",
        alert_label="danger",
        alert_color="#FF8C42",
    ),
    7: EscalationLevel(
        threshold=7,
        recipients=(
            "psm@example.com",
            "qualite.site@example.com",
            "ecole.formation@example.com",
            "hr@example.com",
        ),
        subject=(
            "RE: Notification - Sensibilisation opérateur {{ operator_name }}"
            " - 7 défauts internes_Escalation_Niveau 3"
        ),
        body="""
Bonjour,<br><br>
L'opérateur <strong>{{ operator_name }}</strong> a atteint <strong>7 défauts internes</strong> aujourd'hui.<br><br>
Une 2ème requalification à l'École de formation est requise, accompagnée de :<br>
• Un entretien avec le PSM, le Responsable Qualité Site, le Responsable Formation École, et le Head of HR,<br>
• Une décision à prendre :<br>
&nbsp;&nbsp;→ Si l'opérateur montre un engagement clair → 3ème chance accordée,<br>
&nbsp;&nbsp;→ Sinon → réorientation ou fin de contrat.<br><br>
Merci de traiter ce dossier avec attention et diligence.<br><br>
Cordialement,<br>
<strong>Service qualité</strong>
""",
        badge_color="#dc3545",
        alert_label="critical",
        alert_color="#E74C3C",
    ),
}

# Shared layout wrapped around every level body.
EMAIL_LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 700px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #dc3545; text-align: center;">ESCALATION NIVEAU {{ level }}</h1>
  <p style="text-align: center;">
    <span style="background-color: {{ badge_color }}; color: white; padding: 8px 20px; border-radius: 20px;">
      {{ defect_count }} Défauts Internes
    </span>
  </p>
  <div style="border-left: 4px solid #dc3545; padding: 20px;">{{ body }}</div>
  <table style="width: 100%;">
    <tr><td>Opérateur:</td><td>{{ operator_name }}</td></tr>
    <tr><td>Type de défaut:</td><td>{{ defect_type }}</td></tr>
    <tr><td>Nombre de défauts:</td><td>{{ defect_count }}</td></tr>
    <tr><td>Niveau d'escalation:</td><td>Niveau {{ level }}</td></tr>
    <tr><td>Date et heure:</td><td>{{ timestamp }}</td></tr>
  </table>
</div>
"""

_DEFAULT_ALLOWED_ORIGINS: Tuple[str, ...] = (
    "https://reworkqualityleonisystem.netlify.app",
    "https://qualityapp-v2.vercel.app",
    "https://zesty-paprenjak-741d94.netlify.app",
    "http://localhost:3000",
)

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With"


def _parse_level(threshold: int, entry: Mapping[str, Any]) -> EscalationLevel | None:
    recipients = entry.get("recipients")
    if isinstance(recipients, str):
        recipients = [part.strip() for part in recipients.split(",") if part.strip()]
    if not isinstance(recipients, (list, tuple)) or not recipients:
        return None
    subject = entry.get("subject")
    body = entry.get("body")
    if not isinstance(subject, str) or not isinstance(body, str):
        return None
    optional = {
        name: entry[name]
        for name in ("badge_color", "alert_label", "alert_color")
        if isinstance(entry.get(name), str)
    }
    return EscalationLevel(
        threshold=threshold,
        recipients=tuple(str(value) for value in recipients),
        subject=subject,
        body=body,
        **optional,
    )


def _load_levels_from_env() -> Dict[int, EscalationLevel]:
    """Build the escalation table from environment overrides."""

    levels = dict(_DEFAULT_ESCALATION_LEVELS)

    raw_levels = os.getenv("ESCALATION_LEVELS_JSON")
    if not raw_levels:
        return levels

    try:
        parsed = json.loads(raw_levels)
    except json.JSONDecodeError:
        return levels

    if not isinstance(parsed, Mapping):
        return levels

    for key, entry in parsed.items():
        try:
            threshold = int(key)
        except (TypeError, ValueError):
            continue
        if threshold <= 0 or not isinstance(entry, Mapping):
            continue
        level = _parse_level(threshold, entry)
        if level is not None:
            levels[threshold] = level

    return levels


def _load_origins_from_env() -> Tuple[str, ...]:
    raw = os.getenv("ALERT_ALLOWED_ORIGINS")
    if not raw:
        return _DEFAULT_ALLOWED_ORIGINS
    origins = tuple(part.strip() for part in raw.split(",") if part.strip())
    return origins or _DEFAULT_ALLOWED_ORIGINS


ESCALATION_LEVELS: Dict[int, EscalationLevel] = _load_levels_from_env()
ALLOWED_ORIGINS: Tuple[str, ...] = _load_origins_from_env()


def escalation_thresholds() -> Tuple[int, ...]:
    """Return the configured thresholds, highest first."""

    return tuple(sorted(ESCALATION_LEVELS, reverse=True))


def alert_breakpoints() -> Tuple[Tuple[int, str, str], ...]:
    """Return (threshold, alert label, alert colour) per level, highest first."""

    levels = [ESCALATION_LEVELS[threshold] for threshold in escalation_thresholds()]
    return tuple((level.threshold, level.alert_label, level.alert_color) for level in levels)


def level_config(threshold: int) -> EscalationLevel:
    """Return the configuration for ``threshold``.

    Unknown thresholds fall back to the lowest configured level.
    """

    level = ESCALATION_LEVELS.get(threshold)
    if level is not None:
        return level
    return ESCALATION_LEVELS[min(ESCALATION_LEVELS)]
