"""Notification records written alongside new defects."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .defects import normalize_defect
from .store import RecordStore

NOTIFICATION_COLLECTION = "notifications"
DEFECT_ADDED = "defect_added"


def record_defect_added(
    store: RecordStore, data: Mapping[str, Any], defect_id: str
) -> Optional[str]:
    """Store a "defect added" notification for ``data``.

    Nothing is written unless the record names its matricule, the person
    who recorded it and the product reference.
    """

    defect = normalize_defect(data)
    matricule = defect.get("matricule")
    supervisor = defect.get("supervisor_name")
    reference = defect.get("product_reference")
    if not (matricule and supervisor and reference):
        return None

    workstation = defect.get("workstation") or "?"
    return store.create(
        {
            "type": DEFECT_ADDED,
            "title": "Nouveau défaut détecté",
            "message": (
                f"L'agent {supervisor} ({matricule}) a détecté un défaut sur le produit "
                f"{reference} au poste {workstation}"
            ),
            "matricule": matricule,
            "defect_id": defect_id,
            "defect_code": defect.get("defect_code"),
            "priority": "high",
            "category": "qualite",
            "read": False,
        }
    )


__all__ = ["DEFECT_ADDED", "NOTIFICATION_COLLECTION", "record_defect_added"]
