"""Configuration helpers for the quality defect tracker."""

# This package collects runtime configuration assets that can be customised
# without touching the application logic.  Individual modules provide
# structured accessors for specific domains (Supabase schema definitions,
# the defect code table and the escalation levels).

# Operator name written by the mobile form when no operator was selected.
UNKNOWN_OPERATOR = "Opérateur inconnu"

# Virtual/test operator names seeded during demos.  Both the defect
# repository and the cleanup utility exclude exactly this list.
VIRTUAL_OPERATORS = (
    UNKNOWN_OPERATOR,
    "Ahmed M.",
    "Fatima Z.",
    "Youssef K.",
    "Salma B.",
    "Omar T.",
    "Nadia H.",
    "Karim L.",
    "Amina S.",
    "Hassan R.",
    "Leila F.",
    "Mohamed A.",
    "Zineb M.",
    "Test Operator",
    "Test User",
    "TEST",
    "test",
)

# Product references used by test fixtures.
VIRTUAL_REFERENCES = (
    "TEST-001",
    "TEST",
    "test",
    "VIRTUAL",
    "MOCK",
)

# Labels used when a categorical dimension is missing on a record.
UNDEFINED_WORKSTATION = "Undefined workstation"
UNDEFINED_LINE = "Undefined line"
UNDEFINED_SHIFT_LEADER = "Undefined shift leader"
UNDEFINED_CATEGORY = "Undefined category"
UNKNOWN_DEFECT_TYPE = "unknown"

# Defect code for inverted wires, aggregated by reference marker pair.
INVERTED_WIRES_CODE = "210"

# Plant section of each project, used by segment filters.
PROJECT_SECTIONS = {
    "CRA": "Section 01",
    "WPA": "Section 02",
    "X1310 PDB": "Section 03",
    "X1310 LOWDASH": "Section 04",
    "X1310 EGR ICE": "Section 05",
    "X1310 EGR HEV": "Section 05",
    "X1310 ENGINE": "Section 06",
    "X1310 Smalls": "Section 07",
    "P13A SMALLS": "Section 07",
    "P13A EGR": "Section 07",
    "P13A MAIN & BODY": "Section 07",
}
