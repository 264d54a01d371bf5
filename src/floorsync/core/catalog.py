"""Equipment, downtime reasons and maintenance checklist templates."""

from __future__ import annotations

EQUIPMENT = (
    "Machine A",
    "Machine B",
    "Machine C",
    "Conveyor Belt 1",
    "Conveyor Belt 2",
    "Packaging Line 1",
    "Packaging Line 2",
)

DOWNTIME_REASONS = (
    "Mechanical Failure",
    "Electrical Issue",
    "Maintenance",
    "Material Shortage",
    "Quality Issue",
    "Other",
)

CHECKLIST_TEMPLATES: dict[str, tuple[str, ...]] = {
    "Machine A": (
        "Check oil levels",
        "Inspect belts for wear",
        "Clean filters",
        "Test safety switches",
        "Lubricate moving parts",
    ),
    "Machine B": (
        "Check hydraulic fluid",
        "Inspect electrical connections",
        "Clean work area",
        "Test emergency stop",
        "Verify calibration",
    ),
    "Machine C": (
        "Check coolant levels",
        "Inspect cutting tools",
        "Clean chip collection",
        "Test spindle operation",
        "Verify program accuracy",
    ),
}

DEFAULT_CHECKLIST = (
    "Visual inspection",
    "Check for leaks",
    "Test operation",
    "Clean equipment",
    "Document findings",
)


def equipment_id(name: str) -> str:
    """Equipment reference derived from its display name."""
    return f"equip_{name}"


def checklist_for(equipment_name: str) -> tuple[str, ...]:
    """Checklist item texts for a piece of equipment."""
    return CHECKLIST_TEMPLATES.get(equipment_name, DEFAULT_CHECKLIST)
