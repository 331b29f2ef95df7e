"""Field rules for the MOC initiation form.

The form payload uses the same camelCase keys as the browser form. Validation
returns an error map keyed by field id, which the form shows inline and in its
summary panel; nothing here raises for bad user input.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from emoc_workflow.core import to_risk_assessment

AREA_OPTIONS: list[dict[str, Any]] = [
    {
        "id": "area-1",
        "name": "Production Area A",
        "units": [
            {"id": "unit-1-1", "name": "Production Area A UNIT - 1"},
            {"id": "unit-1-2", "name": "Production Area A UNIT - 2"},
            {"id": "unit-1-3", "name": "Production Area A UNIT - 3"},
        ],
    },
    {
        "id": "area-2",
        "name": "Production Area B",
        "units": [
            {"id": "unit-2-1", "name": "Production Area B UNIT - 1"},
            {"id": "unit-2-2", "name": "Production Area B UNIT - 2"},
        ],
    },
    {
        "id": "area-3",
        "name": "Utilities",
        "units": [
            {"id": "unit-3-1", "name": "Utilities UNIT - 1"},
            {"id": "unit-3-2", "name": "Utilities UNIT - 2"},
        ],
    },
    {
        "id": "area-4",
        "name": "Storage",
        "units": [
            {"id": "unit-4-1", "name": "Storage UNIT - 1"},
            {"id": "unit-4-2", "name": "Storage UNIT - 2"},
        ],
    },
    {
        "id": "area-5",
        "name": "Laboratory",
        "units": [{"id": "unit-5-1", "name": "Laboratory UNIT - 1"}],
    },
]

PRIORITY_OPTIONS = [
    {"id": "priority-1", "name": "Normal", "level": 1},
    {"id": "priority-2", "name": "Emergency", "level": 2},
]
LENGTH_OF_CHANGE_OPTIONS = [
    {"id": "length-1", "name": "Permanent"},
    {"id": "length-2", "name": "Temporary"},
    {"id": "length-3", "name": "Overriding"},
]
TYPE_OF_CHANGE_OPTIONS = [
    {"id": "type-1", "name": "Plant Change"},
    {"id": "type-2", "name": "Maintenance Change"},
    {"id": "type-3", "name": "Process Change"},
]
TPM_LOSS_TYPE_OPTIONS = [
    {"id": "tpm-1", "name": "Safety"},
    {"id": "tpm-2", "name": "Environment"},
    {"id": "tpm-3", "name": "Quality"},
    {"id": "tpm-4", "name": "Productivity"},
]
BENEFITS_VALUE_OPTIONS = [
    {"id": "benefit-1", "name": "Safety"},
    {"id": "benefit-2", "name": "Environment"},
    {"id": "benefit-3", "name": "Community"},
    {"id": "benefit-4", "name": "Reputation"},
    {"id": "benefit-5", "name": "Law"},
    {"id": "benefit-6", "name": "Money"},
]

EMERGENCY_PRIORITY_ID = "priority-2"
TEMPORARY_LENGTH_ID = "length-2"
OVERRIDING_LENGTH_ID = "length-3"

# Template change-type names for each form option.
TEMPLATE_TYPE_NAMES = {
    "type-1": "Plant Change (Impact PSI Cat 1,2,3)",
    "type-2": "Maintenance Change",
    "type-3": "Process Change (No Impact PSI Cat 1,2,3)",
}
OVERRIDE_LONG_DAYS = 3

REQUIRED_FIELDS: dict[str, str] = {
    "mocTitle": "MOC Title is required",
    "areaId": "Area is required",
    "unitId": "Unit is required",
    "priorityId": "Priority is required",
    "detailOfChange": "Detail of Change is required",
    "reasonForChange": "Reason for Change is required",
    "scopeOfWork": "Scope of Work is required",
    "tpmLossType": "TPM Loss Type is required",
}
NON_NEGATIVE_FIELDS = ("estimatedBenefit", "estimatedCost", "lossEliminateValue")
RISK_FIELDS = {
    "riskBeforeChange": "Risk Assessment (Before) is required",
    "riskAfterChange": "Risk Assessment (After) is required",
}


def options_catalogue() -> dict[str, Any]:
    return {
        "areas": AREA_OPTIONS,
        "priorities": PRIORITY_OPTIONS,
        "lengthOfChange": LENGTH_OF_CHANGE_OPTIONS,
        "typeOfChange": TYPE_OF_CHANGE_OPTIONS,
        "tpmLossTypes": TPM_LOSS_TYPE_OPTIONS,
        "benefits": BENEFITS_VALUE_OPTIONS,
    }


def _option_ids(options: list[dict[str, Any]]) -> set[str]:
    return {str(o["id"]) for o in options}


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def is_emergency(form: dict[str, Any]) -> bool:
    return str(form.get("priorityId", "") or "") == EMERGENCY_PRIORITY_ID


def visible_fields(form: dict[str, Any]) -> dict[str, bool]:
    """Which conditional fields the form shows for the current selections.

    Emergency requests skip both length and type of change; an Overriding
    change has no type of change.
    """
    emergency = is_emergency(form)
    overriding = str(form.get("lengthOfChange", "") or "") == OVERRIDING_LENGTH_ID
    return {
        "lengthOfChange": not emergency,
        "typeOfChange": not emergency and not overriding,
    }


def _parse_date(value: Any) -> date | None:
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def validate_field(field: str, value: Any) -> str:
    """Real-time check for a single field as the user edits it."""
    if field in NON_NEGATIVE_FIELDS:
        if _blank(value):
            return ""
        try:
            number = float(value)
        except (TypeError, ValueError):
            return "Must be a number"
        return "Value must be positive" if number < 0 else ""
    if field in RISK_FIELDS:
        try:
            assessment = to_risk_assessment(value if isinstance(value, dict) else None)
        except (TypeError, ValueError):
            return "Likelihood and impact must be between 1 and 4"
        return "" if assessment.level is not None else RISK_FIELDS[field]
    if field in REQUIRED_FIELDS and _blank(value):
        return "This field is required"
    return ""


def validate_all(form: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}

    for field, message in REQUIRED_FIELDS.items():
        if _blank(form.get(field)):
            errors[field] = message

    for field in NON_NEGATIVE_FIELDS:
        message = validate_field(field, form.get(field))
        if message:
            errors[field] = message

    for field in RISK_FIELDS:
        message = validate_field(field, form.get(field))
        if message:
            errors[field] = message

    area_id = str(form.get("areaId", "") or "")
    unit_id = str(form.get("unitId", "") or "")
    if area_id and "areaId" not in errors:
        area = next((a for a in AREA_OPTIONS if a["id"] == area_id), None)
        if area is None:
            errors["areaId"] = "Unknown area"
        elif unit_id and unit_id not in _option_ids(area["units"]):
            errors["unitId"] = "Unit does not belong to the selected area"

    priority_id = str(form.get("priorityId", "") or "")
    if priority_id and priority_id not in _option_ids(PRIORITY_OPTIONS):
        errors["priorityId"] = "Unknown priority"

    visible = visible_fields(form)
    length_id = str(form.get("lengthOfChange", "") or "")
    type_id = str(form.get("typeOfChange", "") or "")
    if visible["lengthOfChange"]:
        if not length_id:
            errors["lengthOfChange"] = "Length of Change is required"
        elif length_id not in _option_ids(LENGTH_OF_CHANGE_OPTIONS):
            errors["lengthOfChange"] = "Unknown length of change"
    elif length_id:
        errors["lengthOfChange"] = "Length of Change does not apply to Emergency requests"

    if visible["typeOfChange"]:
        if not type_id:
            errors["typeOfChange"] = "Type of Change is required"
        elif type_id not in _option_ids(TYPE_OF_CHANGE_OPTIONS):
            errors["typeOfChange"] = "Unknown type of change"
    elif type_id:
        if is_emergency(form):
            errors["typeOfChange"] = "Type of Change does not apply to Emergency requests"
        else:
            errors["typeOfChange"] = "Type of Change does not apply to Overriding changes"

    start_raw = form.get("estimatedDurationStart")
    end_raw = form.get("estimatedDurationEnd")
    start = _parse_date(start_raw) if not _blank(start_raw) else None
    end = _parse_date(end_raw) if not _blank(end_raw) else None
    if not _blank(start_raw) and start is None:
        errors["estimatedDurationStart"] = "Invalid date"
    if not _blank(end_raw) and end is None:
        errors["estimatedDurationEnd"] = "Invalid date"
    if start and end and end < start:
        errors["estimatedDurationEnd"] = "End date must not be before start date"
    if (
        visible["lengthOfChange"]
        and length_id in {TEMPORARY_LENGTH_ID, OVERRIDING_LENGTH_ID}
        and _blank(end_raw)
    ):
        errors["estimatedDurationEnd"] = "End date is required for a temporary or overriding change"

    return errors


def template_key_for(form: dict[str, Any]) -> tuple[str, str] | None:
    """(typeOfChange, lengthOfChange) of the workflow template a request routes to."""
    if is_emergency(form):
        return ("Emergency", "N/A")
    length_id = str(form.get("lengthOfChange", "") or "")
    if length_id == OVERRIDING_LENGTH_ID:
        start = _parse_date(form.get("estimatedDurationStart") or "")
        end = _parse_date(form.get("estimatedDurationEnd") or "")
        days = (end - start).days if start and end else 0
        return ("Override", "More than 3 days" if days > OVERRIDE_LONG_DAYS else "Less than 3 days")
    length_name = next((o["name"] for o in LENGTH_OF_CHANGE_OPTIONS if o["id"] == length_id), None)
    type_name = TEMPLATE_TYPE_NAMES.get(str(form.get("typeOfChange", "") or ""))
    if not length_name or not type_name:
        return None
    return (type_name, length_name)
