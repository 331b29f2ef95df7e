from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypedDict

NEXT_CURRENT = "current"
NEXT_ITEM = "next-item"
PREVIOUS_ITEM = "previous-item"
NEXT_PART = "next-part"
NEXT_END = "end"

SYMBOLIC_NEXT_STEPS = (NEXT_CURRENT, NEXT_ITEM, PREVIOUS_ITEM, NEXT_PART, NEXT_END)


class ItemTemplateType(str, Enum):
    APPROVE = "Approve"
    REVIEW_AND_APPROVE = "Review and Approve"
    ASSIGN = "Assign"
    PERFORM_TECHNICAL_REVIEW = "Perform Technical Review"
    CUSTOM = "Custom"


class ActionDisplay(str, Enum):
    APPROVE = "Approve"
    REJECT = "Reject"
    SAVE_DRAFT = "Save Draft"
    DISCARD = "Discard"
    REVISE = "Revise"
    SUBMIT = "Submit"


class PartName(str, Enum):
    INITIATION = "Initiation"
    REVIEW = "Review"
    IMPLEMENTATION = "Implementation"
    CLOSEOUT = "Closeout"


PART_ORDER: tuple[PartName, ...] = (
    PartName.INITIATION,
    PartName.REVIEW,
    PartName.IMPLEMENTATION,
    PartName.CLOSEOUT,
)


class RawWorkflowAction(TypedDict, total=False):
    id: str
    display: str
    label: str
    nextStep: str


class RawWorkflowAttachment(TypedDict, total=False):
    id: str
    name: str
    templateUrl: str
    required: bool


class RawWorkflowItem(TypedDict, total=False):
    id: str
    itemNo: int
    title: str
    description: str
    itemTemplate: str
    role: str
    attachments: list[RawWorkflowAttachment]
    actions: list[RawWorkflowAction]
    partId: str


class RawWorkflowPart(TypedDict, total=False):
    id: str
    partNo: int
    partName: str
    items: list[RawWorkflowItem]
    templateId: str


class RawFormTemplate(TypedDict, total=False):
    id: str
    formNo: int
    formName: str
    typeOfChange: str
    lengthOfChange: str
    parts: list[RawWorkflowPart]


@dataclass(slots=True)
class WorkflowAction:
    id: str
    display: str = ActionDisplay.APPROVE.value
    label: str = ""
    next_step: str = ""

    def to_payload(self) -> RawWorkflowAction:
        return {"id": self.id, "display": self.display, "label": self.label, "nextStep": self.next_step}


@dataclass(slots=True)
class WorkflowAttachment:
    id: str
    name: str = ""
    template_url: str = ""
    required: bool = False

    def to_payload(self) -> RawWorkflowAttachment:
        return {"id": self.id, "name": self.name, "templateUrl": self.template_url, "required": self.required}


@dataclass(slots=True)
class WorkflowItem:
    id: str
    item_no: int
    title: str = ""
    description: str = ""
    item_template: str = ItemTemplateType.APPROVE.value
    role: str = ""
    attachments: list[WorkflowAttachment] = field(default_factory=list)
    actions: list[WorkflowAction] = field(default_factory=list)
    part_id: str = ""

    def to_payload(self) -> RawWorkflowItem:
        return {
            "id": self.id,
            "itemNo": self.item_no,
            "title": self.title,
            "description": self.description,
            "itemTemplate": self.item_template,
            "role": self.role,
            "attachments": [a.to_payload() for a in self.attachments],
            "actions": [a.to_payload() for a in self.actions],
            "partId": self.part_id,
        }


@dataclass(slots=True)
class WorkflowPart:
    id: str
    part_no: int
    part_name: str
    items: list[WorkflowItem] = field(default_factory=list)
    template_id: str = ""

    def item_by_id(self, item_id: str) -> WorkflowItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_payload(self) -> RawWorkflowPart:
        return {
            "id": self.id,
            "partNo": self.part_no,
            "partName": self.part_name,
            "items": [i.to_payload() for i in self.items],
            "templateId": self.template_id,
        }


@dataclass(slots=True)
class FormTemplate:
    id: str
    form_no: int
    form_name: str
    type_of_change: str
    length_of_change: str
    parts: list[WorkflowPart] = field(default_factory=list)

    def part_by_id(self, part_id: str) -> WorkflowPart | None:
        for part in self.parts:
            if part.id == part_id:
                return part
        return None

    def to_payload(self) -> RawFormTemplate:
        return {
            "id": self.id,
            "formNo": self.form_no,
            "formName": self.form_name,
            "typeOfChange": self.type_of_change,
            "lengthOfChange": self.length_of_change,
            "parts": [p.to_payload() for p in self.parts],
        }


def _list(payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = payload.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list.")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValueError(f"Each entry of '{key}' must be an object.")
    return value


def to_workflow_action(payload: RawWorkflowAction) -> WorkflowAction:
    return WorkflowAction(
        id=str(payload.get("id", "")),
        display=str(payload.get("display", "") or ""),
        label=str(payload.get("label", "") or ""),
        next_step=str(payload.get("nextStep", "") or ""),
    )


def to_workflow_attachment(payload: RawWorkflowAttachment) -> WorkflowAttachment:
    return WorkflowAttachment(
        id=str(payload.get("id", "")),
        name=str(payload.get("name", "") or ""),
        template_url=str(payload.get("templateUrl", "") or ""),
        required=bool(payload.get("required", False)),
    )


def to_workflow_item(payload: RawWorkflowItem) -> WorkflowItem:
    return WorkflowItem(
        id=str(payload.get("id", "")),
        item_no=int(payload.get("itemNo", 0) or 0),
        title=str(payload.get("title", "") or ""),
        description=str(payload.get("description", "") or ""),
        item_template=str(payload.get("itemTemplate", "") or ""),
        role=str(payload.get("role", "") or ""),
        attachments=[to_workflow_attachment(a) for a in _list(payload, "attachments")],  # type: ignore[arg-type]
        actions=[to_workflow_action(a) for a in _list(payload, "actions")],  # type: ignore[arg-type]
        part_id=str(payload.get("partId", "") or ""),
    )


def to_workflow_part(payload: RawWorkflowPart) -> WorkflowPart:
    return WorkflowPart(
        id=str(payload.get("id", "")),
        part_no=int(payload.get("partNo", 0) or 0),
        part_name=str(payload.get("partName", "") or ""),
        items=[to_workflow_item(i) for i in _list(payload, "items")],  # type: ignore[arg-type]
        template_id=str(payload.get("templateId", "") or ""),
    )


def to_form_template(payload: RawFormTemplate) -> FormTemplate:
    return FormTemplate(
        id=str(payload.get("id", "")),
        form_no=int(payload.get("formNo", 0) or 0),
        form_name=str(payload.get("formName", "") or ""),
        type_of_change=str(payload.get("typeOfChange", "") or ""),
        length_of_change=str(payload.get("lengthOfChange", "") or ""),
        parts=[to_workflow_part(p) for p in _list(payload, "parts")],  # type: ignore[arg-type]
    )
