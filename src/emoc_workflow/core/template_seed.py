from __future__ import annotations

from ..models import (
    NEXT_CURRENT,
    NEXT_END,
    NEXT_ITEM,
    NEXT_PART,
    PART_ORDER,
    PREVIOUS_ITEM,
    ActionDisplay,
    FormTemplate,
    ItemTemplateType,
    WorkflowItem,
    WorkflowPart,
)
from .workflow_rules import new_action, new_attachment, new_id

ROLE_OPTIONS = [
    "Direct Manager of Requester",
    "Division Manager",
    "VP Operation",
    "Project Engineer",
    "Relevant Managers",
    "Technical Review Team",
    "VP Area",
    "MoC Champion",
    "Asset Owner",
]

# (formName, typeOfChange, lengthOfChange), numbered 1..9 in this order.
TEMPLATE_KEYS: list[tuple[str, str, str]] = [
    ("Plant Change - Permanent", "Plant Change (Impact PSI Cat 1,2,3)", "Permanent"),
    ("Plant Change - Temporary", "Plant Change (Impact PSI Cat 1,2,3)", "Temporary"),
    ("Maintenance Change - Permanent", "Maintenance Change", "Permanent"),
    ("Maintenance Change - Temporary", "Maintenance Change", "Temporary"),
    ("Process Change - Permanent", "Process Change (No Impact PSI Cat 1,2,3)", "Permanent"),
    ("Process Change - Temporary", "Process Change (No Impact PSI Cat 1,2,3)", "Temporary"),
    ("Override - More than 3 days", "Override", "More than 3 days"),
    ("Override - Less than 3 days", "Override", "Less than 3 days"),
    ("Emergency", "Emergency", "N/A"),
]

A = ActionDisplay
T = ItemTemplateType


def _item(part_id: str, item_no: int, title: str, description: str, template: T, role: str) -> WorkflowItem:
    return WorkflowItem(
        id=new_id("item"),
        item_no=item_no,
        title=title,
        description=description,
        item_template=template.value,
        role=role,
        part_id=part_id,
    )


def _initiation_items(part_id: str) -> list[WorkflowItem]:
    first = _item(
        part_id, 1, "Initial Review and Approve MOC Request",
        "Direct manager reviews and approves the MOC request",
        T.REVIEW_AND_APPROVE, "Direct Manager of Requester",
    )
    first.actions = [
        new_action(A.APPROVE.value, "Approve", NEXT_ITEM),
        new_action(A.REJECT.value, "Reject", NEXT_END),
    ]
    second = _item(
        part_id, 2, "Assign Project Engineer",
        "Division manager assigns a Project Engineer",
        T.ASSIGN, "Division Manager",
    )
    second.actions = [
        new_action(A.SUBMIT.value, "Assign Engineer", NEXT_ITEM),
        new_action(A.REJECT.value, "Reject", NEXT_END),
    ]
    third = _item(
        part_id, 3, "Review and Approve MOC Request",
        "VP Operation reviews and provides final approval",
        T.REVIEW_AND_APPROVE, "VP Operation",
    )
    third.actions = [
        new_action(A.APPROVE.value, "Approve", NEXT_PART),
        new_action(A.REJECT.value, "Reject", NEXT_END),
    ]
    return [first, second, third]


def _review_items(part_id: str) -> list[WorkflowItem]:
    assign = _item(
        part_id, 1, "Assign Technical Review Team",
        "Project Engineer assigns members of the technical review team",
        T.ASSIGN, "Project Engineer",
    )
    assign.actions = [new_action(A.SUBMIT.value, "Assign Team", NEXT_ITEM)]

    approve_team = _item(
        part_id, 2, "Approve Technical Review Team",
        "Relevant managers review and approve the selected team",
        T.APPROVE, "Relevant Managers",
    )
    approve_team.actions = [
        new_action(A.APPROVE.value, "Approve", NEXT_ITEM),
        new_action(A.REJECT.value, "Request Changes", PREVIOUS_ITEM),
    ]

    review = _item(
        part_id, 3, "Perform Technical Review",
        "Project Engineer coordinates the technical review process",
        T.PERFORM_TECHNICAL_REVIEW, "Project Engineer",
    )
    review.attachments = [
        new_attachment("Preliminary Safety Assessment", "/templates/preliminary-safety.pdf", True),
        new_attachment("Process Safety Information Checklist", "/templates/psi-checklist.pdf", True),
        new_attachment("SHE Assessment", "/templates/she-assessment.pdf", False),
    ]
    review.actions = [
        new_action(A.SUBMIT.value, "Submit Review", NEXT_ITEM),
        new_action(A.SAVE_DRAFT.value, "Save Draft", NEXT_CURRENT),
    ]

    package = _item(
        part_id, 4, "Review and Approve Technical Design Package",
        "Technical Review Team reviews and approves the design package",
        T.APPROVE, "Technical Review Team",
    )
    package.actions = [
        new_action(A.APPROVE.value, "Approve", NEXT_ITEM),
        new_action(A.REJECT.value, "Reject", PREVIOUS_ITEM),
    ]

    final = _item(
        part_id, 5, "Review and Approve for Implementation",
        "VP Area provides final approval to proceed with implementation",
        T.APPROVE, "VP Area",
    )
    final.actions = [
        new_action(A.APPROVE.value, "Approve", NEXT_PART),
        new_action(A.REJECT.value, "Reject", NEXT_END),
    ]
    return [assign, approve_team, review, package, final]


def default_parts(template_id: str) -> list[WorkflowPart]:
    """The four lifecycle parts; only Initiation and Review come prefilled."""
    parts: list[WorkflowPart] = []
    for part_no, name in enumerate(PART_ORDER, start=1):
        part = WorkflowPart(id=new_id("part"), part_no=part_no, part_name=name.value, template_id=template_id)
        if part_no == 1:
            part.items = _initiation_items(part.id)
        elif part_no == 2:
            part.items = _review_items(part.id)
        parts.append(part)
    return parts


def default_templates() -> list[FormTemplate]:
    templates: list[FormTemplate] = []
    for form_no, (form_name, type_of_change, length_of_change) in enumerate(TEMPLATE_KEYS, start=1):
        template_id = new_id("template")
        templates.append(
            FormTemplate(
                id=template_id,
                form_no=form_no,
                form_name=form_name,
                type_of_change=type_of_change,
                length_of_change=length_of_change,
                parts=default_parts(template_id),
            )
        )
    return templates
