"""Editing and validation rules for approval workflow templates.

A template owns four parts (Initiation, Review, Implementation, Closeout) and each
part owns an ordered list of items. Actions on an item point either at a symbolic
step or at the literal id of another item in the same part. Edits here mutate the
part/template in place, the way the configurator edits its local state, but a
bulk save only touches the target once every item has validated.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Iterable
from uuid import uuid4

from ..models import (
    NEXT_CURRENT,
    NEXT_END,
    NEXT_ITEM,
    NEXT_PART,
    PREVIOUS_ITEM,
    SYMBOLIC_NEXT_STEPS,
    ActionDisplay,
    FormTemplate,
    ItemTemplateType,
    PartName,
    WorkflowAction,
    WorkflowAttachment,
    WorkflowItem,
    WorkflowPart,
)

logger = logging.getLogger(__name__)

ITEM_TEMPLATE_VALUES = frozenset(t.value for t in ItemTemplateType)
ACTION_DISPLAY_VALUES = frozenset(d.value for d in ActionDisplay)
PART_NAME_VALUES = frozenset(p.value for p in PartName)
FORWARD_DISPLAYS = frozenset({ActionDisplay.APPROVE.value, ActionDisplay.SUBMIT.value})

UPDATABLE_ITEM_FIELDS = frozenset({"title", "description", "item_template", "role", "attachments", "actions"})


class WorkflowValidationError(ValueError):
    def __init__(self, errors: dict[str, str], message: str = "Workflow validation failed.") -> None:
        super().__init__(message)
        self.errors = dict(errors)


class DanglingReferenceError(ValueError):
    def __init__(self, next_step: str, part_id: str) -> None:
        super().__init__(f"Dangling reference: no item '{next_step}' in part '{part_id}'.")
        self.next_step = next_step
        self.part_id = part_id


class UnknownItemError(KeyError):
    pass


@dataclass(slots=True, frozen=True)
class StepTarget:
    item: WorkflowItem | None = None
    part: WorkflowPart | None = None
    terminal: bool = False
    clamped: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "terminal": self.terminal,
            "clamped": self.clamped,
            "itemId": self.item.id if self.item else None,
            "itemNo": self.item.item_no if self.item else None,
            "partId": self.part.id if self.part else None,
            "partNo": self.part.part_no if self.part else None,
        }


@dataclass(slots=True)
class DeleteResult:
    removed: WorkflowItem
    cleared_actions: list[tuple[str, str]] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [
            f"Action '{action_id}' on item '{item_id}' pointed at the deleted item and was cleared."
            for item_id, action_id in self.cleared_actions
        ]


def new_id(prefix: str = "item") -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def is_symbolic_step(next_step: str) -> bool:
    return next_step in SYMBOLIC_NEXT_STEPS


def _ordered(items: Iterable[WorkflowItem]) -> list[WorkflowItem]:
    return sorted(items, key=lambda i: i.item_no)


def validate_item(item: WorkflowItem, sibling_ids: Iterable[str]) -> dict[str, str]:
    """Per-field errors for one item; keys match the editor's inline error slots."""
    errors: dict[str, str] = {}
    known_ids = set(sibling_ids) - {item.id}

    if not item.title.strip():
        errors["title"] = "Title is required"
    if not item.item_template:
        errors["itemTemplate"] = "Item template is required"
    elif item.item_template not in ITEM_TEMPLATE_VALUES:
        errors["itemTemplate"] = f"Unknown item template '{item.item_template}'"
    if not item.role.strip():
        errors["role"] = "Role is required"

    for idx, att in enumerate(item.attachments):
        if not att.name.strip():
            errors[f"attachment-{idx}-name"] = "Name required"
        if not att.template_url.strip():
            errors[f"attachment-{idx}-url"] = "URL required"

    for idx, act in enumerate(item.actions):
        if not act.label.strip():
            errors[f"action-{idx}-label"] = "Label required"
        if act.display not in ACTION_DISPLAY_VALUES:
            errors[f"action-{idx}-display"] = f"Unknown action display '{act.display}'"
        step = act.next_step.strip()
        if not step:
            errors[f"action-{idx}-next"] = "Next step required"
        elif step == item.id:
            errors[f"action-{idx}-next"] = f"Use '{NEXT_CURRENT}' to stay on this item"
        elif not is_symbolic_step(step) and step not in known_ids:
            errors[f"action-{idx}-next"] = f"Dangling reference: no item '{step}' in this part"
    return errors


def create_item(
    part: WorkflowPart,
    *,
    title: str = "",
    description: str = "",
    role: str = "",
    item_id: str | None = None,
) -> WorkflowItem:
    item = WorkflowItem(
        id=item_id or new_id("item"),
        item_no=len(part.items) + 1,
        title=title,
        description=description,
        item_template=ItemTemplateType.APPROVE.value,
        role=role,
        part_id=part.id,
    )
    part.items.append(item)
    return item


def _find_index(part: WorkflowPart, item_id: str) -> int:
    for idx, item in enumerate(part.items):
        if item.id == item_id:
            return idx
    raise UnknownItemError(item_id)


def update_item(part: WorkflowPart, item_id: str, patch: dict[str, Any]) -> WorkflowItem:
    idx = _find_index(part, item_id)
    unknown = set(patch) - UPDATABLE_ITEM_FIELDS
    if unknown:
        raise ValueError(f"Unsupported item fields: {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    for key, value in patch.items():
        if key in {"attachments", "actions"}:
            changes[key] = list(value or [])
        elif isinstance(value, ItemTemplateType):
            changes[key] = value.value
        else:
            changes[key] = "" if value is None else str(value)

    candidate = replace(part.items[idx], **changes)
    errors = validate_item(candidate, (i.id for i in part.items))
    if errors:
        raise WorkflowValidationError(errors, f"Item '{item_id}' failed validation.")
    part.items[idx] = candidate
    return candidate


def delete_item(part: WorkflowPart, item_id: str) -> DeleteResult:
    """Remove an item and clear sibling actions that targeted it.

    Item numbers are left as they are, so gaps can appear after a delete. Cleared
    actions end up with an empty next step and fail validation until re-pointed.
    """
    idx = _find_index(part, item_id)
    removed = part.items.pop(idx)
    result = DeleteResult(removed=removed)
    for item in part.items:
        for pos, act in enumerate(item.actions):
            if act.next_step == item_id:
                item.actions[pos] = replace(act, next_step="")
                result.cleared_actions.append((item.id, act.id))
    if result.cleared_actions:
        logger.warning(
            "Deleted item %s from part %s; cleared %s action(s) that referenced it",
            item_id,
            part.id,
            len(result.cleared_actions),
        )
    return result


def _following_part_with_items(part: WorkflowPart, all_parts: Iterable[WorkflowPart]) -> WorkflowPart | None:
    later = sorted((p for p in all_parts if p.part_no > part.part_no), key=lambda p: p.part_no)
    for candidate in later:
        if candidate.items:
            return candidate
    return None


def resolve_next_step(
    action: WorkflowAction,
    item: WorkflowItem,
    part: WorkflowPart,
    all_parts: Iterable[WorkflowPart],
) -> StepTarget:
    step = action.next_step.strip()

    if step == NEXT_END:
        return StepTarget(terminal=True)
    if step == NEXT_CURRENT:
        return StepTarget(item=item, part=part)

    if step in {NEXT_ITEM, PREVIOUS_ITEM}:
        ordered = _ordered(part.items)
        pos = next((i for i, it in enumerate(ordered) if it.id == item.id), None)
        if pos is None:
            raise UnknownItemError(item.id)
        target_pos = pos + 1 if step == NEXT_ITEM else pos - 1
        if 0 <= target_pos < len(ordered):
            return StepTarget(item=ordered[target_pos], part=part)
        return StepTarget(item=item, part=part, clamped=True)

    if step == NEXT_PART:
        following = _following_part_with_items(part, all_parts)
        if following is None:
            return StepTarget(terminal=True)
        return StepTarget(item=_ordered(following.items)[0], part=following)

    target = part.item_by_id(step) if step else None
    if target is None:
        raise DanglingReferenceError(step, part.id)
    return StepTarget(item=target, part=part)


def _item_errors(items: list[WorkflowItem], key_prefix: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    ids = [i.id for i in items]
    dupes = {k for k, n in Counter(ids).items() if n > 1}
    # Keyed by list position: item numbers can repeat after a delete.
    for position, item in enumerate(items, start=1):
        prefix = f"{key_prefix}{position}:"
        if not item.id:
            errors[prefix + "id"] = "Item id is required"
        elif item.id in dupes:
            errors[prefix + "id"] = f"Duplicate item id '{item.id}'"
        for key, msg in validate_item(item, ids).items():
            errors[prefix + key] = msg
    return errors


def save_items(part: WorkflowPart, items: list[WorkflowItem]) -> WorkflowPart:
    """Replace every item of a part, or nothing at all."""
    errors = _item_errors(items, "")
    if errors:
        raise WorkflowValidationError(errors, f"Items for part '{part.id}' failed validation.")
    part.items = [replace(i, part_id=part.id) for i in items]
    return part


def _part_errors(parts: list[WorkflowPart]) -> dict[str, str]:
    errors: dict[str, str] = {}
    part_nos = Counter(p.part_no for p in parts)
    for part in parts:
        prefix = f"{part.part_no}"
        if part.part_name not in PART_NAME_VALUES:
            errors[f"{prefix}:partName"] = f"Unknown part '{part.part_name}'"
        if part_nos[part.part_no] > 1:
            errors[f"{prefix}:partNo"] = f"Duplicate part number {part.part_no}"
        errors.update(_item_errors(part.items, f"{prefix}."))
    return errors


def validate_template(template: FormTemplate) -> dict[str, str]:
    errors = _part_errors(template.parts)
    if not template.form_name.strip():
        errors["formName"] = "Form name is required"
    return errors


def save_parts(template: FormTemplate, parts: list[WorkflowPart]) -> FormTemplate:
    """Replace every part of a template, or nothing at all."""
    errors = _part_errors(parts)
    if errors:
        raise WorkflowValidationError(errors, f"Parts for template '{template.id}' failed validation.")

    template.parts = [
        replace(p, template_id=template.id, items=[replace(i, part_id=p.id) for i in p.items]) for p in parts
    ]
    return template


def find_backward_links(part: WorkflowPart) -> list[str]:
    """Warn about forward-style actions that jump back to an earlier item.

    Reject/Revise edges and ``previous-item`` are expected to send work back, so
    only Approve/Submit actions with a literal target at or before their own item
    are reported. These are advisory and never block a save.
    """
    by_id = {i.id: i for i in part.items}
    warnings: list[str] = []
    for item in _ordered(part.items):
        for act in item.actions:
            if act.display not in FORWARD_DISPLAYS:
                continue
            target = by_id.get(act.next_step)
            if target is not None and target.item_no <= item.item_no:
                warnings.append(
                    f"Item {item.item_no} action '{act.label or act.display}' loops back to item {target.item_no}."
                )
    return warnings


def new_action(display: str = ActionDisplay.APPROVE.value, label: str = "", next_step: str = "") -> WorkflowAction:
    return WorkflowAction(id=new_id("action"), display=display, label=label, next_step=next_step)


def new_attachment(name: str = "", template_url: str = "", required: bool = False) -> WorkflowAttachment:
    return WorkflowAttachment(id=new_id("attachment"), name=name, template_url=template_url, required=required)


def find_template(templates: Iterable[FormTemplate], type_of_change: str, length_of_change: str) -> FormTemplate | None:
    """First template (by form number) matching a request's change type and length."""
    matches = [
        t
        for t in templates
        if t.type_of_change == type_of_change and t.length_of_change == length_of_change
    ]
    if not matches:
        return None
    return min(matches, key=lambda t: t.form_no)


def duplicate_template_keys(templates: Iterable[FormTemplate]) -> list[tuple[str, str]]:
    counts = Counter((t.type_of_change, t.length_of_change) for t in templates)
    return sorted(key for key, n in counts.items() if n > 1)
