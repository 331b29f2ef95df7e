"""Persistence of workflow templates and the configurator's edit operations.

Templates are stored whole, as one JSON document per row. Every edit loads the
tree, applies a rule from ``emoc_workflow.core`` (which validates before it
mutates) and writes the tree back in a single commit, so a failed validation
never reaches the database.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import WorkflowTemplateRecord
from app.utils.jsonx import from_json_object, to_json
from emoc_workflow.core import (
    DeleteResult,
    StepTarget,
    UnknownItemError,
    create_item,
    default_templates,
    delete_item,
    duplicate_template_keys,
    find_backward_links,
    find_template,
    resolve_next_step,
    save_items,
    save_parts,
    update_item,
)
from emoc_workflow.models import (
    FormTemplate,
    WorkflowItem,
    WorkflowPart,
    to_form_template,
    to_workflow_action,
    to_workflow_attachment,
)

logger = logging.getLogger(__name__)

# camelCase payload key -> update_item field
_ITEM_PATCH_KEYS = {
    "title": "title",
    "description": "description",
    "itemTemplate": "item_template",
    "role": "role",
    "attachments": "attachments",
    "actions": "actions",
}


class TemplateNotFoundError(LookupError):
    pass


class PartNotFoundError(LookupError):
    pass


def _record_to_template(record: WorkflowTemplateRecord) -> FormTemplate:
    return to_form_template(from_json_object(record.payload_json))  # type: ignore[arg-type]


def _write_template(db: Session, template: FormTemplate) -> WorkflowTemplateRecord:
    record = db.get(WorkflowTemplateRecord, template.id)
    if record is None:
        record = WorkflowTemplateRecord(id=template.id)
        db.add(record)
    record.form_no = template.form_no
    record.form_name = template.form_name
    record.type_of_change = template.type_of_change
    record.length_of_change = template.length_of_change
    record.payload_json = to_json(template.to_payload())
    return record


def list_templates(db: Session) -> list[FormTemplate]:
    records = db.execute(select(WorkflowTemplateRecord).order_by(WorkflowTemplateRecord.form_no)).scalars().all()
    return [_record_to_template(r) for r in records]


def get_template(db: Session, template_id: str) -> FormTemplate:
    record = db.get(WorkflowTemplateRecord, template_id)
    if record is None:
        raise TemplateNotFoundError(template_id)
    return _record_to_template(record)


def save_template(db: Session, template: FormTemplate) -> FormTemplate:
    _write_template(db, template)
    db.commit()
    dupes = duplicate_template_keys(list_templates(db))
    if dupes:
        logger.warning("Templates share a change type/length key: %s", dupes)
    return template


def ensure_default_templates(db: Session) -> int:
    existing = db.execute(select(WorkflowTemplateRecord.id).limit(1)).scalar_one_or_none()
    if existing is not None:
        return 0
    templates = default_templates()
    for template in templates:
        _write_template(db, template)
    db.commit()
    logger.info("Seeded %s default workflow templates", len(templates))
    return len(templates)


def lookup_template(db: Session, type_of_change: str, length_of_change: str) -> FormTemplate | None:
    return find_template(list_templates(db), type_of_change, length_of_change)


def _part(template: FormTemplate, part_id: str) -> WorkflowPart:
    part = template.part_by_id(part_id)
    if part is None:
        raise PartNotFoundError(part_id)
    return part


def item_patch_from_payload(payload: dict[str, Any]) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    for key, field_name in _ITEM_PATCH_KEYS.items():
        if key not in payload:
            continue
        value = payload[key]
        if key == "attachments":
            value = [to_workflow_attachment(a) for a in (value or [])]
        elif key == "actions":
            value = [to_workflow_action(a) for a in (value or [])]
        patch[field_name] = value
    return patch


def replace_parts(db: Session, template_id: str, parts: list[WorkflowPart]) -> FormTemplate:
    template = get_template(db, template_id)
    save_parts(template, parts)
    return save_template(db, template)


def replace_items(db: Session, template_id: str, part_id: str, items: list[WorkflowItem]) -> WorkflowPart:
    template = get_template(db, template_id)
    part = _part(template, part_id)
    save_items(part, items)
    save_template(db, template)
    return part


def add_item(db: Session, template_id: str, part_id: str, payload: dict[str, Any]) -> WorkflowItem:
    template = get_template(db, template_id)
    part = _part(template, part_id)
    item = create_item(
        part,
        title=str(payload.get("title", "") or ""),
        description=str(payload.get("description", "") or ""),
        role=str(payload.get("role", "") or ""),
    )
    save_template(db, template)
    return item


def patch_item(db: Session, template_id: str, part_id: str, item_id: str, payload: dict[str, Any]) -> WorkflowItem:
    template = get_template(db, template_id)
    part = _part(template, part_id)
    item = update_item(part, item_id, item_patch_from_payload(payload))
    save_template(db, template)
    return item


def remove_item(db: Session, template_id: str, part_id: str, item_id: str) -> DeleteResult:
    template = get_template(db, template_id)
    part = _part(template, part_id)
    result = delete_item(part, item_id)
    save_template(db, template)
    return result


def resolve_action_target(
    db: Session, template_id: str, part_id: str, item_id: str, action_id: str
) -> StepTarget:
    template = get_template(db, template_id)
    part = _part(template, part_id)
    item = part.item_by_id(item_id)
    if item is None:
        raise UnknownItemError(item_id)
    action = next((a for a in item.actions if a.id == action_id), None)
    if action is None:
        raise UnknownItemError(action_id)
    return resolve_next_step(action, item, part, template.parts)


def template_warnings(template: FormTemplate) -> list[str]:
    return [w for part in template.parts for w in find_backward_links(part)]
