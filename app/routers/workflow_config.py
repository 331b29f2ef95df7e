from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.services import workflow_store
from app.services.workflow_store import PartNotFoundError, TemplateNotFoundError
from app.utils.jsonx import read_json_body
from emoc_workflow.core import (
    DanglingReferenceError,
    UnknownItemError,
    WorkflowValidationError,
    duplicate_template_keys,
    find_backward_links,
)
from emoc_workflow.models import to_workflow_item, to_workflow_part

router = APIRouter(prefix="/api/templates", tags=["workflow-config"])


def _not_found(what: str, key: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found", "errors": {what: f"No {what} '{key}'"}})


def _invalid(exc: WorkflowValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": str(exc), "errors": exc.errors})


def _bad_payload(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "invalid_payload", "errors": {"payload": message}})


async def _json_list(request: Request, key: str) -> list[dict[str, Any]]:
    payload = await read_json_body(request)
    entries = payload.get(key) if isinstance(payload, dict) else payload
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ValueError(f"Expected a list of {key}.")
    return entries


def _template_body(template) -> dict[str, Any]:
    return {**template.to_payload(), "warnings": workflow_store.template_warnings(template)}


@router.get("")
def list_templates(db: Session = Depends(get_db)):
    templates = workflow_store.list_templates(db)
    return {
        "templates": [t.to_payload() for t in templates],
        "duplicateKeys": [list(k) for k in duplicate_template_keys(templates)],
    }


@router.get("/lookup")
def lookup_template(
    type_of_change: str = Query(default="", alias="typeOfChange"),
    length_of_change: str = Query(default="", alias="lengthOfChange"),
    db: Session = Depends(get_db),
):
    template = workflow_store.lookup_template(db, type_of_change, length_of_change)
    if template is None:
        return _not_found("template", f"{type_of_change} / {length_of_change}")
    return template.to_payload()


@router.get("/{template_id}")
def get_template(template_id: str, db: Session = Depends(get_db)):
    try:
        template = workflow_store.get_template(db, template_id)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    return _template_body(template)


@router.put("/{template_id}/parts")
async def put_parts(template_id: str, request: Request, db: Session = Depends(get_db)):
    try:
        parts = [to_workflow_part(p) for p in await _json_list(request, "parts")]  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        return _bad_payload(str(exc))
    try:
        template = workflow_store.replace_parts(db, template_id, parts)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    except WorkflowValidationError as exc:
        return _invalid(exc)
    return _template_body(template)


@router.put("/{template_id}/parts/{part_id}/items")
async def put_items(template_id: str, part_id: str, request: Request, db: Session = Depends(get_db)):
    try:
        items = [to_workflow_item(i) for i in await _json_list(request, "items")]  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        return _bad_payload(str(exc))
    try:
        part = workflow_store.replace_items(db, template_id, part_id, items)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    except PartNotFoundError:
        return _not_found("part", part_id)
    except WorkflowValidationError as exc:
        return _invalid(exc)
    return {**part.to_payload(), "warnings": find_backward_links(part)}


@router.post("/{template_id}/parts/{part_id}/items")
async def post_item(template_id: str, part_id: str, request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    if not isinstance(payload, dict):
        payload = {}
    try:
        item = workflow_store.add_item(db, template_id, part_id, payload)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    except PartNotFoundError:
        return _not_found("part", part_id)
    return JSONResponse(status_code=201, content=item.to_payload())


@router.patch("/{template_id}/parts/{part_id}/items/{item_id}")
async def patch_item(template_id: str, part_id: str, item_id: str, request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    if not isinstance(payload, dict):
        return _bad_payload("Expected an object of item fields.")
    try:
        item = workflow_store.patch_item(db, template_id, part_id, item_id, payload)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    except PartNotFoundError:
        return _not_found("part", part_id)
    except UnknownItemError:
        return _not_found("item", item_id)
    except WorkflowValidationError as exc:
        return _invalid(exc)
    except ValueError as exc:
        return _bad_payload(str(exc))
    return item.to_payload()


@router.delete("/{template_id}/parts/{part_id}/items/{item_id}")
def delete_item(template_id: str, part_id: str, item_id: str, db: Session = Depends(get_db)):
    try:
        result = workflow_store.remove_item(db, template_id, part_id, item_id)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    except PartNotFoundError:
        return _not_found("part", part_id)
    except UnknownItemError:
        return _not_found("item", item_id)
    return {
        "removed": result.removed.id,
        "clearedActions": [{"itemId": i, "actionId": a} for i, a in result.cleared_actions],
        "warnings": result.warnings,
    }


@router.get("/{template_id}/parts/{part_id}/items/{item_id}/actions/{action_id}/target")
def action_target(template_id: str, part_id: str, item_id: str, action_id: str, db: Session = Depends(get_db)):
    try:
        target = workflow_store.resolve_action_target(db, template_id, part_id, item_id, action_id)
    except TemplateNotFoundError:
        return _not_found("template", template_id)
    except PartNotFoundError:
        return _not_found("part", part_id)
    except UnknownItemError as exc:
        return _not_found("item", str(exc.args[0]) if exc.args else item_id)
    except DanglingReferenceError as exc:
        return JSONResponse(
            status_code=422,
            content={"error": "dangling_reference", "errors": {"nextStep": str(exc)}},
        )
    return target.to_payload()
