from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.models import MocRequestRecord
from app.services.form_session import get_form_session
from app.services.prescreening import QUALIFICATION_QUESTIONS, evaluate_prescreening
from app.services.request_rules import options_catalogue, template_key_for, validate_all, validate_field, visible_fields
from app.services.workflow_store import lookup_template
from app.utils.jsonx import from_json_object, read_json_body, to_json
from emoc_workflow.core import to_risk_assessment

router = APIRouter(prefix="/api/requests", tags=["requests"])


def _split_payload(payload: Any) -> tuple[dict[str, Any], str]:
    if not isinstance(payload, dict):
        return {}, ""
    session_id = str(payload.get("sessionId", "") or "")
    form = payload.get("form") if isinstance(payload.get("form"), dict) else payload
    return dict(form), session_id


def _request_body(record: MocRequestRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "mocTitle": record.moc_title,
        "status": record.status,
        "priorityId": record.priority_id,
        "templateId": record.template_id or None,
        "riskBeforeCode": record.risk_before_code or None,
        "riskAfterCode": record.risk_after_code or None,
        "form": from_json_object(record.form_json),
        "createdAt": record.created_at.isoformat() if record.created_at else None,
    }


@router.get("/options")
def request_options():
    return options_catalogue()


@router.post("/prescreen")
async def prescreen(request: Request):
    payload = await read_json_body(request)
    answers = payload.get("answers", payload) if isinstance(payload, dict) else {}
    result = evaluate_prescreening(answers if isinstance(answers, dict) else {})
    return {**result.to_payload(), "questions": QUALIFICATION_QUESTIONS}


@router.post("/validate")
async def validate_request(request: Request):
    payload = await read_json_body(request)
    form, session_id = _split_payload(payload)

    field = str(payload.get("field", "") or "") if isinstance(payload, dict) else ""
    if field:
        return {"field": field, "error": validate_field(field, payload.get("value"))}

    errors = validate_all(form)
    body: dict[str, Any] = {"valid": not errors, "errors": errors, "visibleFields": visible_fields(form)}
    if session_id:
        session = get_form_session(session_id)
        session.report_errors(errors, form)
        body["session"] = session.to_payload()
    return body


@router.post("")
async def submit_request(request: Request, db: Session = Depends(get_db)):
    payload = await read_json_body(request)
    form, session_id = _split_payload(payload)

    errors = validate_all(form)
    if session_id:
        get_form_session(session_id).report_errors(errors, form)
    if errors:
        return JSONResponse(status_code=422, content={"error": "validation_failed", "errors": errors})

    key = template_key_for(form)
    template = lookup_template(db, *key) if key else None
    before = to_risk_assessment(form.get("riskBeforeChange"))
    after = to_risk_assessment(form.get("riskAfterChange"))
    form["riskBeforeChange"] = before.to_payload()
    form["riskAfterChange"] = after.to_payload()

    record = MocRequestRecord(
        moc_title=str(form.get("mocTitle", "")).strip(),
        priority_id=str(form.get("priorityId", "") or ""),
        template_id=template.id if template else "",
        risk_before_code=before.risk_code or "",
        risk_after_code=after.risk_code or "",
        form_json=to_json(form),
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    body = _request_body(record)
    body["templateKey"] = list(key) if key else None
    return JSONResponse(status_code=201, content=body)


@router.get("/{request_id}")
def get_request(request_id: int, db: Session = Depends(get_db)):
    record = db.get(MocRequestRecord, request_id)
    if not record:
        return JSONResponse(status_code=404, content={"error": "not_found"})
    return _request_body(record)
