from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.dependencies import get_field_advisor
from app.services.field_advisor import FieldAdvisor
from app.services.form_session import get_form_session
from app.utils.jsonx import read_json_body

router = APIRouter(prefix="/api/assistant", tags=["assistant"])


async def _field_request(request: Request) -> tuple[str, dict, str]:
    payload = await read_json_body(request)
    if not isinstance(payload, dict):
        return "", {}, ""
    context = payload.get("context") if isinstance(payload.get("context"), dict) else {}
    return str(payload.get("fieldId", "") or "").strip(), context, str(payload.get("sessionId", "") or "")


def _missing_field() -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "invalid_payload", "errors": {"fieldId": "Field is required"}})


@router.post("/explain")
async def explain_field(request: Request, advisor: FieldAdvisor = Depends(get_field_advisor)):
    field_id, context, session_id = await _field_request(request)
    if not field_id:
        return _missing_field()
    if session_id:
        session = get_form_session(session_id)
        session.active_field = field_id
        context = {**session.snapshot, **context}
    return advisor.explain(field_id, context).to_payload()


@router.post("/suggest")
async def suggest_value(request: Request, advisor: FieldAdvisor = Depends(get_field_advisor)):
    field_id, context, session_id = await _field_request(request)
    if not field_id:
        return _missing_field()
    session = get_form_session(session_id) if session_id else None
    if session is not None:
        context = {**session.snapshot, **context}
    value = advisor.suggest_value(field_id, context)
    if session is not None and value is not None:
        session.fill_field(field_id, value)
    return {"fieldId": field_id, "value": value}
