from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.utils.jsonx import read_json_body
from emoc_workflow.core import (
    compare_assessments,
    get_risk_code_style,
    probability_columns,
    risk_matrix_rows,
    to_risk_assessment,
)

router = APIRouter(prefix="/api/risk", tags=["risk"])


@router.get("/matrix")
def risk_matrix():
    return {"columns": probability_columns(), "rows": risk_matrix_rows()}


@router.post("/assess")
async def risk_assess(request: Request):
    payload = await read_json_body(request)
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "invalid_payload"})
    try:
        before = to_risk_assessment(payload.get("before") if "before" in payload else payload)
        after = to_risk_assessment(payload["after"]) if isinstance(payload.get("after"), dict) else None
    except (AttributeError, TypeError, ValueError):
        return JSONResponse(
            status_code=422,
            content={
                "error": "invalid_risk",
                "errors": {"risk": "Likelihood and impact must be between 1 and 4"},
            },
        )
    body = {"assessment": before.to_payload()}
    if after is not None:
        body["after"] = after.to_payload()
        body["comparison"] = compare_assessments(before, after)
    return body


@router.get("/style/{code}")
def risk_style(code: str):
    return {"riskCode": code, **get_risk_code_style(code).to_payload()}
