"""Field-level help for the request form's assistant panel.

``FieldAdvisor`` is the seam between the form and whatever produces advice. The
table-backed advisor answers from canned text and values; the LLM-backed one
asks a hosted chat-completions endpoint and falls back to the table whenever the
call fails, so the form stays usable without the assistant.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from app.config import Settings
from emoc_workflow.core import create_risk_assessment

logger = logging.getLogger(__name__)

LLM_TIMEOUT_CAP_SECONDS = 60

BASE_SYSTEM_PROMPT = (
    "You are an expert assistant for an engineering Management of Change (MOC) system in a "
    "manufacturing plant. Help users complete MOC forms accurately and according to engineering "
    "standards. Use concise, professional English, keep answers to 2-3 sentences, and ask at most "
    "3 questions at a time."
)


@dataclass(slots=True, frozen=True)
class Advice:
    field_id: str
    title: str
    message: str
    suggested_value: Any = None
    source: str = "table"
    error: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "fieldId": self.field_id,
            "title": self.title,
            "message": self.message,
            "suggestedValue": self.suggested_value,
            "source": self.source,
            "error": self.error,
        }


class FieldAdvisor(Protocol):
    def explain(self, field_id: str, context: dict[str, Any]) -> Advice: ...

    def suggest_value(self, field_id: str, context: dict[str, Any]) -> Any: ...


# field id -> (title, explanation, canned auto-fill value)
FIELD_TABLE: dict[str, tuple[str, str, Any]] = {
    "mocTitle": (
        "MOC Title",
        "Name the equipment or process and the change in one line, e.g. what is being changed and where.",
        "Replace cooling water pump P-101A impeller to restore design flow",
    ),
    "detailOfChange": (
        "Detail of Change",
        "Describe the current state, the proposed state and the equipment, tags or procedures affected.",
        None,
    ),
    "reasonForChange": (
        "Reason for Change",
        "Explain the problem the change solves and the evidence for it, such as downtime, incidents or audits.",
        None,
    ),
    "scopeOfWork": (
        "Scope of Work",
        "List the work packages, disciplines involved and what is explicitly out of scope.",
        None,
    ),
    "tpmLossType": (
        "TPM Loss Type",
        "TPM Loss Type is the category of production loss this change addresses under Total Productive "
        "Maintenance. It drives how the loss elimination value is calculated.",
        "tpm-4",
    ),
    "lossEliminateValue": (
        "Loss Eliminate Value",
        "Estimate the yearly loss removed by the change, in THB, using the TPM loss type as the basis.",
        None,
    ),
    "expectedBenefits": (
        "Expected Benefits",
        "Describe the expected positive outcomes in measurable terms and give timeframes such as per "
        "month or annually.",
        "Reduction in equipment downtime by 25% resulting in increased production capacity of 500 "
        "tons/month, estimated cost savings of 2.5M THB annually through improved operational efficiency "
        "and reduced maintenance requirements",
    ),
    "estimatedBenefit": (
        "Estimated Benefit",
        "Benefit value is the total financial gain expected: (current state cost - future state cost) x "
        "time period, counting direct and indirect savings.",
        2500000,
    ),
    "estimatedCost": (
        "Estimated Cost",
        "Include equipment and materials, installation and labour, engineering and design, and testing "
        "and commissioning.",
        1200000,
    ),
    "lengthOfChange": (
        "Length of Change",
        "Permanent changes stay in place; Temporary changes need a defined end date; Overriding is for "
        "bypasses of protective systems.",
        "length-1",
    ),
    "typeOfChange": (
        "Type of Change",
        "Plant changes affect process safety information categories 1-3; maintenance changes alter "
        "maintenance practice; process changes do not affect PSI categories 1-3.",
        "type-1",
    ),
    "priorityId": (
        "Priority of Change",
        "Use Emergency only for an immediate safety threat or total production stoppage; everything else "
        "is Normal.",
        "priority-1",
    ),
    "riskBeforeChange": (
        "Risk Before Change",
        "Rate how likely the current hazard is (A-D) and how severe its consequence would be (1-4). The "
        "matrix cell gives the risk code.",
        {"likelihood": 3, "impact": 3},
    ),
    "riskAfterChange": (
        "Risk After Change",
        "Rate the residual risk once the change is in place, with the same scales as the before-change "
        "assessment.",
        {"likelihood": 2, "impact": 2},
    ),
}
RISK_FIELD_IDS = ("riskBeforeChange", "riskAfterChange")


def _risk_suggestion(field_id: str, context: dict[str, Any], default: dict[str, int]) -> dict[str, Any]:
    current = context.get(field_id) if isinstance(context.get(field_id), dict) else {}
    likelihood = current.get("likelihood") or default["likelihood"]
    impact = current.get("impact") or default["impact"]
    try:
        return create_risk_assessment(likelihood, impact).to_payload()
    except ValueError:
        logger.info("Ignoring invalid %s grades %r/%r, suggesting the default", field_id, likelihood, impact)
        return create_risk_assessment(default["likelihood"], default["impact"]).to_payload()


class TableFieldAdvisor:
    def explain(self, field_id: str, context: dict[str, Any]) -> Advice:
        entry = FIELD_TABLE.get(field_id)
        if entry is None:
            return Advice(
                field_id=field_id,
                title="MOC Assistant",
                message="Ask about the MOC process, which fields to fill, or terminology used in the form.",
            )
        title, message, _ = entry
        return Advice(
            field_id=field_id,
            title=title,
            message=message,
            suggested_value=self.suggest_value(field_id, context),
        )

    def suggest_value(self, field_id: str, context: dict[str, Any]) -> Any:
        entry = FIELD_TABLE.get(field_id)
        if entry is None:
            return None
        value = entry[2]
        if field_id in RISK_FIELD_IDS:
            return _risk_suggestion(field_id, context, value)
        return value


class LlmFieldAdvisor:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        api_url: str,
        timeout_seconds: int = 30,
        fallback: FieldAdvisor | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout_seconds = max(1, min(LLM_TIMEOUT_CAP_SECONDS, int(timeout_seconds)))
        self.fallback = fallback or TableFieldAdvisor()

    def _chat(self, system_prompt: str, user_prompt: str) -> str:
        payload = {
            "model": self.model,
            "temperature": 0,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        res = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout_seconds)
        res.raise_for_status()
        body = res.json()
        content = body.get("choices", [{}])[0].get("message", {}).get("content", "")
        text = str(content or "").strip()
        if not text:
            raise ValueError("empty completion")
        return text

    def _context_json(self, context: dict[str, Any]) -> str:
        return json.dumps(context, ensure_ascii=True, default=str)[:4000]

    def explain(self, field_id: str, context: dict[str, Any]) -> Advice:
        title = FIELD_TABLE.get(field_id, ("MOC Assistant", "", None))[0]
        try:
            message = self._chat(
                f"{BASE_SYSTEM_PROMPT}\nThe user is working on field: {field_id}.",
                f"How should I fill the {title} field?\nCurrent form: {self._context_json(context)}",
            )
        except (requests.RequestException, ValueError, KeyError, IndexError) as exc:
            logger.warning("Field assistant unavailable for %s, using canned advice: %s", field_id, exc)
            canned = self.fallback.explain(field_id, context)
            return Advice(
                field_id=canned.field_id,
                title=canned.title,
                message=canned.message,
                suggested_value=canned.suggested_value,
                source="table",
                error="The assistant is unavailable right now; showing standard guidance.",
            )
        return Advice(
            field_id=field_id,
            title=title,
            message=message[:1100],
            suggested_value=self.fallback.suggest_value(field_id, context),
            source="llm",
        )

    def suggest_value(self, field_id: str, context: dict[str, Any]) -> Any:
        # Risk values always go through the matrix so the payload stays consistent.
        if field_id in RISK_FIELD_IDS:
            return self.fallback.suggest_value(field_id, context)
        try:
            text = self._chat(
                f"{BASE_SYSTEM_PROMPT}\nReply only with JSON of the form {{\"value\": ...}}.",
                f"Suggest a value for field {field_id}.\nCurrent form: {self._context_json(context)}",
            )
            parsed = json.loads(text)
        except (requests.RequestException, ValueError, KeyError, IndexError) as exc:
            logger.warning("Field suggestion unavailable for %s, using canned value: %s", field_id, exc)
            return self.fallback.suggest_value(field_id, context)
        if not isinstance(parsed, dict) or "value" not in parsed:
            return self.fallback.suggest_value(field_id, context)
        return parsed["value"]


def build_field_advisor(settings: Settings) -> FieldAdvisor:
    api_key = (settings.llm_api_key or "").strip()
    if not api_key:
        return TableFieldAdvisor()
    return LlmFieldAdvisor(
        api_key=api_key,
        model=(settings.llm_model or "gpt-4.1").strip(),
        api_url=settings.llm_api_url,
        timeout_seconds=settings.request_timeout_seconds,
    )
