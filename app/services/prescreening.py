from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

QUALIFICATION_QUESTIONS: list[dict[str, str]] = [
    {
        "id": "q1",
        "question": (
            "Is this change related to TPM Loss (Total Productive Maintenance loss - including "
            "equipment downtime, defects, or efficiency improvements)?"
        ),
    },
    {
        "id": "q2",
        "question": (
            "Is this change related to Safety (worker safety, hazard mitigation, incident prevention, "
            "or safety system modifications)?"
        ),
    },
    {
        "id": "q3",
        "question": (
            "Is this change related to Environment (environmental compliance, emissions reduction, "
            "waste management, or ecological impact)?"
        ),
    },
    {
        "id": "q4",
        "question": (
            "Is this change related to Quality (product quality, specifications, consistency, "
            "or quality management system improvements)?"
        ),
    },
]
MIN_YES_ANSWERS = 2


@dataclass(slots=True)
class PrescreenResult:
    qualified: bool
    yes_count: int
    unanswered: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "qualified": self.qualified,
            "yesCount": self.yes_count,
            "required": MIN_YES_ANSWERS,
            "unanswered": list(self.unanswered),
        }


def evaluate_prescreening(answers: dict[str, Any]) -> PrescreenResult:
    """A change needs an MOC when at least two qualification answers are "yes".

    Every question must be answered; unanswered ids are returned and the request
    does not qualify until they are.
    """
    unanswered = [q["id"] for q in QUALIFICATION_QUESTIONS if not isinstance(answers.get(q["id"]), bool)]
    yes_count = sum(1 for q in QUALIFICATION_QUESTIONS if answers.get(q["id"]) is True)
    qualified = not unanswered and yes_count >= MIN_YES_ANSWERS
    return PrescreenResult(qualified=qualified, yes_count=yes_count, unanswered=unanswered)
