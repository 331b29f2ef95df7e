"""Risk matrix scoring for MOC requests.

Two classifications come out of every assessment and they are deliberately kept
apart: ``level`` is banded from the likelihood x impact product, while
``risk_code`` is read from the plant's 4x4 matrix, where rank 1 is the most
severe cell. The two do not agree at every boundary (3x3 scores 9 and is
``Medium`` by band but ``H5`` on the matrix) and both are shown to users.
"""

from __future__ import annotations

from typing import Any

from ..models import Impact, Likelihood, RiskAssessment, RiskCodeStyle, RiskLevel

LIKELIHOOD_LABELS: dict[Likelihood, str] = {
    Likelihood.RARE: "Rare",
    Likelihood.UNLIKELY: "Unlikely",
    Likelihood.POSSIBLE: "Possible",
    Likelihood.LIKELY: "Likely",
}

LIKELIHOOD_LETTERS: dict[Likelihood, str] = {
    Likelihood.RARE: "A",
    Likelihood.UNLIKELY: "B",
    Likelihood.POSSIBLE: "C",
    Likelihood.LIKELY: "D",
}

IMPACT_LABELS: dict[Impact, str] = {
    Impact.MINOR: "Minor",
    Impact.MODERATE: "Moderate",
    Impact.MAJOR: "Major",
    Impact.CATASTROPHIC: "Catastrophic",
}

# Severity names are worded like the impact labels but are a separate field in the
# payload; the matrix screen uses them in the consequence column.
SEVERITY_LEVELS: dict[Impact, str] = dict(IMPACT_LABELS)

# (likelihood, impact) -> matrix cell code.
RISK_CODE_MATRIX: dict[tuple[int, int], str] = {
    (1, 4): "M7",
    (2, 4): "H4",
    (3, 4): "H2",
    (4, 4): "H1",
    (1, 3): "M10",
    (2, 3): "M8",
    (3, 3): "H5",
    (4, 3): "H3",
    (1, 2): "L14",
    (2, 2): "M11",
    (3, 2): "M9",
    (4, 2): "H6",
    (1, 1): "L16",
    (2, 1): "L15",
    (3, 1): "M13",
    (4, 1): "M12",
}

PROBABILITY_DESCRIPTIONS: dict[Likelihood, str] = {
    Likelihood.RARE: "<5%, exceptional, less than once in 5 years",
    Likelihood.UNLIKELY: "5-20%, occasionally, once in 1-5 years",
    Likelihood.POSSIBLE: "20-50%, sometimes, 1-4 times per year",
    Likelihood.LIKELY: ">50%, frequently, more than 4 times per year",
}

SEVERITY_DESCRIPTIONS: dict[Impact, str] = {
    Impact.MINOR: "No injury, downtime under 1 hour, loss under 10,000 THB",
    Impact.MODERATE: "Minor injury, downtime 1-8 hours, loss 10,000-100,000 THB",
    Impact.MAJOR: "Medical treatment, downtime 8-24 hours, loss 100,000-500,000 THB",
    Impact.CATASTROPHIC: "Serious injury or fatality, downtime over 3 days, loss over 2,000,000 THB",
}

_CODE_STYLES: dict[str, RiskCodeStyle] = {
    "L": RiskCodeStyle(background="#D1FAE5", color="#065F46"),
    "M": RiskCodeStyle(background="#FED7AA", color="#9A3412"),
    "H": RiskCodeStyle(background="#FEE2E2", color="#991B1B"),
}
NEUTRAL_STYLE = RiskCodeStyle(background="#F3F4F6", color="#374151")


def calculate_risk_score(likelihood: int, impact: int) -> int:
    return int(likelihood) * int(impact)


def determine_risk_level(score: int) -> RiskLevel | None:
    if 1 <= score <= 4:
        return RiskLevel.LOW
    if 5 <= score <= 9:
        return RiskLevel.MEDIUM
    if 10 <= score <= 12:
        return RiskLevel.HIGH
    if 13 <= score <= 16:
        return RiskLevel.EXTREME
    return None


def _as_grade(value: Any, name: str) -> int | None:
    if value is None:
        return None
    # bool is an int subclass; 2.7 or "3" must not be truncated into a grade.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be a whole number from 1 to 4, got {value!r}")
    return value


def _as_likelihood(value: int | None) -> Likelihood | None:
    # Enum coercion raises ValueError for anything outside 1..4.
    grade = _as_grade(value, "likelihood")
    return None if grade is None else Likelihood(grade)


def _as_impact(value: int | None) -> Impact | None:
    grade = _as_grade(value, "impact")
    return None if grade is None else Impact(grade)


def create_risk_assessment(likelihood: int | None, impact: int | None) -> RiskAssessment:
    lk = _as_likelihood(likelihood)
    im = _as_impact(impact)

    score = 0
    level = None
    risk_code = None
    if lk is not None and im is not None:
        score = calculate_risk_score(lk, im)
        level = determine_risk_level(score)
        risk_code = RISK_CODE_MATRIX[(int(lk), int(im))]

    return RiskAssessment(
        likelihood=lk,
        likelihood_label=LIKELIHOOD_LABELS[lk] if lk is not None else "",
        likelihood_letter=LIKELIHOOD_LETTERS[lk] if lk is not None else "",
        impact=im,
        impact_label=IMPACT_LABELS[im] if im is not None else "",
        severity_level=SEVERITY_LEVELS[im] if im is not None else "",
        score=score,
        level=level,
        risk_code=risk_code,
    )


def to_risk_assessment(payload: dict[str, Any] | None) -> RiskAssessment:
    """Rebuild an assessment from a form payload.

    Only ``likelihood`` and ``impact`` are read; score, level and code are always
    recomputed so a stale or hand-edited payload cannot disagree with the matrix.
    """
    if not payload:
        return create_risk_assessment(None, None)
    if not isinstance(payload, dict):
        raise ValueError(f"risk payload must be an object, got {type(payload).__name__}")
    return create_risk_assessment(payload.get("likelihood"), payload.get("impact"))


def get_risk_code_style(risk_code: str | None) -> RiskCodeStyle:
    code = str(risk_code or "").strip().upper()
    if not code:
        return NEUTRAL_STYLE
    return _CODE_STYLES.get(code[0], NEUTRAL_STYLE)


def risk_matrix_rows() -> list[dict[str, Any]]:
    """Matrix grid in display order: most severe impact first, likelihood A..D."""
    rows: list[dict[str, Any]] = []
    for im in sorted(Impact, reverse=True):
        cells = []
        for lk in Likelihood:
            code = RISK_CODE_MATRIX[(int(lk), int(im))]
            cells.append(
                {
                    "likelihood": int(lk),
                    "likelihoodLetter": LIKELIHOOD_LETTERS[lk],
                    "riskCode": code,
                    "style": get_risk_code_style(code).to_payload(),
                }
            )
        rows.append(
            {
                "impact": int(im),
                "severityLevel": SEVERITY_LEVELS[im],
                "description": SEVERITY_DESCRIPTIONS[im],
                "cells": cells,
            }
        )
    return rows


def probability_columns() -> list[dict[str, Any]]:
    return [
        {
            "likelihood": int(lk),
            "letter": LIKELIHOOD_LETTERS[lk],
            "label": LIKELIHOOD_LABELS[lk],
            "description": PROBABILITY_DESCRIPTIONS[lk],
        }
        for lk in Likelihood
    ]


def compare_assessments(before: RiskAssessment, after: RiskAssessment) -> dict[str, Any]:
    """Before/after summary shown next to the two assessments on the request form.

    A later score is not required to be lower; ``direction`` just reports it.
    """
    if not before.is_complete or not after.is_complete:
        return {"complete": False, "scoreBefore": before.score, "scoreAfter": after.score}

    delta = before.score - after.score
    if delta > 0:
        direction = "reduced"
    elif delta < 0:
        direction = "increased"
    else:
        direction = "unchanged"
    reduction_pct = round(delta * 100 / before.score) if before.score else 0
    return {
        "complete": True,
        "scoreBefore": before.score,
        "scoreAfter": after.score,
        "codeBefore": before.risk_code,
        "codeAfter": after.risk_code,
        "direction": direction,
        "reductionPercent": reduction_pct,
    }
