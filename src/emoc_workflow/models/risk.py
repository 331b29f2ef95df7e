from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import TypedDict


class Likelihood(IntEnum):
    RARE = 1
    UNLIKELY = 2
    POSSIBLE = 3
    LIKELY = 4


class Impact(IntEnum):
    MINOR = 1
    MODERATE = 2
    MAJOR = 3
    CATASTROPHIC = 4


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    EXTREME = "Extreme"


class RawRiskAssessment(TypedDict, total=False):
    likelihood: int | None
    likelihoodLabel: str
    likelihoodLetter: str
    impact: int | None
    impactLabel: str
    severityLevel: str
    score: int
    level: str | None
    riskCode: str | None


@dataclass(slots=True, frozen=True)
class RiskAssessment:
    likelihood: Likelihood | None = None
    likelihood_label: str = ""
    likelihood_letter: str = ""
    impact: Impact | None = None
    impact_label: str = ""
    severity_level: str = ""
    score: int = 0
    level: RiskLevel | None = None
    risk_code: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.likelihood is not None and self.impact is not None

    def to_payload(self) -> RawRiskAssessment:
        return {
            "likelihood": int(self.likelihood) if self.likelihood is not None else None,
            "likelihoodLabel": self.likelihood_label,
            "likelihoodLetter": self.likelihood_letter,
            "impact": int(self.impact) if self.impact is not None else None,
            "impactLabel": self.impact_label,
            "severityLevel": self.severity_level,
            "score": self.score,
            "level": self.level.value if self.level is not None else None,
            "riskCode": self.risk_code,
        }


@dataclass(slots=True, frozen=True)
class RiskCodeStyle:
    background: str
    color: str

    def to_payload(self) -> dict[str, str]:
        return {"backgroundColor": self.background, "color": self.color}
