"""
Survey response domain model.

A survey response is written by the upstream intake process and is
read-only to the audio pipeline.
"""
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Any, Optional


DEFAULT_CONTACT_NAME = "participante"

# IMPACT diagnostic dimensions, in presentation order
DIAGNOSTIC_DIMENSIONS = (
    "intention",
    "message",
    "pain",
    "authority",
    "commitment",
    "transformation",
)


@dataclass(frozen=True)
class ContactProfile:
    """Who answered the survey."""

    name: str = DEFAULT_CONTACT_NAME
    company: Optional[str] = None
    role: Optional[str] = None

    @property
    def first_name(self) -> str:
        parts = (self.name or "").split()
        return parts[0] if parts else DEFAULT_CONTACT_NAME


@dataclass(frozen=True)
class SurveyResponse:
    """
    Immutable diagnostic answer set.

    survey_data holds the calibration answers keyed by question id and an
    optional 'scores' map of diagnostic dimension -> 0..10 score.
    """

    id: str
    email: str
    user_id: Optional[str] = None
    transaction_id: Optional[str] = None
    survey_data: Dict[str, Any] = field(default_factory=dict)
    profile: ContactProfile = field(default_factory=ContactProfile)
    created_at: Optional[str] = None

    @property
    def diagnostic_scores(self) -> Dict[str, float]:
        """
        Numeric scores per dimension, in the order they were recorded.

        Dimensions listed in DIAGNOSTIC_DIMENSIONS come first in that order,
        any other recorded dimension follows. Non-numeric and non-finite
        values are skipped.
        """
        raw = self.survey_data.get("scores") or {}
        if not isinstance(raw, dict):
            return {}

        ordered_keys = [key for key in DIAGNOSTIC_DIMENSIONS if key in raw]
        ordered_keys += [key for key in raw if key not in DIAGNOSTIC_DIMENSIONS]

        scores: Dict[str, float] = {}
        for key in ordered_keys:
            value = raw[key]
            if isinstance(value, bool):
                continue
            if isinstance(value, (int, float, Decimal, str)):
                try:
                    number = float(value)
                except ValueError:
                    continue
                # NaN and infinities cannot be ranked
                if math.isfinite(number):
                    scores[key] = number
        return scores

    def answer(self, question_id: str) -> Optional[str]:
        value = self.survey_data.get(question_id)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SurveyResponse":
        """Create a survey response from a stored record."""
        return cls(
            id=str(data["id"]),
            email=data.get("email", ""),
            user_id=data.get("user_id"),
            transaction_id=data.get("transaction_id"),
            survey_data=dict(data.get("survey_data") or {}),
            profile=ContactProfile(
                name=data.get("name") or DEFAULT_CONTACT_NAME,
                company=data.get("company"),
                role=data.get("role")
            ),
            created_at=data.get("created_at")
        )
