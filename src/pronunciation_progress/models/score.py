"""Pronunciation score models."""

from typing import Self

from pydantic import BaseModel, Field, model_validator

# Integer weights out of 10: 0.4 accuracy, 0.3 fluency, 0.2 completeness, 0.1 prosody
SCORE_WEIGHTS: dict[str, int] = {
    "accuracy": 4,
    "fluency": 3,
    "completeness": 2,
    "prosody": 1,
}


def compose_overall(accuracy: int, fluency: int, completeness: int, prosody: int) -> int:
    """Weighted composite of the four sub-scores, rounded half up.

    Integer arithmetic keeps the result exact (no float drift at .5).
    """
    total = (
        accuracy * SCORE_WEIGHTS["accuracy"]
        + fluency * SCORE_WEIGHTS["fluency"]
        + completeness * SCORE_WEIGHTS["completeness"]
        + prosody * SCORE_WEIGHTS["prosody"]
    )
    return (total + 5) // 10


def score_label(overall: int) -> str:
    """Rating band shown next to an overall score."""
    if overall >= 90:
        return "Excellent"
    elif overall >= 75:
        return "Good"
    elif overall >= 60:
        return "Fair"
    else:
        return "Needs Practice"


class PronunciationScore(BaseModel):
    """Per-attempt score. All fields are integer percentages."""

    overall: int = Field(ge=0, le=100)
    accuracy: int = Field(ge=0, le=100)
    fluency: int = Field(ge=0, le=100)
    completeness: int = Field(ge=0, le=100)
    prosody: int = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _check_overall(self) -> Self:
        expected = compose_overall(self.accuracy, self.fluency, self.completeness, self.prosody)
        if self.overall != expected:
            raise ValueError(f"overall must be {expected} for these components, got {self.overall}")
        return self

    @classmethod
    def from_components(
        cls, accuracy: int, fluency: int, completeness: int, prosody: int
    ) -> "PronunciationScore":
        """Build a score whose overall is composed from the sub-scores."""
        return cls(
            overall=compose_overall(accuracy, fluency, completeness, prosody),
            accuracy=accuracy,
            fluency=fluency,
            completeness=completeness,
            prosody=prosody,
        )


class WordMatch(BaseModel):
    """Positional comparison of one reference word with what was heard."""

    position: int
    expected: str | None = None
    heard: str | None = None
    similarity: float = 0.0
    matched: bool = False


class PronunciationAssessment(BaseModel):
    """Score plus the word-level breakdown behind it."""

    score: PronunciationScore
    words: list[WordMatch] = Field(default_factory=list)
    label: str = ""
