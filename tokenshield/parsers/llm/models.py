"""Typed verdicts the reviewer expects back from the model."""

from pydantic import BaseModel, field_validator

from tokenshield.models import TokenScore

SCORE_LABELS = {
    "4 - Legit": TokenScore.LEGIT,
    "3 - Likely Legit": TokenScore.LIKELY_LEGIT,
    "2 - Iffy": TokenScore.IFFY,
    "1 - Likely Scam": TokenScore.LIKELY_SCAM,
    "0 - Scam": TokenScore.SCAM,
}


class CodeReviewVerdict(BaseModel):
    possible_scam: bool
    reason: str
    could_legitimately_justify_suspicious_code: bool
    reason_could_be_legitimate_or_not: str = ""

    model_config = {"extra": "ignore"}


class WebsiteReviewVerdict(BaseModel):
    possible_scam: bool
    reason: str
    summary: str = ""

    model_config = {"extra": "ignore"}


class SocialReviewVerdict(BaseModel):
    possible_scam: bool
    reason: str
    summary: str = ""

    model_config = {"extra": "ignore"}


class TokenScoreAssessment(BaseModel):
    token_score: str
    reason: str

    model_config = {"extra": "ignore"}

    @field_validator("token_score")
    @classmethod
    def _known_label(cls, value: str) -> str:
        value = value.strip()
        if value[:1] not in {"0", "1", "2", "3", "4"}:
            raise ValueError(f"unrecognised token_score {value!r}")
        return value

    @property
    def score(self) -> TokenScore:
        """Ordinal from the leading digit, tolerant of label spelling drift."""
        return SCORE_LABELS.get(self.token_score, TokenScore(int(self.token_score[0])))
