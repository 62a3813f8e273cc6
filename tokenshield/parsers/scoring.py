"""Final token score from a completed checklist.

Two strategies:
- ``score_with_rules``: fixed decision table, fully deterministic
- ``score_with_ai``: holistic model judgment, None when the reply is unusable

Missing signals never count in the token's favour: an undetermined
percentage fails its threshold and an undetermined code review falls
through to the fail-closed default.
"""

from dataclasses import dataclass

from loguru import logger

from config.settings import Settings
from tokenshield.models import TokenCheckList, TokenScore
from tokenshield.parsers.llm.client import AIReviewer
from tokenshield.parsers.llm.models import TokenScoreAssessment


@dataclass(frozen=True)
class ScoringThresholds:
    liquidity_locked_pct: float = 90.0  # strictly above
    usd_liquidity: float = 10_000.0  # strictly above
    top_holder_pct: float = 10.0  # strictly below

    @classmethod
    def from_settings(cls, cfg: Settings) -> "ScoringThresholds":
        return cls(
            liquidity_locked_pct=cfg.liquidity_locked_threshold_pct,
            usd_liquidity=cfg.usd_liquidity_threshold,
            top_holder_pct=cfg.top_holder_threshold_pct,
        )


def score_with_rules(checklist: TokenCheckList, thresholds: ScoringThresholds | None = None) -> TokenScore:
    t = thresholds or ScoringThresholds()

    # Failed sell overrides everything
    if checklist.is_token_sellable is False:
        return TokenScore.SCAM

    if checklist.possible_scam is True and checklist.could_legitimately_justify_suspicious_code is not True:
        return TokenScore.SCAM

    lp_pct = checklist.percentage_liquidity_locked_or_burned
    usd = checklist.liquidity_in_usd
    top = checklist.top_holder_percentage_tokens_held

    locked = lp_pct is not None and lp_pct > t.liquidity_locked_pct
    deep = usd is not None and usd > t.usd_liquidity
    spread = top is not None and top < t.top_holder_pct

    if checklist.possible_scam is False:
        if locked and spread:
            return TokenScore.LEGIT if deep else TokenScore.LIKELY_LEGIT
        if locked:
            return TokenScore.IFFY if deep else TokenScore.LIKELY_SCAM
        return TokenScore.LIKELY_SCAM if deep else TokenScore.SCAM

    if checklist.possible_scam is True:
        # Flagged code with a plausible anti-bot justification
        website = checklist.has_website is True
        social = checklist.has_twitter_or_discord is True
        if not deep:
            return TokenScore.SCAM
        if locked and spread:
            if website and social:
                return TokenScore.LIKELY_LEGIT
            return TokenScore.IFFY if website else TokenScore.LIKELY_SCAM
        if locked:
            if website and social:
                return TokenScore.IFFY
            return TokenScore.LIKELY_SCAM if website else TokenScore.SCAM
        return TokenScore.SCAM

    return TokenScore.SCAM


async def score_with_ai(checklist: TokenCheckList, reviewer: AIReviewer) -> TokenScoreAssessment | None:
    """Holistic score; callers fall back to the rules when this returns None."""
    assessment = await reviewer.assess_checklist(checklist)
    if assessment is None:
        logger.warning(f"[SCORE] No usable AI verdict for {checklist.token_address[:10]}")
    return assessment
