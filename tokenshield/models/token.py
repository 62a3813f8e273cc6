"""Domain records produced during one token assessment.

Everything here is created fresh per assessment and never mutated after
construction. ``None`` on any optional field means "undetermined", never
"checked and clean".
"""

from dataclasses import dataclass
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict


class Chain(IntEnum):
    MAINNET = 1
    BASE = 8453

    @classmethod
    def from_name(cls, name: str) -> "Chain":
        aliases = {"mainnet": cls.MAINNET, "eth": cls.MAINNET, "ethereum": cls.MAINNET, "base": cls.BASE}
        try:
            return aliases[name.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown chain: {name}") from None


class Dex(str, Enum):
    UNISWAP_V2 = "uniswap_v2"
    UNISWAP_V3 = "uniswap_v3"


class PoolInfo(BaseModel):
    """Highest-liquidity pool for a token, as resolved from the indexer."""

    model_config = ConfigDict(frozen=True)

    dex: Dex
    pair_or_pool_address: str
    token0: str
    token1: str
    is_target_token0: bool
    base_token_address: str
    base_token_symbol: str = ""
    # Uniswap fee tier in hundredths of a bip (3000 = 0.30%, 500 = 0.05%), not basis points.
    # V2 pairs always charge 3000.
    fee_bps: int = 3000
    liquidity_usd: float = 0.0
    created_at_block: int | None = None

    @property
    def target_token_address(self) -> str:
        return self.token0 if self.is_target_token0 else self.token1


@dataclass(frozen=True)
class HolderEntry:
    holder_address: str  # lower-cased
    quantity: int


class LiquidityHolderReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    top_holder_percentage: float | None = None
    percentage_locked_or_burned: float | None = None
    percentage_liquidity_locked_or_burned: float | None = None


class SimulationOutcome(str, Enum):
    LEGIT = "legit"
    CANNOT_BUY = "cannot_buy"
    CANNOT_SELL = "cannot_sell"

    @property
    def is_token_sellable(self) -> bool | None:
        """Sellability as seen by scoring; a failed buy tells nothing."""
        if self is SimulationOutcome.LEGIT:
            return True
        if self is SimulationOutcome.CANNOT_SELL:
            return False
        return None


@dataclass(frozen=True)
class SimulationResult:
    """Terminal state of one buy-then-sell replay on a fork."""

    outcome: SimulationOutcome
    stage: str  # state the replay stopped in
    revert_reason: str | None = None
    tokens_bought: int = 0


class TokenWebData(BaseModel):
    """Project links gathered from Moralis metadata or Etherscan tokeninfo."""

    model_config = ConfigDict(frozen=True)

    website: str = ""
    twitter: str = ""
    discord: str = ""
    telegram: str = ""
    whitepaper: str = ""
    blue_checkmark: bool = False

    @property
    def has_website(self) -> bool:
        return bool(self.website.strip())

    @property
    def has_twitter_or_discord(self) -> bool:
        return bool(self.twitter.strip() or self.discord.strip())

    @property
    def twitter_handle(self) -> str | None:
        """Extract the bare username from a twitter/x.com link or @handle."""
        raw = self.twitter.strip().rstrip("/")
        if not raw:
            return None
        if "/" in raw:
            raw = raw.rsplit("/", 1)[-1]
        raw = raw.split("?", 1)[0].lstrip("@")
        return raw or None


class TokenScore(IntEnum):
    SCAM = 0
    LIKELY_SCAM = 1
    IFFY = 2
    LIKELY_LEGIT = 3
    LEGIT = 4

    @property
    def label(self) -> str:
        return {
            TokenScore.SCAM: "Scam",
            TokenScore.LIKELY_SCAM: "Likely Scam",
            TokenScore.IFFY: "Iffy",
            TokenScore.LIKELY_LEGIT: "Likely Legit",
            TokenScore.LEGIT: "Legit",
        }[self]


class TokenCheckList(BaseModel):
    """Every signal gathered for one token, each independently optional."""

    model_config = ConfigDict(frozen=True)

    chain: Chain
    token_address: str
    token_name: str | None = None
    token_symbol: str | None = None
    pool: PoolInfo | None = None

    # Source code review
    possible_scam: bool | None = None
    reason_possible_scam: str | None = None
    could_legitimately_justify_suspicious_code: bool | None = None
    reason_could_or_couldnt_justify_suspicious_code: str | None = None

    # Website / social review
    website_possible_scam: bool | None = None
    website_review_reason: str | None = None
    social_possible_scam: bool | None = None
    social_review_reason: str | None = None

    # Holders and liquidity
    top_holder_percentage_tokens_held: float | None = None
    percentage_of_tokens_locked_or_burned: float | None = None
    percentage_liquidity_locked_or_burned: float | None = None
    liquidity_in_usd: float | None = None

    # Online presence
    has_website: bool | None = None
    has_twitter_or_discord: bool | None = None

    # Fork simulation
    is_token_sellable: bool | None = None
    simulation_outcome: SimulationOutcome | None = None
    simulation_revert_reason: str | None = None
    simulation_tokens_bought: int | None = None  # raw token units received by the simulated buy


class TokenAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    checklist: TokenCheckList
    score: TokenScore
    reason: str | None = None
    method: str = "rules"  # "rules" | "ai"
