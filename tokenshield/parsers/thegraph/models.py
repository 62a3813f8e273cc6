"""Pydantic models for Uniswap subgraph entities on the TheGraph gateway."""

from pydantic import BaseModel, ConfigDict, Field


class GraphToken(BaseModel):
    id: str
    symbol: str = ""

    model_config = {"extra": "ignore"}


class V2Pair(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    token0: GraphToken
    token1: GraphToken
    reserve_usd: float = Field(default=0.0, alias="reserveUSD")
    created_at_block: int | None = Field(default=None, alias="createdAtBlockNumber")


class V3Pool(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    token0: GraphToken
    token1: GraphToken
    fee_tier: int = Field(default=3000, alias="feeTier")
    total_value_locked_usd: float = Field(default=0.0, alias="totalValueLockedUSD")
    created_at_block: int | None = Field(default=None, alias="createdAtBlockNumber")


class V2LiquidityPosition(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    user: str
    liquidity_token_balance: str = Field(default="0", alias="liquidityTokenBalance")


class V3Position(BaseModel):
    owner: str
    liquidity: int = 0

    model_config = {"extra": "ignore"}
