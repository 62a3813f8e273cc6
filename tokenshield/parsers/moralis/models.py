"""Pydantic models for Moralis ERC-20 endpoints."""

from pydantic import BaseModel


class MoralisOwner(BaseModel):
    owner_address: str
    balance: str = "0"
    is_contract: bool = False
    percentage_relative_to_total_supply: float | None = None

    model_config = {"extra": "ignore"}


class MoralisLinks(BaseModel):
    website: str | None = None
    twitter: str | None = None
    discord: str | None = None
    telegram: str | None = None

    model_config = {"extra": "ignore"}


class MoralisTokenMetadata(BaseModel):
    address: str = ""
    name: str = ""
    symbol: str = ""
    decimals: str | None = None
    total_supply: str | None = None
    possible_spam: bool | None = None
    verified_contract: bool | None = None
    links: MoralisLinks | None = None

    model_config = {"extra": "ignore"}
