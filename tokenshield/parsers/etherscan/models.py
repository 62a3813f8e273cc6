"""Pydantic models for Etherscan v2 API results."""

from pydantic import BaseModel, ConfigDict, Field


class EtherscanHolder(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    address: str = Field(alias="TokenHolderAddress")
    quantity: str = Field(default="0", alias="TokenHolderQuantity")


class EtherscanSourceCode(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    source_code: str = Field(default="", alias="SourceCode")
    contract_name: str = Field(default="", alias="ContractName")
    proxy: str = Field(default="0", alias="Proxy")
    implementation: str = Field(default="", alias="Implementation")


class EtherscanTokenInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    token_name: str = Field(default="", alias="tokenName")
    symbol: str = ""
    website: str = ""
    twitter: str = ""
    discord: str = ""
    telegram: str = ""
    whitepaper: str = ""
    blue_checkmark: str = Field(default="", alias="blueCheckmark")
