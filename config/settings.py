from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # RPC endpoints (archive-capable HTTP endpoints; anvil forks from these)
    eth_rpc_url: str = ""
    base_rpc_url: str = ""

    # TheGraph gateway (key goes into the URL path)
    thegraph_api_key: str = ""
    thegraph_gateway_url: str = "https://gateway.thegraph.com/api"
    thegraph_max_rps: float = 5.0
    # Subgraph ids, override when the gateway republishes a deployment
    thegraph_v2_mainnet_subgraph: str = "EYCKATKGBKLWvSfwvBjzfCBmGwYNdVkduYXVivCsLRFu"
    thegraph_v3_mainnet_subgraph: str = "5zvR82QoaXYFyDEKLZ9t6v9adgnptxYpKpSbxtgVENFV"
    thegraph_v2_base_subgraph: str = "4jGhpKjW4prWoyt5Bwk1ZHUwdEmNWveJcjEyjoTZWCY9"
    thegraph_v3_base_subgraph: str = "43Hwfi3dJSoGpyas9VwNoDAv55yjgGrPpNSmbQZArzMG"

    # Etherscan v2 (multichain, chainid query param)
    etherscan_api_key: str = ""
    etherscan_api_url: str = "https://api.etherscan.io/v2/api"
    etherscan_max_rps: float = 4.0

    # Moralis (primary holder + metadata source)
    moralis_api_key: str = ""
    moralis_api_url: str = "https://deep-index.moralis.io/api/v2.2"
    moralis_max_rps: float = 5.0

    # TwitterAPI.io
    twitterapi_key: str = ""

    # LLM providers
    ai_provider: str = "openai"  # openai | deepseek
    openai_api_key: str = ""
    deepseek_api_key: str = ""
    llm_max_rps: float = 2.0

    # Timeouts
    http_timeout_sec: float = 15.0
    llm_timeout_sec: float = 120.0  # reasoning models answer slowly
    simulation_timeout_sec: float = 90.0
    anvil_startup_timeout_sec: float = 20.0
    tx_receipt_timeout_sec: float = 30.0

    # Honeypot simulation (anvil fork)
    anvil_path: str = "anvil"
    simulation_buy_amount_eth: float = 0.1
    simulation_slippage_pct: float = 5.0
    simulation_funding_eth: int = 100

    # Scoring thresholds
    liquidity_locked_threshold_pct: float = 90.0
    usd_liquidity_threshold: float = 10_000.0
    top_holder_threshold_pct: float = 10.0

    # LLM content budgets (characters)
    code_review_max_chars: int = 115_000
    website_max_chars: int = 40_000

    # Feature flags
    enable_simulation: bool = True
    enable_ai_review: bool = True
    enable_ai_scoring: bool = False
    enable_website_review: bool = True
    enable_social_review: bool = True

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False
    log_dir: str = "logs"  # empty disables the file sink


settings = Settings()


def validate_settings(cfg: Settings, chain_ids: list[int]) -> None:
    """Fail fast on credentials the enabled features cannot run without.

    Raised at start-up only; a running assessment never re-checks config.
    """
    from tokenshield.exceptions import ConfigurationError

    missing: list[str] = []
    if not cfg.thegraph_api_key:
        missing.append("THEGRAPH_API_KEY")
    if not cfg.moralis_api_key and not cfg.etherscan_api_key:
        missing.append("MORALIS_API_KEY or ETHERSCAN_API_KEY")

    rpc_by_chain = {1: cfg.eth_rpc_url, 8453: cfg.base_rpc_url}
    for chain_id in chain_ids:
        if chain_id not in rpc_by_chain:
            raise ConfigurationError(f"Unsupported chain id {chain_id}")
        if not rpc_by_chain[chain_id]:
            missing.append("ETH_RPC_URL" if chain_id == 1 else "BASE_RPC_URL")

    if cfg.enable_ai_review or cfg.enable_ai_scoring:
        provider = cfg.ai_provider.lower()
        if provider not in ("openai", "deepseek"):
            raise ConfigurationError(f"Unknown AI_PROVIDER {cfg.ai_provider!r}")
        if provider == "openai" and not cfg.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if provider == "deepseek" and not cfg.deepseek_api_key:
            missing.append("DEEPSEEK_API_KEY")

    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
