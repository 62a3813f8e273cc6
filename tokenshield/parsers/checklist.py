"""Token assessment pipeline: gather every signal, then score.

Three independent branches run concurrently per token:
- on-chain: pool resolution, then liquidity analysis and fork simulation
- code: verified source from Etherscan, then the AI code review
- presence: project links, then website and social reviews

A branch that fails leaves its checklist fields as None; the assessment
itself always completes.
"""

import asyncio
from dataclasses import dataclass

from loguru import logger

from config.settings import Settings
from tokenshield.chains import ChainConfig, ChainRegistry
from tokenshield.exceptions import LLMApiError
from tokenshield.models import (
    Chain,
    LiquidityHolderReport,
    PoolInfo,
    SimulationResult,
    TokenAssessment,
    TokenCheckList,
    TokenWebData,
)
from tokenshield.parsers.etherscan.client import EtherscanClient
from tokenshield.parsers.honeypot_detector import HoneypotSimulator
from tokenshield.parsers.liquidity_analyzer import LiquidityAnalyzer
from tokenshield.parsers.llm.client import AIReviewer
from tokenshield.parsers.llm.models import CodeReviewVerdict, SocialReviewVerdict, WebsiteReviewVerdict
from tokenshield.parsers.moralis.client import MoralisClient, metadata_to_web_data
from tokenshield.parsers.moralis.models import MoralisTokenMetadata
from tokenshield.parsers.pool_resolver import PoolResolver
from tokenshield.parsers.scoring import ScoringThresholds, score_with_ai, score_with_rules
from tokenshield.parsers.thegraph.client import TheGraphClient
from tokenshield.parsers.twitter.client import TwitterClient, build_social_digest
from tokenshield.parsers.website_checker import fetch_landing_page
from tokenshield.utils.units import ether_to_wei


@dataclass
class OnChainSignals:
    pool: PoolInfo | None = None
    pool_resolved: bool = False  # True when the indexer answered, even with no pool
    liquidity: LiquidityHolderReport | None = None
    simulation: SimulationResult | None = None


@dataclass
class PresenceSignals:
    web: TokenWebData | None = None
    website: WebsiteReviewVerdict | None = None
    social: SocialReviewVerdict | None = None


def _settled(value: object, label: str, token: str) -> object | None:
    """Gathered result, or None (logged) if the task raised."""
    if isinstance(value, asyncio.TimeoutError):
        logger.warning(f"[AUDIT] {label} timed out for {token[:10]}")
        return None
    if isinstance(value, BaseException):
        logger.warning(f"[AUDIT] {label} failed for {token[:10]}: {type(value).__name__}: {value}")
        return None
    return value


class TokenAuditor:
    def __init__(
        self,
        registry: ChainRegistry,
        resolver: PoolResolver,
        analyzer: LiquidityAnalyzer,
        *,
        simulator: HoneypotSimulator | None = None,
        reviewer: AIReviewer | None = None,
        etherscan: EtherscanClient | None = None,
        moralis: MoralisClient | None = None,
        twitter: TwitterClient | None = None,
        thresholds: ScoringThresholds | None = None,
        simulation_timeout: float = 90.0,
        code_max_chars: int = 115_000,
        website_max_chars: int = 40_000,
        http_timeout: float = 15.0,
        use_ai_review: bool = True,
        use_ai_scoring: bool = False,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._analyzer = analyzer
        self._simulator = simulator
        self._reviewer = reviewer
        self._etherscan = etherscan
        self._moralis = moralis
        self._twitter = twitter
        self._thresholds = thresholds or ScoringThresholds()
        self._simulation_timeout = simulation_timeout
        self._code_max_chars = code_max_chars
        self._website_max_chars = website_max_chars
        self._http_timeout = http_timeout
        self._use_ai_review = use_ai_review
        self._use_ai_scoring = use_ai_scoring
        self._owned: list = []

    @classmethod
    def from_settings(cls, cfg: Settings, registry: ChainRegistry) -> "TokenAuditor":
        """Wire every client the configuration has credentials for."""
        timeout = cfg.http_timeout_sec
        thegraph = TheGraphClient(
            cfg.thegraph_api_key,
            gateway_url=cfg.thegraph_gateway_url,
            timeout=timeout,
            max_rps=cfg.thegraph_max_rps,
        )
        etherscan = (
            EtherscanClient(cfg.etherscan_api_key, base_url=cfg.etherscan_api_url, timeout=timeout, max_rps=cfg.etherscan_max_rps)
            if cfg.etherscan_api_key
            else None
        )
        moralis = (
            MoralisClient(cfg.moralis_api_key, base_url=cfg.moralis_api_url, timeout=timeout, max_rps=cfg.moralis_max_rps)
            if cfg.moralis_api_key
            else None
        )
        twitter = (
            TwitterClient(cfg.twitterapi_key, timeout=timeout)
            if cfg.twitterapi_key and cfg.enable_social_review
            else None
        )

        reviewer = None
        if cfg.enable_ai_review or cfg.enable_ai_scoring:
            key = cfg.openai_api_key if cfg.ai_provider.lower() == "openai" else cfg.deepseek_api_key
            reviewer = AIReviewer(key, cfg.ai_provider.lower(), timeout=cfg.llm_timeout_sec, max_rps=cfg.llm_max_rps)

        simulator = None
        if cfg.enable_simulation:
            simulator = HoneypotSimulator(
                registry,
                buy_amount_wei=ether_to_wei(cfg.simulation_buy_amount_eth),
                slippage_pct=cfg.simulation_slippage_pct,
                funding_wei=ether_to_wei(cfg.simulation_funding_eth),
                anvil_path=cfg.anvil_path,
                startup_timeout=cfg.anvil_startup_timeout_sec,
                receipt_timeout=cfg.tx_receipt_timeout_sec,
            )

        auditor = cls(
            registry,
            PoolResolver(thegraph, registry),
            LiquidityAnalyzer(registry, thegraph, moralis=moralis, etherscan=etherscan),
            simulator=simulator,
            reviewer=reviewer,
            etherscan=etherscan,
            moralis=moralis,
            twitter=twitter,
            thresholds=ScoringThresholds.from_settings(cfg),
            simulation_timeout=cfg.simulation_timeout_sec,
            code_max_chars=cfg.code_review_max_chars,
            website_max_chars=cfg.website_max_chars if cfg.enable_website_review else 0,
            http_timeout=timeout,
            use_ai_review=cfg.enable_ai_review,
            use_ai_scoring=cfg.enable_ai_scoring,
        )
        auditor._owned = [c for c in (thegraph, etherscan, moralis, twitter, reviewer) if c is not None]
        return auditor

    @property
    def _reviews_enabled(self) -> bool:
        return self._reviewer is not None and self._use_ai_review

    async def close(self) -> None:
        for client in self._owned:
            await client.close()

    # --- identity -------------------------------------------------------

    async def _metadata(self, token: str, config: ChainConfig) -> MoralisTokenMetadata | None:
        if self._moralis is None:
            return None
        try:
            return await self._moralis.get_token_metadata(config.moralis_slug, token)
        except Exception as e:
            logger.debug(f"[AUDIT] Moralis metadata failed for {token[:10]}: {e}")
            return None

    async def _identity(
        self, token: str, config: ChainConfig, metadata: MoralisTokenMetadata | None
    ) -> tuple[str | None, str | None]:
        if metadata is not None and (metadata.name or metadata.symbol):
            return metadata.name or None, metadata.symbol or None
        reader = self._registry.reader(config.chain)
        name, symbol = await asyncio.gather(reader.name(token), reader.symbol(token), return_exceptions=True)
        return _settled(name, "name()", token), _settled(symbol, "symbol()", token)

    # --- on-chain branch ------------------------------------------------

    async def _simulate(self, token: str, pool: PoolInfo, chain: Chain) -> SimulationResult | None:
        if self._simulator is None:
            return None
        # Cancellation on timeout unwinds the fork context, which kills anvil
        return await asyncio.wait_for(
            self._simulator.simulate(token, pool, chain), timeout=self._simulation_timeout
        )

    async def _on_chain(self, token: str, chain: Chain) -> OnChainSignals:
        pool = await self._resolver.find_top_pool(token, chain)
        if pool is None:
            return OnChainSignals(pool_resolved=True)

        liquidity, simulation = await asyncio.gather(
            self._analyzer.analyze(token, pool, chain),
            self._simulate(token, pool, chain),
            return_exceptions=True,
        )
        return OnChainSignals(
            pool=pool,
            pool_resolved=True,
            liquidity=_settled(liquidity, "Liquidity analysis", token),
            simulation=_settled(simulation, "Honeypot simulation", token),
        )

    # --- code branch ----------------------------------------------------

    async def _code_review(self, token: str, config: ChainConfig) -> CodeReviewVerdict | None:
        if self._etherscan is None or not self._reviews_enabled:
            return None
        source = await self._etherscan.get_source_code(config.chain_id, token)
        if not source:
            logger.info(f"[AUDIT] {token[:10]} has no verified source")
            return None
        return await self._reviewer.review_code(source, self._code_max_chars)

    # --- presence branch ------------------------------------------------

    async def web_presence(
        self, token: str, config: ChainConfig, metadata: MoralisTokenMetadata | None
    ) -> TokenWebData | None:
        """Project links: Moralis metadata first, Etherscan tokeninfo otherwise."""
        if metadata is not None and metadata.links is not None:
            web = metadata_to_web_data(metadata)
            if web.has_website or web.has_twitter_or_discord:
                return web
        if self._etherscan is not None:
            web = await self._etherscan.get_token_info(config.chain_id, token)
            if web is not None:
                return web
        # Both sources answered without links: presence is known to be empty
        if metadata is not None or self._etherscan is not None:
            return TokenWebData()
        return None

    async def _website_review(self, web: TokenWebData) -> WebsiteReviewVerdict | None:
        if not self._reviews_enabled or not web.has_website or self._website_max_chars <= 0:
            return None
        page = await fetch_landing_page(web.website, timeout=self._http_timeout, max_chars=self._website_max_chars)
        if not page.reachable:
            logger.info(f"[WEBSITE] {page.url} unreachable (status {page.status_code})")
            return None
        if not page.text:
            logger.info(f"[WEBSITE] No readable text at {page.url}")
            return None
        return await self._reviewer.review_website(page.text, self._website_max_chars)

    async def _social_review(self, web: TokenWebData) -> SocialReviewVerdict | None:
        handle = web.twitter_handle
        if not self._reviews_enabled or self._twitter is None or handle is None:
            return None
        timeline = await self._twitter.get_timeline(handle)
        if timeline is None:
            return None
        return await self._reviewer.review_social(build_social_digest(timeline))

    async def _presence(
        self, token: str, config: ChainConfig, metadata: MoralisTokenMetadata | None
    ) -> PresenceSignals:
        web = await self.web_presence(token, config, metadata)
        if web is None:
            return PresenceSignals()
        website, social = await asyncio.gather(
            self._website_review(web), self._social_review(web), return_exceptions=True
        )
        return PresenceSignals(
            web=web,
            website=_settled(website, "Website review", token),
            social=_settled(social, "Social review", token),
        )

    # --- assembly -------------------------------------------------------

    async def generate_checklist(self, token_address: str, chain: Chain) -> TokenCheckList:
        config = self._registry.get(chain)
        token = token_address.lower()
        logger.info(f"[AUDIT] Assessing {token} on {config.chain.name}")

        metadata = await self._metadata(token, config)
        identity, on_chain, code, presence = await asyncio.gather(
            self._identity(token, config, metadata),
            self._on_chain(token, config.chain),
            self._code_review(token, config),
            self._presence(token, config, metadata),
            return_exceptions=True,
        )
        name, symbol = _settled(identity, "Identity lookup", token) or (None, None)
        on_chain = _settled(on_chain, "On-chain analysis", token) or OnChainSignals()
        code = _settled(code, "Code review", token)
        presence = _settled(presence, "Presence review", token) or PresenceSignals()

        liquidity = on_chain.liquidity
        simulation = on_chain.simulation
        web = presence.web

        if on_chain.pool is not None:
            liquidity_usd = on_chain.pool.liquidity_usd
        else:
            liquidity_usd = 0.0 if on_chain.pool_resolved else None

        checklist = TokenCheckList(
            chain=config.chain,
            token_address=token,
            token_name=name,
            token_symbol=symbol,
            pool=on_chain.pool,
            possible_scam=code.possible_scam if code else None,
            reason_possible_scam=code.reason if code else None,
            could_legitimately_justify_suspicious_code=(
                code.could_legitimately_justify_suspicious_code if code else None
            ),
            reason_could_or_couldnt_justify_suspicious_code=(
                code.reason_could_be_legitimate_or_not if code else None
            ),
            website_possible_scam=presence.website.possible_scam if presence.website else None,
            website_review_reason=presence.website.reason if presence.website else None,
            social_possible_scam=presence.social.possible_scam if presence.social else None,
            social_review_reason=presence.social.reason if presence.social else None,
            top_holder_percentage_tokens_held=liquidity.top_holder_percentage if liquidity else None,
            percentage_of_tokens_locked_or_burned=liquidity.percentage_locked_or_burned if liquidity else None,
            percentage_liquidity_locked_or_burned=(
                liquidity.percentage_liquidity_locked_or_burned if liquidity else None
            ),
            liquidity_in_usd=liquidity_usd,
            has_website=web.has_website if web else None,
            has_twitter_or_discord=web.has_twitter_or_discord if web else None,
            is_token_sellable=simulation.outcome.is_token_sellable if simulation else None,
            simulation_outcome=simulation.outcome if simulation else None,
            simulation_revert_reason=simulation.revert_reason if simulation else None,
            simulation_tokens_bought=simulation.tokens_bought if simulation else None,
        )
        undetermined = [k for k, v in checklist.model_dump().items() if v is None]
        logger.info(f"[AUDIT] {token[:10]} checklist ready, undetermined: {undetermined or 'none'}")
        return checklist

    async def assess(self, token_address: str, chain: Chain, *, use_ai: bool | None = None) -> TokenAssessment:
        """Checklist plus score; AI scoring falls back to the rule table."""
        with logger.contextualize(token=token_address.lower()[:10]):
            checklist = await self.generate_checklist(token_address, chain)
            return await self._score(checklist, self._use_ai_scoring if use_ai is None else use_ai)

    async def _score(self, checklist: TokenCheckList, use_ai: bool) -> TokenAssessment:
        if use_ai and self._reviewer is not None:
            try:
                verdict = await score_with_ai(checklist, self._reviewer)
            except LLMApiError as e:
                logger.warning(f"[SCORE] AI scoring failed ({e.status} {e.code}): {e.message}")
                verdict = None
            except Exception as e:
                # The checklist is already built; never lose it to a scoring failure
                logger.warning(f"[SCORE] AI scoring failed: {type(e).__name__}: {e}")
                verdict = None
            if verdict is not None:
                logger.info(f"[SCORE] {checklist.token_address[:10]} AI score {verdict.token_score}")
                return TokenAssessment(checklist=checklist, score=verdict.score, reason=verdict.reason, method="ai")

        score = score_with_rules(checklist, self._thresholds)
        logger.info(f"[SCORE] {checklist.token_address[:10]} rules score {int(score)} - {score.label}")
        return TokenAssessment(checklist=checklist, score=score, method="rules")
