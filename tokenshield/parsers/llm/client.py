"""LLM review orchestrator over OpenAI-compatible chat-completion APIs.

Turns unstructured content (contract source, website text, social stats, the
final checklist) into typed verdicts. Empty content never reaches the network,
and a reply that does not parse as the expected JSON comes back as None.
"""

import asyncio
from typing import TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from tokenshield.exceptions import LLMApiError
from tokenshield.models import TokenCheckList
from tokenshield.parsers.llm import prompts
from tokenshield.parsers.llm.models import (
    CodeReviewVerdict,
    SocialReviewVerdict,
    TokenScoreAssessment,
    WebsiteReviewVerdict,
)
from tokenshield.parsers.llm.providers import LLMProvider, ProviderProfile, get_profile
from tokenshield.parsers.rate_limiter import RateLimiter
from tokenshield.utils.units import truncate_text

MAX_RETRIES = 2
RETRY_DELAYS = [2.0, 5.0]

VerdictT = TypeVar("VerdictT", bound=BaseModel)


def strip_code_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[-1]
    if content.endswith("```"):
        content = content.rsplit("```", 1)[0]
    return content.strip()


def parse_verdict(content: str, verdict_type: type[VerdictT]) -> VerdictT | None:
    """Strict JSON decode of a model reply; None (and the raw text logged) on mismatch."""
    cleaned = strip_code_fences(content)
    try:
        return verdict_type.model_validate_json(cleaned)
    except ValidationError as e:
        logger.warning(
            f"[LLM] {verdict_type.__name__} parse failed ({e.error_count()} errors), "
            f"content: {cleaned[:300]}"
        )
        logger.debug(f"[LLM] Raw reply: {content}")
        return None


def _api_error(resp: httpx.Response) -> LLMApiError:
    """Typed error from the provider's ``{"error": {message, type, code}}`` body."""
    try:
        body = resp.json()
    except ValueError:
        body = {}
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        code = err.get("code")
        return LLMApiError(
            str(err.get("message") or f"HTTP {resp.status_code}"),
            error_type=err.get("type"),
            code=str(code) if code is not None else None,
            status=resp.status_code,
        )
    return LLMApiError(f"HTTP {resp.status_code}: {resp.text[:200]}", status=resp.status_code)


class AIReviewer:
    """Structured reviews against one configured provider."""

    def __init__(
        self,
        api_key: str,
        provider: LLMProvider | str = LLMProvider.OPENAI,
        *,
        timeout: float = 120.0,
        max_rps: float = 2.0,
    ) -> None:
        self._profile = get_profile(provider)
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(
            base_url=self._profile.base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def profile(self) -> ProviderProfile:
        return self._profile

    async def close(self) -> None:
        await self._client.aclose()

    async def _complete(self, messages: list[dict]) -> str:
        payload = {
            "model": self._profile.model,
            "messages": messages,
            "temperature": self._profile.temperature,
            "max_tokens": self._profile.max_tokens,
            "top_p": self._profile.top_p,
        }

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.post("/chat/completions", json=payload)
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[LLM] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise LLMApiError(
                    f"{self._profile.provider.value} unreachable after {MAX_RETRIES + 1} attempts: "
                    f"{type(e).__name__}"
                ) from e

            if resp.status_code == 429 and attempt < MAX_RETRIES:
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                logger.debug(f"[LLM] Rate limited, retrying in {delay}s")
                await asyncio.sleep(delay)
                continue

            if not resp.is_success:
                raise _api_error(resp)

            try:
                data = resp.json()
            except ValueError as e:
                raise LLMApiError(
                    f"{self._profile.provider.value} returned non-JSON body", status=resp.status_code
                ) from e
            if not isinstance(data, dict):
                raise LLMApiError(
                    f"{self._profile.provider.value} returned {type(data).__name__}, expected object",
                    status=resp.status_code,
                )
            choices = data.get("choices") or [{}]
            return (choices[0].get("message") or {}).get("content") or ""

        raise LLMApiError("Rate limited after retries", status=429)

    async def review(
        self,
        content: str,
        *,
        persona: str,
        instructions: str,
        verdict_type: type[VerdictT],
        content_label: str,
    ) -> VerdictT | None:
        """Submit ``content`` for one structured review.

        Returns None without a request when there is nothing to review, and
        None when the reply does not match ``verdict_type``. Provider errors
        raise ``LLMApiError``.
        """
        if not content or not content.strip():
            logger.info(f"[LLM] Empty {content_label}, skipping review")
            return None

        budget = self._profile.max_content_chars
        if len(content) > budget:
            logger.debug(f"[LLM] Truncating {content_label} from {len(content)} to {budget} chars")
            content = truncate_text(content, budget)

        messages = [
            {"role": "system", "content": persona},
            {"role": "user", "content": f"{instructions}\n\n{content_label}:\n{content}"},
        ]
        reply = await self._complete(messages)
        verdict = parse_verdict(reply, verdict_type)
        if verdict is not None:
            logger.debug(f"[LLM] {verdict_type.__name__} received from {self._profile.model}")
        return verdict

    async def review_code(self, source_code: str, max_chars: int = 115_000) -> CodeReviewVerdict | None:
        return await self.review(
            truncate_text(source_code, max_chars),
            persona=prompts.CODE_REVIEW_PERSONA,
            instructions=prompts.CODE_REVIEW_INSTRUCTIONS,
            verdict_type=CodeReviewVerdict,
            content_label="code_content",
        )

    async def review_website(self, website_text: str, max_chars: int = 40_000) -> WebsiteReviewVerdict | None:
        return await self.review(
            truncate_text(website_text, max_chars),
            persona=prompts.WEBSITE_REVIEW_PERSONA,
            instructions=prompts.WEBSITE_REVIEW_INSTRUCTIONS,
            verdict_type=WebsiteReviewVerdict,
            content_label="website_content",
        )

    async def review_social(self, social_digest: str) -> SocialReviewVerdict | None:
        return await self.review(
            social_digest,
            persona=prompts.SOCIAL_REVIEW_PERSONA,
            instructions=prompts.SOCIAL_REVIEW_INSTRUCTIONS,
            verdict_type=SocialReviewVerdict,
            content_label="social_content",
        )

    async def assess_checklist(self, checklist: TokenCheckList) -> TokenScoreAssessment | None:
        return await self.review(
            checklist.model_dump_json(indent=2),
            persona=prompts.FINAL_SCORE_PERSONA,
            instructions=prompts.FINAL_SCORE_INSTRUCTIONS,
            verdict_type=TokenScoreAssessment,
            content_label="all_analysis_to_review",
        )
