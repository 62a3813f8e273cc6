"""TwitterAPI.io lookups for a project's account: profile stats and recent posts.

The service is a third-party mirror of X data, authenticated with an
``X-API-Key`` header. Failures raise ``TwitterApiError``; the caller decides
whether a missing social signal matters.
"""

import asyncio

import httpx
from loguru import logger

from tokenshield.exceptions import TwitterApiError
from tokenshield.parsers.rate_limiter import RateLimiter
from tokenshield.parsers.twitter.models import TwitterAuthor, TwitterTimeline, TwitterTweet

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

# Posts handed to the social review
TIMELINE_LIMIT = 50
MAX_TIMELINE_PAGES = 3


class TwitterClient:
    def __init__(
        self,
        api_key: str,
        max_rps: float = 1.0,
        timeout: float = 15.0,
        base_url: str = "https://api.twitterapi.io",
    ) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"X-API-Key": api_key},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict) -> dict:
        """GET with retries on 429, 5xx and transport errors."""
        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                resp = await self._client.get(path, params=params)
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    logger.debug(f"[TWITTER] {type(e).__name__} on {path}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise TwitterApiError(f"{path} unreachable: {type(e).__name__}") from e

            if (resp.status_code == 429 or resp.status_code >= 500) and attempt < MAX_RETRIES:
                logger.debug(f"[TWITTER] {path} HTTP {resp.status_code}, retry in {delay}s")
                await asyncio.sleep(delay)
                continue
            if resp.status_code != 200:
                raise TwitterApiError(f"{path} HTTP {resp.status_code}: {resp.text[:200]}")

            try:
                body = resp.json()
            except ValueError as e:
                raise TwitterApiError(f"{path} returned non-JSON body") from e
            if not isinstance(body, dict):
                raise TwitterApiError(f"{path} returned {type(body).__name__}, expected object")
            if body.get("status") == "error":
                raise TwitterApiError(f"{path}: {body.get('msg') or body.get('message') or 'unknown error'}")
            return body

        raise TwitterApiError(f"{path} failed after {MAX_RETRIES + 1} attempts")

    async def get_user_info(self, username: str) -> TwitterAuthor | None:
        """Profile of ``username``, None when the account does not exist."""
        body = await self._get("/twitter/user/info", {"userName": username})
        profile = body.get("data", body)
        if not isinstance(profile, dict) or not profile.get("userName"):
            return None
        return TwitterAuthor.model_validate(profile)

    async def get_last_tweets(self, username: str, limit: int = TIMELINE_LIMIT) -> list[TwitterTweet]:
        """Most recent posts, paging until ``limit`` or the timeline ends."""
        collected: list[TwitterTweet] = []
        cursor = ""
        for _ in range(MAX_TIMELINE_PAGES):
            body = await self._get("/twitter/user/last_tweets", {"userName": username, "cursor": cursor})
            page, has_next, cursor = _unwrap_timeline(body)
            collected.extend(TwitterTweet.model_validate(raw) for raw in page)
            if len(collected) >= limit or not has_next or not cursor:
                break
        return collected[:limit]

    async def get_timeline(self, username: str) -> TwitterTimeline | None:
        author = await self.get_user_info(username)
        if author is None:
            logger.debug(f"[TWITTER] No profile for @{username}")
            return None
        return TwitterTimeline(author=author, tweets=await self.get_last_tweets(username))


def _unwrap_timeline(body: dict) -> tuple[list, bool, str]:
    # Pages arrive either flat or nested under "data"
    container = body.get("data", body)
    if isinstance(container, list):
        return container, False, ""
    if not isinstance(container, dict):
        return [], False, ""
    raw = container.get("tweets", [])
    has_next = bool(body.get("has_next_page", container.get("has_next_page", False)))
    cursor = body.get("next_cursor") or container.get("next_cursor") or ""
    return raw if isinstance(raw, list) else [], has_next, cursor


def build_social_digest(timeline: TwitterTimeline) -> str:
    """Render profile stats and recent posts as plain text for the social review."""
    author = timeline.author
    lines = [
        f"username: @{author.userName}",
        f"display_name: {author.name}",
        f"followers: {author.followers}",
        f"following: {author.following}",
        f"blue_verified: {author.isBlueVerified}",
        f"total_posts: {author.statusesCount}",
        f"account_created: {author.createdAt or 'unknown'}",
        f"bio: {author.description}",
        "",
        f"recent_posts ({len(timeline.tweets)}):",
    ]
    for i, tweet in enumerate(timeline.tweets, 1):
        text = " ".join(tweet.text.split())
        lines.append(
            f"{i}. [{tweet.createdAt}] likes={tweet.likeCount} retweets={tweet.retweetCount} "
            f"replies={tweet.replyCount} views={tweet.viewCount} :: {text}"
        )
    return "\n".join(lines)
