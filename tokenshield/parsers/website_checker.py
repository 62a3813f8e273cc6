"""Project landing-page fetcher for the website review.

Only the landing page is read, no crawling. The visible text (markup,
scripts and styles removed) is what the reviewer sees.
"""

from dataclasses import dataclass
from html.parser import HTMLParser

import httpx
from loguru import logger

_INVISIBLE = frozenset({"script", "style", "noscript", "svg", "head", "template"})
_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"


@dataclass(frozen=True)
class LandingPage:
    url: str
    status_code: int | None = None  # None when the request never completed
    final_url: str = ""
    text: str = ""

    @property
    def reachable(self) -> bool:
        return self.status_code is not None and self.status_code < 500


class _VisibleText(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._hidden = 0
        self.parts: list[str] = []

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag in _INVISIBLE:
            self._hidden += 1

    def handle_endtag(self, tag: str) -> None:
        if tag in _INVISIBLE and self._hidden:
            self._hidden -= 1

    def handle_data(self, data: str) -> None:
        if self._hidden == 0 and not data.isspace():
            self.parts.append(data)


def extract_visible_text(html: str) -> str:
    parser = _VisibleText()
    parser.feed(html)
    parser.close()
    return " ".join(" ".join(parser.parts).split())


def normalize_url(url: str) -> str:
    url = url.strip()
    if url and "://" not in url:
        url = f"https://{url}"
    return url


async def fetch_landing_page(url: str, *, timeout: float = 10.0, max_chars: int = 40_000) -> LandingPage:
    """GET the landing page, following redirects.

    Transport failures come back as an unreachable page with no text rather
    than an exception.
    """
    url = normalize_url(url or "")
    if not url:
        return LandingPage(url="")

    # Scam sites often run on self-signed or expired certificates
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            verify=False,
            headers={"User-Agent": _USER_AGENT},
        ) as client:
            resp = await client.get(url)
    except httpx.RequestError as e:
        logger.debug(f"[WEBSITE] {url} unreachable: {type(e).__name__}")
        return LandingPage(url=url)

    text = ""
    content_type = resp.headers.get("content-type", "text/html")
    if resp.status_code < 400 and "html" in content_type:
        text = extract_visible_text(resp.text)[:max_chars]
    logger.debug(f"[WEBSITE] {url} -> {resp.status_code}, {len(text)} chars")
    return LandingPage(url=url, status_code=resp.status_code, final_url=str(resp.url), text=text)
