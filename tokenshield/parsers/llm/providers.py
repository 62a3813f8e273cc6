"""Chat-completion providers and their request profiles.

A provider is chosen once, when the reviewer is built; request code only
ever reads the resulting ``ProviderProfile``.
"""

from dataclasses import dataclass
from enum import Enum


class LLMProvider(str, Enum):
    OPENAI = "openai"
    DEEPSEEK = "deepseek"


@dataclass(frozen=True)
class ProviderProfile:
    provider: LLMProvider
    base_url: str
    model: str
    max_tokens: int
    max_content_chars: int
    temperature: float = 0.3
    top_p: float = 1.0


PROFILES: dict[LLMProvider, ProviderProfile] = {
    LLMProvider.OPENAI: ProviderProfile(
        provider=LLMProvider.OPENAI,
        base_url="https://api.openai.com/v1",
        model="gpt-4o",
        max_tokens=16_000,
        max_content_chars=115_000,
    ),
    LLMProvider.DEEPSEEK: ProviderProfile(
        provider=LLMProvider.DEEPSEEK,
        base_url="https://api.deepseek.com",
        model="deepseek-reasoner",
        max_tokens=8_000,
        max_content_chars=100_000,  # 64K-token context window
    ),
}


def get_profile(provider: LLMProvider | str) -> ProviderProfile:
    return PROFILES[LLMProvider(provider)]
