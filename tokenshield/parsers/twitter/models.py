"""Pydantic models for TwitterAPI.io responses."""

from pydantic import BaseModel


class TwitterAuthor(BaseModel):
    """Profile stats of a project account."""

    userName: str = ""
    id: str = ""
    name: str = ""
    followers: int = 0
    following: int = 0
    isBlueVerified: bool = False
    statusesCount: int = 0
    createdAt: str = ""
    description: str = ""

    model_config = {"extra": "ignore"}


class TwitterTweet(BaseModel):
    id: str = ""
    text: str = ""
    likeCount: int = 0
    retweetCount: int = 0
    replyCount: int = 0
    quoteCount: int = 0
    viewCount: int = 0
    createdAt: str = ""

    model_config = {"extra": "ignore"}


class TwitterTimeline(BaseModel):
    """Recent posts of one account, newest first."""

    author: TwitterAuthor
    tweets: list[TwitterTweet] = []
