"""Pydantic schemas for the remote GraphQL contract and the session API."""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ----- Enums shared with the remote schema -----
class ReplyCategory(str, Enum):
    """Kind of stranger reply the service simulates."""

    LOGICAL_CRITICISM = "LOGICAL_CRITICISM"
    NITPICKING = "NITPICKING"
    OFF_TARGET = "OFF_TARGET"
    EXCESSIVE_DEFENSE = "EXCESSIVE_DEFENSE"


class ImageStyle(str, Enum):
    REALISTIC = "REALISTIC"
    ILLUSTRATION = "ILLUSTRATION"
    MEME = "MEME"
    DRAMATIC = "DRAMATIC"


class AspectRatio(str, Enum):
    SQUARE = "SQUARE"
    LANDSCAPE = "LANDSCAPE"
    PORTRAIT = "PORTRAIT"


class _WireModel(BaseModel):
    """Immutable model that accepts both the remote camelCase names and our field names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ----- Remote operation payloads -----
class TransformPayload(_WireModel):
    """Result of generateInflammatoryText."""

    rewritten_text: str = Field(alias="inflammatoryText")
    explanation: str | None = Field(default=None)


class TransformedResult(_WireModel):
    """Rewrite kept in the session together with the text it was generated from."""

    original_text: str
    rewritten_text: str
    explanation: str | None = None


class Reply(_WireModel):
    """One simulated reply from generateReplies."""

    id: str
    category: ReplyCategory = Field(alias="type")
    content: str


class GeneratedImage(_WireModel):
    """Result of generateImage. url is usually a data: URL."""

    url: str = Field(alias="imageUrl")
    prompt: str = ""
    generated_at: datetime = Field(alias="generatedAt")


class PublishOutcome(_WireModel):
    """Result of postToTwitter. success=false is a domain-level failure."""

    success: bool
    remote_id: str | None = Field(default=None, alias="tweetId")
    remote_url: str | None = Field(default=None, alias="tweetUrl")
    error_reason: str | None = Field(default=None, alias="errorMessage")


# ----- Session API Request bodies -----
class EditInputRequest(BaseModel):
    """Body for PUT /session/input."""

    text: str = Field(default="", description="Source post as typed by the user")


class EditLevelRequest(BaseModel):
    """Body for PUT /session/level."""

    level: int = Field(description="Escalation level 1-5")


class GenerateImageRequest(BaseModel):
    """Body for POST /session/image."""

    style: ImageStyle = Field(default=ImageStyle.MEME)
    aspect_ratio: AspectRatio = Field(default=AspectRatio.SQUARE)


class PublishRequest(BaseModel):
    """Body for POST /session/publish. None = use configured defaults."""

    add_hashtag: bool | None = Field(default=None, description="Append the simulator hashtag")
    add_disclaimer: bool | None = Field(default=None, description="Append the generated-by disclaimer")
