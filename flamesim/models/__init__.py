"""Schemas for the remote contract and the session API."""
from flamesim.models.schemas import (
    AspectRatio,
    GeneratedImage,
    ImageStyle,
    PublishOutcome,
    Reply,
    ReplyCategory,
    TransformedResult,
    TransformPayload,
)

__all__ = [
    "AspectRatio",
    "GeneratedImage",
    "ImageStyle",
    "PublishOutcome",
    "Reply",
    "ReplyCategory",
    "TransformedResult",
    "TransformPayload",
]
