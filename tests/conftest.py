"""Shared fixtures: a scripted gateway and canned remote payloads."""
import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

import pytest

from flamesim.models.schemas import (
    GeneratedImage,
    PublishOutcome,
    Reply,
    ReplyCategory,
    TransformPayload,
)
from flamesim.services.graphql_gateway import Failure, Success
from flamesim.workflow.controller import StageController
from flamesim.workflow.state import WorkflowStore

REWRITTEN = "炎上化されたテキスト"
EXPLANATION = "説明文"
IMAGE_URL = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="


def transform_ok(text: str = REWRITTEN, explanation: str | None = EXPLANATION) -> Success:
    return Success(TransformPayload(rewritten_text=text, explanation=explanation))


def four_replies() -> Success:
    return Success([
        Reply(id="1", category=ReplyCategory.LOGICAL_CRITICISM, content="それは論理的におかしい"),
        Reply(id="2", category=ReplyCategory.NITPICKING, content="句読点の使い方が変"),
        Reply(id="3", category=ReplyCategory.OFF_TARGET, content="ランチより仕事しろ"),
        Reply(id="4", category=ReplyCategory.EXCESSIVE_DEFENSE, content="そこまで言わなくても"),
    ])


def image_ok() -> Success:
    return Success(GeneratedImage(
        url=IMAGE_URL,
        prompt="A dramatic image with fire effects",
        generated_at=datetime(2025, 10, 17, 10, 0, tzinfo=timezone.utc),
    ))


def publish_ok() -> Success:
    return Success(PublishOutcome(
        success=True,
        remote_id="123456789",
        remote_url="https://twitter.com/user/status/123456789",
    ))


class FakeGateway:
    """
    Stands in for RemoteGateway. Results are queued per operation;
    `hold(op)` makes the next calls of that operation wait until `release(op)`.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self._results: Dict[str, List[Any]] = defaultdict(list)
        self._holds: Dict[str, asyncio.Event] = {}

    def queue(self, op: str, *results: Any) -> None:
        self._results[op].extend(results)

    def hold(self, op: str) -> None:
        self._holds[op] = asyncio.Event()

    def release(self, op: str) -> None:
        self._holds.pop(op).set()

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    async def _respond(self, op: str, *args: Any) -> Any:
        self.calls.append((op, args))
        event = self._holds.get(op)
        if event is not None:
            await event.wait()
        if not self._results[op]:
            return Failure(f"no scripted result for {op}")
        result = self._results[op].pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def transform_text(self, original_text, level):
        return await self._respond("transform", original_text, level)

    async def generate_replies(self, rewritten_text):
        return await self._respond("replies", rewritten_text)

    async def generate_image(self, text, style, aspect_ratio):
        return await self._respond("image", text, style, aspect_ratio)

    async def publish_post(self, text, image_url=None, add_hashtag=True, add_disclaimer=True):
        return await self._respond("publish", text, image_url, add_hashtag, add_disclaimer)

    async def aclose(self) -> None:
        return None


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store() -> WorkflowStore:
    return WorkflowStore()


@pytest.fixture
def controller(store: WorkflowStore, gateway: FakeGateway) -> StageController:
    return StageController(store, gateway)


async def transformed(controller: StageController, gateway: FakeGateway, text: str = "テスト投稿"):
    """Drive a fresh controller to TRANSFORMED."""
    gateway.queue("transform", transform_ok())
    controller.edit_input(text)
    return await controller.submit_transform()
