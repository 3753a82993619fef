"""Workflow state for one user session and the store that owns it."""
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from flamesim.config import settings
from flamesim.models.schemas import GeneratedImage, PublishOutcome, Reply, TransformedResult
from flamesim.utils.logging import get_logger

logger = get_logger(__name__)


class Stage(str, Enum):
    """Position in the generation / publication workflow."""

    IDLE = "idle"
    TRANSFORMING = "transforming"
    TRANSFORMED = "transformed"
    TRANSFORM_FAILED = "transform_failed"
    REPLIES_PENDING = "replies_pending"
    REPLIES_READY = "replies_ready"
    IMAGE_PENDING = "image_pending"
    IMAGE_READY = "image_ready"
    PUBLISH_CONFIRMING = "publish_confirming"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"


class OperationKind(str, Enum):
    """The four remote operations."""

    TRANSFORM = "transform"
    REPLIES = "replies"
    IMAGE = "image"
    PUBLISH = "publish"


BUSY_STAGES = frozenset({Stage.TRANSFORMING, Stage.REPLIES_PENDING, Stage.IMAGE_PENDING, Stage.PUBLISHING})

# Edits in these stages keep the stage; everywhere else they force IDLE.
EDITABLE_STAGES = frozenset({Stage.IDLE, Stage.TRANSFORM_FAILED})

# Stages a (re)transform may start from
TRANSFORM_FROM = frozenset({
    Stage.IDLE,
    Stage.TRANSFORM_FAILED,
    Stage.TRANSFORMED,
    Stage.REPLIES_READY,
    Stage.IMAGE_READY,
    Stage.PUBLISHED,
    Stage.PUBLISH_FAILED,
})

# Stages holding a rewrite that replies or an image can be generated for
ARTIFACT_STAGES = frozenset({
    Stage.TRANSFORMED,
    Stage.REPLIES_READY,
    Stage.IMAGE_READY,
    Stage.PUBLISH_FAILED,
})


class PublishSnapshot(BaseModel):
    """Payload frozen when the user asks to publish; exactly this is sent on confirm."""

    model_config = ConfigDict(frozen=True)

    text: str
    image_url: str | None = None
    add_hashtag: bool = True
    add_disclaimer: bool = True
    preview_text: str = Field(description="Literal text the remote side will post")
    return_stage: Stage = Field(description="Stage restored on cancel")
    epoch: int


class WorkflowState(BaseModel):
    """Immutable snapshot of the session. A new instance is committed on every change."""

    model_config = ConfigDict(frozen=True)

    input_text: str = ""
    escalation_level: int = Field(default_factory=lambda: settings.default_level)
    stage: Stage = Stage.IDLE

    transformed_result: TransformedResult | None = None
    replies: tuple[Reply, ...] = ()
    image: GeneratedImage | None = None
    publish_outcome: PublishOutcome | None = None
    pending_publish: PublishSnapshot | None = None

    last_error: str | None = None
    last_error_source: OperationKind | None = None

    # Bumped by every edit or reset that invalidates derived content
    epoch: int = 0
    in_flight: frozenset[OperationKind] = frozenset()
    # Bumped on every commit
    version: int = 0


Subscriber = Callable[[WorkflowState], None]


class StoreWriter:
    """Write handle for a WorkflowStore. Only one exists per store."""

    def __init__(self, store: "WorkflowStore"):
        self._store = store

    def commit(self, **changes: Any) -> WorkflowState:
        return self._store._apply(changes)


class WorkflowStore:
    """
    Single source of truth for the session.
    Readers use `state` and `subscribe`; the one writer is claimed with `claim_writer()`.
    """

    def __init__(self, initial: WorkflowState | None = None):
        self._state = initial or WorkflowState()
        self._subscribers: list[Subscriber] = []
        self._writer: StoreWriter | None = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    def claim_writer(self) -> StoreWriter:
        """Hand out the write handle. A second claim is a programming error."""
        if self._writer is not None:
            raise RuntimeError("WorkflowStore already has a writer")
        self._writer = StoreWriter(self)
        return self._writer

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call `callback(state)` after every commit. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _apply(self, changes: dict[str, Any]) -> WorkflowState:
        changes["version"] = self._state.version + 1
        self._state = self._state.model_copy(update=changes)
        for callback in list(self._subscribers):
            try:
                callback(self._state)
            except Exception as e:
                logger.exception("store_subscriber_failed", error=str(e))
        return self._state
