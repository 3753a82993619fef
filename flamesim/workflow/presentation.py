"""Presentation Adapter: view state derived from a WorkflowState snapshot. Pure; never writes back."""
from pydantic import BaseModel, Field

from flamesim.config import settings
from flamesim.models.schemas import GeneratedImage, PublishOutcome, Reply, ReplyCategory, TransformedResult
from flamesim.utils.helpers import is_blank
from flamesim.workflow.gate import PUBLISHABLE_STAGES
from flamesim.workflow.state import (
    ARTIFACT_STAGES,
    BUSY_STAGES,
    TRANSFORM_FROM,
    OperationKind,
    PublishSnapshot,
    Stage,
    WorkflowState,
)

NEAR_LIMIT_THRESHOLD = 450

LEVEL_DESCRIPTIONS: dict[int, str] = {
    1: "少し配慮に欠ける表現",
    2: "誤解を招きやすい表現",
    3: "明確に批判されそうな表現",
    4: "かなり問題がある表現",
    5: "炎上確実な表現",
}

REPLY_CATEGORY_LABELS: dict[ReplyCategory, str] = {
    ReplyCategory.LOGICAL_CRITICISM: "正論で批判",
    ReplyCategory.NITPICKING: "揚げ足を取る",
    ReplyCategory.OFF_TARGET: "的外れな批判",
    ReplyCategory.EXCESSIVE_DEFENSE: "過剰に擁護",
}


class ReplyView(BaseModel):
    id: str
    category: ReplyCategory
    label: str
    content: str


class ViewState(BaseModel):
    """Everything a UI needs to render the session."""

    version: int
    stage: Stage

    input_text: str
    char_count: int
    max_length: int
    near_limit: bool
    escalation_level: int
    level_description: str

    is_busy: bool
    transform_loading: bool
    replies_loading: bool
    image_loading: bool
    publish_loading: bool

    can_submit_transform: bool
    can_submit_replies: bool
    can_submit_image: bool
    can_request_publish: bool
    can_confirm_publish: bool
    can_cancel_publish: bool

    result: TransformedResult | None = None
    replies: list[ReplyView] = Field(default_factory=list)
    image: GeneratedImage | None = None
    confirmation: PublishSnapshot | None = Field(default=None, description="Payload shown in the confirm dialog")
    publish_outcome: PublishOutcome | None = None

    error_message: str | None = None
    error_action: OperationKind | None = Field(default=None, description="Action the error is shown next to")


def derive_view(state: WorkflowState) -> ViewState:
    """Recompute the whole view from the snapshot."""
    busy = state.stage in BUSY_STAGES
    has_result = state.transformed_result is not None
    confirming = state.stage == Stage.PUBLISH_CONFIRMING

    def idle_for(kind: OperationKind) -> bool:
        return not busy and kind not in state.in_flight

    ready_for_artifacts = has_result and state.stage in ARTIFACT_STAGES

    return ViewState(
        version=state.version,
        stage=state.stage,
        input_text=state.input_text,
        char_count=len(state.input_text),
        max_length=settings.max_input_length,
        near_limit=len(state.input_text) >= NEAR_LIMIT_THRESHOLD,
        escalation_level=state.escalation_level,
        level_description=LEVEL_DESCRIPTIONS.get(state.escalation_level, ""),
        is_busy=busy,
        transform_loading=state.stage == Stage.TRANSFORMING,
        replies_loading=state.stage == Stage.REPLIES_PENDING,
        image_loading=state.stage == Stage.IMAGE_PENDING,
        publish_loading=state.stage == Stage.PUBLISHING,
        can_submit_transform=(
            not is_blank(state.input_text)
            and state.stage in TRANSFORM_FROM
            and idle_for(OperationKind.TRANSFORM)
        ),
        can_submit_replies=ready_for_artifacts and idle_for(OperationKind.REPLIES),
        can_submit_image=ready_for_artifacts and idle_for(OperationKind.IMAGE),
        can_request_publish=(
            has_result and state.stage in PUBLISHABLE_STAGES and idle_for(OperationKind.PUBLISH)
        ),
        can_confirm_publish=(
            confirming and state.pending_publish is not None and OperationKind.PUBLISH not in state.in_flight
        ),
        can_cancel_publish=confirming,
        result=state.transformed_result,
        replies=[_reply_view(r) for r in state.replies],
        image=state.image,
        confirmation=state.pending_publish if confirming else None,
        publish_outcome=state.publish_outcome,
        error_message=state.last_error,
        error_action=state.last_error_source if state.last_error else None,
    )


def _reply_view(reply: Reply) -> ReplyView:
    return ReplyView(
        id=reply.id,
        category=reply.category,
        label=REPLY_CATEGORY_LABELS[reply.category],
        content=reply.content,
    )
