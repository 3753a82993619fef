"""
Stage Controller: the state machine that sequences the remote operations.

Stage flow:
    IDLE | TRANSFORM_FAILED | <any settled stage with a result> -> TRANSFORMING -> TRANSFORMED | TRANSFORM_FAILED
    ARTIFACT_STAGES -> REPLIES_PENDING -> REPLIES_READY (failure: back to the issuing stage)
    ARTIFACT_STAGES -> IMAGE_PENDING -> IMAGE_READY (failure: back to the issuing stage)
    ARTIFACT_STAGES -> PUBLISH_CONFIRMING -> PUBLISHING -> PUBLISHED | PUBLISH_FAILED
    PUBLISH_CONFIRMING -cancel-> issuing stage

Every remote call is split in two: `start_*` checks the guard and commits the pending
stage synchronously, then returns a coroutine that awaits the gateway and applies the
result. Results are stamped with the epoch at issue time and dropped if an edit or a
reset happened meanwhile.
"""
from typing import Any, Awaitable, Coroutine

from flamesim.config import settings
from flamesim.errors import TransitionError, WorkflowValidationError
from flamesim.models.schemas import (
    AspectRatio,
    ImageStyle,
    PublishOutcome,
    TransformedResult,
)
from flamesim.services.graphql_gateway import Failure, OperationResult, RemoteGateway, Success
from flamesim.utils.helpers import is_blank
from flamesim.utils.logging import get_logger
from flamesim.workflow.gate import ConfirmationGate
from flamesim.workflow.state import (
    ARTIFACT_STAGES,
    EDITABLE_STAGES,
    OperationKind,
    PublishSnapshot,
    Stage,
    TRANSFORM_FROM,
    WorkflowState,
    WorkflowStore,
)

logger = get_logger(__name__)

MIN_LEVEL = 1
MAX_LEVEL = 5

GENERIC_ERROR_PREFIX = "エラーが発生しました: "
PUBLISH_FAILED_MESSAGE = "投稿に失敗しました"


class StageController:
    """Only writer of the WorkflowStore."""

    def __init__(
        self,
        store: WorkflowStore,
        gateway: RemoteGateway,
        gate: ConfirmationGate | None = None,
    ):
        self._store = store
        self._writer = store.claim_writer()
        self._gateway = gateway
        self._gate = gate or ConfirmationGate()

    @property
    def state(self) -> WorkflowState:
        return self._store.state

    # ----- Edits -----
    def edit_input(self, text: str) -> WorkflowState:
        """Replace the source text. Past IDLE this discards everything derived from the old text."""
        if len(text) > settings.max_input_length:
            raise WorkflowValidationError(
                f"input text is {len(text)} characters; the limit is {settings.max_input_length}"
            )
        if text == self.state.input_text:
            return self.state
        return self._apply_edit(input_text=text)

    def edit_level(self, level: int) -> WorkflowState:
        """Change the escalation level. Same reset rule as edit_input."""
        if isinstance(level, bool) or not isinstance(level, int) or not MIN_LEVEL <= level <= MAX_LEVEL:
            raise WorkflowValidationError(f"escalation level must be {MIN_LEVEL}-{MAX_LEVEL}, got {level!r}")
        if level == self.state.escalation_level:
            return self.state
        return self._apply_edit(escalation_level=level)

    def reset(self) -> WorkflowState:
        """Back to an empty session. Responses still in flight are dropped when they arrive."""
        state = self.state
        logger.info("workflow_reset", stage=state.stage.value, epoch=state.epoch)
        return self._commit(
            input_text="",
            escalation_level=settings.default_level,
            stage=Stage.IDLE,
            epoch=state.epoch + 1,
            last_error=None,
            last_error_source=None,
            **_CLEARED_ARTIFACTS,
            transformed_result=None,
        )

    def _apply_edit(self, **changes: Any) -> WorkflowState:
        state = self.state
        if state.stage in EDITABLE_STAGES:
            return self._commit(**changes)
        logger.info("workflow_reset_by_edit", stage=state.stage.value, fields=sorted(changes))
        return self._commit(
            **changes,
            stage=Stage.IDLE,
            epoch=state.epoch + 1,
            transformed_result=None,
            last_error=None,
            last_error_source=None,
            **_CLEARED_ARTIFACTS,
        )

    # ----- TransformText -----
    def start_transform(self) -> Coroutine[Any, Any, WorkflowState]:
        state = self.state
        if is_blank(state.input_text):
            raise WorkflowValidationError("input text is empty")
        self._require("submit_transform", TRANSFORM_FROM, OperationKind.TRANSFORM)
        epoch = self._begin(OperationKind.TRANSFORM, Stage.TRANSFORMING)
        return self._finish_transform(epoch, state.input_text, state.escalation_level)

    async def submit_transform(self) -> WorkflowState:
        return await self.start_transform()

    async def _finish_transform(self, epoch: int, text: str, level: int) -> WorkflowState:
        result = await self._call(OperationKind.TRANSFORM, self._gateway.transform_text(text, level))
        if not self._is_current(OperationKind.TRANSFORM, epoch):
            return self.state
        if isinstance(result, Failure):
            return self._fail(
                OperationKind.TRANSFORM,
                Stage.TRANSFORM_FAILED,
                GENERIC_ERROR_PREFIX + result.reason,
                transformed_result=None,
                **_CLEARED_ARTIFACTS,
            )
        payload = result.payload
        return self._succeed(
            OperationKind.TRANSFORM,
            Stage.TRANSFORMED,
            result,
            transformed_result=TransformedResult(
                original_text=text,
                rewritten_text=payload.rewritten_text,
                explanation=payload.explanation,
            ),
            **_CLEARED_ARTIFACTS,
        )

    # ----- GenerateReplies -----
    def start_replies(self) -> Coroutine[Any, Any, WorkflowState]:
        state = self._require("submit_replies", ARTIFACT_STAGES, OperationKind.REPLIES)
        prior = state.stage
        epoch = self._begin(OperationKind.REPLIES, Stage.REPLIES_PENDING)
        return self._finish_replies(epoch, prior, state.transformed_result.rewritten_text)

    async def submit_replies(self) -> WorkflowState:
        return await self.start_replies()

    async def _finish_replies(self, epoch: int, prior: Stage, text: str) -> WorkflowState:
        result = await self._call(OperationKind.REPLIES, self._gateway.generate_replies(text))
        if not self._is_current(OperationKind.REPLIES, epoch):
            return self.state
        if isinstance(result, Failure):
            return self._fail(OperationKind.REPLIES, prior, GENERIC_ERROR_PREFIX + result.reason)
        return self._succeed(OperationKind.REPLIES, Stage.REPLIES_READY, result, replies=tuple(result.payload))

    # ----- GenerateImage -----
    def start_image(
        self,
        style: ImageStyle = ImageStyle.MEME,
        aspect_ratio: AspectRatio = AspectRatio.SQUARE,
    ) -> Coroutine[Any, Any, WorkflowState]:
        state = self._require("submit_image", ARTIFACT_STAGES, OperationKind.IMAGE)
        prior = state.stage
        epoch = self._begin(OperationKind.IMAGE, Stage.IMAGE_PENDING)
        return self._finish_image(epoch, prior, state.transformed_result.rewritten_text, style, aspect_ratio)

    async def submit_image(
        self,
        style: ImageStyle = ImageStyle.MEME,
        aspect_ratio: AspectRatio = AspectRatio.SQUARE,
    ) -> WorkflowState:
        return await self.start_image(style, aspect_ratio)

    async def _finish_image(
        self,
        epoch: int,
        prior: Stage,
        text: str,
        style: ImageStyle,
        aspect_ratio: AspectRatio,
    ) -> WorkflowState:
        result = await self._call(OperationKind.IMAGE, self._gateway.generate_image(text, style, aspect_ratio))
        if not self._is_current(OperationKind.IMAGE, epoch):
            return self.state
        if isinstance(result, Failure):
            return self._fail(OperationKind.IMAGE, prior, GENERIC_ERROR_PREFIX + result.reason)
        return self._succeed(OperationKind.IMAGE, Stage.IMAGE_READY, result, image=result.payload)

    # ----- PublishPost (through the Confirmation Gate) -----
    def request_publish(
        self,
        add_hashtag: bool | None = None,
        add_disclaimer: bool | None = None,
    ) -> WorkflowState:
        """Open the gate with a frozen snapshot. Nothing is sent yet."""
        snapshot = self._gate.open(
            self.state,
            settings.default_add_hashtag if add_hashtag is None else add_hashtag,
            settings.default_add_disclaimer if add_disclaimer is None else add_disclaimer,
        )
        return self._commit(stage=Stage.PUBLISH_CONFIRMING, pending_publish=snapshot)

    def cancel_publish(self) -> WorkflowState:
        return_stage = self._gate.cancel(self.state)
        return self._commit(stage=return_stage, pending_publish=None)

    def start_confirm_publish(self) -> Coroutine[Any, Any, WorkflowState]:
        snapshot = self._gate.confirm(self.state)
        epoch = self._begin(OperationKind.PUBLISH, Stage.PUBLISHING)
        return self._finish_publish(epoch, snapshot.return_stage, snapshot)

    async def confirm_publish(self) -> WorkflowState:
        return await self.start_confirm_publish()

    async def _finish_publish(self, epoch: int, prior: Stage, snapshot: PublishSnapshot) -> WorkflowState:
        result = await self._call(
            OperationKind.PUBLISH,
            self._gateway.publish_post(
                snapshot.text,
                snapshot.image_url,
                snapshot.add_hashtag,
                snapshot.add_disclaimer,
            ),
        )
        if not self._is_current(OperationKind.PUBLISH, epoch):
            # The post may exist remotely even though this session moved on
            logger.warning("publish_response_after_reset", outcome=_describe(result))
            return self.state
        if isinstance(result, Failure):
            return self._fail(
                OperationKind.PUBLISH,
                Stage.PUBLISH_FAILED,
                GENERIC_ERROR_PREFIX + result.reason,
                publish_outcome=PublishOutcome(success=False, error_reason=result.reason),
                pending_publish=None,
            )
        outcome = result.payload
        if not outcome.success:
            return self._fail(
                OperationKind.PUBLISH,
                Stage.PUBLISH_FAILED,
                outcome.error_reason or PUBLISH_FAILED_MESSAGE,
                publish_outcome=outcome,
                pending_publish=None,
            )
        logger.info("post_published", remote_id=outcome.remote_id, remote_url=outcome.remote_url, from_stage=prior.value)
        return self._succeed(
            OperationKind.PUBLISH,
            Stage.PUBLISHED,
            result,
            publish_outcome=outcome,
            pending_publish=None,
        )

    # ----- Internals -----
    def _require(self, event: str, allowed: frozenset[Stage], kind: OperationKind) -> WorkflowState:
        state = self.state
        if state.stage not in allowed:
            raise TransitionError(event, state.stage.value)
        if kind in state.in_flight:
            raise TransitionError(event, state.stage.value, f"{kind.value} request already in flight")
        if kind != OperationKind.TRANSFORM and state.transformed_result is None:
            raise TransitionError(event, state.stage.value, "no transformed text")
        return state

    def _begin(self, kind: OperationKind, pending: Stage) -> int:
        state = self.state
        self._commit(stage=pending, in_flight=state.in_flight | {kind})
        logger.info("remote_operation_started", operation=kind.value, epoch=state.epoch)
        return state.epoch

    async def _call(self, kind: OperationKind, operation: Awaitable[OperationResult]) -> OperationResult:
        # The gateway converts its own faults; this covers anything else it was swapped for
        try:
            return await operation
        except Exception as e:
            logger.exception("remote_operation_raised", operation=kind.value, error=str(e))
            return Failure(str(e) or e.__class__.__name__)

    def _is_current(self, kind: OperationKind, epoch: int) -> bool:
        """Release the in-flight slot; False (and nothing applied) if the response is stale."""
        state = self.state
        if epoch == state.epoch:
            return True
        self._commit(in_flight=state.in_flight - {kind})
        logger.info("stale_response_discarded", operation=kind.value, issued_epoch=epoch, current_epoch=state.epoch)
        return False

    def _succeed(self, kind: OperationKind, stage: Stage, result: Success, **changes: Any) -> WorkflowState:
        last_error = GENERIC_ERROR_PREFIX + "; ".join(result.errors) if result.errors else None
        return self._commit(
            stage=stage,
            in_flight=self.state.in_flight - {kind},
            last_error=last_error,
            last_error_source=kind if last_error else None,
            **changes,
        )

    def _fail(self, kind: OperationKind, stage: Stage, message: str, **changes: Any) -> WorkflowState:
        logger.warning("remote_operation_failed", operation=kind.value, error=message, next_stage=stage.value)
        return self._commit(
            stage=stage,
            in_flight=self.state.in_flight - {kind},
            last_error=message,
            last_error_source=kind,
            **changes,
        )

    def _commit(self, **changes: Any) -> WorkflowState:
        before = self.state.stage
        state = self._writer.commit(**changes)
        if state.stage != before:
            logger.info("stage_transition", from_stage=before.value, to_stage=state.stage.value, epoch=state.epoch)
        return state


_CLEARED_ARTIFACTS: dict[str, Any] = {
    "replies": (),
    "image": None,
    "publish_outcome": None,
    "pending_publish": None,
}


def _describe(result: OperationResult) -> str:
    if isinstance(result, Failure):
        return f"failure: {result.reason}"
    outcome = result.payload
    return "published" if outcome.success else f"rejected: {outcome.error_reason}"
