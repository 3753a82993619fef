"""Confirmation Gate: explicit user checkpoint before posting anything publicly."""
from flamesim.errors import TransitionError
from flamesim.utils.helpers import compose_post_text
from flamesim.utils.logging import get_logger
from flamesim.workflow.state import OperationKind, PublishSnapshot, Stage, WorkflowState

logger = get_logger(__name__)

# Stages from which the user may ask to publish
PUBLISHABLE_STAGES = frozenset({Stage.TRANSFORMED, Stage.REPLIES_READY, Stage.IMAGE_READY, Stage.PUBLISH_FAILED})


class ConfirmationGate:
    """
    Freezes the exact payload to publish and admits only confirm or cancel.
    Holds no state of its own: the open snapshot lives in WorkflowState.pending_publish.
    """

    def open(self, state: WorkflowState, add_hashtag: bool, add_disclaimer: bool) -> PublishSnapshot:
        """Build the snapshot shown to the user. No network effect."""
        if state.stage not in PUBLISHABLE_STAGES or state.transformed_result is None:
            raise TransitionError("request_publish", state.stage.value)
        if OperationKind.PUBLISH in state.in_flight:
            raise TransitionError("request_publish", state.stage.value, "a publish is still in flight")
        text = state.transformed_result.rewritten_text
        return PublishSnapshot(
            text=text,
            image_url=state.image.url if state.image else None,
            add_hashtag=add_hashtag,
            add_disclaimer=add_disclaimer,
            preview_text=compose_post_text(text, add_hashtag, add_disclaimer),
            return_stage=state.stage,
            epoch=state.epoch,
        )

    def confirm(self, state: WorkflowState) -> PublishSnapshot:
        """Return the frozen snapshot to send, or reject (no gate open, already publishing)."""
        if OperationKind.PUBLISH in state.in_flight or state.stage == Stage.PUBLISHING:
            logger.info("publish_confirm_rejected", reason="in_flight", stage=state.stage.value)
            raise TransitionError("confirm_publish", state.stage.value, "publish already in flight")
        snapshot = state.pending_publish
        if state.stage != Stage.PUBLISH_CONFIRMING or snapshot is None:
            logger.info("publish_confirm_rejected", reason="gate_closed", stage=state.stage.value)
            raise TransitionError("confirm_publish", state.stage.value, "no publish awaiting confirmation")
        if snapshot.epoch != state.epoch:
            raise TransitionError("confirm_publish", state.stage.value, "snapshot is stale")
        return snapshot

    def cancel(self, state: WorkflowState) -> Stage:
        """Discard the snapshot; returns the stage to go back to."""
        if state.stage != Stage.PUBLISH_CONFIRMING or state.pending_publish is None:
            raise TransitionError("cancel_publish", state.stage.value, "no publish awaiting confirmation")
        return state.pending_publish.return_stage
