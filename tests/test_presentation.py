import pytest

from flamesim.models.schemas import Reply, ReplyCategory, TransformedResult
from flamesim.workflow.presentation import derive_view
from flamesim.workflow.state import BUSY_STAGES, OperationKind, PublishSnapshot, Stage, WorkflowState

RESULT = TransformedResult(original_text="元の投稿", rewritten_text="燃える投稿", explanation="理由")


@pytest.mark.parametrize("text", ["", " ", "\n", "\t  \n"])
def test_blank_input_disables_transform(text: str) -> None:
    view = derive_view(WorkflowState(input_text=text))

    assert view.can_submit_transform is False


def test_idle_with_text_enables_transform_only() -> None:
    view = derive_view(WorkflowState(input_text="テスト投稿"))

    assert view.can_submit_transform
    assert not view.can_submit_replies
    assert not view.can_submit_image
    assert not view.can_request_publish
    assert not view.is_busy
    assert view.char_count == 5
    assert view.level_description == "明確に批判されそうな表現"


@pytest.mark.parametrize("stage", sorted(BUSY_STAGES, key=lambda s: s.value))
def test_busy_stages_disable_every_action(stage: Stage) -> None:
    view = derive_view(WorkflowState(input_text="テスト投稿", stage=stage, transformed_result=RESULT))

    assert view.is_busy
    assert not view.can_submit_transform
    assert not view.can_submit_replies
    assert not view.can_submit_image
    assert not view.can_request_publish


def test_loading_flag_follows_pending_stage() -> None:
    view = derive_view(WorkflowState(input_text="x", stage=Stage.REPLIES_PENDING, transformed_result=RESULT))

    assert view.replies_loading
    assert not view.transform_loading
    assert not view.image_loading
    assert not view.publish_loading


def test_transformed_enables_follow_up_actions() -> None:
    view = derive_view(WorkflowState(input_text="x", stage=Stage.TRANSFORMED, transformed_result=RESULT))

    assert view.can_submit_replies
    assert view.can_submit_image
    assert view.can_request_publish
    assert view.result.rewritten_text == "燃える投稿"


def test_stale_request_in_flight_keeps_action_disabled() -> None:
    state = WorkflowState(input_text="x", stage=Stage.IDLE, in_flight=frozenset({OperationKind.TRANSFORM}))

    assert not derive_view(state).can_submit_transform


def test_confirmation_payload_only_while_confirming() -> None:
    snapshot = PublishSnapshot(
        text="燃える投稿",
        preview_text="燃える投稿 #炎上シミュレーター",
        return_stage=Stage.TRANSFORMED,
        epoch=0,
    )
    confirming = derive_view(WorkflowState(
        input_text="x",
        stage=Stage.PUBLISH_CONFIRMING,
        transformed_result=RESULT,
        pending_publish=snapshot,
    ))

    assert confirming.confirmation.preview_text == "燃える投稿 #炎上シミュレーター"
    assert confirming.can_confirm_publish
    assert confirming.can_cancel_publish
    assert not confirming.can_submit_transform
    assert not confirming.can_request_publish

    publishing = derive_view(WorkflowState(
        input_text="x",
        stage=Stage.PUBLISHING,
        transformed_result=RESULT,
        pending_publish=snapshot,
        in_flight=frozenset({OperationKind.PUBLISH}),
    ))
    assert publishing.confirmation is None
    assert not publishing.can_confirm_publish
    assert publishing.publish_loading


def test_replies_carry_category_labels() -> None:
    state = WorkflowState(
        input_text="x",
        stage=Stage.REPLIES_READY,
        transformed_result=RESULT,
        replies=(Reply(id="r1", category=ReplyCategory.NITPICKING, content="細かいけど"),),
    )

    view = derive_view(state)

    assert view.replies[0].label == "揚げ足を取る"
    assert view.replies[0].content == "細かいけど"


def test_error_is_attached_to_failed_action() -> None:
    state = WorkflowState(
        input_text="x",
        stage=Stage.TRANSFORMED,
        transformed_result=RESULT,
        last_error="エラーが発生しました: request timed out",
        last_error_source=OperationKind.IMAGE,
    )

    view = derive_view(state)

    assert view.error_message == "エラーが発生しました: request timed out"
    assert view.error_action == OperationKind.IMAGE
    assert view.can_submit_image


def test_near_limit_counter() -> None:
    assert not derive_view(WorkflowState(input_text="a" * 449)).near_limit
    assert derive_view(WorkflowState(input_text="a" * 450)).near_limit
