"""Session API: UI events in, derived view state out."""
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from flamesim.config import settings
from flamesim.errors import TransitionError, WorkflowValidationError
from flamesim.models.schemas import EditInputRequest, EditLevelRequest, GenerateImageRequest, PublishRequest
from flamesim.utils.logging import get_logger
from flamesim.workflow.presentation import derive_view
from flamesim.workflow.session import Session

logger = get_logger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


def get_session(request: Request) -> Session:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialised")
    return session


@contextmanager
def _http_errors(event: str) -> Iterator[None]:
    """Validation errors -> 422, illegal transitions -> 409."""
    try:
        yield
    except WorkflowValidationError as e:
        logger.info("session_event_invalid", event=event, error=str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e
    except TransitionError as e:
        logger.info("session_event_rejected", event=event, error=str(e))
        raise HTTPException(status_code=409, detail=str(e)) from e


def _view(session: Session) -> dict[str, Any]:
    return derive_view(session.state).model_dump(mode="json")


@router.get("")
async def get_view(session: Session = Depends(get_session)):
    """Current view state."""
    return _view(session)


@router.get("/poll")
async def poll_view(
    since: int = Query(default=-1, description="Last version the client has seen"),
    timeout: float | None = Query(default=None, ge=0, description="Seconds to wait; default from settings"),
    session: Session = Depends(get_session),
):
    """Long-poll: returns once the state version is greater than `since`, or on timeout."""
    wait = settings.poll_timeout_seconds if timeout is None else min(timeout, settings.poll_timeout_seconds)
    await session.wait_for_change(since, wait)
    return _view(session)


@router.put("/input")
async def edit_input(body: EditInputRequest, session: Session = Depends(get_session)):
    with _http_errors("edit_input"):
        session.controller.edit_input(body.text)
    return _view(session)


@router.put("/level")
async def edit_level(body: EditLevelRequest, session: Session = Depends(get_session)):
    with _http_errors("edit_level"):
        session.controller.edit_level(body.level)
    return _view(session)


@router.post("/transform", status_code=202)
async def submit_transform(session: Session = Depends(get_session)):
    """Start the rewrite. Poll for the result."""
    with _http_errors("submit_transform"):
        session.spawn(session.controller.start_transform())
    return _view(session)


@router.post("/replies", status_code=202)
async def submit_replies(session: Session = Depends(get_session)):
    with _http_errors("submit_replies"):
        session.spawn(session.controller.start_replies())
    return _view(session)


@router.post("/image", status_code=202)
async def submit_image(
    body: GenerateImageRequest | None = None,
    session: Session = Depends(get_session),
):
    body = body or GenerateImageRequest()
    with _http_errors("submit_image"):
        session.spawn(session.controller.start_image(body.style, body.aspect_ratio))
    return _view(session)


@router.post("/publish")
async def request_publish(
    body: PublishRequest | None = None,
    session: Session = Depends(get_session),
):
    """Open the confirmation step; the view's `confirmation` holds the exact payload. Nothing is posted."""
    body = body or PublishRequest()
    with _http_errors("request_publish"):
        session.controller.request_publish(body.add_hashtag, body.add_disclaimer)
    return _view(session)


@router.post("/publish/confirm", status_code=202)
async def confirm_publish(session: Session = Depends(get_session)):
    """Post the frozen payload. A second confirm while publishing is rejected with 409."""
    with _http_errors("confirm_publish"):
        session.spawn(session.controller.start_confirm_publish())
    return _view(session)


@router.post("/publish/cancel")
async def cancel_publish(session: Session = Depends(get_session)):
    with _http_errors("cancel_publish"):
        session.controller.cancel_publish()
    return _view(session)


@router.post("/reset")
async def reset(session: Session = Depends(get_session)):
    session.controller.reset()
    return _view(session)
