"""Remote operations over the GraphQL endpoint, normalized to Success / Failure."""
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

import httpx
from pydantic import TypeAdapter, ValidationError

from flamesim.config import settings
from flamesim.models.schemas import (
    AspectRatio,
    GeneratedImage,
    ImageStyle,
    PublishOutcome,
    Reply,
    TransformPayload,
)
from flamesim.services import queries
from flamesim.utils.helpers import is_blank, truncate
from flamesim.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Operation completed. errors holds GraphQL errors that came back alongside usable data."""

    payload: T
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class Failure:
    """Operation did not complete; reason is human-readable."""

    reason: str


OperationResult = Union[Success[T], Failure]


class RemoteGateway:
    """Issues the four remote operations. Never raises; every fault becomes a Failure."""

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.endpoint = endpoint or settings.graphql_endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.request_timeout_seconds
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def transform_text(self, original_text: str, level: int) -> OperationResult[TransformPayload]:
        """generateInflammatoryText(input: {originalText, level})."""
        if is_blank(original_text):
            return Failure("original text is empty")
        return await self._run(
            "GenerateInflammatoryText",
            queries.GENERATE_INFLAMMATORY_TEXT,
            {"input": {"originalText": original_text, "level": level}},
            "generateInflammatoryText",
            TransformPayload.model_validate,
        )

    async def generate_replies(self, rewritten_text: str) -> OperationResult[list[Reply]]:
        """generateReplies(text). The service may return any number of replies."""
        return await self._run(
            "GenerateReplies",
            queries.GENERATE_REPLIES,
            {"text": rewritten_text},
            "generateReplies",
            _parse_replies,
        )

    async def generate_image(
        self,
        text: str,
        style: ImageStyle = ImageStyle.MEME,
        aspect_ratio: AspectRatio = AspectRatio.SQUARE,
    ) -> OperationResult[GeneratedImage]:
        """generateImage(input: {text, style, aspectRatio})."""
        return await self._run(
            "GenerateImage",
            queries.GENERATE_IMAGE,
            {"input": {"text": text, "style": style.value, "aspectRatio": aspect_ratio.value}},
            "generateImage",
            GeneratedImage.model_validate,
        )

    async def publish_post(
        self,
        text: str,
        image_url: str | None = None,
        add_hashtag: bool = True,
        add_disclaimer: bool = True,
    ) -> OperationResult[PublishOutcome]:
        """
        postToTwitter(input: {text, imageUrl?, addHashtag, addDisclaimer}).
        A Success may still carry success=False; the caller treats that as "not published".
        """
        post_input: dict[str, Any] = {
            "text": text,
            "addHashtag": add_hashtag,
            "addDisclaimer": add_disclaimer,
        }
        if image_url:
            post_input["imageUrl"] = image_url
        return await self._run(
            "PostToTwitter",
            queries.POST_TO_TWITTER,
            {"input": post_input},
            "postToTwitter",
            PublishOutcome.model_validate,
        )

    async def _run(
        self,
        operation: str,
        query: str,
        variables: dict[str, Any],
        field: str,
        parse: Callable[[Any], T],
    ) -> OperationResult[T]:
        try:
            raw = await self._execute(operation, query, variables, field)
            if isinstance(raw, Failure):
                return raw
            try:
                payload = parse(raw.payload)
            except ValidationError as e:
                logger.warning("remote_payload_invalid", operation=operation, error=str(e))
                return Failure(f"malformed response from {field}")
            return Success(payload, raw.errors)
        except Exception as e:
            logger.exception("remote_operation_crashed", operation=operation, error=str(e))
            return Failure(str(e) or e.__class__.__name__)

    async def _execute(
        self,
        operation: str,
        query: str,
        variables: dict[str, Any],
        field: str,
    ) -> OperationResult[Any]:
        """POST the document; partial data (data + errors) is still delivered."""
        try:
            resp = await self._client.post(
                self.endpoint,
                json={"operationName": operation, "query": query, "variables": variables},
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "remote_operation_failed",
                operation=operation,
                status=e.response.status_code,
                body=truncate(e.response.text, 500),
            )
            # GraphQL servers often reject bad documents with 4xx and an errors list
            messages = _error_messages(_errors_in_body(e.response))
            if messages:
                return Failure(truncate("; ".join(messages)))
            return Failure(f"server responded with HTTP {e.response.status_code}")
        except httpx.TimeoutException as e:
            logger.warning("remote_operation_timeout", operation=operation, error=str(e))
            return Failure("request timed out")
        except httpx.HTTPError as e:
            logger.warning("remote_operation_failed", operation=operation, error=str(e))
            return Failure(f"network error: {e}" if str(e) else "network error")
        except ValueError as e:
            logger.warning("remote_response_not_json", operation=operation, error=str(e))
            return Failure("malformed response: body is not JSON")

        if not isinstance(body, dict):
            return Failure("malformed response: unexpected body")

        errors = tuple(_error_messages(body.get("errors")))
        data = body.get("data")
        value = data.get(field) if isinstance(data, dict) else None
        if value is None:
            if errors:
                logger.warning("remote_graphql_errors", operation=operation, errors=list(errors))
                return Failure(truncate("; ".join(errors)))
            return Failure(f"malformed response: missing {field}")
        if errors:
            logger.info("remote_partial_response", operation=operation, errors=list(errors))
        return Success(value, errors)


def _errors_in_body(resp: httpx.Response) -> Any:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body.get("errors") if isinstance(body, dict) else None


def _error_messages(errors: Any) -> list[str]:
    if not isinstance(errors, list):
        return []
    out = []
    for err in errors:
        if isinstance(err, dict) and err.get("message"):
            out.append(str(err["message"]))
        elif err:
            out.append(str(err))
    return out


_REPLIES = TypeAdapter(list[Reply])


def _parse_replies(value: Any) -> list[Reply]:
    return _REPLIES.validate_python(value)
