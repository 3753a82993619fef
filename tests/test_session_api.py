"""Session API against a RemoteGateway backed by httpx.MockTransport."""
import json
from typing import Any, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from flamesim.main import create_app
from flamesim.services.graphql_gateway import RemoteGateway

RESPONSES: Dict[str, Dict[str, Any]] = {
    "GenerateInflammatoryText": {
        "generateInflammatoryText": {"inflammatoryText": "炎上化されたテキスト", "explanation": "説明文"}
    },
    "GenerateReplies": {
        "generateReplies": [
            {"id": "1", "type": "LOGICAL_CRITICISM", "content": "正論"},
            {"id": "2", "type": "NITPICKING", "content": "揚げ足"},
            {"id": "3", "type": "OFF_TARGET", "content": "的外れ"},
            {"id": "4", "type": "EXCESSIVE_DEFENSE", "content": "擁護"},
        ]
    },
    "GenerateImage": {
        "generateImage": {"imageUrl": "data:image/png;base64,AAAA", "prompt": "fire", "generatedAt": "2025-10-17T10:00:00Z"}
    },
    "PostToTwitter": {
        "postToTwitter": {"success": True, "tweetId": "42", "tweetUrl": "https://twitter.com/u/status/42", "errorMessage": None}
    },
}


class RemoteService:
    """Records GraphQL operations and answers from RESPONSES (or an override)."""

    def __init__(self) -> None:
        self.operations: List[Dict[str, Any]] = []
        self.overrides: Dict[str, Dict[str, Any]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.operations.append(body)
        name = body["operationName"]
        return httpx.Response(200, json=self.overrides.get(name, {"data": RESPONSES[name]}))

    def count(self, name: str) -> int:
        return sum(1 for op in self.operations if op["operationName"] == name)


@pytest.fixture
def remote() -> RemoteService:
    return RemoteService()


@pytest.fixture
def client(remote: RemoteService):
    gateway = RemoteGateway(
        endpoint="http://graphql.test/graphql",
        client=httpx.AsyncClient(transport=httpx.MockTransport(remote)),
    )
    with TestClient(create_app(gateway)) as c:
        yield c


def settle(client: TestClient, view: Dict[str, Any]) -> Dict[str, Any]:
    """Long-poll until no operation is pending."""
    for _ in range(20):
        if not view["is_busy"]:
            return view
        r = client.get("/session/poll", params={"since": view["version"], "timeout": 2})
        assert r.status_code == 200
        view = r.json()
    raise AssertionError(f"session still busy: {view['stage']}")


def test_health(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_initial_view(client: TestClient) -> None:
    view = client.get("/session").json()

    assert view["stage"] == "idle"
    assert view["escalation_level"] == 3
    assert view["can_submit_transform"] is False
    assert view["max_length"] == 500


def test_blank_transform_is_422(client: TestClient, remote: RemoteService) -> None:
    client.put("/session/input", json={"text": "   "})

    r = client.post("/session/transform")

    assert r.status_code == 422
    assert remote.operations == []


def test_invalid_edits_are_422(client: TestClient) -> None:
    assert client.put("/session/level", json={"level": 9}).status_code == 422
    assert client.put("/session/input", json={"text": "x" * 501}).status_code == 422


def test_actions_out_of_order_are_409(client: TestClient, remote: RemoteService) -> None:
    assert client.post("/session/replies").status_code == 409
    assert client.post("/session/image").status_code == 409
    assert client.post("/session/publish").status_code == 409
    assert client.post("/session/publish/confirm").status_code == 409
    assert client.post("/session/publish/cancel").status_code == 409
    assert remote.operations == []


def test_full_flow_with_confirmation(client: TestClient, remote: RemoteService) -> None:
    client.put("/session/input", json={"text": "テスト投稿"})

    r = client.post("/session/transform")
    assert r.status_code == 202
    assert r.json()["stage"] == "transforming"
    assert r.json()["transform_loading"] is True
    view = settle(client, r.json())
    assert view["stage"] == "transformed"
    assert view["result"]["rewritten_text"] == "炎上化されたテキスト"
    assert view["error_message"] is None

    view = settle(client, client.post("/session/replies").json())
    assert view["stage"] == "replies_ready"
    assert len(view["replies"]) == 4
    assert len({reply["category"] for reply in view["replies"]}) == 4

    view = settle(client, client.post("/session/image", json={"style": "DRAMATIC", "aspect_ratio": "SQUARE"}).json())
    assert view["stage"] == "image_ready"
    assert view["image"]["url"] == "data:image/png;base64,AAAA"

    view = client.post("/session/publish", json={"add_hashtag": True, "add_disclaimer": False}).json()
    assert view["stage"] == "publish_confirming"
    assert view["confirmation"]["preview_text"] == "炎上化されたテキスト #炎上シミュレーター"
    assert view["confirmation"]["image_url"] == "data:image/png;base64,AAAA"

    view = client.post("/session/publish/cancel").json()
    assert view["stage"] == "image_ready"
    assert remote.count("PostToTwitter") == 0

    client.post("/session/publish", json={"add_hashtag": True, "add_disclaimer": False})
    first = client.post("/session/publish/confirm")
    second = client.post("/session/publish/confirm")
    assert first.status_code == 202
    assert second.status_code == 409

    view = settle(client, first.json())
    assert view["stage"] == "published"
    assert view["publish_outcome"]["remote_url"] == "https://twitter.com/u/status/42"
    assert remote.count("PostToTwitter") == 1
    sent = [op for op in remote.operations if op["operationName"] == "PostToTwitter"][0]
    assert sent["variables"]["input"] == {
        "text": "炎上化されたテキスト",
        "imageUrl": "data:image/png;base64,AAAA",
        "addHashtag": True,
        "addDisclaimer": False,
    }


def test_publish_rejection_shows_remote_reason(client: TestClient, remote: RemoteService) -> None:
    remote.overrides["PostToTwitter"] = {
        "data": {"postToTwitter": {"success": False, "tweetId": None, "tweetUrl": None, "errorMessage": "投稿に失敗しました"}}
    }
    client.put("/session/input", json={"text": "テスト投稿"})
    settle(client, client.post("/session/transform").json())
    client.post("/session/publish")

    view = settle(client, client.post("/session/publish/confirm").json())

    assert view["stage"] == "publish_failed"
    assert view["error_message"] == "投稿に失敗しました"
    assert view["error_action"] == "publish"
    assert view["can_request_publish"] is True


def test_transform_failure_view(client: TestClient, remote: RemoteService) -> None:
    remote.overrides["GenerateInflammatoryText"] = {"data": None, "errors": [{"message": "upstream unavailable"}]}
    client.put("/session/input", json={"text": "テスト投稿"})

    view = settle(client, client.post("/session/transform").json())

    assert view["stage"] == "transform_failed"
    assert view["error_message"] == "エラーが発生しました: upstream unavailable"
    assert view["result"] is None
    assert view["can_submit_transform"] is True


def test_level_change_resets_to_idle(client: TestClient) -> None:
    client.put("/session/input", json={"text": "テスト投稿"})
    settle(client, client.post("/session/transform").json())

    view = client.put("/session/level", json={"level": 5}).json()

    assert view["stage"] == "idle"
    assert view["result"] is None
    assert view["level_description"] == "炎上確実な表現"


def test_reset(client: TestClient) -> None:
    client.put("/session/input", json={"text": "テスト投稿"})
    client.put("/session/level", json={"level": 1})

    view = client.post("/session/reset").json()

    assert view["input_text"] == ""
    assert view["escalation_level"] == 3


def test_poll_returns_on_timeout_without_changes(client: TestClient) -> None:
    view = client.get("/session").json()

    r = client.get("/session/poll", params={"since": view["version"], "timeout": 0.05})

    assert r.status_code == 200
    assert r.json()["version"] == view["version"]
