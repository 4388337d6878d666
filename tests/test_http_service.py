from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ekyte_tools.browser.base import ElementNotFoundError
from ekyte_tools.models import ActionRequest, ActionResult, ErrorKind
from ekyte_tools.transport.http import HttpToolClient, create_app


def _dispatch(request: ActionRequest) -> ActionResult:
    if request.tool == "click":
        return ActionResult.failure(
            request, ErrorKind.ELEMENT_NOT_FOUND, "missing", selectors=[request.arguments["selector"]]
        )
    return ActionResult(id=request.id, tool=request.tool, success=True, data=request.arguments)


@pytest.fixture()
def http_client() -> TestClient:
    app = create_app(_dispatch, status=lambda: {"live": False, "launches": 0})
    return TestClient(app)


def test_health_reports_session(http_client: TestClient) -> None:
    response = http_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "session": {"live": False, "launches": 0}}


def test_tools_lists_catalogue(http_client: TestClient) -> None:
    names = {tool["name"] for tool in http_client.get("/tools").json()["tools"]}

    assert {"navigate", "smartSearch"} <= names


def test_call_tool_returns_action_result(http_client: TestClient) -> None:
    response = http_client.post("/tools/navigate", json={"url": "https://x.test"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"url": "https://x.test"}
    assert body["tool"] == "navigate"


def test_call_tool_without_body(http_client: TestClient) -> None:
    response = http_client.post("/tools/getContent")

    assert response.status_code == 200
    assert response.json()["data"] == {}


def test_http_client_round_trip(http_client: TestClient) -> None:
    client = HttpToolClient("http://testserver", client=http_client)

    assert client.call("navigate", {"url": "https://x.test"}) == {"url": "https://x.test"}
    with pytest.raises(ElementNotFoundError) as excinfo:
        client.call("click", {"selector": "#gone"})
    assert excinfo.value.selectors == ["#gone"]
    assert client.health()["status"] == "ok"
