"""Integration tests for the HTTP transport.

Tests the Starlette routes with real protocol types, verifying:
- POST /commands returns the resolved command array
- POST /results acknowledges with an empty 200
- 405 for wrong methods, 400 for malformed bodies or mismatched Type
"""

import logging

import pytest
from starlette.testclient import TestClient

from command_gateway.app import create_app
from command_gateway.protocol import RequestHandler
from command_gateway.resolver import Command


@pytest.fixture
def client(handler: RequestHandler) -> TestClient:
    """Create test client for the gateway app."""
    return TestClient(create_app(handler))


# =============================================================================
# Tests: Health
# =============================================================================


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_returns_ok(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "commands": 4}


# =============================================================================
# Tests: /commands
# =============================================================================


class TestCommandsEndpoint:
    """Test POST /commands."""

    def test_linux_scenario(self, client: TestClient):
        response = client.post(
            "/commands",
            content='{"Type":"GetCommands","AgentID":"a1","Groups":["linux"]}',
        )

        assert response.status_code == 200
        assert "application/json" in response.headers["content-type"]
        assert response.json() == [
            {"ID": "C1", "Type": "exec", "Command": "uname -a"},
            {"ID": "C2", "Type": "read_file", "Path": "/etc/os-release"},
        ]

    def test_order_follows_groups(self, client: TestClient):
        response = client.post(
            "/commands",
            json={"Type": "GetCommands", "AgentID": "special-agent", "Groups": ["windows", "all"]},
        )

        assert [c["ID"] for c in response.json()] == ["C4", "C3", "C1"]

    def test_no_match_is_empty_array(self, client: TestClient):
        response = client.post(
            "/commands", json={"Type": "GetCommands", "AgentID": "a1", "Groups": []}
        )

        assert response.status_code == 200
        assert response.json() == []

    def test_identical_responses(self, client: TestClient):
        body = {"Type": "GetCommands", "AgentID": "a1", "Groups": ["linux", "all"]}

        first = client.post("/commands", json=body)
        second = client.post("/commands", json=body)

        assert first.content == second.content

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    def test_wrong_method(self, client: TestClient, method: str):
        response = client.request(method, "/commands")

        assert response.status_code == 405

    def test_wrong_type(self, client: TestClient):
        response = client.post("/commands", json={"Type": "SendResults"})

        assert response.status_code == 400
        assert response.json()["code"] == "WRONG_ENDPOINT"

    def test_unknown_type(self, client: TestClient):
        response = client.post("/commands", json={"Type": "Reboot", "AgentID": "a1"})

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        ["", "{not json", "[]", '{"AgentID": "a1"}', '{"Type": "GetCommands", "Groups": "linux"}'],
    )
    def test_malformed_body(self, client: TestClient, body: str):
        response = client.post("/commands", content=body)

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "DECODE_ERROR"
        assert not isinstance(data, list)

    def test_missing_agent_id(self, client: TestClient):
        response = client.post("/commands", json={"Type": "GetCommands", "Groups": ["linux"]})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"

    def test_resolver_failure_is_500(self):
        class BrokenResolver:
            commands = {}

            def resolve(self, agent_id, groups):
                raise RuntimeError("boom")

        client = TestClient(create_app(RequestHandler(BrokenResolver())))  # type: ignore[arg-type]
        response = client.post(
            "/commands", json={"Type": "GetCommands", "AgentID": "a1", "Groups": []}
        )

        assert response.status_code == 500
        assert response.json()["code"] == "HANDLER_ERROR"

    def test_encode_failure_is_500(self, caplog: pytest.LogCaptureFixture):
        class UnencodableCommand(Command):
            def to_wire(self):
                raise TypeError("not serializable")

        class StubResolver:
            commands = {}

            def resolve(self, agent_id, groups):
                return [UnencodableCommand(ID="c1")]

        client = TestClient(create_app(RequestHandler(StubResolver())))  # type: ignore[arg-type]
        response = client.post(
            "/commands", json={"Type": "GetCommands", "AgentID": "a1", "Groups": []}
        )

        assert response.status_code == 500
        assert response.json()["code"] == "HANDLER_ERROR"
        assert any("Failed to encode commands" in r.getMessage() for r in caplog.records)


# =============================================================================
# Tests: /results
# =============================================================================


class TestResultsEndpoint:
    """Test POST /results."""

    def test_results_scenario(self, client: TestClient, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.INFO, logger="command_gateway")

        response = client.post(
            "/results",
            content='{"Type":"SendResults","Results":[{"CommandID":"c1","ReturnCode":0,"Output":"ok"}]}',
        )

        assert response.status_code == 200
        assert response.content == b""
        records = [r for r in caplog.records if r.getMessage().startswith("Received result")]
        assert len(records) == 1
        assert "command_id=c1" in records[0].getMessage()

    def test_empty_results(self, client: TestClient):
        response = client.post("/results", json={"Type": "SendResults", "Results": []})

        assert response.status_code == 200
        assert response.content == b""

    def test_wrong_method(self, client: TestClient):
        assert client.get("/results").status_code == 405

    def test_wrong_type(self, client: TestClient):
        response = client.post(
            "/results", json={"Type": "GetCommands", "AgentID": "a1", "Groups": ["linux"]}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "WRONG_ENDPOINT"

    def test_malformed_result(self, client: TestClient):
        response = client.post(
            "/results", json={"Type": "SendResults", "Results": [{"CommandID": "c1"}]}
        )

        assert response.status_code == 400


class TestRoutingErrors:
    """Test errors raised by routing itself."""

    def test_unknown_path(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404

    def test_method_not_allowed_is_logged(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ):
        client.get("/commands")

        assert any("405" in r.getMessage() for r in caplog.records)
