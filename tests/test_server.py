"""Tests for the HTTP server contract."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from agentrelay.prompt_engine import CONTEXT_START
from agentrelay.schemas import ProcessResult
from agentrelay.server import app
from agentrelay.subagents.gemini_runner import INSTALL_HINT, AgentNotFoundError


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def host_env(linux_env):
    """Pin the environment snapshot so tests never probe the real host."""
    with patch("agentrelay.server.get_environment", return_value=linux_env):
        yield linux_env


@pytest.fixture
def mock_run_agent():
    with patch("agentrelay.server.run_agent") as mock:
        yield mock


@pytest.fixture
def mock_launch():
    with patch("agentrelay.server.run_detached_command", return_value=1234) as mock:
        yield mock


class TestDoSomething:
    """Test POST /do-something."""

    def test_unknown_action_is_echoed(self, client, mock_run_agent):
        response = client.post("/do-something", json={"action": "noop"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["action"] == "noop"
        assert data["output"].startswith('Action "noop" received at ')
        assert data["timestamp"].endswith("Z")
        mock_run_agent.assert_not_called()

    def test_null_options_treated_as_absent(self, client, mock_run_agent):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout="Hello")

        echoed = client.post("/do-something", json={"action": "noop", "options": None})
        launched = client.post("/do-something", json={"action": "launch_gemini", "options": None})

        assert echoed.status_code == 200
        assert launched.status_code == 200
        assert mock_run_agent.call_args.kwargs["model"] == "gemini-2.0-flash"

    def test_missing_action_rejected(self, client):
        response = client.post("/do-something", json={"options": {"prompt": "hi"}})
        assert response.status_code == 422

    def test_json_response_relayed(self, client, mock_run_agent, host_env):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout='{"response": "X", "stats": {}}')

        response = client.post("/do-something", json={
            "action": "launch_gemini",
            "options": {"prompt": "say X"},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["output"] == "X"
        assert data["stats"] == {}
        assert data["cwd"] == str(host_env.project_dir)

        kwargs = mock_run_agent.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["cwd"] == str(host_env.project_dir)
        assert kwargs["prompt"].startswith(CONTEXT_START)
        assert kwargs["prompt"].endswith("say X")

    def test_default_prompt_used(self, client, mock_run_agent):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout="Hello")

        client.post("/do-something", json={"action": "launch_gemini"})

        assert mock_run_agent.call_args.kwargs["prompt"].endswith("Just print the word Hello, nothing else.")

    def test_plain_text_response(self, client, mock_run_agent):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout="hi\n")

        response = client.post("/do-something", json={"action": "launch_gemini", "options": {"prompt": "x"}})

        assert response.status_code == 200
        assert response.json()["output"] == "hi"
        assert "stats" not in response.json()

    def test_agent_failure(self, client, mock_run_agent):
        mock_run_agent.return_value = ProcessResult(exit_code=1, stderr="boom")

        response = client.post("/do-something", json={"action": "launch_gemini", "options": {"prompt": "x"}})

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["output"] == "boom"
        assert "cwd" not in data

    def test_agent_timeout(self, client, mock_run_agent):
        mock_run_agent.return_value = ProcessResult(exit_code=None, timed_out=True)

        response = client.post("/do-something", json={"action": "launch_gemini", "options": {"prompt": "x"}})

        assert response.status_code == 500
        assert "timed out" in response.json()["output"]

    def test_agent_not_installed(self, client, mock_run_agent):
        mock_run_agent.side_effect = AgentNotFoundError(INSTALL_HINT)

        response = client.post("/do-something", json={"action": "launch_gemini", "options": {"prompt": "x"}})

        assert response.status_code == 500
        assert response.json()["output"] == INSTALL_HINT

    def test_model_and_cwd_passed_through(self, client, mock_run_agent, tmp_path):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout="ok")

        response = client.post("/do-something", json={
            "action": "launch_gemini",
            "options": {"prompt": "x", "model": "gemini-2.5-pro", "cwd": str(tmp_path)},
        })

        kwargs = mock_run_agent.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-pro"
        assert kwargs["cwd"] == str(tmp_path)
        assert response.json()["cwd"] == str(tmp_path)

    def test_auto_mode_browser_intent(self, client, mock_run_agent, mock_launch):
        response = client.post("/do-something", json={
            "action": "launch_gemini",
            "options": {"prompt": "open youtube", "mode": "auto"},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "browser"
        assert data["url"] == "https://www.youtube.com"
        assert data["command"] == "xdg-open https://www.youtube.com"
        mock_launch.assert_called_once_with(["xdg-open", "https://www.youtube.com"])
        mock_run_agent.assert_not_called()

    def test_auto_mode_other_prompt_goes_to_agent(self, client, mock_run_agent, mock_launch):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout="a poem")

        response = client.post("/do-something", json={
            "action": "launch_gemini",
            "options": {"prompt": "write a poem", "mode": "auto"},
        })

        assert response.json()["output"] == "a poem"
        mock_launch.assert_not_called()

    def test_browser_intent_without_auto_goes_to_agent(self, client, mock_run_agent, mock_launch):
        mock_run_agent.return_value = ProcessResult(exit_code=0, stdout="done")

        client.post("/do-something", json={"action": "launch_gemini", "options": {"prompt": "open youtube"}})

        mock_run_agent.assert_called_once()
        mock_launch.assert_not_called()


class TestOpenBrowser:
    """Test POST /open-browser."""

    def test_opens_profile_with_default_browser(self, client, mock_launch):
        response = client.post("/open-browser", json={"prompt": "open my github profile"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["url"] == "https://github.com/octocat"
        assert data["browser"] is None
        assert data["command"] == "xdg-open https://github.com/octocat"
        mock_launch.assert_called_once()

    def test_missing_browser_is_client_error(self, client, mock_launch, make_probe):
        with patch("agentrelay.resolver.ShellProbe", return_value=make_probe(binaries={"firefox"})):
            response = client.post("/open-browser", json={"prompt": "open youtube in brave"})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert "brave" in data["output"]
        assert "firefox" in data["output"]
        mock_launch.assert_not_called()

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}])
    def test_empty_prompt(self, client, body):
        response = client.post("/open-browser", json=body)

        assert response.status_code == 400
        assert response.json()["output"] == "No prompt provided"

    def test_spawn_failure(self, client, mock_launch):
        mock_launch.side_effect = OSError("exec format error")

        response = client.post("/open-browser", json={"prompt": "open reddit"})

        assert response.status_code == 400
        assert response.json()["output"] == "exec format error"


class TestInfoEndpoints:
    """Test read-only endpoints and static UI."""

    def test_env_info(self, client, host_env):
        response = client.get("/env-info")

        assert response.status_code == 200
        data = response.json()
        assert data["os"] == "linux"
        assert data["username"] == "octocat"
        assert data["projectDir"] == str(host_env.project_dir)
        assert data["browsers"] == ["firefox"]

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["uptime"] >= 0

    def test_unhandled_errors_return_json(self):
        client = TestClient(app, raise_server_exceptions=False)

        with patch("agentrelay.server.get_environment", side_effect=RuntimeError("snapshot failed")):
            response = client.get("/env-info")

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert response.json()["output"] == "snapshot failed"

    def test_static_index(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "AgentRelay" in response.text
