"""Shared test configuration and fixtures."""

import json
from pathlib import Path
from typing import Callable, Dict, List, Tuple
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from click.testing import CliRunner

from repo_copilot.config import ConfigManager
from repo_copilot.integrations.github import GitHubClient
from repo_copilot.models import Execution, ProjectBoards, ProjectDetail
from repo_copilot.utils import status


@pytest.fixture
def temp_home(tmp_path):
    """Create a temporary home directory for tests."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def isolated_config_manager(temp_home, monkeypatch):
    """Create an isolated ConfigManager that doesn't touch real config files."""
    monkeypatch.setattr(Path, "home", lambda: temp_home)

    # No git root, so no project config is picked up
    monkeypatch.setattr("repo_copilot.config.get_git_root", lambda *args, **kwargs: None)

    for key in ("PERSONAL_ACCESS_TOKEN", "OPENCODE_SERVER_URL", "OPENCODE_MODEL", "AI_IGNORE_FILES", "AI_INCLUDE_REASONING"):
        monkeypatch.delenv(key, raising=False)

    manager = ConfigManager()
    manager._user_config_path = temp_home / ".copilot" / "config.yaml"
    manager._project_config_path = None
    manager._config = None

    return manager


@pytest.fixture(autouse=True)
def mock_global_config_manager(isolated_config_manager, monkeypatch):
    """Automatically mock the global config_manager for all tests."""
    import repo_copilot.config

    monkeypatch.setattr(repo_copilot.config, "config_manager", isolated_config_manager)

    import repo_copilot.cli
    monkeypatch.setattr(repo_copilot.cli, "config_manager", isolated_config_manager)

    return isolated_config_manager


@pytest.fixture(autouse=True)
def reset_status():
    """Clear the process failure flag around every test."""
    status.reset()
    yield
    status.reset()


@pytest.fixture
def runner():
    """Click CLI runner."""
    return CliRunner()


@pytest.fixture
def board():
    return ProjectDetail(
        id="PVT_1",
        title="Board",
        type="organization",
        owner="acme",
        url="",
        number=1,
    )


@pytest.fixture
def execution(tmp_path, board):
    """Execution for issue #1 of acme/widgets linked to one board."""
    return Execution(
        owner="acme",
        repo="widgets",
        issue={"number": 1},
        project=ProjectBoards(projects=[board]),
        cwd=tmp_path,
    )


@pytest.fixture
def mock_issues():
    """IssueRepository double with async methods."""
    issues = Mock()
    for name in (
        "get_title",
        "get_description",
        "get_milestone",
        "get_labels",
        "get_pull_request",
        "find_open_pull_request",
        "add_comment",
        "set_progress_label",
        "update_title_issue_format",
        "update_title_pull_request_format",
        "set_issue_type",
        "ensure_labels",
        "ensure_progress_labels",
        "ensure_issue_types",
    ):
        setattr(issues, name, AsyncMock())
    return issues


@pytest.fixture
def mock_projects():
    """ProjectRepository double with async methods."""
    projects = Mock()
    for name in ("get_user_from_token", "get_project_detail", "move_issue_to_column", "set_task_priority"):
        setattr(projects, name, AsyncMock())
    return projects


Route = Tuple[str, str]


class RecordingTransport:
    """httpx.MockTransport wrapper that answers by (method, path) and records requests."""

    def __init__(self, routes: Dict[Route, Callable[[httpx.Request], httpx.Response]] = None):
        self.routes = dict(routes or {})
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        return handler(request)

    def add(self, method: str, path: str, status_code: int = 200, payload=None) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status_code, json=payload)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def github_client(transport):
    """GitHubClient backed by the recording transport."""
    return GitHubClient(token="test-token", transport=transport.transport)
