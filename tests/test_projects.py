"""Tests for project board operations."""

import httpx
import pytest

from repo_copilot.integrations.github import GitHubNotFoundError
from repo_copilot.integrations.projects import ColumnNotFoundError, ProjectRepository


def status_field(*names):
    return {"node": {"field": {"id": "F_STATUS", "options": [{"id": f"O_{n}", "name": n} for n in names]}}}


def content(items):
    return {"repository": {"issueOrPullRequest": {"id": "I_1", "projectItems": {"nodes": items}}}}


class BoardAPI:
    """GraphQL responder keyed on the operation in the query text."""

    def __init__(self, transport, field, items):
        self.transport = transport
        self.field = field
        self.items = items
        self.mutations = []
        transport.routes[("POST", "/graphql")] = self

    def __call__(self, request):
        body = self.transport.body(request)
        query = body["query"]
        if "field(name:" in query:
            data = self.field
        elif "issueOrPullRequest" in query:
            data = content(self.items)
        elif "addProjectV2ItemById" in query:
            self.mutations.append(("add", body["variables"]))
            data = {"addProjectV2ItemById": {"item": {"id": "ITEM_NEW"}}}
        else:
            self.mutations.append(("update", body["variables"]))
            data = {"updateProjectV2ItemFieldValue": {"projectV2Item": {"id": body["variables"]["itemId"]}}}
        return httpx.Response(200, json={"data": data})


@pytest.fixture
def projects(github_client):
    return ProjectRepository(github_client)


class TestProjectDetail:
    @pytest.mark.asyncio
    async def test_get_user_from_token(self, projects, transport):
        transport.add("GET", "/user", payload={"login": "octocat"})
        assert await projects.get_user_from_token() == "octocat"

    @pytest.mark.asyncio
    async def test_get_project_detail(self, projects, transport):
        transport.add(
            "POST",
            "/graphql",
            payload={"data": {"organization": {"projectV2": {"id": "PVT_1", "title": "Board", "url": "", "number": 1}}}},
        )

        project = await projects.get_project_detail("https://github.com/orgs/acme/projects/1")

        assert project.id == "PVT_1"
        assert project.public_url == "https://github.com/orgs/acme/projects/1"
        query = transport.body(transport.requests[0])["query"]
        assert "organization(login: $login)" in query

    @pytest.mark.asyncio
    async def test_missing_project(self, projects, transport):
        transport.add("POST", "/graphql", payload={"data": {"user": {"projectV2": None}}})

        with pytest.raises(GitHubNotFoundError):
            await projects.get_project_detail("https://github.com/users/jane/projects/2")


class TestMoveIssueToColumn:
    """Test moving cards between Status columns."""

    @pytest.mark.asyncio
    async def test_moves_existing_card(self, projects, transport, board):
        api = BoardAPI(transport, status_field("Todo", "In Progress"), [
            {"id": "ITEM_1", "project": {"id": "PVT_1"}, "fieldValueByName": {"name": "Todo"}},
        ])

        moved = await projects.move_issue_to_column(board, "acme", "widgets", 1, "In Progress")

        assert moved is True
        assert api.mutations == [
            ("update", {"projectId": "PVT_1", "itemId": "ITEM_1", "fieldId": "F_STATUS", "optionId": "O_In Progress"}),
        ]

    @pytest.mark.asyncio
    async def test_already_in_column(self, projects, transport, board):
        api = BoardAPI(transport, status_field("In Progress"), [
            {"id": "ITEM_1", "project": {"id": "PVT_1"}, "fieldValueByName": {"name": "In Progress"}},
        ])

        assert await projects.move_issue_to_column(board, "acme", "widgets", 1, "In Progress") is False
        assert api.mutations == []

    @pytest.mark.asyncio
    async def test_adds_missing_card(self, projects, transport, board):
        api = BoardAPI(transport, status_field("In Progress"), [
            {"id": "ITEM_X", "project": {"id": "PVT_OTHER"}, "fieldValueByName": None},
        ])

        assert await projects.move_issue_to_column(board, "acme", "widgets", 1, "In Progress") is True
        assert [kind for kind, _ in api.mutations] == ["add", "update"]
        assert api.mutations[1][1]["itemId"] == "ITEM_NEW"

    @pytest.mark.asyncio
    async def test_unknown_column(self, projects, transport, board):
        BoardAPI(transport, status_field("Todo"), [])

        with pytest.raises(ColumnNotFoundError, match="In Progress"):
            await projects.move_issue_to_column(board, "acme", "widgets", 1, "In Progress")


class TestSetTaskPriority:
    @pytest.mark.asyncio
    async def test_sets_priority(self, projects, transport, board):
        field = {"node": {"field": {"id": "F_PRIO", "options": [{"id": "O_P0", "name": "P0"}]}}}
        api = BoardAPI(transport, field, [
            {"id": "ITEM_1", "project": {"id": "PVT_1"}, "fieldValueByName": None},
        ])

        assert await projects.set_task_priority(board, "acme", "widgets", 1, "P0") is True
        assert api.mutations[0][1]["optionId"] == "O_P0"

    @pytest.mark.asyncio
    async def test_board_without_priority_field(self, projects, transport, board):
        api = BoardAPI(transport, {"node": {"field": None}}, [])

        assert await projects.set_task_priority(board, "acme", "widgets", 1, "P0") is False
        assert api.mutations == []

    @pytest.mark.asyncio
    async def test_unknown_priority_option(self, projects, transport, board):
        BoardAPI(transport, {"node": {"field": {"id": "F_PRIO", "options": [{"id": "O_P1", "name": "P1"}]}}}, [])

        assert await projects.set_task_priority(board, "acme", "widgets", 1, "P0") is False
