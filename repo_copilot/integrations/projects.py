"""GitHub Projects (ProjectsV2) board operations."""

from typing import Any, Dict, Optional, Tuple

from repo_copilot.integrations.github import GitHubAPIError, GitHubClient, GitHubNotFoundError
from repo_copilot.models import ProjectDetail, ProjectReference
from repo_copilot.utils.logger import get_logger

logger = get_logger(__name__)

STATUS_FIELD = "Status"
PRIORITY_FIELD = "Priority"


class ProjectError(GitHubAPIError):
    """Project board operation failed."""
    pass


class ColumnNotFoundError(ProjectError):
    """Requested column does not exist on the board."""
    pass


PROJECT_QUERY = """
query($login: String!, $number: Int!) {
    %s(login: $login) {
        projectV2(number: $number) {
            id
            title
            url
            number
        }
    }
}
"""

SINGLE_SELECT_FIELD_QUERY = """
query($projectId: ID!, $fieldName: String!) {
    node(id: $projectId) {
        ... on ProjectV2 {
            field(name: $fieldName) {
                ... on ProjectV2SingleSelectField {
                    id
                    options {
                        id
                        name
                    }
                }
            }
        }
    }
}
"""

CONTENT_QUERY = """
query($owner: String!, $repo: String!, $number: Int!, $fieldName: String!) {
    repository(owner: $owner, name: $repo) {
        issueOrPullRequest(number: $number) {
            ... on Issue {
                id
                projectItems(first: 100) {
                    nodes {
                        id
                        project { id }
                        fieldValueByName(name: $fieldName) {
                            ... on ProjectV2ItemFieldSingleSelectValue { name }
                        }
                    }
                }
            }
            ... on PullRequest {
                id
                projectItems(first: 100) {
                    nodes {
                        id
                        project { id }
                        fieldValueByName(name: $fieldName) {
                            ... on ProjectV2ItemFieldSingleSelectValue { name }
                        }
                    }
                }
            }
        }
    }
}
"""

ADD_ITEM_MUTATION = """
mutation($projectId: ID!, $contentId: ID!) {
    addProjectV2ItemById(input: { projectId: $projectId, contentId: $contentId }) {
        item {
            id
        }
    }
}
"""

UPDATE_FIELD_MUTATION = """
mutation($projectId: ID!, $itemId: ID!, $fieldId: ID!, $optionId: String!) {
    updateProjectV2ItemFieldValue(
        input: {
            projectId: $projectId
            itemId: $itemId
            fieldId: $fieldId
            value: { singleSelectOptionId: $optionId }
        }
    ) {
        projectV2Item {
            id
        }
    }
}
"""


class ProjectRepository:
    """Project board operations for one authenticated client."""

    def __init__(self, client: GitHubClient):
        self.client = client

    async def get_user_from_token(self) -> str:
        """Login of the user that owns the token.

        Raises:
            GitHubAPIError: If the token is rejected
        """
        user = await self.client.get("/user")
        return user["login"]

    async def get_project_detail(self, project_url: str) -> ProjectDetail:
        """Resolve a project board URL.

        Raises:
            ValueError: If the URL is not a project URL
            GitHubNotFoundError: If the board does not exist or is not visible
        """
        reference = ProjectReference.parse(project_url)
        owner_field = "organization" if reference.type == "organization" else "user"
        data = await self.client.graphql(
            PROJECT_QUERY % owner_field, {"login": reference.owner, "number": reference.number}
        )
        node = (data.get(owner_field) or {}).get("projectV2")
        if not node:
            raise GitHubNotFoundError(f"Project not found: {project_url}")
        return ProjectDetail.from_api(node, reference)

    async def _single_select_field(
        self, project: ProjectDetail, field_name: str
    ) -> Optional[Tuple[str, Dict[str, str]]]:
        data = await self.client.graphql(
            SINGLE_SELECT_FIELD_QUERY, {"projectId": project.id, "fieldName": field_name}
        )
        field = (data.get("node") or {}).get("field")
        if not field or not field.get("id"):
            return None
        options = {option["name"]: option["id"] for option in field.get("options") or []}
        return field["id"], options

    async def _content(
        self, owner: str, repo: str, number: int, field_name: str
    ) -> Dict[str, Any]:
        data = await self.client.graphql(
            CONTENT_QUERY,
            {"owner": owner, "repo": repo, "number": number, "fieldName": field_name},
        )
        content = (data.get("repository") or {}).get("issueOrPullRequest")
        if not content or not content.get("id"):
            raise GitHubNotFoundError(f"#{number} not found in {owner}/{repo}")
        return content

    @staticmethod
    def _find_item(content: Dict[str, Any], project: ProjectDetail) -> Optional[Dict[str, Any]]:
        for item in (content.get("projectItems") or {}).get("nodes") or []:
            if (item.get("project") or {}).get("id") == project.id:
                return item
        return None

    async def _add_item(self, project: ProjectDetail, content_id: str) -> str:
        data = await self.client.graphql(
            ADD_ITEM_MUTATION, {"projectId": project.id, "contentId": content_id}
        )
        item = (data.get("addProjectV2ItemById") or {}).get("item") or {}
        if not item.get("id"):
            raise ProjectError(f"Could not add item to project '{project.title}'")
        logger.debug(f"Added item {item['id']} to project '{project.title}'")
        return item["id"]

    async def _set_single_select(
        self,
        project: ProjectDetail,
        owner: str,
        repo: str,
        number: int,
        field_id: str,
        field_name: str,
        option_name: str,
        option_id: str,
    ) -> bool:
        content = await self._content(owner, repo, number, field_name)
        item = self._find_item(content, project)

        if item is None:
            item_id = await self._add_item(project, content["id"])
        else:
            current = (item.get("fieldValueByName") or {}).get("name")
            if current == option_name:
                logger.debug(f"#{number} already has {field_name} '{option_name}' in '{project.title}'")
                return False
            item_id = item["id"]

        await self.client.graphql(
            UPDATE_FIELD_MUTATION,
            {"projectId": project.id, "itemId": item_id, "fieldId": field_id, "optionId": option_id},
        )
        logger.info(f"#{number} {field_name} set to '{option_name}' in '{project.title}'")
        return True

    async def move_issue_to_column(
        self, project: ProjectDetail, owner: str, repo: str, issue_number: int, column_name: str
    ) -> bool:
        """Move the card of an issue or pull request to a Status column.

        The card is added to the board first when missing.

        Returns:
            False when the card already sits in the column

        Raises:
            ColumnNotFoundError: If the board has no such column
        """
        field = await self._single_select_field(project, STATUS_FIELD)
        if field is None:
            raise ColumnNotFoundError(f"Project '{project.title}' has no {STATUS_FIELD} field")
        field_id, options = field

        option_id = options.get(column_name)
        if option_id is None:
            raise ColumnNotFoundError(
                f"Column '{column_name}' not found in '{project.title}'. Available: {list(options)}"
            )

        return await self._set_single_select(
            project, owner, repo, issue_number, field_id, STATUS_FIELD, column_name, option_id
        )

    async def set_task_priority(
        self, project: ProjectDetail, owner: str, repo: str, issue_number: int, priority: str
    ) -> bool:
        """Set the board's Priority field (e.g. ``P0``) for an issue or pull request.

        Returns:
            False when the board has no such priority or it is already set
        """
        field = await self._single_select_field(project, PRIORITY_FIELD)
        if field is None:
            logger.warning(f"Project '{project.title}' has no {PRIORITY_FIELD} field")
            return False
        field_id, options = field

        option_id = options.get(priority)
        if option_id is None:
            logger.warning(f"Priority '{priority}' not found in '{project.title}'. Available: {list(options)}")
            return False

        return await self._set_single_select(
            project, owner, repo, issue_number, field_id, PRIORITY_FIELD, priority, option_id
        )
