"""Issue, label and issue-type operations against the GitHub API."""

import re
from typing import List, Optional, Set, Tuple

from repo_copilot.integrations.github import GitHubAPIError, GitHubClient, GitHubNotFoundError
from repo_copilot.models import (
    BranchesConfig,
    EnsureResult,
    EnsureSummary,
    IssueComment,
    IssueTypeNode,
    IssueTypes,
    LabelSpec,
    Labels,
    Milestone,
    PullRequestContext,
    RepositoryLabel,
)
from repo_copilot.utils.emoji import TITLE_EMOJIS, get_title_emoji
from repo_copilot.utils.logger import get_logger
from repo_copilot.utils.status import set_failed

logger = get_logger(__name__)

PROGRESS_LABEL_PATTERN = re.compile(r"^\d+%$")
PROGRESS_STEP = 5

DEFAULT_MANAGEMENT_EMOJI = BranchesConfig().management_emoji

BRANCH_ISSUE_PATTERN = re.compile(r"(?:^|/)(\d+)(?:[-_]|$)")
CLOSING_KEYWORD_PATTERN = re.compile(r"\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s+#(\d+)", re.IGNORECASE)

_RED = (0xD7, 0x3A, 0x4A)
_YELLOW = (0xFB, 0xCA, 0x04)
_GREEN = (0x0E, 0x8A, 0x16)

ORGANIZATION_ISSUE_TYPES_QUERY = """
query($login: String!) {
    organization(login: $login) {
        id
        issueTypes(first: 100) {
            nodes {
                id
                name
            }
        }
    }
}
"""

ORGANIZATION_ID_QUERY = """
query($login: String!) {
    organization(login: $login) {
        id
    }
}
"""

CREATE_ISSUE_TYPE_MUTATION = """
mutation($ownerId: ID!, $name: String!, $description: String, $color: IssueTypeColor!) {
    createIssueType(input: {
        ownerId: $ownerId
        name: $name
        description: $description
        color: $color
        isEnabled: true
    }) {
        issueType {
            id
        }
    }
}
"""

UPDATE_ISSUE_TYPE_MUTATION = """
mutation($issueId: ID!, $issueTypeId: ID!) {
    updateIssueIssueType(input: { issueId: $issueId, issueTypeId: $issueTypeId }) {
        issue {
            id
        }
    }
}
"""

ISSUE_ID_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
    repository(owner: $owner, name: $repo) {
        issue(number: $number) {
            id
        }
    }
}
"""


def progress_label_color(progress: int) -> str:
    """Hex color on a red to yellow to green gradient for 0..100."""
    progress = max(0, min(100, progress))
    if progress <= 50:
        start, end, ratio = _RED, _YELLOW, progress / 50
    else:
        start, end, ratio = _YELLOW, _GREEN, (progress - 50) / 50
    return "".join(f"{round(a + (b - a) * ratio):02x}" for a, b in zip(start, end))


def title_prefix_pattern(management_emoji: str = "") -> "re.Pattern[str]":
    """Match only prefixes the title formatter writes: ``[#N] {emoji}[glyph] - ``."""
    glyphs = {glyph for glyph in (management_emoji, DEFAULT_MANAGEMENT_EMOJI) if glyph}
    emojis = "|".join(re.escape(emoji) for emoji in TITLE_EMOJIS)
    # Longer glyphs first, ZWJ sequences share leading code points
    glyph_group = "|".join(re.escape(glyph) for glyph in sorted(glyphs, key=len, reverse=True))
    return re.compile(rf"^(?:\[#\d+\]\s*)?(?:{emojis})(?:{glyph_group})?\s+-\s+")


def strip_title_prefix(title: str, management_emoji: str = "") -> str:
    """Remove a previously written emoji prefix (and ``[#N]`` marker) from a title.

    Titles the formatter did not write are left untouched, so a user title
    such as ``#42 - crash`` keeps its first token.
    """
    return title_prefix_pattern(management_emoji).sub("", title.strip(), count=1).strip()


def linked_issue_number(head: str, body: str = "") -> int:
    """Issue a pull request belongs to, from its branch (``feature/12-x``) or a closing keyword."""
    match = BRANCH_ISSUE_PATTERN.search(head)
    if match:
        return int(match.group(1))
    match = CLOSING_KEYWORD_PATTERN.search(body)
    if match:
        return int(match.group(1))
    return -1


class IssueRepository:
    """Issue level operations for one authenticated client."""

    def __init__(self, client: GitHubClient):
        self.client = client

    @staticmethod
    def _issue_path(owner: str, repo: str, issue_number: int) -> str:
        return f"/repos/{owner}/{repo}/issues/{issue_number}"

    async def _get_issue(self, owner: str, repo: str, issue_number: int) -> dict:
        return await self.client.get(self._issue_path(owner, repo, issue_number))

    async def _update_issue(self, owner: str, repo: str, issue_number: int, **fields) -> None:
        await self.client.patch(self._issue_path(owner, repo, issue_number), json=fields)

    # Issue data

    async def get_title(self, owner: str, repo: str, issue_number: int) -> Optional[str]:
        try:
            issue = await self._get_issue(owner, repo, issue_number)
        except GitHubAPIError as e:
            logger.error(f"Failed to get title of #{issue_number}: {e}")
            return None
        return issue.get("title")

    async def get_description(self, owner: str, repo: str, issue_number: int) -> Optional[str]:
        """Issue body, ``""`` when empty, None when unavailable."""
        if issue_number == -1:
            return None
        try:
            issue = await self._get_issue(owner, repo, issue_number)
        except GitHubAPIError as e:
            logger.error(f"Failed to get description of #{issue_number}: {e}")
            return None
        return issue.get("body") or ""

    async def update_description(
        self, owner: str, repo: str, issue_number: int, description: str
    ) -> None:
        """Replace the issue body.

        Raises:
            GitHubAPIError: If the update fails
        """
        try:
            await self._update_issue(owner, repo, issue_number, body=description)
        except GitHubAPIError as e:
            logger.error(f"Failed to update description of #{issue_number}: {e}")
            raise

    async def get_id(self, owner: str, repo: str, issue_number: int) -> str:
        """GraphQL node id of the issue.

        Raises:
            GitHubNotFoundError: If the issue does not exist
        """
        data = await self.client.graphql(
            ISSUE_ID_QUERY, {"owner": owner, "repo": repo, "number": issue_number}
        )
        issue = (data.get("repository") or {}).get("issue")
        if not issue or not issue.get("id"):
            raise GitHubNotFoundError(f"Issue #{issue_number} not found in {owner}/{repo}")
        return issue["id"]

    async def get_milestone(self, owner: str, repo: str, issue_number: int) -> Optional[Milestone]:
        issue = await self._get_issue(owner, repo, issue_number)
        milestone = issue.get("milestone")
        if not milestone:
            return None
        return Milestone.model_validate(milestone)

    async def is_pull_request(self, owner: str, repo: str, issue_number: int) -> bool:
        issue = await self._get_issue(owner, repo, issue_number)
        return "pull_request" in issue

    async def is_issue(self, owner: str, repo: str, issue_number: int) -> bool:
        return not await self.is_pull_request(owner, repo, issue_number)

    async def get_head_branch(self, owner: str, repo: str, issue_number: int) -> Optional[str]:
        """Head branch when the number refers to a pull request."""
        if not await self.is_pull_request(owner, repo, issue_number):
            return None
        pull = await self.client.get(f"/repos/{owner}/{repo}/pulls/{issue_number}")
        return (pull.get("head") or {}).get("ref")

    async def get_pull_request(self, owner: str, repo: str, pull_request_number: int) -> PullRequestContext:
        """Pull request with the issue it is linked to (``-1`` when none)."""
        pull = await self.client.get(f"/repos/{owner}/{repo}/pulls/{pull_request_number}")
        head = (pull.get("head") or {}).get("ref") or ""
        return PullRequestContext(
            number=pull_request_number,
            title=pull.get("title") or "",
            head=head,
            base=(pull.get("base") or {}).get("ref") or "",
            issue_number=linked_issue_number(head, pull.get("body") or ""),
        )

    async def find_open_pull_request(self, owner: str, repo: str, branch: str) -> Optional[PullRequestContext]:
        """Open pull request whose head is ``branch``, if any."""
        pulls = await self.client.get(
            f"/repos/{owner}/{repo}/pulls",
            params={"head": f"{owner}:{branch}", "state": "open", "per_page": 1},
        )
        if not pulls:
            return None
        pull = pulls[0]
        return PullRequestContext(
            number=pull["number"],
            title=pull.get("title") or "",
            head=(pull.get("head") or {}).get("ref") or branch,
            base=(pull.get("base") or {}).get("ref") or "",
        )

    async def close_issue(self, owner: str, repo: str, issue_number: int) -> bool:
        """Close the issue. Returns False when it was already closed."""
        issue = await self._get_issue(owner, repo, issue_number)
        if issue.get("state") != "open":
            return False
        await self._update_issue(owner, repo, issue_number, state="closed")
        logger.info(f"Closed #{issue_number}")
        return True

    async def open_issue(self, owner: str, repo: str, issue_number: int) -> bool:
        """Reopen the issue. Returns False when it was already open."""
        issue = await self._get_issue(owner, repo, issue_number)
        if issue.get("state") != "closed":
            return False
        await self._update_issue(owner, repo, issue_number, state="open")
        logger.info(f"Reopened #{issue_number}")
        return True

    async def get_current_assignees(self, owner: str, repo: str, issue_number: int) -> List[str]:
        try:
            issue = await self._get_issue(owner, repo, issue_number)
        except GitHubAPIError as e:
            logger.error(f"Failed to get assignees of #{issue_number}: {e}")
            return []
        return [assignee["login"] for assignee in issue.get("assignees") or []]

    async def assign_members_to_issue(
        self, owner: str, repo: str, issue_number: int, members: List[str]
    ) -> List[str]:
        """Add assignees and return the resulting assignee logins."""
        if not members:
            return []
        try:
            issue = await self.client.post(
                f"{self._issue_path(owner, repo, issue_number)}/assignees",
                json={"assignees": members},
            )
        except GitHubAPIError as e:
            logger.error(f"Failed to assign {members} to #{issue_number}: {e}")
            return []
        return [assignee["login"] for assignee in (issue or {}).get("assignees") or []]

    # Comments

    async def add_comment(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        await self.client.post(f"{self._issue_path(owner, repo, issue_number)}/comments", json={"body": body})
        logger.debug(f"Commented on #{issue_number}")

    async def update_comment(self, owner: str, repo: str, comment_id: int, body: str) -> None:
        await self.client.patch(f"/repos/{owner}/{repo}/issues/comments/{comment_id}", json={"body": body})

    async def list_issue_comments(self, owner: str, repo: str, issue_number: int) -> List[IssueComment]:
        comments = await self.client.paginate(f"{self._issue_path(owner, repo, issue_number)}/comments")
        return [IssueComment.from_api(comment) for comment in comments]

    # Titles

    async def _write_title(
        self, owner: str, repo: str, number: int, title: str, what: str
    ) -> Optional[str]:
        try:
            await self._update_issue(owner, repo, number, title=title)
        except GitHubAPIError as e:
            set_failed(f"Failed to update {what} title of #{number}: {e}")
            return None
        logger.info(f"Updated {what} title of #{number}: {title}")
        return title

    @staticmethod
    def _title_head(labels: Labels, branch_management_always: bool, branch_management_emoji: str) -> str:
        emoji = get_title_emoji(labels)
        if branch_management_always or labels.contains_branched_label:
            return f"{emoji}{branch_management_emoji}"
        return emoji

    async def update_title_issue_format(
        self,
        owner: str,
        repo: str,
        version: str,
        issue_title: str,
        issue_number: int,
        branch_management_always: bool,
        branch_management_emoji: str,
        labels: Labels,
    ) -> Optional[str]:
        """Rewrite the issue title as ``{emoji}[glyph] - [version - ]title``.

        Returns:
            The new title, or None when nothing was written
        """
        clean = strip_title_prefix(issue_title, branch_management_emoji)
        if version and clean.startswith(f"{version} - "):
            clean = clean[len(f"{version} - "):]

        head = self._title_head(labels, branch_management_always, branch_management_emoji)
        formatted = f"{head} - {version} - {clean}" if version else f"{head} - {clean}"

        if formatted == issue_title:
            logger.debug(f"Title of #{issue_number} already formatted")
            return None
        return await self._write_title(owner, repo, issue_number, formatted, "issue")

    async def update_title_pull_request_format(
        self,
        owner: str,
        repo: str,
        pull_request_title: str,
        issue_title: str,
        issue_number: int,
        pull_request_number: int,
        branch_management_always: bool,
        branch_management_emoji: str,
        labels: Labels,
    ) -> Optional[str]:
        """Rewrite the pull request title as ``[#issue] {emoji}[glyph] - title``.

        Returns:
            The new title, or None when nothing was written
        """
        head = self._title_head(labels, branch_management_always, branch_management_emoji)
        formatted = f"[#{issue_number}] {head} - {strip_title_prefix(issue_title, branch_management_emoji)}"

        if formatted == pull_request_title:
            logger.debug(f"Title of pull request #{pull_request_number} already formatted")
            return None
        return await self._write_title(owner, repo, pull_request_number, formatted, "pull request")

    async def clean_title(self, owner: str, repo: str, title: str, issue_number: int) -> Optional[str]:
        """Collapse runs of whitespace in the title. Writes only when it changes."""
        sanitized = re.sub(r"\s+", " ", title).strip()
        if sanitized == title:
            return None
        return await self._write_title(owner, repo, issue_number, sanitized, "issue")

    # Labels

    async def get_labels(self, owner: str, repo: str, issue_number: int) -> List[str]:
        if issue_number == -1:
            return []
        labels = await self.client.paginate(f"{self._issue_path(owner, repo, issue_number)}/labels")
        return [label["name"] for label in labels]

    async def set_labels(self, owner: str, repo: str, issue_number: int, labels: List[str]) -> None:
        """Replace every label on the issue."""
        await self.client.put(f"{self._issue_path(owner, repo, issue_number)}/labels", json={"labels": labels})

    async def list_labels_for_repo(self, owner: str, repo: str) -> List[RepositoryLabel]:
        labels = await self.client.paginate(f"/repos/{owner}/{repo}/labels")
        return [RepositoryLabel.model_validate(label) for label in labels]

    async def create_label(
        self, owner: str, repo: str, name: str, color: str, description: str
    ) -> None:
        await self.client.post(
            f"/repos/{owner}/{repo}/labels",
            json={"name": name, "color": color, "description": description},
        )

    async def _existing_label_names(self, owner: str, repo: str) -> Set[str]:
        return {label.name.lower() for label in await self.list_labels_for_repo(owner, repo)}

    async def ensure_label(
        self,
        owner: str,
        repo: str,
        name: str,
        color: str,
        description: str,
        existing: Optional[Set[str]] = None,
    ) -> EnsureResult:
        """Create the label unless a label with the same name (any case) exists.

        A 422 on create means another writer created it first and counts as
        existing. Blank names are ignored.

        Args:
            existing: Lowercased repository label names already fetched by the
                caller. Listed from the API when omitted.

        Raises:
            GitHubAPIError: If listing or creating fails for another reason
        """
        name = name.strip()
        if not name:
            return EnsureResult()

        if existing is None:
            existing = await self._existing_label_names(owner, repo)
        if name.lower() in existing:
            return EnsureResult(existed=True)

        try:
            await self.create_label(owner, repo, name, color, description)
        except GitHubAPIError as e:
            if e.status_code == 422:
                logger.debug(f"Label '{name}' already exists: {e}")
                return EnsureResult(existed=True)
            raise

        existing.add(name.lower())
        logger.info(f"Created label '{name}'")
        return EnsureResult(created=True)

    async def _ensure_label_batch(self, owner: str, repo: str, specs: List[LabelSpec]) -> EnsureSummary:
        """Ensure each label against a single listing of the repository labels.

        Raises:
            GitHubAPIError: If the repository labels cannot be listed
        """
        summary = EnsureSummary()
        existing = await self._existing_label_names(owner, repo)
        for spec in specs:
            try:
                result = await self.ensure_label(
                    owner, repo, spec.name, spec.color, spec.description, existing=existing
                )
            except Exception as e:
                logger.error(f"Failed to ensure label '{spec.name}': {e}")
                summary.errors.append(f"Label '{spec.name}': {e}")
                continue
            if result.created:
                summary.created += 1
            elif result.existed:
                summary.existing += 1
        return summary

    async def ensure_labels(self, owner: str, repo: str, labels: Labels) -> EnsureSummary:
        """Ensure every configured label exists, one at a time."""
        return await self._ensure_label_batch(owner, repo, labels.required_labels())

    async def ensure_progress_labels(self, owner: str, repo: str) -> EnsureSummary:
        """Ensure the 0%, 5%, ..., 100% labels exist."""
        specs = [
            LabelSpec(
                name=f"{progress}%",
                color=progress_label_color(progress),
                description=f"Progress: {progress}%",
            )
            for progress in range(0, 101, PROGRESS_STEP)
        ]
        return await self._ensure_label_batch(owner, repo, specs)

    async def set_progress_label(self, owner: str, repo: str, issue_number: int, progress: int) -> None:
        """Replace any percentage label on the issue with ``{progress}%``."""
        current = await self.get_labels(owner, repo, issue_number)
        labels = [label for label in current if not PROGRESS_LABEL_PATTERN.match(label)]
        labels.append(f"{progress}%")
        await self.set_labels(owner, repo, issue_number, labels)
        logger.info(f"Progress of #{issue_number} set to {progress}%")

    # Issue types

    async def _organization_issue_types(self, organization: str) -> Tuple[str, List[IssueTypeNode]]:
        data = await self.client.graphql(ORGANIZATION_ISSUE_TYPES_QUERY, {"login": organization})
        org = data.get("organization")
        if not org:
            raise GitHubNotFoundError(f"Organization '{organization}' not found")
        nodes = (org.get("issueTypes") or {}).get("nodes") or []
        return org["id"], [IssueTypeNode.model_validate(node) for node in nodes]

    async def list_issue_types(self, organization: str) -> List[IssueTypeNode]:
        """Issue types defined on the organization.

        Raises:
            GitHubNotFoundError: If the organization does not exist
        """
        _, nodes = await self._organization_issue_types(organization)
        return nodes

    async def _create_issue_type_for(
        self, organization_id: str, name: str, description: str, color: str
    ) -> str:
        data = await self.client.graphql(
            CREATE_ISSUE_TYPE_MUTATION,
            {"ownerId": organization_id, "name": name, "description": description, "color": color},
        )
        issue_type = (data.get("createIssueType") or {}).get("issueType") or {}
        if not issue_type.get("id"):
            raise GitHubAPIError(f"Issue type '{name}' was not created")
        return issue_type["id"]

    async def create_issue_type(
        self, organization: str, name: str, description: str, color: str
    ) -> str:
        """Create an organization issue type and return its id.

        Raises:
            GitHubNotFoundError: If the organization does not exist
        """
        data = await self.client.graphql(ORGANIZATION_ID_QUERY, {"login": organization})
        org = data.get("organization")
        if not org:
            raise GitHubNotFoundError(f"Organization '{organization}' not found")
        issue_type_id = await self._create_issue_type_for(org["id"], name, description, color)
        logger.info(f"Created issue type '{name}' in {organization}")
        return issue_type_id

    async def ensure_issue_type(
        self, organization: str, name: str, description: str, color: str
    ) -> EnsureResult:
        """Create the issue type unless one with the same name (any case) exists."""
        name = name.strip()
        if not name:
            return EnsureResult()

        existing = await self.list_issue_types(organization)
        if any(node.name.lower() == name.lower() for node in existing):
            return EnsureResult(existed=True)

        try:
            await self.create_issue_type(organization, name, description, color)
        except GitHubAPIError as e:
            if e.status_code == 422 or "already exists" in str(e).lower():
                logger.debug(f"Issue type '{name}' already exists: {e}")
                return EnsureResult(existed=True)
            raise
        return EnsureResult(created=True)

    async def ensure_issue_types(self, organization: str, issue_types: IssueTypes) -> EnsureSummary:
        """Ensure every configured issue type exists, one at a time."""
        summary = EnsureSummary()
        for spec in issue_types.required_types():
            try:
                result = await self.ensure_issue_type(
                    organization, spec.name, spec.description, spec.color.value
                )
            except Exception as e:
                logger.error(f"Failed to ensure issue type '{spec.name}': {e}")
                summary.errors.append(f"Issue type '{spec.name}': {e}")
                continue
            if result.created:
                summary.created += 1
            elif result.existed:
                summary.existing += 1
        return summary

    async def set_issue_type(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        labels: Labels,
        issue_types: IssueTypes,
    ) -> Optional[str]:
        """Set the issue type that matches the labels, creating it when missing.

        Returns:
            Name of the issue type set, or None when it could not be created

        Raises:
            GitHubAPIError: If the issue or organization lookup fails
        """
        issue_id = await self.get_id(owner, repo, issue_number)
        organization_id, nodes = await self._organization_issue_types(owner)
        spec = issue_types.for_labels(labels)

        issue_type_id = next(
            (node.id for node in nodes if node.name.lower() == spec.name.lower()), None
        )
        if issue_type_id is None:
            try:
                issue_type_id = await self._create_issue_type_for(
                    organization_id, spec.name, spec.description, spec.color.value
                )
            except Exception as e:
                logger.error(f"Failed to create issue type '{spec.name}': {e}")
                return None

        await self.client.graphql(
            UPDATE_ISSUE_TYPE_MUTATION, {"issueId": issue_id, "issueTypeId": issue_type_id}
        )
        logger.info(f"Issue type of #{issue_number} set to '{spec.name}'")
        return spec.name
