"""Shared plumbing for use cases."""

from abc import ABC, abstractmethod
from typing import List, Optional

from repo_copilot.integrations.ai import OpenCodeIntegration
from repo_copilot.integrations.github import GitHubClient
from repo_copilot.integrations.issues import IssueRepository
from repo_copilot.integrations.projects import ProjectRepository
from repo_copilot.models import Execution, Result
from repo_copilot.utils.emoji import get_task_emoji
from repo_copilot.utils.logger import get_logger

logger = get_logger(__name__)


def github_client(execution: Execution) -> GitHubClient:
    """Client authenticated with the run's token."""
    return GitHubClient(
        token=execution.tokens.token,
        api_url=execution.github.api_url,
        timeout=execution.github.timeout,
    )


class UseCase(ABC):
    """One step of a run. ``invoke`` never raises for expected API failures.

    Collaborators can be injected; otherwise they are built from the
    execution on first use.
    """

    task_id: str = "UseCase"

    def __init__(
        self,
        issues: Optional[IssueRepository] = None,
        projects: Optional[ProjectRepository] = None,
        ai: Optional[OpenCodeIntegration] = None,
    ):
        self._issues = issues
        self._projects = projects
        self._ai = ai

    def issues(self, execution: Execution) -> IssueRepository:
        if self._issues is None:
            self._issues = IssueRepository(github_client(execution))
        return self._issues

    def projects(self, execution: Execution) -> ProjectRepository:
        if self._projects is None:
            self._projects = ProjectRepository(github_client(execution))
        return self._projects

    def ai(self, execution: Execution) -> OpenCodeIntegration:
        if self._ai is None:
            self._ai = OpenCodeIntegration(execution.ai)
        return self._ai

    async def invoke(self, execution: Execution) -> List[Result]:
        """Run the use case and return its results."""
        logger.info(f"{get_task_emoji(self.task_id)} Executing {self.task_id}.")
        return await self.run(execution)

    @abstractmethod
    async def run(self, execution: Execution) -> List[Result]:
        ...

    def result(
        self,
        success: bool,
        executed: bool,
        steps: Optional[List[str]] = None,
        errors: Optional[List[str]] = None,
    ) -> Result:
        return Result(
            id=self.task_id,
            success=success,
            executed=executed,
            steps=steps or [],
            errors=errors or [],
        )

    def skipped(self) -> Result:
        """Nothing to do."""
        return self.result(success=True, executed=False)
