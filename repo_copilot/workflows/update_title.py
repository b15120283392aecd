"""Keep issue and pull request titles in the emoji prefixed format."""

from typing import List

from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


class UpdateTitleUseCase(UseCase):
    """Format the title of the current issue."""

    task_id = "UpdateTitleUseCase"

    async def run(self, execution: Execution) -> List[Result]:
        issues = self.issues(execution)
        number = execution.issue_number
        try:
            title = execution.issue.title or await issues.get_title(execution.owner, execution.repo, number)
            if not title:
                return [self.skipped()]

            milestone = await issues.get_milestone(execution.owner, execution.repo, number)
            version = milestone.title if milestone else ""

            new_title = await issues.update_title_issue_format(
                execution.owner,
                execution.repo,
                version,
                title,
                number,
                execution.branches.management_always,
                execution.branches.management_emoji,
                execution.labels,
            )
        except Exception as e:
            logger.error(f"Failed to update title of #{number}: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to update the title of the issue, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        if new_title is None:
            return [self.skipped()]
        return [self.result(success=True, executed=True, steps=[f"Title updated to `{new_title}`."])]


class UpdatePullRequestTitleUseCase(UseCase):
    """Format the title of the current pull request after its linked issue."""

    task_id = "UpdatePullRequestTitleUseCase"

    async def run(self, execution: Execution) -> List[Result]:
        pull_request = execution.pull_request
        if pull_request.issue_number <= 0:
            logger.debug(f"Pull request #{pull_request.number} is not linked to an issue")
            return [self.skipped()]

        issues = self.issues(execution)
        try:
            issue_title = await issues.get_title(execution.owner, execution.repo, pull_request.issue_number)
            if not issue_title:
                return [self.skipped()]

            new_title = await issues.update_title_pull_request_format(
                execution.owner,
                execution.repo,
                pull_request.title,
                issue_title,
                pull_request.issue_number,
                pull_request.number,
                execution.branches.management_always,
                execution.branches.management_emoji,
                execution.labels,
            )
        except Exception as e:
            logger.error(f"Failed to update title of pull request #{pull_request.number}: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to update the title of the pull request, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        if new_title is None:
            return [self.skipped()]
        return [self.result(success=True, executed=True, steps=[f"Title updated to `{new_title}`."])]
