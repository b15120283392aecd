"""Set the organization issue type that matches the issue's labels."""

from typing import List

from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


class SetIssueTypeUseCase(UseCase):
    task_id = "SetIssueTypeUseCase"

    async def run(self, execution: Execution) -> List[Result]:
        number = execution.issue_number
        if number <= 0:
            return [self.skipped()]

        try:
            issue_type = await self.issues(execution).set_issue_type(
                execution.owner,
                execution.repo,
                number,
                execution.labels,
                execution.issue_types,
            )
        except Exception as e:
            logger.error(f"Failed to set issue type of #{number}: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to set the issue type, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        if issue_type is None:
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to set the issue type, but it could not be created."],
                )
            ]
        return [self.result(success=True, executed=True, steps=[f"Issue type set to `{issue_type}`."])]
