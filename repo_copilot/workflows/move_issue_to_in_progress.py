"""Move the card of the current issue to the "in progress" column."""

from typing import List

from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


class MoveIssueToInProgressUseCase(UseCase):
    """One result per board where the card actually moved.

    Boards where the card already sits in the column produce no result.
    """

    task_id = "MoveIssueToInProgressUseCase"

    async def run(self, execution: Execution) -> List[Result]:
        results: List[Result] = []
        column = execution.project.issue_in_progress_column
        projects = self.projects(execution)

        try:
            for project in execution.project.projects:
                moved = await projects.move_issue_to_column(
                    project,
                    execution.owner,
                    execution.repo,
                    execution.issue_number,
                    column,
                )
                if moved:
                    results.append(
                        self.result(
                            success=True,
                            executed=True,
                            steps=[f"Moved issue to `{column}` in [{project.title}]({project.public_url})."],
                        )
                    )
        except Exception as e:
            logger.error(f"Failed to move #{execution.issue_number} to '{column}': {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=[f"Tried to move the issue to `{column}`, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        return results
