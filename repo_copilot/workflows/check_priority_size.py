"""Mirror the issue's priority label onto the linked project boards."""

from typing import List, Optional

from repo_copilot.models import Execution, Labels, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


def board_priority(labels: Labels) -> Optional[str]:
    """Board priority (``P0``/``P1``/``P2``) for the priority label on the issue."""
    priority = labels.priority_label_on_issue
    if priority == labels.priority_high:
        return "P0"
    if priority == labels.priority_medium:
        return "P1"
    if priority == labels.priority_low:
        return "P2"
    return None


class CheckPriorityIssueSizeUseCase(UseCase):
    """Set the board Priority field of the current issue."""

    task_id = "CheckPriorityIssueSizeUseCase"

    def target_number(self, execution: Execution) -> int:
        return execution.issue_number

    async def run(self, execution: Execution) -> List[Result]:
        if not execution.labels.priority_label_on_issue_processable or not execution.project.projects:
            return [self.skipped()]

        priority = board_priority(execution.labels)
        if priority is None:
            return [self.skipped()]

        logger.debug(f"Priority: {execution.labels.priority_label_on_issue}")
        logger.debug(f"Board priority: {priority}")

        results: List[Result] = []
        number = self.target_number(execution)
        projects = self.projects(execution)
        try:
            for project in execution.project.projects:
                updated = await projects.set_task_priority(
                    project, execution.owner, execution.repo, number, priority
                )
                if updated:
                    results.append(
                        self.result(
                            success=True,
                            executed=True,
                            steps=[f"Priority set to `{priority}` in [{project.title}]({project.public_url})."],
                        )
                    )
        except Exception as e:
            logger.error(f"Failed to set priority of #{number}: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to check the priority of the issue, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        return results


class CheckPriorityPullRequestSizeUseCase(CheckPriorityIssueSizeUseCase):
    """Set the board Priority field of the current pull request."""

    task_id = "CheckPriorityPullRequestSizeUseCase"

    def target_number(self, execution: Execution) -> int:
        return execution.pull_request.number
