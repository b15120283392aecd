"""Recommend implementation steps for an issue and post them as a comment."""

from typing import List, Optional

from repo_copilot.integrations.prompts import PromptManager, project_context
from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


class RecommendStepsUseCase(UseCase):
    task_id = "RecommendStepsUseCase"

    def __init__(self, *args, prompts: Optional[PromptManager] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._prompts = prompts

    async def run(self, execution: Execution) -> List[Result]:
        number = execution.issue_number
        if number <= 0:
            return [
                self.result(
                    success=False,
                    executed=False,
                    steps=["A valid issue number is required to recommend steps."],
                )
            ]

        issues = self.issues(execution)
        try:
            title = await issues.get_title(execution.owner, execution.repo, number) or ""
            description = await issues.get_description(execution.owner, execution.repo, number)
            if description is None:
                return [
                    self.result(
                        success=False,
                        executed=True,
                        steps=[f"Could not read the description of issue #{number}."],
                    )
                ]

            prompts = self._prompts or PromptManager(execution.cwd)
            prompt = prompts.render(
                "recommend_steps",
                project_context=project_context(execution.ai.ignore_files),
                repository=execution.full_repo,
                issue_number=str(number),
                issue_title=title,
                issue_description=description,
            )
            message = await self.ai(execution).ask(prompt)
            recommendation = message.text.strip()
            if not recommendation:
                return [
                    self.result(
                        success=False,
                        executed=True,
                        steps=["The AI did not return any recommendation."],
                    )
                ]

            await issues.add_comment(
                execution.owner,
                execution.repo,
                number,
                f"📋 **Recommended steps**\n\n{recommendation}",
            )
        except Exception as e:
            logger.error(f"Failed to recommend steps for #{number}: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to recommend steps for the issue, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        return [self.result(success=True, executed=True, steps=[recommendation])]
