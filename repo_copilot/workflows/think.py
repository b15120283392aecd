"""Answer a free-form question about the repository with the plan agent."""

from typing import List, Optional

from repo_copilot.integrations.prompts import PromptManager, project_context
from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


class ThinkUseCase(UseCase):
    """Deep analysis of a question.

    When the run targets an issue the answer is also posted there as a
    comment.
    """

    task_id = "ThinkUseCase"

    def __init__(self, *args, prompts: Optional[PromptManager] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._prompts = prompts

    async def run(self, execution: Execution) -> List[Result]:
        question = execution.question.strip()
        if not question:
            return [
                self.result(
                    success=False,
                    executed=False,
                    steps=["No question was provided."],
                )
            ]

        try:
            issue_description = ""
            if execution.issue.number > 0:
                description = await self.issues(execution).get_description(
                    execution.owner, execution.repo, execution.issue.number
                )
                if description:
                    issue_description = f"Context from issue #{execution.issue.number}:\n{description}"

            prompts = self._prompts or PromptManager(execution.cwd)
            prompt = prompts.render(
                "think",
                project_context=project_context(execution.ai.ignore_files),
                repository=execution.full_repo,
                branch=execution.branch or "the current branch",
                question=question,
                issue_description=issue_description,
            )
            message = await self.ai(execution).ask(prompt)
            answer = message.text or "(No text response)"

            if execution.issue.number > 0:
                await self.issues(execution).add_comment(
                    execution.owner,
                    execution.repo,
                    execution.issue.number,
                    f"🤔 **{question}**\n\n{answer}",
                )
        except Exception as e:
            logger.error(f"Failed to think about the question: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to analyze the question, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        return [self.result(success=True, executed=True, steps=[answer])]
