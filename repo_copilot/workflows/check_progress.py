"""Estimate how far an issue is implemented and label it with a percentage."""

import math
from typing import Any, List, Optional

from repo_copilot.integrations.ai import AIIntegrationError
from repo_copilot.integrations.issues import PROGRESS_STEP
from repo_copilot.integrations.prompts import PromptManager, project_context
from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)


def round_progress(value: Any) -> int:
    """Clamp to 0..100 and round to the nearest progress label step.

    Raises:
        AIIntegrationError: If the value is not a finite number
    """
    try:
        progress = float(value)
    except (TypeError, ValueError):
        raise AIIntegrationError(f"AI returned a non numeric progress: {value!r}")
    if not math.isfinite(progress):
        raise AIIntegrationError(f"AI returned a non finite progress: {value!r}")
    progress = max(0.0, min(100.0, progress))
    return int(PROGRESS_STEP * round(progress / PROGRESS_STEP))


class CheckProgressUseCase(UseCase):
    task_id = "CheckProgressUseCase"

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
                    steps=["A valid issue number is required to check progress."],
                )
            ]

        issues = self.issues(execution)
        try:
            title = await issues.get_title(execution.owner, execution.repo, number) or ""
            description = await issues.get_description(execution.owner, execution.repo, number) or ""

            prompts = self._prompts or PromptManager(execution.cwd)
            prompt = prompts.render(
                "check_progress",
                project_context=project_context(execution.ai.ignore_files),
                repository=execution.full_repo,
                branch=execution.branch or "the current branch",
                issue_number=str(number),
                issue_title=title,
                issue_description=description,
            )
            reply = await self.ai(execution).ask_json(prompt)
            progress = round_progress(reply.get("progress"))
            summary = str(reply.get("summary") or "").strip()

            await issues.set_progress_label(execution.owner, execution.repo, number, progress)

            comment = f"📊 **Progress: {progress}%**"
            if summary:
                comment += f"\n\n{summary}"
            await issues.add_comment(execution.owner, execution.repo, number, comment)
        except Exception as e:
            logger.error(f"Failed to check progress of #{number}: {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to check the progress of the issue, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        steps = [f"Progress of #{number} set to `{progress}%`."]
        if summary:
            steps.append(summary)
        return [self.result(success=True, executed=True, steps=steps)]
