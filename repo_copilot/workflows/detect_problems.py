"""
Potential problem detection (bugbot).

The plan agent reviews a branch against its base and the findings are posted
on the issue and, when there is one, on the branch's open pull request.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from repo_copilot.integrations.ai import AIIntegrationError
from repo_copilot.integrations.prompts import PromptManager, project_context
from repo_copilot.models import Execution, Result
from repo_copilot.utils.logger import get_logger
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)

SEVERITY_EMOJI = {"high": "🔴", "medium": "🟠", "low": "🟡"}


class Finding(BaseModel):
    """Potential problem reported by the AI."""

    title: str
    severity: str = "medium"
    file: str = ""
    description: str = ""


def parse_findings(reply: Dict[str, Any]) -> List[Finding]:
    """Validate the ``findings`` list of an AI reply.

    Raises:
        AIIntegrationError: If the reply does not hold a findings list
    """
    findings = reply.get("findings")
    if not isinstance(findings, list):
        raise AIIntegrationError("AI reply has no 'findings' list")
    try:
        return [Finding.model_validate(finding) for finding in findings]
    except ValidationError as e:
        raise AIIntegrationError(f"Invalid finding in AI reply: {e}") from e


def format_findings(findings: List[Finding], branch: str) -> str:
    """Markdown comment body for the findings."""
    if not findings:
        return f"✅ **No potential problems detected** on `{branch}`."

    lines = [f"🐛 **Potential problems detected** on `{branch}` ({len(findings)})", ""]
    for finding in findings:
        emoji = SEVERITY_EMOJI.get(finding.severity.lower(), "⚪")
        location = f" (`{finding.file}`)" if finding.file else ""
        lines.append(f"- {emoji} **{finding.title}**{location}")
        if finding.description:
            lines.append(f"  {finding.description}")
    return "\n".join(lines)


class DetectPotentialProblemsUseCase(UseCase):
    task_id = "DetectPotentialProblemsUseCase"

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
                    steps=["A valid issue number is required to detect potential problems."],
                )
            ]

        branch = execution.branch or "main"
        issues = self.issues(execution)
        try:
            title = await issues.get_title(execution.owner, execution.repo, number) or ""
            pull_request = await issues.find_open_pull_request(execution.owner, execution.repo, branch)
            base_branch = pull_request.base if pull_request and pull_request.base else "the default branch"

            prompts = self._prompts or PromptManager(execution.cwd)
            prompt = prompts.render(
                "detect_problems",
                project_context=project_context(execution.ai.ignore_files),
                repository=execution.full_repo,
                branch=branch,
                base_branch=base_branch,
                issue_number=str(number),
                issue_title=title,
            )
            findings = parse_findings(await self.ai(execution).ask_json(prompt))
            body = format_findings(findings, branch)

            await issues.add_comment(execution.owner, execution.repo, number, body)
            steps = [f"Reported {len(findings)} potential problem(s) on issue #{number}."]
            if pull_request is not None:
                await issues.add_comment(execution.owner, execution.repo, pull_request.number, body)
                steps.append(f"Reported {len(findings)} potential problem(s) on pull request #{pull_request.number}.")
        except Exception as e:
            logger.error(f"Failed to detect potential problems on '{branch}': {e}")
            return [
                self.result(
                    success=False,
                    executed=True,
                    steps=["Tried to detect potential problems, but there was a problem."],
                    errors=[str(e)],
                )
            ]

        steps.extend(f"{finding.severity}: {finding.title}" for finding in findings)
        return [self.result(success=True, executed=True, steps=steps)]
