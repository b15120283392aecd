"""Run orchestrator: builds the execution, dispatches use cases and reports results."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Type

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from repo_copilot.config import get_config
from repo_copilot.integrations.github import GitHubAPIError
from repo_copilot.integrations.issues import IssueRepository
from repo_copilot.integrations.projects import ProjectRepository
from repo_copilot.models import (
    AIConfig,
    Config,
    Execution,
    IssueContext,
    ProjectBoards,
    PullRequestContext,
    Result,
    SingleAction,
    Tokens,
)
from repo_copilot.utils.logger import get_logger
from repo_copilot.utils.status import set_failed
from repo_copilot.workflows import (
    CheckPriorityIssueSizeUseCase,
    CheckPriorityPullRequestSizeUseCase,
    CheckProgressUseCase,
    DetectPotentialProblemsUseCase,
    InitialSetupUseCase,
    MoveIssueToInProgressUseCase,
    RecommendStepsUseCase,
    SetIssueTypeUseCase,
    ThinkUseCase,
    UpdatePullRequestTitleUseCase,
    UpdateTitleUseCase,
    UseCase,
    github_client,
)

logger = get_logger(__name__)

console = Console()

SINGLE_ACTION_USE_CASES: Dict[SingleAction, Type[UseCase]] = {
    SingleAction.THINK: ThinkUseCase,
    SingleAction.CHECK_PROGRESS: CheckProgressUseCase,
    SingleAction.RECOMMEND_STEPS: RecommendStepsUseCase,
    SingleAction.DETECT_POTENTIAL_PROBLEMS: DetectPotentialProblemsUseCase,
    SingleAction.INITIAL_SETUP: InitialSetupUseCase,
}


def resolve_ai_config(
    base: AIConfig,
    server_url: Optional[str] = None,
    model: Optional[str] = None,
    ignore_files: Optional[str] = None,
    include_reasoning: Optional[bool] = None,
) -> AIConfig:
    """Apply command line options, then OPENCODE_* / AI_* environment variables, over the config.

    Raises:
        ValueError: If a resulting value is invalid
    """
    data = base.model_dump()

    env_reasoning = os.getenv("AI_INCLUDE_REASONING")
    overrides = {
        "server_url": server_url or os.getenv("OPENCODE_SERVER_URL"),
        "model": model or os.getenv("OPENCODE_MODEL"),
        "ignore_files": ignore_files or os.getenv("AI_IGNORE_FILES"),
        "include_reasoning": (
            include_reasoning
            if include_reasoning is not None
            else (env_reasoning.strip().lower() == "true" if env_reasoning else None)
        ),
    }
    data.update({key: value for key, value in overrides.items() if value is not None})
    return AIConfig.model_validate(data)


def build_execution(
    owner: str,
    repo: str,
    token: Optional[str],
    single_action: SingleAction,
    issue_number: int = -1,
    pull_request_number: int = -1,
    question: str = "",
    branch: str = "",
    ai: Optional[AIConfig] = None,
    cwd: Optional[Path] = None,
    welcome_title: str = "",
    welcome_messages: Optional[List[str]] = None,
    config: Optional[Config] = None,
) -> Execution:
    """Assemble the execution for a run from the configuration and CLI values."""
    config = config or get_config()
    templates_dir = Path(config.setup.templates_dir) if config.setup.templates_dir else None
    return Execution(
        owner=owner,
        repo=repo,
        tokens=Tokens(token=token or ""),
        github=config.github,
        labels=config.labels,
        issue_types=config.issue_types,
        project=ProjectBoards(
            issue_in_progress_column=config.projects.issue_in_progress_column,
            pull_request_in_progress_column=config.projects.pull_request_in_progress_column,
        ),
        issue=IssueContext(number=issue_number),
        pull_request=PullRequestContext(number=pull_request_number),
        ai=ai or config.ai,
        branches=config.branches,
        single_action=single_action,
        question=question,
        branch=branch,
        cwd=cwd or Path.cwd(),
        templates_dir=templates_dir,
        welcome_title=welcome_title,
        welcome_messages=welcome_messages or [],
    )


class CopilotCore:
    """Runs single actions and per-event pipelines."""

    def __init__(
        self,
        issues: Optional[IssueRepository] = None,
        projects: Optional[ProjectRepository] = None,
        project_urls: Optional[Sequence[str]] = None,
    ):
        """Initialize core.

        Args:
            issues: Issue repository (built from the execution when omitted)
            projects: Project repository (built from the execution when omitted)
            project_urls: Linked boards (defaults to ``projects.urls`` from config)
        """
        self._issues = issues
        self._projects = projects
        self._project_urls = project_urls

    def _repositories(self, execution: Execution):
        client = None
        if self._issues is None or self._projects is None:
            client = github_client(execution)
        issues = self._issues or IssueRepository(client)
        projects = self._projects or ProjectRepository(client)
        return issues, projects

    async def prepare_execution(self, execution: Execution) -> Execution:
        """Load project boards, the pull request's linked issue and current labels.

        Boards that cannot be resolved are skipped with a warning.
        """
        issues, projects = self._repositories(execution)
        update = {}

        urls = self._project_urls if self._project_urls is not None else get_config().projects.urls
        boards = []
        for url in urls:
            try:
                boards.append(await projects.get_project_detail(url))
            except (GitHubAPIError, ValueError) as e:
                logger.warning(f"Skipping project board {url}: {e}")
        if boards:
            update["project"] = execution.project.model_copy(update={"projects": boards})

        pull_request = execution.pull_request
        if execution.is_pull_request and not pull_request.head:
            pull_request = await issues.get_pull_request(execution.owner, execution.repo, pull_request.number)
            update["pull_request"] = pull_request

        labels_number = execution.issue.number if execution.issue.number > 0 else pull_request.issue_number
        if labels_number <= 0:
            labels_number = pull_request.number
        if labels_number > 0:
            current = await issues.get_labels(execution.owner, execution.repo, labels_number)
            update["labels"] = execution.labels.with_current(current)

        return execution.model_copy(update=update) if update else execution

    def use_cases_for(self, execution: Execution) -> List[UseCase]:
        """Use cases run for the execution's action, in order."""
        injected = {"issues": self._issues, "projects": self._projects}
        action = execution.single_action

        if action == SingleAction.ISSUE_SYNC:
            use_cases: List[UseCase] = [
                SetIssueTypeUseCase(**injected),
                UpdateTitleUseCase(**injected),
                CheckPriorityIssueSizeUseCase(**injected),
            ]
            if execution.branches.management_always or execution.labels.contains_branched_label:
                use_cases.append(MoveIssueToInProgressUseCase(**injected))
            return use_cases

        if action == SingleAction.PULL_REQUEST_SYNC:
            return [
                UpdatePullRequestTitleUseCase(**injected),
                CheckPriorityPullRequestSizeUseCase(**injected),
            ]

        if action in SINGLE_ACTION_USE_CASES:
            return [SINGLE_ACTION_USE_CASES[action](**injected)]

        raise ValueError(f"Unsupported action: {action}")

    async def run(self, execution: Execution) -> List[Result]:
        """Run every use case for the action and collect their results."""
        results: List[Result] = []
        for use_case in self.use_cases_for(execution):
            results.extend(await use_case.invoke(execution))

        for result in results:
            if not result.success:
                set_failed(f"{result.id} failed: {'; '.join(result.errors) or 'see steps'}")
        return results


def print_welcome(execution: Execution) -> None:
    """Show the welcome panel for the run."""
    if not execution.welcome_title:
        return
    body = "\n".join(execution.welcome_messages) or execution.full_repo
    console.print(Panel(body, title=execution.welcome_title, expand=False))


def print_results(results: List[Result]) -> None:
    """Show one row per result."""
    if not results:
        console.print("[dim]Nothing to do.[/dim]")
        return

    table = Table(title="Results")
    table.add_column("Task", style="cyan")
    table.add_column("Status")
    table.add_column("Steps")
    table.add_column("Errors", style="red")

    for result in results:
        if not result.executed:
            status = "[dim]skipped[/dim]" if result.success else "[yellow]not run[/yellow]"
        elif result.success:
            status = "[green]✓ done[/green]"
        else:
            status = "[red]✗ failed[/red]"
        table.add_row(result.id, status, "\n".join(result.steps), "\n".join(result.errors))

    console.print(table)


async def run_local_action(execution: Execution, core: Optional[CopilotCore] = None) -> List[Result]:
    """Prepare the execution, run its use cases and print the outcome.

    Failed results set the process failure flag.
    """
    core = core or CopilotCore()
    print_welcome(execution)

    if execution.single_action in (SingleAction.ISSUE_SYNC, SingleAction.PULL_REQUEST_SYNC):
        execution = await core.prepare_execution(execution)

    results = await core.run(execution)
    print_results(results)
    return results
