"""Click CLI interface for the copilot tool."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Callable, List, NoReturn, Optional, Sequence

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from repo_copilot import __version__
from repo_copilot.config import ConfigError, config_manager, get_config, parse_scalar, resolve_token
from repo_copilot.core import build_execution, resolve_ai_config, run_local_action
from repo_copilot.integrations.ai import AIIntegrationError, OpenCodeIntegration
from repo_copilot.integrations.github import GitHubAPIError, detect_repository
from repo_copilot.integrations.prompts import PromptError, PromptManager, project_context
from repo_copilot.models import Execution, GitHubRepository, SingleAction
from repo_copilot.utils import status
from repo_copilot.utils.logger import enable_verbose_logging, get_logger
from repo_copilot.utils.setup_files import ENV_TOKEN_KEY, get_setup_token, has_valid_setup_token, setup_env_file_exists
from repo_copilot.utils.shell import get_current_branch, is_inside_git_repo

logger = get_logger(__name__)
console = Console()


def clean_arg(value: Any) -> str:
    """Strip the leading '=' left by ``--opt =value`` style arguments."""
    if value is None:
        return ""
    text = str(value)
    return text[1:] if text.startswith("=") else text


def join_args(parts: Sequence[Any]) -> str:
    return " ".join(clean_arg(part) for part in parts if part is not None).strip()


def parse_number(value: Optional[str]) -> Optional[int]:
    """Positive integer from a CLI value, None when missing or invalid."""
    text = clean_arg(value).strip().lstrip("#")
    if not text.isdigit() or int(text) <= 0:
        return None
    return int(text)


def fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def require_repository(cwd: Path) -> GitHubRepository:
    """Repository from the origin remote; exits when there is none."""
    repository = detect_repository(cwd)
    if repository is None:
        fail("Could not detect a GitHub repository from the 'origin' remote (git config --get remote.origin.url).")
    return repository


def require_token(token: Optional[str]) -> str:
    resolved = resolve_token(clean_arg(token) or None)
    if not resolved:
        fail(f"No GitHub token found. Set {ENV_TOKEN_KEY} (environment or .env) or pass --token.")
    return resolved


def default_branch(cwd: Path) -> str:
    return (get_current_branch(cwd) or "").strip() or "main"


def run_execution(execution: Execution) -> None:
    """Run the action and exit non-zero when anything failed."""
    status.reset()
    try:
        asyncio.run(run_local_action(execution))
    except (ConfigError, GitHubAPIError, AIIntegrationError, PromptError) as e:
        fail(str(e))

    if status.has_failed():
        sys.exit(1)


def common_options(func: Callable) -> Callable:
    """Options shared by every command that talks to GitHub."""
    func = click.option("-t", "--token", default=None, help=f"Personal access token (defaults to {ENV_TOKEN_KEY})")(func)
    func = click.option("-d", "--debug", is_flag=True, help="Debug mode")(func)
    return func


def ai_options(func: Callable) -> Callable:
    """OpenCode options; unset values fall back to OPENCODE_* variables and the config."""
    func = click.option("--opencode-model", default=None, help="OpenCode model (provider/model)")(func)
    func = click.option("--opencode-server-url", default=None, help="OpenCode server URL (e.g. http://127.0.0.1:4096)")(func)
    return func


def load_ai_config(
    server_url: Optional[str],
    model: Optional[str],
    ignore_files: Optional[str] = None,
    include_reasoning: Optional[bool] = None,
):
    try:
        return resolve_ai_config(
            get_config().ai,
            server_url=clean_arg(server_url) or None,
            model=clean_arg(model) or None,
            ignore_files=clean_arg(ignore_files) or None,
            include_reasoning=include_reasoning,
        )
    except ConfigError as e:
        fail(str(e))
    except (ValidationError, ValueError) as e:
        fail(f"Invalid AI settings: {e}")


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, version: bool, verbose: bool) -> None:
    """Copilot - GitHub repository automation bot.

    Keeps issues, pull requests and project boards in shape and drives an
    OpenCode AI agent to analyze and change the repository.
    """
    if version:
        click.echo(f"copilot version {__version__}")
        sys.exit(0)

    if verbose:
        enable_verbose_logging()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option("-q", "--question", multiple=True, help="Question or prompt for analysis")
@click.argument("words", nargs=-1)
@click.option("-i", "--issue", default=None, help="Issue to use as context and to comment on")
@click.option("-b", "--branch", default=None, help="Branch name (defaults to the current branch)")
@click.option("--ai-ignore-files", default=None, help="Comma separated globs the agent must ignore")
@click.option("--include-reasoning/--no-include-reasoning", default=None, help="Include model reasoning")
@ai_options
@common_options
def think(
    question: Sequence[str],
    words: Sequence[str],
    issue: Optional[str],
    branch: Optional[str],
    ai_ignore_files: Optional[str],
    include_reasoning: Optional[bool],
    opencode_server_url: Optional[str],
    opencode_model: Optional[str],
    debug: bool,
    token: Optional[str],
) -> None:
    """Deep code analysis of a question (OpenCode plan agent)."""
    if debug:
        enable_verbose_logging()

    text = join_args(list(question) + list(words))
    if not text:
        console.print("❌ Please provide a question or prompt using -q or --question")
        sys.exit(1)

    cwd = Path.cwd()
    repository = require_repository(cwd)
    branch_name = clean_arg(branch) or default_branch(cwd)
    issue_number = parse_number(issue) if issue else None
    if issue and issue_number is None:
        fail(f"Invalid issue number: {clean_arg(issue)}. Must be a positive number.")

    ai = load_ai_config(opencode_server_url, opencode_model, ai_ignore_files, include_reasoning)
    resolved_token = require_token(token) if issue_number else resolve_token(clean_arg(token) or None)
    preview = f"{text[:100]}..." if len(text) > 100 else text

    execution = build_execution(
        owner=repository.owner,
        repo=repository.name,
        token=resolved_token,
        single_action=SingleAction.THINK,
        issue_number=issue_number or -1,
        question=text,
        branch=branch_name,
        ai=ai,
        cwd=cwd,
        welcome_title="🤔 AI Reasoning Analysis",
        welcome_messages=[
            f"Starting deep code analysis for {repository.full_name}/{branch_name}...",
            f"Question: {preview}",
        ],
    )
    run_execution(execution)


@cli.command("do")
@click.option("-p", "--prompt", multiple=True, help="Prompt or question (required)")
@click.argument("words", nargs=-1)
@click.option("--output", type=click.Choice(["text", "json"]), default="text", help="Output format")
@ai_options
@click.option("-d", "--debug", is_flag=True, help="Debug mode")
def do_command(
    prompt: Sequence[str],
    words: Sequence[str],
    output: str,
    opencode_server_url: Optional[str],
    opencode_model: Optional[str],
    debug: bool,
) -> None:
    """AI development assistant (OpenCode build agent; edits files when the server runs in this repo)."""
    if debug:
        enable_verbose_logging()

    text = join_args(list(prompt) + list(words))
    if not text:
        console.print("❌ Please provide a prompt using -p or --prompt")
        sys.exit(1)

    ai = load_ai_config(opencode_server_url, opencode_model)
    cwd = Path.cwd()
    try:
        full_prompt = PromptManager(cwd).render(
            "do",
            project_context=project_context(ai.ignore_files),
            prompt=text,
        )
        message = asyncio.run(OpenCodeIntegration(ai).copilot_message(full_prompt))
    except (AIIntegrationError, PromptError) as e:
        console.print(f"[red]Error:[/red] executing do: {e}")
        logger.debug(f"do failed: {e!r}")
        sys.exit(1)

    if output == "json":
        click.echo(json.dumps({"response": message.text, "sessionId": message.session_id}, indent=2))
        return

    click.echo("\n" + "=" * 80)
    click.echo("🤖 RESPONSE (OpenCode build agent)")
    click.echo("=" * 80)
    click.echo(f"\n{message.text or '(No text response)'}\n")
    click.echo("Changes are applied directly in the workspace when OpenCode runs from the repo (e.g. opencode serve).")


def _issue_action(
    action: SingleAction,
    issue: Optional[str],
    branch: Optional[str],
    token: Optional[str],
    opencode_server_url: Optional[str],
    opencode_model: Optional[str],
    welcome_title: str,
    welcome_message: Callable[[int, str, GitHubRepository], List[str]],
) -> None:
    number = parse_number(issue)
    if number is None:
        if not clean_arg(issue):
            fail("Please provide an issue number using -i or --issue")
        fail(f"Invalid issue number: {clean_arg(issue)}. Must be a positive number.")

    cwd = Path.cwd()
    repository = require_repository(cwd)
    branch_name = clean_arg(branch) or default_branch(cwd)
    ai = load_ai_config(opencode_server_url, opencode_model)

    execution = build_execution(
        owner=repository.owner,
        repo=repository.name,
        token=require_token(token),
        single_action=action,
        issue_number=number,
        branch=branch_name,
        ai=ai,
        cwd=cwd,
        welcome_title=welcome_title,
        welcome_messages=welcome_message(number, branch_name, repository),
    )
    run_execution(execution)


@cli.command("check-progress")
@click.option("-i", "--issue", default=None, help="Issue number to check progress for (required)")
@click.option("-b", "--branch", default=None, help="Branch name (defaults to the current branch)")
@ai_options
@common_options
def check_progress(
    issue: Optional[str],
    branch: Optional[str],
    opencode_server_url: Optional[str],
    opencode_model: Optional[str],
    debug: bool,
    token: Optional[str],
) -> None:
    """Check progress of an issue based on code changes."""
    if debug:
        enable_verbose_logging()
    _issue_action(
        SingleAction.CHECK_PROGRESS,
        issue,
        branch,
        token,
        opencode_server_url,
        opencode_model,
        "📊 Progress Check",
        lambda number, _, repository: [f"Checking progress for issue #{number} in {repository.full_name}..."],
    )


@cli.command("recommend-steps")
@click.option("-i", "--issue", default=None, help="Issue number (required)")
@ai_options
@common_options
def recommend_steps(
    issue: Optional[str],
    opencode_server_url: Optional[str],
    opencode_model: Optional[str],
    debug: bool,
    token: Optional[str],
) -> None:
    """Recommend steps to implement an issue (OpenCode plan agent)."""
    if debug:
        enable_verbose_logging()
    _issue_action(
        SingleAction.RECOMMEND_STEPS,
        issue,
        None,
        token,
        opencode_server_url,
        opencode_model,
        "📋 Recommend steps",
        lambda number, _, repository: [f"Recommending steps for issue #{number} in {repository.full_name}..."],
    )


@cli.command("detect-potential-problems")
@click.option("-i", "--issue", default=None, help="Issue number (required)")
@click.option("-b", "--branch", default=None, help="Branch name (defaults to the current git branch)")
@ai_options
@common_options
def detect_potential_problems(
    issue: Optional[str],
    branch: Optional[str],
    opencode_server_url: Optional[str],
    opencode_model: Optional[str],
    debug: bool,
    token: Optional[str],
) -> None:
    """Detect potential problems in the branch (bugbot) and report them on the issue and PR."""
    if debug:
        enable_verbose_logging()
    _issue_action(
        SingleAction.DETECT_POTENTIAL_PROBLEMS,
        issue,
        branch,
        token,
        opencode_server_url,
        opencode_model,
        "🐛 Detect potential problems (bugbot)",
        lambda number, branch_name, repository: [
            f"Detecting potential problems for issue #{number} on branch {branch_name} in {repository.full_name}..."
        ],
    )


@cli.command()
@common_options
def setup(debug: bool, token: Optional[str]) -> None:
    """Initial setup: copy templates, create labels and issue types, verify access."""
    if debug:
        enable_verbose_logging()

    cwd = Path.cwd()
    console.print("🔍 Checking we are inside a git repository...")
    if not is_inside_git_repo(cwd):
        fail('Not a git repository. Run "copilot setup" from the root of a git repo.')
    console.print("✅ Git repository detected.")

    console.print("🔗 Resolving repository (owner/repo)...")
    repository = require_repository(cwd)
    console.print(f"📦 Repository: {repository.full_name}")

    explicit = clean_arg(token)
    if not explicit and not has_valid_setup_token(cwd):
        console.print(f"[red]Error:[/red] 🛑 Setup requires {ENV_TOKEN_KEY} with a valid token.")
        console.print("   You can:")
        console.print(f"   • Add it to your environment: export {ENV_TOKEN_KEY}=your_github_token")
        if setup_env_file_exists(cwd):
            console.print(f"   • Or add {ENV_TOKEN_KEY}=your_github_token to your existing .env file")
        else:
            console.print(f"   • Or create a .env file in this repo with: {ENV_TOKEN_KEY}=your_github_token")
        sys.exit(1)

    console.print("⚙️  Running initial setup (labels, issue types, access)...")
    execution = build_execution(
        owner=repository.owner,
        repo=repository.name,
        token=explicit or get_setup_token(cwd),
        single_action=SingleAction.INITIAL_SETUP,
        cwd=cwd,
        welcome_title="⚙️  Initial Setup",
        welcome_messages=[
            f"Running initial setup for {repository.full_name}...",
            "This will create labels, issue types, and verify access to GitHub.",
        ],
    )
    run_execution(execution)


@cli.command("issue-sync")
@click.option("-i", "--issue", required=True, help="Issue number")
@common_options
def issue_sync(issue: str, debug: bool, token: Optional[str]) -> None:
    """Sync issue type, title, board priority and column for one issue."""
    if debug:
        enable_verbose_logging()

    number = parse_number(issue)
    if number is None:
        fail(f"Invalid issue number: {clean_arg(issue)}. Must be a positive number.")

    cwd = Path.cwd()
    repository = require_repository(cwd)
    execution = build_execution(
        owner=repository.owner,
        repo=repository.name,
        token=require_token(token),
        single_action=SingleAction.ISSUE_SYNC,
        issue_number=number,
        cwd=cwd,
    )
    run_execution(execution)


@cli.command("pr-sync")
@click.option("-p", "--pull-request", required=True, help="Pull request number")
@common_options
def pr_sync(pull_request: str, debug: bool, token: Optional[str]) -> None:
    """Sync title and board priority for one pull request."""
    if debug:
        enable_verbose_logging()

    number = parse_number(pull_request)
    if number is None:
        fail(f"Invalid pull request number: {clean_arg(pull_request)}. Must be a positive number.")

    cwd = Path.cwd()
    repository = require_repository(cwd)
    execution = build_execution(
        owner=repository.owner,
        repo=repository.name,
        token=require_token(token),
        single_action=SingleAction.PULL_REQUEST_SYNC,
        pull_request_number=number,
        cwd=cwd,
    )
    run_execution(execution)


@cli.command()
def init() -> None:
    """Initialize copilot configuration for the current project."""
    try:
        user_config_path = Path.home() / ".copilot" / "config.yaml"
        if not user_config_path.exists():
            config_manager.create_default_config(user_level=True)
            console.print(f"[green]✓[/green] User configuration created: {user_config_path}")

        project_config_path = config_manager.create_default_config(user_level=False)
        console.print(f"[green]✓[/green] Project configuration initialized: {project_config_path}")

        console.print("\n[bold]Next steps:[/bold]")
        console.print("1. Edit the project configuration file (project board URLs, label names)")
        console.print(f"2. Provide a token: [cyan]export {ENV_TOKEN_KEY}=...[/cyan] or a .env file")
        console.print("3. Start OpenCode: [cyan]opencode serve[/cyan]")
        console.print("4. Run [cyan]copilot setup[/cyan] to create labels and issue types")

    except ConfigError as e:
        fail(str(e))


@cli.group()
def config() -> None:
    """Configuration management."""
    pass


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Get configuration value by key.

    KEY: Dot-separated configuration key (e.g., 'ai.model', 'projects.urls')
    """
    try:
        value = config_manager.get_config_value(key)
        console.print(f"{key}: {value}")
    except ConfigError as e:
        fail(str(e))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--project", "-p", is_flag=True, help="Set in project config instead of user config")
def config_set(key: str, value: str, project: bool) -> None:
    """Set configuration value.

    KEY: Dot-separated configuration key (e.g., 'ai.model', 'branches.management_always')
    VALUE: Value to set
    """
    try:
        parsed_value = parse_scalar(value)
        config_manager.set_config_value(key, parsed_value, user_level=not project)
        config_type = "project" if project else "user"
        console.print(f"[green]✓[/green] {config_type.title()} config updated: {key} = {parsed_value}")
    except ConfigError as e:
        fail(str(e))


@config.command("list")
def config_list() -> None:
    """List all configuration files and their status."""
    config_files = config_manager.list_config_files()

    table = Table(title="Configuration Files")
    table.add_column("Type", style="cyan")
    table.add_column("Path")
    table.add_column("Status", style="green")

    for config_type, path in config_files.items():
        if path and path.exists():
            table.add_row(config_type.title(), str(path), "✓ Exists")
        else:
            table.add_row(config_type.title(), "N/A" if path is None else str(path), "✗ Not found")

    console.print(table)


@config.command("show")
@click.option("--format", "-f", "output_format", type=click.Choice(["table", "yaml", "json"]), default="table", help="Output format (default: table)")
@click.option("--section", "-s", help="Show only specific section (e.g., 'github', 'ai', 'labels')")
def config_show(output_format: str, section: Optional[str]) -> None:
    """Show current configuration values (the token is never shown)."""
    try:
        config_dict = config_manager.get_config().model_dump(mode="json", exclude={"github": {"token"}})
    except ConfigError as e:
        fail(str(e))

    if section:
        if section not in config_dict:
            console.print(f"[red]Error:[/red] Section '{section}' not found in configuration")
            console.print(f"[dim]Available sections: {', '.join(config_dict.keys())}[/dim]")
            sys.exit(1)
        config_dict = {section: config_dict[section]}

    if output_format == "yaml":
        click.echo(yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=True, allow_unicode=True))
        return
    if output_format == "json":
        click.echo(json.dumps(config_dict, indent=2, sort_keys=True, ensure_ascii=False))
        return

    def add_config_rows(table: Table, data: dict, prefix: str = "") -> None:
        """Recursively add configuration rows to table."""
        for key, value in data.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                table.add_row(f"[bold cyan]{full_key}[/bold cyan]", "", "")
                add_config_rows(table, value, full_key)
            elif isinstance(value, list):
                table.add_row(full_key, f"[{len(value)} items]" if value else "[empty list]", str(value))
            elif value is None:
                table.add_row(full_key, type(value).__name__, "[dim]None[/dim]")
            elif isinstance(value, bool):
                table.add_row(full_key, type(value).__name__, f"[{'green' if value else 'red'}]{value}[/]")
            else:
                table.add_row(full_key, type(value).__name__, str(value) or "[dim](empty)[/dim]")

    title = "Current Configuration"
    if section:
        title += f" - {section.title()} Section"

    table = Table(title=title)
    table.add_column("Setting", style="cyan", min_width=20)
    table.add_column("Type", style="dim", width=10)
    table.add_column("Value", min_width=30)
    add_config_rows(table, config_dict)
    console.print(table)

    console.print("\n[bold]Configuration Sources:[/bold]")
    for config_type, path in config_manager.list_config_files().items():
        if path and path.exists():
            console.print(f"  [green]✓[/green] {config_type}: {path}")
        else:
            console.print(f"  [dim]✗ {config_type}: Not found[/dim]")


def main() -> None:
    """Entry point for the copilot console script."""
    cli()


if __name__ == "__main__":
    main()
