"""Tests for CLI interface."""

import json
from unittest.mock import AsyncMock, Mock

import pytest
import yaml

from repo_copilot import __version__
from repo_copilot.cli import clean_arg, cli, join_args, parse_number
from repo_copilot.integrations.ai import AIIntegrationError, AIMessage
from repo_copilot.integrations.github import GitHubAPIError
from repo_copilot.models import GitHubRepository, SingleAction
from repo_copilot.utils import status

VALID_TOKEN = "ghp_" + "c" * 36


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run commands from an empty checkout of acme/widgets on branch feature/1-login."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "repo_copilot.cli.detect_repository",
        lambda cwd=None: GitHubRepository(owner="acme", name="widgets", remote_url="git@github.com:acme/widgets.git"),
    )
    monkeypatch.setattr("repo_copilot.cli.get_current_branch", lambda cwd=None: "feature/1-login")
    monkeypatch.setattr("repo_copilot.integrations.prompts.get_git_root", lambda cwd=None: None)
    return tmp_path


@pytest.fixture
def local_action(monkeypatch):
    """Capture the execution handed to run_local_action."""
    action = AsyncMock(return_value=[])
    monkeypatch.setattr("repo_copilot.cli.run_local_action", action)
    return action


def executed(local_action):
    return local_action.await_args.args[0]


class TestHelpers:
    @pytest.mark.parametrize("value,expected", [("=5", "5"), ("5", "5"), (None, ""), (7, "7")])
    def test_clean_arg(self, value, expected):
        assert clean_arg(value) == expected

    def test_join_args(self):
        assert join_args(["=How", "does", None, "it work?"]) == "How does it work?"

    @pytest.mark.parametrize(
        "value,expected",
        [("12", 12), ("#12", 12), ("=3", 3), ("0", None), ("-1", None), ("abc", None), (None, None)],
    )
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected


class TestCLI:
    """Test top-level CLI functionality."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"copilot version {__version__}" in result.output

    def test_help(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        for command in ("think", "do", "check-progress", "recommend-steps", "detect-potential-problems", "setup"):
            assert command in result.output


class TestThinkCommand:
    def test_requires_question(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["think"])

        assert result.exit_code == 1
        assert "Please provide a question or prompt using -q or --question" in result.output
        local_action.assert_not_called()

    def test_question_without_issue(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["think", "-q", "How", "does", "login", "work?"])

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.single_action == SingleAction.THINK
        assert execution.question == "How does login work?"
        assert execution.issue.number == -1
        assert execution.branch == "feature/1-login"
        assert execution.welcome_title == "🤔 AI Reasoning Analysis"

    def test_issue_requires_token(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["think", "-q", "Why?", "-i", "3"])

        assert result.exit_code == 1
        assert "No GitHub token found" in result.output

    def test_issue_and_options(self, runner, workspace, local_action):
        result = runner.invoke(
            cli,
            [
                "think", "-q", "Why?", "-i", "#3", "-t", "tok", "-b", "develop",
                "--opencode-model", "anthropic/claude", "--ai-ignore-files", "docs/*", "--include-reasoning",
            ],
        )

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.issue.number == 3
        assert execution.tokens.token == "tok"
        assert execution.branch == "develop"
        assert execution.ai.model == "anthropic/claude"
        assert execution.ai.ignore_files == ["docs/*"]
        assert execution.ai.include_reasoning is True

    def test_invalid_issue(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["think", "-q", "Why?", "-i", "abc"])

        assert result.exit_code == 1
        assert "Invalid issue number: abc" in result.output

    def test_invalid_model(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["think", "-q", "Why?", "--opencode-model", "gpt-4o"])

        assert result.exit_code == 1
        assert "Invalid AI settings" in result.output

    def test_without_repository(self, runner, workspace, local_action, monkeypatch):
        monkeypatch.setattr("repo_copilot.cli.detect_repository", lambda cwd=None: None)

        result = runner.invoke(cli, ["think", "-q", "Why?"])

        assert result.exit_code == 1
        assert "Could not detect a GitHub repository" in result.output

    def test_failed_run_exits_non_zero(self, runner, workspace, local_action):
        local_action.side_effect = lambda execution: status.set_failed("ThinkUseCase failed")

        result = runner.invoke(cli, ["think", "-q", "Why?"])

        assert result.exit_code == 1

    def test_api_error(self, runner, workspace, local_action):
        local_action.side_effect = AIIntegrationError("OpenCode unreachable")

        result = runner.invoke(cli, ["think", "-q", "Why?"])

        assert result.exit_code == 1
        assert "OpenCode unreachable" in result.output


class TestIssueCommands:
    """Test check-progress, recommend-steps and detect-potential-problems."""

    @pytest.mark.parametrize(
        "command,action",
        [
            ("check-progress", SingleAction.CHECK_PROGRESS),
            ("recommend-steps", SingleAction.RECOMMEND_STEPS),
            ("detect-potential-problems", SingleAction.DETECT_POTENTIAL_PROBLEMS),
        ],
    )
    def test_runs_action(self, runner, workspace, local_action, command, action):
        result = runner.invoke(cli, [command, "-i", "5", "-t", "tok"])

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.single_action == action
        assert execution.issue.number == 5
        assert execution.branch == "feature/1-login"

    @pytest.mark.parametrize("command", ["check-progress", "recommend-steps", "detect-potential-problems"])
    def test_requires_issue(self, runner, workspace, local_action, command):
        result = runner.invoke(cli, [command, "-t", "tok"])

        assert result.exit_code == 1
        assert "Please provide an issue number using -i or --issue" in result.output

    def test_invalid_issue(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["check-progress", "-i", "0", "-t", "tok"])

        assert result.exit_code == 1
        assert "Must be a positive number" in result.output

    def test_token_from_environment(self, runner, workspace, local_action, monkeypatch):
        monkeypatch.setenv("PERSONAL_ACCESS_TOKEN", "env-token")

        result = runner.invoke(cli, ["detect-potential-problems", "-i", "5", "-b", "main"])

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.tokens.token == "env-token"
        assert execution.branch == "main"

    def test_github_error(self, runner, workspace, local_action):
        local_action.side_effect = GitHubAPIError("Bad credentials")

        result = runner.invoke(cli, ["recommend-steps", "-i", "5", "-t", "tok"])

        assert result.exit_code == 1
        assert "Bad credentials" in result.output


class TestDoCommand:
    @pytest.fixture
    def opencode(self, monkeypatch):
        integration = Mock()
        integration.copilot_message = AsyncMock(return_value=AIMessage(text="Edited app.py", session_id="ses_9"))
        factory = Mock(return_value=integration)
        monkeypatch.setattr("repo_copilot.cli.OpenCodeIntegration", factory)
        return integration

    def test_requires_prompt(self, runner, workspace, opencode):
        result = runner.invoke(cli, ["do"])

        assert result.exit_code == 1
        assert "Please provide a prompt using -p or --prompt" in result.output

    def test_text_output(self, runner, workspace, opencode):
        result = runner.invoke(cli, ["do", "-p", "Add", "a", "health", "check"])

        assert result.exit_code == 0, result.output
        assert "🤖 RESPONSE (OpenCode build agent)" in result.output
        assert "Edited app.py" in result.output
        assert "Request: Add a health check" in opencode.copilot_message.await_args.args[0]

    def test_json_output(self, runner, workspace, opencode):
        result = runner.invoke(cli, ["do", "-p", "Refactor", "--output", "json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"response": "Edited app.py", "sessionId": "ses_9"}

    def test_error(self, runner, workspace, opencode):
        opencode.copilot_message.side_effect = AIIntegrationError("connection refused")

        result = runner.invoke(cli, ["do", "-p", "Refactor"])

        assert result.exit_code == 1
        assert "connection refused" in result.output


class TestSetupCommand:
    def test_not_a_git_repository(self, runner, workspace, local_action, monkeypatch):
        monkeypatch.setattr("repo_copilot.cli.is_inside_git_repo", lambda cwd=None: False)

        result = runner.invoke(cli, ["setup"])

        assert result.exit_code == 1
        assert "Not a git repository" in result.output

    def test_missing_token(self, runner, workspace, local_action, monkeypatch):
        monkeypatch.setattr("repo_copilot.cli.is_inside_git_repo", lambda cwd=None: True)

        result = runner.invoke(cli, ["setup"])

        assert result.exit_code == 1
        assert "Setup requires PERSONAL_ACCESS_TOKEN" in result.output
        assert "create a .env file" in result.output
        local_action.assert_not_called()

    def test_existing_env_file_hint(self, runner, workspace, local_action, monkeypatch):
        monkeypatch.setattr("repo_copilot.cli.is_inside_git_repo", lambda cwd=None: True)
        (workspace / ".env").write_text("OTHER=1\n")

        result = runner.invoke(cli, ["setup"])

        assert result.exit_code == 1
        assert "existing .env file" in result.output

    def test_token_from_env_file(self, runner, workspace, local_action, monkeypatch):
        monkeypatch.setattr("repo_copilot.cli.is_inside_git_repo", lambda cwd=None: True)
        (workspace / ".env").write_text(f"PERSONAL_ACCESS_TOKEN={VALID_TOKEN}\n")

        result = runner.invoke(cli, ["setup"])

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.single_action == SingleAction.INITIAL_SETUP
        assert execution.tokens.token == VALID_TOKEN
        assert execution.cwd == workspace


class TestSyncCommands:
    def test_issue_sync(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["issue-sync", "-i", "8", "-t", "tok"])

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.single_action == SingleAction.ISSUE_SYNC
        assert execution.issue.number == 8

    def test_pr_sync(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["pr-sync", "--pull-request", "9", "-t", "tok"])

        assert result.exit_code == 0, result.output
        execution = executed(local_action)
        assert execution.single_action == SingleAction.PULL_REQUEST_SYNC
        assert execution.pull_request.number == 9
        assert execution.issue.number == -1

    def test_pr_sync_invalid_number(self, runner, workspace, local_action):
        result = runner.invoke(cli, ["pr-sync", "-p", "x", "-t", "tok"])

        assert result.exit_code == 1
        assert "Invalid pull request number" in result.output


class TestConfigCommands:
    """Test config subcommands."""

    def test_init(self, runner, workspace, temp_home):
        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 0, result.output
        assert (temp_home / ".copilot" / "config.yaml").exists()
        assert (workspace / ".copilot" / "config.yaml").exists()
        assert "copilot setup" in result.output

    def test_set_and_get(self, runner, workspace):
        result = runner.invoke(cli, ["config", "set", "branches.management_always", "true"])
        assert result.exit_code == 0, result.output
        assert "User config updated: branches.management_always = True" in result.output

        result = runner.invoke(cli, ["config", "get", "branches.management_always"])
        assert result.exit_code == 0
        assert "branches.management_always: True" in result.output

    def test_get_unknown_key(self, runner, workspace):
        result = runner.invoke(cli, ["config", "get", "nope.value"])

        assert result.exit_code == 1
        assert "Configuration key not found" in result.output

    def test_set_project(self, runner, workspace):
        result = runner.invoke(cli, ["config", "set", "ai.model", "anthropic/claude", "--project"])

        assert result.exit_code == 0, result.output
        with open(workspace / ".copilot" / "config.yaml") as f:
            assert yaml.safe_load(f) == {"ai": {"model": "anthropic/claude"}}

    def test_list(self, runner, workspace):
        result = runner.invoke(cli, ["config", "list"])

        assert result.exit_code == 0
        assert "Not found" in result.output

    def test_show_hides_token(self, runner, workspace, mock_global_config_manager):
        mock_global_config_manager.set_config_value("github.token", "secret-token")

        result = runner.invoke(cli, ["config", "show", "-f", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert "token" not in data["github"]
        assert "secret-token" not in result.output

    def test_show_section(self, runner, workspace):
        result = runner.invoke(cli, ["config", "show", "-f", "yaml", "-s", "branches"])

        assert result.exit_code == 0
        assert yaml.safe_load(result.output) == {"branches": {"management_always": False, "management_emoji": "🧑‍💻"}}

    def test_show_unknown_section(self, runner, workspace):
        result = runner.invoke(cli, ["config", "show", "-s", "nope"])

        assert result.exit_code == 1
        assert "Section 'nope' not found" in result.output

    def test_show_table(self, runner, workspace):
        result = runner.invoke(cli, ["config", "show", "-s", "ai"])

        assert result.exit_code == 0
        assert "ai.model" in result.output
