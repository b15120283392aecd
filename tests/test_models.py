"""Tests for data models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from repo_copilot.models import (
    AIConfig,
    Execution,
    IssueTypes,
    Labels,
    Milestone,
    ProjectDetail,
    ProjectReference,
    ProjectsConfig,
    PullRequestContext,
    Result,
)


class TestResult:
    """Test Result model."""

    def test_defaults(self):
        result = Result(id="Task", success=True, executed=False)
        assert result.steps == []
        assert result.errors == []

    def test_is_frozen(self):
        result = Result(id="Task", success=True, executed=True)
        with pytest.raises(ValidationError):
            result.success = False


class TestProjectDetail:
    """Test ProjectDetail public URL derivation."""

    def test_organization_url(self):
        project = ProjectDetail(type="organization", owner="acme", number=1)
        assert project.public_url == "https://github.com/orgs/acme/projects/1"

    def test_user_url(self):
        project = ProjectDetail(type="user", owner="jane", number=3)
        assert project.public_url == "https://github.com/users/jane/projects/3"

    def test_explicit_https_url_wins(self):
        project = ProjectDetail(type="user", owner="jane", number=3, url="https://github.com/orgs/x/projects/9")
        assert project.public_url == "https://github.com/orgs/x/projects/9"

    def test_non_https_url_is_ignored(self):
        project = ProjectDetail(type="organization", owner="acme", number=2, url="github.com/orgs/acme/projects/2")
        assert project.public_url == "https://github.com/orgs/acme/projects/2"

    def test_from_api(self):
        reference = ProjectReference.parse("https://github.com/orgs/acme/projects/4")
        project = ProjectDetail.from_api(
            {"id": "PVT_4", "title": "Roadmap", "url": "https://github.com/orgs/acme/projects/4", "number": 4},
            reference,
        )
        assert project.id == "PVT_4"
        assert project.title == "Roadmap"
        assert project.type == "organization"
        assert project.owner == "acme"

    def test_from_api_requires_id(self):
        reference = ProjectReference.parse("https://github.com/users/jane/projects/1")
        with pytest.raises(ValueError, match="missing an id"):
            ProjectDetail.from_api({"title": "No id"}, reference)


class TestProjectReference:
    def test_parse_user_project(self):
        reference = ProjectReference.parse("https://github.com/users/jane/projects/12/views/1")
        assert reference.type == "user"
        assert reference.owner == "jane"
        assert reference.number == 12

    def test_parse_invalid_url(self):
        with pytest.raises(ValueError):
            ProjectReference.parse("https://github.com/acme/widgets")


class TestLabels:
    """Test label derived properties."""

    def test_priority_processable(self):
        labels = Labels().with_current(["priority-high", "feature"])
        assert labels.priority_label_on_issue == "priority-high"
        assert labels.priority_label_on_issue_processable is True
        assert labels.is_feature is True

    def test_priority_none_is_not_processable(self):
        labels = Labels().with_current(["priority-none"])
        assert labels.priority_label_on_issue == "priority-none"
        assert labels.priority_label_on_issue_processable is False

    def test_no_labels(self):
        labels = Labels()
        assert labels.priority_label_on_issue == ""
        assert labels.contains_branched_label is False

    def test_custom_names(self):
        labels = Labels(hotfix="urgent").with_current(["urgent"])
        assert labels.is_hotfix is True

    def test_with_current_returns_copy(self):
        labels = Labels()
        updated = labels.with_current(["launch"])
        assert labels.current_issue_labels == []
        assert updated.contains_branched_label is True

    def test_required_labels_are_unique(self):
        names = [spec.name for spec in Labels().required_labels()]
        assert len(names) == len(set(names))
        assert "priority-high" in names

    def test_current_labels_not_dumped(self):
        assert "current_issue_labels" not in Labels().with_current(["bug"]).model_dump()


class TestIssueTypes:
    def test_for_labels_order(self):
        issue_types = IssueTypes()
        labels = Labels().with_current(["feature", "hotfix"])
        assert issue_types.for_labels(labels).name == "Hotfix"

    def test_for_labels_default(self):
        assert IssueTypes().for_labels(Labels()).name == "Task"

    def test_required_types(self):
        assert len(IssueTypes().required_types()) == 9


class TestMilestone:
    def test_none_description(self):
        milestone = Milestone.model_validate({"id": 1, "title": "v1.0", "description": None})
        assert milestone.description == ""


class TestConfigModels:
    def test_ai_config_defaults(self):
        config = AIConfig()
        assert config.server_url == "http://127.0.0.1:4096"
        assert config.provider_id == "openai"
        assert config.model_id == "gpt-4o-mini"

    def test_ai_config_splits_ignore_files(self):
        config = AIConfig(ignore_files="build/*, dist/*")
        assert config.ignore_files == ["build/*", "dist/*"]

    def test_ai_config_invalid_model(self):
        with pytest.raises(ValidationError):
            AIConfig(model="gpt-4o")

    def test_ai_config_invalid_url(self):
        with pytest.raises(ValidationError):
            AIConfig(server_url="localhost:4096")

    def test_projects_config_splits_urls(self):
        config = ProjectsConfig(urls="https://github.com/orgs/a/projects/1, https://github.com/orgs/a/projects/2")
        assert len(config.urls) == 2


class TestExecution:
    def test_issue_number_falls_back_to_pull_request(self):
        execution = Execution(
            owner="acme",
            repo="widgets",
            pull_request=PullRequestContext(number=7, issue_number=3),
            cwd=Path("."),
        )
        assert execution.issue_number == 3
        assert execution.is_pull_request is True
        assert execution.full_repo == "acme/widgets"

    def test_issue_number_prefers_issue(self):
        execution = Execution(owner="acme", repo="widgets", issue={"number": 5}, cwd=Path("."))
        assert execution.issue_number == 5
        assert execution.is_pull_request is False
