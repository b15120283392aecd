"""Tests for prompt template management."""

import pytest
import yaml

from repo_copilot.integrations.prompts import (
    BUILTIN_TEMPLATES,
    PromptError,
    PromptManager,
    PromptTemplate,
    project_context,
)


@pytest.fixture
def project_dir(tmp_path, monkeypatch):
    """Project checkout whose git root is itself."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.setattr("repo_copilot.integrations.prompts.get_git_root", lambda cwd=None: project)
    return project


def write_template(directory, name, data):
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / f"{name}.yaml", "w") as f:
        yaml.dump(data, f)


class TestPromptManager:
    """Test PromptManager functionality."""

    def test_builtin_template(self, project_dir):
        manager = PromptManager(project_dir)

        template = manager.load_prompt_template("think")

        assert template is BUILTIN_TEMPLATES["think"]
        assert "question" in template.variables

    def test_every_builtin_uses_its_variables(self):
        for template in BUILTIN_TEMPLATES.values():
            for variable in template.variables:
                assert "{" + variable + "}" in template.prompt

    def test_project_template_overrides_builtin(self, project_dir, temp_home):
        write_template(project_dir / ".copilot" / "prompts", "think", {"prompt": "Project: {question}"})
        write_template(temp_home / ".copilot" / "prompts", "think", {"prompt": "User: {question}"})

        template = PromptManager(project_dir).load_prompt_template("think")

        assert template.name == "think"
        assert template.prompt == "Project: {question}"

    def test_user_template(self, project_dir, temp_home):
        write_template(temp_home / ".copilot" / "prompts", "custom", {"prompt": "Hi {name}", "description": "Custom"})

        template = PromptManager(project_dir).load_prompt_template("custom")

        assert template.description == "Custom"

    def test_invalid_template_falls_back(self, project_dir):
        prompts = project_dir / ".copilot" / "prompts"
        prompts.mkdir(parents=True)
        (prompts / "think.yaml").write_text("description: no prompt here\n")

        template = PromptManager(project_dir).load_prompt_template("think")

        assert template is BUILTIN_TEMPLATES["think"]

    def test_unknown_template(self, project_dir):
        with pytest.raises(PromptError, match="nonexistent"):
            PromptManager(project_dir).load_prompt_template("nonexistent")

    def test_templates_are_cached(self, project_dir):
        manager = PromptManager(project_dir)
        first = manager.load_prompt_template("do")
        write_template(project_dir / ".copilot" / "prompts", "do", {"prompt": "changed"})

        assert manager.load_prompt_template("do") is first

    def test_render(self, project_dir):
        manager = PromptManager(project_dir)
        manager._template_cache["greet"] = PromptTemplate(name="greet", prompt="Hello {name}, see {{json}}")

        assert manager.render("greet", name="Ada") == "Hello Ada, see {json}"

    def test_render_keeps_missing_placeholders(self, project_dir):
        manager = PromptManager(project_dir)
        manager._template_cache["greet"] = PromptTemplate(name="greet", prompt="Hello {name} from {place}")

        assert manager.render("greet", name="Ada") == "Hello Ada from {place}"

    def test_render_check_progress_asks_for_json(self, project_dir):
        prompt = PromptManager(project_dir).render(
            "check_progress",
            project_context="ctx",
            repository="acme/widgets",
            branch="feature/1-x",
            issue_number=1,
            issue_title="Login",
            issue_description="Add login",
        )

        assert '{"progress": <integer 0-100>' in prompt
        assert "Issue #1: Login" in prompt


def test_project_context():
    assert "build/*, dist/*" in project_context(["build/*", "dist/*"])
    assert "matching: none." in project_context([])
