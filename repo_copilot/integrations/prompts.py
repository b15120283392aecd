"""Prompt templates for the AI use cases, with project and user overrides."""

from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field

from repo_copilot.utils.logger import get_logger
from repo_copilot.utils.shell import get_git_root

logger = get_logger(__name__)

PROJECT_CONTEXT_INSTRUCTION = (
    "You are working inside the repository checked out in the current workspace. "
    "Read the relevant files before answering and base every statement on the code you read. "
    "Do not read or modify files matching: {ignore_files}."
)


class PromptError(Exception):
    """Prompt management error."""
    pass


class PromptTemplate(BaseModel):
    """Prompt template model."""

    name: str = Field(description="Template name")
    description: Optional[str] = Field(default=None, description="Template description")
    prompt: str = Field(description="Prompt template content")
    variables: List[str] = Field(default_factory=list, description="Variables used by the prompt")


BUILTIN_TEMPLATES: Dict[str, PromptTemplate] = {
    "think": PromptTemplate(
        name="think",
        description="Deep analysis of a question about the repository",
        variables=["project_context", "repository", "branch", "question", "issue_description"],
        prompt="""{project_context}

Repository: {repository} (branch: {branch})

{issue_description}

Answer the following question with a thorough analysis. When changes are needed,
propose them concretely (files, functions, and the reasoning behind each change).

Question: {question}""",
    ),
    "do": PromptTemplate(
        name="do",
        description="Development task executed by the build agent",
        variables=["project_context", "prompt"],
        prompt="""{project_context}

Carry out the following request. Apply the changes directly in the workspace and
finish with a short summary of what you changed.

Request: {prompt}""",
    ),
    "check_progress": PromptTemplate(
        name="check_progress",
        description="Estimate how much of an issue is implemented on a branch",
        variables=["project_context", "repository", "branch", "issue_number", "issue_title", "issue_description"],
        prompt="""{project_context}

Repository: {repository}
Branch under review: {branch}

Issue #{issue_number}: {issue_title}

{issue_description}

Compare the code on the branch with what the issue asks for and estimate how much
of the issue is done. Reply with a single JSON object and nothing else:
{{"progress": <integer 0-100>, "summary": "<what is done and what remains>"}}""",
    ),
    "recommend_steps": PromptTemplate(
        name="recommend_steps",
        description="Recommend implementation steps for an issue",
        variables=["project_context", "repository", "issue_number", "issue_title", "issue_description"],
        prompt="""{project_context}

Repository: {repository}

Issue #{issue_number}: {issue_title}

{issue_description}

Recommend the concrete steps needed to implement this issue, in order. Mention the
files and modules involved and any risks to keep in mind. Use a numbered Markdown list.""",
    ),
    "detect_problems": PromptTemplate(
        name="detect_problems",
        description="Find potential problems introduced on a branch",
        variables=["project_context", "repository", "branch", "base_branch", "issue_number", "issue_title"],
        prompt="""{project_context}

Repository: {repository}
Branch: {branch} (compared with {base_branch})
Related issue #{issue_number}: {issue_title}

Review the changes on the branch and look for bugs, regressions, security issues and
missing error handling. Reply with a single JSON object and nothing else:
{{"findings": [{{"title": "<short title>", "severity": "high|medium|low", "file": "<path>", "description": "<details>"}}]}}
Use an empty list when nothing is wrong.""",
    ),
}


class PromptManager:
    """Resolves prompt templates from project, user and built-in sources."""

    def __init__(self, cwd: Optional[Union[str, Path]] = None):
        """Initialize prompt manager.

        Args:
            cwd: Directory used to find the project's .copilot/prompts folder
        """
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.user_templates_dir = Path.home() / ".copilot" / "prompts"
        self._template_cache: Dict[str, PromptTemplate] = {}

    def _search_paths(self) -> List[Path]:
        search_paths = []
        git_root = get_git_root(self.cwd)
        project_prompts = (git_root or self.cwd) / ".copilot" / "prompts"
        if project_prompts.is_dir():
            search_paths.append(project_prompts)
        if self.user_templates_dir.is_dir():
            search_paths.append(self.user_templates_dir)
        return search_paths

    def load_prompt_template(self, template_name: str) -> PromptTemplate:
        """Load named prompt template.

        Search order:
        1. Project .copilot/prompts/ directory
        2. User ~/.copilot/prompts/ directory
        3. Built-in templates

        Raises:
            PromptError: If template cannot be found
        """
        if template_name in self._template_cache:
            return self._template_cache[template_name]

        for search_path in self._search_paths():
            template_file = search_path / f"{template_name}.yaml"
            if not template_file.exists():
                continue
            try:
                template = self._load_template_file(template_file, template_name)
            except PromptError as e:
                logger.warning(f"Failed to load template from {template_file}: {e}")
                continue
            self._template_cache[template_name] = template
            logger.debug(f"Loaded template '{template_name}' from {template_file}")
            return template

        if template_name in BUILTIN_TEMPLATES:
            template = BUILTIN_TEMPLATES[template_name]
            self._template_cache[template_name] = template
            return template

        raise PromptError(f"Prompt template '{template_name}' not found")

    def _load_template_file(self, template_file: Path, template_name: str) -> PromptTemplate:
        """Load template from YAML file.

        Raises:
            PromptError: If template cannot be loaded
        """
        try:
            with open(template_file, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PromptError(f"Invalid YAML in template file {template_file}: {e}")
        except OSError as e:
            raise PromptError(f"Failed to read template file {template_file}: {e}")

        if not isinstance(data, dict):
            raise PromptError(f"Template file must contain a YAML object: {template_file}")
        if "prompt" not in data:
            raise PromptError(f"Template file missing 'prompt' field: {template_file}")
        data.setdefault("name", template_name)

        return PromptTemplate.model_validate(data)

    def render(self, template_name: str, **variables: str) -> str:
        """Load a template and expand its variables.

        Unknown placeholders are left as they are and logged.
        """
        prompt = self.load_prompt_template(template_name).prompt
        try:
            return prompt.format(**variables)
        except KeyError as e:
            missing_var = str(e).strip("'\"")
            logger.warning(f"Missing variable '{missing_var}' in prompt template '{template_name}'")
            return prompt.format_map(_KeepMissing(variables))


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def project_context(ignore_files: List[str]) -> str:
    """Instruction that grounds the agent in the current workspace."""
    return PROJECT_CONTEXT_INSTRUCTION.format(ignore_files=", ".join(ignore_files) or "none")
