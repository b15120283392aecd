"""Data models for the copilot tool."""

import re
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_OPENCODE_SERVER_URL = "http://127.0.0.1:4096"
DEFAULT_OPENCODE_MODEL = "openai/gpt-4o-mini"
DEFAULT_AI_IGNORE_FILES = ["build/*", "dist/*", "node_modules/*", "*.d.ts"]


class SingleAction(str, Enum):
    """Actions that can be run on demand from the CLI."""

    THINK = "think"
    CHECK_PROGRESS = "check_progress"
    RECOMMEND_STEPS = "recommend_steps"
    DETECT_POTENTIAL_PROBLEMS = "detect_potential_problems"
    INITIAL_SETUP = "initial_setup"
    ISSUE_SYNC = "issue_sync"
    PULL_REQUEST_SYNC = "pull_request_sync"


class IssueTypeColor(str, Enum):
    """Colors accepted by GitHub for organization issue types."""

    GRAY = "GRAY"
    BLUE = "BLUE"
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    ORANGE = "ORANGE"
    RED = "RED"
    PINK = "PINK"
    PURPLE = "PURPLE"


class Result(BaseModel):
    """Outcome of one use case run against one target."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Task id of the use case that produced the result")
    success: bool = Field(description="Whether the attempt succeeded")
    executed: bool = Field(description="Whether the use case did any work")
    steps: list[str] = Field(default_factory=list, description="Human readable steps")
    errors: list[str] = Field(default_factory=list, description="Error messages")


class EnsureResult(BaseModel):
    """Outcome of ensuring a single label or issue type."""

    created: bool = False
    existed: bool = False


class EnsureSummary(BaseModel):
    """Accumulated outcome of a batch ensure operation."""

    created: int = 0
    existing: int = 0
    errors: list[str] = Field(default_factory=list)


class LabelSpec(BaseModel):
    """Desired repository label."""

    name: str
    color: str = Field(description="Hex color without leading '#'")
    description: str = ""


class Labels(BaseModel):
    """Configured label names plus the labels on the issue being processed."""

    model_config = ConfigDict(frozen=True)

    branched: str = Field(default="launch", description="Label that marks branched issues")
    bug: str = "bug"
    bugfix: str = "bugfix"
    hotfix: str = "hotfix"
    enhancement: str = "enhancement"
    feature: str = "feature"
    release: str = "release"
    question: str = "question"
    help: str = "help"
    deploy: str = "deploy"
    deployed: str = "deployed"
    docs: str = "docs"
    documentation: str = "documentation"
    chore: str = "chore"
    maintenance: str = "maintenance"
    priority_high: str = "priority-high"
    priority_medium: str = "priority-medium"
    priority_low: str = "priority-low"
    priority_none: str = "priority-none"
    size_xxl: str = "size-xxl"
    size_xl: str = "size-xl"
    size_l: str = "size-l"
    size_m: str = "size-m"
    size_s: str = "size-s"
    size_xs: str = "size-xs"

    current_issue_labels: list[str] = Field(
        default_factory=list, exclude=True, description="Labels on the current issue"
    )

    def _has(self, *names: str) -> bool:
        return any(name in self.current_issue_labels for name in names)

    @property
    def is_hotfix(self) -> bool:
        return self._has(self.hotfix)

    @property
    def is_release(self) -> bool:
        return self._has(self.release)

    @property
    def is_docs(self) -> bool:
        return self._has(self.docs, self.documentation)

    @property
    def is_chore(self) -> bool:
        return self._has(self.chore, self.maintenance)

    @property
    def is_bugfix(self) -> bool:
        return self._has(self.bugfix, self.bug)

    @property
    def is_feature(self) -> bool:
        return self._has(self.feature, self.enhancement)

    @property
    def is_help(self) -> bool:
        return self._has(self.help)

    @property
    def is_question(self) -> bool:
        return self._has(self.question)

    @property
    def contains_branched_label(self) -> bool:
        return self._has(self.branched)

    @property
    def priority_label_on_issue(self) -> str:
        """First priority label found on the issue, or an empty string."""
        for name in (self.priority_high, self.priority_medium, self.priority_low, self.priority_none):
            if name in self.current_issue_labels:
                return name
        return ""

    @property
    def priority_label_on_issue_processable(self) -> bool:
        """Whether the issue carries a priority that maps to a board value."""
        return self._has(self.priority_high, self.priority_medium, self.priority_low)

    def with_current(self, labels: list[str]) -> "Labels":
        """Return a copy carrying the given issue labels."""
        return self.model_copy(update={"current_issue_labels": list(labels)})

    def required_labels(self) -> list[LabelSpec]:
        """Labels every managed repository should have."""
        return [
            LabelSpec(name=self.branched, color="0e8a16", description="Branch management is active"),
            LabelSpec(name=self.bug, color="d73a4a", description="Something isn't working"),
            LabelSpec(name=self.bugfix, color="d73a4a", description="Fixes a bug"),
            LabelSpec(name=self.hotfix, color="b60205", description="Urgent production fix"),
            LabelSpec(name=self.enhancement, color="a2eeef", description="Improvement of existing functionality"),
            LabelSpec(name=self.feature, color="a2eeef", description="New feature"),
            LabelSpec(name=self.release, color="5319e7", description="Release preparation"),
            LabelSpec(name=self.question, color="d876e3", description="Further information is requested"),
            LabelSpec(name=self.help, color="008672", description="Extra attention is needed"),
            LabelSpec(name=self.deploy, color="1d76db", description="Ready to deploy"),
            LabelSpec(name=self.deployed, color="0052cc", description="Already deployed"),
            LabelSpec(name=self.docs, color="0075ca", description="Documentation changes"),
            LabelSpec(name=self.documentation, color="0075ca", description="Improvements or additions to documentation"),
            LabelSpec(name=self.chore, color="c5def5", description="Routine maintenance task"),
            LabelSpec(name=self.maintenance, color="c5def5", description="Repository maintenance"),
            LabelSpec(name=self.priority_high, color="b60205", description="High priority"),
            LabelSpec(name=self.priority_medium, color="fbca04", description="Medium priority"),
            LabelSpec(name=self.priority_low, color="0e8a16", description="Low priority"),
            LabelSpec(name=self.priority_none, color="ededed", description="No priority"),
            LabelSpec(name=self.size_xxl, color="b60205", description="Huge amount of work"),
            LabelSpec(name=self.size_xl, color="d93f0b", description="Very large amount of work"),
            LabelSpec(name=self.size_l, color="e99695", description="Large amount of work"),
            LabelSpec(name=self.size_m, color="fbca04", description="Medium amount of work"),
            LabelSpec(name=self.size_s, color="c2e0c6", description="Small amount of work"),
            LabelSpec(name=self.size_xs, color="0e8a16", description="Tiny amount of work"),
        ]


class IssueTypeSpec(BaseModel):
    """Desired organization issue type."""

    name: str
    description: str = ""
    color: IssueTypeColor = IssueTypeColor.GRAY


class IssueTypeNode(BaseModel):
    """Issue type as returned by the GraphQL API."""

    id: str
    name: str


class IssueTypes(BaseModel):
    """Configured organization issue types."""

    model_config = ConfigDict(frozen=True)

    task: IssueTypeSpec = IssueTypeSpec(name="Task", description="A specific piece of work", color=IssueTypeColor.YELLOW)
    bug: IssueTypeSpec = IssueTypeSpec(name="Bug", description="An unexpected problem or behavior", color=IssueTypeColor.RED)
    feature: IssueTypeSpec = IssueTypeSpec(name="Feature", description="A request, idea, or new functionality", color=IssueTypeColor.BLUE)
    documentation: IssueTypeSpec = IssueTypeSpec(name="Documentation", description="Documentation changes", color=IssueTypeColor.GRAY)
    maintenance: IssueTypeSpec = IssueTypeSpec(name="Maintenance", description="Chores and upkeep", color=IssueTypeColor.GRAY)
    hotfix: IssueTypeSpec = IssueTypeSpec(name="Hotfix", description="Urgent production fix", color=IssueTypeColor.ORANGE)
    release: IssueTypeSpec = IssueTypeSpec(name="Release", description="Release preparation", color=IssueTypeColor.PURPLE)
    question: IssueTypeSpec = IssueTypeSpec(name="Question", description="A question about the project", color=IssueTypeColor.PINK)
    help: IssueTypeSpec = IssueTypeSpec(name="Help", description="Help is needed", color=IssueTypeColor.GREEN)

    def required_types(self) -> list[IssueTypeSpec]:
        """Issue types every managed organization should have."""
        return [
            self.task,
            self.bug,
            self.feature,
            self.documentation,
            self.maintenance,
            self.hotfix,
            self.release,
            self.question,
            self.help,
        ]

    def for_labels(self, labels: Labels) -> IssueTypeSpec:
        """Pick the issue type that matches the labels, in title-emoji order."""
        if labels.is_hotfix:
            return self.hotfix
        if labels.is_release:
            return self.release
        if labels.is_docs:
            return self.documentation
        if labels.is_chore:
            return self.maintenance
        if labels.is_bugfix:
            return self.bug
        if labels.is_feature:
            return self.feature
        if labels.is_help:
            return self.help
        if labels.is_question:
            return self.question
        return self.task


class ProjectReference(BaseModel):
    """Project board coordinates parsed from a GitHub project URL."""

    type: str = Field(description="'organization' or 'user'")
    owner: str
    number: int

    @classmethod
    def parse(cls, url: str) -> "ProjectReference":
        """Parse a project URL.

        Supported formats:
        - https://github.com/orgs/<org>/projects/<number>
        - https://github.com/users/<user>/projects/<number>
        """
        match = re.search(r"github\.com/(orgs|users)/([^/]+)/projects/(\d+)", url.strip())
        if not match:
            raise ValueError(f"Unable to parse project URL: {url}") from None
        kind, owner, number = match.groups()
        return cls(
            type="organization" if kind == "orgs" else "user",
            owner=owner,
            number=int(number),
        )


class ProjectDetail(BaseModel):
    """A GitHub project board linked to the repository."""

    id: str = ""
    title: str = ""
    type: str = ""
    owner: str = ""
    url: str = ""
    number: int = -1

    @property
    def public_url(self) -> str:
        """Browser URL of the board."""
        if self.url.startswith("https://"):
            return self.url
        segment = "orgs" if self.type == "organization" else "users"
        return f"https://github.com/{segment}/{self.owner}/projects/{self.number}"

    @classmethod
    def from_api(cls, data: dict[str, Any], reference: ProjectReference) -> "ProjectDetail":
        """Build a project from a GraphQL ``projectV2`` node.

        Raises:
            ValueError: If the node has no id
        """
        if not data or not data.get("id"):
            raise ValueError(
                f"Project {reference.owner}/{reference.number} response is missing an id"
            )
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            type=reference.type,
            owner=reference.owner,
            url=data.get("url") or "",
            number=data.get("number", reference.number),
        )


class ProjectBoards(BaseModel):
    """Project boards linked to the repository and their column names."""

    model_config = ConfigDict(frozen=True)

    projects: list[ProjectDetail] = Field(default_factory=list)
    issue_in_progress_column: str = "In Progress"
    pull_request_in_progress_column: str = "In Progress"


class Milestone(BaseModel):
    """Issue milestone."""

    id: int
    title: str
    description: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class RepositoryLabel(BaseModel):
    """Label defined on a repository."""

    name: str
    color: str = ""
    description: str | None = None


class IssueComment(BaseModel):
    """Comment on an issue or pull request."""

    id: int
    body: str = ""
    author: str = ""
    url: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "IssueComment":
        """Build a comment from a REST payload."""
        return cls(
            id=data["id"],
            body=data.get("body") or "",
            author=(data.get("user") or {}).get("login", ""),
            url=data.get("html_url") or "",
        )


class Tokens(BaseModel):
    """Credentials used during a run."""

    model_config = ConfigDict(frozen=True)

    token: str = ""


class IssueContext(BaseModel):
    """Issue targeted by the run."""

    model_config = ConfigDict(frozen=True)

    number: int = -1
    title: str = ""
    body: str = ""


class PullRequestContext(BaseModel):
    """Pull request targeted by the run."""

    model_config = ConfigDict(frozen=True)

    number: int = -1
    title: str = ""
    head: str = ""
    base: str = ""
    issue_number: int = Field(default=-1, description="Issue linked to the pull request")


class GitHubRepository(BaseModel):
    """GitHub repository coordinates."""

    owner: str = Field(description="Repository owner")
    name: str = Field(description="Repository name")
    remote_url: str | None = Field(default=None, description="Git remote URL")

    @property
    def full_name(self) -> str:
        """Get full repository name."""
        return f"{self.owner}/{self.name}"


class GitHubConfig(BaseModel):
    """GitHub configuration settings."""

    token: str | None = Field(default=None, description="Personal access token")
    api_url: str = Field(default="https://api.github.com", description="GitHub API base URL")
    timeout: float = Field(default=30.0, description="HTTP timeout (seconds)")

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate API URL and drop trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("GitHub API URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("GitHub timeout must be positive")
        return v


class AIConfig(BaseModel):
    """OpenCode AI agent settings."""

    server_url: str = Field(default=DEFAULT_OPENCODE_SERVER_URL, description="OpenCode server URL")
    model: str = Field(default=DEFAULT_OPENCODE_MODEL, description="Model as 'provider/model'")
    ignore_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_AI_IGNORE_FILES),
        description="Glob patterns the agent should ignore",
    )
    include_reasoning: bool = Field(default=False, description="Include model reasoning in output")
    timeout: float = Field(default=300.0, description="Request timeout (seconds)")

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Validate server URL and drop trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("OpenCode server URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Validate model is in 'provider/model' form."""
        provider, _, model = v.partition("/")
        if not provider or not model:
            raise ValueError(f"Model must be in 'provider/model' form, got '{v}'")
        return v

    @field_validator("ignore_files", mode="before")
    @classmethod
    def split_ignore_files(cls, v: Any) -> Any:
        """Accept comma separated strings as well as lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def provider_id(self) -> str:
        return self.model.partition("/")[0]

    @property
    def model_id(self) -> str:
        return self.model.partition("/")[2]


class ProjectsConfig(BaseModel):
    """Project board settings."""

    urls: list[str] = Field(default_factory=list, description="Linked project board URLs")
    issue_in_progress_column: str = Field(default="In Progress", description="Column for issues being worked on")
    pull_request_in_progress_column: str = Field(default="In Progress", description="Column for open pull requests")

    @field_validator("urls", mode="before")
    @classmethod
    def split_urls(cls, v: Any) -> Any:
        """Accept comma or whitespace separated strings as well as lists."""
        if isinstance(v, str):
            return [item for item in re.split(r"[,\s]+", v) if item]
        return v


class BranchesConfig(BaseModel):
    """Branch management settings."""

    management_always: bool = Field(default=False, description="Treat every issue as branched")
    management_emoji: str = Field(default="🧑‍💻", description="Glyph added to titles of branched issues")


class SetupConfig(BaseModel):
    """Initial setup settings."""

    templates_dir: str | None = Field(default=None, description="Override for bundled setup templates")

    @field_validator("templates_dir")
    @classmethod
    def expand_templates_dir(cls, v: str | None) -> str | None:
        """Expand user home in templates dir."""
        if v is None:
            return v
        return str(Path(v).expanduser())


class Config(BaseModel):
    """Main configuration model."""

    version: str = Field(default="1.0", description="Config version")
    github: GitHubConfig = Field(default_factory=GitHubConfig, description="GitHub settings")
    ai: AIConfig = Field(default_factory=AIConfig, description="AI settings")
    labels: Labels = Field(default_factory=Labels, description="Label names")
    issue_types: IssueTypes = Field(default_factory=IssueTypes, description="Organization issue types")
    projects: ProjectsConfig = Field(default_factory=ProjectsConfig, description="Project boards")
    branches: BranchesConfig = Field(default_factory=BranchesConfig, description="Branch management")
    setup: SetupConfig = Field(default_factory=SetupConfig, description="Initial setup")

    model_config = {"extra": "allow"}  # Allow additional fields for extensibility


class Execution(BaseModel):
    """Everything a use case needs to know about the current run."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    tokens: Tokens = Field(default_factory=Tokens)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    labels: Labels = Field(default_factory=Labels)
    issue_types: IssueTypes = Field(default_factory=IssueTypes)
    project: ProjectBoards = Field(default_factory=ProjectBoards)
    issue: IssueContext = Field(default_factory=IssueContext)
    pull_request: PullRequestContext = Field(default_factory=PullRequestContext)
    ai: AIConfig = Field(default_factory=AIConfig)
    branches: BranchesConfig = Field(default_factory=BranchesConfig)
    single_action: SingleAction | None = None
    question: str = ""
    branch: str = ""
    cwd: Path = Field(default_factory=Path.cwd)
    templates_dir: Path | None = None
    welcome_title: str = ""
    welcome_messages: list[str] = Field(default_factory=list)

    @property
    def issue_number(self) -> int:
        """Issue being processed, falling back to the pull request's linked issue."""
        if self.issue.number > 0:
            return self.issue.number
        return self.pull_request.issue_number

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request.number > 0

    @property
    def full_repo(self) -> str:
        return f"{self.owner}/{self.repo}"
