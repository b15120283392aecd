"""Repository setup helpers: .github tree, bundled templates and token checks."""

import os
import shutil
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import dotenv_values

from repo_copilot.utils.logger import get_logger

logger = get_logger(__name__)

ENV_TOKEN_KEY = "PERSONAL_ACCESS_TOKEN"
ENV_PLACEHOLDER_VALUE = "github_pat_11.."
MIN_VALID_TOKEN_LENGTH = 20

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "setup_templates"


def ensure_github_dirs(cwd: Union[str, Path]) -> None:
    """Create .github, .github/workflows and .github/ISSUE_TEMPLATE if missing."""
    root = Path(cwd)
    for directory in (
        root / ".github",
        root / ".github" / "workflows",
        root / ".github" / "ISSUE_TEMPLATE",
    ):
        if not directory.exists():
            logger.info(f"📁 Creating {directory.relative_to(root)}/...")
            directory.mkdir(parents=True, exist_ok=True)


def _copy_if_absent(src: Path, dst: Path, label: str, counts: Dict[str, int]) -> None:
    if dst.exists():
        logger.info(f"  ⏭️  {label} already exists; skipping.")
        counts["skipped"] += 1
        return
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)
    logger.info(f"  ✅ Copied {src.name} → {label}")
    counts["copied"] += 1


def copy_setup_files(
    cwd: Union[str, Path], setup_dir: Optional[Union[str, Path]] = None
) -> Dict[str, int]:
    """Copy bundled workflows and templates into the repository.

    Existing files are never overwritten. Only ``*.yml``/``*.yaml`` files are
    taken from the workflows folder.

    Args:
        cwd: Repository root (destination)
        setup_dir: Folder holding the templates (defaults to the bundled ones)

    Returns:
        Counts of copied and skipped files
    """
    root = Path(cwd)
    source = Path(setup_dir) if setup_dir else DEFAULT_TEMPLATES_DIR
    counts = {"copied": 0, "skipped": 0}
    if not source.is_dir():
        logger.debug(f"Setup templates not found: {source}")
        return counts

    workflows_src = source / "workflows"
    if workflows_src.is_dir():
        for src in sorted(workflows_src.iterdir()):
            if src.is_file() and src.suffix in (".yml", ".yaml"):
                _copy_if_absent(
                    src,
                    root / ".github" / "workflows" / src.name,
                    f".github/workflows/{src.name}",
                    counts,
                )

    issue_template_src = source / "ISSUE_TEMPLATE"
    if issue_template_src.is_dir():
        for src in sorted(issue_template_src.iterdir()):
            if src.is_file():
                _copy_if_absent(
                    src,
                    root / ".github" / "ISSUE_TEMPLATE" / src.name,
                    f".github/ISSUE_TEMPLATE/{src.name}",
                    counts,
                )

    pr_template_src = source / "pull_request_template.md"
    if pr_template_src.is_file():
        _copy_if_absent(
            pr_template_src,
            root / ".github" / "pull_request_template.md",
            ".github/pull_request_template.md",
            counts,
        )

    ensure_env_with_token(root)
    return counts


def _token_from_env_file(env_path: Path) -> Optional[str]:
    if not env_path.is_file():
        return None
    value = dotenv_values(env_path).get(ENV_TOKEN_KEY)
    if value is None:
        return None
    value = value.strip()
    return value or None


def ensure_env_with_token(cwd: Union[str, Path]) -> None:
    """Log where the personal access token will come from. Never creates .env."""
    env_path = Path(cwd) / ".env"
    if os.getenv(ENV_TOKEN_KEY, "").strip():
        logger.info(f"  🔑 {ENV_TOKEN_KEY} is set in environment; .env not needed.")
        return
    if env_path.exists():
        if _token_from_env_file(env_path):
            logger.info(f"  ✅ .env exists and contains {ENV_TOKEN_KEY}.")
        else:
            logger.info(f"  ⚠️  .env exists but {ENV_TOKEN_KEY} is missing or empty.")
        return
    logger.info(
        f"  💡 You can create a .env file here with {ENV_TOKEN_KEY}=your_token "
        "or set it in your environment."
    )


def is_token_value_valid(token: str) -> bool:
    """Reject placeholders and values too short to be a real token."""
    value = token.strip()
    return (
        len(value) >= MIN_VALID_TOKEN_LENGTH
        and value != ENV_PLACEHOLDER_VALUE
        and not value.startswith(ENV_PLACEHOLDER_VALUE)
    )


def get_setup_token(cwd: Union[str, Path]) -> Optional[str]:
    """Valid token from the environment, then from ``cwd/.env``."""
    from_env = os.getenv(ENV_TOKEN_KEY, "").strip()
    if from_env and is_token_value_valid(from_env):
        return from_env
    from_file = _token_from_env_file(Path(cwd) / ".env")
    if from_file is not None and is_token_value_valid(from_file):
        return from_file
    return None


def has_valid_setup_token(cwd: Union[str, Path]) -> bool:
    """Whether setup can run with the token available in cwd."""
    return get_setup_token(cwd) is not None


def setup_env_file_exists(cwd: Union[str, Path]) -> bool:
    """Whether ``cwd/.env`` exists."""
    return (Path(cwd) / ".env").is_file()
