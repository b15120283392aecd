"""
Initial repository setup.

Copies the bundled workflows and templates into ``.github`` and makes sure the
repository has every label, progress label and organization issue type the
other use cases rely on.
"""

from typing import List, Optional

from repo_copilot.models import Execution, Result, Tokens
from repo_copilot.utils.logger import get_logger
from repo_copilot.utils.setup_files import (
    ENV_TOKEN_KEY,
    copy_setup_files,
    ensure_github_dirs,
    get_setup_token,
    is_token_value_valid,
)
from repo_copilot.workflows.base import UseCase

logger = get_logger(__name__)

TOKEN_REQUIRED_ERROR = f"{ENV_TOKEN_KEY} must be set (environment or .env) with a valid token to run setup."


class InitialSetupUseCase(UseCase):
    """Every stage runs even when an earlier one failed, except the token check."""

    task_id = "InitialSetupUseCase"

    @staticmethod
    def _setup_token(execution: Execution) -> Optional[str]:
        if execution.tokens.token and is_token_value_valid(execution.tokens.token):
            return execution.tokens.token
        return get_setup_token(execution.cwd)

    async def run(self, execution: Execution) -> List[Result]:
        steps: List[str] = []
        errors: List[str] = []

        logger.info("📋 Ensuring .github and copying setup files...")
        try:
            ensure_github_dirs(execution.cwd)
            counts = copy_setup_files(execution.cwd, execution.templates_dir)
            steps.append(f"✅ Setup files: {counts['copied']} copied, {counts['skipped']} already existed")
        except Exception as e:
            logger.error(f"Failed to copy setup files: {e}")
            errors.append(f"Error copying setup files: {e}")

        try:
            token = self._setup_token(execution)
            if token is None:
                logger.info(f"  🛑 Setup requires {ENV_TOKEN_KEY} (environment or .env) with a valid token.")
                return [
                    self.result(success=False, executed=True, steps=steps, errors=[*errors, TOKEN_REQUIRED_ERROR])
                ]

            if token != execution.tokens.token:
                execution = execution.model_copy(update={"tokens": Tokens(token=token)})

            logger.info("🔐 Checking GitHub access...")
            try:
                user = await self.projects(execution).get_user_from_token()
                steps.append(f"✅ GitHub access verified: {user}")
            except Exception as e:
                logger.error(f"Failed to verify GitHub access: {e}")
                errors.append(f"Could not verify GitHub access: {e}")

            issues = self.issues(execution)

            logger.info("🏷️  Checking labels...")
            try:
                labels = await issues.ensure_labels(execution.owner, execution.repo, execution.labels)
                if labels.errors:
                    errors.extend(labels.errors)
                else:
                    steps.append(
                        f"✅ Labels checked: {labels.created} created, {labels.existing} already existed"
                    )
            except Exception as e:
                logger.error(f"Failed to check labels: {e}")
                errors.append(f"Error checking labels: {e}")

            logger.info("📊 Checking progress labels...")
            try:
                progress = await issues.ensure_progress_labels(execution.owner, execution.repo)
                if progress.errors:
                    errors.extend(progress.errors)
                else:
                    steps.append(
                        f"✅ Progress labels checked: {progress.created} created, "
                        f"{progress.existing} already existed"
                    )
            except Exception as e:
                logger.error(f"Failed to check progress labels: {e}")
                errors.append(f"Error checking progress labels: {e}")

            logger.info("📋 Checking issue types...")
            try:
                issue_types = await issues.ensure_issue_types(execution.owner, execution.issue_types)
                if issue_types.errors:
                    errors.extend(issue_types.errors)
                else:
                    steps.append(
                        f"✅ Issue types checked: {issue_types.created} created, "
                        f"{issue_types.existing} already existed"
                    )
            except Exception as e:
                logger.error(f"Failed to check issue types: {e}")
                errors.append(f"Error checking issue types: {e}")

        except Exception as e:
            logger.exception(f"Initial setup failed: {e}")
            errors.append(f"Error running initial setup: {e}")
            return [self.result(success=False, executed=True, steps=steps, errors=errors)]

        return [self.result(success=not errors, executed=True, steps=steps, errors=errors)]
