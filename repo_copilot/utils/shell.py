"""Shell command execution utilities."""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from repo_copilot.utils.logger import get_logger

logger = get_logger(__name__)


class ShellError(Exception):
    """Shell command execution error."""

    def __init__(self, message: str, returncode: int, stdout: str = "", stderr: str = ""):
        """Initialize shell error.

        Args:
            message: Error message
            returncode: Process return code
            stdout: Standard output
            stderr: Standard error
        """
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ShellResult:
    """Shell command result."""

    def __init__(
        self,
        returncode: int,
        stdout: str,
        stderr: str,
        command: str,
        cwd: Optional[Path] = None,
    ):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.command = command
        self.cwd = cwd

    @property
    def success(self) -> bool:
        """Check if command succeeded."""
        return self.returncode == 0

    def check(self) -> "ShellResult":
        """Check result and raise error if failed.

        Returns:
            Self for chaining

        Raises:
            ShellError: If command failed
        """
        if not self.success:
            raise ShellError(
                f"Command failed: {self.command}",
                self.returncode,
                self.stdout,
                self.stderr,
            )
        return self


def run_command(
    command: Union[str, List[str]],
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = False,
    timeout: Optional[float] = None,
) -> ShellResult:
    """Run shell command synchronously.

    Args:
        command: Command to execute
        cwd: Working directory
        env: Environment variables
        check: Raise exception on failure
        timeout: Command timeout in seconds

    Returns:
        Command result

    Raises:
        ShellError: If command fails and check=True, times out or is missing
    """
    if isinstance(command, str):
        command_str = command
        command_list = command.split()
    else:
        command_str = " ".join(command)
        command_list = command

    cwd_path = Path(cwd) if cwd else None

    logger.debug(f"Running command: {command_str} (cwd: {cwd_path})")

    try:
        result = subprocess.run(
            command_list,
            cwd=cwd_path,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.error(f"Command timed out after {timeout}s: {command_str}")
        raise ShellError(f"Command timed out: {command_str}", -1, "", str(e))
    except FileNotFoundError as e:
        logger.error(f"Command not found: {command_str}")
        raise ShellError(f"Command not found: {command_str}", -1, "", str(e))

    shell_result = ShellResult(
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        command=command_str,
        cwd=cwd_path,
    )

    if result.returncode == 0:
        logger.debug(f"Command succeeded: {command_str}")
    else:
        logger.debug(f"Command failed with code {result.returncode}: {command_str}")

    if check:
        shell_result.check()

    return shell_result


def get_git_root(cwd: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Get git repository root directory.

    Returns:
        Git root path or None if not in a git repo
    """
    try:
        result = run_command("git rev-parse --show-toplevel", cwd=cwd, check=True)
        return Path(result.stdout.strip())
    except ShellError:
        return None


def is_inside_git_repo(cwd: Optional[Union[str, Path]] = None) -> bool:
    """Check whether cwd is inside a git work tree."""
    try:
        result = run_command("git rev-parse --is-inside-work-tree", cwd=cwd, check=True)
        return result.stdout.strip() == "true"
    except ShellError:
        return False


def get_current_branch(cwd: Optional[Union[str, Path]] = None) -> Optional[str]:
    """Get current git branch name.

    Returns:
        Current branch name or None if not in a git repo
    """
    try:
        result = run_command("git rev-parse --abbrev-ref HEAD", cwd=cwd, check=True)
        return result.stdout.strip() or None
    except ShellError:
        return None


def get_remote_url(cwd: Optional[Union[str, Path]] = None) -> Optional[str]:
    """Get the URL of the ``origin`` remote."""
    try:
        result = run_command("git config --get remote.origin.url", cwd=cwd, check=True)
        return result.stdout.strip() or None
    except ShellError:
        return None
