"""Process-level failure flag.

Steps that must not abort the pipeline record their failure here; the CLI
turns a recorded failure into a non-zero exit code once the run is over.
"""

from typing import Optional

from repo_copilot.utils.logger import get_logger

logger = get_logger(__name__)

_failed = False
_messages: list[str] = []


def set_failed(message: Optional[str] = None) -> None:
    """Mark the current run as failed."""
    global _failed
    _failed = True
    if message:
        _messages.append(message)
        logger.error(message)


def has_failed() -> bool:
    """Whether any step marked the run as failed."""
    return _failed


def failure_messages() -> list[str]:
    """Messages recorded with set_failed."""
    return list(_messages)


def reset() -> None:
    """Clear the failure flag."""
    global _failed
    _failed = False
    _messages.clear()
