"""Use cases run by the copilot pipelines."""

from repo_copilot.workflows.base import UseCase, github_client
from repo_copilot.workflows.check_priority_size import (
    CheckPriorityIssueSizeUseCase,
    CheckPriorityPullRequestSizeUseCase,
    board_priority,
)
from repo_copilot.workflows.check_progress import CheckProgressUseCase, round_progress
from repo_copilot.workflows.detect_problems import DetectPotentialProblemsUseCase
from repo_copilot.workflows.initial_setup import InitialSetupUseCase
from repo_copilot.workflows.move_issue_to_in_progress import MoveIssueToInProgressUseCase
from repo_copilot.workflows.recommend_steps import RecommendStepsUseCase
from repo_copilot.workflows.set_issue_type import SetIssueTypeUseCase
from repo_copilot.workflows.think import ThinkUseCase
from repo_copilot.workflows.update_title import UpdatePullRequestTitleUseCase, UpdateTitleUseCase

__all__ = [
    "UseCase",
    "github_client",
    # Project boards
    "MoveIssueToInProgressUseCase",
    "CheckPriorityIssueSizeUseCase",
    "CheckPriorityPullRequestSizeUseCase",
    "board_priority",
    # Issue metadata
    "UpdateTitleUseCase",
    "UpdatePullRequestTitleUseCase",
    "SetIssueTypeUseCase",
    # Setup
    "InitialSetupUseCase",
    # AI
    "ThinkUseCase",
    "CheckProgressUseCase",
    "round_progress",
    "RecommendStepsUseCase",
    "DetectPotentialProblemsUseCase",
]
