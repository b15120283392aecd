"""Emoji used in log lines and formatted titles."""

from repo_copilot.models import Labels

DEFAULT_TASK_EMOJI = "🔹"
DEFAULT_TITLE_EMOJI = "🤖"

TITLE_EMOJIS = ("🔥", "🚀", "📝", "🔧", "🐛", "✨", "🆘", "❓", DEFAULT_TITLE_EMOJI)

TASK_EMOJIS = {
    "MoveIssueToInProgressUseCase": "📋",
    "CheckPriorityIssueSizeUseCase": "🎯",
    "CheckPriorityPullRequestSizeUseCase": "🎯",
    "UpdateTitleUseCase": "✏️",
    "UpdatePullRequestTitleUseCase": "✏️",
    "SetIssueTypeUseCase": "🏷️",
    "InitialSetupUseCase": "⚙️",
    "ThinkUseCase": "🤔",
    "CheckProgressUseCase": "📊",
    "RecommendStepsUseCase": "📋",
    "DetectPotentialProblemsUseCase": "🐛",
}


def get_task_emoji(task_id: str) -> str:
    """Emoji shown when a use case starts."""
    return TASK_EMOJIS.get(task_id, DEFAULT_TASK_EMOJI)


def get_title_emoji(labels: Labels) -> str:
    """Emoji for the first matching label category.

    Categories are checked in a fixed order: hotfix, release, docs, chore,
    bugfix, feature, help, question.
    """
    if labels.is_hotfix:
        return "🔥"
    if labels.is_release:
        return "🚀"
    if labels.is_docs:
        return "📝"
    if labels.is_chore:
        return "🔧"
    if labels.is_bugfix:
        return "🐛"
    if labels.is_feature:
        return "✨"
    if labels.is_help:
        return "🆘"
    if labels.is_question:
        return "❓"
    return DEFAULT_TITLE_EMOJI
