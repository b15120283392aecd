"""Copilot - GitHub repository automation bot.

A Python-based CLI tool that keeps issues, pull requests and project boards
tidy (labels, titles, priorities, issue types) and drives an OpenCode AI agent
for analysis, progress checks and code changes.
"""

__version__ = "0.1.0"
__author__ = "trobanga"
