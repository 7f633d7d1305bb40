"""External model runner."""

from autobot.runner.claude import ClaudeRunner, ClaudeTaskResult, project_key

__all__ = ["ClaudeRunner", "ClaudeTaskResult", "project_key"]
