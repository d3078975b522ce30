"""Prompt and UI utilities."""

from psasctl.core.utils.prompt.prompt import PromptHandler, console

__all__ = ["console", "PromptHandler"]
