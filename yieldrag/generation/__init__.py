"""Generation module - system prompt building."""
from .prompt_builder import PromptBuilder, PromptResult

__all__ = [
    "PromptBuilder",
    "PromptResult",
]
