"""LLM prompts for various tasks."""

from llmstxt.prompts.page_enhancement import PAGE_ENHANCEMENT_PROMPT

__all__ = [
    "PAGE_ENHANCEMENT_PROMPT",
]
