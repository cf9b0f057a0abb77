"""Configuration module for phone_pilot."""

from .i18n import get_message, get_messages
from .prompts_en import SYSTEM_PROMPT as SYSTEM_PROMPT_EN
from .prompts_zh import SYSTEM_PROMPT as SYSTEM_PROMPT_ZH


def get_system_prompt(lang: str = "cn") -> str:
    """
    Get system prompt by language.

    Args:
        lang: Language code, 'cn' for Chinese, 'en' for English.

    Returns:
        System prompt string.
    """
    if lang == "en":
        return SYSTEM_PROMPT_EN
    return SYSTEM_PROMPT_ZH


__all__ = [
    "SYSTEM_PROMPT_EN",
    "SYSTEM_PROMPT_ZH",
    "get_system_prompt",
    "get_message",
    "get_messages",
]
