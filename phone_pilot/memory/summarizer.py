"""Auxiliary model request that condenses older history into a summary."""

import logging
from typing import List, Optional

from phone_pilot.config.i18n import get_message
from phone_pilot.types import Message, Role

logger = logging.getLogger(__name__)


class HistorySummarizer:
    """Summarizes the older part of a conversation with one auxiliary model request."""

    def __init__(self, model_client, lang: str = "cn") -> None:
        self.model_client = model_client
        self.lang = lang
        self.last_summary: Optional[str] = None

    def summarize(self, messages: List[Message]) -> str:
        """
        Summarize ``messages`` into a short text. Never raises.

        Image parts are ignored. When none of the messages carry text no
        request is made and a step count summary is returned instead.
        """
        transcript = self.transcript(messages)
        if not transcript.strip():
            logger.warning("History to compress has no text content, using a step count summary")
            return get_message("summary_blank", self.lang, steps=len(messages) // 2)

        request = [
            Message.system(get_message("summary_system", self.lang)),
            Message.user(get_message("summary_instruction", self.lang, history=transcript)),
        ]
        try:
            response = self.model_client.request(request)
            summary = (response.raw_content or "").strip()
            if not summary:
                raise ValueError("empty summary")
        except Exception:
            logger.exception("History summarization failed, using fallback summary")
            steps = sum(1 for message in messages if message.role == Role.USER)
            return get_message("summary_fallback", self.lang, steps=steps)

        logger.debug("History summarized into %d chars: %.300s", len(summary), summary)
        self.last_summary = summary
        return summary

    def transcript(self, messages: List[Message]) -> str:
        lines = []
        for message in messages:
            text = "\n".join(part for part in message.text_parts() if part)
            if not text.strip():
                continue
            if message.role == Role.USER:
                label = get_message("role_user", self.lang)
            elif message.role == Role.ASSISTANT:
                label = get_message("role_assistant", self.lang)
            else:
                label = message.role.value
            lines.append(f"{label}: {text}")
        return "\n\n".join(lines)
