"""Conversation history for one task and its compression policy."""

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from phone_pilot.config.i18n import get_message
from phone_pilot.types import Message, Role

from .summarizer import HistorySummarizer

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_THRESHOLD = 4_000_000
DEFAULT_MIN_MESSAGES_TO_KEEP = 4


@dataclass
class ContextState:
    """Per-task state: the ordered history plus the loop's bookkeeping counters."""

    task: str = ""
    messages: List[Message] = field(default_factory=list)
    step_count: int = 0
    consecutive_failures: int = 0
    last_failed_action: Optional[str] = None
    compressed_history: Optional[str] = None
    # length of the whole failure streak; the re-plan hint resets consecutive_failures only
    failure_streak: int = 0

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.failure_streak = 0
        self.last_failed_action = None

    def record_failure(self, action_text: str) -> None:
        self.consecutive_failures += 1
        self.failure_streak += 1
        self.last_failed_action = action_text


class ContextStore:
    """
    Owns the message history of the running task.

    Args:
        summarizer: Summarizes the older messages when the history is compressed.
            Without one, compression falls back to a step count summary.
        min_messages_to_keep: Number of most recent non-system messages kept
            verbatim by compression.
        lang: Language of the synthetic summary message.
    """

    def __init__(
        self,
        summarizer: Optional[HistorySummarizer] = None,
        min_messages_to_keep: int = DEFAULT_MIN_MESSAGES_TO_KEEP,
        lang: str = "cn",
    ):
        self.summarizer = summarizer
        self.min_messages_to_keep = max(1, min_messages_to_keep)
        self.lang = lang
        self.state = ContextState()
        self._lock = threading.RLock()

    def reset(self, task: str) -> ContextState:
        """Discard the previous task's state and start a new one."""
        with self._lock:
            self.state = ContextState(task=task)
            return self.state

    def append(self, message: Message) -> None:
        with self._lock:
            self.state.messages.append(message)

    @property
    def messages(self) -> List[Message]:
        with self._lock:
            return list(self.state.messages)

    def __len__(self) -> int:
        return len(self.state.messages)

    def size_estimate(self, messages: Optional[List[Message]] = None) -> int:
        """Character length of all text plus the encoded length of every image."""
        if messages is None:
            messages = self.messages
        return sum(message.size() for message in messages)

    def image_message_count(self) -> int:
        return sum(1 for message in self.messages if message.has_image())

    def strip_latest_image(self, placeholder: Optional[str] = None) -> bool:
        """
        Remove the image parts of the most recent user message that has any.

        Returns:
            True if an image was removed.
        """
        if placeholder is None:
            placeholder = get_message("image_removed", self.lang)
        with self._lock:
            messages = self.state.messages
            for index in range(len(messages) - 1, -1, -1):
                message = messages[index]
                if message.role != Role.USER or not message.has_image():
                    continue
                messages[index] = message.without_images(placeholder)
                logger.debug("Removed image from message %d", index)
                return True
        return False

    def compressed(self, threshold: int = DEFAULT_CONTEXT_THRESHOLD) -> List[Message]:
        """
        Return the history to send, compressing it first when it exceeds ``threshold``.

        Compression keeps the system message and the most recent
        ``min_messages_to_keep`` non-system messages verbatim, and replaces
        everything in between with one summary message. The stored history is
        replaced by the compressed form. The result is never larger than the
        history it was computed from.
        """
        snapshot = self.messages
        current_size = self.size_estimate(snapshot)
        if current_size <= threshold:
            return snapshot

        logger.warning(
            "Context size %d exceeds threshold %d, compressing", current_size, threshold
        )
        system = next((m for m in snapshot if m.role == Role.SYSTEM), None)
        others = [m for m in snapshot if m.role != Role.SYSTEM]
        keep = min(self.min_messages_to_keep, len(others))
        recent = others[len(others) - keep:]
        old = others[:len(others) - keep]

        if not old:
            logger.warning(
                "Nothing old enough to compress; a single message is too large (%d chars)",
                current_size,
            )
            return snapshot

        logger.debug("Compressing %d messages, keeping %d", len(old), len(recent))
        summary_message = self._summary_message(old)

        result: List[Message] = []
        if system is not None:
            result.append(system)
        if summary_message is not None:
            result.append(summary_message)
        result.extend(recent)

        with self._lock:
            # keep anything appended while the summary request was in flight
            appended = self.state.messages[len(snapshot):]
            self.state.messages = result + appended

        new_size = self.size_estimate(result)
        logger.info(
            "Context compressed: %d -> %d chars, %d -> %d messages",
            current_size,
            new_size,
            len(snapshot),
            len(result),
        )
        if new_size > threshold:
            logger.warning(
                "Context still exceeds threshold after compression (%d > %d); "
                "the latest observation is probably too large",
                new_size,
                threshold,
            )
        return result

    def _summary_message(self, old: List[Message]) -> Optional[Message]:
        if self.summarizer is not None:
            summary = self.summarizer.summarize(old)
        else:
            steps = sum(1 for m in old if m.role == Role.USER)
            summary = get_message("summary_fallback", self.lang, steps=steps)
        self.state.compressed_history = summary

        budget = sum(m.size() for m in old)
        overhead = len(get_message("history_summary", self.lang, summary=""))
        if overhead + len(summary) > budget:
            room = budget - overhead
            if room <= 0:
                logger.warning("Summary does not fit in the replaced segment, dropping it")
                return None
            summary = summary[:room]
        return Message.user(get_message("history_summary", self.lang, summary=summary))
