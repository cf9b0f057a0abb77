"""Core types shared by the agent loop, the context store and the dispatcher."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ObservationMode(str, Enum):
    """Which screen sources each step observes."""

    VISION = "vision"  # screenshot only
    ACCESSIBILITY = "accessibility"  # structured screen dump only
    HYBRID = "hybrid"  # both

    @property
    def needs_capture(self) -> bool:
        return self in (ObservationMode.VISION, ObservationMode.HYBRID)

    @property
    def needs_dump(self) -> bool:
        return self in (ObservationMode.ACCESSIBILITY, ObservationMode.HYBRID)

    @classmethod
    def parse(cls, value: Union[str, "ObservationMode"]) -> "ObservationMode":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class AgentRunState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    STEPPING = "stepping"
    AWAITING_INTERVENTION = "awaiting_intervention"
    FINISHED = "finished"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AgentRunState.FINISHED, AgentRunState.STOPPED, AgentRunState.FAILED)


@dataclass(frozen=True)
class ContentItem:
    """One part of a multi-part message: text or an embedded image."""

    kind: str  # "text" | "image_url"
    text: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.kind == "image_url"

    def size(self) -> int:
        if self.is_image:
            return len(self.image_url or "")
        return len(self.text or "")


def text_item(text: str) -> ContentItem:
    return ContentItem(kind="text", text=text)


def image_item(base64_data: str, mime_type: str = "image/png") -> ContentItem:
    return ContentItem(kind="image_url", image_url=f"data:{mime_type};base64,{base64_data}")


@dataclass
class Message:
    """A conversation message. Content is plain text or an ordered list of parts."""

    role: Role
    content: Union[str, List[ContentItem]]

    def size(self) -> int:
        if isinstance(self.content, str):
            return len(self.content)
        return sum(item.size() for item in self.content)

    def has_image(self) -> bool:
        if isinstance(self.content, str):
            return False
        return any(item.is_image for item in self.content)

    def text_parts(self) -> List[str]:
        if isinstance(self.content, str):
            return [self.content]
        return [item.text for item in self.content if not item.is_image and item.text]

    def without_images(self, placeholder: str) -> "Message":
        """Copy of this message with image parts removed.

        An image-only message collapses to ``placeholder`` so the turn stays
        visible in the history.
        """
        if isinstance(self.content, str) or not self.has_image():
            return self
        kept = [item for item in self.content if not item.is_image]
        if not kept:
            return Message(self.role, placeholder)
        return Message(self.role, kept)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: Union[str, List[ContentItem]]) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(Role.ASSISTANT, content)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one completed loop iteration, handed to the observer sink."""

    success: bool
    finished: bool
    thinking: str
    action_text: str
    message: Optional[str] = None


@dataclass(frozen=True)
class ActionResult:
    """The dispatcher's verdict for one executed action."""

    success: bool
    should_finish: bool = False
    requires_takeover: bool = False
    message: Optional[str] = None
    device_unavailable: bool = False

    @classmethod
    def ok(cls, message: Optional[str] = None) -> "ActionResult":
        return cls(success=True, message=message)

    @classmethod
    def finished(cls, message: Optional[str]) -> "ActionResult":
        return cls(success=True, should_finish=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "ActionResult":
        return cls(success=False, message=message)

    @classmethod
    def takeover(cls, message: str) -> "ActionResult":
        return cls(success=True, requires_takeover=True, message=message)

    @classmethod
    def unavailable(cls, message: str) -> "ActionResult":
        return cls(success=False, message=message, device_unavailable=True)


@dataclass
class TaskOutcome:
    """Final state of a task, kept after the worker exits."""

    state: AgentRunState
    message: str
    steps: int = 0
    step_results: List[StepResult] = field(default_factory=list)
