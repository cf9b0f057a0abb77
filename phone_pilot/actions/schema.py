"""Typed action variants and validation of serialized action payloads."""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

METADATA_FINISH = "finish"
METADATA_DO = "do"


@dataclass(frozen=True)
class FinishAction:
    message: str = ""


@dataclass(frozen=True)
class TapAction:
    x: int
    y: int
    note: Optional[str] = None


@dataclass(frozen=True)
class TypeAction:
    text: str


@dataclass(frozen=True)
class SwipeAction:
    start_x: int
    start_y: int
    end_x: int
    end_y: int


@dataclass(frozen=True)
class LongPressAction:
    x: int
    y: int


@dataclass(frozen=True)
class DoubleTapAction:
    x: int
    y: int


@dataclass(frozen=True)
class LaunchAction:
    app_name: str


@dataclass(frozen=True)
class BackAction:
    pass


@dataclass(frozen=True)
class HomeAction:
    pass


@dataclass(frozen=True)
class WaitAction:
    duration_ms: int


@dataclass(frozen=True)
class TakeOverAction:
    message: str


@dataclass(frozen=True)
class NoteAction:
    message: str


@dataclass(frozen=True)
class CallApiAction:
    instruction: str


@dataclass(frozen=True)
class InteractAction:
    pass


@dataclass(frozen=True)
class UnknownAction:
    raw_type: str


Action = Union[
    FinishAction,
    TapAction,
    TypeAction,
    SwipeAction,
    LongPressAction,
    DoubleTapAction,
    LaunchAction,
    BackAction,
    HomeAction,
    WaitAction,
    TakeOverAction,
    NoteAction,
    CallApiAction,
    InteractAction,
    UnknownAction,
]

# normalized spelling -> canonical action name used in serialized payloads
ACTION_ALIASES: Dict[str, str] = {
    "tap": "Tap",
    "click": "Tap",
    "type": "Type",
    "type name": "Type",
    "swipe": "Swipe",
    "long press": "Long Press",
    "longpress": "Long Press",
    "double tap": "Double Tap",
    "doubletap": "Double Tap",
    "launch": "Launch",
    "back": "Back",
    "home": "Home",
    "wait": "Wait",
    "take over": "Take_over",
    "takeover": "Take_over",
    "note": "Note",
    "call api": "Call_API",
    "interact": "Interact",
    "finish": "finish",
}

DEFAULT_WAIT_MS = 1000

_DURATION_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(ms|milliseconds?|毫秒|s|secs?|seconds?|秒)?",
    re.IGNORECASE,
)


def canonical_action_name(name: str) -> Optional[str]:
    """Map any accepted spelling of an action name to its canonical form."""
    key = re.sub(r"[\s_\-]+", " ", name.strip().lower())
    return ACTION_ALIASES.get(key)


def parse_duration(value: Any) -> int:
    """
    Parse a wait duration into milliseconds.

    Bare numbers are seconds. Strings accept "3 seconds", "3秒", "1.5s" and
    "500ms". Anything unreadable yields one second.
    """
    if isinstance(value, bool) or value is None:
        return DEFAULT_WAIT_MS
    if isinstance(value, (int, float)):
        return max(0, int(value * 1000))
    match = _DURATION_PATTERN.search(str(value))
    if not match:
        return DEFAULT_WAIT_MS
    amount = float(match.group(1))
    unit = (match.group(2) or "s").lower()
    if unit in ("ms", "millisecond", "milliseconds", "毫秒"):
        return int(amount)
    return int(amount * 1000)


def _coerce_point(value: Any) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    if isinstance(value, str):
        numbers = re.findall(r"-?\d+(?:\.\d+)?", value)
        if len(numbers) < 2:
            return None
        return int(float(numbers[0])), int(float(numbers[1]))
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        try:
            return int(float(value[0])), int(float(value[1]))
        except (TypeError, ValueError):
            return None
    return None


class ActionPayload(BaseModel):
    """Serialized action as produced by the decoder."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    metadata: str = Field(default="", alias="_metadata")
    action: Optional[str] = None
    element: Optional[Tuple[int, int]] = None
    start: Optional[Tuple[int, int]] = None
    end: Optional[Tuple[int, int]] = None
    x: Optional[int] = None
    y: Optional[int] = None
    text: Optional[str] = None
    app: Optional[str] = None
    message: Optional[str] = None
    instruction: Optional[str] = None
    duration: Any = None

    @model_validator(mode="before")
    @classmethod
    def _infer_metadata(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("action payload must be an object")
        if not data.get("_metadata") and data.get("action"):
            data = dict(data)
            data["_metadata"] = METADATA_DO
        return data

    @field_validator("element", "start", "end", mode="before")
    @classmethod
    def _point(cls, value: Any) -> Optional[Tuple[int, int]]:
        return _coerce_point(value)

    @field_validator("x", "y", mode="before")
    @classmethod
    def _number(cls, value: Any) -> Optional[int]:
        try:
            return int(float(value)) if value is not None else None
        except (TypeError, ValueError):
            return None

    @field_validator("action", "text", "app", "message", "instruction", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False)

    def point(self) -> Optional[Tuple[int, int]]:
        if self.element is not None:
            return self.element
        if self.x is not None and self.y is not None:
            return self.x, self.y
        return None

    def to_action(self) -> Action:
        """Map the payload onto one typed action variant.

        Raises:
            ValueError: A positional action is missing its coordinates.
        """
        if self.metadata == METADATA_FINISH:
            return FinishAction(self.message or "")
        if self.metadata != METADATA_DO:
            return UnknownAction(self.metadata)

        raw_name = self.action or ""
        name = canonical_action_name(raw_name)
        if name is None:
            return UnknownAction(raw_name)
        if name == "finish":
            return FinishAction(self.message or "")
        if name == "Tap":
            x, y = self._require_point(name)
            return TapAction(x, y, note=self.message)
        if name == "Long Press":
            x, y = self._require_point(name)
            return LongPressAction(x, y)
        if name == "Double Tap":
            x, y = self._require_point(name)
            return DoubleTapAction(x, y)
        if name == "Swipe":
            if self.start is None or self.end is None:
                raise ValueError("Swipe requires start and end coordinates")
            return SwipeAction(self.start[0], self.start[1], self.end[0], self.end[1])
        if name == "Type":
            return TypeAction(self.text or "")
        if name == "Launch":
            return LaunchAction(self.app or "")
        if name == "Back":
            return BackAction()
        if name == "Home":
            return HomeAction()
        if name == "Wait":
            return WaitAction(parse_duration(self.duration))
        if name == "Take_over":
            return TakeOverAction(self.message or "")
        if name == "Note":
            return NoteAction(self.message or "True")
        if name == "Call_API":
            return CallApiAction(self.instruction or "")
        return InteractAction()

    def _require_point(self, name: str) -> Tuple[int, int]:
        point = self.point()
        if point is None:
            raise ValueError(f"{name} requires element coordinates")
        return point


def parse_action(serialized: str) -> Action:
    """
    Parse a serialized action into its typed variant.

    Args:
        serialized: JSON object text produced by the decoder.

    Returns:
        The typed action.

    Raises:
        ValueError: The payload is not valid JSON or misses required fields.
    """
    data = json.loads(serialized)
    return ActionPayload.model_validate(data).to_action()


def finish(message: str) -> str:
    """Serialized finish action."""
    return json.dumps({"_metadata": METADATA_FINISH, "message": message}, ensure_ascii=False)


def do(action: str, **params: Any) -> str:
    """Serialized do(...) action."""
    payload: Dict[str, Any] = {"_metadata": METADATA_DO, "action": action}
    payload.update(params)
    return json.dumps(payload, ensure_ascii=False)
