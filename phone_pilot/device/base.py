"""Collaborator interfaces consumed by the agent loop and the dispatcher."""

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

GestureCallback = Callable[[bool], None]


@dataclass
class Screenshot:
    """Represents a captured screenshot."""

    base64_data: str
    width: int
    height: int


class DeviceControl(Protocol):
    """
    Device control surface.

    Positional primitives take absolute pixel coordinates, return whether the
    gesture was accepted for dispatch, and report completion later through
    ``callback``.
    """

    def is_connected(self) -> bool: ...

    def screen_size(self) -> Tuple[int, int]: ...

    def tap(self, x: int, y: int, callback: GestureCallback) -> bool: ...

    def long_press(self, x: int, y: int, duration_ms: int, callback: GestureCallback) -> bool: ...

    def double_tap(self, x: int, y: int, callback: GestureCallback) -> bool: ...

    def swipe(
        self, x1: int, y1: int, x2: int, y2: int, duration_ms: int, callback: GestureCallback
    ) -> bool: ...

    def type_text(self, text: str) -> bool: ...

    def clear_text(self) -> bool: ...

    def back(self) -> bool: ...

    def home(self) -> bool: ...

    def launch_app(self, target: str) -> bool: ...

    def current_app_display_name(self) -> str: ...

    def structured_screen_dump(self) -> str: ...


class ScreenCapture(Protocol):
    """Screen capture resource, owned by one task at a time."""

    def initialize(self) -> None: ...

    def capture_frame(self) -> Optional[Screenshot]: ...

    def release(self) -> None: ...


class AppResolver(Protocol):
    def resolve(self, display_name: str) -> Optional[str]: ...

    def suggest_similar(self, display_name: str, limit: int = 5) -> List[Tuple[str, str]]: ...


class ObserverSink(Protocol):
    """Consumer of loop progress: one StepResult per step, one notification per takeover."""

    def on_step(self, result) -> None: ...

    def on_intervention(self, message: str) -> None: ...
