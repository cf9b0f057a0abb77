"""Action dispatcher: executes decoded actions against the device control surface."""

import logging
import time
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Union

from phone_pilot.device.base import AppResolver, DeviceControl, GestureCallback
from phone_pilot.errors import DeviceUnavailableError
from phone_pilot.types import ActionResult

from .coordinates import to_absolute
from .schema import (
    Action,
    BackAction,
    CallApiAction,
    DoubleTapAction,
    FinishAction,
    HomeAction,
    InteractAction,
    LaunchAction,
    LongPressAction,
    NoteAction,
    SwipeAction,
    TakeOverAction,
    TapAction,
    TypeAction,
    UnknownAction,
    WaitAction,
    parse_action,
)

logger = logging.getLogger(__name__)

INTERACT_MESSAGE = "Several options match the request; the user has to choose one manually."


@dataclass
class DispatchTimings:
    """Completion bounds and settle delays, in seconds unless noted."""

    tap_timeout: float = 1.0
    long_press_timeout: float = 2.0
    double_tap_timeout: float = 1.5
    swipe_timeout: float = 3.0
    long_press_ms: int = 500
    swipe_ms: int = 300
    tap_settle: float = 0.3
    type_settle: float = 1.0
    launch_settle: float = 2.0
    key_settle: float = 0.3

    @classmethod
    def immediate(cls) -> "DispatchTimings":
        """Timings without settle delays, for dry runs and tests."""
        return cls(tap_settle=0.0, type_settle=0.0, launch_settle=0.0, key_settle=0.0)


class ActionHandler:
    """
    Executes actions and converts every outcome into an ActionResult.

    Positional gestures wait for the device's completion callback for a
    bounded time. When the callback never fires the gesture is reported as
    successful: the device accepted it for dispatch, and callbacks on some
    platforms are unreliable. This can hide a gesture that silently failed.

    Args:
        device: Device control surface.
        app_resolver: Resolves app display names for Launch.
        timings: Completion bounds and settle delays.
        sleep: Called for settle delays and Wait actions. The agent passes an
            interruptible sleeper so a stop request cuts waits short.
    """

    def __init__(
        self,
        device: DeviceControl,
        app_resolver: Optional[AppResolver] = None,
        timings: Optional[DispatchTimings] = None,
        sleep: Callable[[float], object] = time.sleep,
    ):
        self.device = device
        self.app_resolver = app_resolver
        self.timings = timings or DispatchTimings()
        self._sleep = sleep
        self._handlers = {
            FinishAction: self._handle_finish,
            TapAction: self._handle_tap,
            TypeAction: self._handle_type,
            SwipeAction: self._handle_swipe,
            LongPressAction: self._handle_long_press,
            DoubleTapAction: self._handle_double_tap,
            LaunchAction: self._handle_launch,
            BackAction: self._handle_back,
            HomeAction: self._handle_home,
            WaitAction: self._handle_wait,
            TakeOverAction: self._handle_takeover,
            NoteAction: self._handle_note,
            CallApiAction: self._handle_call_api,
            InteractAction: self._handle_interact,
            UnknownAction: self._handle_unknown,
        }

    def execute(
        self, action: Union[str, Action], screen_width: int, screen_height: int
    ) -> ActionResult:
        """
        Execute one action.

        Args:
            action: Serialized action from the decoder, or a typed action.
            screen_width: Device width in pixels.
            screen_height: Device height in pixels.

        Returns:
            ActionResult. Never raises.
        """
        try:
            if isinstance(action, str):
                action = parse_action(action)
            handler = self._handlers.get(type(action))
            if handler is None:
                return ActionResult.failure(f"Unsupported action: {type(action).__name__}")
            result = handler(action, screen_width, screen_height)
        except DeviceUnavailableError as e:
            logger.error("Device unavailable: %s", e)
            return self._unavailable()
        except Exception as e:
            logger.exception("Action execution failed")
            return ActionResult.failure(f"Action execution failed: {e}")

        logger.debug(
            "Executed %s: success=%s finish=%s takeover=%s",
            type(action).__name__,
            result.success,
            result.should_finish,
            result.requires_takeover,
        )
        return result

    def _handle_finish(self, action: FinishAction, width: int, height: int) -> ActionResult:
        return ActionResult.finished(action.message)

    def _handle_tap(self, action: TapAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        x, y = to_absolute(action.x, action.y, width, height)
        logger.info("Tap relative (%d, %d) -> absolute (%d, %d)", action.x, action.y, x, y)
        ok = self._await_gesture(
            "tap", lambda done: self.device.tap(x, y, done), self.timings.tap_timeout
        )
        self._sleep(self.timings.tap_settle)
        if ok:
            return ActionResult.ok(f"Tapped ({x}, {y})")
        return ActionResult.failure(
            f"Tap failed at ({x}, {y}): invalid coordinates or gesture dispatch rejected"
        )

    def _handle_long_press(self, action: LongPressAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        x, y = to_absolute(action.x, action.y, width, height)
        duration = self.timings.long_press_ms
        ok = self._await_gesture(
            "long press",
            lambda done: self.device.long_press(x, y, duration, done),
            self.timings.long_press_timeout,
        )
        self._sleep(self.timings.tap_settle)
        if ok:
            return ActionResult.ok(f"Long pressed ({x}, {y})")
        return ActionResult.failure(f"Long press failed at ({x}, {y})")

    def _handle_double_tap(self, action: DoubleTapAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        x, y = to_absolute(action.x, action.y, width, height)
        ok = self._await_gesture(
            "double tap",
            lambda done: self.device.double_tap(x, y, done),
            self.timings.double_tap_timeout,
        )
        self._sleep(self.timings.tap_settle)
        if ok:
            return ActionResult.ok(f"Double tapped ({x}, {y})")
        return ActionResult.failure(f"Double tap failed at ({x}, {y})")

    def _handle_swipe(self, action: SwipeAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        x1, y1 = to_absolute(action.start_x, action.start_y, width, height)
        x2, y2 = to_absolute(action.end_x, action.end_y, width, height)
        duration = self.timings.swipe_ms
        ok = self._await_gesture(
            "swipe",
            lambda done: self.device.swipe(x1, y1, x2, y2, duration, done),
            self.timings.swipe_timeout,
        )
        self._sleep(self.timings.tap_settle)
        if ok:
            return ActionResult.ok(f"Swiped ({x1}, {y1}) -> ({x2}, {y2})")
        return ActionResult.failure(
            f"Swipe failed ({x1}, {y1}) -> ({x2}, {y2}): gesture dispatch rejected"
        )

    def _handle_type(self, action: TypeAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        if not self.device.clear_text():
            logger.warning("Could not clear the focused field before typing")
        ok = self.device.type_text(action.text)
        self._sleep(self.timings.type_settle)
        if ok:
            preview = action.text[:30] + ("..." if len(action.text) > 30 else "")
            return ActionResult.ok(f"Typed: {preview}")
        return ActionResult.failure("Text input failed; make sure an input field is focused")

    def _handle_launch(self, action: LaunchAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        if self.app_resolver is None:
            return ActionResult.failure(f"Cannot launch {action.app_name}: no app resolver")

        target = self.app_resolver.resolve(action.app_name)
        if target is None:
            similar = self.app_resolver.suggest_similar(action.app_name, limit=5)
            if similar:
                suggestions = "\n\nSimilar apps:\n" + "\n".join(
                    f"{label} ({package})" for label, package in similar
                )
            else:
                suggestions = "\n\nHint: check the app name or use its exact display name."
            return ActionResult.failure(f"App not found: {action.app_name}.{suggestions}")

        ok = self.device.launch_app(target)
        self._sleep(self.timings.launch_settle)
        if ok:
            return ActionResult.ok(f"Launched {action.app_name} ({target})")
        return ActionResult.failure(f"Failed to launch {action.app_name} ({target})")

    def _handle_back(self, action: BackAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        ok = self.device.back()
        self._sleep(self.timings.key_settle)
        return ActionResult(success=ok, message=None if ok else "Back key failed")

    def _handle_home(self, action: HomeAction, width: int, height: int) -> ActionResult:
        if not self.device.is_connected():
            return self._unavailable()
        ok = self.device.home()
        self._sleep(self.timings.key_settle)
        return ActionResult(success=ok, message=None if ok else "Home key failed")

    def _handle_wait(self, action: WaitAction, width: int, height: int) -> ActionResult:
        self._sleep(action.duration_ms / 1000.0)
        return ActionResult.ok()

    def _handle_takeover(self, action: TakeOverAction, width: int, height: int) -> ActionResult:
        logger.warning("Takeover requested: %s", action.message)
        return ActionResult.takeover(action.message)

    def _handle_note(self, action: NoteAction, width: int, height: int) -> ActionResult:
        return ActionResult.ok("Page content noted")

    def _handle_call_api(self, action: CallApiAction, width: int, height: int) -> ActionResult:
        return ActionResult.ok(f"API call completed: {action.instruction}")

    def _handle_interact(self, action: InteractAction, width: int, height: int) -> ActionResult:
        return ActionResult.takeover(INTERACT_MESSAGE)

    def _handle_unknown(self, action: UnknownAction, width: int, height: int) -> ActionResult:
        return ActionResult.failure(f"Unknown action: {action.raw_type}")

    def _await_gesture(
        self,
        name: str,
        dispatch: Callable[[GestureCallback], bool],
        timeout: float,
    ) -> bool:
        future: Future = Future()

        def on_done(result: bool) -> None:
            if future.done():
                return
            try:
                future.set_result(bool(result))
            except InvalidStateError:
                pass

        if not dispatch(on_done):
            logger.error("Device rejected %s dispatch", name)
            return False
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            logger.warning(
                "No %s completion within %.1fs; the gesture was dispatched, assuming success",
                name,
                timeout,
            )
            return True

    def _unavailable(self) -> ActionResult:
        return ActionResult.unavailable(
            "Device control is not connected; enable the control service and retry"
        )
