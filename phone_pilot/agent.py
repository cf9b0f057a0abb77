"""Main PhoneAgent class for orchestrating phone automation."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from phone_pilot.actions import ActionHandler, DispatchTimings, decode_action, is_finish
from phone_pilot.config import get_message, get_messages, get_system_prompt
from phone_pilot.device.base import AppResolver, DeviceControl, ObserverSink, ScreenCapture
from phone_pilot.errors import PhonePilotError
from phone_pilot.memory import ContextStore, HistorySummarizer
from phone_pilot.memory.context import DEFAULT_CONTEXT_THRESHOLD, DEFAULT_MIN_MESSAGES_TO_KEEP
from phone_pilot.model.client import MessageBuilder
from phone_pilot.trace_logger import TraceLogger
from phone_pilot.types import (
    ActionResult,
    AgentRunState,
    Message,
    ObservationMode,
    StepResult,
    TaskOutcome,
)

logger = logging.getLogger(__name__)


@dataclass
class AgentConfig:
    """Configuration for the PhoneAgent."""

    observation_mode: Union[ObservationMode, str] = ObservationMode.VISION
    # 0 means no cap: the task runs until finish, stop, or a fatal error
    max_steps: int = 0
    step_delay: float = 0.8
    intervention_wait: float = 5.0
    context_threshold: int = DEFAULT_CONTEXT_THRESHOLD
    min_messages_to_keep: int = DEFAULT_MIN_MESSAGES_TO_KEEP
    replan_threshold: int = 2
    takeover_threshold: int = 5
    lang: str = "cn"
    system_prompt: Optional[str] = None
    verbose: bool = True
    timings: DispatchTimings = field(default_factory=DispatchTimings)

    def __post_init__(self):
        self.observation_mode = ObservationMode.parse(self.observation_mode)
        if self.system_prompt is None:
            self.system_prompt = get_system_prompt(self.lang)


@dataclass
class Observation:
    message: Message
    width: int
    height: int
    image_base64: Optional[str] = None
    screen_dump: str = ""


class PhoneAgent:
    """
    AI-powered agent for automating Android phone interactions.

    Each task runs on its own worker thread and loops observe -> plan -> act
    until the model finishes, ``stop()`` is called, the screen cannot be
    observed at all, or the model request fails. Only one task runs at a time.

    Args:
        model_client: Gateway with ``request(messages) -> ModelResponse``.
        device: Device control surface.
        screen_capture: Screenshot source; required for vision and hybrid modes.
        app_resolver: Resolves app display names for Launch.
        agent_config: Configuration for the agent behavior.
        on_step: Called with the StepResult of every completed step.
        on_intervention: Called with the message when the model asks for a human.
        trace_logger: Optional per-step trace writer.
        action_handler: Dispatcher override; built from ``device`` by default.
        observer: Sink supplying both callbacks; explicit callbacks take precedence.

    Example:
        >>> agent = PhoneAgent(ModelClient(ModelConfig(provider="glm")), device, capture)
        >>> agent.run("Open Settings and turn on Wi-Fi", on_complete=print)
        True
    """

    def __init__(
        self,
        model_client,
        device: DeviceControl,
        screen_capture: Optional[ScreenCapture] = None,
        app_resolver: Optional[AppResolver] = None,
        agent_config: Optional[AgentConfig] = None,
        on_step: Optional[Callable[[StepResult], None]] = None,
        on_intervention: Optional[Callable[[str], None]] = None,
        trace_logger: Optional[TraceLogger] = None,
        action_handler: Optional[ActionHandler] = None,
        observer: Optional[ObserverSink] = None,
    ):
        self.config = agent_config or AgentConfig()
        self.model_client = model_client
        self.device = device
        self.screen_capture = screen_capture
        self.on_step = on_step or (observer.on_step if observer is not None else None)
        self.on_intervention = on_intervention or (
            observer.on_intervention if observer is not None else None
        )
        self.trace_logger = trace_logger

        self.context = ContextStore(
            summarizer=HistorySummarizer(model_client, self.config.lang),
            min_messages_to_keep=self.config.min_messages_to_keep,
            lang=self.config.lang,
        )
        self.action_handler = action_handler or ActionHandler(
            device,
            app_resolver=app_resolver,
            timings=self.config.timings,
            sleep=self._sleep,
        )

        self._state = AgentRunState.IDLE
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._capture_held = False
        self._step_results: List[StepResult] = []
        self.outcome: Optional[TaskOutcome] = None

    # ------------------------------------------------------------------ control

    @property
    def state(self) -> AgentRunState:
        return self._state

    @property
    def step_count(self) -> int:
        return self.context.state.step_count

    @property
    def messages(self) -> List[Message]:
        """Copy of the current conversation context."""
        return self.context.messages

    def is_running(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def run(self, task: str, on_complete: Optional[Callable[[str], None]] = None) -> bool:
        """
        Start a task on a worker thread.

        Args:
            task: Natural language description of the task.
            on_complete: Called once with the final message when the task ends,
                from the worker thread.

        Returns:
            False, without side effects, if another task is still live.
        """
        with self._lock:
            if self.is_running() or not (
                self._state == AgentRunState.IDLE or self._state.is_terminal
            ):
                logger.warning("Rejected task %r: agent is %s", task, self._state.value)
                return False
            self._stop_event.clear()
            self._state = AgentRunState.INITIALIZING
            self._step_results = []
            self.outcome = None
            self._worker = threading.Thread(
                target=self._run_task,
                args=(task, on_complete),
                name="phone-pilot-agent",
                daemon=True,
            )
            self._worker.start()
        return True

    def run_sync(self, task: str, timeout: Optional[float] = None) -> str:
        """Run a task and block until it ends. Returns the final message."""
        if not self.run(task):
            raise PhonePilotError(f"Agent is busy ({self._state.value})")
        self.join(timeout)
        if self.outcome is None:
            raise PhonePilotError("Task did not end within the timeout")
        return self.outcome.message

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker. Returns True if no task is running afterwards."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
        return not self.is_running()

    def stop(self) -> None:
        """
        Stop the running task.

        Waits in progress (pacing, intervention, Wait actions) return at once
        and the loop exits at its next check. A gesture already handed to the
        device may still complete.
        """
        with self._lock:
            if self._state == AgentRunState.IDLE or self._state.is_terminal:
                return
            self._state = AgentRunState.STOPPED
        logger.info("Stop requested")
        self._stop_event.set()
        self._release_capture()

    def update_task(self, new_task: str) -> bool:
        """
        Change the task of the running loop without resetting it.

        Returns:
            False if no task is stepping.
        """
        with self._lock:
            if self._state not in (AgentRunState.STEPPING, AgentRunState.AWAITING_INTERVENTION):
                logger.warning("update_task ignored: agent is %s", self._state.value)
                return False
            state = self.context.state
            old_task = state.task
            state.task = new_task
            self.context.append(
                Message.user(
                    get_message("task_updated", self.config.lang, old_task=old_task, new_task=new_task)
                )
            )
        logger.info("Task updated: %r -> %r", old_task, new_task)
        return True

    # ------------------------------------------------------------------ worker

    def _run_task(self, task: str, on_complete: Optional[Callable[[str], None]]) -> None:
        message = ""
        try:
            message = self._execute(task)
        except Exception as e:
            logger.exception("Agent loop crashed")
            message = f"{type(e).__name__}: {e}"
            self._end(AgentRunState.FAILED)
        finally:
            self._release_capture()
            self.outcome = TaskOutcome(
                state=self._state,
                message=message,
                steps=self.context.state.step_count,
                step_results=list(self._step_results),
            )
        logger.info("Task ended: %s (%s)", self._state.value, message)
        if on_complete is not None:
            try:
                on_complete(message)
            except Exception:
                logger.exception("on_complete callback raised")

    def _execute(self, task: str) -> str:
        lang = self.config.lang
        state = self.context.reset(task)

        if self.config.observation_mode.needs_capture:
            error = self._acquire_capture()
            if error is not None:
                self._end(AgentRunState.FAILED)
                return get_message("capture_unavailable", lang, reason=error)

        self.context.append(Message.system(self.config.system_prompt))
        if not self._transition(AgentRunState.STEPPING):
            return get_message("stopped", lang)

        while True:
            if self._stop_event.is_set():
                return get_message("stopped", lang)
            if self.config.max_steps and state.step_count >= self.config.max_steps:
                self._end(AgentRunState.STOPPED)
                return get_message("max_steps_reached", lang)

            final_message = self._step(task if state.step_count == 0 else None)
            if final_message is not None:
                return final_message

            self._sleep(self.config.step_delay)

    def _step(self, task: Optional[str]) -> Optional[str]:
        """Run one iteration. Returns the final message when the task has ended."""
        lang = self.config.lang
        state = self.context.state
        state.step_count += 1
        step = state.step_count
        logger.debug("Step %d", step)

        self._inject_guidance()

        observation = self._observe(task)
        if observation is None:
            logger.error("Step %d: no screenshot and no screen content", step)
            self._end(AgentRunState.FAILED)
            return get_message("no_observation", lang)
        self.context.append(observation.message)

        messages = self.context.compressed(self.config.context_threshold)
        self._banner(f"💭 {get_messages(lang)['thinking']}:")
        try:
            response = self.model_client.request(messages)
        except Exception as e:
            logger.error("Step %d: model request failed: %s", step, e)
            self._end(AgentRunState.FAILED)
            return get_message("model_error", lang, error=e)

        if self._stop_event.is_set():
            return get_message("stopped", lang)

        action_text = decode_action(response.action or response.raw_content)
        if self.config.verbose:
            labels = get_messages(lang)
            print(response.thinking)
            self._banner(f"🎯 {labels['action']}:")
            print(action_text)
            if response.total_time is not None:
                self._banner(f"⏱️  {labels['performance_metrics']} ({labels['step']} {step}):")
                if response.time_to_first_token is not None:
                    print(f"{labels['time_to_first_token']}: {response.time_to_first_token:.3f}s")
                print(f"{labels['total_inference_time']}: {response.total_time:.3f}s")

        result = self.action_handler.execute(action_text, observation.width, observation.height)
        finished = is_finish(action_text) and result.should_finish

        if result.success:
            state.record_success()
        else:
            state.record_failure(action_text)
            logger.warning(
                "Step %d failed (%d in a row): %s", step, state.failure_streak, result.message
            )

        if self.config.observation_mode.needs_capture:
            self.context.strip_latest_image()
        self.context.append(Message.assistant(response.raw_content))
        if not result.success:
            self.context.append(
                Message.user(
                    get_message(
                        "action_failed", lang, message=result.message or "", action=action_text
                    )
                )
            )

        step_result = StepResult(
            success=result.success,
            finished=result.should_finish,
            thinking=response.thinking,
            action_text=action_text,
            message=result.message,
        )
        self._emit(step, step_result, response.raw_content, observation)

        if finished:
            message = result.message or get_messages(lang)["task_completed"]
            if self.config.verbose:
                print(f"\n🎉 {get_messages(lang)['task_completed']}: {message}\n")
            self._end(AgentRunState.FINISHED)
            if self._state != AgentRunState.FINISHED:
                return get_message("stopped", lang)
            return message
        if result.should_finish:
            logger.warning("Step %d reported finished without a finish action, continuing", step)

        if result.requires_takeover:
            self._await_intervention(result)
        return None

    # ------------------------------------------------------------------ helpers

    def _inject_guidance(self) -> None:
        state = self.context.state
        failures = state.consecutive_failures
        lang = self.config.lang
        if failures >= self.config.replan_threshold:
            logger.warning("%d consecutive failures, asking the model to re-plan", failures)
            self.context.append(
                Message.user(get_message("replan", lang, failures=failures, task=state.task))
            )
            state.consecutive_failures = 0
        streak = state.failure_streak
        if streak >= self.config.takeover_threshold:
            logger.warning("%d failures in a row, suggesting a takeover", streak)
            self.context.append(Message.user(get_message("takeover_hint", lang, failures=streak)))

    def _observe(self, task: Optional[str]) -> Optional[Observation]:
        mode = self.config.observation_mode
        image_base64 = None
        width = height = 0

        if mode.needs_capture and self.screen_capture is not None:
            try:
                screenshot = self.screen_capture.capture_frame()
            except Exception:
                logger.exception("Screen capture raised")
                screenshot = None
            if screenshot is not None:
                image_base64 = screenshot.base64_data
                width, height = screenshot.width, screenshot.height
            else:
                logger.warning("Screen capture returned no frame")

        screen_dump = ""
        if mode.needs_dump:
            try:
                screen_dump = self.device.structured_screen_dump() or ""
            except Exception:
                logger.exception("Screen content dump raised")

        if not image_base64 and not screen_dump.strip():
            return None

        if not width or not height:
            width, height = self.device.screen_size()
        try:
            current_app = self.device.current_app_display_name()
        except Exception:
            logger.exception("Could not read the current app")
            current_app = "unknown"

        texts = []
        if screen_dump.strip():
            texts.append(f"** {get_message('screen_elements', self.config.lang)} **\n{screen_dump}")
        texts.append(MessageBuilder.build_screen_info(current_app))
        message = MessageBuilder.create_user_message(
            text=task, image_base64=image_base64, extra_texts=texts
        )
        return Observation(message, width, height, image_base64, screen_dump)

    def _await_intervention(self, result: ActionResult) -> None:
        message = result.message or ""
        if not self._transition(AgentRunState.AWAITING_INTERVENTION):
            return
        logger.warning("Waiting for user intervention: %s", message)
        if self.on_intervention is not None:
            try:
                self.on_intervention(message)
            except Exception:
                logger.exception("on_intervention callback raised")
        self.context.append(
            Message.user(get_message("intervention", self.config.lang, message=message))
        )
        self._sleep(self.config.intervention_wait)
        self._transition(AgentRunState.STEPPING)

    def _emit(self, step: int, result: StepResult, raw_reply: str, observation: Observation) -> None:
        self._step_results.append(result)
        if self.config.verbose:
            status = "✅" if result.success else "❌"
            print(f"{status} {get_messages(self.config.lang)['result']}: {result.message or ''}")
        if self.trace_logger is not None:
            try:
                self.trace_logger.log_step(
                    step,
                    result,
                    raw_reply=raw_reply,
                    screenshot_base64=observation.image_base64,
                    screen_dump=observation.screen_dump,
                )
            except (OSError, ValueError) as e:
                logger.warning("Could not write trace for step %d: %s", step, e)
        if self.on_step is not None:
            try:
                self.on_step(result)
            except Exception:
                logger.exception("on_step callback raised")

    def _acquire_capture(self) -> Optional[str]:
        if self.screen_capture is None:
            return "no screen capture provider"
        try:
            self.screen_capture.initialize()
        except Exception as e:
            logger.exception("Screen capture initialization failed")
            return str(e) or type(e).__name__
        with self._lock:
            self._capture_held = True
        return None

    def _release_capture(self) -> None:
        with self._lock:
            if not self._capture_held:
                return
            self._capture_held = False
        try:
            self.screen_capture.release()
        except Exception:
            logger.exception("Screen capture release failed")

    def _transition(self, new_state: AgentRunState) -> bool:
        """Move to a non-terminal state unless the task already ended."""
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = new_state
            return True

    def _end(self, final_state: AgentRunState) -> None:
        with self._lock:
            # the first terminal state wins, so a stop is never overwritten
            if not self._state.is_terminal:
                self._state = final_state

    def _sleep(self, seconds: float) -> None:
        if seconds > 0:
            self._stop_event.wait(seconds)

    def _banner(self, title: str) -> None:
        if self.config.verbose:
            print("\n" + "=" * 50)
            print(title)
            print("-" * 50)
