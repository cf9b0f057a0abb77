import base64
import json
import re
import time
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from phone_pilot.types import StepResult


def task_dir_name(task: str, max_length: int = 40) -> str:
    """Directory-safe name for a task: timestamp plus a slug of the task text."""
    slug = re.sub(r"[^\w\-]+", "_", task, flags=re.UNICODE).strip("_")[:max_length] or "task"
    return f"{time.strftime('%Y%m%d_%H%M%S')}_{slug}"


class TraceLogger:
    """Writes one directory per step with the model reply, decoded action and screen."""

    def __init__(self, base_dir: Path, task_name: str) -> None:
        self.task_dir = Path(base_dir) / task_name
        self.task_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def for_task(cls, base_dir: Path, task: str) -> "TraceLogger":
        trace = cls(base_dir, task_dir_name(task))
        (trace.task_dir / "task.txt").write_text(task, encoding="utf-8")
        return trace

    def log_step(
        self,
        step_id: int,
        result: StepResult,
        raw_reply: Optional[str] = None,
        screenshot_base64: Optional[str] = None,
        screen_dump: Optional[str] = None,
    ) -> Path:
        step_dir = self.task_dir / f"step_{step_id}"
        step_dir.mkdir(parents=True, exist_ok=True)
        (step_dir / "result.json").write_text(
            json.dumps(asdict(result), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        if raw_reply:
            (step_dir / "llm_raw.txt").write_text(raw_reply, encoding="utf-8")
        if screenshot_base64:
            (step_dir / "screen.png").write_bytes(base64.b64decode(screenshot_base64))
        if screen_dump:
            (step_dir / "screen.txt").write_text(screen_dump, encoding="utf-8")
        return step_dir
