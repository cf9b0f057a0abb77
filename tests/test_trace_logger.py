import json

from phone_pilot.trace_logger import TraceLogger, task_dir_name
from phone_pilot.types import StepResult


def test_task_dir_name_is_path_safe():
    name = task_dir_name("打开 设置/WLAN?")
    assert "/" not in name and "?" not in name
    assert name.endswith("打开_设置_WLAN")


def test_for_task_and_log_step(tmp_path):
    trace = TraceLogger.for_task(tmp_path, "打开设置")
    result = StepResult(success=True, finished=False, thinking="想", action_text='{"_metadata": "do"}')

    step_dir = trace.log_step(1, result, raw_reply="raw", screenshot_base64="aW1hZ2U=", screen_dump="[0] Button")

    assert (trace.task_dir / "task.txt").read_text(encoding="utf-8") == "打开设置"
    assert json.loads((step_dir / "result.json").read_text(encoding="utf-8"))["thinking"] == "想"
    assert (step_dir / "llm_raw.txt").read_text(encoding="utf-8") == "raw"
    assert (step_dir / "screen.png").read_bytes() == b"image"
    assert (step_dir / "screen.txt").exists()


def test_optional_files_skipped(tmp_path):
    trace = TraceLogger(tmp_path, "t")
    step_dir = trace.log_step(2, StepResult(True, True, "", "{}"))
    assert sorted(p.name for p in step_dir.iterdir()) == ["result.json"]
