#!/usr/bin/env python3
"""
phone_pilot 运行入口

使用示例:
    python -m phone_pilot "打开设置，查看 WLAN 列表"
    python -m phone_pilot --provider openai --model gpt-4o --lang en "Open Settings"
    python -m phone_pilot --mode hybrid --max-steps 30 --verbose "打开微信"
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import yaml

from phone_pilot.agent import PhoneAgent
from phone_pilot.config.settings import Settings, load_settings
from phone_pilot.device import ADBHelper, AdbDeviceControl, AdbScreenCapture, AppNameResolver
from phone_pilot.model import ModelClient, Provider
from phone_pilot.trace_logger import TraceLogger
from phone_pilot.types import AgentRunState, ObservationMode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phone-pilot", description="Drive an Android phone with a vision-language model"
    )
    parser.add_argument("task", help="任务描述")
    parser.add_argument("--config", "-c", help="Settings file (JSON or YAML)")
    parser.add_argument("--provider", choices=[p.value for p in Provider], help="Model provider")
    parser.add_argument("--base-url", help="Model API base URL")
    parser.add_argument("--model", help="Model name")
    parser.add_argument("--api-key", help="Model API key")
    parser.add_argument(
        "--mode", choices=[m.value for m in ObservationMode], help="Observation mode"
    )
    parser.add_argument("--device-id", "-d", help="ADB device serial")
    parser.add_argument("--max-steps", type=int, help="最大步数 (0 = unlimited)")
    parser.add_argument("--trace-dir", "-o", help="输出目录 (保存每步截图和模型回复)")
    parser.add_argument("--lang", choices=["cn", "en"], help="Prompt and message language")
    parser.add_argument("--verbose", "-v", action="store_true", help="输出详细日志")
    return parser


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Command line options override the settings file."""
    overrides = {
        "provider": args.provider,
        "api_base_url": args.base_url,
        "model_name": args.model,
        "api_key": args.api_key,
        "observation_mode": args.mode,
        "device_id": args.device_id,
        "max_steps": args.max_steps,
        "trace_dir": args.trace_dir,
        "language": args.lang,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    if args.verbose:
        settings.verbose = True
    return settings


def build_agent(settings: Settings, task: str) -> PhoneAgent:
    adb = ADBHelper(custom_adb_path=settings.adb_path or None, device_id=settings.device_id)
    device = AdbDeviceControl(adb, use_adb_keyboard=settings.use_adb_keyboard)
    resolver = AppNameResolver.from_device(device)
    device.label_for_package = resolver.label_for

    trace: Optional[TraceLogger] = None
    if settings.trace_dir:
        trace = TraceLogger.for_task(Path(settings.trace_dir), task)

    return PhoneAgent(
        model_client=ModelClient(settings.to_model_config()),
        device=device,
        screen_capture=AdbScreenCapture(adb, max_side=settings.screenshot_max_side),
        app_resolver=resolver,
        agent_config=settings.to_agent_config(),
        on_intervention=lambda message: print(f"\n⚠️  {message}\n"),
        trace_logger=trace,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = apply_args(load_settings(args.config), args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Could not load settings: {e}", file=sys.stderr)
        return 2

    agent = build_agent(settings, args.task)

    print(f"\n开始执行任务: {args.task}\n")
    start = time.time()
    if not agent.run(args.task):
        print("Agent is busy", file=sys.stderr)
        return 1
    try:
        agent.join()
    except KeyboardInterrupt:
        agent.stop()
        agent.join(10)

    outcome = agent.outcome
    print("\n" + "=" * 50)
    print("执行结果")
    print("=" * 50)
    print(f"任务: {args.task}")
    print(f"状态: {outcome.state.value if outcome else agent.state.value}")
    print(f"消息: {outcome.message if outcome else ''}")
    print(f"总步数: {outcome.steps if outcome else agent.step_count}")
    print(f"耗时: {time.time() - start:.1f}秒")

    return 0 if outcome is not None and outcome.state == AgentRunState.FINISHED else 1


if __name__ == "__main__":
    sys.exit(main())
