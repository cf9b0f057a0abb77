"""
phone_pilot - perceive, plan and act on an Android phone with a vision-language model

Architecture:
- actions/ - decode model replies into actions and execute them on the device
- memory/  - conversation context and its compression
- model/   - model gateway for OpenAI-compatible, Anthropic and Gemini APIs
- device/  - ADB device control, screen capture and app name resolution
- config/  - prompts, messages and settings
- agent.py - the task loop
"""

from phone_pilot.agent import AgentConfig, PhoneAgent
from phone_pilot.model import ModelClient, ModelConfig
from phone_pilot.types import ActionResult, AgentRunState, ObservationMode, StepResult

__version__ = "0.1.0"

__all__ = [
    "PhoneAgent",
    "AgentConfig",
    "ModelClient",
    "ModelConfig",
    "ActionResult",
    "AgentRunState",
    "ObservationMode",
    "StepResult",
]
