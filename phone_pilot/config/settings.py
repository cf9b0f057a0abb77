"""
配置管理模块
管理应用设置，包括模型API配置、设备配置和执行配置
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "PHONE_PILOT_API_KEY": "api_key",
    "PHONE_PILOT_BASE_URL": "api_base_url",
    "PHONE_PILOT_MODEL": "model_name",
    "PHONE_PILOT_PROVIDER": "provider",
}


def get_user_data_path() -> str:
    """获取用户数据目录（用于存储配置等可写数据）"""
    return os.environ.get("PHONE_PILOT_HOME") or os.path.join(os.path.expanduser("~"), ".phone_pilot")


@dataclass
class Settings:
    """应用配置"""
    # 模型API配置
    provider: str = "glm"
    api_base_url: str = ""
    api_key: str = ""
    model_name: str = ""
    max_tokens: int = 3000
    temperature: float = 0.1
    top_p: float = 0.85
    request_timeout: float = 120.0

    # 设备配置
    device_id: Optional[str] = None
    adb_path: str = ""
    use_adb_keyboard: bool = True
    screenshot_max_side: Optional[int] = None

    # 执行配置
    observation_mode: str = "vision"
    max_steps: int = 0
    step_delay: float = 0.8
    intervention_wait: float = 5.0
    context_threshold: int = 4_000_000
    min_messages_to_keep: int = 4
    replan_threshold: int = 2
    takeover_threshold: int = 5
    language: str = "cn"
    verbose: bool = True
    trace_dir: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"settings must be a mapping, got {type(data).__name__}")
        # 过滤掉不存在的字段
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        ignored = set(data) - valid_fields
        if ignored:
            logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(ignored)))
        return cls(**filtered_data)

    def apply_env(self, environ: Optional[dict] = None) -> "Settings":
        """Override fields from PHONE_PILOT_* environment variables."""
        environ = os.environ if environ is None else environ
        for variable, name in ENV_OVERRIDES.items():
            value = environ.get(variable)
            if value:
                setattr(self, name, value)
        return self

    def to_model_config(self):
        from phone_pilot.model.client import ModelConfig

        return ModelConfig(
            provider=self.provider,
            base_url=self.api_base_url,
            api_key=self.api_key,
            model_name=self.model_name,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            timeout=self.request_timeout,
            lang=self.language,
        )

    def to_agent_config(self):
        from phone_pilot.agent import AgentConfig

        return AgentConfig(
            observation_mode=self.observation_mode,
            max_steps=self.max_steps,
            step_delay=self.step_delay,
            intervention_wait=self.intervention_wait,
            context_threshold=self.context_threshold,
            min_messages_to_keep=self.min_messages_to_keep,
            replan_threshold=self.replan_threshold,
            takeover_threshold=self.takeover_threshold,
            lang=self.language,
            verbose=self.verbose,
        )


def get_config_path() -> str:
    """获取配置文件路径"""
    return os.path.join(get_user_data_path(), "settings.json")


def _is_yaml(path: str) -> bool:
    return path.lower().endswith((".yaml", ".yml"))


def load_settings(path: Optional[str] = None, use_env: bool = True) -> Settings:
    """
    加载设置

    Reads JSON, or YAML for ``.yaml``/``.yml`` paths. A missing default file
    yields the defaults; a missing explicit path is an error.
    """
    explicit = path is not None
    path = path or get_config_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) if _is_yaml(path) else json.load(f)
        settings = Settings.from_dict(data or {})
    except FileNotFoundError:
        if explicit:
            raise
        settings = Settings()
    if use_env:
        settings.apply_env()
    return settings


def save_settings(settings: Settings, path: Optional[str] = None) -> str:
    """保存设置"""
    path = path or get_config_path()
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if _is_yaml(path):
            yaml.safe_dump(settings.to_dict(), f, allow_unicode=True, sort_keys=False)
        else:
            json.dump(settings.to_dict(), f, ensure_ascii=False, indent=2)
    return path
