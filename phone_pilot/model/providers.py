"""Supported model providers and their wire encodings."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from phone_pilot.types import ContentItem, Message, Role


class WireFormat(str, Enum):
    OPENAI = "openai"
    GLM = "glm"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


@dataclass(frozen=True)
class ProviderInfo:
    display_name: str
    default_base_url: str
    default_model: str
    requires_api_key: bool
    wire: WireFormat


class Provider(str, Enum):
    OLLAMA = "ollama"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    QWEN = "qwen"
    GLM = "glm"
    CUSTOM = "custom"

    @property
    def info(self) -> ProviderInfo:
        return PROVIDERS[self]

    @property
    def wire(self) -> WireFormat:
        return PROVIDERS[self].wire

    @classmethod
    def parse(cls, name: Any) -> "Provider":
        """Look a provider up by id or display name; unknown names map to CUSTOM."""
        if isinstance(name, cls):
            return name
        key = str(name or "").strip().lower()
        for provider, info in PROVIDERS.items():
            if key in (provider.value, info.display_name.lower()):
                return provider
        return cls.CUSTOM


PROVIDERS: Dict[Provider, ProviderInfo] = {
    Provider.OLLAMA: ProviderInfo(
        "Ollama", "http://127.0.0.1:11434/v1", "qwen2.5vl:7b", False, WireFormat.OPENAI
    ),
    Provider.OPENAI: ProviderInfo(
        "OpenAI", "https://api.openai.com/v1", "gpt-4o", True, WireFormat.OPENAI
    ),
    Provider.ANTHROPIC: ProviderInfo(
        "Anthropic", "https://api.anthropic.com/v1", "claude-3-5-sonnet-20241022", True,
        WireFormat.ANTHROPIC,
    ),
    Provider.GOOGLE: ProviderInfo(
        "Google", "https://generativelanguage.googleapis.com/v1beta", "gemini-1.5-pro", True,
        WireFormat.GOOGLE,
    ),
    Provider.QWEN: ProviderInfo(
        "Qwen", "https://dashscope.aliyuncs.com/compatible-mode/v1", "qwen-vl-max", True,
        WireFormat.OPENAI,
    ),
    Provider.GLM: ProviderInfo(
        "GLM", "https://open.bigmodel.cn/api/paas/v4", "glm-4.5v", True, WireFormat.GLM
    ),
    Provider.CUSTOM: ProviderInfo("Custom", "", "", False, WireFormat.OPENAI),
}

ANTHROPIC_VERSION = "2023-06-01"


def split_data_url(url: str) -> Tuple[str, str]:
    """Split ``data:<mime>;base64,<data>`` into (mime, data). Plain base64 is assumed PNG."""
    if url.startswith("data:") and "," in url:
        header, data = url.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0] or "image/png"
        return mime, data
    return "image/png", url


def encode_openai_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    """OpenAI chat format; also used by Ollama, Qwen, GLM and custom endpoints."""
    encoded = []
    for message in messages:
        if isinstance(message.content, str):
            encoded.append({"role": message.role.value, "content": message.content})
            continue
        parts = []
        for item in message.content:
            if item.is_image:
                parts.append({"type": "image_url", "image_url": {"url": item.image_url}})
            else:
                parts.append({"type": "text", "text": item.text or ""})
        encoded.append({"role": message.role.value, "content": parts})
    return encoded


def _anthropic_part(item: ContentItem) -> Dict[str, Any]:
    if item.is_image:
        mime, data = split_data_url(item.image_url or "")
        return {"type": "image", "source": {"type": "base64", "media_type": mime, "data": data}}
    return {"type": "text", "text": item.text or ""}


def encode_anthropic_messages(
    messages: List[Message],
) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Anthropic Messages API format.

    Returns:
        Tuple of (system prompt, messages). System messages are lifted out of
        the list since the API takes them as a top-level field.
    """
    system_parts = []
    encoded = []
    for message in messages:
        if message.role == Role.SYSTEM:
            system_parts.extend(message.text_parts())
            continue
        if isinstance(message.content, str):
            content: Any = message.content
        else:
            content = [_anthropic_part(item) for item in message.content]
        encoded.append({"role": message.role.value, "content": content})
    system = "\n\n".join(system_parts) if system_parts else None
    return system, encoded


def _google_parts(message: Message) -> List[Dict[str, Any]]:
    if isinstance(message.content, str):
        return [{"text": message.content}]
    parts = []
    for item in message.content:
        if item.is_image:
            mime, data = split_data_url(item.image_url or "")
            parts.append({"inline_data": {"mime_type": mime, "data": data}})
        else:
            parts.append({"text": item.text or ""})
    return parts


def encode_google_payload(messages: List[Message]) -> Dict[str, Any]:
    """Gemini generateContent format: ``contents`` with ``parts``, roles user/model."""
    system_parts = []
    contents = []
    for message in messages:
        if message.role == Role.SYSTEM:
            system_parts.extend({"text": text} for text in message.text_parts())
            continue
        role = "model" if message.role == Role.ASSISTANT else "user"
        contents.append({"role": role, "parts": _google_parts(message)})
    payload: Dict[str, Any] = {"contents": contents}
    if system_parts:
        payload["systemInstruction"] = {"parts": system_parts}
    return payload


def anthropic_reply_text(body: Dict[str, Any]) -> str:
    blocks = body.get("content") or []
    return "".join(block.get("text", "") for block in blocks if block.get("type") == "text")


def anthropic_reply_thinking(body: Dict[str, Any]) -> str:
    blocks = body.get("content") or []
    return "".join(
        block.get("thinking", "") for block in blocks if block.get("type") == "thinking"
    )


def google_reply_text(body: Dict[str, Any]) -> str:
    candidates = body.get("candidates") or []
    if not candidates:
        raise ValueError(f"No candidates in reply: {str(body)[:300]}")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if not part.get("thought"))
