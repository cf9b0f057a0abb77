"""Model client for AI inference across OpenAI-compatible, Anthropic and Gemini APIs."""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import requests
from openai import OpenAI, OpenAIError

from phone_pilot.actions.decoder import DIRECT_ACTION_NAMES, strip_tags
from phone_pilot.errors import ModelRequestError
from phone_pilot.types import Message, image_item, text_item

from .providers import (
    ANTHROPIC_VERSION,
    Provider,
    WireFormat,
    anthropic_reply_text,
    anthropic_reply_thinking,
    encode_anthropic_messages,
    encode_google_payload,
    encode_openai_messages,
    google_reply_text,
)

logger = logging.getLogger(__name__)

ACTION_MARKERS = ("finish(message=", "do(action=")


@dataclass
class ModelConfig:
    """Configuration for the AI model. Empty base_url/model_name take the provider defaults."""

    provider: Union[Provider, str] = Provider.OPENAI
    base_url: str = ""
    api_key: str = "EMPTY"
    model_name: str = ""
    max_tokens: int = 3000
    temperature: float = 0.1
    top_p: float = 0.85
    frequency_penalty: float = 0.2
    timeout: float = 120.0
    extra_body: Dict[str, Any] = field(default_factory=dict)
    lang: str = "cn"  # Language for UI messages: 'cn' or 'en'

    def __post_init__(self):
        self.provider = Provider.parse(self.provider)
        info = self.provider.info
        self.base_url = (self.base_url or info.default_base_url).rstrip("/")
        self.model_name = self.model_name or info.default_model
        if not self.api_key:
            self.api_key = "EMPTY"


@dataclass
class ModelResponse:
    """Response from the AI model."""

    thinking: str
    action: str
    raw_content: str
    # Performance metrics
    time_to_first_token: Optional[float] = None  # seconds, streaming providers only
    total_time: Optional[float] = None  # seconds


def parse_reply(content: str) -> Tuple[str, str]:
    """
    Split a raw reply into its thinking and action parts.

    Parsing rules:
    1. If the reply contains '<answer>', everything before it is thinking and
       everything after it is the action.
    2. Otherwise the earliest 'finish(message=' or 'do(action=' marker starts
       the action and everything before it is thinking.
    3. Otherwise the earliest bare action call (e.g. 'Tap(') starts the action.
    4. Otherwise thinking is empty and the whole reply is the action.

    Args:
        content: Raw response content.

    Returns:
        Tuple of (thinking, action).
    """
    if "<answer>" in content:
        thinking, answer = content.split("<answer>", 1)
        return strip_tags(thinking), strip_tags(answer)

    positions = [content.find(marker) for marker in ACTION_MARKERS]
    positions = [position for position in positions if position != -1]
    if positions:
        start = min(positions)
        return strip_tags(content[:start]), strip_tags(content[start:])

    direct = [
        match.start()
        for match in (
            re.search(rf"\b{re.escape(name)}\s*\(", content) for name in DIRECT_ACTION_NAMES
        )
        if match
    ]
    if direct:
        start = min(direct)
        return strip_tags(content[:start]), strip_tags(content[start:])

    return "", strip_tags(content)


class ModelClient:
    """
    Client for vision-language models behind several provider APIs.

    OpenAI-compatible providers (OpenAI, Ollama, Qwen, GLM, custom endpoints)
    go through the openai SDK with streaming. Anthropic and Gemini are called
    over plain HTTP with their own payload shapes.

    Args:
        config: Model configuration.
        session: HTTP session for the Anthropic and Gemini APIs.
    """

    def __init__(self, config: Optional[ModelConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ModelConfig()
        self.provider: Provider = self.config.provider
        self.session = session or requests.Session()
        self.client: Optional[OpenAI] = None
        if self.provider.wire in (WireFormat.OPENAI, WireFormat.GLM):
            self.client = OpenAI(
                base_url=self.config.base_url or None,
                api_key=self.config.api_key,
                timeout=self.config.timeout,
            )

    def request(self, messages: List[Message]) -> ModelResponse:
        """
        Send a request to the model.

        Args:
            messages: Conversation in order, system message first.

        Returns:
            ModelResponse containing thinking and action.

        Raises:
            ModelRequestError: Transport failure, error status, or an unusable reply.
        """
        start_time = time.time()
        time_to_first_token = None
        wire = self.provider.wire
        logger.debug(
            "Requesting %s model %s with %d messages", self.provider.value, self.config.model_name, len(messages)
        )

        try:
            if wire in (WireFormat.OPENAI, WireFormat.GLM):
                raw_content, reasoning, time_to_first_token = self._request_openai(messages)
            elif wire == WireFormat.ANTHROPIC:
                raw_content, reasoning = self._request_anthropic(messages)
            else:
                raw_content, reasoning = self._request_google(messages)
        except ModelRequestError:
            raise
        except (OpenAIError, requests.RequestException) as e:
            raise ModelRequestError(f"{self.provider.value} request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ModelRequestError(f"Malformed {self.provider.value} reply: {e}") from e

        total_time = time.time() - start_time
        if not raw_content.strip():
            raise ModelRequestError("Model returned an empty reply")

        thinking, action = parse_reply(raw_content)
        if reasoning.strip():
            thinking = reasoning.strip()

        logger.debug(
            "Reply in %.3fs (first token %s): %.500s",
            total_time,
            f"{time_to_first_token:.3f}s" if time_to_first_token is not None else "n/a",
            raw_content,
        )
        return ModelResponse(
            thinking=thinking,
            action=action,
            raw_content=raw_content,
            time_to_first_token=time_to_first_token,
            total_time=total_time,
        )

    def _request_openai(self, messages: List[Message]) -> Tuple[str, str, Optional[float]]:
        start_time = time.time()
        extra_body = dict(self.config.extra_body)
        kwargs: Dict[str, Any] = {}
        if self.provider.wire == WireFormat.GLM:
            extra_body.setdefault("thinking", {"type": "enabled"})
        else:
            kwargs["frequency_penalty"] = self.config.frequency_penalty

        stream = self.client.chat.completions.create(
            messages=encode_openai_messages(messages),
            model=self.config.model_name,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            extra_body=extra_body or None,
            stream=True,
            **kwargs,
        )

        raw_content = ""
        reasoning = ""
        time_to_first_token = None
        for chunk in stream:
            if len(chunk.choices) == 0:
                continue
            delta = chunk.choices[0].delta
            # GLM streams its thinking channel separately from the content
            reasoning_part = getattr(delta, "reasoning_content", None) or getattr(delta, "reasoning", None)
            if reasoning_part:
                reasoning += reasoning_part
            if delta.content is not None:
                if time_to_first_token is None:
                    time_to_first_token = time.time() - start_time
                raw_content += delta.content
        return raw_content, reasoning, time_to_first_token

    def _request_anthropic(self, messages: List[Message]) -> Tuple[str, str]:
        system, encoded = encode_anthropic_messages(messages)
        payload: Dict[str, Any] = {
            "model": self.config.model_name,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": encoded,
        }
        if system:
            payload["system"] = system
        payload.update(self.config.extra_body)
        headers = {
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        body = self._post(f"{self.config.base_url}/messages", payload, headers)
        return anthropic_reply_text(body), anthropic_reply_thinking(body)

    def _request_google(self, messages: List[Message]) -> Tuple[str, str]:
        payload = encode_google_payload(messages)
        payload["generationConfig"] = {
            "temperature": self.config.temperature,
            "topP": self.config.top_p,
            "maxOutputTokens": self.config.max_tokens,
        }
        payload.update(self.config.extra_body)
        headers = {"x-goog-api-key": self.config.api_key, "content-type": "application/json"}
        url = f"{self.config.base_url}/models/{self.config.model_name}:generateContent"
        body = self._post(url, payload, headers)
        return google_reply_text(body), ""

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        response = self.session.post(url, json=payload, headers=headers, timeout=self.config.timeout)
        if response.status_code >= 400:
            raise ModelRequestError(
                f"{self.provider.value} request failed: HTTP {response.status_code} - {response.text[:500]}"
            )
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected reply body: {str(body)[:300]}")
        return body


class MessageBuilder:
    """Helper class for building conversation messages."""

    @staticmethod
    def create_system_message(content: str) -> Message:
        return Message.system(content)

    @staticmethod
    def create_user_message(
        text: Optional[str] = None,
        image_base64: Optional[str] = None,
        extra_texts: Optional[List[str]] = None,
    ) -> Message:
        """
        Create a user message with optional image.

        Args:
            text: Leading text content.
            image_base64: Optional base64-encoded PNG.
            extra_texts: Further text parts, appended after the image.

        Returns:
            Message with multi-part content.
        """
        content = []
        if text:
            content.append(text_item(text))
        if image_base64:
            content.append(image_item(image_base64))
        for extra in extra_texts or []:
            content.append(text_item(extra))
        return Message.user(content)

    @staticmethod
    def create_assistant_message(content: str) -> Message:
        return Message.assistant(content)

    @staticmethod
    def build_screen_info(current_app: str, **extra_info) -> str:
        """
        Build screen info string for the model.

        Args:
            current_app: Current app name.
            **extra_info: Additional info to include.

        Returns:
            JSON string with screen info.
        """
        info = {"current_app": current_app, **extra_info}
        return json.dumps(info, ensure_ascii=False)
