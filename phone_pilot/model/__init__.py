# Model Module
from .client import MessageBuilder, ModelClient, ModelConfig, ModelResponse, parse_reply
from .providers import Provider

__all__ = ["MessageBuilder", "ModelClient", "ModelConfig", "ModelResponse", "Provider", "parse_reply"]
