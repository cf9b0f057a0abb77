"""Decode raw model text into a serialized action.

Decoding never fails. The order of strategies is:

1. the first balanced ``{...}`` region that is a JSON action object;
2. the ``finish(message=...)`` / ``do(action=..., ...)`` call grammar, read
   with :mod:`ast` first and with per-action regular expressions when the
   call is not valid Python;
3. a finish action carrying the raw text, so an unreadable reply is treated
   as an implicit completion signal.
"""

import ast
import json
import logging
import re
from typing import Any, Dict, Optional

from .schema import (
    METADATA_DO,
    METADATA_FINISH,
    canonical_action_name,
)

logger = logging.getLogger(__name__)

# bare calls some models emit without the do(...) wrapper
DIRECT_ACTION_NAMES = [
    "Long Press", "Double Tap", "Wait", "Tap", "Click", "Swipe", "Type_Name", "Type",
    "Launch", "Back", "Home", "Take_over", "Note", "Call_API", "Interact",
]

_QUOTED = r"""(["'])(?P<{name}>.*?)(?<!\\)\1"""


def decode_action(raw: Any) -> str:
    """
    Decode a model reply into a serialized action.

    Args:
        raw: Text of the model's action channel. Non-string input is
            converted with ``str``.

    Returns:
        JSON object text with a ``_metadata`` of ``"finish"`` or ``"do"``.
    """
    try:
        text = raw if isinstance(raw, str) else ("" if raw is None else str(raw))
    except Exception:
        text = ""
    text = strip_tags(text)

    structured = extract_json_object(text)
    if structured is not None:
        return structured

    try:
        payload = _decode_call(text)
    except Exception:
        logger.exception("Call grammar decoding failed")
        payload = None
    if payload is not None:
        return json.dumps(payload, ensure_ascii=False, default=str)

    logger.debug("Reply has no recognizable action, treating it as finish")
    return json.dumps({"_metadata": METADATA_FINISH, "message": text}, ensure_ascii=False)


def is_finish(serialized: str) -> bool:
    """Whether a serialized action carries the explicit finish marker."""
    try:
        data = json.loads(serialized)
    except (TypeError, ValueError):
        return False
    if not isinstance(data, dict):
        return False
    if data.get("_metadata") == METADATA_FINISH:
        return True
    action = data.get("action")
    return isinstance(action, str) and canonical_action_name(action) == "finish"


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` region that parses as an action object."""
    depth = 0
    start = -1
    for index, char in enumerate(text):
        if char == "{":
            if start == -1:
                start = index
            depth += 1
        elif char == "}" and start != -1:
            depth -= 1
            if depth == 0:
                candidate = text[start:index + 1]
                start = -1
                try:
                    data = json.loads(candidate)
                except (ValueError, RecursionError):
                    logger.debug("Balanced region is not valid JSON: %.200s", candidate)
                    continue
                # JSON typed as an argument is not an action
                if isinstance(data, dict) and ("_metadata" in data or "action" in data):
                    return candidate
    return None


def strip_tags(text: str) -> str:
    for tag in ("<think>", "</think>", "<answer>", "</answer>", "<action>", "</action>"):
        text = text.replace(tag, "")
    return text.strip()


def _decode_call(text: str) -> Optional[Dict[str, Any]]:
    if "finish(" in text:
        call = _call_text(text, "finish(")
        return _decode_finish(call)
    if "do(" in text:
        call = _call_text(text, "do(")
        return _decode_do(call)
    direct = _rewrite_direct_call(text)
    if direct is not None:
        return _decode_do(direct)
    return None


def _call_text(text: str, prefix: str) -> str:
    """Slice ``prefix`` and its arguments up to the matching close paren."""
    start = text.index(prefix)
    body = text[start + len(prefix):]
    depth = 1
    quote = None
    for index, char in enumerate(body):
        if quote:
            if char == quote and body[index - 1] != "\\":
                quote = None
        elif char in ('"', "'"):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return prefix + body[:index + 1]
    return prefix + body


def _rewrite_direct_call(text: str) -> Optional[str]:
    """Turn ``Tap(element=[1,2])`` into ``do(action="Tap", element=[1,2])``."""
    for name in DIRECT_ACTION_NAMES:
        match = re.search(rf"\b{re.escape(name)}\s*\(", text)
        if not match:
            continue
        call = _call_text(text[match.end() - 1:].replace("(", "do(", 1), "do(")
        args = call[len("do("):-1].strip() if call.endswith(")") else call[len("do("):].strip()
        if args:
            return f'do(action="{name}", {args})'
        return f'do(action="{name}")'
    return None


def _literal_keywords(call: str) -> Optional[Dict[str, Any]]:
    try:
        tree = ast.parse(call.strip(), mode="eval")
    except (SyntaxError, ValueError, RecursionError, MemoryError):
        return None
    node = tree.body
    if not isinstance(node, ast.Call):
        return None
    values: Dict[str, Any] = {}
    for keyword in node.keywords:
        if keyword.arg is None or keyword.arg == "_metadata":
            continue
        try:
            values[keyword.arg] = ast.literal_eval(keyword.value)
        except (ValueError, SyntaxError, TypeError, RecursionError, MemoryError):
            return None
    return values


def _decode_finish(call: str) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"_metadata": METADATA_FINISH}
    keywords = _literal_keywords(call)
    if keywords is not None and "message" in keywords:
        payload["message"] = str(keywords["message"])
        return payload
    message = _regex_string(call, "message")
    if message is None:
        # unquoted or unterminated message: keep whatever follows "message="
        loose = re.search(r"message\s*=\s*(.*)", call, re.DOTALL)
        if loose:
            message = loose.group(1).rstrip(")").strip().strip("\"'")
    if message is not None:
        payload["message"] = message
    return payload


def _decode_do(call: str) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"_metadata": METADATA_DO}
    keywords = _literal_keywords(call)
    if keywords is not None and "action" in keywords:
        payload.update(keywords)
        payload["action"] = _normalize_name(str(keywords["action"]))
        return payload

    action = _regex_string(call, "action")
    if action is None:
        return payload
    action = _normalize_name(action)
    payload["action"] = action

    if action in ("Tap", "Long Press", "Double Tap"):
        point = _regex_point(call, "element")
        if point is not None:
            payload["element"] = point
        message = _regex_string(call, "message")
        if message is not None:
            payload["message"] = message
    elif action == "Swipe":
        start = _regex_point(call, "start")
        end = _regex_point(call, "end")
        if start is not None and end is not None:
            payload["start"] = start
            payload["end"] = end
    elif action == "Type":
        text = _regex_string(call, "text")
        if text is not None:
            payload["text"] = text
    elif action == "Launch":
        app = _regex_string(call, "app")
        if app is not None:
            payload["app"] = app
    elif action == "Wait":
        duration = _regex_string(call, "duration")
        if duration is None:
            bare = re.search(r"duration\s*=\s*(\d+(?:\.\d+)?)", call)
            duration = bare.group(1) if bare else None
        if duration is not None:
            payload["duration"] = duration
    elif action in ("Take_over", "Note"):
        message = _regex_string(call, "message")
        if message is not None:
            payload["message"] = message
    elif action == "Call_API":
        instruction = _regex_string(call, "instruction")
        if instruction is not None:
            payload["instruction"] = instruction
    return payload


def _normalize_name(name: str) -> str:
    return canonical_action_name(name) or name


def _regex_string(call: str, key: str) -> Optional[str]:
    pattern = rf"\b{key}\s*=\s*" + _QUOTED.format(name="value")
    match = re.search(pattern, call, re.DOTALL)
    if match:
        return match.group("value")
    return None


def _regex_point(call: str, key: str) -> Optional[list]:
    match = re.search(rf"\b{key}\s*=\s*\[\s*(-?\d+)\s*,\s*(-?\d+)\s*\]", call)
    if match is None:
        match = re.search(rf"\b{key}\s*=\s*[\"'](-?\d+)\s*,\s*(-?\d+)[\"']", call)
    if match is None:
        return None
    return [int(match.group(1)), int(match.group(2))]
