"""测试动作解析"""

import json

import pytest

from phone_pilot.actions import decode_action, is_finish


def decoded(raw):
    return json.loads(decode_action(raw))


def test_structured_object_passes_through():
    raw = 'Here: {"_metadata": "do", "action": "Tap", "element": [1, 2]} trailing'
    assert decoded(raw) == {"_metadata": "do", "action": "Tap", "element": [1, 2]}


def test_json_argument_is_not_taken_as_action():
    """测试：输入内容中的 JSON 不会被当作动作"""
    assert decoded('do(action="Type", text=\'{"a": 1}\')') == {
        "_metadata": "do",
        "action": "Type",
        "text": '{"a": 1}',
    }
    assert decoded('{"a": 1}')["_metadata"] == "finish"


def test_finish_call():
    assert decoded('finish(message="已完成")') == {"_metadata": "finish", "message": "已完成"}


def test_do_call():
    assert decoded('do(action="Tap", element=[500, 300])') == {
        "_metadata": "do",
        "action": "Tap",
        "element": [500, 300],
    }


def test_call_inside_tags():
    assert decoded('<answer>do(action="Back")</answer>') == {"_metadata": "do", "action": "Back"}


def test_aliases_are_normalized():
    assert decoded('do(action="long_press", element=[1, 2])')["action"] == "Long Press"
    assert decoded('do(action="Type_Name", text="abc")')["action"] == "Type"


def test_unterminated_call_uses_regex():
    """测试：不完整的调用用正则解析"""
    assert decoded('do(action="Swipe", start=[1, 2], end=[3, 4]') == {
        "_metadata": "do",
        "action": "Swipe",
        "start": [1, 2],
        "end": [3, 4],
    }


def test_unquoted_finish_message():
    assert decoded("finish(message=All good)") == {"_metadata": "finish", "message": "All good"}


def test_bare_action_call():
    assert decoded("Tap(element=[100, 200])") == {"_metadata": "do", "action": "Tap", "element": [100, 200]}
    assert decoded("Long Press(element=[1, 2])")["action"] == "Long Press"
    assert decoded("Back()") == {"_metadata": "do", "action": "Back"}


def test_wait_duration_kept():
    assert decoded('do(action="Wait", duration="3 seconds")')["duration"] == "3 seconds"
    assert decoded("do(action=\"Wait\", duration=2)")["duration"] == 2


def test_free_text_is_implicit_finish():
    """测试：无法识别的回复视为完成"""
    assert decoded("I could not find the button.") == {
        "_metadata": "finish",
        "message": "I could not find the button.",
    }


@pytest.mark.parametrize(
    "raw",
    ["", "{", "}", "{'a': 1}", "do(", "finish(", "do(action=", "((((", "[1, 2]", None, 12345, b"bytes", "{\"a\": [1, 2"],
)
def test_decoding_is_total(raw):
    data = decoded(raw)
    assert data["_metadata"] in ("finish", "do")


def test_is_finish():
    assert is_finish(decode_action('finish(message="x")'))
    assert is_finish('{"action": "finish"}')
    assert not is_finish(decode_action('do(action="Back")'))
    assert not is_finish("not json")
    assert not is_finish("[]")
