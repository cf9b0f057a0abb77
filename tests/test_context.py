"""测试上下文存储与压缩"""

from phone_pilot.config import get_message
from phone_pilot.memory import ContextStore, HistorySummarizer
from phone_pilot.types import Message, Role, image_item, text_item

from .fakes import FAKE_IMAGE, FakeModelClient


def build_history(store, turns=5, size=100):
    store.append(Message.system("system prompt"))
    for i in range(turns):
        store.append(Message.user(f"u{i}" + "x" * (size - 2)))
        store.append(Message.assistant(f"a{i}" + "y" * (size - 2)))


def test_below_threshold_is_untouched():
    store = ContextStore()
    build_history(store)
    before = store.messages

    assert store.compressed(threshold=10_000) == before
    assert store.messages == before


def test_compression_keeps_system_and_recent_messages():
    """测试：压缩保留系统消息和最近 K 条消息"""
    store = ContextStore(min_messages_to_keep=4)
    build_history(store)
    before = store.messages
    others = [m for m in before if m.role != Role.SYSTEM]

    result = store.compressed(threshold=500)

    assert result[0] == before[0], "系统消息必须保留"
    assert result[-4:] == others[-4:], "最近 4 条消息必须原样保留"
    assert len(result) == 6
    assert store.size_estimate(result) <= store.size_estimate(before)
    assert store.messages == result
    summary = get_message("summary_fallback", "cn", steps=3)
    assert result[1].content == get_message("history_summary", "cn", summary=summary)


def test_compression_uses_summarizer():
    model = FakeModelClient(["打开了设置并进入 WLAN 页面"])
    store = ContextStore(summarizer=HistorySummarizer(model), min_messages_to_keep=2)
    build_history(store)

    result = store.compressed(threshold=500)

    assert len(model.requests) == 1
    assert "打开了设置并进入 WLAN 页面" in result[1].content
    assert store.state.compressed_history == "打开了设置并进入 WLAN 页面"
    assert len(result) == 4


def test_compression_survives_summarizer_failure():
    model = FakeModelClient([RuntimeError("network down")])
    store = ContextStore(summarizer=HistorySummarizer(model), min_messages_to_keep=2)
    build_history(store)
    before = store.messages

    result = store.compressed(threshold=500)

    assert result[0].role == Role.SYSTEM
    assert store.size_estimate(result) <= store.size_estimate(before)
    assert "已执行约" in result[1].content


def test_nothing_old_to_compress():
    """测试：只有最近消息时无法压缩，原样返回"""
    store = ContextStore(min_messages_to_keep=4)
    store.append(Message.system("s"))
    store.append(Message.user("x" * 1000))
    store.append(Message.assistant("y" * 1000))
    before = store.messages

    assert store.compressed(threshold=10) == before


def test_summary_dropped_when_it_does_not_fit():
    model = FakeModelClient(["a very long summary " * 20])
    store = ContextStore(summarizer=HistorySummarizer(model), min_messages_to_keep=4)
    store.append(Message.system("s"))
    store.append(Message.user("hi"))
    store.append(Message.assistant("ok"))
    for i in range(4):
        store.append(Message.user("z" * 1000))
    before = store.messages

    result = store.compressed(threshold=100)

    assert result == [before[0]] + before[-4:]
    assert store.size_estimate(result) <= store.size_estimate(before)


def test_summary_truncated_to_replaced_size():
    model = FakeModelClient(["s" * 5000])
    store = ContextStore(summarizer=HistorySummarizer(model), min_messages_to_keep=1)
    store.append(Message.system("system"))
    store.append(Message.user("u" * 300))
    store.append(Message.assistant("a" * 300))
    store.append(Message.user("latest"))
    before = store.messages

    result = store.compressed(threshold=100)

    assert len(result) == 3
    assert result[1].size() <= 600
    assert store.size_estimate(result) <= store.size_estimate(before)


def test_min_messages_to_keep_at_least_one():
    assert ContextStore(min_messages_to_keep=0).min_messages_to_keep == 1


def test_strip_latest_image_keeps_text():
    store = ContextStore()
    store.append(Message.user([text_item("任务"), image_item(FAKE_IMAGE), text_item('{"current_app": "x"}')]))
    store.append(Message.assistant("reply"))

    assert store.strip_latest_image()
    message = store.messages[0]
    assert not message.has_image()
    assert message.text_parts() == ["任务", '{"current_app": "x"}']
    assert not store.strip_latest_image(), "没有图片时返回 False"


def test_strip_image_only_message_uses_placeholder():
    store = ContextStore(lang="en")
    store.append(Message.user([image_item(FAKE_IMAGE)]))

    assert store.strip_latest_image()
    assert store.messages[0].content == get_message("image_removed", "en")


def test_size_estimate_counts_images():
    store = ContextStore()
    store.append(Message.user([text_item("abc"), image_item(FAKE_IMAGE)]))
    assert store.size_estimate() == 3 + len(f"data:image/png;base64,{FAKE_IMAGE}")
    assert store.image_message_count() == 1


def test_failure_streak_bookkeeping():
    store = ContextStore()
    state = store.reset("任务")
    state.record_failure("a")
    state.record_failure("b")
    state.consecutive_failures = 0
    state.record_failure("c")

    assert state.consecutive_failures == 1
    assert state.failure_streak == 3
    assert state.last_failed_action == "c"
    state.record_success()
    assert state.consecutive_failures == 0
    assert state.failure_streak == 0
    assert state.last_failed_action is None
