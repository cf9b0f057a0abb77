"""测试应用名称解析"""

from phone_pilot.device.apps import AppNameResolver, match_score

from .fakes import FakeDevice

CATALOG = [
    ("微信", "com.tencent.mm"),
    ("WeChat", "com.tencent.mm"),
    ("Settings", "com.android.settings"),
    ("Chrome", "com.android.chrome"),
]


def test_exact_match_is_case_insensitive():
    resolver = AppNameResolver(CATALOG)
    assert resolver.resolve("微信") == "com.tencent.mm"
    assert resolver.resolve("wechat") == "com.tencent.mm"
    assert resolver.resolve("com.android.chrome") == "com.android.chrome"


def test_fuzzy_match():
    resolver = AppNameResolver(CATALOG)
    assert resolver.resolve("sett") == "com.android.settings"
    assert match_score("set", "Settings", "com.android.settings") == 20


def test_miss_is_cached():
    resolver = AppNameResolver(CATALOG)
    assert resolver.resolve("Nonexistent") is None

    resolver._entries.append(("Nonexistent", "com.example.none"))
    assert resolver.resolve("Nonexistent") is None, "未命中结果也应缓存"
    resolver.clear_cache()
    assert resolver.resolve("Nonexistent") == "com.example.none"


def test_add_entries_clears_cache():
    resolver = AppNameResolver(CATALOG)
    assert resolver.resolve("Notes") is None
    resolver.add_entries([("Notes", "com.example.notes")])
    assert resolver.resolve("Notes") == "com.example.notes"


def test_suggest_similar():
    resolver = AppNameResolver(CATALOG)
    suggestions = resolver.suggest_similar("chat", limit=5)
    assert ("WeChat", "com.tencent.mm") in suggestions
    assert len(resolver.suggest_similar("c", limit=2)) <= 2
    assert resolver.suggest_similar("", limit=5) == []


def test_from_device_adds_installed_packages():
    resolver = AppNameResolver.from_device(FakeDevice(), {"Settings": "com.android.settings"})

    assert resolver.resolve("com.example.notes") == "com.example.notes"
    assert resolver.label_for("com.android.settings") == "Settings"
    assert resolver.label_for("com.example.notes") is None


def test_default_catalog():
    assert AppNameResolver().resolve("微信") == "com.tencent.mm"
