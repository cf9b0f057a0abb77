"""ADB-backed device control surface."""

import base64
import logging
import re
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from phone_pilot.actions.coordinates import RELATIVE_SCALE
from phone_pilot.errors import DeviceUnavailableError

from .adb_helper import ADBHelper
from .base import GestureCallback

logger = logging.getLogger(__name__)

DEFAULT_SCREEN_SIZE = (1080, 2400)
UI_DUMP_PATH = "/sdcard/phone_pilot_dump.xml"


@dataclass
class UIElement:
    text: str
    content_desc: str
    resource_id: str
    class_name: str
    clickable: bool
    scrollable: bool
    bounds: Tuple[int, int, int, int]

    @property
    def center(self) -> Tuple[int, int]:
        left, top, right, bottom = self.bounds
        return (left + right) // 2, (top + bottom) // 2

    @property
    def is_informative(self) -> bool:
        return bool(self.text or self.content_desc or self.clickable or self.scrollable)


def parse_bounds(bounds_str: str) -> Optional[Tuple[int, int, int, int]]:
    """解析 bounds 字符串: [left,top][right,bottom]"""
    match = re.match(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]", bounds_str)
    if match:
        return (
            int(match.group(1)),
            int(match.group(2)),
            int(match.group(3)),
            int(match.group(4)),
        )
    return None


def parse_ui_xml(xml_text: str) -> List[UIElement]:
    """Parse a uiautomator dump into the nodes that carry text or are interactive."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        return []

    elements = []
    for node in root.iter("node"):
        bounds = parse_bounds(node.get("bounds", ""))
        if bounds is None:
            continue
        element = UIElement(
            text=node.get("text", ""),
            content_desc=node.get("content-desc", ""),
            resource_id=node.get("resource-id", ""),
            class_name=node.get("class", ""),
            clickable=node.get("clickable", "false").lower() == "true",
            scrollable=node.get("scrollable", "false").lower() == "true",
            bounds=bounds,
        )
        if element.is_informative:
            elements.append(element)
    return elements


def format_elements(elements: List[UIElement], screen_width: int, screen_height: int) -> str:
    """One line per element, centers on the 0-1000 relative grid the model taps on."""
    lines = []
    for index, element in enumerate(elements):
        cx, cy = element.center
        rel_x = cx * RELATIVE_SCALE // max(screen_width, 1)
        rel_y = cy * RELATIVE_SCALE // max(screen_height, 1)
        fields = [f"[{index}]", element.class_name.rsplit(".", 1)[-1] or "View"]
        if element.text:
            fields.append(f'text="{element.text}"')
        if element.content_desc:
            fields.append(f'desc="{element.content_desc}"')
        if element.resource_id:
            fields.append(f'id="{element.resource_id.rsplit("/", 1)[-1]}"')
        flags = [name for name, on in (("clickable", element.clickable), ("scrollable", element.scrollable)) if on]
        if flags:
            fields.append(",".join(flags))
        fields.append(f"center=[{rel_x},{rel_y}]")
        lines.append(" ".join(fields))
    return "\n".join(lines)


class AdbDeviceControl:
    """
    Device control over ``adb shell input``.

    Gestures run on a helper thread and report completion through the
    callback, so the dispatcher's bounded wait applies to them the same way
    it does to any asynchronous control surface.

    Args:
        adb: ADB helper bound to the target device.
        label_for_package: Maps a package name to a display name for
            ``current_app_display_name``.
        use_adb_keyboard: Type through the ADB Keyboard IME broadcast, which
            supports non-ASCII text.
    """

    def __init__(
        self,
        adb: ADBHelper,
        label_for_package: Optional[Callable[[str], Optional[str]]] = None,
        use_adb_keyboard: bool = True,
    ):
        self.adb = adb
        self.label_for_package = label_for_package
        self.use_adb_keyboard = use_adb_keyboard
        self._screen_size: Optional[Tuple[int, int]] = None

    def is_connected(self) -> bool:
        devices = self.adb.list_devices()
        if self.adb.device_id:
            return self.adb.device_id in devices
        return bool(devices)

    def screen_size(self) -> Tuple[int, int]:
        """获取屏幕分辨率"""
        if self._screen_size is None:
            ok, output = self.adb.shell(["wm", "size"], timeout=5)
            # "Override size" wins over "Physical size" when both are printed
            matches = re.findall(r"(\d+)x(\d+)", output) if ok else []
            if matches:
                width, height = matches[-1]
                self._screen_size = (int(width), int(height))
            else:
                logger.warning("Could not read screen size, assuming %sx%s", *DEFAULT_SCREEN_SIZE)
                return DEFAULT_SCREEN_SIZE
        return self._screen_size

    def tap(self, x: int, y: int, callback: GestureCallback) -> bool:
        return self._dispatch(["input", "tap", str(x), str(y)], callback)

    def long_press(self, x: int, y: int, duration_ms: int, callback: GestureCallback) -> bool:
        # 长按实际上是原地滑动
        return self._dispatch(
            ["input", "swipe", str(x), str(y), str(x), str(y), str(duration_ms)], callback
        )

    def double_tap(self, x: int, y: int, callback: GestureCallback) -> bool:
        tap = ["input", "tap", str(x), str(y)]
        return self._dispatch(tap + [";"] + tap, callback)

    def swipe(
        self, x1: int, y1: int, x2: int, y2: int, duration_ms: int, callback: GestureCallback
    ) -> bool:
        return self._dispatch(
            ["input", "swipe", str(x1), str(y1), str(x2), str(y2), str(duration_ms)], callback
        )

    def type_text(self, text: str) -> bool:
        """输入文本（需要先聚焦输入框）"""
        if self.use_adb_keyboard:
            encoded = base64.b64encode(text.encode("utf-8")).decode("utf-8")
            ok, output = self.adb.shell(["am", "broadcast", "-a", "ADB_INPUT_B64", "--es", "msg", encoded])
            if ok:
                return True
            logger.warning("ADB Keyboard input failed (%s), falling back to input text", output)
        # 基础输入，仅支持 ASCII
        escaped = re.sub(r"([\\&<>|;()'\"`$])", r"\\\1", text).replace(" ", "%s")
        ok, output = self.adb.shell(["input", "text", escaped])
        if not ok:
            logger.error("input text failed: %s", output)
        return ok

    def clear_text(self) -> bool:
        if self.use_adb_keyboard:
            ok, _ = self.adb.shell(["am", "broadcast", "-a", "ADB_CLEAR_TEXT"])
            if ok:
                return True
        ok, _ = self.adb.shell(["input", "keyevent", "KEYCODE_MOVE_END"] + ["KEYCODE_DEL"] * 80)
        return ok

    def back(self) -> bool:
        ok, _ = self.adb.shell(["input", "keyevent", "KEYCODE_BACK"])
        return ok

    def home(self) -> bool:
        ok, _ = self.adb.shell(["input", "keyevent", "KEYCODE_HOME"])
        return ok

    def launch_app(self, target: str) -> bool:
        ok, output = self.adb.shell(
            ["monkey", "-p", target, "-c", "android.intent.category.LAUNCHER", "1"], timeout=15
        )
        if not ok or "No activities found" in output or "aborted" in output.lower():
            logger.error("Launch of %s failed: %s", target, output)
            return False
        return True

    def current_package(self) -> str:
        """获取当前前台应用的 package"""
        ok, output = self.adb.shell(["dumpsys", "activity", "activities"], timeout=5)
        if not ok:
            return ""
        patterns = [
            r"mResumedActivity:\s*ActivityRecord\{[^\}]*\s+([^\s/]+)/",
            r"ResumedActivity:\s*ActivityRecord\{[^\}]*\s+([^\s/]+)/",
            r"mCurrentFocus=Window\{[^\}]*\s+([^\s/]+)/",
        ]
        for pattern in patterns:
            match = re.search(pattern, output)
            if match:
                return match.group(1)
        return ""

    def current_app_display_name(self) -> str:
        package = self.current_package()
        if not package:
            return "System Home"
        if self.label_for_package is not None:
            label = self.label_for_package(package)
            if label:
                return label
        return package

    def structured_screen_dump(self) -> str:
        """uiautomator dump of the current screen, one informative element per line."""
        ok, output = self.adb.shell(["uiautomator", "dump", UI_DUMP_PATH], timeout=15)
        if not ok:
            logger.warning("uiautomator dump failed: %s", output)
            return ""
        ok, xml_text = self.adb.run_command(["exec-out", "cat", UI_DUMP_PATH], timeout=10)
        if not ok or not xml_text.strip():
            return ""
        width, height = self.screen_size()
        return format_elements(parse_ui_xml(xml_text), width, height)

    def list_packages(self) -> List[str]:
        """Installed third-party packages."""
        ok, output = self.adb.shell(["pm", "list", "packages", "-3"], timeout=15)
        if not ok:
            return []
        return [line.split(":", 1)[1].strip() for line in output.splitlines() if line.startswith("package:")]

    def _dispatch(self, command: List[str], callback: GestureCallback) -> bool:
        if not self.adb.get_adb_path():
            raise DeviceUnavailableError("adb executable not found")

        def run():
            ok, output = self.adb.shell(command, timeout=15)
            if not ok:
                logger.warning("Gesture %s failed: %s", " ".join(command), output)
            try:
                callback(ok)
            except Exception:
                logger.exception("Gesture completion callback raised")

        threading.Thread(target=run, name="adb-gesture", daemon=True).start()
        return True
