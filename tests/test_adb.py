"""测试 ADB 设备控制、截图与界面解析"""

import base64
import threading
from io import BytesIO

import pytest
from PIL import Image

from phone_pilot.device.adb import AdbDeviceControl, format_elements, parse_bounds, parse_ui_xml
from phone_pilot.device.screenshot import AdbScreenCapture, decode_screencap
from phone_pilot.errors import CaptureUnavailableError, DeviceUnavailableError

UI_XML = """<?xml version='1.0' encoding='UTF-8' standalone='yes' ?>
<hierarchy rotation="0">
  <node index="0" text="" resource-id="" class="android.widget.FrameLayout" content-desc="" clickable="false" scrollable="false" bounds="[0,0][1080,2400]">
    <node index="0" text="WLAN" resource-id="com.android.settings:id/title" class="android.widget.TextView" content-desc="" clickable="true" scrollable="false" bounds="[0,200][1080,400]" />
    <node index="1" text="" resource-id="" class="androidx.recyclerview.widget.RecyclerView" content-desc="" clickable="false" scrollable="true" bounds="[0,400][1080,2400]" />
    <node index="2" text="" resource-id="" class="android.widget.ImageView" content-desc="返回" clickable="false" scrollable="false" bounds="[0,0][100,100]" />
  </node>
</hierarchy>"""


def png_bytes(width=64, height=128):
    img = Image.new("RGB", (width, height))
    img.putdata([((x * 4) % 256, (y * 2) % 256, (x * y) % 256) for y in range(height) for x in range(width)])
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class FakeADB:
    """记录 shell 命令的 ADBHelper 替身"""

    def __init__(self, outputs=None, available=True, devices=("emulator-5554",), device_id=None, binary=b""):
        self.outputs = outputs or {}
        self.available = available
        self.devices = list(devices)
        self.device_id = device_id
        self.binary = binary
        self.commands = []

    def get_adb_path(self):
        return "adb" if self.available else ""

    def is_available(self):
        return self.available

    def list_devices(self):
        return self.devices

    def shell(self, command, timeout=30):
        self.commands.append(command)
        return self.outputs.get(command[0], (True, ""))

    def run_command(self, args, timeout=30, with_device=True):
        self.commands.append(args)
        return self.outputs.get(args[0], (True, ""))

    def run_binary(self, args, timeout=10):
        return bool(self.binary), self.binary


def test_parse_bounds():
    assert parse_bounds("[0,200][1080,400]") == (0, 200, 1080, 400)
    assert parse_bounds("garbage") is None


def test_parse_ui_xml_keeps_informative_nodes():
    elements = parse_ui_xml(UI_XML)
    assert [e.class_name.rsplit(".", 1)[-1] for e in elements] == ["TextView", "RecyclerView", "ImageView"]
    assert elements[0].center == (540, 300)
    assert parse_ui_xml("<not xml") == []


def test_format_elements_uses_relative_centers():
    text = format_elements(parse_ui_xml(UI_XML), 1080, 2400)
    lines = text.splitlines()
    assert lines[0] == '[0] TextView text="WLAN" id="title" clickable center=[500,125]'
    assert 'desc="返回"' in lines[2]


def test_decode_screencap_reports_device_size():
    data = png_bytes()
    shot = decode_screencap(data, max_side=32)

    assert (shot.width, shot.height) == (64, 128)
    encoded = Image.open(BytesIO(base64.b64decode(shot.base64_data)))
    assert max(encoded.size) == 32


def test_decode_screencap_rejects_garbage():
    assert decode_screencap(b"") is None
    assert decode_screencap(b"x" * 200) is None


def test_screen_capture_lifecycle():
    capture = AdbScreenCapture(FakeADB(binary=png_bytes()))
    assert capture.capture_frame() is None, "未初始化时不应截图"

    capture.initialize()
    assert capture.active
    assert capture.capture_frame().width == 64

    capture.release()
    capture.release()
    assert not capture.active


def test_screen_capture_initialize_errors():
    with pytest.raises(CaptureUnavailableError):
        AdbScreenCapture(FakeADB(available=False)).initialize()
    with pytest.raises(CaptureUnavailableError):
        AdbScreenCapture(FakeADB(devices=())).initialize()
    with pytest.raises(CaptureUnavailableError):
        AdbScreenCapture(FakeADB(device_id="other")).initialize()


def test_screen_size_prefers_override():
    adb = FakeADB({"wm": (True, "Physical size: 1080x2400\nOverride size: 720x1600")})
    assert AdbDeviceControl(adb).screen_size() == (720, 1600)


def test_screen_size_default_when_unknown():
    adb = FakeADB({"wm": (False, "error")})
    assert AdbDeviceControl(adb).screen_size() == (1080, 2400)


def test_current_app_display_name():
    activities = "  mResumedActivity: ActivityRecord{abc u0 com.tencent.mm/.ui.LauncherUI t12}"
    adb = FakeADB({"dumpsys": (True, activities)})
    labels = {"com.tencent.mm": "微信"}
    assert AdbDeviceControl(adb, label_for_package=labels.get).current_app_display_name() == "微信"
    assert AdbDeviceControl(FakeADB()).current_app_display_name() == "System Home"


def test_list_packages():
    adb = FakeADB({"pm": (True, "package:com.a\npackage:com.b\n")})
    assert AdbDeviceControl(adb).list_packages() == ["com.a", "com.b"]


def test_type_text_uses_adb_keyboard():
    adb = FakeADB()
    assert AdbDeviceControl(adb).type_text("你好")
    encoded = base64.b64encode("你好".encode("utf-8")).decode("utf-8")
    assert adb.commands[-1] == ["am", "broadcast", "-a", "ADB_INPUT_B64", "--es", "msg", encoded]


def test_tap_reports_completion():
    adb = FakeADB()
    done = threading.Event()
    results = []

    def callback(ok):
        results.append(ok)
        done.set()

    assert AdbDeviceControl(adb).tap(540, 1200, callback)
    assert done.wait(5)
    assert results == [True]
    assert ["input", "tap", "540", "1200"] in adb.commands


def test_gesture_without_adb_raises():
    control = AdbDeviceControl(FakeADB(available=False))
    with pytest.raises(DeviceUnavailableError):
        control.tap(1, 1, lambda ok: None)


def test_structured_screen_dump():
    adb = FakeADB({"exec-out": (True, UI_XML), "wm": (True, "Physical size: 1080x2400")})
    dump = AdbDeviceControl(adb).structured_screen_dump()
    assert dump.startswith('[0] TextView text="WLAN"')
