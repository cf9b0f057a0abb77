# Device Module
from .adb import AdbDeviceControl
from .adb_helper import ADBHelper
from .apps import AppNameResolver
from .base import AppResolver, DeviceControl, ObserverSink, ScreenCapture, Screenshot
from .screenshot import AdbScreenCapture

__all__ = [
    "AdbDeviceControl",
    "ADBHelper",
    "AppNameResolver",
    "AppResolver",
    "DeviceControl",
    "ObserverSink",
    "ScreenCapture",
    "Screenshot",
    "AdbScreenCapture",
]
