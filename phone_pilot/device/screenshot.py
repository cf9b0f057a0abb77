"""Screenshot utilities for capturing Android device screen."""

import base64
import logging
import threading
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from phone_pilot.errors import CaptureUnavailableError

from .adb_helper import ADBHelper
from .base import Screenshot

logger = logging.getLogger(__name__)

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def encode_image(img: Image.Image, max_side: Optional[int] = None) -> str:
    """Re-encode ``img`` as base64 PNG, downscaling so its longest side is at most ``max_side``."""
    if max_side and max(img.size) > max_side:
        img = img.copy()
        img.thumbnail((max_side, max_side))
    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return base64.b64encode(buffered.getvalue()).decode("utf-8")


def decode_screencap(data: bytes, max_side: Optional[int] = None) -> Optional[Screenshot]:
    """
    Turn raw ``screencap -p`` output into a Screenshot.

    Returns:
        Screenshot, or None when the data is not a readable PNG.
        Width and height are the device's pixel size even when the encoded
        image was downscaled.
    """
    # Verify we got valid PNG data
    if not data or len(data) < 100 or data[:8] != PNG_HEADER:
        return None
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Screenshot is not a readable image: %s", e)
        return None
    width, height = img.size
    return Screenshot(base64_data=encode_image(img, max_side), width=width, height=height)


class AdbScreenCapture:
    """
    Screen capture over ``adb exec-out screencap -p``.

    ``capture_frame`` returns None on any failure; secure screens such as
    payment pages make screencap fail and are reported the same way.

    Args:
        adb: ADB helper bound to the target device.
        timeout: Timeout in seconds for one capture.
        max_side: Longest side of the image sent to the model, None to keep full size.
    """

    def __init__(self, adb: ADBHelper, timeout: int = 10, max_side: Optional[int] = None):
        self.adb = adb
        self.timeout = timeout
        self.max_side = max_side
        self._active = False
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def initialize(self) -> None:
        if not self.adb.is_available():
            raise CaptureUnavailableError("adb executable not found")
        if self.adb.device_id:
            connected = self.adb.device_id in self.adb.list_devices()
        else:
            connected = bool(self.adb.list_devices())
        if not connected:
            raise CaptureUnavailableError("no connected device")
        with self._lock:
            self._active = True

    def capture_frame(self) -> Optional[Screenshot]:
        if not self._active:
            logger.warning("Capture requested before initialize() or after release()")
            return None
        ok, data = self.adb.run_binary(["exec-out", "screencap", "-p"], timeout=self.timeout)
        if not ok:
            return None
        screenshot = decode_screencap(data, self.max_side)
        if screenshot is None:
            logger.warning("Screenshot data is invalid (%d bytes)", len(data))
        return screenshot

    def release(self) -> None:
        with self._lock:
            if self._active:
                logger.debug("Screen capture released")
            self._active = False
