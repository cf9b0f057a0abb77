"""
ADB工具辅助模块
定位 adb 可执行文件并运行命令
"""
import logging
import os
import subprocess
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class ADBHelper:
    """ADB工具辅助类

    Args:
        custom_adb_path: Explicit adb executable; falls back to ``adb`` on PATH.
        device_id: Serial passed with ``-s`` for multi-device setups.
    """

    def __init__(self, custom_adb_path: Optional[str] = None, device_id: Optional[str] = None):
        self.custom_adb_path = custom_adb_path
        self.device_id = device_id
        self._adb_path = None

    def get_adb_path(self) -> str:
        """获取ADB可执行文件路径"""
        if self._adb_path:
            return self._adb_path

        # 优先使用自定义路径
        if self.custom_adb_path and os.path.exists(self.custom_adb_path):
            self._adb_path = self.custom_adb_path
            return self._adb_path

        # 尝试系统PATH中的adb
        try:
            result = subprocess.run(
                ["adb", "version"],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=5
            )
            if result.returncode == 0:
                self._adb_path = "adb"
                return self._adb_path
        except (subprocess.TimeoutExpired, FileNotFoundError):
            pass

        return ""

    def is_available(self) -> bool:
        """检查ADB是否可用"""
        return bool(self.get_adb_path())

    def prefix(self, with_device: bool = True) -> List[str]:
        """Command prefix with the adb path and optional device selector."""
        cmd = [self.get_adb_path()]
        if with_device and self.device_id:
            cmd += ["-s", self.device_id]
        return cmd

    def run_command(self, args: list, timeout: int = 30, with_device: bool = True) -> Tuple[bool, str]:
        """运行ADB命令"""
        if not self.get_adb_path():
            return False, "ADB not available"

        cmd = self.prefix(with_device) + list(args)
        logger.debug("adb: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            return False, f"Command timed out after {timeout}s"
        except OSError as e:
            return False, str(e)

        if result.returncode == 0:
            return True, result.stdout.strip()
        return False, result.stderr.strip() or result.stdout.strip()

    def run_binary(self, args: list, timeout: int = 10) -> Tuple[bool, bytes]:
        """Run a command whose stdout is binary (e.g. ``exec-out screencap -p``)."""
        if not self.get_adb_path():
            return False, b""
        try:
            result = subprocess.run(self.prefix() + list(args), capture_output=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("adb %s timed out after %ss", " ".join(args), timeout)
            return False, b""
        except OSError as e:
            logger.warning("adb %s failed: %s", " ".join(args), e)
            return False, b""
        if result.returncode != 0:
            logger.warning(
                "adb %s exited %d: %s",
                " ".join(args),
                result.returncode,
                result.stderr.decode("utf-8", errors="replace").strip(),
            )
            return False, result.stdout
        return True, result.stdout

    def shell(self, command: list, timeout: int = 30) -> Tuple[bool, str]:
        return self.run_command(["shell"] + list(command), timeout=timeout)

    def list_devices(self) -> List[str]:
        """Serials of devices in the ``device`` state."""
        ok, output = self.run_command(["devices"], timeout=10, with_device=False)
        if not ok:
            return []
        serials = []
        for line in output.splitlines()[1:]:
            parts = line.split()
            if len(parts) >= 2 and parts[1] == "device":
                serials.append(parts[0])
        return serials

