"""
运行时开关模块
============

线程安全的布尔开关。
连续检测/识别/认证循环用它作为"停止"标志：键盘监听线程置位，主循环在帧间检查。
"""
import threading

from .logger import logger


class RuntimeSwitch:
    """
    线程安全的布尔开关

    示例:
        >>> stop = RuntimeSwitch(initial=False, name="detection-stop")
        >>> stop.set(True, source="keyboard")
        >>> bool(stop)
        True
    """

    def __init__(self, initial: bool = False, name: str = "Switch"):
        """
        Args:
            initial: 初始状态
            name: 开关名称(用于日志)
        """
        self._flag = initial
        self._lock = threading.Lock()
        self._name = name
        logger.debug(f"RuntimeSwitch '{name}' initialised: {initial}")

    def get(self) -> bool:
        """获取当前状态(线程安全)"""
        with self._lock:
            return self._flag

    def __bool__(self) -> bool:
        return self.get()

    def set(self, value: bool, source: str = "unknown"):
        """
        设置状态（值不变时不记日志）

        Args:
            value: 新状态
            source: 触发来源(用于日志,如 "keyboard", "session", "signal")
        """
        with self._lock:
            if value == self._flag:
                return
            old_value = self._flag
            self._flag = value

        logger.debug(f"RuntimeSwitch '{self._name}': {old_value} -> {value} (source: {source})")

    def reset(self, source: str = "reset"):
        """恢复为未触发状态（每个会话开始时调用）"""
        self.set(False, source=source)

    def trigger(self, source: str = "trigger"):
        """置位（请求停止）"""
        self.set(True, source=source)

    def __repr__(self) -> str:
        return f"RuntimeSwitch(name='{self._name}', state={self.get()})"
