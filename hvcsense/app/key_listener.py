"""
键盘停止监听

连续检测循环运行时，后台线程读取 stdin；输入以空格或 'q' 开头的一行后置位停止开关。

循环被别处结束（会话异常退出）时线程可能仍阻塞在 readline()，
它之后读到的那一行会转交给菜单（见 has_pending / next_line），不会被吞掉。
"""
import queue
import sys
import threading
from typing import Optional, TextIO

from ..core.logger import logger
from ..core.runtime_switch import RuntimeSwitch

STOP_KEYS = (" ", "q", "Q")


class KeyStopListener:
    """
    stdin 停止监听线程

    Args:
        switch: 停止开关（输入停止键后置位）
        stream: 输入流（默认 sys.stdin）
    """

    def __init__(self, switch: RuntimeSwitch, stream: Optional[TextIO] = None):
        self.switch = switch
        self.stream = stream or sys.stdin
        self._thread: Optional[threading.Thread] = None
        self._carry: "queue.Queue[str]" = queue.Queue()

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            logger.warning("KeyStopListener already running")
            return
        self.switch.reset(source="listener")
        self._thread = threading.Thread(target=self._listen, name="KeyStopListener", daemon=True)
        self._thread.start()

    def _listen(self):
        while not self.switch.get():
            line = self.stream.readline()
            if self.switch.get():
                # 循环已结束，这一行属于下一个提示
                self._carry.put(line)
                return
            if not line:
                # EOF
                self.switch.trigger(source="eof")
                return
            if line.startswith(STOP_KEYS):
                self.switch.trigger(source="keyboard")
                return

    def continue_running(self) -> bool:
        """循环回调：未请求停止时返回 True"""
        return not self.switch.get()

    def join(self, timeout: float = 0.5):
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.debug("KeyStopListener still waiting for input, next line goes to the menu")

    def has_pending(self) -> bool:
        """线程仍在读，或已读到一行尚未取走"""
        return not self._carry.empty() or (self._thread is not None and self._thread.is_alive())

    def next_line(self) -> str:
        """
        取走循环结束后读到的一行（阻塞到线程读到为止）

        Raises:
            EOFError: 输入流已结束
        """
        line = self._carry.get()
        if not line:
            raise EOFError
        return line.rstrip("\n")
