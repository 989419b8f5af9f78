"""
帧率监控模块
===========

统计连续检测循环的帧率（一帧 = 一次 Execute 往返 + 稳定化 + 输出）。
"""
import time
from typing import Optional

from ..core.logger import logger


class FrameRateMonitor:
    """
    帧率监控器（EMA 平滑）

    使用示例:
        monitor = FrameRateMonitor(smoothing=0.8)
        while not stop:
            device.execute(...)
            monitor.update()
        logger.debug(monitor.summary())
    """

    def __init__(self, smoothing: float = 0.8):
        """
        Args:
            smoothing: EMA 平滑系数（0.0-1.0），越大越平滑
        """
        self.smoothing = max(0.0, min(1.0, smoothing))
        self.last_frame_time: Optional[float] = None
        self.fps: float = 0.0
        self.frame_interval: float = 0.0
        self.frame_count: int = 0

    def update(self, timestamp: Optional[float] = None):
        """
        每帧调用一次

        Args:
            timestamp: 当前帧时间戳（秒），默认 time.monotonic()
        """
        now = timestamp if timestamp is not None else time.monotonic()

        if self.last_frame_time is not None:
            elapsed = now - self.last_frame_time
            if elapsed > 0:
                instant = 1.0 / elapsed
                # 首个间隔直接取瞬时值
                if self.frame_count <= 1:
                    self.fps = instant
                else:
                    self.fps = self.smoothing * self.fps + (1 - self.smoothing) * instant
                self.frame_interval = elapsed

        self.last_frame_time = now
        self.frame_count += 1

    def get_interval_ms(self) -> float:
        return self.frame_interval * 1000.0

    def reset(self):
        """重置所有统计"""
        self.last_frame_time = None
        self.fps = 0.0
        self.frame_interval = 0.0
        self.frame_count = 0

    def summary(self) -> str:
        return f"{self.frame_count} frames, {self.fps:.2f} fps, last interval {self.get_interval_ms():.1f} ms"

    def log_summary(self, label: str):
        logger.debug(f"[{label}] {self.summary()}")

    def __repr__(self) -> str:
        return f"FrameRateMonitor(fps={self.fps:.2f}, interval={self.frame_interval*1000:.2f}ms, frames={self.frame_count})"
