"""
异常定义
========

- HVCError 及其子类：设备 / 串口层错误，应用层按命令捕获后继续
- TrackerUnavailableError：本帧跟踪器不可用，融合步骤跳过（原始结果直接使用）
- StoreIndexError：直接通过帧结果存储 API 越界访问，属于调用方编程错误
"""
from typing import Optional


class HVCError(RuntimeError):
    """HVC 设备相关错误的基类"""


class HVCTransportError(HVCError):
    """串口传输失败（端口未打开、超时、短读、同步字节错误）"""


class HVCResponseError(HVCError):
    """设备返回非零响应码"""

    def __init__(self, status: int, command: Optional[int] = None):
        self.status = status
        self.command = command
        if command is None:
            message = f"Device returned error status 0x{status:02X}"
        else:
            message = f"Command 0x{command:02X} failed with status 0x{status:02X}"
        super().__init__(message)


class TrackerUnavailableError(RuntimeError):
    """跟踪器本帧无法给出结果"""


class StoreIndexError(IndexError):
    """帧结果存储越界访问（能力掩码与调用不一致）"""
