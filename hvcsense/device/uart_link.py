"""
串口链路
========

pyserial 封装：打开 / 关闭 / 按新波特率重开、整块发送、带超时的定长接收。
"""
import time
from typing import List, Optional

import serial
from serial.tools import list_ports

from ..core.constants import Constants
from ..core.errors import HVCTransportError
from ..core.logger import logger


def available_ports() -> List[str]:
    """列出系统可见的串口设备"""
    return [p.device for p in list_ports.comports()]


class UartLink:
    """
    HVC 串口链路

    使用示例:
        with UartLink("/dev/ttyACM0", 9600) as link:
            link.send(frame)
            header = link.receive(6, timeout_ms=1000)
    """

    def __init__(self, port: str, baudrate: int = Constants.INITIAL_BAUDRATE):
        self.port = port
        self.baudrate = baudrate
        self._serial: Optional[serial.Serial] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self, baudrate: Optional[int] = None):
        """打开串口（已打开时先关闭）"""
        if baudrate is not None:
            self.baudrate = baudrate
        self.close()
        try:
            self._serial = serial.Serial(
                self.port,
                self.baudrate,
                timeout=0.1,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except serial.SerialException as e:
            self._serial = None
            raise HVCTransportError(f"Failed to open {self.port} @ {self.baudrate}: {e}") from e
        logger.info(f"[UART] opened {self.port} @ {self.baudrate} bps")

    def reopen(self, baudrate: int):
        """以新波特率重开（波特率切换命令成功后调用）"""
        logger.info(f"[UART] switching {self.port} to {baudrate} bps")
        self.open(baudrate)

    def close(self):
        if self._serial is not None:
            try:
                self._serial.close()
            except serial.SerialException as e:
                logger.warning(f"[UART] close failed: {e}")
            self._serial = None

    def send(self, data: bytes) -> int:
        """整块发送"""
        if not self.is_open:
            raise HVCTransportError("Serial port is not open")
        self._serial.reset_input_buffer()
        try:
            written = self._serial.write(data)
            self._serial.flush()
        except serial.SerialException as e:
            raise HVCTransportError(f"Serial write failed: {e}") from e
        if written != len(data):
            raise HVCTransportError(f"Short write: {written}/{len(data)} bytes")
        return written

    def receive(self, size: int, timeout_ms: int) -> bytes:
        """
        接收定长数据

        Raises:
            HVCTransportError: 超时前未收齐
        """
        if not self.is_open:
            raise HVCTransportError("Serial port is not open")

        deadline = time.monotonic() + timeout_ms / 1000.0
        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = self._serial.read(size - len(buf))
            except serial.SerialException as e:
                raise HVCTransportError(f"Serial read failed: {e}") from e
            if chunk:
                buf.extend(chunk)
            elif time.monotonic() >= deadline:
                raise HVCTransportError(f"Receive timeout: {len(buf)}/{size} bytes after {timeout_ms} ms")
        return bytes(buf)
