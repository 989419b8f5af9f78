"""
HVC 串口设备
============

通过 UartLink 收发命令帧，实现 HVCDeviceInterface。
每条命令：发送命令帧 -> 读 6 字节响应头 -> 读 data_length 字节数据 -> 检查响应码。
"""
from typing import Optional, Tuple

import numpy as np

from ..core.constants import Constants
from ..core.errors import HVCResponseError
from ..core.logger import logger
from ..results.capabilities import ExecFlag, ImageMode
from ..results.frame_store import FrameResultStore
from . import protocol
from .device_interface import HVCDeviceInterface
from .protocol import Command, SizeRange, Threshold, Version
from .result_parser import parse_execute_result
from .uart_link import UartLink


class HVCDevice(HVCDeviceInterface):
    """
    串口连接的 HVC 设备

    使用示例:
        link = UartLink("/dev/ttyACM0")
        with HVCDevice(link) as device:
            device.set_baudrate(921600)
            print(device.get_version())
    """

    def __init__(self, link: UartLink):
        self.link = link

    # ========== 连接 ==========

    def open(self) -> None:
        if not self.link.is_open:
            self.link.open()

    def close(self) -> None:
        self.link.close()

    def is_open(self) -> bool:
        return self.link.is_open

    def set_baudrate(self, baudrate: int) -> None:
        if baudrate not in Constants.SUPPORTED_BAUDRATES:
            raise ValueError(f"Unsupported baudrate: {baudrate}")
        index = Constants.SUPPORTED_BAUDRATES.index(baudrate)
        self._transact(Command.SET_BAUDRATE, protocol.pack_uint8(index))
        self.link.reopen(baudrate)

    # ========== 收发 ==========

    def _transact(self, command: Command, data: bytes = b"",
                  timeout_ms: int = Constants.UART_GENERAL_TIMEOUT, frame: Optional[bytes] = None) -> bytes:
        """
        发送命令并读取响应数据

        frame 给出时原样发送（LOAD_ALBUM 的相册数据不受 data_length 上限约束）

        Raises:
            HVCTransportError: 串口失败 / 超时 / 帧头错误 / 数据长度不足
            HVCResponseError: 响应码非零
        """
        self.link.send(frame if frame is not None else protocol.build_command(command, data))
        status, length = protocol.parse_response_header(
            self.link.receive(protocol.RESPONSE_HEADER.size, timeout_ms)
        )
        payload = self.link.receive(length, timeout_ms) if length else b""
        logger.debug(f"[HVC] {command.name}: status=0x{status:02X} data={length} bytes")
        if status != 0:
            raise HVCResponseError(status, int(command))
        return payload

    # ========== 设备参数 ==========

    def get_version(self) -> Version:
        return protocol.unpack_version(self._transact(Command.GET_VERSION))

    def set_camera_angle(self, angle: int) -> None:
        self._transact(Command.SET_CAMERA_ANGLE, protocol.pack_uint8(angle))

    def get_camera_angle(self) -> int:
        return protocol.unpack_uint8(self._transact(Command.GET_CAMERA_ANGLE))

    def set_threshold(self, threshold: Threshold) -> None:
        self._transact(Command.SET_THRESHOLD, protocol.pack_threshold(threshold))

    def get_threshold(self) -> Threshold:
        return protocol.unpack_threshold(self._transact(Command.GET_THRESHOLD))

    def set_size_range(self, size_range: SizeRange) -> None:
        self._transact(Command.SET_SIZE_RANGE, protocol.pack_size_range(size_range))

    def get_size_range(self) -> SizeRange:
        return protocol.unpack_size_range(self._transact(Command.GET_SIZE_RANGE))

    def set_face_angle(self, pose: int, angle: int) -> None:
        self._transact(Command.SET_FACE_ANGLE, protocol.pack_uint8(pose) + protocol.pack_uint8(angle))

    def get_face_angle(self) -> Tuple[int, int]:
        data = self._transact(Command.GET_FACE_ANGLE)
        return protocol.unpack_uint8(data), protocol.unpack_uint8(data[1:])

    def set_verify_threshold(self, threshold: int) -> None:
        self._transact(Command.SET_VERIFY_THRESHOLD, protocol.pack_uint16(threshold))

    def get_verify_threshold(self) -> int:
        return protocol.unpack_uint16(self._transact(Command.GET_VERIFY_THRESHOLD))

    # ========== 检测 ==========

    def execute(self, flags: ExecFlag, image_mode: ImageMode = ImageMode.NONE) -> FrameResultStore:
        data = self._transact(
            Command.EXECUTE_EX,
            protocol.pack_execute(flags, image_mode),
            timeout_ms=Constants.UART_EXECUTE_TIMEOUT,
        )
        return parse_execute_result(data, ExecFlag(flags), ImageMode(image_mode))

    # ========== 相册 ==========

    def register(self, user_id: int, data_id: int) -> np.ndarray:
        data = self._transact(Command.REGISTRATION, protocol.pack_user_data(user_id, data_id))
        image, _ = protocol.unpack_image(data)
        return image

    def delete_data(self, user_id: int, data_id: int) -> None:
        self._transact(Command.DELETE_DATA, protocol.pack_user_data(user_id, data_id))

    def delete_user(self, user_id: int) -> None:
        self._transact(Command.DELETE_USER, protocol.pack_uint16(user_id))

    def delete_all(self) -> None:
        self._transact(Command.DELETE_ALL)

    def set_verify_user(self, user_id: int) -> None:
        self._transact(Command.SET_VERIFY_USER, protocol.pack_uint16(user_id))

    def get_verify_user(self) -> int:
        return protocol.unpack_uint16(self._transact(Command.GET_VERIFY_USER))

    def save_album(self) -> bytes:
        return protocol.unpack_album(self._transact(Command.SAVE_ALBUM))

    def load_album(self, blob: bytes) -> None:
        self._transact(Command.LOAD_ALBUM, frame=protocol.build_load_album_command(blob))

    def write_album(self) -> None:
        self._transact(Command.WRITE_ALBUM, timeout_ms=Constants.UART_WRITE_ALBUM_TIMEOUT)

    def reformat_album(self) -> None:
        self._transact(Command.REFORMAT_ALBUM, timeout_ms=Constants.UART_REFORMAT_ALBUM_TIMEOUT)

    def set_regist_count(self, index: int) -> None:
        self._transact(Command.SET_REGIST_COUNT, protocol.pack_uint8(index),
                       timeout_ms=Constants.UART_REGIST_COUNT_TIMEOUT)

    def get_regist_count(self) -> int:
        return protocol.unpack_uint8(self._transact(Command.GET_REGIST_COUNT))
