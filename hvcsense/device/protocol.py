"""
HVC 命令协议
============

命令帧:   0xFE | command(1) | data_length(2, LE) | data
响应帧:   0xFE | status(1)  | data_length(4, LE) | data

多字节整数一律小端。本模块只负责帧的编解码和各命令负载的打包 / 解包，
不持有串口（见 uart_link.UartLink）。
"""
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np

from ..core.errors import HVCTransportError

SYNC_CODE = 0xFE
COMMAND_HEADER = struct.Struct("<BBH")
RESPONSE_HEADER = struct.Struct("<BBI")


class Command(IntEnum):
    GET_VERSION = 0x00
    SET_CAMERA_ANGLE = 0x01
    GET_CAMERA_ANGLE = 0x02
    EXECUTE = 0x03
    EXECUTE_EX = 0x04
    SET_THRESHOLD = 0x05
    GET_THRESHOLD = 0x06
    SET_SIZE_RANGE = 0x07
    GET_SIZE_RANGE = 0x08
    SET_FACE_ANGLE = 0x09
    GET_FACE_ANGLE = 0x0A
    SET_VERIFY_THRESHOLD = 0x0B
    GET_VERIFY_THRESHOLD = 0x0C
    SET_BAUDRATE = 0x0E
    REGISTRATION = 0x10
    DELETE_DATA = 0x11
    DELETE_USER = 0x12
    DELETE_ALL = 0x13
    SET_VERIFY_USER = 0x16
    GET_VERIFY_USER = 0x17
    SET_REGIST_COUNT = 0x18
    GET_REGIST_COUNT = 0x19
    SAVE_ALBUM = 0x20
    LOAD_ALBUM = 0x21
    WRITE_ALBUM = 0x22
    REFORMAT_ALBUM = 0x30


# ============================================================================
# 帧
# ============================================================================

def build_command(command: int, data: bytes = b"") -> bytes:
    """组装命令帧"""
    if len(data) > 0xFFFF:
        raise ValueError(f"Command payload too large: {len(data)} bytes")
    return COMMAND_HEADER.pack(SYNC_CODE, int(command), len(data)) + bytes(data)


def build_load_album_command(blob: bytes) -> bytes:
    """
    组装 LOAD_ALBUM 命令帧

    相册可能超过 64 KiB，帧头的 data_length 只覆盖 4 字节的相册长度，
    相册数据紧跟其后发送：0xFE | 0x21 | 0x0004 | size(4, LE) | album
    """
    return COMMAND_HEADER.pack(SYNC_CODE, int(Command.LOAD_ALBUM), _ALBUM_SIZE.size) + pack_album(blob)


def parse_response_header(header: bytes) -> Tuple[int, int]:
    """
    解析响应帧头

    Returns:
        (status, data_length)

    Raises:
        HVCTransportError: 长度不足或同步字节错误
    """
    if len(header) != RESPONSE_HEADER.size:
        raise HVCTransportError(f"Short response header: {len(header)}/{RESPONSE_HEADER.size} bytes")
    sync, status, length = RESPONSE_HEADER.unpack(header)
    if sync != SYNC_CODE:
        raise HVCTransportError(f"Bad sync byte in response: 0x{sync:02X}")
    return status, length


def build_response(status: int, data: bytes = b"") -> bytes:
    """组装响应帧（模拟设备与测试使用）"""
    return RESPONSE_HEADER.pack(SYNC_CODE, status, len(data)) + bytes(data)


# ============================================================================
# 命令负载
# ============================================================================

@dataclass
class Version:
    model: str
    major: int
    minor: int
    release: int
    revision: int

    def __str__(self) -> str:
        return f"{self.model}{self.major}.{self.minor}.{self.release}.{self.revision}"


def _unpack(layout: struct.Struct, data: bytes, what: str) -> tuple:
    """按固定布局解包设备数据，长度不足时抛 HVCTransportError"""
    if len(data) < layout.size:
        raise HVCTransportError(f"{what} response too short: {len(data)}/{layout.size} bytes")
    return layout.unpack_from(data)


_VERSION = struct.Struct("<12sBBBI")


def pack_version(version: Version) -> bytes:
    return _VERSION.pack(version.model.encode("ascii")[:12].ljust(12, b" "),
                         version.major, version.minor, version.release, version.revision)


def unpack_version(data: bytes) -> Version:
    model, major, minor, release, revision = _unpack(_VERSION, data, "Version")
    return Version(model.decode("ascii", errors="replace"), major, minor, release, revision)


@dataclass
class Threshold:
    body: int
    hand: int
    face: int
    recognition: int


_THRESHOLD = struct.Struct("<4H")


def pack_threshold(th: Threshold) -> bytes:
    return _THRESHOLD.pack(th.body, th.hand, th.face, th.recognition)


def unpack_threshold(data: bytes) -> Threshold:
    return Threshold(*_unpack(_THRESHOLD, data, "Threshold"))


@dataclass
class SizeRange:
    body_min: int
    body_max: int
    hand_min: int
    hand_max: int
    face_min: int
    face_max: int


_SIZE_RANGE = struct.Struct("<6H")


def pack_size_range(sr: SizeRange) -> bytes:
    return _SIZE_RANGE.pack(sr.body_min, sr.body_max, sr.hand_min, sr.hand_max, sr.face_min, sr.face_max)


def unpack_size_range(data: bytes) -> SizeRange:
    return SizeRange(*_unpack(_SIZE_RANGE, data, "Size range"))


_UINT8 = struct.Struct("<B")
_UINT16 = struct.Struct("<H")


def pack_uint8(value: int) -> bytes:
    return _UINT8.pack(value)


def pack_uint16(value: int) -> bytes:
    return _UINT16.pack(value)


def unpack_uint8(data: bytes) -> int:
    return _unpack(_UINT8, data, "uint8")[0]


def unpack_uint16(data: bytes) -> int:
    return _unpack(_UINT16, data, "uint16")[0]


def pack_user_data(user_id: int, data_id: int) -> bytes:
    return struct.pack("<HB", user_id, data_id)


def pack_execute(flags: int, image_mode: int) -> bytes:
    return struct.pack("<HB", int(flags), int(image_mode))


_ALBUM_SIZE = struct.Struct("<I")


def pack_album(blob: bytes) -> bytes:
    """相册块：长度(4) + 相册数据"""
    return _ALBUM_SIZE.pack(len(blob)) + bytes(blob)


def unpack_album(data: bytes) -> bytes:
    """SAVE_ALBUM 响应：长度(4) + 相册数据"""
    if len(data) < 4:
        raise HVCTransportError(f"Album response too short: {len(data)} bytes")
    (size,) = _ALBUM_SIZE.unpack_from(data)
    blob = bytes(data[4:4 + size])
    if len(blob) != size:
        raise HVCTransportError(f"Album data truncated: {len(blob)}/{size} bytes")
    return blob


IMAGE_HEADER = struct.Struct("<HH")


def pack_image(image: np.ndarray) -> bytes:
    height, width = image.shape[:2]
    return IMAGE_HEADER.pack(width, height) + np.ascontiguousarray(image, dtype=np.uint8).tobytes()


def unpack_image(data: bytes, offset: int = 0) -> Tuple[np.ndarray, int]:
    """
    解析图像块：width(2) | height(2) | pixels

    Returns:
        (HxW uint8 图像, 消耗的字节数)
    """
    if len(data) - offset < IMAGE_HEADER.size:
        raise HVCTransportError("Image block header truncated")
    width, height = IMAGE_HEADER.unpack_from(data, offset)
    start = offset + IMAGE_HEADER.size
    end = start + width * height
    if end > len(data):
        raise HVCTransportError(f"Image block truncated: need {width}x{height} pixels")
    pixels = np.frombuffer(data[start:end], dtype=np.uint8).reshape(height, width).copy()
    return pixels, end - offset
