"""
HVC 设备抽象接口
==============

定义所有 HVC 设备实现必须遵守的命令接口，支持：
- 串口真机 (HVCDevice)
- 模拟设备 (MockHVCDevice，用于测试与 --mock 运行)

所有命令失败时抛出 HVCError 子类：
- HVCTransportError: 串口层失败
- HVCResponseError: 设备返回非零响应码
"""
import struct
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, Iterable, Optional, Set, Tuple

import numpy as np

from ..core.constants import Constants
from ..core.errors import HVCResponseError
from ..core.logger import logger
from ..results.capabilities import NOT_REGISTERED, ExecFlag, Expression, ImageMode
from ..results.frame_store import (
    AgeResult,
    BlinkResult,
    DirectionResult,
    ExpressionResult,
    FaceResult,
    FrameResultStore,
    GazeResult,
    GenderResult,
    RawEntity,
    RecognitionResult,
    VerifyResult,
)
from .protocol import SizeRange, Threshold, Version
from .result_parser import encode_execute_result, parse_execute_result


class HVCDeviceInterface(ABC):
    """
    HVC 设备统一接口

    使用示例:
        with HVCDevice(link) as device:
            print(device.get_version())
            store = device.execute(ExecFlag.FACE | ExecFlag.AGE, ImageMode.NONE)
    """

    # ========== 连接 ==========

    @abstractmethod
    def open(self) -> None:
        """打开连接"""
        pass

    @abstractmethod
    def close(self) -> None:
        """关闭连接"""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def set_baudrate(self, baudrate: int) -> None:
        """
        切换通信波特率（设备与本地端口同时切换）

        Raises:
            ValueError: 不支持的波特率
        """
        pass

    # ========== 设备参数 ==========

    @abstractmethod
    def get_version(self) -> Version:
        pass

    @abstractmethod
    def set_camera_angle(self, angle: int) -> None:
        pass

    @abstractmethod
    def get_camera_angle(self) -> int:
        pass

    @abstractmethod
    def set_threshold(self, threshold: Threshold) -> None:
        pass

    @abstractmethod
    def get_threshold(self) -> Threshold:
        pass

    @abstractmethod
    def set_size_range(self, size_range: SizeRange) -> None:
        pass

    @abstractmethod
    def get_size_range(self) -> SizeRange:
        pass

    @abstractmethod
    def set_face_angle(self, pose: int, angle: int) -> None:
        pass

    @abstractmethod
    def get_face_angle(self) -> Tuple[int, int]:
        """Returns: (pose, angle)"""
        pass

    @abstractmethod
    def set_verify_threshold(self, threshold: int) -> None:
        pass

    @abstractmethod
    def get_verify_threshold(self) -> int:
        pass

    # ========== 检测 ==========

    @abstractmethod
    def execute(self, flags: ExecFlag, image_mode: ImageMode = ImageMode.NONE) -> FrameResultStore:
        """
        执行一次检测 / 估计

        Args:
            flags: 功能位
            image_mode: 是否同时返回图像

        Returns:
            本帧的 FrameResultStore
        """
        pass

    # ========== 相册 ==========

    @abstractmethod
    def register(self, user_id: int, data_id: int) -> np.ndarray:
        """
        注册人脸

        Returns:
            注册用的人脸图像（灰度）
        """
        pass

    @abstractmethod
    def delete_data(self, user_id: int, data_id: int) -> None:
        pass

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        pass

    @abstractmethod
    def delete_all(self) -> None:
        pass

    @abstractmethod
    def set_verify_user(self, user_id: int) -> None:
        pass

    @abstractmethod
    def get_verify_user(self) -> int:
        pass

    @abstractmethod
    def save_album(self) -> bytes:
        """从设备读出相册数据"""
        pass

    @abstractmethod
    def load_album(self, blob: bytes) -> None:
        """把相册数据写入设备 RAM"""
        pass

    @abstractmethod
    def write_album(self) -> None:
        """相册写入 Flash ROM"""
        pass

    @abstractmethod
    def reformat_album(self) -> None:
        """格式化 Flash ROM"""
        pass

    @abstractmethod
    def set_regist_count(self, index: int) -> None:
        """设置可注册人数（0:100 1:500 2:1000）"""
        pass

    @abstractmethod
    def get_regist_count(self) -> int:
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# ============================================================================
# 模拟设备
# ============================================================================

_ALBUM_ENTRY = struct.Struct("<HH")  # user_id, data_id 位图


class MockHVCDevice(HVCDeviceInterface):
    """
    模拟 HVC 设备

    - execute() 优先返回 queue_frame() 预置的帧，否则生成确定性的合成帧
    - fail_next(status) 让下一条命令以指定响应码失败
    - 所有调用记录在 calls 中，便于测试断言
    """

    def __init__(self, frames: Optional[Iterable[FrameResultStore]] = None):
        self._open = False
        self.baudrate = Constants.INITIAL_BAUDRATE
        self.version = Version("HVC-P2      ", 1, 2, 3, 4)
        self.camera_angle = 0xFF
        self.threshold = Threshold(0, 0, 0, 0)
        self.size_range = SizeRange(0, 0, 0, 0, 0, 0)
        self.face_angle = (0xFF, 0xFF)
        self.verify_threshold = 0
        self.verify_user = 0
        self.regist_count = 0
        self.album: Dict[int, Set[int]] = {}
        self.flash_album: Dict[int, Set[int]] = {}
        self.frame_counter = 0
        self.calls = []
        self._frames: Deque[FrameResultStore] = deque(frames or [])
        self._fail_status: Optional[int] = None

    # ---------- 测试辅助 ----------

    def queue_frame(self, store: FrameResultStore):
        self._frames.append(store)

    def fail_next(self, status: int):
        self._fail_status = status

    def _command(self, name: str, *args):
        self.calls.append((name,) + args)
        if self._fail_status is not None:
            status, self._fail_status = self._fail_status, None
            raise HVCResponseError(status)

    # ---------- 连接 ----------

    def open(self) -> None:
        self._open = True
        logger.info("[MockHVC] opened")

    def close(self) -> None:
        if self._open:
            logger.info("[MockHVC] closed")
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def set_baudrate(self, baudrate: int) -> None:
        if baudrate not in Constants.SUPPORTED_BAUDRATES:
            raise ValueError(f"Unsupported baudrate: {baudrate}")
        self._command("set_baudrate", baudrate)
        self.baudrate = baudrate

    # ---------- 设备参数 ----------

    def get_version(self) -> Version:
        self._command("get_version")
        return self.version

    def set_camera_angle(self, angle: int) -> None:
        self._command("set_camera_angle", angle)
        self.camera_angle = angle

    def get_camera_angle(self) -> int:
        self._command("get_camera_angle")
        return self.camera_angle

    def set_threshold(self, threshold: Threshold) -> None:
        self._command("set_threshold", threshold)
        self.threshold = threshold

    def get_threshold(self) -> Threshold:
        self._command("get_threshold")
        return self.threshold

    def set_size_range(self, size_range: SizeRange) -> None:
        self._command("set_size_range", size_range)
        self.size_range = size_range

    def get_size_range(self) -> SizeRange:
        self._command("get_size_range")
        return self.size_range

    def set_face_angle(self, pose: int, angle: int) -> None:
        self._command("set_face_angle", pose, angle)
        self.face_angle = (pose, angle)

    def get_face_angle(self) -> Tuple[int, int]:
        self._command("get_face_angle")
        return self.face_angle

    def set_verify_threshold(self, threshold: int) -> None:
        self._command("set_verify_threshold", threshold)
        self.verify_threshold = threshold

    def get_verify_threshold(self) -> int:
        self._command("get_verify_threshold")
        return self.verify_threshold

    # ---------- 检测 ----------

    def execute(self, flags: ExecFlag, image_mode: ImageMode = ImageMode.NONE) -> FrameResultStore:
        self._command("execute", ExecFlag(flags), ImageMode(image_mode))
        self.frame_counter += 1
        if self._frames:
            return self._frames.popleft().copy()
        # 合成帧经过一次编解码，与真机输出路径一致
        store = self._synthesize(ExecFlag(flags), ImageMode(image_mode))
        return parse_execute_result(encode_execute_result(store), store.executed, image_mode)

    def _synthesize(self, flags: ExecFlag, image_mode: ImageMode) -> FrameResultStore:
        n = self.frame_counter
        store = FrameResultStore(executed=flags)
        if flags & ExecFlag.BODY:
            store.bodies.append(RawEntity(160 + n % 3, 120, 180, 700))
        if flags & ExecFlag.HAND:
            store.hands.append(RawEntity(60, 200, 60, 650))
        if flags & (ExecFlag.FACE | ExecFlag.face_extras()):
            face = FaceResult(detection=RawEntity(158 + n % 2, 80, 90, 800))
            if flags & ExecFlag.DIRECTION:
                face.direction = DirectionResult(lr=-3, ud=5, roll=0, confidence=600)
            if flags & ExecFlag.AGE:
                face.age = AgeResult(age=30 + n % 5, confidence=500)
            if flags & ExecFlag.GENDER:
                face.gender = GenderResult(gender=1, confidence=550)
            if flags & ExecFlag.GAZE:
                face.gaze = GazeResult(lr=2, ud=-1)
            if flags & ExecFlag.BLINK:
                face.blink = BlinkResult(left=300, right=310)
            if flags & ExecFlag.EXPRESSION:
                face.expression = ExpressionResult(scores=[10, 70, 5, 5, 10], top=Expression.HAPPINESS, degree=40)
            if flags & ExecFlag.RECOGNITION:
                uid = min(self.album) if self.album else NOT_REGISTERED
                face.recognition = RecognitionResult(uid=uid, confidence=600 if self.album else 0)
            if flags & ExecFlag.VERIFY:
                if not self.album:
                    face.verify = VerifyResult(auth=NOT_REGISTERED, confidence=0)
                elif self.verify_user in self.album:
                    face.verify = VerifyResult(auth=1, confidence=650)
                else:
                    face.verify = VerifyResult(auth=0, confidence=120)
            store.faces.append(face)
        if image_mode != ImageMode.NONE:
            height, width = image_mode.shape
            store.image = np.full((height, width), n % 256, dtype=np.uint8)
        return store

    # ---------- 相册 ----------

    def register(self, user_id: int, data_id: int) -> np.ndarray:
        self._command("register", user_id, data_id)
        self.album.setdefault(user_id, set()).add(data_id)
        return np.full((64, 64), 128, dtype=np.uint8)

    def delete_data(self, user_id: int, data_id: int) -> None:
        self._command("delete_data", user_id, data_id)
        entries = self.album.get(user_id)
        if entries is not None:
            entries.discard(data_id)
            if not entries:
                del self.album[user_id]

    def delete_user(self, user_id: int) -> None:
        self._command("delete_user", user_id)
        self.album.pop(user_id, None)

    def delete_all(self) -> None:
        self._command("delete_all")
        self.album.clear()

    def set_verify_user(self, user_id: int) -> None:
        self._command("set_verify_user", user_id)
        self.verify_user = user_id

    def get_verify_user(self) -> int:
        self._command("get_verify_user")
        return self.verify_user

    def save_album(self) -> bytes:
        self._command("save_album")
        blob = bytearray()
        for user_id in sorted(self.album):
            mask = sum(1 << d for d in self.album[user_id])
            blob += _ALBUM_ENTRY.pack(user_id, mask)
        return bytes(blob)

    def load_album(self, blob: bytes) -> None:
        self._command("load_album", len(blob))
        album: Dict[int, Set[int]] = {}
        for user_id, mask in _ALBUM_ENTRY.iter_unpack(blob[:len(blob) - len(blob) % _ALBUM_ENTRY.size]):
            album[user_id] = {d for d in range(16) if mask & (1 << d)}
        self.album = album

    def write_album(self) -> None:
        self._command("write_album")
        self.flash_album = {uid: set(ids) for uid, ids in self.album.items()}

    def reformat_album(self) -> None:
        self._command("reformat_album")
        self.flash_album = {}

    def set_regist_count(self, index: int) -> None:
        self._command("set_regist_count", index)
        self.regist_count = index

    def get_regist_count(self) -> int:
        self._command("get_regist_count")
        return self.regist_count
