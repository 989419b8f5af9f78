"""
帧结果存储
==========

保存一帧设备输出：人体 / 手 / 人脸三个按检测槽位编号的序列，以及人脸附加估计结果。
融合步骤通过 get / set_position / add_confidence_tier / set_estimator_value 原地修改。

索引约定：
- 序列下标 = 设备本帧的检测槽位（0 起），仅在本帧内有效
- 直接 API 越界访问抛出 StoreIndexError（编程错误，不做容错）
"""
import copy
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import numpy as np

from ..core.errors import StoreIndexError
from .capabilities import ExecFlag, Estimator, Expression


@dataclass
class RawEntity:
    """单个检测目标（人体 / 手 / 人脸共用）"""
    x: int
    y: int
    size: int
    confidence: int

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass
class DirectionResult:
    lr: int
    ud: int
    roll: int
    confidence: int


@dataclass
class AgeResult:
    age: int
    confidence: int


@dataclass
class GenderResult:
    gender: int  # 1: 男性, 0: 女性
    confidence: int


@dataclass
class GazeResult:
    lr: int
    ud: int


@dataclass
class BlinkResult:
    left: int
    right: int


@dataclass
class ExpressionResult:
    scores: List[int]  # Neutral, Happiness, Surprise, Anger, Sadness
    top: Expression
    degree: int


@dataclass
class RecognitionResult:
    uid: int
    confidence: int


@dataclass
class VerifyResult:
    auth: int
    confidence: int


# 估计器 -> (FaceResult 属性名, 值字段名)
_ESTIMATOR_FIELDS = {
    Estimator.AGE: ("age", "age"),
    Estimator.GENDER: ("gender", "gender"),
    Estimator.RECOGNITION: ("recognition", "uid"),
    Estimator.VERIFY: ("verify", "auth"),
}


@dataclass
class FaceResult:
    """人脸检测结果 + 本帧执行过的附加估计"""
    detection: RawEntity
    direction: Optional[DirectionResult] = None
    age: Optional[AgeResult] = None
    gender: Optional[GenderResult] = None
    gaze: Optional[GazeResult] = None
    blink: Optional[BlinkResult] = None
    expression: Optional[ExpressionResult] = None
    recognition: Optional[RecognitionResult] = None
    verify: Optional[VerifyResult] = None

    def estimator_record(self, estimator: Estimator):
        """返回估计器对应的结果记录（未执行时为 None）"""
        attr, _ = _ESTIMATOR_FIELDS[estimator]
        return getattr(self, attr)

    def estimator_value(self, estimator: Estimator) -> Optional[int]:
        record = self.estimator_record(estimator)
        if record is None:
            return None
        return getattr(record, _ESTIMATOR_FIELDS[estimator][1])


Record = Union[RawEntity, FaceResult]


@dataclass(eq=False)
class FrameResultStore:
    """
    一帧的设备输出

    属性:
        executed: 本帧执行的功能位
        bodies: 人体检测序列
        hands: 手检测序列
        faces: 人脸检测序列（含附加估计）
        image: 灰度图像（uint8, HxW），未请求图像时为 None
    """
    executed: ExecFlag = ExecFlag.NONE
    bodies: List[RawEntity] = field(default_factory=list)
    hands: List[RawEntity] = field(default_factory=list)
    faces: List[FaceResult] = field(default_factory=list)
    image: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # 序列访问
    # ------------------------------------------------------------------

    def sequence(self, capability: ExecFlag) -> list:
        """按能力取原始序列"""
        if capability == ExecFlag.BODY:
            return self.bodies
        if capability == ExecFlag.HAND:
            return self.hands
        if capability == ExecFlag.FACE:
            return self.faces
        raise ValueError(f"{capability!r} has no detection sequence")

    def count(self, capability: ExecFlag) -> int:
        return len(self.sequence(capability))

    def in_range(self, capability: ExecFlag, index: int) -> bool:
        return 0 <= index < self.count(capability)

    def get(self, capability: ExecFlag, index: int) -> Record:
        """
        取第 index 个检测结果

        Args:
            capability: ExecFlag.BODY / HAND / FACE
            index: 本帧检测槽位

        Returns:
            RawEntity（人体/手）或 FaceResult（人脸）

        Raises:
            StoreIndexError: 槽位越界
        """
        seq = self.sequence(capability)
        if not 0 <= index < len(seq):
            raise StoreIndexError(
                f"{capability.name} index {index} out of range (count={len(seq)})"
            )
        return seq[index]

    def _entity(self, capability: ExecFlag, index: int) -> RawEntity:
        record = self.get(capability, index)
        return record.detection if isinstance(record, FaceResult) else record

    def _estimator_record(self, index: int, estimator: Estimator):
        face = self.get(ExecFlag.FACE, index)
        record = face.estimator_record(estimator)
        if record is None:
            raise StoreIndexError(f"face {index} has no {estimator.value} result in this frame")
        return record

    # ------------------------------------------------------------------
    # 原地修改
    # ------------------------------------------------------------------

    def set_position(self, capability: ExecFlag, index: int, pos: Tuple[int, int], size: int):
        """用平滑后的位置/尺寸覆盖原始值（置信度不变）"""
        entity = self._entity(capability, index)
        entity.x, entity.y = int(pos[0]), int(pos[1])
        entity.size = int(size)

    def add_confidence_tier(self, capability: ExecFlag, index: int, estimator: Estimator, delta: int):
        """在估计器置信度上叠加档位偏移"""
        if capability != ExecFlag.FACE:
            raise ValueError(f"{estimator.value} confidence lives on FACE results, not {capability.name}")
        record = self._estimator_record(index, estimator)
        record.confidence += int(delta)

    def set_estimator_value(self, capability: ExecFlag, index: int, estimator: Estimator, value: int):
        """用跟踪器的最终值覆盖估计值"""
        if capability != ExecFlag.FACE:
            raise ValueError(f"{estimator.value} value lives on FACE results, not {capability.name}")
        record = self._estimator_record(index, estimator)
        setattr(record, _ESTIMATOR_FIELDS[estimator][1], int(value))

    # ------------------------------------------------------------------
    # 快照
    # ------------------------------------------------------------------

    def copy(self) -> "FrameResultStore":
        return copy.deepcopy(self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, FrameResultStore):
            return NotImplemented
        if (self.executed, self.bodies, self.hands, self.faces) != (
            other.executed, other.bodies, other.hands, other.faces
        ):
            return False
        if self.image is None or other.image is None:
            return self.image is None and other.image is None
        return np.array_equal(self.image, other.image)

    def __repr__(self) -> str:
        image = "none" if self.image is None else f"{self.image.shape[1]}x{self.image.shape[0]}"
        return (f"FrameResultStore(executed={self.executed!r}, bodies={len(self.bodies)}, "
                f"hands={len(self.hands)}, faces={len(self.faces)}, image={image})")
