"""
跟踪器适配接口
==============

定义融合步骤所依赖的跟踪器契约：

- initialize(functions): 首帧前调用，声明要稳定化的功能
- execute(store): 每帧调用，返回已跟踪的人体 / 人脸序列
- finalize(): 最后一帧后调用（with 语句保证调用）

跟踪器内部状态（轨迹身份、平滑、收敛计数）对融合步骤不透明，
融合步骤只读取 TrackedEntity 中的 detection_index、平滑位置和各估计器档位。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Dict, List, Optional, Tuple

from ..core.constants import Constants
from ..results.capabilities import Estimator, ExecFlag, Tier
from ..results.frame_store import FrameResultStore


class StbFunc(IntFlag):
    """跟踪器稳定化的功能（位值与 ExecFlag 对齐）"""
    NONE = 0x000
    BODY = 0x001
    FACE = 0x004
    DIRECTION = 0x008
    AGE = 0x010
    GENDER = 0x020
    RECOGNITION = 0x200

    @classmethod
    def from_exec_flag(cls, flags: ExecFlag) -> "StbFunc":
        """取 ExecFlag 中跟踪器能处理的部分"""
        result = cls.NONE
        for member in cls:
            if member and int(flags) & int(member):
                result |= member
        return result


ESTIMATOR_FUNCS = {
    Estimator.AGE: StbFunc.AGE,
    Estimator.GENDER: StbFunc.GENDER,
    Estimator.RECOGNITION: StbFunc.RECOGNITION,
}


@dataclass
class EstimatorState:
    """单个估计器对单个跟踪目标的收敛状态"""
    tier: Tier = Tier.PENDING
    final_value: Optional[int] = None


@dataclass
class TrackedEntity:
    """跟踪器输出的单个目标（仅本帧检测到的目标）"""
    track_id: int
    detection_index: int          # 指向本帧原始序列的下标
    position: Tuple[int, int]     # 平滑后的中心点
    size: int                     # 平滑后的尺寸
    estimator_states: Dict[Estimator, EstimatorState] = field(default_factory=dict)


@dataclass
class TrackerOutput:
    bodies: List[TrackedEntity] = field(default_factory=list)
    faces: List[TrackedEntity] = field(default_factory=list)

    @property
    def body_count(self) -> int:
        return len(self.bodies)

    @property
    def face_count(self) -> int:
        return len(self.faces)


# ============================================================================
# 跟踪参数
# ============================================================================

@dataclass
class PropertyParams:
    """年龄 / 性别估计的收敛参数"""
    threshold: int = Constants.STB_PE_THRESHOLD
    angle_ud: Tuple[int, int] = Constants.STB_PE_ANGLE_UD
    angle_lr: Tuple[int, int] = Constants.STB_PE_ANGLE_LR
    frame_count: int = Constants.STB_PE_FRAME


@dataclass
class RecognitionParams:
    """人脸识别的收敛参数"""
    threshold: int = Constants.STB_FR_THRESHOLD
    angle_ud: Tuple[int, int] = Constants.STB_FR_ANGLE_UD
    angle_lr: Tuple[int, int] = Constants.STB_FR_ANGLE_LR
    frame_count: int = Constants.STB_FR_FRAME
    ratio: int = Constants.STB_FR_RATIO   # 多数 ID 占比（%）


@dataclass
class TrackerParams:
    """
    跟踪器参数

    Attributes:
        retry_count: 目标丢失后保留轨迹的帧数
        pos_steadiness: 位置变化小于尺寸的该百分比时保持上一帧位置
        size_steadiness: 尺寸变化小于该百分比时保持上一帧尺寸
        iou_threshold: 轨迹关联的最小 IoU
    """
    retry_count: int = Constants.STB_RETRY_COUNT
    pos_steadiness: int = Constants.STB_POS_STEADINESS
    size_steadiness: int = Constants.STB_SIZE_STEADINESS
    iou_threshold: float = 0.3
    property_estimation: PropertyParams = field(default_factory=PropertyParams)
    recognition: RecognitionParams = field(default_factory=RecognitionParams)

    @classmethod
    def from_config(cls, stb_cfg) -> "TrackerParams":
        """从 config.stabilization 段构造"""
        pe = stb_cfg.property
        fr = stb_cfg.recognition
        return cls(
            retry_count=stb_cfg.retry_count,
            pos_steadiness=stb_cfg.pos_steadiness,
            size_steadiness=stb_cfg.size_steadiness,
            property_estimation=PropertyParams(
                threshold=pe.threshold,
                angle_ud=tuple(pe.angle_ud),
                angle_lr=tuple(pe.angle_lr),
                frame_count=pe.frame_count,
            ),
            recognition=RecognitionParams(
                threshold=fr.threshold,
                angle_ud=tuple(fr.angle_ud),
                angle_lr=tuple(fr.angle_lr),
                frame_count=fr.frame_count,
                ratio=fr.ratio,
            ),
        )


# ============================================================================
# 接口
# ============================================================================

class TrackerAdapter(ABC):
    """
    跟踪器统一接口

    使用示例:
        with Stabilizer(params, functions=StbFunc.FACE | StbFunc.AGE) as tracker:
            for store in frames:
                stabilize_frame(store, tracker, resolver)
    """

    def __init__(self, functions: StbFunc = StbFunc.NONE):
        self.functions = StbFunc(functions)

    @abstractmethod
    def initialize(self, functions: Optional[StbFunc] = None) -> None:
        """
        首帧前初始化

        Args:
            functions: 稳定化的功能（None 时使用构造参数）
        """
        pass

    @abstractmethod
    def execute(self, store: FrameResultStore) -> TrackerOutput:
        """
        处理一帧

        Returns:
            TrackerOutput

        Raises:
            TrackerUnavailableError: 本帧无法给出跟踪结果
        """
        pass

    @abstractmethod
    def finalize(self) -> None:
        """释放内部状态"""
        pass

    @abstractmethod
    def is_initialized(self) -> bool:
        pass

    def governs(self, estimator: Estimator) -> bool:
        func = ESTIMATOR_FUNCS.get(estimator)
        return func is not None and bool(self.functions & func)

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()
