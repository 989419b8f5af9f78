"""
能力标志与枚举
============

ExecFlag 与设备 Execute 命令的功能位一一对应；Estimator 标识融合步骤处理的
多帧估计器；哨兵常量与设备输出保持一致。
"""
from enum import Enum, IntEnum, IntFlag


class ExecFlag(IntFlag):
    """Execute 命令的功能位"""
    NONE = 0x000
    BODY = 0x001
    HAND = 0x002
    FACE = 0x004
    DIRECTION = 0x008
    AGE = 0x010
    GENDER = 0x020
    GAZE = 0x040
    BLINK = 0x080
    EXPRESSION = 0x100
    RECOGNITION = 0x200
    VERIFY = 0x400

    @classmethod
    def face_extras(cls) -> "ExecFlag":
        """需要人脸检测作为前提的功能位"""
        return (cls.DIRECTION | cls.AGE | cls.GENDER | cls.GAZE | cls.BLINK
                | cls.EXPRESSION | cls.RECOGNITION | cls.VERIFY)


class ImageMode(IntEnum):
    """Execute 返回图像的尺寸"""
    NONE = 0
    QVGA = 1        # 320x240
    QVGA_HALF = 2   # 160x120

    @property
    def shape(self):
        return {ImageMode.NONE: (0, 0), ImageMode.QVGA: (240, 320), ImageMode.QVGA_HALF: (120, 160)}[self]


class Expression(IntEnum):
    UNKNOWN = 0
    NEUTRAL = 1
    HAPPINESS = 2
    SURPRISE = 3
    ANGER = 4
    SADNESS = 5

    @classmethod
    def normalize(cls, value: int) -> "Expression":
        """超出范围的值归为 UNKNOWN"""
        if cls.NEUTRAL <= value <= cls.SADNESS:
            return cls(value)
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return self.name.capitalize() if self is not Expression.UNKNOWN else "Unknown"


class Estimator(Enum):
    """携带置信度的人脸估计器"""
    AGE = "age"
    GENDER = "gender"
    RECOGNITION = "recognition"
    VERIFY = "verify"

    @property
    def flag(self) -> ExecFlag:
        return ESTIMATOR_FLAGS[self]


ESTIMATOR_FLAGS = {
    Estimator.AGE: ExecFlag.AGE,
    Estimator.GENDER: ExecFlag.GENDER,
    Estimator.RECOGNITION: ExecFlag.RECOGNITION,
    Estimator.VERIFY: ExecFlag.VERIFY,
}

# 跟踪器负责收敛的估计器（融合步骤只处理这些）
GOVERNED_ESTIMATORS = (Estimator.AGE, Estimator.GENDER, Estimator.RECOGNITION)

# 哨兵值
NOT_POSSIBLE = -128     # 无法估计 / 无法识别
NOT_REGISTERED = -127   # 未注册

SENTINELS = {
    Estimator.AGE: frozenset({NOT_POSSIBLE}),
    Estimator.GENDER: frozenset({NOT_POSSIBLE}),
    Estimator.RECOGNITION: frozenset({NOT_POSSIBLE, NOT_REGISTERED}),
    Estimator.VERIFY: frozenset({NOT_POSSIBLE, NOT_REGISTERED}),
}

# 原始检测序列（每帧独立编号）
DETECTION_KINDS = (ExecFlag.BODY, ExecFlag.HAND, ExecFlag.FACE)


class Tier(IntEnum):
    """多帧估计器对单个跟踪目标的收敛状态"""
    PENDING = 0
    IN_PROGRESS = 1
    COMPLETE = 2
