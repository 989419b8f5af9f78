"""
Tracking 模块 - 多帧稳定化

核心功能：
- TrackerAdapter 接口：融合步骤依赖的跟踪器契约
- Stabilizer：IoU 轨迹关联 + steadiness 平滑 + 估计器收敛

使用方法：
    from hvcsense.tracking import Stabilizer, StbFunc, TrackerParams

    with Stabilizer(TrackerParams(), functions=StbFunc.FACE | StbFunc.AGE) as stb:
        output = stb.execute(store)
"""

from .tracker_adapter import (
    StbFunc,
    EstimatorState,
    TrackedEntity,
    TrackerOutput,
    PropertyParams,
    RecognitionParams,
    TrackerParams,
    TrackerAdapter,
)
from .stabilizer import Stabilizer

__all__ = [
    'StbFunc',
    'EstimatorState',
    'TrackedEntity',
    'TrackerOutput',
    'PropertyParams',
    'RecognitionParams',
    'TrackerParams',
    'TrackerAdapter',
    'Stabilizer',
]
