"""
Frame result data model
"""
from .capabilities import (
    ExecFlag,
    ImageMode,
    Expression,
    Estimator,
    Tier,
    GOVERNED_ESTIMATORS,
    SENTINELS,
    NOT_POSSIBLE,
    NOT_REGISTERED,
)
from .frame_store import (
    RawEntity,
    DirectionResult,
    AgeResult,
    GenderResult,
    GazeResult,
    BlinkResult,
    ExpressionResult,
    RecognitionResult,
    VerifyResult,
    FaceResult,
    FrameResultStore,
)

__all__ = [
    'ExecFlag',
    'ImageMode',
    'Expression',
    'Estimator',
    'Tier',
    'GOVERNED_ESTIMATORS',
    'SENTINELS',
    'NOT_POSSIBLE',
    'NOT_REGISTERED',
    'RawEntity',
    'DirectionResult',
    'AgeResult',
    'GenderResult',
    'GazeResult',
    'BlinkResult',
    'ExpressionResult',
    'RecognitionResult',
    'VerifyResult',
    'FaceResult',
    'FrameResultStore',
]
