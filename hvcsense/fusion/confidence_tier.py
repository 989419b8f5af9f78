"""
置信度档位编码
=============

跟踪器的收敛状态以加性偏移编码在同一个置信度字段上：

    [0, 10000)      PENDING       尚未被跟踪确认
    [10000, 20000)  IN_PROGRESS   正在累积证据（显示 "(-)"）
    [20000, ...)    COMPLETE      已定值（显示 "(*)"）

偏移每帧只基于本帧的原始置信度施加一次，不跨帧累加。
哨兵值（-128 / -127）不参与编码。
"""
from typing import Optional, Tuple

from ..results.capabilities import Estimator, SENTINELS, Tier

TIER_STEP = 10000

TIER_OFFSET = {
    Tier.PENDING: 0,
    Tier.IN_PROGRESS: TIER_STEP,
    Tier.COMPLETE: 2 * TIER_STEP,
}

_MARKERS = {
    Tier.PENDING: "x",
    Tier.IN_PROGRESS: "-",
    Tier.COMPLETE: "*",
}


def encode(raw: int, tier: Tier) -> int:
    """原始置信度 + 档位偏移"""
    return int(raw) + TIER_OFFSET[Tier(tier)]


def tier_of(encoded: int) -> Tier:
    """根据编码值所在区间判断档位"""
    if encoded >= TIER_OFFSET[Tier.COMPLETE]:
        return Tier.COMPLETE
    if encoded >= TIER_OFFSET[Tier.IN_PROGRESS]:
        return Tier.IN_PROGRESS
    return Tier.PENDING


def decode(encoded: int) -> Tuple[Tier, int]:
    """
    拆分编码值

    Returns:
        (tier, raw_confidence)
    """
    tier = tier_of(encoded)
    return tier, encoded - TIER_OFFSET[tier]


def tier_marker(tier: Tier) -> str:
    return _MARKERS[Tier(tier)]


def is_sentinel(estimator: Estimator, value: Optional[int]) -> bool:
    """value 为 None（本帧未执行）时也视为不可编码"""
    if value is None:
        return True
    return value in SENTINELS[estimator]
