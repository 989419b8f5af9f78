"""
Detection-result fusion
"""
from .confidence_tier import (
    TIER_STEP,
    TIER_OFFSET,
    encode,
    tier_of,
    decode,
    tier_marker,
    is_sentinel,
)
from .resolver import FusionResolver, MergeReport, stabilize_frame

__all__ = [
    'TIER_STEP',
    'TIER_OFFSET',
    'encode',
    'tier_of',
    'decode',
    'tier_marker',
    'is_sentinel',
    'FusionResolver',
    'MergeReport',
    'stabilize_frame',
]
