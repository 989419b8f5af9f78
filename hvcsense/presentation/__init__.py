"""
Text rendering of frame results
"""
from .formatter import format_detection, format_identify, format_verify, gender_label

__all__ = [
    'format_detection',
    'format_identify',
    'format_verify',
    'gender_label',
]
