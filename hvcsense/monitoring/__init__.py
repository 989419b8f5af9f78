"""
Monitoring helpers
"""
from .frame_rate_monitor import FrameRateMonitor

__all__ = ['FrameRateMonitor']
