"""
hvcsense - OMRON HVC-P2 host driver with detection-result stabilization
"""
__version__ = "1.0.0"
