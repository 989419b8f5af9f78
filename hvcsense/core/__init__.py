"""
Core module for common utilities, configuration and constants
"""
from .constants import Constants
from .logger import setup_logger, logger
from .config_loader import SystemConfig, get_config, load_config, default_config, apply_env_overrides
from .runtime_switch import RuntimeSwitch
from .errors import (
    HVCError,
    HVCTransportError,
    HVCResponseError,
    TrackerUnavailableError,
    StoreIndexError,
)

__all__ = [
    'Constants',
    'setup_logger',
    'logger',
    'SystemConfig',
    'get_config',
    'load_config',
    'default_config',
    'apply_env_overrides',
    'RuntimeSwitch',
    'HVCError',
    'HVCTransportError',
    'HVCResponseError',
    'TrackerUnavailableError',
    'StoreIndexError',
]
