"""
Application layer: device setup, function sessions and the interactive menu
"""
from .sessions import (
    DeviceSetup,
    HVCSession,
    validate_user_id,
    validate_data_id,
    validate_regist_index,
)
from .key_listener import KeyStopListener
from .menu import Menu, MENU_ITEMS

__all__ = [
    'DeviceSetup',
    'HVCSession',
    'validate_user_id',
    'validate_data_id',
    'validate_regist_index',
    'KeyStopListener',
    'Menu',
    'MENU_ITEMS',
]
