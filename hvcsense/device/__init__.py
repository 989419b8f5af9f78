"""
HVC device API layer

Usage:
    from hvcsense.device import HVCDevice, UartLink

    with HVCDevice(UartLink(port)) as device:
        store = device.execute(ExecFlag.FACE | ExecFlag.AGE)
"""
from .protocol import Command, Version, Threshold, SizeRange
from .uart_link import UartLink, available_ports
from .result_parser import parse_execute_result, encode_execute_result
from .device_interface import HVCDeviceInterface, MockHVCDevice
from .hvc_device import HVCDevice

__all__ = [
    'Command',
    'Version',
    'Threshold',
    'SizeRange',
    'UartLink',
    'available_ports',
    'parse_execute_result',
    'encode_execute_result',
    'HVCDeviceInterface',
    'MockHVCDevice',
    'HVCDevice',
]
