#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Dependency / Serial Port Preflight Check Script

Check Python version, required libraries, configuration file and HVC serial port
"""

import sys
from pathlib import Path

current_dir = Path(__file__).parent

MIN_PYTHON = (3, 8)


def preflight_check(config_path=None, port=None, require_port=True):
    """
    Execute preflight checks

    Args:
        config_path: Configuration file path (optional)
        port: Serial port the HVC module is expected on (optional)
        require_port: Fail when the port is missing (False for --mock runs)

    Returns:
        bool: Whether preflight passed
    """
    print("\n" + "="*70)
    print("Running system preflight checks...")
    print("="*70)

    # Check Python version
    if sys.version_info[:2] < MIN_PYTHON:
        print(f"[FAIL] Python {sys.version_info.major}.{sys.version_info.minor} "
              f"(>= {MIN_PYTHON[0]}.{MIN_PYTHON[1]} required)")
        return False
    print(f"\n[OK] Python {sys.version_info.major}.{sys.version_info.minor}")

    # Check pyserial
    try:
        import serial
        print(f"[OK] pyserial {serial.__version__}")
    except ImportError:
        print("[FAIL] pyserial not installed")
        return False

    # Check OpenCV
    try:
        import cv2
        print(f"[OK] OpenCV {cv2.__version__}")
    except ImportError:
        print("[FAIL] OpenCV (opencv-python) not installed")
        return False

    # Check NumPy
    try:
        import numpy as np
        print(f"[OK] NumPy {np.__version__}")
    except ImportError:
        print("[FAIL] NumPy not installed")
        return False

    # Check configuration file
    if config_path is None:
        # Auto-detect: try root directory first, then config/
        config_file = current_dir / "system_config.json"
        if not config_file.exists():
            config_file = current_dir / "config" / "system_config.json"
    else:
        config_file = Path(config_path)

    if config_file.exists():
        print(f"[OK] Config file: {config_file}")
    else:
        print(f"[WARN] Config file not found: {config_file} (built-in defaults will be used)")

    # Check serial port presence
    print("\n[CHECKING] Serial ports...")
    from serial.tools import list_ports
    ports = [p.device for p in list_ports.comports()]
    for device in ports[:5]:  # Show first 5 only
        print(f"  - {device}")

    if port is not None:
        if port in ports or Path(port).exists():
            print(f"[OK] HVC port: {port}")
        elif require_port:
            print(f"\n[CRITICAL] Serial port {port} is not available!")
            print("\nTroubleshooting:")
            print("1. Check the USB / UART connection of the HVC module")
            print("2. Verify the port name passed on the command line")
            print("3. Ensure the user can access the device (e.g. dialout group)")
            return False
        else:
            print(f"[WARN] Serial port {port} not available")
    elif not ports:
        print("[WARN] No serial ports found")

    print("\n" + "="*70)
    print("Preflight checks completed successfully")
    print("="*70 + "\n")

    return True


def main():
    """Command line entry point"""
    port = sys.argv[1] if len(sys.argv) > 1 else None
    success = preflight_check(port=port)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
