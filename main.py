#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HVC-P2 主程序 - 交互式检测 / 识别 / 相册管理

用法:
    python main.py <port> <baudrate> [STB_ON|STB_OFF] [--mock] [--config PATH]

    port      串口（如 /dev/ttyACM0, COM3）
    baudrate  通信波特率（9600 / 38400 / 115200 / 230400 / 460800 / 921600）
    STB_ON    启用稳定化（跟踪 + 属性/识别结果融合），默认跟随 system_config.json
    --mock    不连接硬件，使用模拟设备
"""

import argparse
import sys
from pathlib import Path

from hvcsense.app import DeviceSetup, HVCSession, Menu
from hvcsense.core import Constants, logger
from hvcsense.core.config_loader import apply_env_overrides, default_config, get_config
from hvcsense.core.errors import HVCError
from hvcsense.device import HVCDevice, MockHVCDevice, UartLink
from preflight_check import preflight_check


def print_banner(args, stabilization):
    """打印系统信息"""
    print("\n" + "="*70)
    print("         HVC-P2 Sample - Detection / Recognition / Album")
    print("="*70)
    print(f"\n 串口：{'(mock)' if args.mock else args.port}")
    print(f" 波特率：{args.baudrate} bps")
    print(f" 稳定化：{'STB_ON' if stabilization else 'STB_OFF'}")
    print("\n操作说明：")
    print("  输入功能编号后回车执行，0 退出")
    print("  连续检测中输入空格或 q 后回车结束")
    print("="*70 + "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OMRON HVC-P2 interactive sample")
    parser.add_argument("port", help="Serial port of the HVC module")
    parser.add_argument("baudrate", type=int, help="Communication baud rate")
    parser.add_argument("stb", nargs="?", choices=("STB_ON", "STB_OFF"), default=None,
                        help="Enable / disable result stabilization")
    parser.add_argument("--mock", action="store_true", help="Use the simulated device")
    parser.add_argument("--config", default=None, help="Path to system_config.json")
    return parser


def load_system_config(config_path=None):
    """加载配置；未指定且找不到配置文件时使用缺省配置"""
    if config_path is not None:
        config = get_config(config_path=config_path)
    else:
        try:
            config = get_config(config_path=str(Path.cwd() / 'system_config.json'))
        except FileNotFoundError:
            logger.warning("system_config.json not found, using built-in defaults")
            config = default_config()
    return apply_env_overrides(config)


def run_main_system(argv=None):
    """系统主入口"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.baudrate not in Constants.SUPPORTED_BAUDRATES:
        parser.error(f"Unsupported baudrate {args.baudrate}, "
                     f"choose from {', '.join(map(str, Constants.SUPPORTED_BAUDRATES))}")

    # 运行预检
    logger.info("Running system preflight checks...")
    if not preflight_check(config_path=args.config, port=args.port, require_port=not args.mock):
        logger.error("Preflight check failed.")
        return False

    config = load_system_config(args.config)
    stabilization = config.stabilization.enabled if args.stb is None else args.stb == "STB_ON"
    print_banner(args, stabilization)

    if args.mock:
        device = MockHVCDevice()
    else:
        device = HVCDevice(UartLink(args.port, config.serial.initial_baudrate))

    try:
        with device:
            if args.baudrate != config.serial.initial_baudrate:
                device.set_baudrate(args.baudrate)
            DeviceSetup(device, config).apply()

            session = HVCSession(device, config, stabilization=stabilization)
            Menu(session).run()

    except KeyboardInterrupt:
        logger.info("用户中断")
    except HVCError as e:
        logger.error(f"HVC 设备错误: {e}")
        return False

    return True


def main():
    """主入口点"""
    try:
        success = run_main_system()
        sys.exit(0 if success else 1)
    except Exception as e:
        logger.error(f"主程序异常: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
