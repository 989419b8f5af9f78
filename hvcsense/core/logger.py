"""
日志配置模块 - 从 system_config.json 读取配置
"""
import logging
import os
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def setup_logger(
    name: str = 'HVCSense',
    level: Optional[int] = None,
    log_dir: Optional[str] = None,
    enable_console: Optional[bool] = None,
    enable_file: Optional[bool] = None,
    max_size_mb: int = 20,
    file_rotation: str = 'daily'
) -> logging.Logger:
    """
    设置日志配置（从 system_config.json 读取参数）

    优先级：
    1. 环境变量 HVCSENSE_LOG_LEVEL
    2. 参数传入
    3. system_config.json
    4. 默认值

    Args:
        name: 日志名称
        level: 日志级别（None 时从配置读取）
        log_dir: 日志目录（None 时从配置读取）
        enable_console: 是否启用控制台（None 时从配置读取）
        enable_file: 是否启用文件（None 时从配置读取，无配置文件时不写文件）
        max_size_mb: 最大文件大小（MB）
        file_rotation: 文件轮转策略（'daily' 或 'size'）

    Returns:
        logger: 配置好的日志对象
    """
    config = None
    try:
        # 延迟导入避免循环依赖
        from hvcsense.core.config_loader import get_config

        config_paths = [
            Path.cwd() / "system_config.json",
            Path(__file__).parent.parent.parent / "system_config.json",
            Path(__file__).parent.parent.parent / "config" / "system_config.json",
        ]

        for config_path in config_paths:
            if config_path.exists():
                config = get_config(config_path=config_path)
                break
    except (OSError, ValueError) as e:
        # 配置加载失败时使用默认值（不影响日志系统启动）
        print(f"Warning: 无法加载 system_config.json，使用默认日志配置: {e}")

    logging_cfg = config.get('logging') if config is not None else None

    env_level = os.getenv("HVCSENSE_LOG_LEVEL")
    if env_level:
        level = getattr(logging, env_level.upper(), logging.INFO)
    elif level is None:
        if logging_cfg is not None:
            level_str = logging_cfg.get('level', 'INFO')
            level = getattr(logging, str(level_str).upper(), logging.INFO)
        else:
            level = logging.INFO

    if log_dir is None:
        paths_cfg = config.get('paths') if config is not None else None
        log_dir = paths_cfg.get('logs_dir', 'logs') if paths_cfg is not None else 'logs'

    if enable_console is None:
        enable_console = logging_cfg.get('enable_console', True) if logging_cfg is not None else True

    if enable_file is None:
        enable_file = logging_cfg.get('enable_file', False) if logging_cfg is not None else False

    if logging_cfg is not None:
        file_rotation = logging_cfg.get('file_rotation', file_rotation)
        max_size_mb = logging_cfg.get('max_size_mb', max_size_mb)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 如果logger已有handler，则不重复添加
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        if file_rotation == 'daily':
            log_file = log_path / f'{name}_{datetime.now().strftime("%Y%m%d")}.log'
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
        else:
            log_file = log_path / f'{name}.log'
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_size_mb * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )

        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# 创建默认logger（懒加载，从配置文件读取参数）
logger = setup_logger()
