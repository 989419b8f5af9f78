"""
统一配置加载器 - 使用轻量级 DictConfig 实现配置管理
=====================================================

此模块负责：
1. 从 system_config.json 读取配置并补全缺省段
2. 提供属性风格的配置访问接口
3. 统一管理路径解析逻辑（相册文件、图像输出目录、日志目录）

配置文件位置：
- 默认: <项目根>/system_config.json 或 <项目根>/config/system_config.json
- 环境变量: HVCSENSE_CONFIG=path/to/config.json
- 参数指定: load_config(config_path="path/to/config.json")

使用示例：
```python
from hvcsense.core.config_loader import get_config

config = get_config()  # 单例模式
print(config.serial.port)
print(config.stabilization.enabled)
print(config.stabilization.recognition.frame_count)
```
"""
from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import Constants


# ============================================================================
# 简化配置类
# ============================================================================

class DictConfig:
    """字典风格的配置基类"""

    def __init__(self, **kwargs):
        for key, value in kwargs.items():
            if isinstance(value, dict):
                # 递归转换嵌套字典
                setattr(self, key, DictConfig(**value))
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                setattr(self, key, [DictConfig(**item) if isinstance(item, dict) else item for item in value])
            else:
                setattr(self, key, value)

    def get(self, key: str, default=None):
        """字典风格的 get 方法"""
        return getattr(self, key, default)

    def __getitem__(self, key: str):
        """支持 config["key"] 语法"""
        return getattr(self, key)

    def to_dict(self) -> Dict[str, Any]:
        """转换回普通字典"""
        result = {}
        for key, value in self.__dict__.items():
            if key.startswith("_"):
                continue
            if isinstance(value, DictConfig):
                result[key] = value.to_dict()
            elif isinstance(value, list):
                result[key] = [v.to_dict() if isinstance(v, DictConfig) else v for v in value]
            else:
                result[key] = value
        return result

    def __repr__(self):
        attrs = {k: v for k, v in self.__dict__.items() if not k.startswith("_")}
        return f"{self.__class__.__name__}({attrs})"


class SystemConfig(DictConfig):
    """
    系统配置（顶层）

    属性:
        serial: 串口配置（port, baudrate, initial_baudrate）
        device: 设备参数（阈值、尺寸范围、角度）
        stabilization: 稳定化（跟踪器）参数
        paths: 路径配置
        logging: 日志配置
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._config_path: Optional[Path] = None

    def set_config_path(self, path: Path) -> None:
        """设置配置文件路径（用于相对路径解析）"""
        self._config_path = path

    def resolve_path(self, path_str: Optional[str]) -> Optional[Path]:
        """解析相对/绝对路径（不要求路径已存在）"""
        if not path_str:
            return None

        candidate = Path(path_str)
        if candidate.is_absolute():
            return candidate

        base = self._config_path.parent if self._config_path else Path.cwd()
        return base / candidate

    def album_path(self) -> Path:
        """相册文件路径"""
        return self.resolve_path(self.paths.get("album_file", Constants.ALBUM_FILE))

    def image_path(self, file_name: str) -> Path:
        """图像输出路径"""
        image_dir = self.resolve_path(self.paths.get("image_dir", "."))
        return image_dir / file_name


# ============================================================================
# 缺省配置
# ============================================================================

DEFAULT_CONFIG: Dict[str, Any] = {
    "serial": {
        "port": None,
        "baudrate": 921600,
        "initial_baudrate": Constants.INITIAL_BAUDRATE,
    },
    "device": {
        "camera_angle": Constants.SENSOR_ROLL_ANGLE,
        "threshold": {
            "body": Constants.BODY_THRESHOLD,
            "hand": Constants.HAND_THRESHOLD,
            "face": Constants.FACE_THRESHOLD,
            "recognition": Constants.REC_THRESHOLD,
        },
        "size_range": {
            "body": list(Constants.BODY_SIZE_RANGE),
            "hand": list(Constants.HAND_SIZE_RANGE),
            "face": list(Constants.FACE_SIZE_RANGE),
        },
        "face_pose": Constants.FACE_POSE,
        "face_angle": Constants.FACE_ANGLE,
        "verify_threshold": Constants.VERIFY_THRESHOLD,
        "image_output": True,
    },
    "stabilization": {
        "enabled": True,
        "retry_count": Constants.STB_RETRY_COUNT,
        "pos_steadiness": Constants.STB_POS_STEADINESS,
        "size_steadiness": Constants.STB_SIZE_STEADINESS,
        "property": {
            "threshold": Constants.STB_PE_THRESHOLD,
            "angle_ud": list(Constants.STB_PE_ANGLE_UD),
            "angle_lr": list(Constants.STB_PE_ANGLE_LR),
            "frame_count": Constants.STB_PE_FRAME,
        },
        "recognition": {
            "threshold": Constants.STB_FR_THRESHOLD,
            "angle_ud": list(Constants.STB_FR_ANGLE_UD),
            "angle_lr": list(Constants.STB_FR_ANGLE_LR),
            "frame_count": Constants.STB_FR_FRAME,
            "ratio": Constants.STB_FR_RATIO,
        },
    },
    "paths": {
        "logs_dir": "logs",
        "album_file": Constants.ALBUM_FILE,
        "image_dir": ".",
    },
    "logging": {
        "level": "INFO",
        "enable_console": True,
        "enable_file": False,
        "file_rotation": "daily",
        "max_size_mb": 20,
    },
}


def _merge_defaults(raw: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """递归补全缺省项（用户配置优先）"""
    merged = copy.deepcopy(defaults)
    for key, value in raw.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(value, merged[key])
        else:
            merged[key] = value
    return merged


# ============================================================================
# 配置加载器（单例模式）
# ============================================================================

_config_instance: Optional[SystemConfig] = None


def load_config(config_path: Optional[str | Path] = None) -> SystemConfig:
    """
    Load configuration from JSON file

    Args:
        config_path: Configuration file path (default: auto-detect)
                    Search order: parameter > env HVCSENSE_CONFIG > root/system_config.json > config/system_config.json

    Returns:
        SystemConfig: Configuration object

    Raises:
        FileNotFoundError: Configuration file does not exist
        ValueError: Configuration file format error
    """
    if config_path is None:
        config_env = os.getenv("HVCSENSE_CONFIG")
        if config_env:
            config_path = Path(config_env)
        else:
            root_dir = Path(__file__).parent.parent.parent
            root_config = root_dir / "system_config.json"
            config_config = root_dir / "config" / "system_config.json"

            if root_config.exists():
                config_path = root_config
            elif config_config.exists():
                config_path = config_config
            else:
                config_path = root_config
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Configuration file JSON parsing failed: {e}") from e

    if not isinstance(raw_data, dict):
        raise ValueError(f"Configuration root must be a JSON object: {config_path}")

    config = SystemConfig(**_merge_defaults(raw_data, DEFAULT_CONFIG))
    config.set_config_path(config_path)
    return config


def default_config() -> SystemConfig:
    """不依赖配置文件的缺省配置（--mock 运行与测试使用）"""
    return SystemConfig(**copy.deepcopy(DEFAULT_CONFIG))


def get_config(config_path: Optional[str | Path] = None, reload: bool = False) -> SystemConfig:
    """
    获取配置单例（懒加载）

    Args:
        config_path: 配置文件路径（仅首次加载时有效）
        reload: 是否强制重新加载配置

    Returns:
        SystemConfig: 配置单例
    """
    global _config_instance

    if _config_instance is None or reload:
        _config_instance = load_config(config_path)

    return _config_instance


# ============================================================================
# 环境变量覆盖支持
# ============================================================================

def apply_env_overrides(config: SystemConfig) -> SystemConfig:
    """
    应用环境变量覆盖（优先级：ENV > system_config.json > 默认值）

    支持的环境变量：
    - HVCSENSE_LOG_LEVEL: 日志级别
    - HVCSENSE_STB: 稳定化开关（on/off）

    Args:
        config: 原始配置对象

    Returns:
        应用环境变量后的配置对象
    """
    if log_level := os.getenv("HVCSENSE_LOG_LEVEL"):
        config.logging.level = log_level.upper()

    if stb := os.getenv("HVCSENSE_STB"):
        value = stb.strip().lower()
        if value in ("on", "1", "true"):
            config.stabilization.enabled = True
        elif value in ("off", "0", "false"):
            config.stabilization.enabled = False

    return config
