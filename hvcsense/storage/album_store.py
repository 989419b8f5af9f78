"""
相册文件
========

设备相册是不透明的字节块，整块写入、整块读出。
写入先落到同目录临时文件，再原子替换目标文件。
"""
import os
import tempfile
from pathlib import Path
from typing import Union

from ..core.logger import logger

PathLike = Union[str, Path]


def save_album(path: PathLike, blob: bytes) -> Path:
    """
    保存相册数据

    Args:
        path: 目标文件
        blob: 设备读出的相册数据

    Returns:
        写入的文件路径

    Raises:
        OSError: 写入失败（目标文件保持原样）
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(blob)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info(f"[Album] saved {len(blob)} bytes -> {target}")
    return target


def load_album(path: PathLike) -> bytes:
    """
    读取相册数据

    Raises:
        FileNotFoundError: 文件不存在
        ValueError: 文件为空
    """
    target = Path(path)
    blob = target.read_bytes()
    if not blob:
        raise ValueError(f"The album data could not be read: {target}")
    logger.info(f"[Album] loaded {len(blob)} bytes <- {target}")
    return blob
