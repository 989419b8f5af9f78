"""
位图保存（OpenCV）
"""
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from ..core.logger import logger


def save_bitmap(image: np.ndarray, path: Union[str, Path]) -> Path:
    """
    保存灰度图像为 BMP

    Args:
        image: HxW uint8 灰度图（或 HxWx3 BGR）
        path: 输出路径（通常为 *.bmp）

    Returns:
        输出路径

    Raises:
        ValueError: 图像为空
        OSError: OpenCV 写入失败
    """
    if image is None or image.size == 0:
        raise ValueError("Empty image, nothing to save")

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    frame = np.ascontiguousarray(image, dtype=np.uint8)
    if not cv2.imwrite(str(target), frame):
        raise OSError(f"cv2.imwrite failed for {target}")

    logger.debug(f"[Bitmap] {frame.shape[1]}x{frame.shape[0]} -> {target}")
    return target
