"""
功能会话
========

DeviceSetup: 启动时写入全部设备参数并回读确认。
HVCSession:  菜单各功能的实现（检测 / 识别 / 认证循环、注册、删除、相册、注册人数）。

循环类功能通过 trigger 回调控制：每帧前调用 trigger()，返回 False 时结束。
跟踪器的生命周期限定在单次循环内（首帧前初始化，结束时释放，出错也释放）。
"""
from contextlib import nullcontext
from typing import Callable, Optional

from ..core.config_loader import SystemConfig
from ..core.constants import Constants
from ..core.errors import HVCError
from ..core.logger import logger
from ..device.device_interface import HVCDeviceInterface
from ..device.protocol import SizeRange, Threshold
from ..fusion.resolver import FusionResolver, stabilize_frame
from ..monitoring.frame_rate_monitor import FrameRateMonitor
from ..presentation.formatter import format_detection, format_identify, format_verify
from ..results.capabilities import ExecFlag, ImageMode
from ..results.frame_store import FrameResultStore
from ..storage.album_store import load_album, save_album
from ..storage.bitmap_writer import save_bitmap
from ..tracking.stabilizer import Stabilizer
from ..tracking.tracker_adapter import StbFunc, TrackerAdapter, TrackerParams

FrameTrigger = Callable[[], bool]
Output = Callable[[str], None]
TrackerFactory = Callable[[StbFunc], TrackerAdapter]

DETECTION_FLAGS = (ExecFlag.BODY | ExecFlag.HAND | ExecFlag.FACE | ExecFlag.DIRECTION | ExecFlag.AGE
                   | ExecFlag.GENDER | ExecFlag.GAZE | ExecFlag.BLINK | ExecFlag.EXPRESSION)
DETECTION_STB = StbFunc.BODY | StbFunc.FACE | StbFunc.DIRECTION | StbFunc.AGE | StbFunc.GENDER
IDENTIFY_STB = StbFunc.FACE | StbFunc.DIRECTION | StbFunc.RECOGNITION


# ============================================================================
# 输入校验
# ============================================================================

def validate_user_id(user_id: int) -> int:
    low, high = Constants.USER_ID_RANGE
    if not low <= user_id <= high:
        raise ValueError("Invalid user ID")
    return user_id


def validate_data_id(data_id: int) -> int:
    low, high = Constants.DATA_ID_RANGE
    if not low <= data_id <= high:
        raise ValueError("Invalid data ID")
    return data_id


def validate_regist_index(index: int) -> int:
    if not 0 <= index < len(Constants.REGIST_COUNT_TABLE):
        raise ValueError("Invalid user count")
    return index


# ============================================================================
# 启动参数
# ============================================================================

class DeviceSetup:
    """
    写入设备参数并回读

    除 GetVersion 外，单项失败只记录日志，不影响后续项。
    """

    def __init__(self, device: HVCDeviceInterface, config: SystemConfig, output: Output = print):
        self.device = device
        self.config = config
        self.output = output

    def _step(self, name: str, fn: Callable[[], Optional[str]]):
        try:
            text = fn()
        except HVCError as e:
            logger.error(f"{name} failed: {e}")
            self.output(f"{name} Error : {e}")
            return
        if text:
            self.output(text)

    def apply(self):
        """
        Raises:
            HVCError: GetVersion 失败（设备无响应）
        """
        dev_cfg = self.config.device
        version = self.device.get_version()
        self.output(f"HVC_GetVersion : {version}")
        logger.info(f"HVC version: {version}")

        angle = dev_cfg.camera_angle
        self.output(f"HVC_SetCameraAngle : 0x{angle:02x}")
        self._step("HVC_SetCameraAngle", lambda: self.device.set_camera_angle(angle))
        self._step("HVC_GetCameraAngle",
                   lambda: f"HVC_GetCameraAngle : 0x{self.device.get_camera_angle():02x}")

        th_cfg = dev_cfg.threshold
        threshold = Threshold(th_cfg.body, th_cfg.hand, th_cfg.face, th_cfg.recognition)
        self.output(f"HVC_SetThreshold : {self._threshold_text(threshold)}")
        self._step("HVC_SetThreshold", lambda: self.device.set_threshold(threshold))
        self._step("HVC_GetThreshold",
                   lambda: f"HVC_GetThreshold : {self._threshold_text(self.device.get_threshold())}")

        sr_cfg = dev_cfg.size_range
        size_range = SizeRange(*sr_cfg.body, *sr_cfg.hand, *sr_cfg.face)
        self.output(f"HVC_SetSizeRange : {self._size_range_text(size_range)}")
        self._step("HVC_SetSizeRange", lambda: self.device.set_size_range(size_range))
        self._step("HVC_GetSizeRange",
                   lambda: f"HVC_GetSizeRange : {self._size_range_text(self.device.get_size_range())}")

        pose, face_angle = dev_cfg.face_pose, dev_cfg.face_angle
        self.output(f"HVC_SetFaceDetectionAngle : Pose = 0x{pose:02x} Angle = 0x{face_angle:02x}")
        self._step("HVC_SetFaceDetectionAngle", lambda: self.device.set_face_angle(pose, face_angle))
        self._step("HVC_GetFaceDetectionAngle", lambda: "HVC_GetFaceDetectionAngle : Pose = 0x{:02x} Angle = 0x{:02x}"
                   .format(*self.device.get_face_angle()))

        verify_th = dev_cfg.verify_threshold
        self.output(f"HVC_SetVerifyThreshold : Threshold = 0x{verify_th:02x}")
        self._step("HVC_SetVerifyThreshold", lambda: self.device.set_verify_threshold(verify_th))
        self._step("HVC_GetVerifyThreshold",
                   lambda: f"HVC_GetVerifyThreshold : Threshold = 0x{self.device.get_verify_threshold():02x}")

    @staticmethod
    def _threshold_text(th: Threshold) -> str:
        return f"Body={th.body:4d} Hand={th.hand:4d} Face={th.face:4d} Recognition={th.recognition:4d}"

    @staticmethod
    def _size_range_text(sr: SizeRange) -> str:
        return (f"Body=({sr.body_min:4d},{sr.body_max:4d}) Hand=({sr.hand_min:4d},{sr.hand_max:4d}) "
                f"Face=({sr.face_min:4d},{sr.face_max:4d})")


# ============================================================================
# 功能会话
# ============================================================================

class HVCSession:
    """
    菜单功能实现

    Args:
        device: HVC 设备
        config: 系统配置
        stabilization: 是否启用稳定化（STB_ON / STB_OFF）
        output: 文本输出回调
        tracker_factory: 根据功能位创建跟踪器（默认 Stabilizer）
    """

    def __init__(
        self,
        device: HVCDeviceInterface,
        config: SystemConfig,
        stabilization: bool = True,
        output: Output = print,
        tracker_factory: Optional[TrackerFactory] = None,
        resolver: Optional[FusionResolver] = None,
    ):
        self.device = device
        self.config = config
        self.stabilization = stabilization
        self.output = output
        self.tracker_factory = tracker_factory or self._default_tracker
        self.resolver = resolver or FusionResolver()
        self.image_mode = ImageMode.QVGA_HALF if config.device.image_output else ImageMode.NONE

    def _default_tracker(self, functions: StbFunc) -> TrackerAdapter:
        return Stabilizer(TrackerParams.from_config(self.config.stabilization), functions)

    def _tracker_scope(self, functions: StbFunc):
        if not self.stabilization:
            return nullcontext(None)
        return self.tracker_factory(functions)

    def _save_image(self, store: FrameResultStore, file_name: str):
        if store.image is None:
            return
        try:
            save_bitmap(store.image, self.config.image_path(file_name))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to save {file_name}: {e}")

    def _execute(self, flags: ExecFlag) -> Optional[FrameResultStore]:
        try:
            return self.device.execute(flags, self.image_mode)
        except HVCError as e:
            logger.error(f"HVC_ExecuteEx failed: {e}")
            self.output(f"\nHVC_ExecuteEx Error : {e}\n")
            return None

    # ---------- 1: 检测 / 估计 ----------

    def run_detection(self, trigger: FrameTrigger) -> int:
        """
        连续检测，trigger() 返回 False 时结束

        Returns:
            成功处理的帧数
        """
        frames = 0
        monitor = FrameRateMonitor()
        with self._tracker_scope(DETECTION_STB) as tracker:
            while trigger():
                store = self._execute(DETECTION_FLAGS)
                if store is None:
                    continue
                self._save_image(store, "DetectionImage.bmp")
                report = stabilize_frame(store, tracker, self.resolver) if tracker is not None else None
                self.output(format_detection(store, self.stabilization, report))
                monitor.update()
                frames += 1
        monitor.log_summary("detection")
        return frames

    # ---------- 2: 识别（1:N） ----------

    def run_identify(self, trigger: FrameTrigger) -> int:
        flags = ExecFlag.FACE | ExecFlag.RECOGNITION
        if self.stabilization:
            flags |= ExecFlag.DIRECTION

        frames = 0
        with self._tracker_scope(IDENTIFY_STB) as tracker:
            while trigger():
                store = self._execute(flags)
                if store is None:
                    continue
                self._save_image(store, "IdentifyImage.bmp")
                if tracker is not None:
                    stabilize_frame(store, tracker, self.resolver)
                self.output(format_identify(store, self.stabilization))
                frames += 1
        return frames

    # ---------- 3: 认证（1:1） ----------

    def run_verify(self, user_id: int, trigger: FrameTrigger) -> int:
        validate_user_id(user_id)
        self.device.set_verify_user(user_id)
        self.output(f"\nVerify user ID = {self.device.get_verify_user()}\n")

        frames = 0
        while trigger():
            store = self._execute(ExecFlag.FACE | ExecFlag.VERIFY)
            if store is None:
                continue
            self._save_image(store, "VerifyImage.bmp")
            self.output(format_verify(store))
            frames += 1
        return frames

    # ---------- 4-7: 注册 / 删除 ----------

    def register(self, user_id: int, data_id: int):
        validate_user_id(user_id)
        validate_data_id(data_id)
        image = self.device.register(user_id, data_id)
        try:
            save_bitmap(image, self.config.image_path("RegisterImage.bmp"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to save RegisterImage.bmp: {e}")
        logger.info(f"Registered user {user_id} data {data_id}")
        self.output("\nRegistration complete.\n")

    def delete_data(self, user_id: int, data_id: int):
        validate_user_id(user_id)
        validate_data_id(data_id)
        self.device.delete_data(user_id, data_id)
        self.output("\nDelete specified data complete.\n")

    def delete_user(self, user_id: int):
        validate_user_id(user_id)
        self.device.delete_user(user_id)
        self.output("\nDelete specified user complete.\n")

    def delete_all(self):
        self.device.delete_all()
        self.output("\nDelete all data complete.\n")

    # ---------- 8-11: 相册 ----------

    def save_album(self):
        blob = self.device.save_album()
        path = self.config.album_path()
        try:
            save_album(path, blob)
        except OSError as e:
            logger.error(f"Failed to write album file {path}: {e}")
            self.output(f"\nFailed to output the album data file : {path.name}\n")
            return
        self.output("\nSave Album complete.\n")

    def load_album(self):
        path = self.config.album_path()
        try:
            blob = load_album(path)
        except FileNotFoundError:
            self.output(f"\nFailed to open the album data file : {path.name}\n")
            return
        except ValueError:
            self.output(f"\nThe album data could not be read : {path.name}\n")
            return
        self.device.load_album(blob)
        self.output("\nLoad Album complete.\n")

    def write_album(self):
        self.device.write_album()
        self.output("\nSave Album on Flash ROM complete.\n")

    def reformat_album(self):
        self.device.reformat_album()
        self.output("\nReformat Flash ROM complete.\n")

    # ---------- 12-13: 注册人数 ----------

    def set_regist_count(self, index: int):
        validate_regist_index(index)
        self.device.set_regist_count(index)
        self.output("\nSet Number of registered people in album complete.\n")

    def get_regist_count(self) -> int:
        index = self.device.get_regist_count()
        table = Constants.REGIST_COUNT_TABLE
        capacity = table[index] if 0 <= index < len(table) else -1
        self.output(f"\nRegistration user max num : {index} [ {capacity} ]\n")
        self.output("\nGet Number of registered people in album complete.\n")
        return index
