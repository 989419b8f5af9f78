"""
Stabilizer - 基于 IoU 的多帧稳定化跟踪器

特性：
- 中心点 + 尺寸 推导方框，IoU 贪婪关联（人体、人脸分别跟踪）
- retry_count 帧内未检测到的轨迹保留身份
- 位置 / 尺寸 steadiness 抑制小幅抖动
- 年龄 / 性别 / 识别逐帧累积证据，达到帧数后定值（PENDING -> IN_PROGRESS -> COMPLETE）
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core.errors import TrackerUnavailableError
from ..core.logger import logger
from ..results.capabilities import SENTINELS, Estimator, ExecFlag, Tier
from ..results.frame_store import DirectionResult, FaceResult, FrameResultStore, RawEntity
from .tracker_adapter import (
    ESTIMATOR_FUNCS,
    EstimatorState,
    StbFunc,
    TrackedEntity,
    TrackerAdapter,
    TrackerOutput,
    TrackerParams,
)


@dataclass
class _Evidence:
    """单个估计器的累积证据"""
    samples: List[int] = field(default_factory=list)
    tier: Tier = Tier.PENDING
    final_value: Optional[int] = None

    def state(self) -> EstimatorState:
        return EstimatorState(tier=self.tier, final_value=self.final_value)


@dataclass
class _Track:
    """内部轨迹"""
    track_id: int
    x: int
    y: int
    size: int
    frames_since_update: int = 0
    total_frames: int = 1
    evidence: Dict[Estimator, _Evidence] = field(default_factory=dict)

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        half = self.size / 2.0
        return (self.x - half, self.y - half, self.x + half, self.y + half)


def _entity_bbox(entity: RawEntity) -> Tuple[float, float, float, float]:
    half = entity.size / 2.0
    return (entity.x - half, entity.y - half, entity.x + half, entity.y + half)


def _compute_iou(
    bbox1: Tuple[float, float, float, float],
    bbox2: Tuple[float, float, float, float],
) -> float:
    """计算两个边界框的 IoU"""
    x1_1, y1_1, x2_1, y2_1 = bbox1
    x1_2, y1_2, x2_2, y2_2 = bbox2

    xi1 = max(x1_1, x1_2)
    yi1 = max(y1_1, y1_2)
    xi2 = min(x2_1, x2_2)
    yi2 = min(y2_1, y2_2)
    inter_area = max(0.0, xi2 - xi1) * max(0.0, yi2 - yi1)

    area1 = (x2_1 - x1_1) * (y2_1 - y1_1)
    area2 = (x2_2 - x1_2) * (y2_2 - y1_2)
    union_area = area1 + area2 - inter_area
    if union_area <= 0:
        return 0.0
    return inter_area / union_area


class _TrackPool:
    """一类目标（人体或人脸）的轨迹集合"""

    def __init__(self, kind: str, params: TrackerParams, id_source):
        self.kind = kind
        self.params = params
        self._next_id = id_source
        self._tracks: Dict[int, _Track] = {}

    def __len__(self) -> int:
        return len(self._tracks)

    def clear(self):
        self._tracks.clear()

    def update(self, entities: List[RawEntity]) -> List[Tuple[int, _Track]]:
        """
        关联本帧检测并更新轨迹

        Returns:
            [(detection_index, track), ...]，按 detection_index 排序，仅含本帧检测到的目标
        """
        matched, unmatched_dets, unmatched_tracks = self._match(entities)

        updated: List[Tuple[int, _Track]] = []
        for det_idx, track_id in matched:
            track = self._tracks[track_id]
            self._smooth(track, entities[det_idx])
            track.frames_since_update = 0
            track.total_frames += 1
            updated.append((det_idx, track))

        for det_idx in unmatched_dets:
            entity = entities[det_idx]
            track = _Track(track_id=self._next_id(), x=entity.x, y=entity.y, size=entity.size)
            self._tracks[track.track_id] = track
            updated.append((det_idx, track))
            logger.debug(f"[Stabilizer] new {self.kind} track {track.track_id} at slot {det_idx}")

        for track_id in unmatched_tracks:
            self._tracks[track_id].frames_since_update += 1

        # 超过 retry_count 帧未检测到则删除
        lost = [tid for tid, t in self._tracks.items() if t.frames_since_update > self.params.retry_count]
        for tid in lost:
            del self._tracks[tid]
            logger.debug(f"[Stabilizer] {self.kind} track {tid} dropped")

        updated.sort(key=lambda item: item[0])
        return updated

    def _match(self, entities: List[RawEntity]):
        if not entities or not self._tracks:
            return [], list(range(len(entities))), list(self._tracks.keys())

        track_ids = list(self._tracks.keys())
        iou_matrix = np.zeros((len(entities), len(track_ids)))
        for d_idx, entity in enumerate(entities):
            det_bbox = _entity_bbox(entity)
            for t_idx, track_id in enumerate(track_ids):
                iou_matrix[d_idx, t_idx] = _compute_iou(det_bbox, self._tracks[track_id].bbox)

        # 贪婪匹配：按 IoU 降序
        matched = []
        used_dets = set()
        used_tracks = set()
        while True:
            max_iou = iou_matrix.max()
            if max_iou < self.params.iou_threshold:
                break
            d_idx, t_idx = np.unravel_index(iou_matrix.argmax(), iou_matrix.shape)
            d_idx, t_idx = int(d_idx), int(t_idx)
            matched.append((d_idx, track_ids[t_idx]))
            used_dets.add(d_idx)
            used_tracks.add(track_ids[t_idx])
            iou_matrix[d_idx, :] = -1
            iou_matrix[:, t_idx] = -1

        unmatched_dets = [i for i in range(len(entities)) if i not in used_dets]
        unmatched_tracks = [tid for tid in track_ids if tid not in used_tracks]
        return matched, unmatched_dets, unmatched_tracks

    def _smooth(self, track: _Track, entity: RawEntity):
        """steadiness 范围内的变化保持上一帧值"""
        pos_limit = track.size * self.params.pos_steadiness / 100.0
        if abs(entity.x - track.x) > pos_limit or abs(entity.y - track.y) > pos_limit:
            track.x, track.y = entity.x, entity.y

        size_limit = track.size * self.params.size_steadiness / 100.0
        if abs(entity.size - track.size) > size_limit:
            track.size = entity.size


class Stabilizer(TrackerAdapter):
    """
    纯 Python 的跟踪器实现

    使用方法：
        params = TrackerParams.from_config(config.stabilization)
        with Stabilizer(params, functions=StbFunc.FACE | StbFunc.DIRECTION | StbFunc.AGE) as stb:
            output = stb.execute(store)
    """

    def __init__(self, params: Optional[TrackerParams] = None, functions: StbFunc = StbFunc.NONE):
        super().__init__(functions)
        self.params = params or TrackerParams()
        self._initialized = False
        self._next_track_id = 1
        self._bodies = _TrackPool("body", self.params, self._allocate_id)
        self._faces = _TrackPool("face", self.params, self._allocate_id)

    def _allocate_id(self) -> int:
        track_id = self._next_track_id
        self._next_track_id += 1
        return track_id

    # ------------------------------------------------------------------
    # TrackerAdapter
    # ------------------------------------------------------------------

    def initialize(self, functions: Optional[StbFunc] = None) -> None:
        if functions is not None:
            self.functions = StbFunc(functions)
        self._bodies.clear()
        self._faces.clear()
        self._next_track_id = 1
        self._initialized = True
        logger.info(f"[Stabilizer] initialised: functions={self.functions!r}, "
                    f"retry={self.params.retry_count}, "
                    f"steadiness={self.params.pos_steadiness}/{self.params.size_steadiness}")

    def finalize(self) -> None:
        if not self._initialized:
            return
        logger.info(f"[Stabilizer] finalised ({len(self._bodies)} body / {len(self._faces)} face tracks released)")
        self._bodies.clear()
        self._faces.clear()
        self._initialized = False

    def is_initialized(self) -> bool:
        return self._initialized

    def execute(self, store: FrameResultStore) -> TrackerOutput:
        if not self._initialized:
            raise TrackerUnavailableError("Stabilizer is not initialised")

        output = TrackerOutput()

        if self.functions & StbFunc.BODY and store.executed & ExecFlag.BODY:
            for det_idx, track in self._bodies.update(store.bodies):
                output.bodies.append(TrackedEntity(
                    track_id=track.track_id,
                    detection_index=det_idx,
                    position=(track.x, track.y),
                    size=track.size,
                ))

        if self.functions & StbFunc.FACE and store.executed & ExecFlag.FACE:
            faces = store.faces
            for det_idx, track in self._faces.update([f.detection for f in faces]):
                output.faces.append(TrackedEntity(
                    track_id=track.track_id,
                    detection_index=det_idx,
                    position=(track.x, track.y),
                    size=track.size,
                    estimator_states=self._accumulate(track, faces[det_idx], store.executed),
                ))

        return output

    # ------------------------------------------------------------------
    # 估计器收敛
    # ------------------------------------------------------------------

    def _accumulate(self, track: _Track, face: FaceResult, executed: ExecFlag) -> Dict[Estimator, EstimatorState]:
        states: Dict[Estimator, EstimatorState] = {}
        for estimator, func in ESTIMATOR_FUNCS.items():
            if not self.functions & func or not executed & estimator.flag:
                continue
            record = face.estimator_record(estimator)
            if record is None:
                continue

            evidence = track.evidence.setdefault(estimator, _Evidence())
            if evidence.tier != Tier.COMPLETE:
                self._add_sample(estimator, evidence, face, record.confidence)
            states[estimator] = evidence.state()
        return states

    def _gate(self, estimator: Estimator):
        if estimator == Estimator.RECOGNITION:
            return self.params.recognition
        return self.params.property_estimation

    def _add_sample(self, estimator: Estimator, evidence: _Evidence, face: FaceResult, confidence: int):
        gate = self._gate(estimator)
        value = face.estimator_value(estimator)

        if self._accepts(estimator, value, confidence, face.direction, gate):
            evidence.samples.append(value)

        if not evidence.samples:
            evidence.tier = Tier.PENDING
            return

        evidence.tier = Tier.IN_PROGRESS
        if len(evidence.samples) < gate.frame_count:
            return

        final_value = self._resolve(estimator, evidence.samples, gate)
        if final_value is None:
            # 多数 ID 占比不足，滑动窗口继续累积
            evidence.samples.pop(0)
            return

        evidence.tier = Tier.COMPLETE
        evidence.final_value = final_value
        evidence.samples.clear()
        logger.debug(f"[Stabilizer] {estimator.value} fixed at {final_value}")

    def _accepts(self, estimator: Estimator, value: Optional[int], confidence: int,
                 direction: Optional[DirectionResult], gate) -> bool:
        """本帧估计值是否计入证据"""
        if value is None:
            return False
        # 哨兵值不累积
        if value in SENTINELS[estimator]:
            return False
        if confidence < gate.threshold:
            return False
        if direction is not None:
            ud_min, ud_max = gate.angle_ud
            lr_min, lr_max = gate.angle_lr
            if not (ud_min <= direction.ud <= ud_max and lr_min <= direction.lr <= lr_max):
                return False
        return True

    @staticmethod
    def _resolve(estimator: Estimator, samples: List[int], gate) -> Optional[int]:
        if estimator == Estimator.AGE:
            return int(round(sum(samples) / len(samples)))

        value, count = Counter(samples).most_common(1)[0]
        if estimator == Estimator.RECOGNITION:
            if count * 100 < gate.ratio * len(samples):
                return None
        return value
