"""
检测结果融合
============

把跟踪器输出（多帧稳定化的目标）合并进本帧的原始检测结果：

1. detection_index 越界（或为负）的目标直接跳过，不修改存储、不报错
2. 用平滑位置 / 尺寸覆盖原始值，原始置信度不变
3. 对跟踪器负责的估计器（年龄 / 性别 / 识别）按档位叠加置信度偏移，
   COMPLETE 时同时用最终值覆盖估计值；哨兵值保持不变

同一检测槽位在一次合并中至多处理一次，偏移因此只施加一次。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..core.errors import TrackerUnavailableError
from ..core.logger import logger
from ..results.capabilities import GOVERNED_ESTIMATORS, Estimator, ExecFlag, Tier
from ..results.frame_store import FrameResultStore
from ..tracking.tracker_adapter import TrackedEntity, TrackerAdapter, TrackerOutput
from .confidence_tier import TIER_OFFSET, is_sentinel


@dataclass
class MergeReport:
    """
    一次合并的统计

    Attributes:
        merged: 成功合并的目标数
        skipped: 因下标越界或槽位重复而跳过的目标数
        body_track_ids: 人体槽位 -> 轨迹 ID
        face_track_ids: 人脸槽位 -> 轨迹 ID
        tiers: (人脸槽位, 估计器) -> 施加的档位
    """
    merged: int = 0
    skipped: int = 0
    body_track_ids: Dict[int, int] = field(default_factory=dict)
    face_track_ids: Dict[int, int] = field(default_factory=dict)
    tiers: Dict[Tuple[int, Estimator], Tier] = field(default_factory=dict)

    def track_id(self, capability: ExecFlag, index: int) -> int:
        """槽位对应的轨迹 ID，未被跟踪时返回 -1"""
        ids = self.body_track_ids if capability == ExecFlag.BODY else self.face_track_ids
        return ids.get(index, -1)


class FusionResolver:
    """
    融合器（无状态，可在多帧间复用）

    使用示例:
        resolver = FusionResolver()
        report = resolver.merge(store, tracker.execute(store))
    """

    def __init__(self, estimators=GOVERNED_ESTIMATORS):
        self.estimators = tuple(estimators)

    def merge(self, store: FrameResultStore, tracker_output: TrackerOutput) -> MergeReport:
        """
        原地合并

        Args:
            store: 本帧原始结果
            tracker_output: 跟踪器本帧输出

        Returns:
            MergeReport
        """
        report = MergeReport()
        self._merge_sequence(store, ExecFlag.BODY, tracker_output.bodies, report.body_track_ids, report)
        self._merge_sequence(store, ExecFlag.FACE, tracker_output.faces, report.face_track_ids, report)

        if report.skipped:
            logger.debug(f"[Fusion] merged={report.merged} skipped={report.skipped}")
        return report

    def _merge_sequence(
        self,
        store: FrameResultStore,
        capability: ExecFlag,
        tracked: List[TrackedEntity],
        track_ids: Dict[int, int],
        report: MergeReport,
    ):
        for entity in tracked:
            index = entity.detection_index
            if not store.in_range(capability, index):
                # 检测器与跟踪器可能相差一帧
                report.skipped += 1
                continue
            if index in track_ids:
                report.skipped += 1
                logger.debug(f"[Fusion] {capability.name} slot {index} already merged, "
                             f"track {entity.track_id} ignored")
                continue

            store.set_position(capability, index, entity.position, entity.size)
            track_ids[index] = entity.track_id
            report.merged += 1

            if capability == ExecFlag.FACE:
                self._apply_tiers(store, index, entity, report)

    def _apply_tiers(self, store: FrameResultStore, index: int, entity: TrackedEntity, report: MergeReport):
        face = store.get(ExecFlag.FACE, index)
        for estimator in self.estimators:
            if not store.executed & estimator.flag:
                continue
            state = entity.estimator_states.get(estimator)
            if state is None:
                continue
            if is_sentinel(estimator, face.estimator_value(estimator)):
                continue

            tier = Tier(state.tier)
            if tier == Tier.COMPLETE and state.final_value is None:
                # 没有最终值的 COMPLETE 按 IN_PROGRESS 记档
                logger.debug(f"[Fusion] slot {index} {estimator.value}: COMPLETE without value, kept IN_PROGRESS")
                tier = Tier.IN_PROGRESS
            offset = TIER_OFFSET[tier]
            if offset:
                store.add_confidence_tier(ExecFlag.FACE, index, estimator, offset)
            if tier == Tier.COMPLETE:
                store.set_estimator_value(ExecFlag.FACE, index, estimator, state.final_value)
            report.tiers[(index, estimator)] = tier


def stabilize_frame(
    store: FrameResultStore,
    adapter: TrackerAdapter,
    resolver: Optional[FusionResolver] = None,
) -> Optional[MergeReport]:
    """
    跟踪 + 融合一帧

    Returns:
        MergeReport；跟踪器本帧不可用时返回 None（存储保持原样）
    """
    resolver = resolver or FusionResolver()
    try:
        output = adapter.execute(store)
    except TrackerUnavailableError as e:
        logger.warning(f"[Fusion] tracker unavailable, using raw results: {e}")
        return None
    return resolver.merge(store, output)
