"""
结果文本输出
============

把（融合后或原始的）FrameResultStore 渲染成逐行文本。

稳定化开启时，年龄 / 性别 / 识别的置信度按档位区间拆分并附加标记：
    (*) 已定值   (-) 收敛中   (x) 未确认
显示的置信度已减去档位偏移。
"""
from typing import List, Optional

from ..fusion.confidence_tier import decode, tier_marker
from ..fusion.resolver import MergeReport
from ..results.capabilities import NOT_POSSIBLE, NOT_REGISTERED, ExecFlag, Expression
from ..results.frame_store import FaceResult, FrameResultStore, RawEntity

INDENT = "      "

# 人脸计数行在这些功能任一执行时输出
_FACE_SECTION = (ExecFlag.FACE | ExecFlag.DIRECTION | ExecFlag.AGE | ExecFlag.GENDER | ExecFlag.GAZE
                 | ExecFlag.BLINK | ExecFlag.EXPRESSION | ExecFlag.RECOGNITION)


def _confidence_text(confidence: int, stabilized: bool) -> str:
    if not stabilized:
        return f"Confidence:{confidence}"
    tier, raw = decode(confidence)
    return f"Confidence:{raw} ({tier_marker(tier)})"


def _entity_line(index: int, entity: RawEntity, track_id: Optional[int], sep: str = " \t\t") -> str:
    if track_id is not None:
        head = f"{INDENT}Index:{index} TR_ID:{track_id} "
    else:
        head = f"{INDENT}Index:{index}{sep}"
    return f"{head}X:{entity.x} Y:{entity.y} Size:{entity.size} Confidence:{entity.confidence}"


def _track_id(report: Optional[MergeReport], capability: ExecFlag, index: int) -> int:
    return report.track_id(capability, index) if report is not None else -1


def gender_label(gender: int) -> str:
    return "Male" if gender == 1 else "Female"


def face_extra_lines(face: FaceResult, executed: ExecFlag, stabilized: bool) -> List[str]:
    """人脸附加估计（方向、年龄、性别、视线、眨眼、表情）"""
    lines = []
    if executed & ExecFlag.DIRECTION and face.direction is not None:
        d = face.direction
        lines.append(f"{INDENT}Face Direction\tLR:{d.lr} UD:{d.ud} Roll:{d.roll} Confidence:{d.confidence}")

    if executed & ExecFlag.AGE and face.age is not None:
        if face.age.age == NOT_POSSIBLE:
            lines.append(f"{INDENT}Age\t\tEstimation not possible")
        else:
            lines.append(f"{INDENT}Age\t\tAge:{face.age.age} {_confidence_text(face.age.confidence, stabilized)}")

    if executed & ExecFlag.GENDER and face.gender is not None:
        if face.gender.gender == NOT_POSSIBLE:
            lines.append(f"{INDENT}Gender\t\tEstimation not possible")
        else:
            lines.append(f"{INDENT}Gender\t\tGender:{gender_label(face.gender.gender)} "
                         f"{_confidence_text(face.gender.confidence, stabilized)}")

    if executed & ExecFlag.GAZE and face.gaze is not None:
        if NOT_POSSIBLE in (face.gaze.lr, face.gaze.ud):
            lines.append(f"{INDENT}Gaze\t\tEstimation not possible")
        else:
            lines.append(f"{INDENT}Gaze\t\tLR:{face.gaze.lr} UD:{face.gaze.ud}")

    if executed & ExecFlag.BLINK and face.blink is not None:
        if NOT_POSSIBLE in (face.blink.left, face.blink.right):
            lines.append(f"{INDENT}Blink\t\tEstimation not possible")
        else:
            lines.append(f"{INDENT}Blink\t\tLeft:{face.blink.left} Right:{face.blink.right}")

    if executed & ExecFlag.EXPRESSION and face.expression is not None:
        ex = face.expression
        if ex.scores[0] == NOT_POSSIBLE:
            lines.append(f"{INDENT}Expression\tEstimation not possible")
        else:
            top = Expression.normalize(int(ex.top))
            label = "?" if top is Expression.UNKNOWN else top.label
            scores = ", ".join(str(s) for s in ex.scores)
            lines.append(f"{INDENT}Expression\tExpression:{label} Score:{scores} Degree:{ex.degree}")
    return lines


def recognition_line(face: FaceResult, stabilized: bool) -> str:
    uid = face.recognition.uid
    if uid == NOT_POSSIBLE:
        return f"{INDENT}Recognition\tRecognition not possible"
    if uid == NOT_REGISTERED:
        return f"{INDENT}Recognition\tNot registered"
    return f"{INDENT}Recognition\tID:{uid} {_confidence_text(face.recognition.confidence, stabilized)}"


def verify_line(face: FaceResult) -> str:
    auth = face.verify.auth
    if auth == NOT_POSSIBLE:
        return f"{INDENT}Verify\tVerify not possible"
    if auth == NOT_REGISTERED:
        return f"{INDENT}Verify\tNot registered"
    return f"{INDENT}Verify\tResult:0x{auth & 0xFFFF:04X} Confidence:{face.verify.confidence}"


def format_detection(store: FrameResultStore, stabilized: bool = False,
                     report: Optional[MergeReport] = None) -> str:
    """
    检测 / 估计结果

    Args:
        store: 本帧结果
        stabilized: 是否开启稳定化（决定 TR_ID 列与档位标记）
        report: 融合报告（提供槽位 -> 轨迹 ID）

    Returns:
        多行文本
    """
    executed = store.executed
    lines = []

    if executed & ExecFlag.BODY:
        lines.append(f" Body result count:{len(store.bodies)}")
        for i, body in enumerate(store.bodies):
            track_id = _track_id(report, ExecFlag.BODY, i) if stabilized else None
            lines.append(_entity_line(i, body, track_id))

    if executed & ExecFlag.HAND:
        lines.append(f" Hand result count:{len(store.hands)}")
        for i, hand in enumerate(store.hands):
            lines.append(_entity_line(i, hand, None))

    if executed & _FACE_SECTION:
        lines.append(f" Face result count:{len(store.faces)}")
        for i, face in enumerate(store.faces):
            if executed & ExecFlag.FACE:
                track_id = _track_id(report, ExecFlag.FACE, i) if stabilized else None
                lines.append(_entity_line(i, face.detection, track_id))
            lines.extend(face_extra_lines(face, executed, stabilized))

    return "\n".join(lines)


def format_identify(store: FrameResultStore, stabilized: bool = False) -> str:
    """识别（1:N）结果"""
    if not store.executed & ExecFlag.FACE:
        return ""
    lines = [f" Face result count:{len(store.faces)}"]
    for i, face in enumerate(store.faces):
        lines.append(_entity_line(i, face.detection, None, sep=" \t"))
        if store.executed & ExecFlag.RECOGNITION and face.recognition is not None:
            lines.append(recognition_line(face, stabilized))
    return "\n".join(lines) + "\n"


def format_verify(store: FrameResultStore) -> str:
    """认证（1:1）结果"""
    if not store.executed & ExecFlag.FACE:
        return ""
    lines = [f" Face result count:{len(store.faces)}"]
    for i, face in enumerate(store.faces):
        lines.append(_entity_line(i, face.detection, None, sep=" \t"))
        if store.executed & ExecFlag.VERIFY and face.verify is not None:
            lines.append(verify_line(face))
    return "\n".join(lines) + "\n"
