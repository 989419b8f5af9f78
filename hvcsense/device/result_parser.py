"""
Execute 响应解析
================

响应数据布局（小端）：

    body_count(1) hand_count(1) face_count(1) reserved(1)
    body  x body_count : x(2) y(2) size(2) confidence(2)
    hand  x hand_count : 同上
    face  x face_count : 按功能位顺序依次出现
        FACE        x(2) y(2) size(2) confidence(2)
        DIRECTION   lr(2) ud(2) roll(2) confidence(2)
        AGE         age(1) confidence(2)
        GENDER      gender(1) confidence(2)
        GAZE        lr(1) ud(1)
        BLINK       left(2) right(2)
        EXPRESSION  score(1) x 5, degree(1)
        RECOGNITION uid(2) confidence(2)
        VERIFY      auth(2) confidence(2)
    image（请求图像时）: width(2) height(2) pixels
"""
import struct
from typing import List, Tuple

from ..core.errors import HVCTransportError
from ..results.capabilities import ExecFlag, Expression, ImageMode
from ..results.frame_store import (
    AgeResult,
    BlinkResult,
    DirectionResult,
    ExpressionResult,
    FaceResult,
    FrameResultStore,
    GazeResult,
    GenderResult,
    RawEntity,
    RecognitionResult,
    VerifyResult,
)
from .protocol import pack_image, unpack_image

_COUNTS = struct.Struct("<BBBB")
_ENTITY = struct.Struct("<hhhh")
_DIRECTION = struct.Struct("<hhhh")
_ESTIMATE = struct.Struct("<bh")
_GAZE = struct.Struct("<bb")
_BLINK = struct.Struct("<hh")
_EXPRESSION = struct.Struct("<5bb")
_PAIR = struct.Struct("<hh")


class _Reader:
    """顺序读取，越界时抛 HVCTransportError"""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def take(self, fmt: struct.Struct) -> Tuple[int, ...]:
        if self.offset + fmt.size > len(self.data):
            raise HVCTransportError(
                f"Execute response truncated at offset {self.offset} (need {fmt.size} more bytes, have {len(self.data) - self.offset})"
            )
        values = fmt.unpack_from(self.data, self.offset)
        self.offset += fmt.size
        return values


def _top_expression(scores: List[int]) -> Expression:
    if scores[0] == -128:
        return Expression.UNKNOWN
    return Expression.normalize(scores.index(max(scores)) + 1)


def parse_execute_result(data: bytes, flags: ExecFlag, image_mode: ImageMode = ImageMode.NONE) -> FrameResultStore:
    """
    解析 Execute 响应

    Args:
        data: 响应数据（不含帧头）
        flags: 请求时的功能位
        image_mode: 请求时的图像模式

    Returns:
        FrameResultStore
    """
    flags = ExecFlag(flags)
    reader = _Reader(data)
    body_count, hand_count, face_count, _ = reader.take(_COUNTS)

    store = FrameResultStore(executed=flags)
    for _ in range(body_count):
        store.bodies.append(RawEntity(*reader.take(_ENTITY)))
    for _ in range(hand_count):
        store.hands.append(RawEntity(*reader.take(_ENTITY)))

    for _ in range(face_count):
        face = FaceResult(detection=RawEntity(0, 0, 0, 0))
        if flags & ExecFlag.FACE:
            face.detection = RawEntity(*reader.take(_ENTITY))
        if flags & ExecFlag.DIRECTION:
            face.direction = DirectionResult(*reader.take(_DIRECTION))
        if flags & ExecFlag.AGE:
            face.age = AgeResult(*reader.take(_ESTIMATE))
        if flags & ExecFlag.GENDER:
            face.gender = GenderResult(*reader.take(_ESTIMATE))
        if flags & ExecFlag.GAZE:
            face.gaze = GazeResult(*reader.take(_GAZE))
        if flags & ExecFlag.BLINK:
            face.blink = BlinkResult(*reader.take(_BLINK))
        if flags & ExecFlag.EXPRESSION:
            *scores, degree = reader.take(_EXPRESSION)
            face.expression = ExpressionResult(scores=list(scores), top=_top_expression(list(scores)), degree=degree)
        if flags & ExecFlag.RECOGNITION:
            face.recognition = RecognitionResult(*reader.take(_PAIR))
        if flags & ExecFlag.VERIFY:
            face.verify = VerifyResult(*reader.take(_PAIR))
        store.faces.append(face)

    if ImageMode(image_mode) != ImageMode.NONE:
        store.image, _ = unpack_image(data, reader.offset)

    return store


def encode_execute_result(store: FrameResultStore) -> bytes:
    """把存储编码为 Execute 响应数据（模拟设备使用）"""
    flags = store.executed
    out = bytearray(_COUNTS.pack(len(store.bodies), len(store.hands), len(store.faces), 0))
    for body in store.bodies:
        out += _ENTITY.pack(body.x, body.y, body.size, body.confidence)
    for hand in store.hands:
        out += _ENTITY.pack(hand.x, hand.y, hand.size, hand.confidence)
    for face in store.faces:
        if flags & ExecFlag.FACE:
            d = face.detection
            out += _ENTITY.pack(d.x, d.y, d.size, d.confidence)
        if flags & ExecFlag.DIRECTION:
            out += _DIRECTION.pack(face.direction.lr, face.direction.ud, face.direction.roll, face.direction.confidence)
        if flags & ExecFlag.AGE:
            out += _ESTIMATE.pack(face.age.age, face.age.confidence)
        if flags & ExecFlag.GENDER:
            out += _ESTIMATE.pack(face.gender.gender, face.gender.confidence)
        if flags & ExecFlag.GAZE:
            out += _GAZE.pack(face.gaze.lr, face.gaze.ud)
        if flags & ExecFlag.BLINK:
            out += _BLINK.pack(face.blink.left, face.blink.right)
        if flags & ExecFlag.EXPRESSION:
            out += _EXPRESSION.pack(*face.expression.scores, face.expression.degree)
        if flags & ExecFlag.RECOGNITION:
            out += _PAIR.pack(face.recognition.uid, face.recognition.confidence)
        if flags & ExecFlag.VERIFY:
            out += _PAIR.pack(face.verify.auth, face.verify.confidence)
    if store.image is not None:
        out += pack_image(store.image)
    return bytes(out)
