"""Shared fixtures for hvcsense tests.

All frames are synthetic; no hardware is needed.
"""

import pytest

from hvcsense.core.config_loader import default_config
from hvcsense.device.device_interface import MockHVCDevice
from hvcsense.results.capabilities import Estimator, ExecFlag
from hvcsense.results.frame_store import (
    AgeResult,
    DirectionResult,
    FaceResult,
    FrameResultStore,
    GenderResult,
    RawEntity,
    RecognitionResult,
)
from hvcsense.tracking.tracker_adapter import EstimatorState, TrackedEntity


@pytest.fixture
def make_face():
    """Factory fixture for a face with optional estimator results."""
    def _make(x=100, y=100, size=80, confidence=700, age=None, gender=None,
              recognition=None, direction=(0, 0)):
        face = FaceResult(detection=RawEntity(x, y, size, confidence))
        if direction is not None:
            face.direction = DirectionResult(lr=direction[0], ud=direction[1], roll=0, confidence=600)
        if age is not None:
            face.age = AgeResult(*age)
        if gender is not None:
            face.gender = GenderResult(*gender)
        if recognition is not None:
            face.recognition = RecognitionResult(*recognition)
        return face
    return _make


@pytest.fixture
def make_store():
    """Factory fixture for a frame store; executed flags default to what is present."""
    def _make(bodies=(), faces=(), hands=(), executed=None):
        if executed is None:
            executed = ExecFlag.NONE
            if bodies:
                executed |= ExecFlag.BODY
            if hands:
                executed |= ExecFlag.HAND
            if faces:
                executed |= ExecFlag.FACE | ExecFlag.DIRECTION
                for attr, flag in (("age", ExecFlag.AGE), ("gender", ExecFlag.GENDER),
                                   ("recognition", ExecFlag.RECOGNITION)):
                    if any(getattr(f, attr) is not None for f in faces):
                        executed |= flag
        return FrameResultStore(
            executed=executed,
            bodies=[RawEntity(*b) if isinstance(b, tuple) else b for b in bodies],
            hands=[RawEntity(*h) if isinstance(h, tuple) else h for h in hands],
            faces=list(faces),
        )
    return _make


@pytest.fixture
def tracked():
    """Factory fixture for a tracker output entry."""
    def _make(track_id, index, position=(0, 0), size=0, **states):
        return TrackedEntity(
            track_id=track_id,
            detection_index=index,
            position=position,
            size=size,
            estimator_states={Estimator[name.upper()]: EstimatorState(*value) for name, value in states.items()},
        )
    return _make


@pytest.fixture
def mock_device():
    device = MockHVCDevice()
    device.open()
    yield device
    device.close()


@pytest.fixture
def config(tmp_path):
    """Default configuration with album / image output redirected to tmp_path."""
    cfg = default_config()
    cfg.paths.album_file = str(tmp_path / "HVCAlbum.alb")
    cfg.paths.image_dir = str(tmp_path / "images")
    return cfg
