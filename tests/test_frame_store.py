"""Tests for FrameResultStore access and in-place mutation."""

import numpy as np
import pytest

from hvcsense.core.errors import StoreIndexError
from hvcsense.results.capabilities import Estimator, ExecFlag
from hvcsense.results.frame_store import FaceResult, FrameResultStore, RawEntity


class TestAccess:
    """Tests for sequence / count / get."""

    def test_count_per_capability(self, make_store, make_face):
        store = make_store(bodies=[(10, 10, 50, 600), (20, 20, 50, 610)], faces=[make_face()])

        assert store.count(ExecFlag.BODY) == 2
        assert store.count(ExecFlag.HAND) == 0
        assert store.count(ExecFlag.FACE) == 1

    def test_get_returns_entity_or_face(self, make_store, make_face):
        face = make_face(x=5)
        store = make_store(bodies=[(10, 10, 50, 600)], faces=[face])

        assert isinstance(store.get(ExecFlag.BODY, 0), RawEntity)
        assert store.get(ExecFlag.FACE, 0) is face

    def test_get_out_of_range_raises(self, make_store):
        store = make_store(bodies=[(10, 10, 50, 600)])

        with pytest.raises(StoreIndexError):
            store.get(ExecFlag.BODY, 1)
        with pytest.raises(StoreIndexError):
            store.get(ExecFlag.BODY, -1)

    def test_store_index_error_is_index_error(self, make_store):
        store = make_store()
        with pytest.raises(IndexError):
            store.get(ExecFlag.FACE, 0)

    def test_non_detection_capability_rejected(self, make_store):
        store = make_store()
        with pytest.raises(ValueError):
            store.sequence(ExecFlag.AGE)

    def test_in_range(self, make_store):
        store = make_store(bodies=[(0, 0, 10, 1)])
        assert store.in_range(ExecFlag.BODY, 0)
        assert not store.in_range(ExecFlag.BODY, 1)
        assert not store.in_range(ExecFlag.BODY, -1)


class TestMutation:
    """Tests for set_position / add_confidence_tier / set_estimator_value."""

    def test_set_position_keeps_confidence(self, make_store):
        store = make_store(bodies=[(10, 10, 50, 600)])

        store.set_position(ExecFlag.BODY, 0, (12, 14), 55)

        body = store.get(ExecFlag.BODY, 0)
        assert (body.x, body.y, body.size, body.confidence) == (12, 14, 55, 600)

    def test_set_position_on_face_updates_detection(self, make_store, make_face):
        store = make_store(faces=[make_face(x=100, y=100, size=80, confidence=700)])

        store.set_position(ExecFlag.FACE, 0, (101, 99), 82)

        det = store.get(ExecFlag.FACE, 0).detection
        assert det.position == (101, 99)
        assert det.size == 82
        assert det.confidence == 700

    def test_add_confidence_tier(self, make_store, make_face):
        store = make_store(faces=[make_face(age=(30, 450))])

        store.add_confidence_tier(ExecFlag.FACE, 0, Estimator.AGE, 10000)

        assert store.get(ExecFlag.FACE, 0).age.confidence == 10450

    def test_set_estimator_value(self, make_store, make_face):
        store = make_store(faces=[make_face(recognition=(3, 600))])

        store.set_estimator_value(ExecFlag.FACE, 0, Estimator.RECOGNITION, 7)

        assert store.get(ExecFlag.FACE, 0).recognition.uid == 7

    def test_estimator_mutation_requires_face(self, make_store):
        store = make_store(bodies=[(10, 10, 50, 600)])
        with pytest.raises(ValueError):
            store.add_confidence_tier(ExecFlag.BODY, 0, Estimator.AGE, 10000)

    def test_missing_estimator_record_raises(self, make_store, make_face):
        store = make_store(faces=[make_face()])
        with pytest.raises(StoreIndexError):
            store.set_estimator_value(ExecFlag.FACE, 0, Estimator.GENDER, 1)


class TestSnapshot:
    """Tests for copy / equality."""

    def test_copy_is_independent(self, make_store, make_face):
        store = make_store(faces=[make_face(age=(30, 450))])
        snapshot = store.copy()

        store.add_confidence_tier(ExecFlag.FACE, 0, Estimator.AGE, 20000)

        assert snapshot != store
        assert snapshot.faces[0].age.confidence == 450

    def test_equality_compares_images(self):
        a = FrameResultStore(executed=ExecFlag.FACE, image=np.zeros((2, 2), dtype=np.uint8))
        b = FrameResultStore(executed=ExecFlag.FACE, image=np.zeros((2, 2), dtype=np.uint8))
        c = FrameResultStore(executed=ExecFlag.FACE, image=np.ones((2, 2), dtype=np.uint8))

        assert a == b
        assert a != c
        assert a != FrameResultStore(executed=ExecFlag.FACE)

    def test_estimator_value_none_when_not_executed(self):
        face = FaceResult(detection=RawEntity(0, 0, 10, 500))
        assert face.estimator_value(Estimator.AGE) is None
