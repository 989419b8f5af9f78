"""Tests for merging tracker output into raw frame results."""

import pytest

from hvcsense.core.errors import TrackerUnavailableError
from hvcsense.fusion.confidence_tier import decode
from hvcsense.fusion.resolver import FusionResolver, stabilize_frame
from hvcsense.results.capabilities import Estimator, ExecFlag, Tier
from hvcsense.tracking.stabilizer import Stabilizer
from hvcsense.tracking.tracker_adapter import PropertyParams, StbFunc, TrackerAdapter, TrackerOutput, TrackerParams


class _ScriptedTracker(TrackerAdapter):
    """Returns pre-built outputs frame by frame; raises when scripted with an exception."""

    def __init__(self, outputs):
        super().__init__(StbFunc.FACE | StbFunc.BODY | StbFunc.AGE | StbFunc.GENDER | StbFunc.RECOGNITION)
        self.outputs = list(outputs)
        self._ready = False

    def initialize(self, functions=None):
        self._ready = True

    def execute(self, store):
        item = self.outputs.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def finalize(self):
        self._ready = False

    def is_initialized(self):
        return self._ready


class TestAgeScenario:
    """Face at slot 0 with age -1 / confidence 450."""

    def test_in_progress_adds_offset_only(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(-1, 450))])
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, age=(Tier.IN_PROGRESS, None))])

        FusionResolver().merge(store, output)

        face = store.get(ExecFlag.FACE, 0)
        assert face.age.confidence == 10450
        assert face.age.age == -1

    def test_complete_overwrites_value(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(-1, 450))])
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, age=(Tier.COMPLETE, 34))])

        FusionResolver().merge(store, output)

        face = store.get(ExecFlag.FACE, 0)
        assert face.age.confidence == 20450
        assert face.age.age == 34

    def test_pending_leaves_confidence(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(30, 450))])
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, age=(Tier.PENDING, None))])

        report = FusionResolver().merge(store, output)

        assert store.faces[0].age.confidence == 450
        assert report.tiers[(0, Estimator.AGE)] == Tier.PENDING

    def test_complete_without_final_value_counts_as_in_progress(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(30, 450))])
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, age=(Tier.COMPLETE, None))])

        report = FusionResolver().merge(store, output)

        assert store.faces[0].age.confidence == 10450
        assert store.faces[0].age.age == 30
        assert report.tiers[(0, Estimator.AGE)] == Tier.IN_PROGRESS


class TestBoundsSafety:

    def test_out_of_range_body_index_is_skipped(self, make_store, tracked):
        store = make_store(bodies=[(10, 10, 50, 600), (200, 10, 50, 610)])
        before = store.copy()
        output = TrackerOutput(bodies=[tracked(9, 5, (0, 0), 1)])

        report = FusionResolver().merge(store, output)

        assert store == before
        assert report.skipped == 1
        assert report.merged == 0

    def test_negative_index_is_skipped(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(30, 450))])
        before = store.copy()

        FusionResolver().merge(store, TrackerOutput(faces=[tracked(1, -1, (0, 0), 1, age=(Tier.COMPLETE, 40))]))

        assert store == before

    def test_face_index_beyond_sequence_after_shrink(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(x=10), make_face(x=200)])
        output = TrackerOutput(faces=[
            tracked(1, 0, (11, 100), 80),
            tracked(2, 2, (300, 100), 80),
        ])

        report = FusionResolver().merge(store, output)

        assert report.merged == 1
        assert report.skipped == 1
        assert store.faces[1].detection.x == 200


class TestSentinels:

    @pytest.mark.parametrize("uid", [-128, -127])
    def test_recognition_sentinel_untouched(self, make_store, make_face, tracked, uid):
        store = make_store(faces=[make_face(recognition=(uid, 0))])
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, recognition=(Tier.COMPLETE, 5))])

        FusionResolver().merge(store, output)

        rec = store.faces[0].recognition
        assert (rec.uid, rec.confidence) == (uid, 0)

    def test_age_sentinel_untouched_gender_offset(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(-128, 0), gender=(1, 500))])
        output = TrackerOutput(faces=[tracked(
            1, 0, (100, 100), 80,
            age=(Tier.IN_PROGRESS, None),
            gender=(Tier.IN_PROGRESS, None),
        )])

        FusionResolver().merge(store, output)

        face = store.faces[0]
        assert (face.age.age, face.age.confidence) == (-128, 0)
        assert face.gender.confidence == 10500


class TestMergeRules:

    def test_position_smoothed_confidence_kept(self, make_store, tracked):
        store = make_store(bodies=[(10, 10, 50, 600)])

        report = FusionResolver().merge(store, TrackerOutput(bodies=[tracked(4, 0, (12, 11), 52)]))

        body = store.bodies[0]
        assert (body.x, body.y, body.size, body.confidence) == (12, 11, 52, 600)
        assert report.track_id(ExecFlag.BODY, 0) == 4
        assert report.track_id(ExecFlag.BODY, 1) == -1

    def test_duplicate_slot_merged_once(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(30, 450))])
        output = TrackerOutput(faces=[
            tracked(1, 0, (100, 100), 80, age=(Tier.IN_PROGRESS, None)),
            tracked(2, 0, (100, 100), 80, age=(Tier.IN_PROGRESS, None)),
        ])

        report = FusionResolver().merge(store, output)

        assert store.faces[0].age.confidence == 10450
        assert report.track_id(ExecFlag.FACE, 0) == 1
        assert report.skipped == 1

    def test_estimator_not_executed_is_ignored(self, make_store, make_face, tracked):
        face = make_face(age=(30, 450))
        store = make_store(faces=[face], executed=ExecFlag.FACE)
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, age=(Tier.COMPLETE, 40))])

        FusionResolver().merge(store, output)

        assert (face.age.age, face.age.confidence) == (30, 450)

    def test_entity_without_state_keeps_raw(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(30, 450), gender=(0, 300))])
        output = TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, gender=(Tier.COMPLETE, 1))])

        FusionResolver().merge(store, output)

        face = store.faces[0]
        assert face.age.confidence == 450
        assert (face.gender.gender, face.gender.confidence) == (1, 20300)

    def test_hand_sequence_never_touched(self, make_store, tracked):
        store = make_store(hands=[(5, 5, 20, 500)], bodies=[(10, 10, 50, 600)])
        FusionResolver().merge(store, TrackerOutput(bodies=[tracked(1, 0, (99, 99), 99)]))
        assert (store.hands[0].x, store.hands[0].y) == (5, 5)


class TestTierProgression:

    def test_offsets_do_not_accumulate_across_frames(self, make_store, make_face, tracked):
        resolver = FusionResolver()
        tiers = [Tier.PENDING, Tier.IN_PROGRESS, Tier.IN_PROGRESS, Tier.COMPLETE, Tier.COMPLETE]
        seen = []
        for tier in tiers:
            store = make_store(faces=[make_face(age=(30, 450))])
            final = 31 if tier == Tier.COMPLETE else None
            resolver.merge(store, TrackerOutput(faces=[tracked(1, 0, (100, 100), 80, age=(tier, final))]))
            seen.append(decode(store.faces[0].age.confidence))

        assert [t for t, _ in seen] == tiers
        assert all(raw == 450 for _, raw in seen)

    def test_stabilizer_drives_confidence_through_tiers(self, make_store, make_face):
        params = TrackerParams(property_estimation=PropertyParams(frame_count=3))
        confidences = [200, 450, 450, 450, 450]
        encoded = []

        with Stabilizer(params, StbFunc.FACE | StbFunc.AGE) as stb:
            for confidence in confidences:
                store = make_store(faces=[make_face(age=(30, confidence))])
                stabilize_frame(store, stb)
                encoded.append(store.faces[0].age.confidence)

        assert encoded[0] < 10000
        assert all(10000 <= c < 20000 for c in encoded[1:3])
        assert all(c >= 20000 for c in encoded[3:])
        assert store.faces[0].age.age == 30


class TestStabilizeFrame:

    def test_tracker_failure_leaves_store_unchanged(self, make_store, make_face):
        store = make_store(faces=[make_face(age=(30, 450))])
        before = store.copy()
        tracker = _ScriptedTracker([TrackerUnavailableError("no output")])

        with tracker:
            report = stabilize_frame(store, tracker)

        assert report is None
        assert store == before

    def test_successful_frame_returns_report(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(age=(30, 450))])
        tracker = _ScriptedTracker([TrackerOutput(faces=[tracked(3, 0, (100, 100), 80, age=(Tier.COMPLETE, 29))])])

        with tracker:
            report = stabilize_frame(store, tracker)

        assert report.merged == 1
        assert report.track_id(ExecFlag.FACE, 0) == 3
        assert store.faces[0].age.age == 29
