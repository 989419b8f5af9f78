"""Tests for text rendering of frame results."""

from hvcsense.fusion.resolver import FusionResolver
from hvcsense.presentation.formatter import format_detection, format_identify, format_verify
from hvcsense.results.capabilities import ExecFlag, Tier
from hvcsense.results.frame_store import VerifyResult
from hvcsense.tracking.tracker_adapter import TrackerOutput


class TestDetection:

    def test_raw_lines(self, make_store, make_face):
        store = make_store(bodies=[(160, 120, 180, 700)], faces=[make_face(age=(34, 450))])

        text = format_detection(store)

        assert " Body result count:1" in text
        assert "      Index:0 \t\tX:160 Y:120 Size:180 Confidence:700" in text
        assert "      Age\t\tAge:34 Confidence:450" in text

    def test_stabilized_shows_track_id_and_marker(self, make_store, make_face, tracked):
        store = make_store(faces=[make_face(x=100, y=100, size=80, confidence=700, age=(34, 450))])
        report = FusionResolver().merge(
            store, TrackerOutput(faces=[tracked(7, 0, (100, 100), 80, age=(Tier.IN_PROGRESS, None))])
        )

        text = format_detection(store, stabilized=True, report=report)

        assert "      Index:0 TR_ID:7 X:100 Y:100 Size:80 Confidence:700" in text
        assert "Age:34 Confidence:450 (-)" in text

    def test_untracked_slot_shows_minus_one(self, make_store):
        store = make_store(bodies=[(160, 120, 180, 700)])
        text = format_detection(store, stabilized=True, report=None)
        assert "TR_ID:-1" in text

    def test_not_possible(self, make_store, make_face):
        store = make_store(faces=[make_face(age=(-128, 0), gender=(-128, 0))])

        text = format_detection(store)

        assert "      Age\t\tEstimation not possible" in text
        assert "      Gender\t\tEstimation not possible" in text


class TestIdentifyVerify:

    def test_identify_lines(self, make_store, make_face):
        store = make_store(faces=[make_face(recognition=(-127, 0)), make_face(x=300, recognition=(4, 20600))])

        text = format_identify(store, stabilized=True)

        assert "      Recognition\tNot registered" in text
        assert "      Recognition\tID:4 Confidence:600 (*)" in text

    def test_verify_lines(self, make_store, make_face):
        face = make_face()
        face.verify = VerifyResult(auth=1, confidence=650)
        store = make_store(faces=[face], executed=ExecFlag.FACE | ExecFlag.VERIFY)

        text = format_verify(store)

        assert "      Verify\tResult:0x0001 Confidence:650" in text
