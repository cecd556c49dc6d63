# tests/test_posture_core.py

import pytest

from activebreak.posture_core import (
    CORRECT,
    INCORRECT,
    REASON_HEAD_NOT_CENTERED,
    REASON_SHOULDERS_NOT_LEVEL,
    REASON_SPINE_NOT_UPRIGHT,
    Keypoint,
    classify_posture,
    confidence_threshold,
    keypoints_from_mp_landmarks,
    keypoints_from_payload,
)


def frame(nose=(0.5, 0.3), left=(0.4, 0.5), right=(0.6, 0.5), score=0.9):
    return [
        Keypoint("nose", nose[0], nose[1], score),
        Keypoint("left_shoulder", left[0], left[1], score),
        Keypoint("right_shoulder", right[0], right[1], score),
    ]


class TestConfidenceThreshold:
    """Sensitivity maps onto the minimum keypoint score"""

    def test_strict_and_lenient_ends(self):
        assert confidence_threshold(1) == pytest.approx(0.46)
        assert confidence_threshold(5) == pytest.approx(0.30)
        assert confidence_threshold(10) == pytest.approx(0.10)

    def test_accepted_at_s_means_accepted_above_s(self):
        for score in (0.12, 0.2, 0.35, 0.5):
            accepted = [classify_posture(frame(score=score), s) is not None for s in range(1, 11)]
            first = accepted.index(True) if True in accepted else len(accepted)
            assert all(accepted[first:])

    def test_higher_sensitivity_accepts_weaker_points(self):
        weak = frame(score=0.2)
        assert classify_posture(weak, sensitivity=5) is None
        verdict = classify_posture(weak, sensitivity=10)
        assert verdict is not None
        assert verdict.posture == CORRECT


class TestClassifyPosture:
    """Geometric checks on nose and shoulders"""

    def test_upright_centered_level_is_correct(self):
        verdict = classify_posture(frame())
        assert verdict.is_correct
        assert verdict.reason is None
        assert verdict.neck_angle == pytest.approx(-90.0)
        assert verdict.horizontal_deviation == pytest.approx(0.0)
        assert verdict.shoulder_tilt == pytest.approx(0.0)

    def test_head_off_center(self):
        verdict = classify_posture(frame(nose=(0.55, 0.3)))
        assert verdict.posture == INCORRECT
        assert verdict.reason == REASON_HEAD_NOT_CENTERED

    def test_head_dropped_forward(self):
        # centred within tolerance but almost level with the shoulders
        verdict = classify_posture(frame(nose=(0.52, 0.48)))
        assert verdict.posture == INCORRECT
        assert verdict.reason == REASON_SPINE_NOT_UPRIGHT

    def test_shoulders_tilted(self):
        verdict = classify_posture(frame(right=(0.6, 0.53)))
        assert verdict.posture == INCORRECT
        assert verdict.reason == REASON_SHOULDERS_NOT_LEVEL

    def test_missing_keypoint_gives_no_verdict(self):
        points = frame()[:2]
        assert classify_posture(points) is None

    def test_accepts_mapping(self):
        points = {kp.name: kp for kp in frame()}
        assert classify_posture(points).posture == CORRECT

    def test_to_dict(self):
        data = classify_posture(frame(nose=(0.55, 0.3))).to_dict()
        assert data["posture"] == INCORRECT
        assert data["reason"] == REASON_HEAD_NOT_CENTERED
        assert set(data) == {
            "posture", "reason", "neck_angle", "horizontal_deviation", "shoulder_tilt"
        }


class TestKeypointParsing:
    """Client payload adapters"""

    def test_payload_round_trip_fields(self):
        points = keypoints_from_payload(
            [{"name": "nose", "x": "0.5", "y": 0.3, "score": 0.8}]
        )
        assert points == [Keypoint("nose", 0.5, 0.3, 0.8)]

    def test_payload_score_defaults_to_zero(self):
        points = keypoints_from_payload([{"name": "nose", "x": 0.5, "y": 0.3}])
        assert points[0].score == 0.0

    def test_payload_rejects_malformed_entry(self):
        with pytest.raises(ValueError):
            keypoints_from_payload([{"name": "nose", "x": "left"}])

    def test_mediapipe_landmarks(self):
        landmarks = [{"x": 0.0, "y": 0.0, "visibility": 0.0} for _ in range(33)]
        landmarks[0] = {"x": 0.5, "y": 0.3, "visibility": 0.9}
        landmarks[11] = {"x": 0.4, "y": 0.5, "visibility": 0.9}
        landmarks[12] = {"x": 0.6, "y": 0.5, "visibility": 0.9}

        points = keypoints_from_mp_landmarks(landmarks)
        assert [kp.name for kp in points] == ["nose", "left_shoulder", "right_shoulder"]
        assert classify_posture(points).posture == CORRECT

    def test_short_landmark_list_yields_nothing(self):
        assert keypoints_from_mp_landmarks([{"x": 0, "y": 0, "visibility": 1}] * 5) == []
