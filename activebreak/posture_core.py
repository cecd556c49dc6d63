# activebreak/posture_core.py
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Union

HORIZONTAL_TOLERANCE = 0.15   # fraction of shoulder width
SHOULDER_TILT_TOLERANCE = 0.10
UPRIGHT_MIN_ANGLE = -105.0    # degrees; -90 is straight up (image Y grows downwards)
UPRIGHT_MAX_ANGLE = -75.0

BASE_CONFIDENCE = 0.5
CONFIDENCE_STEP = 0.04

REQUIRED_KEYPOINTS = ("nose", "left_shoulder", "right_shoulder")

# MediaPipe Pose landmark indices for the points we use
MP_LANDMARK_INDEX = {
    "nose": 0,
    "left_shoulder": 11,
    "right_shoulder": 12,
}

CORRECT = "correct"
INCORRECT = "incorrect"

REASON_HEAD_NOT_CENTERED = "head_not_centered"
REASON_SPINE_NOT_UPRIGHT = "spine_not_upright"
REASON_SHOULDERS_NOT_LEVEL = "shoulders_not_level"


class Keypoint(NamedTuple):
    name: str
    x: float
    y: float
    score: float


@dataclass(frozen=True)
class PostureVerdict:
    posture: str                  # CORRECT | INCORRECT
    reason: Optional[str] = None  # first failing check, None when correct
    neck_angle: Optional[float] = None
    horizontal_deviation: Optional[float] = None
    shoulder_tilt: Optional[float] = None

    @property
    def is_correct(self) -> bool:
        return self.posture == CORRECT

    def to_dict(self):
        return {
            "posture": self.posture,
            "reason": self.reason,
            "neck_angle": self.neck_angle,
            "horizontal_deviation": self.horizontal_deviation,
            "shoulder_tilt": self.shoulder_tilt,
        }


KeypointsInput = Union[Mapping[str, Keypoint], Iterable[Keypoint]]


def confidence_threshold(sensitivity: int) -> float:
    """
    sensitivity 1 -> 0.46 (strict), sensitivity 10 -> 0.10 (lenient).
    """
    return BASE_CONFIDENCE - int(sensitivity) * CONFIDENCE_STEP


def _by_name(keypoints: KeypointsInput) -> Dict[str, Keypoint]:
    if isinstance(keypoints, Mapping):
        return dict(keypoints)
    return {kp.name: kp for kp in keypoints}


def classify_posture(keypoints: KeypointsInput, sensitivity: int = 5) -> Optional[PostureVerdict]:
    """
    Classify one frame of keypoints.

    Returns None when nose or either shoulder is missing or below the
    confidence threshold; the caller keeps its previous state.
    """
    points = _by_name(keypoints)
    threshold = confidence_threshold(sensitivity)

    required = [points.get(name) for name in REQUIRED_KEYPOINTS]
    if any(kp is None or kp.score < threshold for kp in required):
        return None
    nose, left, right = required

    mid_x = (left.x + right.x) / 2.0
    mid_y = (left.y + right.y) / 2.0
    shoulder_width = abs(right.x - left.x)

    # 1) head centred over the shoulders
    horizontal_deviation = abs(nose.x - mid_x)
    is_centered = horizontal_deviation <= shoulder_width * HORIZONTAL_TOLERANCE

    # 2) neck / upper spine within 15 degrees of vertical
    angle = math.degrees(math.atan2(nose.y - mid_y, nose.x - mid_x))
    is_upright = UPRIGHT_MIN_ANGLE <= angle <= UPRIGHT_MAX_ANGLE

    # 3) shoulders level
    shoulder_tilt = abs(left.y - right.y)
    is_level = shoulder_tilt <= shoulder_width * SHOULDER_TILT_TOLERANCE

    if not is_centered:
        reason = REASON_HEAD_NOT_CENTERED
    elif not is_upright:
        reason = REASON_SPINE_NOT_UPRIGHT
    elif not is_level:
        reason = REASON_SHOULDERS_NOT_LEVEL
    else:
        reason = None

    return PostureVerdict(
        posture=CORRECT if reason is None else INCORRECT,
        reason=reason,
        neck_angle=float(angle),
        horizontal_deviation=float(horizontal_deviation),
        shoulder_tilt=float(shoulder_tilt),
    )


def keypoints_from_payload(items) -> List[Keypoint]:
    """
    items: list of {"name", "x", "y", "score"} dicts as posted by the client.
    Raises ValueError on malformed entries.
    """
    keypoints = []
    for item in items or []:
        try:
            keypoints.append(
                Keypoint(
                    name=str(item["name"]),
                    x=float(item["x"]),
                    y=float(item["y"]),
                    score=float(item.get("score", 0.0)),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"invalid keypoint: {item!r}") from e
    return keypoints


def keypoints_from_mp_landmarks(landmarks) -> List[Keypoint]:
    """
    landmarks: MediaPipe-style landmark list (objects or dicts with x, y, visibility).
    Visibility is used as the confidence score.
    """
    def pt(name):
        lm = landmarks[MP_LANDMARK_INDEX[name]]
        if isinstance(lm, Mapping):
            return Keypoint(name, float(lm["x"]), float(lm["y"]), float(lm.get("visibility", 0.0)))
        return Keypoint(name, float(lm.x), float(lm.y), float(lm.visibility))

    if len(landmarks) <= max(MP_LANDMARK_INDEX.values()):
        return []
    return [pt(name) for name in REQUIRED_KEYPOINTS]
