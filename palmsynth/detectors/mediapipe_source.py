"""
MediaPipe HandLandmarker as the upstream detector.

MediaPipe reports image coordinates with the origin at the top-left; the
tracking core works with the origin at the bottom-left, so y is flipped on
the way in. The 21 MediaPipe landmarks are already in canonical joint order.
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from palmsynth.detectors.hand_landmarks import JOINT_ORDER

HAND_LANDMARKER_MODEL_URL = 'https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task'
# Resolved against the working directory at construction time
HAND_LANDMARKER_MODEL_PATH = Path('models') / 'hand_landmarker.task'


def default_model_path() -> Path:
    return Path.cwd() / HAND_LANDMARKER_MODEL_PATH


def _landmark_confidence(landmark, fallback: float) -> float:
    # Hand landmarks rarely carry visibility/presence; use them when they do
    for attr in ('visibility', 'presence'):
        value = getattr(landmark, attr, None)
        if value is not None and value > 0:
            return float(value)
    return fallback


def _handedness_score(handedness) -> Optional[float]:
    if handedness is None:
        return None
    categories = getattr(handedness, 'categories', handedness)
    try:
        return float(categories[0].score)
    except (IndexError, AttributeError, TypeError):
        return None


def observation_from_landmarks(
    hand_landmarks: Sequence, handedness=None
) -> Dict[str, Tuple[Tuple[float, float], float]]:
    """
    Convert one hand's MediaPipe landmarks into a raw observation.

    Args:
        hand_landmarks: sequence of landmarks with .x/.y (normalized, top-left origin)
        handedness: that hand's category list, used as a confidence fallback
    """
    score = _handedness_score(handedness)
    fallback = 1.0 if score is None else score

    observation = {}
    for joint_id, lm in zip(JOINT_ORDER, hand_landmarks):
        position = (float(lm.x), 1.0 - float(lm.y))
        observation[joint_id] = (position, _landmark_confidence(lm, fallback))
    return observation


def observations_from_result(result) -> List[Dict[str, Tuple[Tuple[float, float], float]]]:
    """All hands of a HandLandmarkerResult, in detector order."""
    hands = getattr(result, 'hand_landmarks', None) or []
    handedness = getattr(result, 'handedness', None) or []
    out = []
    for i, hand in enumerate(hands):
        out.append(observation_from_landmarks(hand, handedness[i] if i < len(handedness) else None))
    return out


class HandLandmarkerSource:
    """
    Camera frames in, raw observations out.

    Runs the MediaPipe Tasks HandLandmarker in VIDEO mode, so timestamps
    passed to `detect` must increase from call to call.
    """

    def __init__(
        self,
        model_path: Optional[Path] = None,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        model_path = Path(model_path) if model_path is not None else default_model_path()
        if not model_path.exists():
            raise FileNotFoundError(
                f"Hand landmarker model not found: {model_path}\n"
                f"Download it from {HAND_LANDMARKER_MODEL_URL}"
            )

        import mediapipe as mp
        from mediapipe.tasks.python import BaseOptions, vision

        self._mp = mp

        options = vision.HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=max_hands,
            min_hand_detection_confidence=min_detection_confidence,
            min_hand_presence_confidence=min_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._landmarker = vision.HandLandmarker.create_from_options(options)
        self.runs = 0
        self.last_result_count = 0
        self.last_error = ""

    @classmethod
    def from_config(cls, cfg, model_path: Optional[Path] = None) -> 'HandLandmarkerSource':
        return cls(
            model_path=model_path,
            max_hands=cfg.get('tracking', 'max_hands', default=2),
            min_detection_confidence=cfg.get('performance', 'min_detection_confidence', default=0.5),
            min_presence_confidence=cfg.get('performance', 'min_presence_confidence', default=0.5),
            min_tracking_confidence=cfg.get('performance', 'min_tracking_confidence', default=0.5),
        )

    def detect(self, frame_bgr, timestamp_ms: int):
        """Run detection on a BGR frame; a failed run yields no observations."""
        import cv2

        self.runs += 1
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=frame_rgb)
        try:
            result = self._landmarker.detect_for_video(mp_image, int(timestamp_ms))
        except (RuntimeError, ValueError) as e:
            self.last_error = str(e)
            print(f"⚠ Hand landmarker failed: {e}")
            return []

        observations = observations_from_result(result)
        self.last_result_count = len(observations)
        return observations

    def close(self) -> None:
        if hasattr(self._landmarker, "close"):
            self._landmarker.close()
