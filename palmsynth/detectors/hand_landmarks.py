"""
Hand landmark value types and per-observation helpers.

A raw observation is whatever the upstream pose detector hands us for one
hand in one frame: a mapping of joint id to ``(position, confidence)``, with
positions normalized to 0..1 and the origin at the bottom-left.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from palmsynth.utils.math_utils import Point, euclidean, to_target_space


# Canonical joint order (same order as the 21 MediaPipe hand landmarks)
WRIST = 'wrist'
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 'thumb_cmc', 'thumb_mcp', 'thumb_ip', 'thumb_tip'
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 'index_mcp', 'index_pip', 'index_dip', 'index_tip'
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 'middle_mcp', 'middle_pip', 'middle_dip', 'middle_tip'
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 'ring_mcp', 'ring_pip', 'ring_dip', 'ring_tip'
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 'pinky_mcp', 'pinky_pip', 'pinky_dip', 'pinky_tip'

JOINT_ORDER: Tuple[str, ...] = (
    WRIST,
    THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP,
    INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP,
    MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP,
    RING_MCP, RING_PIP, RING_DIP, RING_TIP,
    PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP,
)
JOINT_INDEX: Dict[str, int] = {name: i for i, name in enumerate(JOINT_ORDER)}

# Metacarpal joints averaged into the palm proxy
PALM_JOINTS = (INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)

SIGNATURE_MIN_CONFIDENCE = 0.10
LANDMARK_MIN_CONFIDENCE = 0.12

RawObservation = Mapping[str, Tuple[Sequence[float], float]]


@dataclass(frozen=True, eq=False)
class Landmark:
    """A single named joint sample. Identity is the joint id."""
    id: str
    position: Point       # normalized (x, y), origin bottom-left
    confidence: float     # 0..1

    def __eq__(self, other):
        if not isinstance(other, Landmark):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def with_position(self, position: Point) -> 'Landmark':
        return Landmark(self.id, (float(position[0]), float(position[1])), self.confidence)


@dataclass(frozen=True)
class HandPose:
    """
    Stabilized pose of one tracked hand for one frame.
    Distances are in target-space pixels.
    """
    track_id: int
    landmarks: Tuple[Landmark, ...]
    avg_confidence: float = 0.0
    pinch_distance: float = 0.0
    span_distance: float = 0.0

    def get(self, joint_id: str) -> Optional[Landmark]:
        for lm in self.landmarks:
            if lm.id == joint_id:
                return lm
        return None

    def has_joints(self, *joint_ids: str) -> bool:
        present = {lm.id for lm in self.landmarks}
        return all(j in present for j in joint_ids)

    def positions(self) -> Dict[str, Point]:
        return {lm.id: lm.position for lm in self.landmarks}


@dataclass(frozen=True)
class Signature:
    """Compact (wrist, palm, direction) descriptor used for track assignment."""
    wrist: Point
    palm: Point
    dir: Point


def _read_joint(observation: RawObservation, joint_id: str) -> Optional[Tuple[Point, float]]:
    # Malformed entries are treated as absent
    entry = observation.get(joint_id)
    if entry is None:
        return None
    try:
        position, confidence = entry
        x, y = float(position[0]), float(position[1])
        conf = float(confidence)
    except (TypeError, ValueError, IndexError):
        return None
    if not (np.isfinite(x) and np.isfinite(y) and np.isfinite(conf)):
        return None
    return (x, y), conf


def build_raw_landmarks(
    observation: RawObservation,
    min_confidence: float = LANDMARK_MIN_CONFIDENCE,
) -> Tuple[Landmark, ...]:
    """Known joints at or above `min_confidence`, in canonical order."""
    out = []
    for joint_id in JOINT_ORDER:
        sample = _read_joint(observation, joint_id)
        if sample is None:
            continue
        position, conf = sample
        if conf < min_confidence:
            continue
        out.append(Landmark(joint_id, position, conf))
    return tuple(out)


def compute_signature(
    observation: RawObservation,
    min_confidence: float = SIGNATURE_MIN_CONFIDENCE,
) -> Optional[Signature]:
    """
    Build the assignment signature for one raw observation.

    Returns None when the wrist is missing or below `min_confidence`;
    such a detection is dropped before assignment.
    """
    wrist = _read_joint(observation, WRIST)
    if wrist is None or wrist[1] < min_confidence:
        return None
    wrist_pt = wrist[0]

    palm_pts = []
    for joint_id in PALM_JOINTS:
        sample = _read_joint(observation, joint_id)
        if sample is not None and sample[1] >= min_confidence:
            palm_pts.append(sample[0])

    if palm_pts:
        mean = np.mean(np.asarray(palm_pts, dtype=float), axis=0)
        palm = (float(mean[0]), float(mean[1]))
    else:
        palm = wrist_pt

    direction = (0.0, 0.0)
    index_mcp = _read_joint(observation, INDEX_MCP)
    if index_mcp is not None and index_mcp[1] >= min_confidence:
        direction = (index_mcp[0][0] - wrist_pt[0], index_mcp[0][1] - wrist_pt[1])

    return Signature(wrist=wrist_pt, palm=palm, dir=direction)


def average_confidence(landmarks: Iterable[Landmark]) -> float:
    values = [lm.confidence for lm in landmarks]
    if not values:
        return 0.0
    return float(sum(values) / len(values))


def compute_distances(
    landmarks: Iterable[Landmark], target_size: Tuple[float, float]
) -> Tuple[float, float]:
    """
    Pinch (thumb tip to index tip) and span (index tip to pinky tip) in
    target-space pixels. Either is 0 when one of its endpoints is absent.
    """
    pts = {lm.id: lm.position for lm in landmarks}

    def screen_dist(a_id: str, b_id: str) -> float:
        if a_id not in pts or b_id not in pts:
            return 0.0
        a = to_target_space(pts[a_id], target_size)
        b = to_target_space(pts[b_id], target_size)
        return float(euclidean(a, b))

    return screen_dist(THUMB_TIP, INDEX_TIP), screen_dist(INDEX_TIP, PINKY_TIP)


def build_pose(
    track_id: int,
    landmarks: Sequence[Landmark],
    target_size: Tuple[float, float],
    reported: Optional[Sequence[Landmark]] = None,
) -> HandPose:
    """
    Args:
        reported: joints the detector actually delivered; `avg_confidence` is
                  taken over these only (defaults to `landmarks`)
    """
    pinch, span = compute_distances(landmarks, target_size)
    return HandPose(
        track_id=track_id,
        landmarks=tuple(landmarks),
        avg_confidence=average_confidence(landmarks if reported is None else reported),
        pinch_distance=pinch,
        span_distance=span,
    )


__all__ = [
    'JOINT_ORDER',
    'JOINT_INDEX',
    'PALM_JOINTS',
    'Landmark',
    'HandPose',
    'Signature',
    'RawObservation',
    'build_raw_landmarks',
    'compute_signature',
    'average_confidence',
    'compute_distances',
    'build_pose',
]
