"""
Detection-to-track assignment for at most two hands.

With two slots there are only two possible pairings, so the optimal
assignment is found by trying both rather than running a general solver.
"""

from dataclasses import dataclass
from typing import Any, List, Tuple

from palmsynth.detectors.hand_landmarks import Signature
from palmsynth.detectors.track_state import TrackStore
from palmsynth.utils.math_utils import euclidean

INACTIVE_TRACK_COST = 0.05
DEFAULT_MAX_MATCH_DISTANCE = 0.30

WRIST_WEIGHT = 0.55
PALM_WEIGHT = 0.30
DIR_WEIGHT = 0.15


@dataclass
class Detection:
    """One usable raw observation plus its signature."""
    observation: Any
    signature: Signature


def match_cost(store: TrackStore, track_id: int, signature: Signature) -> float:
    track = store.get(track_id)
    if not track.active:
        return INACTIVE_TRACK_COST

    w = float(euclidean(track.last_wrist, signature.wrist))
    p = float(euclidean(track.last_palm, signature.palm))
    d = float(euclidean(track.last_dir, signature.dir))
    return WRIST_WEIGHT * w + PALM_WEIGHT * p + DIR_WEIGHT * d


def best_track(
    store: TrackStore,
    signature: Signature,
    max_match_distance: float = DEFAULT_MAX_MATCH_DISTANCE,
) -> int:
    """
    Single-detection slot choice.

    Both active: nearest (ties go to 0). One active: keep it only within
    `max_match_distance`, otherwise use the free slot. Neither: slot 0.
    """
    c0 = match_cost(store, 0, signature)
    c1 = match_cost(store, 1, signature)
    active0 = store.get(0).active
    active1 = store.get(1).active

    if active0 and active1:
        return 0 if c0 <= c1 else 1
    if active0:
        return 0 if c0 <= max_match_distance else 1
    if active1:
        return 1 if c1 <= max_match_distance else 0
    return 0


def assign(
    store: TrackStore,
    detections: List[Detection],
    max_match_distance: float = DEFAULT_MAX_MATCH_DISTANCE,
) -> List[Tuple[int, Detection]]:
    """
    Pair up to two detections with track slots.

    Returns:
        list of (track_id, detection) in detection order
    """
    if not detections:
        return []

    if len(detections) == 1:
        det = detections[0]
        return [(best_track(store, det.signature, max_match_distance), det)]

    d0, d1 = detections[0], detections[1]
    cost_a = match_cost(store, 0, d0.signature) + match_cost(store, 1, d1.signature)
    cost_b = match_cost(store, 1, d0.signature) + match_cost(store, 0, d1.signature)

    if cost_a <= cost_b:
        pairs = [(0, d0), (1, d1)]
    else:
        pairs = [(1, d0), (0, d1)]

    # A pairing this far off is not a continuation; re-route it
    out = []
    for track_id, det in pairs:
        if match_cost(store, track_id, det.signature) > max_match_distance * 3:
            track_id = best_track(store, det.signature, max_match_distance)
        out.append((track_id, det))
    return out


__all__ = [
    'Detection',
    'match_cost',
    'best_track',
    'assign',
    'INACTIVE_TRACK_COST',
    'DEFAULT_MAX_MATCH_DISTANCE',
]
