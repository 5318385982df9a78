"""
Two-slot track registry.

Track ids 0 and 1 are stable slot labels, not hand identities: once a slot
expires, whichever hand is assigned to it next starts from empty caches.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from palmsynth.detectors.hand_landmarks import Signature
from palmsynth.utils.math_utils import EWMA, Point

TRACK_COUNT = 2
DEFAULT_TRACK_TIMEOUT = 0.8  # seconds


@dataclass
class TrackState:
    active: bool = False
    last_wrist: Point = (0.0, 0.0)
    last_palm: Point = (0.0, 0.0)
    last_dir: Point = (0.0, 0.0)
    last_seen_time: float = 0.0
    # joint id -> that joint's smoothing filter
    smoothed: Dict[str, EWMA] = field(default_factory=dict)
    # joint id -> last position that met the stabilizer's confidence bar
    last_good: Dict[str, Point] = field(default_factory=dict)

    def clear_caches(self) -> None:
        self.smoothed.clear()
        self.last_good.clear()


class TrackStore:
    """Fixed-capacity (2) per-track state, mutated only during frame processing."""

    def __init__(self):
        self._tracks: List[TrackState] = [TrackState(), TrackState()]

    def get(self, track_id: int) -> TrackState:
        return self._tracks[track_id]

    def __iter__(self):
        return iter(self._tracks)

    def mark_active(self, track_id: int, signature: Signature, now: float) -> TrackState:
        track = self._tracks[track_id]
        track.active = True
        track.last_wrist = signature.wrist
        track.last_palm = signature.palm
        track.last_dir = signature.dir
        track.last_seen_time = now
        return track

    def expire_stale(self, now: float, timeout: float = DEFAULT_TRACK_TIMEOUT) -> List[int]:
        """
        Deactivate every active track not seen for more than `timeout`.
        Both caches of an expired track are cleared entirely.

        Returns:
            ids of the tracks that expired on this call
        """
        expired = []
        for track_id, track in enumerate(self._tracks):
            if track.active and now - track.last_seen_time > timeout:
                track.active = False
                track.clear_caches()
                expired.append(track_id)
        return expired

    def active_count(self) -> int:
        return sum(1 for t in self._tracks if t.active)

    def reset(self) -> None:
        self._tracks = [TrackState(), TrackState()]
