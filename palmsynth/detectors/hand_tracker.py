"""
Per-frame hand tracking: identity assignment, smoothing and joint repair.

One call to `HandTracker.process` per frame. Each call holds the tracker's
lock for the whole frame, so frames are applied one at a time and a reader of
`hands` never sees a half-updated set of poses.
"""

import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from palmsynth.detectors.adaptive_smoother import AdaptiveSmoother
from palmsynth.detectors.hand_landmarks import (
    LANDMARK_MIN_CONFIDENCE,
    SIGNATURE_MIN_CONFIDENCE,
    HandPose,
    RawObservation,
    build_pose,
    build_raw_landmarks,
    compute_signature,
)
from palmsynth.detectors.joint_stabilizer import JointStabilizer
from palmsynth.detectors.track_assignment import DEFAULT_MAX_MATCH_DISTANCE, Detection, assign
from palmsynth.detectors.track_state import DEFAULT_TRACK_TIMEOUT, TrackStore


@dataclass
class TrackingStats:
    """Running counters for diagnostics overlays."""
    frames: int = 0
    observations: int = 0
    hands_built: int = 0
    expired: int = 0


class HandTracker:

    def __init__(
        self,
        track_timeout: float = DEFAULT_TRACK_TIMEOUT,
        max_match_distance: float = DEFAULT_MAX_MATCH_DISTANCE,
        max_hands: int = 2,
        signature_min_confidence: float = SIGNATURE_MIN_CONFIDENCE,
        landmark_min_confidence: float = LANDMARK_MIN_CONFIDENCE,
        smoother: Optional[AdaptiveSmoother] = None,
        stabilizer: Optional[JointStabilizer] = None,
        verbose: bool = False,
    ):
        self.track_timeout = float(track_timeout)
        self.max_match_distance = float(max_match_distance)
        self.max_hands = int(max_hands)
        self.signature_min_confidence = float(signature_min_confidence)
        self.landmark_min_confidence = float(landmark_min_confidence)
        self.smoother = smoother or AdaptiveSmoother()
        self.stabilizer = stabilizer or JointStabilizer()
        self.verbose = verbose

        self.store = TrackStore()
        self.stats = TrackingStats()
        self._lock = threading.Lock()
        self._hands: Tuple[HandPose, ...] = ()

    @classmethod
    def from_config(cls, cfg) -> 'HandTracker':
        smoother = AdaptiveSmoother(
            base_gain=cfg.get('smoothing', 'base_gain', default=0.08),
            confidence_gain=cfg.get('smoothing', 'confidence_gain', default=0.30),
            min_gain=cfg.get('smoothing', 'min_gain', default=0.08),
            max_gain=cfg.get('smoothing', 'max_gain', default=0.28),
        )
        stabilizer = JointStabilizer(
            finger=cfg.get('stabilizer', 'finger', default='middle'),
            hold_confidence=cfg.get('stabilizer', 'hold_confidence', default=0.22),
            clamp_max_step=cfg.get('stabilizer', 'clamp_max_step', default=0.060),
            pip_fraction=cfg.get('stabilizer', 'pip_fraction', default=0.35),
            dip_fraction=cfg.get('stabilizer', 'dip_fraction', default=0.70),
        )
        return cls(
            track_timeout=cfg.get('tracking', 'track_timeout', default=DEFAULT_TRACK_TIMEOUT),
            max_match_distance=cfg.get('tracking', 'max_match_distance', default=DEFAULT_MAX_MATCH_DISTANCE),
            max_hands=cfg.get('tracking', 'max_hands', default=2),
            signature_min_confidence=cfg.get('tracking', 'signature_min_confidence', default=SIGNATURE_MIN_CONFIDENCE),
            landmark_min_confidence=cfg.get('tracking', 'landmark_min_confidence', default=LANDMARK_MIN_CONFIDENCE),
            smoother=smoother,
            stabilizer=stabilizer,
            verbose=bool(cfg.get('performance', 'show_debug_info', default=False)),
        )

    @property
    def hands(self) -> Tuple[HandPose, ...]:
        """Poses from the last completed frame, sorted by track id."""
        with self._lock:
            return self._hands

    @property
    def tracking_ok(self) -> bool:
        with self._lock:
            return bool(self._hands)

    def process(
        self,
        observations: Sequence[RawObservation],
        target_size: Tuple[float, float],
        now: Optional[float] = None,
    ) -> List[HandPose]:
        """
        Run one frame.

        Args:
            observations: raw hands from the detector, any count; only the first
                          `max_hands` are considered
            target_size: (width, height) of the render/control space
            now: frame timestamp in seconds (defaults to time.time())

        Returns:
            poses built this frame, sorted by track id (possibly empty)
        """
        if now is None:
            now = time.time()
        observations = list(observations)

        with self._lock:
            self.stats.frames += 1
            self.stats.observations += len(observations)

            expired = self.store.expire_stale(now, self.track_timeout)
            if expired:
                self.stats.expired += len(expired)
                if self.verbose:
                    print(f"  > Track expired: {expired}")

            detections = []
            for obs in observations[:self.max_hands]:
                sig = compute_signature(obs, self.signature_min_confidence)
                if sig is not None:
                    detections.append(Detection(observation=obs, signature=sig))

            built = []
            for track_id, det in assign(self.store, detections, self.max_match_distance):
                track = self.store.mark_active(track_id, det.signature, now)

                raw = build_raw_landmarks(det.observation, self.landmark_min_confidence)
                smoothed = self.smoother.smooth(raw, track.smoothed)
                stabilized = self.stabilizer.stabilize(smoothed, track.last_good)
                built.append(build_pose(track_id, stabilized, target_size, reported=smoothed))

            built.sort(key=lambda pose: pose.track_id)
            self.stats.hands_built += len(built)
            self._hands = tuple(built)
            return built

    def reset(self) -> None:
        with self._lock:
            self.store.reset()
            self._hands = ()
