"""
PalmSynth frame pipeline

Host-facing entry point: one `process_frame` call per detector frame takes raw
hand observations through tracking and gesture mapping and pushes the
resulting control values to the consumer.
"""

import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from palmsynth.app.signal_dispatcher import SignalDispatcher
from palmsynth.detectors.gesture_mapper import ControlState, GestureMapper
from palmsynth.detectors.hand_landmarks import HandPose, RawObservation
from palmsynth.detectors.hand_tracker import HandTracker
from palmsynth.utils.audio_parameters import AudioParameters

DEFAULT_SIGNAL_MAP = [
    {"channel": "volume", "name": "set_volume"},
    {"channel": "tone", "name": "set_bass_gain_db"},
]


@dataclass
class FrameResult:
    hands: List[HandPose] = field(default_factory=list)
    updates: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def tracking_ok(self) -> bool:
        return bool(self.hands)


class PalmPipeline:
    """Tracker + gesture mapper + dispatcher, driven one frame at a time."""

    def __init__(
        self,
        tracker: Optional[HandTracker] = None,
        mapper: Optional[GestureMapper] = None,
        consumer=None,
        signal_map: Optional[List[dict]] = None,
    ):
        self.tracker = tracker or HandTracker()
        self.mapper = mapper or GestureMapper()
        self.control_state: ControlState = self.mapper.initial_state()

        self.consumer = consumer if consumer is not None else AudioParameters()
        self.dispatcher = SignalDispatcher(self.consumer)
        self.dispatcher.load_map(signal_map if signal_map is not None else DEFAULT_SIGNAL_MAP)

        # Serializes mapper state; the tracker guards its own
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, cfg, consumer=None) -> 'PalmPipeline':
        return cls(
            tracker=HandTracker.from_config(cfg),
            mapper=GestureMapper.from_config(cfg),
            consumer=consumer,
            signal_map=cfg.get('signal_map', default=DEFAULT_SIGNAL_MAP),
        )

    def process_frame(
        self,
        observations: Sequence[RawObservation],
        target_size: Tuple[float, float],
        now: Optional[float] = None,
    ) -> FrameResult:
        with self._lock:
            hands = self.tracker.process(observations, target_size, now)
            updates = self.mapper.update(hands, target_size, self.control_state)
            self.dispatcher.dispatch(updates)
            return FrameResult(hands=hands, updates=updates)

    def channel_value(self, name: str) -> Optional[float]:
        with self._lock:
            ch = self.control_state.get(name)
            return None if ch is None else ch.value

    def reset(self) -> None:
        with self._lock:
            self.tracker.reset()
            self.control_state = self.mapper.initial_state()
