"""
Pinch gestures to continuous control signals.

Each channel is driven by one hand role (left/right), which is bound to a
fixed track slot. A pinch latch with separate on/off thresholds decides when
the channel follows the hand; while released, the last value is held and the
consumer is not updated.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from palmsynth.detectors.hand_landmarks import INDEX_TIP, THUMB_TIP, HandPose
from palmsynth.utils.math_utils import EWMA, clamp

DEFAULT_PINCH_ON = 0.070
DEFAULT_PINCH_OFF = 0.095
DEFAULT_PINCH_MIN = 0.015
DEFAULT_SHAPE_EXPONENT = 0.65


class PinchLatch:
    """
    Hysteresis latch on a normalized pinch distance.

    Engages when the value drops below `pinch_on`, releases only once it
    rises above `pinch_off`. Values in between keep the current state.
    """

    def __init__(self, pinch_on: float = DEFAULT_PINCH_ON, pinch_off: float = DEFAULT_PINCH_OFF):
        if pinch_on > pinch_off:
            raise ValueError("pinch_on must not exceed pinch_off")
        self.pinch_on = float(pinch_on)
        self.pinch_off = float(pinch_off)

    def update(self, latched: bool, value: float) -> bool:
        if not latched:
            return value < self.pinch_on
        return not (value > self.pinch_off)


def shape_curve(x: float, exponent: float = DEFAULT_SHAPE_EXPONENT) -> float:
    """Perceptual response curve: clamp(x, 0, 1) ** exponent."""
    return clamp(x, 0.0, 1.0) ** exponent


@dataclass
class ChannelConfig:
    name: str
    role: str
    track_id: int
    out_min: float = 0.0
    out_max: float = 1.0
    alpha: float = 0.2
    initial: float = 0.0
    pinch_min: float = DEFAULT_PINCH_MIN
    pinch_max: float = DEFAULT_PINCH_OFF
    shape: bool = True
    shape_exponent: float = DEFAULT_SHAPE_EXPONENT

    def map_pinch(self, pinch_norm: float) -> float:
        """Inverted linear map: a tighter pinch gives a larger output."""
        span = self.pinch_max - self.pinch_min
        if span <= 0:
            t = 0.0
        else:
            t = 1.0 - clamp((pinch_norm - self.pinch_min) / span, 0.0, 1.0)
        if self.shape:
            t = shape_curve(t, self.shape_exponent)
        return self.out_min + t * (self.out_max - self.out_min)


@dataclass
class ChannelState:
    latched: bool = False
    value: float = 0.0
    # output filter, started from `value` on the first latched frame
    ewma: Optional[EWMA] = field(default=None, repr=False, compare=False)


@dataclass
class ControlState:
    """Latch and output state per channel, carried from frame to frame."""
    channels: Dict[str, ChannelState] = field(default_factory=dict)

    @classmethod
    def for_channels(cls, configs: Iterable[ChannelConfig]) -> 'ControlState':
        return cls(channels={c.name: ChannelState(latched=False, value=c.initial) for c in configs})

    def get(self, name: str) -> Optional[ChannelState]:
        return self.channels.get(name)


def default_channels(pinch_off: float = DEFAULT_PINCH_OFF) -> List[ChannelConfig]:
    return [
        ChannelConfig(name='volume', role='left', track_id=0, out_min=0.0, out_max=1.0,
                      alpha=0.24, initial=0.5, pinch_max=pinch_off),
        ChannelConfig(name='tone', role='right', track_id=1, out_min=-24.0, out_max=24.0,
                      alpha=0.18, initial=0.0, pinch_max=pinch_off),
    ]


def normalized_pinch(pose: HandPose, target_width: float) -> Optional[float]:
    """Pinch distance over target width, or None when it cannot be measured."""
    if target_width <= 0 or not pose.has_joints(THUMB_TIP, INDEX_TIP):
        return None
    return pose.pinch_distance / target_width


class GestureMapper:
    """
    Turns tracked poses into `(channel, value)` updates.

    The mapper itself is stateless across frames; everything that persists
    lives in the `ControlState` passed to `update`.
    """

    def __init__(
        self,
        channels: Optional[Sequence[ChannelConfig]] = None,
        pinch_on: float = DEFAULT_PINCH_ON,
        pinch_off: float = DEFAULT_PINCH_OFF,
    ):
        self.latch = PinchLatch(pinch_on, pinch_off)
        self.channels = list(channels) if channels is not None else default_channels(pinch_off)

    @classmethod
    def from_config(cls, cfg) -> 'GestureMapper':
        pinch_on = cfg.get('gestures', 'pinch', 'pinch_on', default=DEFAULT_PINCH_ON)
        pinch_off = cfg.get('gestures', 'pinch', 'pinch_off', default=DEFAULT_PINCH_OFF)
        pinch_min = cfg.get('gestures', 'pinch', 'pinch_min', default=DEFAULT_PINCH_MIN)

        channel_cfg = cfg.get('channels', default=None) or {}
        defaults = {c.name: c for c in default_channels(pinch_off)}
        channels = []
        for name in channel_cfg or defaults:
            base = defaults.get(name, ChannelConfig(name=name, role=name, track_id=0))

            def value(key, fallback):
                return cfg.get('channels', name, key, default=fallback)

            channels.append(ChannelConfig(
                name=name,
                role=value('role', base.role),
                track_id=int(value('track_id', base.track_id)),
                out_min=float(value('out_min', base.out_min)),
                out_max=float(value('out_max', base.out_max)),
                alpha=float(value('alpha', base.alpha)),
                initial=float(value('initial', base.initial)),
                pinch_min=float(value('pinch_min', pinch_min)),
                pinch_max=float(value('pinch_max', pinch_off)),
                shape=bool(value('shape', base.shape)),
                shape_exponent=float(value('shape_exponent', base.shape_exponent)),
            ))
        return cls(channels=channels, pinch_on=pinch_on, pinch_off=pinch_off)

    def initial_state(self) -> ControlState:
        return ControlState.for_channels(self.channels)

    def update(
        self,
        hands: Sequence[HandPose],
        target_size: Tuple[float, float],
        state: ControlState,
    ) -> List[Tuple[str, float]]:
        """
        Advance every channel by one frame.

        Returns:
            one (channel, value) per channel that is latched this frame, in
            channel order; empty when nothing is latched or no hand is present
        """
        by_track = {pose.track_id: pose for pose in hands}
        updates = []
        for channel in self.channels:
            ch_state = state.channels.get(channel.name)
            if ch_state is None:
                ch_state = state.channels[channel.name] = ChannelState(value=channel.initial)

            pose = by_track.get(channel.track_id)
            if pose is None:
                continue
            pinch = normalized_pinch(pose, target_size[0])
            if pinch is None:
                continue

            ch_state.latched = self.latch.update(ch_state.latched, pinch)
            if not ch_state.latched:
                continue

            if ch_state.ewma is None:
                ch_state.ewma = EWMA(alpha=channel.alpha, init=ch_state.value)
            ch_state.value = float(ch_state.ewma.update(channel.map_pinch(pinch)))
            updates.append((channel.name, ch_state.value))
        return updates


__all__ = [
    'PinchLatch',
    'shape_curve',
    'ChannelConfig',
    'ChannelState',
    'ControlState',
    'GestureMapper',
    'default_channels',
    'normalized_pinch',
]
