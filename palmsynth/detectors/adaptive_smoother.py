from typing import Dict, Sequence, Tuple

from palmsynth.detectors.hand_landmarks import Landmark
from palmsynth.utils.math_utils import EWMA, clamp


class AdaptiveSmoother:
    """
    Confidence-weighted exponential smoothing per joint.

    The gain grows with confidence, so weak samples move the smoothed
    position less. A joint with no history passes through unchanged.
    """

    def __init__(
        self,
        base_gain: float = 0.08,
        confidence_gain: float = 0.30,
        min_gain: float = 0.08,
        max_gain: float = 0.28,
    ):
        self.base_gain = base_gain
        self.confidence_gain = confidence_gain
        self.min_gain = min_gain
        self.max_gain = max_gain

    def gain(self, confidence: float) -> float:
        return clamp(self.base_gain + self.confidence_gain * confidence, self.min_gain, self.max_gain)

    def smooth(
        self, landmarks: Sequence[Landmark], memory: Dict[str, EWMA]
    ) -> Tuple[Landmark, ...]:
        """
        Args:
            landmarks: raw landmarks of one track for this frame
            memory: that track's joint id -> EWMA filter, created on first sight
        """
        out = []
        for lm in landmarks:
            gain = self.gain(lm.confidence)
            ewma = memory.get(lm.id)
            if ewma is None:
                ewma = memory[lm.id] = EWMA(alpha=gain)
            p = ewma.update(lm.position, alpha=gain)
            position = (float(p[0]), float(p[1]))
            out.append(Landmark(lm.id, position, lm.confidence))
        return tuple(out)
