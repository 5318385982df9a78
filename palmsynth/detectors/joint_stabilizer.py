"""
Hold / interpolate / clamp repair for a finger's interior joints.

The middle finger PIP and DIP are the joints the detector loses most often,
so by default only those two are repaired. MCP and tip of the same finger
anchor the repair; without both the pose is returned untouched.
"""

from typing import Dict, Sequence, Tuple

from palmsynth.detectors.hand_landmarks import JOINT_INDEX, Landmark
from palmsynth.utils.math_utils import Point, euclidean, lerp

DEFAULT_HOLD_CONFIDENCE = 0.22
DEFAULT_CLAMP_MAX_STEP = 0.060  # normalized units per frame
PIP_FRACTION = 0.35
DIP_FRACTION = 0.70


class JointStabilizer:

    def __init__(
        self,
        finger: str = 'middle',
        hold_confidence: float = DEFAULT_HOLD_CONFIDENCE,
        clamp_max_step: float = DEFAULT_CLAMP_MAX_STEP,
        pip_fraction: float = PIP_FRACTION,
        dip_fraction: float = DIP_FRACTION,
    ):
        self.finger = finger
        self.hold_confidence = float(hold_confidence)
        self.clamp_max_step = float(clamp_max_step)
        self.pip_fraction = float(pip_fraction)
        self.dip_fraction = float(dip_fraction)

        self.mcp_id = f'{finger}_mcp'
        self.pip_id = f'{finger}_pip'
        self.dip_id = f'{finger}_dip'
        self.tip_id = f'{finger}_tip'
        if self.mcp_id not in JOINT_INDEX or self.tip_id not in JOINT_INDEX:
            raise ValueError(f"unknown finger: {finger}")

    def stabilize(
        self, landmarks: Sequence[Landmark], last_good: Dict[str, Point]
    ) -> Tuple[Landmark, ...]:
        """
        Args:
            landmarks: smoothed landmarks of one track, canonical order
            last_good: that track's joint id -> last confident position (updated in place)

        Returns:
            landmarks in the same order; only PIP/DIP positions can differ
        """
        joints = {lm.id: lm for lm in landmarks}
        mcp = joints.get(self.mcp_id)
        tip = joints.get(self.tip_id)
        if mcp is None or tip is None:
            return tuple(landmarks)

        inner = ((self.pip_id, self.pip_fraction), (self.dip_id, self.dip_fraction))

        # 1) hold last good position while confidence is low
        for joint_id, _ in inner:
            lm = joints.get(joint_id)
            if lm is not None and lm.confidence < self.hold_confidence and joint_id in last_good:
                joints[joint_id] = lm.with_position(last_good[joint_id])

        # 2) interpolate along MCP->tip when still missing or weak
        for joint_id, fraction in inner:
            lm = joints.get(joint_id)
            if lm is None or lm.confidence < self.hold_confidence:
                conf = lm.confidence if lm is not None else 0.0
                joints[joint_id] = Landmark(joint_id, lerp(mcp.position, tip.position, fraction), conf)

        # 3) clamp jumps away from the last good position
        for joint_id, _ in inner:
            lm = joints[joint_id]
            last = last_good.get(joint_id)
            if last is None:
                continue
            dx = lm.position[0] - last[0]
            dy = lm.position[1] - last[1]
            dist = float(euclidean(lm.position, last))
            if dist > self.clamp_max_step:
                s = self.clamp_max_step / dist
                joints[joint_id] = lm.with_position((last[0] + dx * s, last[1] + dy * s))

        # 4) only confident samples feed future holds and clamps
        for joint_id in (self.pip_id, self.dip_id, self.tip_id):
            lm = joints.get(joint_id)
            if lm is not None and lm.confidence >= self.hold_confidence:
                last_good[joint_id] = lm.position

        out = [joints[lm.id] for lm in landmarks]
        present = {lm.id for lm in landmarks}
        for joint_id, _ in inner:
            if joint_id not in present:
                self._insert_canonical(out, joints[joint_id])
        return tuple(out)

    @staticmethod
    def _insert_canonical(out, lm: Landmark) -> None:
        # Synthesized joint goes before the first joint that follows it canonically
        rank = JOINT_INDEX[lm.id]
        for i, existing in enumerate(out):
            if JOINT_INDEX.get(existing.id, len(JOINT_INDEX)) > rank:
                out.insert(i, lm)
                return
        out.append(lm)
