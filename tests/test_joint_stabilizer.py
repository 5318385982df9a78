import math
import unittest
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from palmsynth.detectors.hand_landmarks import JOINT_INDEX, build_raw_landmarks
from palmsynth.detectors.joint_stabilizer import JointStabilizer
from hand_fixtures import make_hand


def hand_landmarks(overrides=None):
    return build_raw_landmarks(make_hand(wrist=(0.5, 0.3), overrides=overrides))


class TestJointStabilizer(unittest.TestCase):
    def setUp(self):
        self.stabilizer = JointStabilizer()

    def test_requires_mcp_and_tip(self):
        lms = hand_landmarks({'middle_tip': None, 'middle_pip': ((0.5, 0.44), 0.05)})
        last_good = {'middle_pip': (0.1, 0.1)}
        out = self.stabilizer.stabilize(lms, last_good)
        self.assertEqual(out, tuple(lms))
        for a, b in zip(out, lms):
            self.assertIs(a, b)
        self.assertEqual(last_good, {'middle_pip': (0.1, 0.1)})

    def test_other_joints_untouched(self):
        lms = hand_landmarks({'middle_pip': ((0.9, 0.9), 0.05), 'middle_dip': None})
        out = self.stabilizer.stabilize(lms, {'middle_pip': (0.5, 0.44)})
        repaired = {'middle_pip', 'middle_dip'}
        before = {lm.id: lm for lm in lms}
        for lm in out:
            if lm.id in repaired:
                continue
            self.assertIs(lm, before[lm.id])
            self.assertEqual(lm.position, before[lm.id].position)
            self.assertEqual(lm.confidence, before[lm.id].confidence)

    def test_missing_joints_are_interpolated_in_canonical_order(self):
        lms = hand_landmarks({'middle_pip': None, 'middle_dip': None})
        out = self.stabilizer.stabilize(lms, {})
        ids = [lm.id for lm in out]
        self.assertEqual(ids, sorted(ids, key=JOINT_INDEX.get))
        self.assertEqual(len(out), 21)

        by_id = {lm.id: lm for lm in out}
        # middle MCP (0.5, 0.4), tip (0.5, 0.5)
        self.assertAlmostEqual(by_id['middle_pip'].position[0], 0.5)
        self.assertAlmostEqual(by_id['middle_pip'].position[1], 0.435)
        self.assertAlmostEqual(by_id['middle_dip'].position[1], 0.47)
        self.assertEqual(by_id['middle_pip'].confidence, 0.0)
        self.assertEqual(by_id['middle_dip'].confidence, 0.0)

    def test_weak_joint_keeps_its_confidence(self):
        lms = hand_landmarks({'middle_dip': ((0.7, 0.7), 0.15)})
        out = self.stabilizer.stabilize(lms, {})
        dip = [lm for lm in out if lm.id == 'middle_dip'][0]
        self.assertEqual(dip.confidence, 0.15)
        self.assertAlmostEqual(dip.position[1], 0.47)

    def test_weak_joint_stays_near_last_good(self):
        last_good = {'middle_pip': (0.6, 0.44)}
        lms = hand_landmarks({'middle_pip': ((0.9, 0.9), 0.15)})
        out = self.stabilizer.stabilize(lms, last_good)
        pip = [lm for lm in out if lm.id == 'middle_pip'][0]
        moved = math.hypot(pip.position[0] - 0.6, pip.position[1] - 0.44)
        self.assertLessEqual(moved, self.stabilizer.clamp_max_step + 1e-12)
        # Weak samples never refresh the cache
        self.assertEqual(last_good['middle_pip'], (0.6, 0.44))

    def test_clamp_limits_jump_to_max_step(self):
        last = (0.5, 0.44)
        jump = (last[0] + 0.3, last[1] + 0.4)
        lms = hand_landmarks({'middle_pip': (jump, 0.9)})
        last_good = {'middle_pip': last}
        out = self.stabilizer.stabilize(lms, last_good)

        pip = [lm for lm in out if lm.id == 'middle_pip'][0]
        dx, dy = pip.position[0] - last[0], pip.position[1] - last[1]
        self.assertAlmostEqual(math.hypot(dx, dy), 0.060, places=9)
        # Direction preserved
        self.assertAlmostEqual(dx / 0.060, 0.6, places=9)
        self.assertAlmostEqual(dy / 0.060, 0.8, places=9)
        self.assertEqual(pip.confidence, 0.9)
        # Confident result becomes the new last good position
        self.assertEqual(last_good['middle_pip'], pip.position)

    def test_small_moves_pass_through(self):
        lms = hand_landmarks({'middle_pip': ((0.51, 0.44), 0.9)})
        out = self.stabilizer.stabilize(lms, {'middle_pip': (0.5, 0.44)})
        pip = [lm for lm in out if lm.id == 'middle_pip'][0]
        self.assertEqual(pip.position, (0.51, 0.44))

    def test_cache_updates_only_confident_joints(self):
        lms = hand_landmarks({'middle_dip': ((0.5, 0.47), 0.2)})
        last_good = {}
        self.stabilizer.stabilize(lms, last_good)
        self.assertIn('middle_pip', last_good)
        self.assertIn('middle_tip', last_good)
        self.assertNotIn('middle_dip', last_good)

    def test_unknown_finger_rejected(self):
        with self.assertRaises(ValueError):
            JointStabilizer(finger='toe')


if __name__ == '__main__':
    unittest.main()
