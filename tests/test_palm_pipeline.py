import unittest
from unittest.mock import create_autospec
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from palmsynth.app.palm_pipeline import PalmPipeline
from palmsynth.config.config_manager import config
from palmsynth.utils.audio_parameters import AudioParameters
from hand_fixtures import make_hand

TARGET = (640, 480)


def pinching_hand(wrist):
    """Thumb tip 0.01 (normalized) to the right of the index tip."""
    ix, iy = wrist[0] - 0.04, wrist[1] + 0.20
    return make_hand(wrist=wrist, overrides={'thumb_tip': ((ix + 0.01, iy), 0.9)})


class TestPalmPipeline(unittest.TestCase):
    def setUp(self):
        self.audio = AudioParameters()
        self.pipeline = PalmPipeline(consumer=self.audio)

    def test_pinch_drives_volume(self):
        result = self.pipeline.process_frame([pinching_hand((0.3, 0.3))], TARGET, now=0.0)

        self.assertTrue(result.tracking_ok)
        self.assertEqual(len(result.hands), 1)
        self.assertEqual(len(result.updates), 1)
        channel, value = result.updates[0]
        self.assertEqual(channel, 'volume')
        # Tightest pinch maps to full scale; first step from 0.5 with alpha 0.24
        self.assertAlmostEqual(value, 0.5 + 0.24 * 0.5)
        self.assertAlmostEqual(self.audio.volume, value)
        self.assertAlmostEqual(self.pipeline.channel_value('volume'), value)

    def test_open_hand_leaves_consumer_alone(self):
        result = self.pipeline.process_frame([make_hand(wrist=(0.3, 0.3))], TARGET, now=0.0)
        self.assertEqual(result.updates, [])
        self.assertEqual(self.audio.updates, 0)
        self.assertEqual(self.audio.volume, 0.5)

    def test_no_detections(self):
        result = self.pipeline.process_frame([], TARGET, now=0.0)
        self.assertFalse(result.tracking_ok)
        self.assertEqual(result.hands, [])
        self.assertEqual(result.updates, [])

    def test_two_hands_drive_both_channels(self):
        mock_consumer = create_autospec(AudioParameters, instance=True)
        pipeline = PalmPipeline(consumer=mock_consumer)

        result = pipeline.process_frame(
            [pinching_hand((0.25, 0.3)), pinching_hand((0.75, 0.3))], TARGET, now=0.0
        )

        self.assertEqual([c for c, _ in result.updates], ['volume', 'tone'])
        mock_consumer.set_volume.assert_called_once()
        mock_consumer.set_bass_gain_db.assert_called_once()
        self.assertAlmostEqual(mock_consumer.set_bass_gain_db.call_args[0][0], 0.18 * 24.0)

    def test_value_held_after_release(self):
        self.pipeline.process_frame([pinching_hand((0.3, 0.3))], TARGET, now=0.0)
        held = self.audio.volume

        result = self.pipeline.process_frame([make_hand(wrist=(0.3, 0.3))], TARGET, now=0.033)
        # Smoothing eases the thumb away; keep opening until the latch lets go
        t = 0.033
        while self.pipeline.control_state.get('volume').latched and t < 3.0:
            t += 0.033
            result = self.pipeline.process_frame([make_hand(wrist=(0.3, 0.3))], TARGET, now=t)
        self.assertFalse(self.pipeline.control_state.get('volume').latched)
        self.assertEqual(result.updates, [])

        value = self.audio.volume
        self.pipeline.process_frame([make_hand(wrist=(0.3, 0.3))], TARGET, now=t + 0.033)
        self.assertEqual(self.audio.volume, value)
        self.assertGreater(held, 0.5)

    def test_from_config(self):
        pipeline = PalmPipeline.from_config(config, consumer=self.audio)
        self.assertEqual([c.name for c in pipeline.mapper.channels], ['volume', 'tone'])
        self.assertEqual(pipeline.dispatcher.channel_map['volume'], 'set_volume')
        self.assertAlmostEqual(pipeline.tracker.track_timeout, 0.8)

    def test_reset_restores_initial_values(self):
        self.pipeline.process_frame([pinching_hand((0.3, 0.3))], TARGET, now=0.0)
        self.pipeline.reset()
        self.assertEqual(self.pipeline.channel_value('volume'), 0.5)
        self.assertEqual(self.pipeline.tracker.hands, ())


if __name__ == '__main__':
    unittest.main()
