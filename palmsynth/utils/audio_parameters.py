"""
Reference signal consumer for PalmSynth

Holds the two parameters the gesture channels drive: master volume and the
gain of a low-shelf bass EQ band. Values are clamped to the ranges an audio
engine accepts. Hosts subclass this and override `apply` to forward values to
their real engine.
"""

from typing import Dict

from palmsynth.utils.math_utils import clamp

VOLUME_RANGE = (0.0, 1.0)
BASS_GAIN_DB_RANGE = (-24.0, 24.0)


class AudioParameters:

    def __init__(self, volume: float = 0.5, bass_gain_db: float = 0.0):
        self.volume = clamp(float(volume), *VOLUME_RANGE)
        self.bass_gain_db = clamp(float(bass_gain_db), *BASS_GAIN_DB_RANGE)
        self.updates = 0

    def set_volume(self, value: float):
        self.volume = clamp(float(value), *VOLUME_RANGE)
        self.updates += 1
        self.apply('volume', self.volume)

    def set_bass_gain_db(self, value: float):
        self.bass_gain_db = clamp(float(value), *BASS_GAIN_DB_RANGE)
        self.updates += 1
        self.apply('bass_gain_db', self.bass_gain_db)

    def apply(self, parameter: str, value: float):
        """Hook for subclasses; the base class only records the value."""

    def snapshot(self) -> Dict[str, float]:
        return {'volume': self.volume, 'bass_gain_db': self.bass_gain_db}
