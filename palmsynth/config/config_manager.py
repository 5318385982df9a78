"""
Configuration Management for PalmSynth

Loads and provides access to configuration from config.json.
Allows runtime tuning of tracking, stabilizer and gesture-to-signal parameters.
Supports both plain values and the [value, description] format.
"""

import json
from typing import Dict, Any, Optional, Tuple
from pathlib import Path


class Config:
    """
    Singleton configuration manager that loads from config.json
    """
    _instance = None
    _config_data: Dict[str, Any] = {}
    _config_path: str = ""

    def __new__(cls, *args, **kwargs):
        # Extra args (e.g. Config(path)) pass through to __init__
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from JSON file.

        Args:
            config_path: Path to config.json. If provided, force reload from
                         that path. If None, load from the default location
                         only on first initialization.
        """
        if config_path is not None:
            self._config_path = str(config_path)
            self.reload()
            return

        if not self._config_data:  # Only load once
            config_path = Path(__file__).parent / "config.json"
            self._config_path = str(config_path)
            self.reload()

    def reload(self):
        """Reload configuration from file."""
        try:
            with open(self._config_path, 'r') as f:
                self._config_data = json.load(f)
            print(f"✓ Loaded configuration from {self._config_path}")
        except FileNotFoundError:
            print(f"⚠ Config file not found: {self._config_path}")
            print("  Using default values")
            self._config_data = self._get_defaults()
        except json.JSONDecodeError as e:
            print(f"⚠ Error parsing config file: {e}")
            print("  Using default values")
            self._config_data = self._get_defaults()

    def save(self):
        """Save current configuration back to file."""
        try:
            with open(self._config_path, 'w') as f:
                json.dump(self._config_data, f, indent=2)
            print(f"✓ Saved configuration to {self._config_path}")
        except OSError as e:
            print(f"✗ Error saving config: {e}")

    def get(self, *keys, default=None) -> Any:
        """
        Get configuration value using dot notation.
        Handles both plain values and [value, description] pairs.

        Examples:
            config.get('tracking', 'track_timeout')  # Returns 0.8
            config.get('gestures', 'pinch', 'pinch_on')
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        # [value, description] pair
        if isinstance(current, list) and len(current) >= 1 and not isinstance(current[0], dict):
            return current[0]

        return current

    def get_with_description(self, *keys, default=None) -> Tuple[Any, str]:
        """
        Get configuration value AND description.

        Returns:
            Tuple of (value, description) or (default, "")
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return (default, "")

        if isinstance(current, list):
            if len(current) >= 2:
                return (current[0], current[1])
            elif len(current) == 1:
                return (current[0], "")

        return (current, "")

    def set(self, *keys, value):
        """
        Set configuration value using dot notation.

        Example:
            config.set('tracking', 'track_timeout', value=1.0)
        """
        if len(keys) == 0:
            return

        current = self._config_data
        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _get_defaults(self) -> Dict:
        """Return default configuration values."""
        return {
            "tracking": {
                "track_timeout": 0.8,
                "max_match_distance": 0.30,
                "max_hands": 2,
                "signature_min_confidence": 0.10,
                "landmark_min_confidence": 0.12
            },
            "smoothing": {
                "base_gain": 0.08,
                "confidence_gain": 0.30,
                "min_gain": 0.08,
                "max_gain": 0.28
            },
            "stabilizer": {
                "finger": "middle",
                "hold_confidence": 0.22,
                "clamp_max_step": 0.060,
                "pip_fraction": 0.35,
                "dip_fraction": 0.70
            },
            "gestures": {
                "pinch": {
                    "pinch_on": 0.070,
                    "pinch_off": 0.095,
                    "pinch_min": 0.015
                }
            },
            "channels": {
                "volume": {
                    "role": "left",
                    "track_id": 0,
                    "out_min": 0.0,
                    "out_max": 1.0,
                    "alpha": 0.24,
                    "initial": 0.5,
                    "shape": True,
                    "shape_exponent": 0.65
                },
                "tone": {
                    "role": "right",
                    "track_id": 1,
                    "out_min": -24.0,
                    "out_max": 24.0,
                    "alpha": 0.18,
                    "initial": 0.0,
                    "shape": True,
                    "shape_exponent": 0.65
                }
            },
            "signal_map": [
                {"channel": "volume", "name": "set_volume"},
                {"channel": "tone", "name": "set_bass_gain_db"}
            ],
            "performance": {
                "show_debug_info": False,
                "min_detection_confidence": 0.5,
                "min_presence_confidence": 0.5,
                "min_tracking_confidence": 0.5
            }
        }

    @property
    def data(self) -> Dict:
        """Get entire configuration dictionary."""
        return self._config_data


# Global configuration instance
config = Config()


# Convenience functions for common access patterns
def get_gesture_threshold(gesture_name: str, param_name: str, default=None):
    """Get a gesture threshold parameter."""
    return config.get('gestures', gesture_name, param_name, default=default)


def get_channel_setting(channel: str, param_name: str, default=None):
    """Get a control channel parameter."""
    return config.get('channels', channel, param_name, default=default)
