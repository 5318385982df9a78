"""
Signal Dispatcher for PalmSynth

Decouples the gesture mapper from whatever applies the control values.
It receives (channel, value) updates, looks up the consumer method configured
for each channel in the signal map, and calls it with the value.
"""

from typing import Dict, Iterable, List, Tuple


class SignalDispatcher:
    def __init__(self, consumer):
        """
        Initialize the dispatcher.

        Args:
            consumer: object exposing one setter per channel (e.g. AudioParameters).
        """
        self.consumer = consumer

        # channel name -> consumer method name
        self.channel_map: Dict[str, str] = {}

        self.dispatch_count = 0
        self.error_count = 0

    def load_map(self, signal_map_list: List[Dict]):
        """
        Build the channel lookup from the raw configuration list.

        Args:
            signal_map_list: List of dicts, each containing
                             {"channel": "...", "name": "..."}
        """
        self.channel_map.clear()

        if not signal_map_list:
            return

        for entry in signal_map_list:
            channel = entry.get("channel")
            name = entry.get("name")

            # Skip invalid entries
            if not channel or not name:
                continue

            self.channel_map[channel] = name

        print(f"✓ Signal Dispatcher loaded: {len(self.channel_map)} channel mappings.")

    def dispatch(self, updates: Iterable[Tuple[str, float]]) -> int:
        """
        Push each update to the consumer, one call per update.

        A channel without a mapping, or whose method the consumer lacks, is
        skipped. A consumer error is reported and the remaining updates still go out.

        Returns:
            number of updates delivered
        """
        delivered = 0
        for channel, value in updates:
            func_name = self.channel_map.get(channel)
            if not func_name:
                continue

            func = getattr(self.consumer, func_name, None)
            if not callable(func):
                continue

            try:
                func(value)
                delivered += 1
            except Exception as e:
                self.error_count += 1
                print(f"⚠ Error pushing {channel} via {func_name}: {e}")

        self.dispatch_count += delivered
        return delivered
