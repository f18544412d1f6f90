"""
Spoken duration estimate.

The value is derived from text length with a fixed characters-per-second
rate, it is not measured from the synthesized audio. Treat it as an
approximation when showing playback length.
"""


def estimate_duration_seconds(text: str, chars_per_second: float) -> int:
    if chars_per_second <= 0:
        raise ValueError("chars_per_second must be positive")
    return round(len(text) / chars_per_second)
