"""Adaptive unit size selection from a calibration transfer."""

import math

from common.protocol import MAX_UNIT_SIZE, SIZING_DIVISOR


def next_power_of_two(n: int) -> int:
    """Return the smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def transfer_size_for(bytes_per_ms: float) -> int:
    """Pick a per-round unit size for a calibrated link speed.

    Targets SIZING_DIVISOR rounds per second of calibrated throughput,
    rounded up to a power of two and capped at MAX_UNIT_SIZE.
    """
    if math.isnan(bytes_per_ms) or bytes_per_ms <= 0:
        return 1
    if math.isinf(bytes_per_ms):
        return MAX_UNIT_SIZE

    bytes_per_sec = int(bytes_per_ms * 1000)
    return min(next_power_of_two(bytes_per_sec // SIZING_DIVISOR), MAX_UNIT_SIZE)
