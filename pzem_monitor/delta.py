# pzem_monitor/delta.py
"""
Interval energy from cumulative meter counters.

Meters report an ever-growing energy counter (kWh). Each stored sample keeps
both the counter as reported (the baseline for the next sample) and the
energy booked for the interval since the previous sample of the same device.
"""
import math
from typing import NamedTuple, Optional


class DeltaResult(NamedTuple):
    delta: float        # energy booked for this interval
    raw_counter: float  # counter to keep as the next baseline


def to_number(value) -> float:
    """Missing, non-numeric and NaN values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def compute_delta(previous_raw: Optional[float], incoming_raw) -> DeltaResult:
    """
    previous_raw is None when the device has no stored sample yet; a stored
    sample without a counter is passed as 0.

    - first sample: the whole counter is booked
    - unchanged counter: the counter itself is booked, not 0
    - otherwise: current - previous, negative when the counter went back
    """
    current = to_number(incoming_raw)

    if previous_raw is None:
        delta = current
    else:
        previous = to_number(previous_raw)
        if current == previous:
            delta = current
        else:
            delta = current - previous

    if not math.isfinite(delta):
        delta = 0.0

    return DeltaResult(delta=delta, raw_counter=current)
