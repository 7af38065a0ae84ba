"""Constants shared by the simulation core and the Streamlit front end.

Slider ranges are enforced by the UI only; the core accepts any float.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

# Simulated seconds per tick, independent of wall-clock time.
DT = 0.01
# Nominal wall-clock period between ticks during a live run.
TICK_INTERVAL_S = 0.01

HISTORY_CAPACITY = 500
DISTURBANCE_IMPULSE = 1.5

LINEAR_OUTPUT_SCALE = 100000.0
BALL_OUTPUT_SCALE = 10000.0
BALL_TARGET = 50.0
BALL_COUPLING_DIVISOR = 20.0

DEFAULT_POSITION = 10.0
DEFAULT_SETPOINT = 20.0


@dataclass(frozen=True)
class SliderRange:
    """One sidebar control."""

    label: str
    min_value: float
    max_value: float
    default: float
    step: float
    help: str


SLIDERS: Dict[str, SliderRange] = {
    "setpoint": SliderRange(
        "Setpoint", 0.0, 100.0, DEFAULT_SETPOINT, 1.0,
        "Target position for the box. The ball always balances at 50."),
    "kp": SliderRange(
        "Kp (proportional)", 0.0, 1000.0, 0.0, 1.0,
        "Pushes harder the further the position is from the target."),
    "ki": SliderRange(
        "Ki (integral)", 0.0, 1000.0, 0.0, 1.0,
        "Acts on the accumulated error and removes steady offsets."),
    "kd": SliderRange(
        "Kd (derivative)", 0.0, 1000.0, 0.0, 1.0,
        "Reacts to how fast the error changes and damps overshoot."),
    "bias": SliderRange(
        "Systematic bias", 0.0, 5000.0, 0.0, 10.0,
        "Constant offset added to every control output, like a miscalibrated actuator."),
}

# (Kp, Ki, Kd)
PRESETS: Dict[str, Tuple[float, float, float]] = {
    "Gentle": (50.0, 0.0, 60.0),
    "Snappy": (200.0, 5.0, 80.0),
    "Wobbly": (200.0, 50.0, 0.0),
}

# (min, max, default) seconds
RUN_SECONDS: Tuple[int, int, int] = (1, 60, 10)
REDRAW_EVERY = 10
STEP_TICKS = 50
