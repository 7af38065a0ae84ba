"""Chart data and figures for the PID playground."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from matplotlib.patches import Circle, Rectangle

from pid_model import ControllerState, Scenario
from pid_settings import BALL_TARGET, HISTORY_CAPACITY

TRACK_LIMITS = (-10.0, 110.0)
BOX_WIDTH = 6.0
BOX_HEIGHT = 4.0
BOARD_HALF_LENGTH = 50.0
BALL_RADIUS = 3.0
MAX_DRAWN_TILT = np.pi / 3


def compose_series(
    history: Sequence[float], setpoint_history: Sequence[float]
) -> List[Tuple[int, float, float]]:
    """Zip the two histories into ``(sample, position - setpoint, setpoint)``.

    Samples are numbered from 1. Histories shorter than the buffer capacity
    are returned as they are, without padding.

    Raises:
        ValueError: If the histories differ in length
    """
    if len(history) != len(setpoint_history):
        raise ValueError(
            f"history has {len(history)} samples but setpoint_history has {len(setpoint_history)}"
        )
    return [
        (i, value - target, target)
        for i, (value, target) in enumerate(zip(history, setpoint_history), start=1)
    ]


def series_frame(state: ControllerState) -> pd.DataFrame:
    """Composed series of ``state`` as a table, ready for CSV export."""
    df = pd.DataFrame(
        compose_series(state.history, state.setpoint_history),
        columns=["sample", "deviation", "setpoint"],
    )
    df["position"] = df["deviation"] + df["setpoint"]
    return df


def _finite_or_nan(values: np.ndarray) -> np.ndarray:
    return np.where(np.isfinite(values), values, np.nan)


def _on_track(value: float) -> float:
    # diverged values are pinned to the edge of the drawing
    low, high = TRACK_LIMITS
    value = float(np.nan_to_num(value, nan=(low + high) / 2, posinf=high, neginf=low))
    return float(np.clip(value, low, high))


def plot_history(state: ControllerState) -> Figure:
    """Deviation from the setpoint and the setpoint itself, per sample."""
    series = np.asarray(
        compose_series(state.history, state.setpoint_history), dtype=float
    ).reshape(-1, 3)
    samples, deviation, setpoint = series.T

    fig, ax = plt.subplots(figsize=(8, 3.5))
    ax.plot(samples, _finite_or_nan(deviation), label="Position - setpoint")
    ax.plot(samples, setpoint, "--", label="Setpoint")
    ax.axhline(0.0, color="0.6", linewidth=0.8)
    ax.set_xlim(0, HISTORY_CAPACITY)
    ax.set_xlabel("Sample")
    ax.set_ylabel("Value")
    ax.set_title(f"Last {len(samples)} samples")
    ax.legend(loc="upper right")
    ax.grid(True)
    return fig


def _draw_track(ax, state: ControllerState) -> None:
    x = _on_track(state.position)
    ax.axhline(0.0, color="0.4", linewidth=2)
    ax.add_patch(Rectangle((x - BOX_WIDTH / 2, 0.0), BOX_WIDTH, BOX_HEIGHT, color="tab:blue"))
    ax.axvline(_on_track(state.setpoint), color="tab:red", linestyle="--", label="Setpoint")
    ax.set_ylim(-2.0, 12.0)
    ax.set_title(f"Position {state.position:.2f}  |  setpoint {state.setpoint:.2f}")
    ax.legend(loc="upper right")


def _draw_board(ax, state: ControllerState) -> None:
    angle = float(np.clip(np.nan_to_num(state.output), -MAX_DRAWN_TILT, MAX_DRAWN_TILT))
    cos_a, sin_a = np.cos(angle), np.sin(angle)
    # positive angle lowers the +x end, so the ball rolls toward +x
    ax.plot(
        [BALL_TARGET - BOARD_HALF_LENGTH * cos_a, BALL_TARGET + BOARD_HALF_LENGTH * cos_a],
        [BOARD_HALF_LENGTH * sin_a, -BOARD_HALF_LENGTH * sin_a],
        color="0.3",
        linewidth=4,
    )
    offset = _on_track(state.position) - BALL_TARGET
    centre = (
        BALL_TARGET + offset * cos_a + BALL_RADIUS * sin_a,
        -offset * sin_a + BALL_RADIUS * cos_a,
    )
    ax.add_patch(Circle(centre, BALL_RADIUS, color="tab:orange"))
    ax.plot([BALL_TARGET], [-4.0], marker="^", markersize=12, color="tab:red", label="Balance point")
    ax.set_ylim(-40.0, 40.0)
    ax.set_aspect("equal")
    ax.set_title(
        f"Ball at {state.position:.2f}  |  target {BALL_TARGET:.0f}  |  "
        f"board {np.degrees(state.output):.1f}°"
    )
    ax.legend(loc="upper right")


def plot_scene(state: ControllerState) -> Figure:
    """Box on a track (linear) or ball on a tilting board (ball)."""
    fig, ax = plt.subplots(figsize=(8, 3))
    if state.scenario is Scenario.LINEAR:
        _draw_track(ax, state)
    else:
        _draw_board(ax, state)
    ax.set_xlim(*TRACK_LIMITS)
    ax.set_yticks([])
    return fig
