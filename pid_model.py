"""Closed-loop PID simulation core.

The whole model is one immutable :class:`ControllerState` snapshot. Every
transition returns a new snapshot and nothing here keeps module-level state,
so whoever runs the event loop owns the session and passes it in.

Two physical variants share one step function:

- linear: the control output is an acceleration applied to a box
- ball: the control output is a board tilt angle; the ball picks up
  ``sin(angle) / 20`` of velocity per tick and always balances at 50
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, NamedTuple, Tuple

import numpy as np

from pid_settings import (
    BALL_COUPLING_DIVISOR,
    BALL_OUTPUT_SCALE,
    BALL_TARGET,
    DEFAULT_POSITION,
    DEFAULT_SETPOINT,
    DT,
    HISTORY_CAPACITY,
    LINEAR_OUTPUT_SCALE,
)

LOGGER = logging.getLogger(__name__)

History = Tuple[float, ...]


class Scenario(enum.Enum):
    LINEAR = "linear"
    BALL = "ball"

    def toggled(self) -> Scenario:
        return Scenario.BALL if self is Scenario.LINEAR else Scenario.LINEAR


def push_history(buffer: History, value: float, capacity: int = HISTORY_CAPACITY) -> History:
    """Append ``value``, dropping the oldest sample once ``capacity`` is reached.

    Args:
        buffer: Samples, oldest first
        value: New sample
        capacity: Maximum length of the result

    Returns:
        A new tuple; ``buffer`` is left untouched
    """
    if len(buffer) >= capacity:
        buffer = buffer[len(buffer) - capacity + 1:]
    return buffer + (float(value),)


@dataclass(frozen=True)
class ControllerState:
    """Snapshot of the simulated plant and its controller.

    Attributes:
        position: Controlled quantity (box position or ball position on the board)
        velocity: Change of ``position`` per tick
        systematic_bias: Constant disturbance added to every raw control output
        output: Last control signal (acceleration for linear, angle for ball)
        integral: Accumulated ``error * dt``; never reset by other events
        last_error: Error seen on the previous tick
        setpoint: User target; only the linear control law tracks it
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        history: Recent positions, oldest first
        setpoint_history: Recent setpoints, in lockstep with ``history``
        scenario: Which physical variant a tick applies
    """

    position: float = DEFAULT_POSITION
    velocity: float = 0.0
    systematic_bias: float = 0.0
    output: float = 0.0
    integral: float = 0.0
    last_error: float = 0.0
    setpoint: float = DEFAULT_SETPOINT
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0
    history: History = ()
    setpoint_history: History = ()
    scenario: Scenario = Scenario.LINEAR

    @property
    def is_finite(self) -> bool:
        """False once the loop has diverged to inf/nan."""
        return all(
            math.isfinite(v)
            for v in (self.position, self.velocity, self.output, self.integral, self.last_error)
        )


@dataclass(frozen=True)
class Variant:
    """What distinguishes one physical scenario from the other.

    Attributes:
        name: Display name
        target: Returns the value the control law steers toward
        output_scale: Divisor turning the raw PID sum into the control output
        couple: Maps the control output to a velocity increment
    """

    name: str
    target: Callable[[ControllerState], float]
    output_scale: float
    couple: Callable[[float], float]


def _user_setpoint(state: ControllerState) -> float:
    return state.setpoint


def _ball_balance_point(state: ControllerState) -> float:
    return BALL_TARGET


def _as_acceleration(output: float) -> float:
    return output


def _gravity_along_board(angle: float) -> float:
    return float(np.sin(angle)) / BALL_COUPLING_DIVISOR


LINEAR = Variant("Linear", _user_setpoint, LINEAR_OUTPUT_SCALE, _as_acceleration)
BALL = Variant("Ball", _ball_balance_point, BALL_OUTPUT_SCALE, _gravity_along_board)

VARIANTS = {Scenario.LINEAR: LINEAR, Scenario.BALL: BALL}


class ControlTerms(NamedTuple):
    """Contributions to the raw control output of the next tick."""

    error: float
    proportional: float
    integral: float
    derivative: float
    bias: float

    @property
    def total(self) -> float:
        return self.proportional + self.integral + self.derivative + self.bias


def control_terms(state: ControllerState, variant: Variant | None = None) -> ControlTerms:
    """Break down the raw control output the next tick will compute.

    The derivative estimate is ``(last_error - error) / dt``, i.e. the negated
    error slope, and is subtracted from the sum.

    Args:
        state: Current snapshot
        variant: Physics to use (default: the one selected by ``state.scenario``)

    Returns:
        The error and each weighted term
    """
    variant = variant or VARIANTS[state.scenario]
    error = variant.target(state) - state.position
    derivative_estimate = (state.last_error - error) / DT
    return ControlTerms(
        error=error,
        proportional=state.kp * error,
        integral=state.ki * state.integral,
        derivative=-state.kd * derivative_estimate,
        bias=state.systematic_bias,
    )


def step(state: ControllerState, variant: Variant | None = None) -> ControllerState:
    """Advance the simulation by one tick.

    Args:
        state: Current snapshot
        variant: Physics to use (default: the one selected by ``state.scenario``)

    Returns:
        The next snapshot
    """
    variant = variant or VARIANTS[state.scenario]
    terms = control_terms(state, variant)
    output = terms.total / variant.output_scale
    velocity = state.velocity + variant.couple(output)
    position = state.position + velocity
    return replace(
        state,
        position=position,
        velocity=velocity,
        output=output,
        integral=state.integral + terms.error * DT,
        last_error=terms.error,
        history=push_history(state.history, position),
        setpoint_history=push_history(state.setpoint_history, state.setpoint),
    )


def advance(state: ControllerState, ticks: int) -> ControllerState:
    """Apply ``ticks`` consecutive steps."""
    for _ in range(ticks):
        state = step(state)
    LOGGER.debug("Advanced %d ticks, position=%s", ticks, state.position)
    return state
