"""Events that drive the simulation and the dispatcher that applies them.

Every handler is a pure ``(ControllerState, event) -> ControllerState``
function. Events are processed one at a time by whoever owns the session.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, Mapping, Union

from pid_model import ControllerState, step
from pid_settings import DISTURBANCE_IMPULSE

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class SetProportional:
    value: float


@dataclass(frozen=True)
class SetIntegral:
    value: float


@dataclass(frozen=True)
class SetDerivative:
    value: float


@dataclass(frozen=True)
class SetSetpoint:
    value: float


@dataclass(frozen=True)
class SetSystematicBias:
    value: float


@dataclass(frozen=True)
class ToggleScenario:
    pass


@dataclass(frozen=True)
class Disturb:
    pass


Event = Union[
    Tick,
    SetProportional,
    SetIntegral,
    SetDerivative,
    SetSetpoint,
    SetSystematicBias,
    ToggleScenario,
    Disturb,
]

# set-event type -> ControllerState field it overwrites
_SETTERS = {
    SetProportional: "kp",
    SetIntegral: "ki",
    SetDerivative: "kd",
    SetSetpoint: "setpoint",
    SetSystematicBias: "systematic_bias",
}

# UI control name -> set-event type
CONTROL_EVENTS = {
    "setpoint": SetSetpoint,
    "kp": SetProportional,
    "ki": SetIntegral,
    "kd": SetDerivative,
    "bias": SetSystematicBias,
}


def dispatch(state: ControllerState, event: Event) -> ControllerState:
    """Apply a single event and return the replacement state.

    Raises:
        TypeError: If ``event`` is not one of the event types above
    """
    if isinstance(event, Tick):
        return step(state)

    field_name = _SETTERS.get(type(event))
    if field_name is not None:
        return replace(state, **{field_name: float(event.value)})

    if isinstance(event, ToggleScenario):
        scenario = state.scenario.toggled()
        LOGGER.info("Scenario switched to %s", scenario.value)
        return replace(state, scenario=scenario)

    if isinstance(event, Disturb):
        LOGGER.info("Disturbance: velocity %+.2f", DISTURBANCE_IMPULSE)
        return replace(state, velocity=state.velocity + DISTURBANCE_IMPULSE)

    raise TypeError(f"Unsupported event: {event!r}")


def dispatch_all(state: ControllerState, events: Iterable[Event]) -> ControllerState:
    """Apply ``events`` in order."""
    return reduce(dispatch, events, state)


def coerce_float(value: object) -> float:
    """Read a slider or text payload as a float; anything unusable becomes 0.0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def apply_controls(state: ControllerState, values: Mapping[str, object]) -> ControllerState:
    """Synchronise the state with the current control values.

    Args:
        state: Current snapshot
        values: Control name (see ``CONTROL_EVENTS``) to raw value; unknown
            names are ignored

    Returns:
        The state after dispatching a set event for every control whose value
        differs from the state
    """
    events = []
    for name, raw in values.items():
        event_type = CONTROL_EVENTS.get(name)
        if event_type is None:
            continue
        value = coerce_float(raw)
        if getattr(state, _SETTERS[event_type]) != value:
            events.append(event_type(value))
    return dispatch_all(state, events)
