"""Unit tests for event dispatch."""

from __future__ import annotations

from dataclasses import replace

import pytest

from pid_events import (
    Disturb,
    SetDerivative,
    SetIntegral,
    SetProportional,
    SetSetpoint,
    SetSystematicBias,
    Tick,
    ToggleScenario,
    apply_controls,
    coerce_float,
    dispatch,
    dispatch_all,
)
from pid_model import ControllerState, Scenario, step
from pid_settings import DT


class TestDispatch:
    """Tests for routing single events."""

    def test_tick_routes_to_step(self) -> None:
        state = ControllerState(kp=50.0)
        assert dispatch(state, Tick()) == step(state)

    def test_tick_routes_by_scenario(self) -> None:
        state = ControllerState(position=40.0, kp=100.0, scenario=Scenario.BALL)
        assert dispatch(state, Tick()).output == pytest.approx(0.1)

    @pytest.mark.parametrize(
        "event, field_name",
        [
            (SetProportional(12.5), "kp"),
            (SetIntegral(12.5), "ki"),
            (SetDerivative(12.5), "kd"),
            (SetSetpoint(12.5), "setpoint"),
            (SetSystematicBias(12.5), "systematic_bias"),
        ],
    )
    def test_setters(self, event, field_name: str) -> None:
        state = ControllerState()
        updated = dispatch(state, event)
        assert updated == replace(state, **{field_name: 12.5})

    def test_setters_accept_any_float(self) -> None:
        """Slider ranges are not enforced by the core."""
        assert dispatch(ControllerState(), SetProportional(-3.0)).kp == -3.0
        assert dispatch(ControllerState(), SetSystematicBias(1e9)).systematic_bias == 1e9

    def test_disturb_adds_impulse_only(self) -> None:
        state = ControllerState(velocity=0.25, kp=50.0, integral=3.0, scenario=Scenario.BALL)
        disturbed = dispatch(state, Disturb())
        assert disturbed.velocity == pytest.approx(1.75)
        assert disturbed == replace(state, velocity=disturbed.velocity)

    def test_toggle_is_involutive(self) -> None:
        state = ControllerState(integral=2.0, velocity=0.3)
        once = dispatch(state, ToggleScenario())
        assert once.scenario is Scenario.BALL
        assert once.integral == 2.0
        assert dispatch(once, ToggleScenario()) == state

    def test_unknown_event(self) -> None:
        with pytest.raises(TypeError):
            dispatch(ControllerState(), "tick")


class TestDispatchAll:
    """Tests for folding event sequences."""

    def test_order_matters(self) -> None:
        state = dispatch_all(ControllerState(), [SetSetpoint(30.0), SetSetpoint(40.0)])
        assert state.setpoint == 40.0

    def test_empty_sequence(self) -> None:
        state = ControllerState(kp=1.0)
        assert dispatch_all(state, []) is state

    def test_integral_accumulates_across_interleaved_events(self) -> None:
        """The integral only changes on ticks, whatever else happens in between."""
        events = [
            SetProportional(80.0), Tick(), Tick(),
            SetSetpoint(60.0), Tick(),
            SetIntegral(5.0), SetDerivative(30.0), Tick(),
            ToggleScenario(), Tick(), Tick(),
            Disturb(), ToggleScenario(), SetSystematicBias(200.0), Tick(),
        ]
        state = ControllerState()
        expected = 0.0
        for event in events:
            if isinstance(event, Tick):
                target = 50.0 if state.scenario is Scenario.BALL else state.setpoint
                expected += (target - state.position) * DT
            before = state.integral
            state = dispatch(state, event)
            if not isinstance(event, Tick):
                assert state.integral == before
        assert state.integral == pytest.approx(expected)
        assert len(state.history) == 7


class TestCoerceFloat:
    """Tests for the slider/text payload coercion."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (3, 3.0),
            (2.5, 2.5),
            ("12.5", 12.5),
            (" 7 ", 7.0),
            ("abc", 0.0),
            ("", 0.0),
            (None, 0.0),
            ("nan", 0.0),
            (float("inf"), 0.0),
        ],
    )
    def test_values(self, raw, expected: float) -> None:
        assert coerce_float(raw) == expected


class TestApplyControls:
    """Tests for synchronising state with the UI controls."""

    def test_updates_changed_fields(self) -> None:
        state = apply_controls(
            ControllerState(),
            {"setpoint": 35.0, "kp": 100.0, "ki": 0.0, "kd": 20.0, "bias": 500.0},
        )
        assert state.setpoint == 35.0
        assert (state.kp, state.ki, state.kd) == (100.0, 0.0, 20.0)
        assert state.systematic_bias == 500.0

    def test_unchanged_returns_same_state(self) -> None:
        state = ControllerState(kp=10.0)
        assert apply_controls(state, {"kp": 10.0, "setpoint": 20.0}) is state

    def test_malformed_value_becomes_zero(self) -> None:
        state = apply_controls(ControllerState(kp=10.0), {"kp": "ten"})
        assert state.kp == 0.0

    def test_unknown_control_ignored(self) -> None:
        state = ControllerState()
        assert apply_controls(state, {"run_seconds": 5}) is state

    def test_never_touches_dynamics(self) -> None:
        state = ControllerState(position=33.0, velocity=0.4, integral=1.5, history=(1.0,),
                                setpoint_history=(2.0,))
        updated = apply_controls(state, {"kp": 1.0, "setpoint": 80.0})
        assert updated.position == 33.0
        assert updated.velocity == 0.4
        assert updated.integral == 1.5
        assert updated.history == (1.0,)
