"""Tests for the Streamlit front end, driven through AppTest."""

from __future__ import annotations

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from pid_model import ControllerState, Scenario
from pid_settings import PRESETS, STEP_TICKS

APP_PATH = str(Path(__file__).resolve().parent.parent / "pid_simulator.py")
STATE_KEY = "controller_state"


@pytest.fixture
def app() -> AppTest:
    at = AppTest.from_file(APP_PATH, default_timeout=60)
    at.run()
    assert not at.exception
    return at


def _state(at: AppTest) -> ControllerState:
    return at.session_state[STATE_KEY]


class TestSimulatorApp:
    """End-to-end checks of the widget-to-event wiring."""

    def test_starts_with_default_state(self, app: AppTest) -> None:
        assert _state(app) == ControllerState()
        assert app.slider(key="setpoint").value == 20.0

    def test_slider_sets_gain(self, app: AppTest) -> None:
        app.slider(key="kp").set_value(50.0).run()
        assert not app.exception
        assert _state(app).kp == 50.0

    def test_step_advances_history(self, app: AppTest) -> None:
        app.slider(key="kp").set_value(50.0).run()
        app.button(key="step").click().run()
        state = _state(app)
        assert len(state.history) == STEP_TICKS
        assert len(state.setpoint_history) == STEP_TICKS
        assert state.position > 10.0

    def test_disturb_kicks_velocity(self, app: AppTest) -> None:
        app.button(key="disturb").click().run()
        assert _state(app).velocity == pytest.approx(1.5)

    def test_toggle_twice(self, app: AppTest) -> None:
        app.button(key="toggle").click().run()
        assert _state(app).scenario is Scenario.BALL
        app.button(key="toggle").click().run()
        assert _state(app).scenario is Scenario.LINEAR

    def test_preset_moves_sliders_and_state(self, app: AppTest) -> None:
        name = next(iter(PRESETS))
        app.button(key=f"preset_{name}").click().run()
        kp, ki, kd = PRESETS[name]
        state = _state(app)
        assert (state.kp, state.ki, state.kd) == (kp, ki, kd)
        assert app.slider(key="kp").value == kp

    def test_reset_restores_defaults(self, app: AppTest) -> None:
        app.slider(key="kd").set_value(30.0).run()
        app.button(key="disturb").click().run()
        app.button(key="reset").click().run()
        assert _state(app) == ControllerState()
        assert app.slider(key="kd").value == 0.0

    def test_run_ticks_for_duration(self, app: AppTest) -> None:
        app.slider(key="run_seconds").set_value(1).run()
        app.button(key="run").click().run()
        assert not app.exception
        assert len(_state(app).history) == 100

    def test_divergence_warns(self, app: AppTest) -> None:
        app.session_state[STATE_KEY] = ControllerState(position=float("inf"))
        app.run()
        assert not app.exception
        assert any("diverged" in w.value for w in app.warning)
