
# pid_simulator.py
import logging
import time

import streamlit as st
import numpy as np
import matplotlib.pyplot as plt

from pid_chart import plot_history, plot_scene, series_frame
from pid_events import Disturb, Tick, ToggleScenario, apply_controls, dispatch, dispatch_all
from pid_model import ControllerState, Scenario, control_terms
from pid_settings import PRESETS, REDRAW_EVERY, RUN_SECONDS, SLIDERS, STEP_TICKS, TICK_INTERVAL_S

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
LOGGER = logging.getLogger("pid_simulator")

STATE_KEY = "controller_state"

st.set_page_config(page_title="PID Playground", layout="centered")

st.title("PID Playground")
st.markdown("Drive a box to a target position, or balance a ball on a tilting board, "
            "with a live PID loop. Tune the gains in the sidebar, then press **Run** "
            "and watch the position settle (or not).")


# ---------------------------
# Session state & callbacks
# ---------------------------
def _restore_slider_defaults():
    for key, slider in SLIDERS.items():
        st.session_state[key] = slider.default


def _send(*events):
    st.session_state[STATE_KEY] = dispatch_all(st.session_state[STATE_KEY], events)


def _apply_preset(name):
    kp, ki, kd = PRESETS[name]
    st.session_state["kp"], st.session_state["ki"], st.session_state["kd"] = kp, ki, kd
    LOGGER.info("Preset %s: kp=%s ki=%s kd=%s", name, kp, ki, kd)


def _reset_session():
    st.session_state[STATE_KEY] = ControllerState()
    _restore_slider_defaults()
    LOGGER.info("Session reset")


if STATE_KEY not in st.session_state:
    st.session_state[STATE_KEY] = ControllerState()
for _key, _slider in SLIDERS.items():
    st.session_state.setdefault(_key, _slider.default)


# ---------------------------
# Sidebar: Controls
# ---------------------------
st.sidebar.header("Controller")

controls = {}
for key, slider in SLIDERS.items():
    controls[key] = st.sidebar.slider(slider.label, min_value=slider.min_value, max_value=slider.max_value,
                                      step=slider.step, key=key, help=slider.help)

st.sidebar.subheader("Quick presets")
preset_cols = st.sidebar.columns(len(PRESETS))
for col, name in zip(preset_cols, PRESETS):
    with col:
        st.button(name, key=f"preset_{name}", on_click=_apply_preset, args=(name,))

st.sidebar.header("Simulation")
run_min, run_max, run_default = RUN_SECONDS
run_seconds = st.sidebar.slider("Run duration (s)", min_value=run_min, max_value=run_max, value=run_default,
                                step=1, key="run_seconds", help="How long the Run button keeps ticking.")
with st.sidebar.expander("ℹ️ How the loop works"):
    st.write("Every tick the controller computes Kp·error + Ki·∫error − Kd·(previous error − error)/dt "
             "plus the systematic bias. For the box this becomes an acceleration, for the board "
             "a tilt angle. The integral is never reset, so switching scenario keeps it.")

state = apply_controls(st.session_state[STATE_KEY], controls)
st.session_state[STATE_KEY] = state


# ---------------------------
# Main area: buttons
# ---------------------------
other = state.scenario.toggled()
col_run, col_step, col_kick, col_switch, col_reset = st.columns(5)
with col_run:
    run_clicked = st.button("▶ Run", key="run")
with col_step:
    st.button(f"Step ×{STEP_TICKS}", key="step", on_click=_send, args=(Tick(),) * STEP_TICKS)
with col_kick:
    st.button("Disturb", key="disturb", on_click=_send, args=(Disturb(),),
              help="Kick the velocity by +1.5 to test recovery.")
with col_switch:
    st.button(f"Use {other.value}", key="toggle", on_click=_send, args=(ToggleScenario(),))
with col_reset:
    st.button("Reset", key="reset", on_click=_reset_session)

if state.scenario is Scenario.BALL:
    st.caption("Ball scenario: the controller always balances the ball at 50; "
               "the setpoint slider only moves the dashed line in the chart.")
else:
    st.caption("Linear scenario: the controller drives the box toward the setpoint.")

scene_slot = st.empty()
chart_slot = st.empty()
metrics_slot = st.empty()


def draw(current):
    scene_fig = plot_scene(current)
    scene_slot.pyplot(scene_fig)
    plt.close(scene_fig)

    chart_fig = plot_history(current)
    chart_slot.pyplot(chart_fig)
    plt.close(chart_fig)

    terms = control_terms(current)
    with metrics_slot.container():
        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Position", f"{current.position:.3f}")
        m2.metric("Velocity", f"{current.velocity:.4f}")
        m3.metric("Output", f"{current.output:.5f}" if current.scenario is Scenario.LINEAR
                  else f"{np.degrees(current.output):.2f}°")
        m4.metric("Integral", f"{current.integral:.3f}")
        st.caption(f"Next raw output: P {terms.proportional:.1f} + I {terms.integral:.1f} "
                   f"+ D {terms.derivative:.1f} + bias {terms.bias:.1f} = {terms.total:.1f}")


# ---------------------------
# Live run
# ---------------------------
if run_clicked:
    n_ticks = int(round(run_seconds / TICK_INTERVAL_S))
    LOGGER.info("Running %d ticks (%s scenario)", n_ticks, state.scenario.value)
    for k in range(n_ticks):
        state = dispatch(state, Tick())
        st.session_state[STATE_KEY] = state
        if k % REDRAW_EVERY == 0:
            draw(state)
        time.sleep(TICK_INTERVAL_S)

draw(state)

if not state.is_finite:
    st.warning("The loop has diverged (values overflowed). Lower the gains and press **Reset**.")

st.write("---")
st.download_button("Download history CSV", series_frame(state).to_csv(index=False),
                   file_name="pid_history.csv", mime="text/csv")
st.caption("The chart keeps the last 500 ticks. Nothing is saved between sessions.")
