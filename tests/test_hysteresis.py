"""Tests for the hysteresis state machine."""

import pytest

from lapatronic.services.control.hysteresis import Command, HysteresisController


@pytest.fixture()
def controller():
    return HysteresisController(0.20, 0.90)


def test_starts_inactive(controller):
    assert controller.active is False


@pytest.mark.parametrize("low,high", [(0.5, 0.5), (0.9, 0.2), (-0.1, 0.5), (0.2, 1.1)])
def test_rejects_invalid_thresholds(low, high):
    with pytest.raises(ValueError):
        HysteresisController(low, high)


def test_switches_on_at_low_threshold(controller):
    assert controller.evaluate(0.20) == Command.ON
    assert controller.evaluate(0.05) == Command.ON


def test_switches_off_at_high_threshold(controller):
    controller.commit(Command.ON)
    assert controller.evaluate(0.90) == Command.OFF
    assert controller.evaluate(1.0) == Command.OFF


@pytest.mark.parametrize("percent", [0.21, 0.5, 0.89])
def test_deadband_holds_both_states(controller, percent):
    assert controller.evaluate(percent) is None
    controller.commit(Command.ON)
    assert controller.evaluate(percent) is None


def test_no_repeat_command_in_same_state(controller):
    assert controller.evaluate(0.95) is None
    controller.commit(Command.ON)
    assert controller.evaluate(0.10) is None


def test_evaluate_does_not_change_state(controller):
    controller.evaluate(0.10)
    assert controller.active is False


def test_scenario_sequence(controller):
    levels = [0.50, 0.15, 0.50, 0.95, 0.50]
    states = []
    for level in levels:
        controller.update(level)
        states.append(controller.active)
    assert states == [False, True, True, False, False]


def test_reset_forces_inactive(controller):
    controller.commit(Command.ON)
    controller.reset()
    assert controller.active is False
    assert controller.state.to_dict() == {"active": False}
