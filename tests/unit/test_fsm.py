"""
Unit tests for the generic state machine.

These tests cover transitions, rejection, cascades of follow-up events,
hooks and serialization of concurrent callers.
"""

import threading
import time

import pytest

from omega.fsm import (
    DEFAULT,
    NO_OP_EVENT,
    ConfigurationError,
    Event,
    EventRejected,
    State,
    StateMachine,
    StateMachineError,
)


def light_switch() -> StateMachine[dict]:
    states = {
        DEFAULT: State(events={"SwitchOff": "Off", "SwitchOn": "On"}),
        "Off": State(events={"SwitchOn": "On"}),
        "On": State(events={"SwitchOff": "Off"}),
    }
    return StateMachine(states, {"switches": 0}, name="light")


class TestTransitions:
    """Test single transitions and rejection."""

    @pytest.mark.unit
    def test_light_switch_example(self):
        """Switching off from the default state succeeds, switching off twice is rejected."""
        machine = light_switch()

        machine.send_event(Event("SwitchOff"))
        assert machine.current == "Off"
        assert machine.previous == DEFAULT

        with pytest.raises(EventRejected) as exc_info:
            machine.send_event(Event("SwitchOff"))

        assert exc_info.value.state == "Off"
        assert exc_info.value.event == "SwitchOff"
        assert machine.current == "Off"

    @pytest.mark.unit
    def test_rejection_leaves_state_and_context_unchanged(self):
        """A rejected event changes neither the states nor the context."""
        calls = []
        states = {
            DEFAULT: State(events={"Go": "A"}),
            "A": State(action=lambda ctx, evt: calls.append(evt.type), events={"Next": "B"}),
            "B": State(),
        }
        context = {"value": 1}
        machine = StateMachine(states, context)
        machine.send_event(Event("Go"))

        with pytest.raises(EventRejected):
            machine.send_event(Event("Unknown"))

        assert machine.current == "A"
        assert machine.previous == DEFAULT
        assert machine.context == {"value": 1}
        assert calls == ["Go"]

    @pytest.mark.unit
    def test_state_without_events_rejects_everything(self):
        """A terminal state rejects every event."""
        machine = StateMachine({DEFAULT: State(events={"End": "Final"}), "Final": State()}, None)
        machine.send_event(Event("End"))

        with pytest.raises(EventRejected):
            machine.send_event(Event("End"))

    @pytest.mark.unit
    def test_missing_target_is_a_configuration_error(self):
        """A transition to an unconfigured state raises ConfigurationError."""
        machine = StateMachine({DEFAULT: State(events={"Go": "Nowhere"})}, None)

        with pytest.raises(ConfigurationError):
            machine.send_event(Event("Go"))

        assert machine.current == DEFAULT
        assert issubclass(ConfigurationError, StateMachineError)
        assert issubclass(EventRejected, StateMachineError)

    @pytest.mark.unit
    def test_can_handle(self):
        """can_handle reports the current state's event table."""
        machine = light_switch()
        assert machine.can_handle("SwitchOn")
        machine.send_event(Event("SwitchOn"))
        assert not machine.can_handle("SwitchOn")
        assert machine.can_handle("SwitchOff")

    @pytest.mark.unit
    def test_action_and_entry_action_are_exclusive(self):
        """A state cannot define both kinds of entry behaviour."""
        with pytest.raises(ValueError):
            State(action=lambda ctx, evt: None, entry_action=lambda ctx, evt: (ctx, NO_OP_EVENT))


class TestHooksAndCascades:
    """Test entry actions, pre-entry hooks and follow-up events."""

    @pytest.mark.unit
    def test_cascade_completes_within_one_call(self):
        """Follow-up events returned by entry actions run before send_event returns."""
        visited = []

        def step(name, follow_up):
            def entry(ctx, evt):
                visited.append(name)
                return ctx + 1, Event(follow_up)
            return entry

        states = {
            DEFAULT: State(events={"Begin": "One"}),
            "One": State(entry_action=step("One", "Next"), events={"Next": "Two"}),
            "Two": State(entry_action=step("Two", "Next"), events={"Next": "Three"}),
            "Three": State(entry_action=lambda ctx, evt: (ctx * 10, NO_OP_EVENT), events={}),
        }
        machine = StateMachine(states, 0)
        machine.send_event(Event("Begin"))

        assert visited == ["One", "Two"]
        assert machine.current == "Three"
        assert machine.previous == "Two"
        assert machine.context == 20

    @pytest.mark.unit
    def test_pre_entry_hook_runs_before_current_changes(self):
        """The pre-entry hook sees the previous state and can replace the context."""
        observed = []
        machine = None

        def hook(ctx, evt):
            observed.append((machine.current, evt.type))
            return {"hooked": True}

        states = {
            DEFAULT: State(events={"Go": "Target"}),
            "Target": State(pre_entry_hook=hook, action=lambda ctx, evt: observed.append(ctx)),
        }
        machine = StateMachine(states, {})
        machine.send_event(Event("Go", context="payload"))

        assert observed == [(DEFAULT, "Go"), {"hooked": True}]
        assert machine.context == {"hooked": True}

    @pytest.mark.unit
    def test_event_payload_reaches_entry_action(self):
        """The event context is passed to the entry action."""
        states = {
            DEFAULT: State(events={"Load": "Loaded"}),
            "Loaded": State(entry_action=lambda ctx, evt: (evt.context, NO_OP_EVENT)),
        }
        machine = StateMachine(states, None)
        machine.send_event(Event("Load", context="http://example.test"))
        assert machine.context == "http://example.test"

    @pytest.mark.unit
    def test_action_exception_propagates_and_releases_lock(self):
        """Errors raised by actions reach the caller and the machine stays usable."""
        def boom(ctx, evt):
            raise RuntimeError("boom")

        states = {
            DEFAULT: State(events={"Go": "Broken"}),
            "Broken": State(action=boom, events={"Reset": "Ok"}),
            "Ok": State(),
        }
        machine = StateMachine(states, None)

        with pytest.raises(RuntimeError):
            machine.send_event(Event("Go"))

        machine.send_event(Event("Reset"))
        assert machine.current == "Ok"


class TestConcurrency:
    """Test serialization of concurrent callers."""

    @pytest.mark.unit
    def test_concurrent_callers_never_observe_a_partial_cascade(self):
        """Each caller runs a whole Idle -> Busy -> Idle cascade in isolation."""
        overlaps = []
        active = {"count": 0}

        def busy(ctx, evt):
            active["count"] += 1
            if active["count"] > 1:
                overlaps.append(evt)
            time.sleep(0.001)
            active["count"] -= 1
            return ctx + 1, Event("Finish")

        states = {
            DEFAULT: State(events={"Work": "Busy"}),
            "Busy": State(entry_action=busy, events={"Finish": "Idle"}),
            "Idle": State(events={"Work": "Busy"}),
        }
        machine = StateMachine(states, 0)
        errors = []

        def worker():
            for _ in range(20):
                try:
                    machine.send_event(Event("Work"))
                except EventRejected as e:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert overlaps == []
        assert machine.current == "Idle"
        assert machine.context == 80
