"""Unit tests for the page console protocol and the frame rate counter."""

import json

import pytest

from omega.recording.console import parse_console_message
from omega.recording.rate_counter import RateCounter


class TestConsoleMessages:

    @pytest.mark.unit
    def test_command_message(self):
        message = parse_console_message(json.dumps({"type": "command", "action": "start", "message": "Start recording"}))

        assert message is not None
        assert message.is_command
        assert message.action == "start"

    @pytest.mark.unit
    def test_informational_message(self):
        message = parse_console_message('{"type": "message", "message": "frame 3"}')

        assert message is not None
        assert not message.is_command
        assert message.message == "frame 3"
        assert message.action == ""

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["plain log line", "[1, 2]", '{"action": "start"}', ""])
    def test_other_console_output_is_ignored(self, text):
        assert parse_console_message(text) is None


class TestRateCounter:

    @pytest.mark.unit
    def test_counts_events_within_window(self):
        now = [0.0]
        counter = RateCounter(window=1.0, clock=lambda: now[0])

        for _ in range(30):
            counter.incr()
            now[0] += 0.02

        assert counter.rate() == 30

    @pytest.mark.unit
    def test_old_events_expire(self):
        now = [0.0]
        counter = RateCounter(window=1.0, clock=lambda: now[0])
        counter.incr(5)

        now[0] = 0.5
        counter.incr()
        assert counter.rate() == 6

        now[0] = 1.2
        assert counter.rate() == 1
