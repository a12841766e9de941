"""Unit tests for the delay-compaction recorder."""

import pytest

from omega.config_models import RecordingConfig
from omega.recording.models import Recording
from omega.recording.shell_writer import MIN_DELAY, ShellWriter


class FakeClock:
    """Manually advanced clock returning nanoseconds."""

    def __init__(self):
        self.now = 100_000_000_000

    def advance_ms(self, ms: float) -> None:
        self.now += int(ms * 1_000_000)

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def writer(clock: FakeClock) -> ShellWriter:
    return ShellWriter(min_delay=MIN_DELAY, clock=clock)


class TestDelayCompaction:
    """Test how writes become records."""

    @pytest.mark.unit
    def test_first_write_has_zero_delay(self, writer: ShellWriter, clock: FakeClock):
        clock.advance_ms(1234)
        writer.write(b"$ ")

        assert [(r.delay, r.content) for r in writer.records] == [(0, "$ ")]

    @pytest.mark.unit
    def test_burst_then_pause(self, writer: ShellWriter, clock: FakeClock):
        """Writes 2 ms apart merge; a write 18 ms later starts a new record."""
        writer.write(b"a")
        clock.advance_ms(2)
        writer.write(b"b")
        clock.advance_ms(18)
        writer.write(b"c")

        assert [(r.delay, r.content) for r in writer.records] == [(0, "ab"), (18, "c")]

    @pytest.mark.unit
    def test_delay_is_measured_from_the_last_write(self, writer: ShellWriter, clock: FakeClock):
        """Coalesced writes still move the reference time forward."""
        writer.write(b"a")
        for _ in range(5):
            clock.advance_ms(4)
            writer.write(b".")
        clock.advance_ms(10)
        writer.write(b"z")

        records = writer.records
        assert [(r.delay, r.content) for r in records] == [(0, "a....."), (10, "z")]

    @pytest.mark.unit
    def test_exact_threshold_starts_a_new_record(self, writer: ShellWriter, clock: FakeClock):
        writer.write(b"a")
        clock.advance_ms(MIN_DELAY)
        writer.write(b"b")

        assert [(r.delay, r.content) for r in writer.records] == [(0, "a"), (MIN_DELAY, "b")]

    @pytest.mark.unit
    def test_elapsed_time_is_truncated_to_milliseconds(self, writer: ShellWriter, clock: FakeClock):
        writer.write(b"a")
        clock.advance_ms(42.9)
        writer.write(b"b")

        assert writer.records[1].delay == 42

    @pytest.mark.unit
    def test_invalid_utf8_is_replaced(self, writer: ShellWriter):
        count = writer.write(b"ok \xff")

        assert count == 4
        assert writer.records[0].content == "ok �"

    @pytest.mark.unit
    def test_character_split_across_writes_is_kept(self, writer: ShellWriter):
        encoded = "é".encode()

        writer.write(encoded[:1])
        writer.write(encoded[1:])

        assert writer.records[0].content == "é"

    @pytest.mark.unit
    def test_truncated_character_is_flushed_on_dump(self, writer: ShellWriter, tmp_path):
        writer.write(b"ok " + "é".encode()[:1])

        recording = writer.dump(tmp_path / "partial.yml", RecordingConfig(cols=80, rows=24))

        assert recording.records[0].content == "ok �"

    @pytest.mark.unit
    def test_text_chunks_are_accepted(self, writer: ShellWriter):
        writer.write("café")
        assert writer.records[0].content == "café"

    @pytest.mark.unit
    def test_records_are_copies(self, writer: ShellWriter):
        writer.write(b"a")
        writer.records[0].content = "changed"

        assert writer.records[0].content == "a"


class TestDump:
    """Test persisting the records."""

    @pytest.mark.unit
    def test_dump_writes_config_and_records(self, writer: ShellWriter, clock: FakeClock, tmp_path):
        writer.write(b"hello")
        clock.advance_ms(100)
        writer.write(b"\r\nworld")
        config = RecordingConfig(command="/bin/sh", cwd="/tmp", env=["TERM=xterm"], cols=80, rows=24)

        output = tmp_path / "session.yml"
        recording = writer.dump(output, config)
        loaded = Recording.load(output)

        assert loaded == recording
        assert loaded.config.command == "/bin/sh"
        assert loaded.config.env == ["TERM=xterm"]
        assert [(r.delay, r.content) for r in loaded.records] == [(0, "hello"), (100, "\r\nworld")]
