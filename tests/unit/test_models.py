"""Unit tests for recording models and their YAML persistence."""

import os

import pytest
import yaml

from omega.config_models import RecordingConfig
from omega.interfaces import PersistenceError
from omega.recording.models import Record, Recording


@pytest.fixture
def recording() -> Recording:
    return Recording(
        config=RecordingConfig(command="/bin/bash", cols=120, rows=30, maxIdleTimeout=1000),
        records=[Record(delay=0, content="$ ls\r\n"), Record(delay=250, content="README.md\r\n")],
    )


class TestRecord:

    @pytest.mark.unit
    def test_negative_delay_is_rejected(self):
        with pytest.raises(ValueError):
            Record(delay=-1, content="x")

    @pytest.mark.unit
    def test_duration_is_sum_of_delays(self, recording: Recording):
        assert recording.duration_ms() == 250


class TestPersistence:
    """Test saving and loading recordings."""

    @pytest.mark.unit
    def test_document_layout(self, recording: Recording, tmp_path):
        path = tmp_path / "demo.yml"
        recording.save(path)

        data = yaml.safe_load(path.read_text(encoding="utf-8"))

        assert list(data) == ["config", "records"]
        assert data["config"]["maxIdleTimeout"] == 1000
        assert data["config"]["frameDelay"] == "auto"
        assert data["records"][1] == {"delay": 250, "content": "README.md\r\n"}

    @pytest.mark.unit
    def test_load_returns_saved_recording(self, recording: Recording, tmp_path):
        path = tmp_path / "nested" / "demo.yml"
        recording.save(path)

        assert Recording.load(path) == recording

    @pytest.mark.unit
    def test_bare_record_list_is_accepted(self, tmp_path):
        path = tmp_path / "records.yml"
        path.write_text(yaml.safe_dump([{"delay": 0, "content": "a"}, {"delay": 10, "content": "b"}]))

        loaded = Recording.load(path)

        assert [(r.delay, r.content) for r in loaded.records] == [(0, "a"), (10, "b")]
        assert loaded.config == RecordingConfig()

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(PersistenceError, match="Can't find"):
            Recording.load(tmp_path / "missing.yml")

    @pytest.mark.unit
    def test_invalid_document(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("records:\n  - delay: -5\n    content: x\n")

        with pytest.raises(PersistenceError, match="Invalid recording"):
            Recording.load(path)

    @pytest.mark.unit
    def test_failed_save_leaves_existing_file_untouched(self, recording: Recording, tmp_path, monkeypatch):
        path = tmp_path / "demo.yml"
        path.write_text("previous contents")

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(PersistenceError, match="disk full"):
            recording.save(path)

        assert path.read_text() == "previous contents"
        assert [p.name for p in tmp_path.iterdir()] == ["demo.yml"]
