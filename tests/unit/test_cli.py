"""Unit tests for the command-line interface."""

import pytest
import yaml

from omega.cli import EXIT_FAILURE, EXIT_OK, create_parser, main
from omega.recording.models import Record, Recording


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "omega.yml"
    path.write_text(yaml.dump({
        "paths": {"log_dir": str(tmp_path / "logs"), "frames_dir": str(tmp_path / "frames")},
        "logging": {"level": "WARNING"}
    }))
    return path


class TestCli:

    @pytest.mark.unit
    def test_init_writes_example_config(self, tmp_path, capsys):
        output = tmp_path / "example.yml"

        assert main(["init", "--output", str(output)]) == EXIT_OK
        assert output.exists()
        assert "Example configuration written" in capsys.readouterr().out

    @pytest.mark.unit
    def test_play_recording(self, tmp_path, config_file, capsys):
        path = tmp_path / "demo.yml"
        Recording(records=[Record(delay=0, content="hello "), Record(delay=20, content="world")]).save(path)

        code = main(["--config", str(config_file), "play", str(path), "--silent", "--speed-factor", "0.5"])

        assert code == EXIT_OK
        assert "hello world" in capsys.readouterr().out

    @pytest.mark.unit
    def test_play_missing_recording_fails(self, tmp_path, config_file, capsys):
        code = main(["--config", str(config_file), "play", str(tmp_path / "missing.yml"), "--silent"])

        assert code == EXIT_FAILURE
        assert "Can't find a recording" in capsys.readouterr().err

    @pytest.mark.unit
    def test_invalid_config_fails(self, tmp_path, capsys):
        path = tmp_path / "bad.yml"
        path.write_text(yaml.dump({"browser": {"workers": -1}}))

        assert main(["--config", str(path), "play", "x.yml"]) == EXIT_FAILURE
        assert "validation failed" in capsys.readouterr().err

    @pytest.mark.unit
    def test_batch_options(self):
        args = create_parser().parse_args(["batch", "--script", "anim.js", "--duration", "2000", "--workers", "8"])

        assert args.command == "batch"
        assert args.duration == 2000.0
        assert args.workers == 8
        assert args.url is None

    @pytest.mark.unit
    def test_url_and_script_are_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["capture", "--url", "http://x", "--script", "a.js"])

    @pytest.mark.unit
    def test_invalid_speed_factor_fails_cleanly(self, tmp_path, config_file, capsys):
        path = tmp_path / "demo.yml"
        Recording(records=[Record(delay=0, content="hello")]).save(path)

        code = main(["--config", str(config_file), "play", str(path), "--silent", "--speed-factor", "0"])

        assert code == EXIT_FAILURE
        assert "invalid option" in capsys.readouterr().err

    @pytest.mark.unit
    def test_zero_workers_fails_cleanly(self, config_file, capsys):
        code = main(["--config", str(config_file), "batch", "--url", "http://127.0.0.1:1/handler", "--workers", "0"])

        assert code == EXIT_FAILURE
        assert "invalid option" in capsys.readouterr().err
