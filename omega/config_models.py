"""Configuration models for the session recorder."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .interfaces import parse_environment

AUTO = "auto"


def parse_auto(value: Any) -> Optional[int]:
    """Return an int for integer-like values and None for "auto" or anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value >= 0 else None
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
        return parsed if parsed >= 0 else None
    return None


class RecordingConfig(BaseModel):
    """Session parameters stored alongside the records of a recording."""

    model_config = ConfigDict(populate_by_name=True)

    command: str = Field(default="/bin/bash", description="Command to execute on the pty")
    cwd: Optional[str] = Field(default=None, description="Working directory of the pty command")
    env: List[str] = Field(default_factory=list, description="KEY=VALUE overrides of the environment")
    cols: Optional[int] = Field(default=None, description="Terminal columns, None for auto")
    rows: Optional[int] = Field(default=None, description="Terminal rows, None for auto")
    repeat: int = Field(default=0, description="Animation repeat count: -1 once, 0 forever, n times")
    quality: int = Field(default=100, description="Rendering quality")
    frame_delay: Optional[int] = Field(
        default=None, alias="frameDelay", description="Fixed delay between records in ms, None for auto"
    )
    max_idle_time: Optional[int] = Field(
        default=None, alias="maxIdleTimeout", description="Maximum delay between records in ms, None for auto"
    )
    cursor_style: str = Field(default="block", alias="cursorStyle", description="Cursor style")
    font_family: str = Field(
        default="Monaco, Lucida Console, Ubuntu Mono, Monospace",
        alias="fontFamily",
        description="Font family"
    )
    font_size: int = Field(default=12, alias="fontSize", description="Font size")
    line_height: int = Field(default=1, alias="lineHeight", description="Line height")
    letter_spacing: int = Field(default=0, alias="letterSpacing", description="Letter spacing")

    @field_validator("cols", "rows", "frame_delay", "max_idle_time", mode="before")
    @classmethod
    def parse_auto_value(cls, v: Any) -> Optional[int]:
        return parse_auto(v)

    @field_validator("env", mode="before")
    @classmethod
    def normalize_env(cls, v: Any) -> List[str]:
        """Accept a mapping or a list of KEY=VALUE strings."""
        if v is None:
            return []
        if isinstance(v, dict):
            return [f"{key}={value}" for key, value in v.items()]
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v if "=" in str(item)]
        raise ValueError("env must be a mapping or a list of KEY=VALUE strings")

    @field_serializer("cols", "rows", "frame_delay", "max_idle_time")
    def serialize_auto(self, v: Optional[int]) -> Any:
        return AUTO if v is None else v


class ShellConfig(BaseModel):
    """Configuration for PTY shell recording."""

    min_delay: int = Field(default=5, description="Minimum delay in ms between two records")
    output_path: Path = Field(default=Path("recording.yml"), description="Where the recording is saved")

    @field_validator("min_delay")
    @classmethod
    def min_delay_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Minimum delay cannot be negative")
        return v


class BrowserConfig(BaseModel):
    """Configuration for browser frame capture."""

    width: int = Field(default=1920, description="Viewport width in pixels")
    height: int = Field(default=1080, description="Viewport height in pixels")
    fps: float = Field(default=60.0, description="Frames per second of batch recordings")
    workers: int = Field(default=4, description="Maximum number of concurrent browser sessions")
    duration_ms: float = Field(default=5000.0, description="Batch recording duration in milliseconds")
    frame_step_ms: int = Field(default=16, description="Virtual time increment per interactive frame")
    headless: bool = Field(default=True, description="Run the browser without a window")
    navigation_timeout_ms: int = Field(default=30000, description="Page navigation timeout")

    @field_validator("width", "height", "workers", "frame_step_ms", "navigation_timeout_ms")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("fps", "duration_ms")
    @classmethod
    def float_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


class ServerConfig(BaseModel):
    """Configuration for the server delivering the animated page."""

    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=38080, description="Server port")
    script_path: Optional[Path] = Field(default=None, description="Animation script served to the page")

    @property
    def handler_url(self) -> str:
        return f"http://{self.host}:{self.port}/handler"


class PathsConfig(BaseModel):
    """Configuration for file system paths."""

    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    frames_dir: Path = Field(default=Path("frames"), description="Directory for captured frames")

    @field_validator("log_dir", "frames_dir", mode="before")
    @classmethod
    def to_path(cls, v: str | Path) -> Path:
        return Path(v)


class LoggingConfig(BaseModel):
    """Configuration for the logging framework."""

    level: str = Field(default="INFO", description="Log level")
    format_console: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(session_id)s - %(message)s",
        description="Console log format"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Level must be one of {valid_levels}")
        return v.upper()


class SystemConfig(BaseModel):
    """Main system configuration."""

    recording: RecordingConfig = Field(default_factory=RecordingConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def recording_env(self) -> Dict[str, str]:
        """Environment overrides of the recording as a dictionary."""
        return parse_environment(self.recording.env)
