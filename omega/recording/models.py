"""
Data models for terminal recordings.

A recording is the session configuration plus an ordered list of records,
each record being a piece of terminal output and the delay in milliseconds
since the previous one. Recordings are stored as YAML documents with a
``config`` and a ``records`` section.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from omega.config_models import RecordingConfig, parse_auto
from omega.interfaces import PersistenceError


class Record(BaseModel):
    """Single timed unit of replayable output."""

    delay: int = Field(default=0, description="Delay from the previous record in milliseconds")
    content: str = Field(default="", description="Output written by the terminal")

    @field_validator("delay")
    @classmethod
    def delay_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Record delay cannot be negative")
        return v


class Recording(BaseModel):
    """Persisted unit: session configuration and records in playback order."""

    config: RecordingConfig = Field(default_factory=RecordingConfig)
    records: List[Record] = Field(default_factory=list)

    def duration_ms(self) -> int:
        """Total playback time of the records in milliseconds."""
        return sum(record.delay for record in self.records)

    def to_dict(self) -> Dict[str, Any]:
        """Convert recording to a dictionary for serialization."""
        return {
            "config": self.config.model_dump(mode="json", by_alias=True),
            "records": [record.model_dump() for record in self.records],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Recording":
        """
        Create a recording from deserialized data.

        A bare list is accepted as a list of records with a default config.
        """
        if isinstance(data, list):
            data = {"records": data}
        if not isinstance(data, dict):
            raise PersistenceError(f"Invalid recording document: expected a mapping, got {type(data).__name__}")

        try:
            return cls.model_validate({
                "config": data.get("config") or {},
                "records": data.get("records") or [],
            })
        except ValidationError as e:
            raise PersistenceError(f"Invalid recording document: {e}") from e

    def save(self, file_path: Path) -> None:
        """
        Write the recording as YAML.

        The document is written to a temporary file in the same directory and
        moved into place, so the target is either fully written or untouched.

        Raises:
            PersistenceError: If the file cannot be written
        """
        file_path = Path(file_path)
        document = yaml.safe_dump(
            self.to_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
        )

        tmp_name = None
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=file_path.parent,
                prefix=f".{file_path.name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_name = f.name
                f.write(document)
            os.replace(tmp_name, file_path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Failed to write recording {file_path}: {e}") from e

    @classmethod
    def load(cls, file_path: Path) -> "Recording":
        """
        Read a recording written by save().

        Raises:
            PersistenceError: If the file is missing or invalid
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise PersistenceError(f"Can't find a recording at: {file_path}")

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise PersistenceError(f"Failed to parse recording {file_path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to read recording {file_path}: {e}") from e

        return cls.from_dict(data)


class PlayOptions(BaseModel):
    """Options changing the pacing of a playback."""

    frame_delay: Optional[int] = Field(default=None, description="Fixed delay between records in ms, None for auto")
    max_idle_time: Optional[int] = Field(default=None, description="Maximum delay between records in ms, None for auto")
    speed_factor: float = Field(default=1.0, description="Multiplier applied to every delay")
    silent: bool = Field(default=False, description="Skip the messages shown before and after playback")

    @field_validator("frame_delay", "max_idle_time", mode="before")
    @classmethod
    def parse_auto_value(cls, v: Any) -> Optional[int]:
        return parse_auto(v)

    @field_validator("speed_factor")
    @classmethod
    def speed_factor_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Speed factor must be positive")
        return v

    @classmethod
    def from_config(cls, config: RecordingConfig, **overrides: Any) -> "PlayOptions":
        """Build options from the timing fields of a recording configuration."""
        values: Dict[str, Any] = {
            "frame_delay": config.frame_delay,
            "max_idle_time": config.max_idle_time,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
